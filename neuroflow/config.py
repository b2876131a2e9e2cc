# neuroflow/config.py - training configuration handed to the code generator
from dataclasses import asdict, dataclass
from typing import Any, Dict

from .errors import ConfigError

OPTIMIZERS = ("Adam", "SGD")
LOSS_FUNCTIONS = ("CrossEntropyLoss", "MSELoss")
# losses whose targets are class indices (accuracy is reported for these)
CLASSIFICATION_LOSSES = ("CrossEntropyLoss",)
# losses that already apply log-softmax internally
SOFTMAX_LOSSES = ("CrossEntropyLoss",)


@dataclass(frozen=True)
class TrainingConfig:
    optimizer: str = "Adam"
    learning_rate: float = 0.001
    loss_function: str = "CrossEntropyLoss"
    epochs: int = 10
    batch_size: int = 64

    def __post_init__(self):
        if self.optimizer not in OPTIMIZERS:
            raise ConfigError(f"Unknown optimizer '{self.optimizer}'; expected one of {OPTIMIZERS}")
        if self.loss_function not in LOSS_FUNCTIONS:
            raise ConfigError(f"Unknown loss function '{self.loss_function}'; expected one of {LOSS_FUNCTIONS}")
        if isinstance(self.learning_rate, bool) or not isinstance(self.learning_rate, (int, float)) \
                or self.learning_rate <= 0:
            raise ConfigError(f"learning_rate must be positive, got {self.learning_rate!r}")
        for name in ("epochs", "batch_size"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigError(f"{name} must be a positive integer, got {value!r}")

    @property
    def is_classification(self) -> bool:
        return self.loss_function in CLASSIFICATION_LOSSES

    @property
    def absorbs_softmax(self) -> bool:
        return self.loss_function in SOFTMAX_LOSSES

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrainingConfig":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


DEFAULT_TRAINING_CONFIG = TrainingConfig()
