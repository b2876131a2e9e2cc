# neuroflow/catalog.py - static layer registry (kind → category, params, I/O rank class)
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class LayerKind(str, Enum):
    # Core
    INPUT = "INPUT"
    LINEAR = "LINEAR"
    FLATTEN = "FLATTEN"
    # CNN
    CONV2D = "CONV2D"
    MAXPOOL2D = "MAXPOOL2D"
    BATCHNORM2D = "BATCHNORM2D"
    # RNN
    LSTM = "LSTM"
    GRU = "GRU"
    # Activation
    RELU = "RELU"
    SIGMOID = "SIGMOID"
    TANH = "TANH"
    # Regularization
    DROPOUT = "DROPOUT"
    # Output
    SOFTMAX = "SOFTMAX"
    IDENTITY = "IDENTITY"


class TensorDim(Enum):
    D1 = "D1"    # vector, e.g. (features)
    D3 = "D3"    # image-like, e.g. (channels, height, width)
    ANY = "ANY"


# ---------- Categories ----------
CATEGORIES = {
    "Core": "Core",
    "CNN": "Convolution",
    "RNN": "Recurrent",
    "Activation": "Activation",
    "Regularization": "Regularization",
    "Output": "Output",
}

OUTPUT_CATEGORY = "Output"


@dataclass(frozen=True)
class ParameterSpec:
    name: str
    label: str
    type: str                     # "string" | "number" | "boolean"
    default: Any
    description: str = ""


@dataclass(frozen=True)
class LayerDefinition:
    kind: LayerKind
    name: str
    category: str
    description: str
    params: Tuple[ParameterSpec, ...] = field(default_factory=tuple)
    io: Optional[Tuple[TensorDim, TensorDim]] = None   # (input class, output class)

    def default_params(self) -> Dict[str, Any]:
        return {p.name: p.default for p in self.params}

    @property
    def is_output(self) -> bool:
        return self.category == OUTPUT_CATEGORY


_RNN_PARAMS = (
    ParameterSpec("hidden_size", "Hidden Size", "number", 128,
                  "The number of features in the hidden state."),
    ParameterSpec("num_layers", "Num Layers", "number", 1,
                  "Number of recurrent layers to stack."),
    ParameterSpec("bidirectional", "Bidirectional", "boolean", False,
                  "If True, the sequence is processed in both directions."),
)

# ---------- Layer definitions ----------
LAYER_DEFINITIONS: List[LayerDefinition] = [
    LayerDefinition(
        LayerKind.INPUT, "Input", "Core",
        "Defines the shape of the input data.",
        (ParameterSpec("shape", "Shape", "string", "(1, 28, 28)",
                       "Initial data shape, e.g. (3, 224, 224) for a 3-channel 224x224 image."),),
    ),
    LayerDefinition(
        LayerKind.LINEAR, "Linear", "Core",
        "A fully connected layer.",
        (ParameterSpec("out_features", "Output Features", "number", 10,
                       "The number of neurons; at the end of a classifier, the number of classes."),),
        io=(TensorDim.D1, TensorDim.D1),
    ),
    LayerDefinition(
        LayerKind.FLATTEN, "Flatten", "Core",
        "Flattens multi-dimensional data into a single vector.",
        io=(TensorDim.ANY, TensorDim.D1),
    ),
    LayerDefinition(
        LayerKind.CONV2D, "Conv2D", "CNN",
        "2D convolution layer for feature extraction from images.",
        (
            ParameterSpec("out_channels", "Output Channels", "number", 16,
                          "The number of filters to learn."),
            ParameterSpec("kernel_size", "Kernel Size", "number", 3,
                          "The size of the scanning filter (3 for a 3x3 filter)."),
            ParameterSpec("stride", "Stride", "number", 1,
                          "The step size the filter moves across the image."),
            ParameterSpec("padding", "Padding", "number", 1,
                          "Border of zeros added around the image."),
        ),
        io=(TensorDim.D3, TensorDim.D3),
    ),
    LayerDefinition(
        LayerKind.MAXPOOL2D, "MaxPool2D", "CNN",
        "Downsamples the feature map by taking the max value.",
        (
            ParameterSpec("kernel_size", "Kernel Size", "number", 2,
                          "The size of the window to take a max over."),
            ParameterSpec("stride", "Stride", "number", 2,
                          "The step size of the window. Often same as kernel_size."),
        ),
        io=(TensorDim.D3, TensorDim.D3),
    ),
    LayerDefinition(
        LayerKind.BATCHNORM2D, "BatchNorm2D", "CNN",
        "Normalizes activations to stabilize and speed up training.",
        io=(TensorDim.D3, TensorDim.D3),
    ),
    LayerDefinition(
        LayerKind.LSTM, "LSTM", "RNN",
        "Long Short-Term Memory layer, for sequential data.",
        _RNN_PARAMS,
        io=(TensorDim.D1, TensorDim.D1),  # simplified: no separate sequence axis
    ),
    LayerDefinition(
        LayerKind.GRU, "GRU", "RNN",
        "Gated Recurrent Unit, a simpler version of LSTM.",
        _RNN_PARAMS,
        io=(TensorDim.D1, TensorDim.D1),
    ),
    LayerDefinition(LayerKind.RELU, "ReLU", "Activation",
                    "Rectified Linear Unit activation function.",
                    io=(TensorDim.ANY, TensorDim.ANY)),
    LayerDefinition(LayerKind.SIGMOID, "Sigmoid", "Activation",
                    "Squashes values to a range between 0 and 1.",
                    io=(TensorDim.ANY, TensorDim.ANY)),
    LayerDefinition(LayerKind.TANH, "Tanh", "Activation",
                    "Squashes values to a range between -1 and 1.",
                    io=(TensorDim.ANY, TensorDim.ANY)),
    LayerDefinition(
        LayerKind.DROPOUT, "Dropout", "Regularization",
        "Randomly zeroes elements during training to prevent overfitting.",
        (ParameterSpec("p", "Probability (p)", "number", 0.5,
                       "The probability of an element to be zeroed. Range: 0 to 1."),),
        io=(TensorDim.ANY, TensorDim.ANY),
    ),
    LayerDefinition(LayerKind.SOFTMAX, "Softmax", "Output",
                    "Converts logits into probabilities for multi-class classification.",
                    io=(TensorDim.D1, TensorDim.D1)),
    LayerDefinition(LayerKind.IDENTITY, "Identity", "Output",
                    "Returns its input unchanged; raw logits or regression outputs.",
                    io=(TensorDim.ANY, TensorDim.ANY)),
]

LAYER_MAP: Dict[LayerKind, LayerDefinition] = {d.kind: d for d in LAYER_DEFINITIONS}


def get_definition(kind) -> Optional[LayerDefinition]:
    """Look up a layer definition; accepts a LayerKind or its string value."""
    try:
        return LAYER_MAP.get(LayerKind(kind))
    except ValueError:
        return None


def default_params(kind) -> Dict[str, Any]:
    definition = get_definition(kind)
    return definition.default_params() if definition else {}


def is_output_kind(kind) -> bool:
    definition = get_definition(kind)
    return bool(definition and definition.is_output)


def layers_in_category(category: str) -> List[LayerDefinition]:
    return [d for d in LAYER_DEFINITIONS if d.category == category]
