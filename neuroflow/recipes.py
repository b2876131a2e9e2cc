# neuroflow/recipes.py - pre-scripted architectures, replayed by the graph store
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .catalog import LayerKind

ADD_NODE = "ADD_NODE"
CONNECT_NODES = "CONNECT_NODES"
AUTO_LAYOUT = "AUTO_LAYOUT"

INPUT_NODE = "INPUT_NODE"
LAST_NODE = "LAST_NODE"
NEW_NODE_PREFIX = "NEW_NODE_"


@dataclass(frozen=True)
class RecipeAction:
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Recipe:
    id: str
    title: str
    description: str
    actions: Tuple[RecipeAction, ...]


def add(kind: LayerKind, **params) -> RecipeAction:
    return RecipeAction(ADD_NODE, {"type": kind, "params": params})


def connect(from_ref: str, to_ref: str) -> RecipeAction:
    return RecipeAction(CONNECT_NODES, {"fromId": from_ref, "toId": to_ref})


def chain(*layers: Tuple[LayerKind, Dict[str, Any]], layout: bool = True) -> Tuple[RecipeAction, ...]:
    """
    Script for a straight chain: each layer is added and then connected to the
    current chain end (the first one to the Input node).
    """
    actions: List[RecipeAction] = []
    for kind, params in layers:
        index = len(actions)
        actions.append(add(kind, **params))
        source = INPUT_NODE if index == 0 else LAST_NODE
        actions.append(connect(source, f"{NEW_NODE_PREFIX}{index}"))
    if layout:
        actions.append(RecipeAction(AUTO_LAYOUT))
    return tuple(actions)


_CONV_3x3_PAD1 = {"kernel_size": 3, "stride": 1, "padding": 1}
_POOL_2x2 = {"kernel_size": 2, "stride": 2}

# ---------- Recipes ----------
RECIPES: List[Recipe] = [
    Recipe(
        "simple_cnn", "Simple CNN",
        "A minimal convolutional classifier for 28x28 single-channel images.",
        chain(
            (LayerKind.CONV2D, dict(out_channels=16, **_CONV_3x3_PAD1)),
            (LayerKind.RELU, {}),
            (LayerKind.MAXPOOL2D, _POOL_2x2),
            (LayerKind.FLATTEN, {}),
            (LayerKind.LINEAR, {"out_features": 10}),
            (LayerKind.SOFTMAX, {}),
        ),
    ),
    Recipe(
        "vgg_style_cnn", "VGG-style CNN",
        "Two stacked 3x3 convolutions before pooling, then a two-layer classifier head.",
        chain(
            (LayerKind.CONV2D, dict(out_channels=32, **_CONV_3x3_PAD1)),
            (LayerKind.RELU, {}),
            (LayerKind.CONV2D, dict(out_channels=32, **_CONV_3x3_PAD1)),
            (LayerKind.RELU, {}),
            (LayerKind.MAXPOOL2D, _POOL_2x2),
            (LayerKind.FLATTEN, {}),
            (LayerKind.LINEAR, {"out_features": 128}),
            (LayerKind.RELU, {}),
            (LayerKind.LINEAR, {"out_features": 10}),
            (LayerKind.SOFTMAX, {}),
        ),
    ),
    Recipe(
        "mlp", "Multilayer Perceptron",
        "Flattened input through a hidden dense layer with dropout.",
        chain(
            (LayerKind.FLATTEN, {}),
            (LayerKind.LINEAR, {"out_features": 128}),
            (LayerKind.RELU, {}),
            (LayerKind.DROPOUT, {"p": 0.5}),
            (LayerKind.LINEAR, {"out_features": 10}),
            (LayerKind.SOFTMAX, {}),
        ),
    ),
    Recipe(
        "regression_mlp", "Regression MLP",
        "Dense network producing a single continuous value.",
        chain(
            (LayerKind.FLATTEN, {}),
            (LayerKind.LINEAR, {"out_features": 64}),
            (LayerKind.RELU, {}),
            (LayerKind.LINEAR, {"out_features": 32}),
            (LayerKind.RELU, {}),
            (LayerKind.LINEAR, {"out_features": 1}),
            (LayerKind.IDENTITY, {}),
        ),
    ),
    Recipe(
        "simple_rnn", "Simple RNN",
        "A two-layer LSTM over the flattened input followed by a classifier.",
        chain(
            (LayerKind.FLATTEN, {}),
            (LayerKind.LSTM, {"hidden_size": 128, "num_layers": 2, "bidirectional": False}),
            (LayerKind.LINEAR, {"out_features": 10}),
            (LayerKind.SOFTMAX, {}),
        ),
    ),
    Recipe(
        "autoencoder", "Autoencoder",
        "Dense encoder down to a 64-wide bottleneck and a decoder back to 28*28.",
        chain(
            # encoder
            (LayerKind.FLATTEN, {}),
            (LayerKind.LINEAR, {"out_features": 128}),
            (LayerKind.RELU, {}),
            (LayerKind.LINEAR, {"out_features": 64}),
            # decoder
            (LayerKind.RELU, {}),
            (LayerKind.LINEAR, {"out_features": 128}),
            (LayerKind.RELU, {}),
            (LayerKind.LINEAR, {"out_features": 784}),
            (LayerKind.SIGMOID, {}),
        ),
    ),
]

RECIPE_MAP: Dict[str, Recipe] = {r.id: r for r in RECIPES}


def get_recipe(recipe_id: str) -> Optional[Recipe]:
    return RECIPE_MAP.get(recipe_id)
