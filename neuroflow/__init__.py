"""NeuroFlow - chain-of-layers model designer: shape inference, connection checks, PyTorch export."""
from .catalog import LAYER_DEFINITIONS, LAYER_MAP, LayerKind, TensorDim, default_params, get_definition
from .codegen import generate_pytorch_code
from .config import DEFAULT_TRAINING_CONFIG, TrainingConfig
from .errors import (CodeGenerationError, ConfigError, DimensionError, NeuroFlowError,
                     ShapeError, ShapeParseError)
from .graph import Node, Position, sorted_nodes
from .recipes import RECIPES, Recipe, RecipeAction, get_recipe
from .shapes import ShapeErrorKind, ShapeInfo, calculate_shape_progression, parse_shape
from .store import (AddNode, ApplyRecipe, Connect, DeleteNode, Disconnect, GraphState, GraphStore,
                    MoveNode, MoveNodes, Reset, SelectNode, UpdateParams, auto_layout, initial_state,
                    reduce)
from .validation import ConnectionCheck, Reason, check_connection, validate_new_connection

__version__ = "0.1.0"
