# neuroflow/shapes.py - per-node tensor shape inference over an ordered chain
from dataclasses import dataclass
from enum import Enum
from functools import reduce
from operator import mul
from typing import List, Optional, Sequence, Tuple, Union

from .catalog import LayerKind
from .errors import DimensionError, ShapeError, ShapeParseError
from .graph import Node
from .log import get_logger

logger = get_logger("neuroflow.shapes")

START = "Start"
NOT_AVAILABLE = "N/A"
UPSTREAM_ERROR_MESSAGE = "Input shape is invalid due to a previous error."

Shape = Union[Tuple[int, ...], str]


class ShapeErrorKind(Enum):
    NONE = "none"
    PARSE = "parse"          # malformed Input shape text
    DIMENSION = "dimension"  # wrong rank / invalid extents at this node
    UPSTREAM = "upstream"    # an earlier node failed; nothing computed here


@dataclass(frozen=True)
class ShapeInfo:
    node_id: str
    input_shape: Shape = NOT_AVAILABLE
    output_shape: Shape = NOT_AVAILABLE
    error: Optional[str] = None
    error_kind: ShapeErrorKind = ShapeErrorKind.NONE

    @property
    def ok(self) -> bool:
        return self.error_kind is ShapeErrorKind.NONE

    @property
    def is_root_cause(self) -> bool:
        return self.error_kind in (ShapeErrorKind.PARSE, ShapeErrorKind.DIMENSION)


def parse_shape(shape_str) -> Tuple[int, ...]:
    """Parse a shape string like '(1, 28, 28)' into a tuple of ints."""
    if not isinstance(shape_str, str) or not shape_str.strip():
        raise ShapeParseError(
            f'Invalid shape format: "{shape_str}". Expected format like (C, H, W) or (features,).'
        )
    sanitized = "".join(shape_str.split())
    if not (sanitized.startswith("(") and sanitized.endswith(")")):
        raise ShapeParseError(
            f'Invalid shape format: "{shape_str}". Shape must be enclosed in parentheses, '
            f"e.g. (C, H, W) or (features,)."
        )
    content = sanitized[1:-1]
    if content == "":
        return ()

    items = content.split(",")
    if items[-1] == "":
        items = items[:-1]  # single-element tuple written as "(784,)"
    dims = []
    for item in items:
        try:
            value = int(item)
        except ValueError:
            raise ShapeParseError(
                f'Invalid shape format: "{shape_str}". "{item}" is not an integer.'
            ) from None
        if value <= 0:
            raise ShapeParseError(
                f'Invalid shape format: "{shape_str}". Dimensions must be positive, got {value}.'
            )
        dims.append(value)
    return tuple(dims)


def format_shape(shape: Shape) -> str:
    if isinstance(shape, str):
        return shape
    return f"({', '.join(str(d) for d in shape)}{',' if len(shape) == 1 else ''})"


# ---------- parameter access (validated lazily, here) ----------
def _int_param(node: Node, name: str, minimum: int = 0) -> int:
    raw = node.params.get(name)
    if isinstance(raw, bool):
        raise DimensionError(f"Parameter '{name}' must be an integer, got {raw!r}.")
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise DimensionError(f"Parameter '{name}' must be an integer, got {raw!r}.") from None
    if isinstance(raw, float) and raw != value:
        raise DimensionError(f"Parameter '{name}' must be an integer, got {raw!r}.")
    if value < minimum:
        raise DimensionError(f"Parameter '{name}' must be at least {minimum}, got {value}.")
    return value


def _float_param(node: Node, name: str, low: float, high: float) -> float:
    raw = node.params.get(name)
    if isinstance(raw, bool):
        raise DimensionError(f"Parameter '{name}' must be a number, got {raw!r}.")
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise DimensionError(f"Parameter '{name}' must be a number, got {raw!r}.") from None
    if not low <= value <= high:
        raise DimensionError(f"Parameter '{name}' must be between {low} and {high}, got {value}.")
    return value


def _bool_param(node: Node, name: str) -> bool:
    raw = node.params.get(name, False)
    if isinstance(raw, str):
        return raw.strip().lower() in ("true", "1", "yes")
    return bool(raw)


def _require_rank(shape: Tuple[int, ...], rank: int, hint: str = "") -> None:
    if len(shape) != rank:
        raise DimensionError(
            f"Requires a {rank}D input{hint}, but got {len(shape)}D."
        )


def _spatial(dim: int, kernel: int, stride: int, padding: int = 0) -> int:
    out = (dim + 2 * padding - kernel) // stride + 1
    if out < 1:
        raise DimensionError(
            f"Kernel size {kernel} is too large for spatial size {dim} "
            f"(padding {padding}, stride {stride}); output would be {out}."
        )
    return out


# ---------- per-kind transfer rule ----------
def estimate_output_shape(node: Node, input_shape: Tuple[int, ...]) -> Tuple[int, ...]:
    """Output shape of `node` for the given input shape. Raises ShapeError on mismatch."""
    kind = node.kind

    if kind == LayerKind.CONV2D:
        _require_rank(input_shape, 3, " (C, H, W)")
        _, h_in, w_in = input_shape
        out_channels = _int_param(node, "out_channels", 1)
        kernel_size = _int_param(node, "kernel_size", 1)
        stride = _int_param(node, "stride", 1)
        padding = _int_param(node, "padding", 0)
        return (out_channels,
                _spatial(h_in, kernel_size, stride, padding),
                _spatial(w_in, kernel_size, stride, padding))

    elif kind == LayerKind.MAXPOOL2D:
        _require_rank(input_shape, 3, " (C, H, W)")
        channels, h_in, w_in = input_shape
        kernel_size = _int_param(node, "kernel_size", 1)
        stride = _int_param(node, "stride", 1)
        return (channels,
                _spatial(h_in, kernel_size, stride),
                _spatial(w_in, kernel_size, stride))

    elif kind == LayerKind.BATCHNORM2D:
        _require_rank(input_shape, 3, " (C, H, W)")
        return tuple(input_shape)

    elif kind == LayerKind.FLATTEN:
        if len(input_shape) == 1:
            return tuple(input_shape)  # already flat
        return (reduce(mul, input_shape, 1),)

    elif kind == LayerKind.LINEAR:
        if len(input_shape) != 1:
            raise DimensionError(
                f"Requires a 1D input (features), but got {len(input_shape)}D. Add a Flatten layer."
            )
        return (_int_param(node, "out_features", 1),)

    elif kind in (LayerKind.LSTM, LayerKind.GRU):
        if len(input_shape) != 1:
            raise DimensionError(
                f"Requires a 1D input for this simplified implementation, but got {len(input_shape)}D."
            )
        hidden_size = _int_param(node, "hidden_size", 1)
        _int_param(node, "num_layers", 1)
        return (hidden_size * 2 if _bool_param(node, "bidirectional") else hidden_size,)

    elif kind == LayerKind.DROPOUT:
        _float_param(node, "p", 0.0, 1.0)
        return tuple(input_shape)

    elif kind in (LayerKind.RELU, LayerKind.SIGMOID, LayerKind.TANH,
                  LayerKind.SOFTMAX, LayerKind.IDENTITY):
        return tuple(input_shape)

    # unknown kinds pass the shape through
    return tuple(input_shape)


def calculate_shape_progression(ordered: Sequence[Node]) -> List[ShapeInfo]:
    """
    Input/output shape and first error for each node of a pre-sorted chain.

    Returns an empty list when the chain is empty or does not start with an
    Input node. Never raises: a failing node records its error, and every node
    after it is marked as carrying an upstream error without being computed.
    """
    if not ordered or ordered[0].kind != LayerKind.INPUT:
        return []

    progression: List[ShapeInfo] = []
    current: Optional[Tuple[int, ...]] = None
    failed = False

    for node in ordered:
        if failed:
            progression.append(ShapeInfo(node.id, error=UPSTREAM_ERROR_MESSAGE,
                                         error_kind=ShapeErrorKind.UPSTREAM))
            continue

        input_shape: Shape = START if node.kind == LayerKind.INPUT else current
        try:
            if node.kind == LayerKind.INPUT:
                current = parse_shape(node.params.get("shape"))
            else:
                current = estimate_output_shape(node, current)
        except ShapeError as e:
            kind = ShapeErrorKind.PARSE if isinstance(e, ShapeParseError) else ShapeErrorKind.DIMENSION
            logger.debug("Shape error at node %s (%s): %s", node.id, node.kind, e)
            progression.append(ShapeInfo(
                node.id,
                input_shape=input_shape if input_shape is not None else NOT_AVAILABLE,
                error=str(e), error_kind=kind,
            ))
            failed = True
            current = None
            continue

        progression.append(ShapeInfo(node.id, input_shape=input_shape, output_shape=tuple(current)))

    return progression


def shape_info_for(progression: Sequence[ShapeInfo], node_id: str) -> Optional[ShapeInfo]:
    return next((p for p in progression if p.node_id == node_id), None)


def output_shape_of(progression: Sequence[ShapeInfo], node_id: str) -> Optional[Tuple[int, ...]]:
    info = shape_info_for(progression, node_id)
    if info is None or not info.ok or isinstance(info.output_shape, str):
        return None
    return info.output_shape
