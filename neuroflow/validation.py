# neuroflow/validation.py - connection legality checks (advisory; never mutate the graph)
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from .catalog import LayerKind, TensorDim, get_definition, is_output_kind
from .graph import Node, find_node, sorted_nodes
from .shapes import Shape, calculate_shape_progression, shape_info_for


class Reason(str, Enum):
    """Symbolic reason codes; the UI owns the human-readable text."""
    FLATTEN_REQUIRED = "validation.flattenRequired"
    CONV_AFTER_DENSE = "validation.convAfterDense"
    GENERIC_ERROR = "validation.genericError"
    OUTPUT_OCCUPIED = "validation.outputOccupied"
    INPUT_OCCUPIED = "validation.inputOccupied"
    CANNOT_CONNECT_TO_INPUT = "validation.cannotConnectToInput"
    OUTPUT_LAYER_EXISTS = "validation.outputLayerExists"
    INPUT_LAYER_EXISTS = "validation.inputLayerExists"
    UNKNOWN_LAYER = "validation.unknownLayer"


@dataclass(frozen=True)
class ConnectionCheck:
    valid: bool
    reason: Optional[Reason] = None

    def __bool__(self):
        return self.valid


VALID = ConnectionCheck(True)


def dim_of_shape(shape: Shape) -> TensorDim:
    if isinstance(shape, str):
        return TensorDim.ANY
    return TensorDim.D3 if len(shape) > 1 else TensorDim.D1


def check_connection(ordered: Sequence[Node], from_id: str, to_id: str) -> ConnectionCheck:
    """
    Dimensional legality of the edge from_id -> to_id.

    `ordered` must be the hypothetical ordering in which the edge already
    exists, so the upstream output shape is the one the new edge would carry.
    Only newly introduced mismatches are rejected: if the upstream shape is
    already unknown or erroring, the edge is allowed.
    """
    from_node = find_node(ordered, from_id)
    to_node = find_node(ordered, to_id)
    if from_node is None or to_node is None:
        return ConnectionCheck(False, Reason.GENERIC_ERROR)

    definition = get_definition(to_node.kind)
    if definition is None or definition.io is None:
        return VALID  # unknown kinds are allowed
    to_input_dim = definition.io[0]

    info = shape_info_for(calculate_shape_progression(ordered), from_id)
    if info is None or not info.ok:
        return VALID
    from_output_dim = dim_of_shape(info.output_shape)

    if from_output_dim == TensorDim.ANY or to_input_dim == TensorDim.ANY:
        return VALID
    if from_output_dim == to_input_dim:
        return VALID

    if from_output_dim == TensorDim.D3 and to_input_dim == TensorDim.D1:
        return ConnectionCheck(False, Reason.FLATTEN_REQUIRED)
    if from_output_dim == TensorDim.D1 and to_input_dim == TensorDim.D3:
        return ConnectionCheck(False, Reason.CONV_AFTER_DENSE)
    return ConnectionCheck(False, Reason.GENERIC_ERROR)


# ---------- structural checks ----------
def check_add(nodes: Sequence[Node], kind) -> ConnectionCheck:
    """A graph holds exactly one Input and at most one Output-category layer."""
    definition = get_definition(kind)
    if definition is None:
        return ConnectionCheck(False, Reason.UNKNOWN_LAYER)
    if definition.kind == LayerKind.INPUT and any(n.is_input for n in nodes):
        return ConnectionCheck(False, Reason.INPUT_LAYER_EXISTS)
    if is_output_kind(kind) and any(is_output_kind(n.kind) for n in nodes):
        return ConnectionCheck(False, Reason.OUTPUT_LAYER_EXISTS)
    return VALID


def check_structural_connection(nodes: Sequence[Node], from_id: str, to_id: str) -> ConnectionCheck:
    from_node = find_node(nodes, from_id)
    to_node = find_node(nodes, to_id)
    if from_node is None or to_node is None or from_id == to_id:
        return ConnectionCheck(False, Reason.GENERIC_ERROR)
    if from_node.next_id is not None:
        return ConnectionCheck(False, Reason.OUTPUT_OCCUPIED)
    if any(n.next_id == to_id for n in nodes):
        return ConnectionCheck(False, Reason.INPUT_OCCUPIED)
    if to_node.kind == LayerKind.INPUT:
        return ConnectionCheck(False, Reason.CANNOT_CONNECT_TO_INPUT)
    return VALID


def with_edge(nodes: Sequence[Node], from_id: str, to_id: str):
    return [n.with_changes(next_id=to_id) if n.id == from_id else n for n in nodes]


def validate_new_connection(nodes: Sequence[Node], from_id: str, to_id: str) -> ConnectionCheck:
    """Structural checks, then the dimensional check on the ordering with the edge in place."""
    structural = check_structural_connection(nodes, from_id, to_id)
    if not structural.valid:
        return structural
    hypothetical = sorted_nodes(with_edge(nodes, from_id, to_id))
    return check_connection(hypothetical, from_id, to_id)
