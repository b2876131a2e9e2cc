# neuroflow/store.py - graph state snapshots and the pure transition function
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, Optional, Sequence, Tuple

from .catalog import LayerKind, get_definition, is_output_kind
from .graph import Node, Position, find_node, last_in_chain, predecessor_of, sorted_nodes
from .log import get_logger
from .recipes import (ADD_NODE, AUTO_LAYOUT, CONNECT_NODES, INPUT_NODE, LAST_NODE,
                      Recipe, RecipeAction)
from .shapes import calculate_shape_progression
from .validation import ConnectionCheck, Reason, check_add, validate_new_connection

logger = get_logger("neuroflow.store")

LAYOUT_ORIGIN = Position(50, 150)
LAYOUT_STEP_X = 250


# ------------------------------
# 1) State
# ------------------------------
@dataclass(frozen=True)
class GraphState:
    nodes: Tuple[Node, ...]
    selected_id: Optional[str] = None
    layout_requested: bool = False
    retired_ids: FrozenSet[str] = frozenset()  # ids of deleted nodes, never minted again

    @property
    def selected(self) -> Optional[Node]:
        return find_node(self.nodes, self.selected_id)

    @property
    def input_node(self) -> Optional[Node]:
        return next((n for n in self.nodes if n.is_input), None)


def mint_node_id(nodes: Sequence[Node], kind: LayerKind, retired: Iterable[str] = ()) -> str:
    base = LayerKind(kind).value.lower()
    existing = {n.id for n in nodes} | set(retired)
    counter = 1
    while f"{base}{counter}" in existing:
        counter += 1
    return f"{base}{counter}"


def new_node(nodes: Sequence[Node], kind, position: Position = Position(),
             params: Optional[Dict[str, Any]] = None, retired: Iterable[str] = ()) -> Node:
    definition = get_definition(kind)
    merged = definition.default_params()
    merged.update(params or {})
    return Node(id=mint_node_id(nodes, definition.kind, retired), kind=definition.kind,
                name=definition.name, params=merged, position=position)


def initial_state() -> GraphState:
    node = new_node((), LayerKind.INPUT, position=LAYOUT_ORIGIN)
    return GraphState(nodes=(node,), selected_id=node.id)


# ------------------------------
# 2) Actions
# ------------------------------
@dataclass(frozen=True)
class AddNode:
    kind: LayerKind
    position: Optional[Position] = None


@dataclass(frozen=True)
class DeleteNode:
    id: str


@dataclass(frozen=True)
class SelectNode:
    id: Optional[str]


@dataclass(frozen=True)
class MoveNode:
    id: str
    position: Position


@dataclass(frozen=True)
class MoveNodes:
    positions: Dict[str, Position] = field(default_factory=dict)


@dataclass(frozen=True)
class UpdateParams:
    id: str
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Connect:
    from_id: str
    to_id: str


@dataclass(frozen=True)
class Disconnect:
    from_id: str


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class ApplyRecipe:
    actions: Tuple[RecipeAction, ...]


# ------------------------------
# 3) Transitions
# ------------------------------
def _add(state: GraphState, action: AddNode) -> GraphState:
    if not check_add(state.nodes, action.kind).valid:
        return state
    nodes = list(state.nodes)

    if action.position is not None:
        node = new_node(nodes, action.kind, position=action.position, retired=state.retired_ids)
        return replace(state, nodes=tuple(nodes) + (node,), selected_id=node.id)

    tail = last_in_chain(nodes)
    if tail is None:
        position = LAYOUT_ORIGIN
    else:
        position = Position(tail.position.x + LAYOUT_STEP_X, tail.position.y)
    node = new_node(nodes, action.kind, position=position, retired=state.retired_ids)

    # never extend the chain past an output layer, nor steal an existing edge
    if tail is not None and tail.next_id is None and not is_output_kind(tail.kind):
        nodes = [n.with_changes(next_id=node.id) if n.id == tail.id else n for n in nodes]
    return replace(state, nodes=tuple(nodes) + (node,), selected_id=node.id)


def _delete(state: GraphState, node_id: str) -> GraphState:
    target = find_node(state.nodes, node_id)
    if target is None or target.is_input:
        return state
    parent = predecessor_of(state.nodes, node_id)
    nodes = tuple(
        n.with_changes(next_id=None) if n.next_id == node_id else n
        for n in state.nodes if n.id != node_id
    )
    selected_id = state.selected_id
    if selected_id == node_id:
        if parent is not None:
            selected_id = parent.id
        else:
            selected_id = nodes[0].id if nodes else None
    return replace(state, nodes=nodes, selected_id=selected_id,
                   retired_ids=state.retired_ids | {node_id})


def _update(state: GraphState, node_id: str, **changes) -> GraphState:
    if find_node(state.nodes, node_id) is None:
        return state
    nodes = tuple(n.with_changes(**changes) if n.id == node_id else n for n in state.nodes)
    return replace(state, nodes=nodes)


def _resolve_last(nodes: Sequence[Node]) -> Optional[str]:
    tail = last_in_chain(nodes)
    return tail.id if tail else None


def _apply_recipe(actions: Sequence[RecipeAction]) -> GraphState:
    state = initial_state()
    input_id = state.nodes[0].id
    ref_map: Dict[str, str] = {}

    for index, step in enumerate(actions):
        if step.type == ADD_NODE:
            kind = step.payload.get("type")
            if not check_add(state.nodes, kind).valid:
                logger.warning("Recipe step %d: cannot add %s; skipped", index, kind)
                continue
            node = new_node(state.nodes, kind, params=step.payload.get("params"))
            ref_map[f"NEW_NODE_{index}"] = node.id
            state = replace(state, nodes=state.nodes + (node,))

        elif step.type == CONNECT_NODES:
            from_ref = step.payload.get("fromId")
            to_ref = step.payload.get("toId")
            if from_ref == LAST_NODE:
                from_id = _resolve_last(state.nodes)
            elif from_ref == INPUT_NODE:
                from_id = input_id
            else:
                from_id = ref_map.get(from_ref, from_ref)
            to_id = ref_map.get(to_ref, to_ref)
            connected = _connect(state, from_id, to_id)
            if connected is state:
                logger.warning("Recipe step %d: connection %s -> %s rejected", index, from_ref, to_ref)
            state = connected

        elif step.type == AUTO_LAYOUT:
            state = replace(state, layout_requested=True)

        else:
            logger.warning("Recipe step %d: unknown directive %r", index, step.type)

    tail = last_in_chain(state.nodes)
    logger.info("Recipe applied: %d nodes", len(state.nodes))
    return replace(state, selected_id=tail.id if tail else input_id)


def _connect(state: GraphState, from_id: str, to_id: str) -> GraphState:
    if not validate_new_connection(state.nodes, from_id, to_id).valid:
        return state
    return _update(state, from_id, next_id=to_id)


def reduce(state: GraphState, action) -> GraphState:
    """
    Apply one edit and return the resulting snapshot. Illegal edits return
    `state` itself; callers pre-check with `precheck` to learn why.
    """
    if isinstance(action, AddNode):
        return _add(state, action)
    elif isinstance(action, DeleteNode):
        return _delete(state, action.id)
    elif isinstance(action, SelectNode):
        if action.id is not None and find_node(state.nodes, action.id) is None:
            return state
        return replace(state, selected_id=action.id)
    elif isinstance(action, MoveNode):
        return _update(state, action.id, position=action.position)
    elif isinstance(action, MoveNodes):
        nodes = tuple(
            n.with_changes(position=action.positions[n.id]) if n.id in action.positions else n
            for n in state.nodes
        )
        return replace(state, nodes=nodes, layout_requested=False)
    elif isinstance(action, UpdateParams):
        node = find_node(state.nodes, action.id)
        if node is None:
            return state
        return _update(state, action.id, params={**node.params, **action.params})
    elif isinstance(action, Connect):
        return _connect(state, action.from_id, action.to_id)
    elif isinstance(action, Disconnect):
        return _update(state, action.from_id, next_id=None)
    elif isinstance(action, Reset):
        return initial_state()
    elif isinstance(action, ApplyRecipe):
        return _apply_recipe(action.actions)
    raise TypeError(f"Unknown action: {action!r}")


def precheck(state: GraphState, action) -> ConnectionCheck:
    """Why `reduce` would reject `action`, if it would."""
    if isinstance(action, AddNode):
        return check_add(state.nodes, action.kind)
    if isinstance(action, Connect):
        return validate_new_connection(state.nodes, action.from_id, action.to_id)
    if isinstance(action, DeleteNode):
        target = find_node(state.nodes, action.id)
        if target is None or target.is_input:
            return ConnectionCheck(False, Reason.GENERIC_ERROR)
    return ConnectionCheck(True)


def auto_layout(state: GraphState) -> MoveNodes:
    """Left-to-right positions following the chain order."""
    return MoveNodes({
        node.id: Position(LAYOUT_ORIGIN.x + i * LAYOUT_STEP_X, LAYOUT_ORIGIN.y)
        for i, node in enumerate(sorted_nodes(state.nodes))
    })


# ------------------------------
# 4) Session holder
# ------------------------------
@dataclass(frozen=True)
class EditOutcome:
    accepted: bool
    reason: Optional[Reason] = None


class GraphStore:
    """The single mutable reference to the current snapshot (one per UI session)."""

    def __init__(self, state: Optional[GraphState] = None):
        self.state = state or initial_state()

    @property
    def nodes(self) -> Tuple[Node, ...]:
        return self.state.nodes

    def dispatch(self, action) -> EditOutcome:
        check = precheck(self.state, action)
        if not check.valid:
            logger.info("Rejected %s: %s", type(action).__name__, check.reason.value)
            return EditOutcome(False, check.reason)
        self.state = reduce(self.state, action)
        return EditOutcome(True)

    def apply_recipe(self, recipe: Recipe) -> bool:
        """Rebuild the graph from `recipe`; returns whether a relayout was requested."""
        self.dispatch(ApplyRecipe(recipe.actions))
        return self.state.layout_requested

    def relayout(self) -> None:
        self.dispatch(auto_layout(self.state))

    def ordered_nodes(self):
        return sorted_nodes(self.state.nodes)

    def shape_progression(self):
        return calculate_shape_progression(self.ordered_nodes())
