# neuroflow/graph.py - node schema and chain ordering
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence

from .catalog import LayerKind
from .log import get_logger

logger = get_logger("neuroflow.graph")


# ------------------------------
# 1) Graph schema
# ------------------------------
@dataclass(frozen=True)
class Position:
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class Node:
    id: str
    kind: LayerKind
    name: str
    params: Dict[str, Any] = field(default_factory=dict)
    position: Position = Position()
    next_id: Optional[str] = None

    @property
    def is_input(self) -> bool:
        return self.kind == LayerKind.INPUT

    def with_changes(self, **changes) -> "Node":
        """Copy-on-write update; params are always copied so snapshots never share a dict."""
        changes.setdefault("params", dict(self.params))
        return replace(self, **changes)


def find_node(nodes: Sequence[Node], node_id: Optional[str]) -> Optional[Node]:
    if node_id is None:
        return None
    return next((n for n in nodes if n.id == node_id), None)


def predecessor_of(nodes: Sequence[Node], node_id: str) -> Optional[Node]:
    return next((n for n in nodes if n.next_id == node_id), None)


def find_start(nodes: Sequence[Node]) -> Optional[Node]:
    """The Input node, or failing that a node nobody points to."""
    start = next((n for n in nodes if n.is_input), None)
    if start is not None:
        return start
    targets = {n.next_id for n in nodes if n.next_id is not None}
    return next((n for n in nodes if n.id not in targets), None)


# ------------------------------
# 2) Chain walk
# ------------------------------
def _walk_chain(nodes: Sequence[Node]):
    """Follow next_id links from the start node. Returns (chain, hit_cycle)."""
    start = find_start(nodes)
    if start is None:
        return [], False
    node_by_id = {n.id: n for n in nodes}
    chain: List[Node] = []
    visited = set()
    current = start
    while current is not None:
        if current.id in visited:
            return chain, True
        visited.add(current.id)
        chain.append(current)
        current = node_by_id.get(current.next_id) if current.next_id else None
    return chain, False


def sorted_nodes(nodes: Sequence[Node]) -> List[Node]:
    """
    Canonical execution order: the chain from the Input node, followed by every
    node the walk did not reach (in stored order). Always a permutation of `nodes`.
    """
    if not nodes:
        return []
    chain, hit_cycle = _walk_chain(nodes)
    if not chain:
        # every node has a predecessor, so there is nowhere to start
        logger.warning("No start node found among %d nodes; keeping stored order", len(nodes))
        return list(nodes)
    if hit_cycle:
        logger.warning("Cycle detected in graph after %d nodes: %s",
                       len(chain), [n.id for n in chain])

    visited = {n.id for n in chain}
    return chain + [n for n in nodes if n.id not in visited]


def has_cycle(nodes: Sequence[Node]) -> bool:
    """True when any next_id walk revisits a node."""
    node_by_id = {n.id: n for n in nodes}
    for start in nodes:
        seen = set()
        current = start
        while current is not None:
            if current.id in seen:
                return True
            seen.add(current.id)
            current = node_by_id.get(current.next_id) if current.next_id else None
    return False


def last_in_chain(nodes: Sequence[Node]) -> Optional[Node]:
    """End of the chain walked from the start node (stops before a revisit)."""
    chain, _ = _walk_chain(nodes)
    if chain:
        return chain[-1]
    return nodes[0] if nodes else None
