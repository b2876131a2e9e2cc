# tests/test_graph.py
from neuroflow.catalog import LayerKind
from neuroflow.graph import Node, find_start, has_cycle, last_in_chain, predecessor_of, sorted_nodes


def _node(node_id, kind=LayerKind.RELU, next_id=None):
    return Node(id=node_id, kind=kind, name=node_id, next_id=next_id)


def test_order_follows_links_not_storage():
    nodes = [
        _node("input1", LayerKind.INPUT, next_id="a"),
        _node("b"),
        _node("a", next_id="b"),
    ]
    assert [n.id for n in sorted_nodes(nodes)] == ["input1", "a", "b"]


def test_orphans_follow_the_chain_in_stored_order():
    nodes = [
        _node("x"),
        _node("input1", LayerKind.INPUT, next_id="a"),
        _node("y"),
        _node("a"),
    ]
    assert [n.id for n in sorted_nodes(nodes)] == ["input1", "a", "x", "y"]


def test_start_without_input_is_node_with_no_predecessor():
    nodes = [_node("b"), _node("a", next_id="b")]
    assert find_start(nodes).id == "a"
    assert [n.id for n in sorted_nodes(nodes)] == ["a", "b"]


def test_cycle_still_accounts_for_every_node():
    nodes = [
        _node("input1", LayerKind.INPUT, next_id="a"),
        _node("a", next_id="b"),
        _node("b", next_id="a"),
        _node("c"),
    ]
    ordered = sorted_nodes(nodes)
    assert [n.id for n in ordered] == ["input1", "a", "b", "c"]
    assert has_cycle(nodes)


def test_pure_cycle_has_no_start():
    nodes = [_node("a", next_id="b"), _node("b", next_id="a")]
    assert find_start(nodes) is None
    assert sorted(n.id for n in sorted_nodes(nodes)) == ["a", "b"]
    assert has_cycle(nodes)


def test_empty_graph():
    assert sorted_nodes([]) == []
    assert last_in_chain([]) is None
    assert not has_cycle([])


def test_last_in_chain_and_predecessor():
    nodes = [
        _node("input1", LayerKind.INPUT, next_id="a"),
        _node("a", next_id="b"),
        _node("b"),
        _node("orphan"),
    ]
    assert last_in_chain(nodes).id == "b"
    assert predecessor_of(nodes, "b").id == "a"
    assert predecessor_of(nodes, "orphan") is None
    assert not has_cycle(nodes)


def test_with_changes_never_shares_params():
    node = Node(id="linear1", kind=LayerKind.LINEAR, name="Linear", params={"out_features": 10})
    moved = node.with_changes(next_id="relu1")
    assert moved.params == node.params
    assert moved.params is not node.params
    assert node.next_id is None
