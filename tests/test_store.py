# tests/test_store.py
import pytest

from neuroflow.catalog import LayerKind
from neuroflow.graph import Position
from neuroflow.recipes import INPUT_NODE, LAST_NODE, RECIPES, RecipeAction, add, connect, get_recipe
from neuroflow.store import (LAYOUT_ORIGIN, LAYOUT_STEP_X, AddNode, ApplyRecipe, Connect, DeleteNode,
                             Disconnect, GraphStore, MoveNode, Reset, SelectNode, UpdateParams,
                             auto_layout, initial_state, reduce)
from neuroflow.validation import Reason


def _store(*kinds):
    store = GraphStore()
    for kind in kinds:
        assert store.dispatch(AddNode(kind)).accepted
    return store


def _by_id(state):
    return {n.id: n for n in state.nodes}


def test_initial_state():
    state = initial_state()
    assert len(state.nodes) == 1
    assert state.nodes[0].id == "input1"
    assert state.nodes[0].kind == LayerKind.INPUT
    assert state.nodes[0].params == {"shape": "(1, 28, 28)"}
    assert state.selected_id == "input1"
    assert state.input_node is state.nodes[0]


def test_add_appends_to_chain_end():
    store = _store(LayerKind.FLATTEN, LayerKind.LINEAR)
    nodes = _by_id(store.state)
    assert nodes["input1"].next_id == "flatten1"
    assert nodes["flatten1"].next_id == "linear1"
    assert store.state.selected_id == "linear1"
    assert nodes["linear1"].position == Position(LAYOUT_ORIGIN.x + 2 * LAYOUT_STEP_X, LAYOUT_ORIGIN.y)
    assert nodes["linear1"].params == {"out_features": 10}


def test_ids_are_unique_per_kind():
    store = _store(LayerKind.RELU, LayerKind.RELU, LayerKind.RELU)
    assert [n.id for n in store.nodes] == ["input1", "relu1", "relu2", "relu3"]


def test_add_at_position_is_unlinked():
    store = GraphStore()
    store.dispatch(AddNode(LayerKind.RELU, position=Position(400, 400)))
    nodes = _by_id(store.state)
    assert nodes["input1"].next_id is None
    assert nodes["relu1"].position == Position(400, 400)


def test_nothing_is_appended_after_an_output_layer():
    store = _store(LayerKind.FLATTEN, LayerKind.SOFTMAX, LayerKind.RELU)
    nodes = _by_id(store.state)
    assert nodes["softmax1"].next_id is None
    assert [n.id for n in store.ordered_nodes()] == ["input1", "flatten1", "softmax1", "relu1"]


def test_second_output_layer_is_rejected():
    store = _store(LayerKind.FLATTEN, LayerKind.SOFTMAX)
    before = store.state
    outcome = store.dispatch(AddNode(LayerKind.IDENTITY))
    assert not outcome.accepted
    assert outcome.reason is Reason.OUTPUT_LAYER_EXISTS
    assert store.state is before
    assert reduce(before, AddNode(LayerKind.IDENTITY)) is before


def test_input_cannot_be_deleted():
    store = _store(LayerKind.RELU)
    before = store.state
    outcome = store.dispatch(DeleteNode("input1"))
    assert not outcome.accepted
    assert store.state is before
    assert store.state.selected_id == "relu1"
    assert reduce(before, DeleteNode("nope")) is before


def test_delete_clears_dangling_links():
    store = _store(LayerKind.FLATTEN, LayerKind.LINEAR, LayerKind.RELU)
    store.dispatch(DeleteNode("linear1"))
    nodes = _by_id(store.state)
    assert "linear1" not in nodes
    assert nodes["flatten1"].next_id is None
    assert all(n.next_id in nodes for n in store.nodes if n.next_id)
    # the selection was elsewhere, so it stays put
    assert store.state.selected_id == "relu1"


def test_deleting_the_selection_moves_it_to_the_predecessor():
    store = _store(LayerKind.FLATTEN, LayerKind.LINEAR)
    store.dispatch(DeleteNode("linear1"))
    assert store.state.selected_id == "flatten1"


def test_deleting_a_selected_orphan_falls_back_to_first_node():
    store = GraphStore()
    store.dispatch(AddNode(LayerKind.RELU, position=Position(0, 0)))
    store.dispatch(DeleteNode("relu1"))
    assert store.state.selected_id == "input1"


def test_connect_and_disconnect():
    store = GraphStore()
    store.dispatch(AddNode(LayerKind.FLATTEN, position=Position(300, 150)))
    assert store.dispatch(Connect("input1", "flatten1")).accepted
    assert _by_id(store.state)["input1"].next_id == "flatten1"

    outcome = store.dispatch(Connect("flatten1", "input1"))
    assert outcome.reason is Reason.CANNOT_CONNECT_TO_INPUT

    store.dispatch(Disconnect("input1"))
    assert _by_id(store.state)["input1"].next_id is None


def test_connect_rejects_dimension_mismatch():
    store = _store(LayerKind.CONV2D)
    store.dispatch(AddNode(LayerKind.LINEAR, position=Position(600, 150)))
    outcome = store.dispatch(Connect("conv2d1", "linear1"))
    assert outcome.reason is Reason.FLATTEN_REQUIRED
    assert _by_id(store.state)["conv2d1"].next_id is None


def test_update_params_merges():
    store = _store(LayerKind.CONV2D)
    store.dispatch(UpdateParams("conv2d1", {"out_channels": 32}))
    params = _by_id(store.state)["conv2d1"].params
    assert params == {"out_channels": 32, "kernel_size": 3, "stride": 1, "padding": 1}
    assert store.shape_progression()[-1].output_shape == (32, 28, 28)


def test_snapshots_are_not_mutated():
    store = _store(LayerKind.CONV2D)
    before = store.state
    store.dispatch(UpdateParams("conv2d1", {"out_channels": 64}))
    store.dispatch(MoveNode("conv2d1", Position(1, 2)))
    old = _by_id(before)["conv2d1"]
    assert old.params["out_channels"] == 16
    assert old.position != Position(1, 2)


def test_select_node():
    store = _store(LayerKind.RELU)
    store.dispatch(SelectNode("input1"))
    assert store.state.selected.id == "input1"
    store.dispatch(SelectNode("ghost"))
    assert store.state.selected_id == "input1"
    store.dispatch(SelectNode(None))
    assert store.state.selected is None


def test_reset():
    store = _store(LayerKind.FLATTEN, LayerKind.LINEAR)
    store.dispatch(Reset())
    assert store.state == initial_state()


def test_unknown_action_is_a_type_error():
    with pytest.raises(TypeError):
        reduce(initial_state(), "ADD_NODE")


def test_simple_cnn_recipe():
    store = _store(LayerKind.RELU, LayerKind.RELU)
    assert store.apply_recipe(get_recipe("simple_cnn"))

    kinds = [n.kind for n in store.ordered_nodes()]
    assert kinds == [LayerKind.INPUT, LayerKind.CONV2D, LayerKind.RELU, LayerKind.MAXPOOL2D,
                     LayerKind.FLATTEN, LayerKind.LINEAR, LayerKind.SOFTMAX]
    assert "relu2" not in _by_id(store.state)
    assert store.state.selected_id == "softmax1"
    assert store.state.layout_requested
    assert store.shape_progression()[-1].output_shape == (10,)


def test_relayout_places_chain_left_to_right():
    store = GraphStore()
    store.apply_recipe(get_recipe("mlp"))
    store.relayout()
    assert not store.state.layout_requested
    for i, node in enumerate(store.ordered_nodes()):
        assert node.position == Position(LAYOUT_ORIGIN.x + i * LAYOUT_STEP_X, LAYOUT_ORIGIN.y)


def test_auto_layout_covers_every_node():
    state = initial_state()
    state = reduce(state, AddNode(LayerKind.RELU, position=Position(999, 999)))
    move = auto_layout(state)
    assert set(move.positions) == {"input1", "relu1"}
    assert move.positions["relu1"] == Position(LAYOUT_ORIGIN.x + LAYOUT_STEP_X, LAYOUT_ORIGIN.y)


@pytest.mark.parametrize("recipe", RECIPES, ids=lambda r: r.id)
def test_every_recipe_builds_one_valid_chain(recipe):
    state = reduce(initial_state(), ApplyRecipe(recipe.actions))
    adds = sum(1 for a in recipe.actions if a.type == "ADD_NODE")
    assert len(state.nodes) == adds + 1
    # one connected chain: every node but the last has a successor
    assert sum(1 for n in state.nodes if n.next_id) == len(state.nodes) - 1

    store = GraphStore(state)
    progression = store.shape_progression()
    assert len(progression) == len(state.nodes)
    assert all(p.ok for p in progression)


def test_rejected_recipe_steps_are_skipped():
    actions = (
        add(LayerKind.CONV2D),
        connect(INPUT_NODE, "NEW_NODE_0"),
        add(LayerKind.LINEAR),
        connect(LAST_NODE, "NEW_NODE_2"),
        add(LayerKind.SOFTMAX),
        add(LayerKind.IDENTITY),
        RecipeAction("SHUFFLE"),
    )
    state = reduce(initial_state(), ApplyRecipe(actions))
    nodes = _by_id(state)
    assert set(nodes) == {"input1", "conv2d1", "linear1", "softmax1"}
    assert nodes["input1"].next_id == "conv2d1"
    # Linear cannot take the conv output directly
    assert nodes["conv2d1"].next_id is None
    assert state.selected_id == "conv2d1"
    assert not state.layout_requested


def test_second_input_is_rejected():
    store = _store(LayerKind.FLATTEN)
    before = store.state
    outcome = store.dispatch(AddNode(LayerKind.INPUT))
    assert not outcome.accepted
    assert outcome.reason is Reason.INPUT_LAYER_EXISTS
    assert store.state is before
    assert reduce(before, AddNode(LayerKind.INPUT)) is before
    assert [n.id for n in store.nodes if n.is_input] == ["input1"]


def test_recipe_cannot_add_a_second_input():
    actions = (
        add(LayerKind.INPUT, shape="(3, 32, 32)"),
        connect(LAST_NODE, "NEW_NODE_0"),
        add(LayerKind.FLATTEN),
        connect(LAST_NODE, "NEW_NODE_2"),
    )
    state = reduce(initial_state(), ApplyRecipe(actions))
    assert [n.id for n in state.nodes if n.is_input] == ["input1"]
    assert state.input_node.params["shape"] == "(1, 28, 28)"
    assert _by_id(state)["input1"].next_id == "flatten1"
    assert all(n.next_id != "input1" for n in state.nodes)


def test_deleted_ids_are_not_reused():
    store = _store(LayerKind.RELU, LayerKind.RELU)
    store.dispatch(DeleteNode("relu1"))
    store.dispatch(AddNode(LayerKind.RELU))
    store.dispatch(DeleteNode("relu2"))
    store.dispatch(AddNode(LayerKind.RELU))
    assert [n.id for n in store.nodes] == ["input1", "relu3", "relu4"]
