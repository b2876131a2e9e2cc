# tests/test_validation.py
from neuroflow.catalog import LayerKind, TensorDim
from neuroflow.store import new_node
from neuroflow.validation import (Reason, check_add, check_connection, dim_of_shape,
                                  validate_new_connection, with_edge)


def _append_orphan(nodes, kind, **params):
    node = new_node(nodes, kind, params=params)
    return nodes + [node], node


def test_dense_after_image_requires_flatten(build_chain):
    nodes = build_chain((LayerKind.CONV2D, {}))
    nodes, linear = _append_orphan(nodes, LayerKind.LINEAR)

    check = validate_new_connection(nodes, nodes[1].id, linear.id)
    assert not check.valid
    assert check.reason is Reason.FLATTEN_REQUIRED


def test_dense_after_flatten_is_accepted(build_chain):
    nodes = build_chain((LayerKind.CONV2D, {}), (LayerKind.FLATTEN, {}))
    nodes, linear = _append_orphan(nodes, LayerKind.LINEAR)
    assert validate_new_connection(nodes, nodes[2].id, linear.id)


def test_conv_after_dense_is_rejected(build_chain):
    nodes = build_chain((LayerKind.LINEAR, {}), shape="(784,)")
    nodes, conv = _append_orphan(nodes, LayerKind.CONV2D)

    check = validate_new_connection(nodes, nodes[1].id, conv.id)
    assert check.reason is Reason.CONV_AFTER_DENSE


def test_input_node_output_is_checked_too(build_chain):
    nodes = build_chain()
    nodes, softmax = _append_orphan(nodes, LayerKind.SOFTMAX)
    assert validate_new_connection(nodes, nodes[0].id, softmax.id).reason is Reason.FLATTEN_REQUIRED


def test_rank_agnostic_layers_accept_anything(build_chain):
    nodes = build_chain((LayerKind.CONV2D, {}))
    nodes, relu = _append_orphan(nodes, LayerKind.RELU)
    nodes, flatten = _append_orphan(nodes, LayerKind.FLATTEN)
    assert validate_new_connection(nodes, nodes[1].id, relu.id)
    assert validate_new_connection(nodes, nodes[1].id, flatten.id)


def test_existing_upstream_error_does_not_block(build_chain):
    # Linear directly on an image already fails; the new edge adds nothing wrong
    nodes = build_chain((LayerKind.LINEAR, {}))
    nodes, softmax = _append_orphan(nodes, LayerKind.SOFTMAX)
    assert validate_new_connection(nodes, nodes[1].id, softmax.id)


def test_structural_rejections(build_chain):
    nodes = build_chain((LayerKind.FLATTEN, {}), (LayerKind.LINEAR, {}))
    nodes, relu = _append_orphan(nodes, LayerKind.RELU)
    input_id, flatten_id, linear_id = nodes[0].id, nodes[1].id, nodes[2].id

    assert validate_new_connection(nodes, input_id, relu.id).reason is Reason.OUTPUT_OCCUPIED
    assert validate_new_connection(nodes, relu.id, linear_id).reason is Reason.INPUT_OCCUPIED
    assert validate_new_connection(nodes, relu.id, input_id).reason is Reason.CANNOT_CONNECT_TO_INPUT
    assert validate_new_connection(nodes, relu.id, relu.id).reason is Reason.GENERIC_ERROR
    assert validate_new_connection(nodes, "missing", relu.id).reason is Reason.GENERIC_ERROR
    assert validate_new_connection(nodes, linear_id, relu.id)


def test_validation_does_not_touch_the_graph(build_chain):
    nodes = build_chain((LayerKind.CONV2D, {}))
    nodes, linear = _append_orphan(nodes, LayerKind.LINEAR)
    before = list(nodes)
    validate_new_connection(nodes, nodes[1].id, linear.id)
    assert nodes == before
    assert nodes[1].next_id is None


def test_check_connection_on_hypothetical_ordering(build_chain):
    nodes = build_chain((LayerKind.MAXPOOL2D, {}))
    nodes, linear = _append_orphan(nodes, LayerKind.LINEAR)
    hypothetical = with_edge(nodes, nodes[1].id, linear.id)
    assert check_connection(hypothetical, nodes[1].id, linear.id).reason is Reason.FLATTEN_REQUIRED
    assert check_connection(hypothetical, nodes[1].id, "missing").reason is Reason.GENERIC_ERROR


def test_single_output_layer():
    nodes = [new_node((), LayerKind.INPUT)]
    assert check_add(nodes, LayerKind.SOFTMAX)
    nodes.append(new_node(nodes, LayerKind.SOFTMAX))
    assert check_add(nodes, LayerKind.IDENTITY).reason is Reason.OUTPUT_LAYER_EXISTS
    assert check_add(nodes, LayerKind.RELU)
    assert check_add(nodes, "CONV3D").reason is Reason.UNKNOWN_LAYER


def test_dim_of_shape():
    assert dim_of_shape((10,)) is TensorDim.D1
    assert dim_of_shape((1, 28, 28)) is TensorDim.D3
    assert dim_of_shape("N/A") is TensorDim.ANY


def test_single_input_layer():
    assert check_add([], LayerKind.INPUT)
    nodes = [new_node((), LayerKind.INPUT)]
    assert check_add(nodes, LayerKind.INPUT).reason is Reason.INPUT_LAYER_EXISTS
    assert check_add(nodes, "INPUT").reason is Reason.INPUT_LAYER_EXISTS
