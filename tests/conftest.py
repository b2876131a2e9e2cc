import pytest

from neuroflow.catalog import LayerKind
from neuroflow.store import new_node


def _build_chain(*layers, shape="(1, 28, 28)"):
    """Input node followed by `layers` ((kind, params) pairs), linked in order."""
    nodes = [new_node((), LayerKind.INPUT, params={"shape": shape})]
    for kind, params in layers:
        node = new_node(nodes, kind, params=params)
        nodes[-1] = nodes[-1].with_changes(next_id=node.id)
        nodes.append(node)
    return nodes


@pytest.fixture
def build_chain():
    return _build_chain


@pytest.fixture
def cnn_chain():
    return _build_chain(
        (LayerKind.CONV2D, {}),
        (LayerKind.MAXPOOL2D, {}),
        (LayerKind.FLATTEN, {}),
        (LayerKind.LINEAR, {}),
    )
