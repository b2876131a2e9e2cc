# tests/test_catalog.py
from neuroflow.catalog import (CATEGORIES, LAYER_DEFINITIONS, LAYER_MAP, LayerKind, TensorDim,
                               default_params, get_definition, is_output_kind, layers_in_category)


def test_every_kind_is_registered():
    assert set(LAYER_MAP) == set(LayerKind)
    assert len(LAYER_DEFINITIONS) == len(LayerKind)
    for definition in LAYER_DEFINITIONS:
        assert definition.category in CATEGORIES


def test_lookup_by_string_value():
    assert get_definition("CONV2D") is LAYER_MAP[LayerKind.CONV2D]
    assert get_definition("CONV3D") is None
    assert default_params("CONV3D") == {}


def test_default_params():
    assert default_params(LayerKind.CONV2D) == {"out_channels": 16, "kernel_size": 3, "stride": 1, "padding": 1}
    assert default_params(LayerKind.INPUT) == {"shape": "(1, 28, 28)"}
    assert default_params(LayerKind.LSTM) == {"hidden_size": 128, "num_layers": 1, "bidirectional": False}
    assert default_params(LayerKind.RELU) == {}


def test_default_params_are_fresh_dicts():
    first = default_params(LayerKind.LINEAR)
    first["out_features"] = 99
    assert default_params(LayerKind.LINEAR) == {"out_features": 10}


def test_output_layers():
    outputs = {d.kind for d in LAYER_DEFINITIONS if is_output_kind(d.kind)}
    assert outputs == {LayerKind.SOFTMAX, LayerKind.IDENTITY}
    assert [d.kind for d in layers_in_category("Output")] == [LayerKind.SOFTMAX, LayerKind.IDENTITY]


def test_io_classes():
    assert LAYER_MAP[LayerKind.INPUT].io is None
    assert LAYER_MAP[LayerKind.FLATTEN].io == (TensorDim.ANY, TensorDim.D1)
    assert LAYER_MAP[LayerKind.CONV2D].io == (TensorDim.D3, TensorDim.D3)
    assert LAYER_MAP[LayerKind.LINEAR].io == (TensorDim.D1, TensorDim.D1)
