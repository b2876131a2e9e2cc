# app.py - NeuroFlow GUI (layer chain → shape check → PyTorch code preview/download)
# run: streamlit run app.py
from typing import Any, Dict

import streamlit as st

from neuroflow.catalog import CATEGORIES, LayerKind, get_definition, layers_in_category
from neuroflow.codegen import generate_pytorch_code
from neuroflow.config import DEFAULT_TRAINING_CONFIG, LOSS_FUNCTIONS, OPTIMIZERS, TrainingConfig
from neuroflow.errors import CodeGenerationError, ConfigError
from neuroflow.graph import has_cycle
from neuroflow.recipes import RECIPES
from neuroflow.shapes import format_shape, output_shape_of
from neuroflow.store import (AddNode, Connect, DeleteNode, Disconnect, GraphStore, Reset,
                             SelectNode, UpdateParams)
from neuroflow.validation import Reason

st.set_page_config(page_title="NeuroFlow - Model Designer", layout="wide")

# ---------- reason code → message ----------
MESSAGES = {
    Reason.FLATTEN_REQUIRED: "A 3D (C, H, W) output cannot feed this layer directly. Insert a Flatten layer.",
    Reason.CONV_AFTER_DENSE: "A convolution layer cannot follow dense (1D) data.",
    Reason.GENERIC_ERROR: "These layers cannot be connected.",
    Reason.OUTPUT_OCCUPIED: "The source layer already has an outgoing connection.",
    Reason.INPUT_OCCUPIED: "The target layer already has an incoming connection.",
    Reason.CANNOT_CONNECT_TO_INPUT: "Nothing can be connected into the Input layer.",
    Reason.OUTPUT_LAYER_EXISTS: "The model already has an output layer.",
    Reason.INPUT_LAYER_EXISTS: "The model already has an Input layer.",
    Reason.UNKNOWN_LAYER: "Unknown layer type.",
}


# ---------- session state ----------
def _init_state():
    ss = st.session_state
    ss.setdefault("store", GraphStore())
    ss.setdefault("training_config", DEFAULT_TRAINING_CONFIG)
    ss.setdefault("flash", None)
_init_state()

store: GraphStore = st.session_state.store


def _dispatch(action) -> None:
    outcome = store.dispatch(action)
    if not outcome.accepted and outcome.reason is not None:
        st.session_state.flash = ("error", MESSAGES.get(outcome.reason, outcome.reason.value))
    st.rerun()


def _label(node_id: str) -> str:
    node = next(n for n in store.nodes if n.id == node_id)
    return f"{node.name} ({node.id})"


# ---------- sidebar: palette ----------
st.sidebar.title("NeuroFlow - Layers")
selected_category = st.sidebar.selectbox(
    "Category", list(CATEGORIES.keys()), format_func=lambda c: CATEGORIES[c], key="palette_category"
)
for definition in layers_in_category(selected_category):
    if definition.kind == LayerKind.INPUT:
        continue
    with st.sidebar.container():
        st.markdown(f"**{definition.name}**")
        st.caption(definition.description)
        if st.button(f"➕ Add {definition.name}", key=f"add_{definition.kind.value}"):
            _dispatch(AddNode(definition.kind))

# ---------- sidebar: connections ----------
st.sidebar.divider()
st.sidebar.subheader("🔗 Connections")
node_ids = [n.id for n in store.nodes]
with st.sidebar.form("connect_form"):
    src = st.selectbox("from", node_ids, format_func=_label)
    dst = st.selectbox("to", node_ids, format_func=_label)
    if st.form_submit_button("Connect"):
        _dispatch(Connect(src, dst))

linked = [n.id for n in store.nodes if n.next_id]
if linked:
    with st.sidebar.form("disconnect_form"):
        cut = st.selectbox("remove outgoing link of", linked, format_func=_label)
        if st.form_submit_button("Disconnect"):
            _dispatch(Disconnect(cut))

st.sidebar.divider()
if st.sidebar.button("🔄 Reset canvas", key="reset"):
    _dispatch(Reset())

# ---------- main ----------
st.title("NeuroFlow - Visual Neural Network Designer")

if st.session_state.flash:
    level, message = st.session_state.flash
    getattr(st, level)(message)
    st.session_state.flash = None

tab_chain, tab_props, tab_train, tab_code, tab_recipes = st.tabs(
    ["🧱 Chain", "⚙️ Properties", "🎓 Training", "💻 Code", "📋 Recipes"]
)

ordered = store.ordered_nodes()
progression = {p.node_id: p for p in store.shape_progression()}

with tab_chain:
    st.subheader("Layer chain and tensor shapes")
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Layers", len(ordered))
    with col2:
        st.metric("Connections", sum(1 for n in ordered if n.next_id))
    with col3:
        st.metric("Errors", sum(1 for p in progression.values() if p.is_root_cause))
    with col4:
        final_shape = output_shape_of(list(progression.values()), ordered[-1].id) if ordered else None
        st.metric("Output shape", format_shape(final_shape) if final_shape is not None else "N/A")
    if has_cycle(store.nodes):
        st.warning("The layer links form a loop; only the part before the loop is used.")

    for i, node in enumerate(ordered):
        info = progression.get(node.id)
        marker = "▶" if node.id == store.state.selected_id else ""
        line = f"{marker} **{i + 1}. {node.name}** `{node.id}`"
        if info is not None and info.ok:
            line += f" - {format_shape(info.input_shape)} → {format_shape(info.output_shape)}"
        st.markdown(line)
        if info is not None and info.is_root_cause:
            st.error(info.error)
        elif info is not None and not info.ok:
            st.caption(info.error)

with tab_props:
    # widget state follows the store, not the other way round
    if store.state.selected_id in node_ids:
        st.session_state.props_node = store.state.selected_id
    st.selectbox("Layer", node_ids, format_func=_label, key="props_node",
                 on_change=lambda: store.dispatch(SelectNode(st.session_state.props_node)))
    node = store.state.selected
    if node is not None:
        definition = get_definition(node.kind)
        st.caption(definition.description)
        with st.form("params_form"):
            values: Dict[str, Any] = {}
            for spec in definition.params:
                current = node.params.get(spec.name, spec.default)
                if spec.type == "boolean":
                    values[spec.name] = st.checkbox(spec.label, value=bool(current), help=spec.description)
                elif spec.type == "number" and isinstance(spec.default, float):
                    values[spec.name] = st.number_input(spec.label, value=float(current), step=0.05,
                                                        help=spec.description)
                elif spec.type == "number":
                    values[spec.name] = int(st.number_input(spec.label, value=int(current), step=1,
                                                            help=spec.description))
                else:
                    values[spec.name] = st.text_input(spec.label, value=str(current), help=spec.description)
            if st.form_submit_button("Apply"):
                _dispatch(UpdateParams(node.id, values))
        if not node.is_input and st.button("🗑️ Delete layer", key="delete_node"):
            _dispatch(DeleteNode(node.id))

with tab_train:
    config: TrainingConfig = st.session_state.training_config
    with st.form("training_form"):
        optimizer = st.selectbox("Optimizer", OPTIMIZERS, index=OPTIMIZERS.index(config.optimizer))
        loss_function = st.selectbox("Loss function", LOSS_FUNCTIONS, index=LOSS_FUNCTIONS.index(config.loss_function))
        learning_rate = st.number_input("Learning rate", value=float(config.learning_rate), format="%.5f")
        epochs = st.number_input("Epochs", min_value=1, value=config.epochs, step=1)
        batch_size = st.number_input("Batch size", min_value=1, value=config.batch_size, step=1)
        if st.form_submit_button("Save"):
            try:
                st.session_state.training_config = TrainingConfig.from_dict({
                    "optimizer": optimizer, "learning_rate": float(learning_rate),
                    "loss_function": loss_function, "epochs": int(epochs), "batch_size": int(batch_size),
                })
                st.success("Training configuration saved.")
            except ConfigError as e:
                st.error(str(e))
    st.json(st.session_state.training_config.to_dict())

with tab_code:
    st.subheader("PyTorch code")
    try:
        code_str = generate_pytorch_code(ordered, st.session_state.training_config)
        st.code(code_str, language="python")
        st.download_button("📥 Download neuroflow_model.py", data=code_str.encode("utf-8"),
                           file_name="neuroflow_model.py", mime="text/x-python")
    except CodeGenerationError as e:
        st.error(f"Code generation error: {e}")

with tab_recipes:
    st.subheader("Architecture recipes")
    st.caption("Building a recipe replaces the current network.")
    for recipe in RECIPES:
        with st.container():
            st.markdown(f"**{recipe.title}**")
            st.caption(recipe.description)
            if st.button(f"🏗️ Build {recipe.title}", key=f"recipe_{recipe.id}"):
                if store.apply_recipe(recipe):
                    store.relayout()
                st.session_state.flash = ("success", f"{recipe.title} built.")
                st.rerun()
