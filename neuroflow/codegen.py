# neuroflow/codegen.py - ordered, shape-annotated chain → standalone PyTorch script
from typing import List, Optional, Sequence

from .catalog import LayerKind
from .config import DEFAULT_TRAINING_CONFIG, TrainingConfig
from .errors import CodeGenerationError
from .graph import Node, find_node
from .log import get_logger
from .shapes import calculate_shape_progression, format_shape, parse_shape, shape_info_for

logger = get_logger("neuroflow.codegen")

MODEL_CLASS_NAME = "NeuroFlowModel"


def layer_var_name(node: Node) -> str:
    return f"layer_{node.id.replace('-', '_')}"


def _int(node: Node, name: str) -> int:
    return int(node.params[name])


def _bool(node: Node, name: str) -> bool:
    raw = node.params.get(name, False)
    if isinstance(raw, str):
        return raw.strip().lower() in ("true", "1", "yes")
    return bool(raw)


def layer_constructor(node: Node, in_shape) -> Optional[str]:
    """Constructor expression for one layer, sized from its inferred input shape."""
    kind = node.kind
    p = node.params
    if kind == LayerKind.CONV2D:
        return (f"nn.Conv2d(in_channels={in_shape[0]}, out_channels={_int(node, 'out_channels')}, "
                f"kernel_size={_int(node, 'kernel_size')}, stride={_int(node, 'stride')}, "
                f"padding={_int(node, 'padding')})")
    elif kind == LayerKind.MAXPOOL2D:
        return f"nn.MaxPool2d(kernel_size={_int(node, 'kernel_size')}, stride={_int(node, 'stride')})"
    elif kind == LayerKind.BATCHNORM2D:
        return f"nn.BatchNorm2d(num_features={in_shape[0]})"
    elif kind == LayerKind.FLATTEN:
        return "nn.Flatten(start_dim=1)"
    elif kind == LayerKind.LINEAR:
        return f"nn.Linear(in_features={in_shape[0]}, out_features={_int(node, 'out_features')})"
    elif kind == LayerKind.RELU:
        return "nn.ReLU()"
    elif kind == LayerKind.SIGMOID:
        return "nn.Sigmoid()"
    elif kind == LayerKind.TANH:
        return "nn.Tanh()"
    elif kind == LayerKind.DROPOUT:
        return f"nn.Dropout(p={float(p.get('p', 0.5))})"
    elif kind == LayerKind.SOFTMAX:
        return "nn.Softmax(dim=1)"
    elif kind == LayerKind.IDENTITY:
        return "nn.Identity()"
    elif kind in (LayerKind.LSTM, LayerKind.GRU):
        return (f"nn.{kind.value}(input_size={in_shape[0]}, hidden_size={_int(node, 'hidden_size')}, "
                f"num_layers={_int(node, 'num_layers')}, batch_first=True, "
                f"bidirectional={_bool(node, 'bidirectional')})")
    return None


def forward_line(node: Node) -> str:
    var = layer_var_name(node)
    if node.kind in (LayerKind.LSTM, LayerKind.GRU):
        return f"x, _ = self.{var}(x)  # We only need the output sequence"
    return f"x = self.{var}(x)"


SCAFFOLD = '''
# ------------------- Utility Functions -------------------
def count_parameters(model):
    """Counts the number of trainable parameters in a model."""
    return sum(p.numel() for p in model.parameters() if p.requires_grad)

# ------------------- Main Training/Evaluation Logic -------------------
def train_epoch(model, dataloader, criterion, optimizer, device):
    """Main training loop for one epoch."""
    model.train()  # Set model to training mode
    running_loss = 0.0
    for i, (inputs, labels) in enumerate(dataloader):
        inputs, labels = inputs.to(device), labels.to(device)

        # Zero the parameter gradients
        optimizer.zero_grad()

        # Forward pass
        outputs = model(inputs)
        loss = criterion(outputs, labels)

        # Backward pass and optimize
        loss.backward()
        optimizer.step()

        running_loss += loss.item()

    avg_loss = running_loss / len(dataloader)
    print(f"  Training Loss: {avg_loss:.4f}")

def evaluate_epoch(model, dataloader, criterion, device):
    """Main evaluation loop for one epoch."""
    model.eval()  # Set model to evaluation mode
    running_loss = 0.0
    correct_predictions = 0
    total_samples = 0

    with torch.no_grad():  # Disable gradient calculations
        for inputs, labels in dataloader:
            inputs, labels = inputs.to(device), labels.to(device)

            outputs = model(inputs)
            loss = criterion(outputs, labels)
            running_loss += loss.item()

            # Calculate accuracy for classification tasks
            if isinstance(criterion, (nn.CrossEntropyLoss, nn.NLLLoss)):
                _, predicted = torch.max(outputs.data, 1)
                total_samples += labels.size(0)
                correct_predictions += (predicted == labels).sum().item()

    avg_loss = running_loss / len(dataloader)
    accuracy = (correct_predictions / total_samples) * 100 if total_samples > 0 else 0.0

    print(f"  Validation Loss: {avg_loss:.4f}" + (f", Accuracy: {accuracy:.2f}%" if accuracy > 0 else ""))
'''

CLASSIFICATION_TARGETS = '''
    # For classification, labels should be class indices (LongTensor)
    # We assume the last dimension of the output shape is the number of classes.
    num_classes = {num_classes}
    placeholder_targets = torch.randint(0, num_classes, (BATCH_SIZE,))
'''

REGRESSION_TARGETS = '''
    # For regression, targets should be floats matching the full output shape
    placeholder_targets = torch.randn(BATCH_SIZE, *output_shape)
'''

MAIN_BLOCK = '''
# ------------------- Main Execution -------------------
if __name__ == '__main__':
    # --- Configuration ---
    EPOCHS = {epochs}
    BATCH_SIZE = {batch_size}
    LEARNING_RATE = {learning_rate}

    # --- Setup Device ---
    # Use GPU if available, otherwise fall back to CPU
    device = torch.device("cuda" if torch.cuda.is_available() else "cpu")
    print(f"Using device: {{device}}")

    # --- Setup Model ---
    model = {class_name}().to(device)
    print("\\n--- Model Architecture ---")
    print(model)
    print(f"\\nTotal Trainable Parameters: {{count_parameters(model):,}}")
    print("--------------------------\\n")

    # --- Create Placeholder Data ---
    # IMPORTANT: Replace this with your actual data loading logic.
    # This code creates random tensors for demonstration purposes.
    print("Creating placeholder data loaders (replace with your actual data)...")

    input_shape_tuple = {input_shape}
    sample_input_shape = (BATCH_SIZE,) + input_shape_tuple
    placeholder_inputs = torch.randn(*sample_input_shape)

    output_shape = {output_shape}
{targets}
    # Create a Dataset and DataLoader
    # Use this structure for both your training and validation data
    placeholder_dataset = TensorDataset(placeholder_inputs, placeholder_targets)
    # In a real scenario, you'd have a train_loader and a val_loader
    train_loader = DataLoader(placeholder_dataset, batch_size=BATCH_SIZE, shuffle=True)
    val_loader = DataLoader(placeholder_dataset, batch_size=BATCH_SIZE)  # No shuffle for validation
    print("Placeholder data created.\\n")
    # --- End of Placeholder Data Section ---

    # --- Setup Optimizer and Loss Function ---
    optimizer = optim.{optimizer}(model.parameters(), lr=LEARNING_RATE)
    criterion = nn.{loss_function}()

    # --- Training Loop ---
    print("--- Starting Training ---")
    for epoch in range(1, EPOCHS + 1):
        print(f"Epoch {{epoch}}/{{EPOCHS}}:")
        train_epoch(model, train_loader, criterion, optimizer, device)
        evaluate_epoch(model, val_loader, criterion, device)
        print("-" * 25)

    print("Finished Training.")
'''


def generate_pytorch_code(ordered: Sequence[Node],
                          config: TrainingConfig = DEFAULT_TRAINING_CONFIG) -> str:
    """
    Render a self-contained PyTorch script (model class + training scaffold)
    for a chain that starts with an Input node. Raises CodeGenerationError if
    the chain is inconsistent; there is no partial output.
    """
    if not ordered or ordered[0].kind != LayerKind.INPUT:
        raise CodeGenerationError("The model must start with an Input layer.")

    progression = calculate_shape_progression(ordered)
    final_state = progression[-1]
    if not final_state.ok:
        # blame the node where the failure started, not the cascade
        culprit = next((p for p in progression if p.is_root_cause), final_state)
        node = find_node(ordered, culprit.node_id)
        raise CodeGenerationError(
            f"Cannot generate code due to a shape error on layer '{node.name}' "
            f"(ID: {node.id}): {culprit.error}"
        )

    final_shape = final_state.output_shape
    if isinstance(final_shape, str) or len(final_shape) == 0:
        raise CodeGenerationError("Could not determine a valid, non-empty final output shape for the model.")

    terminal = ordered[-1]
    omit_softmax = terminal.kind == LayerKind.SOFTMAX and config.absorbs_softmax

    layer_blocks: List[str] = []
    forward_lines: List[str] = []
    for node in ordered[1:]:
        if omit_softmax and node is terminal:
            continue
        info = shape_info_for(progression, node.id)
        if info is None or isinstance(info.input_shape, str):
            raise CodeGenerationError(f"Could not determine input shape for layer {node.name} (ID: {node.id})")
        try:
            constructor = layer_constructor(node, info.input_shape)
        except (KeyError, TypeError, ValueError) as e:
            raise CodeGenerationError(
                f"Invalid parameters on layer '{node.name}' (ID: {node.id}): {e}"
            ) from e
        if constructor is None:
            logger.warning("No constructor for layer kind %s (node %s); skipped", node.kind, node.id)
            continue
        layer_blocks.append(f"        # {node.name}\n        self.{layer_var_name(node)} = {constructor}")
        forward_lines.append(f"        {forward_line(node)}")

    init_comment = ""
    if omit_softmax:
        init_comment = (
            "\n        # NOTE: The final nn.Softmax layer is omitted because nn.CrossEntropyLoss\n"
            "        #       combines LogSoftmax and NLLLoss in one class for better stability."
        )

    input_shape_text = ordered[0].params.get("shape")
    model_definition = f'''
class {MODEL_CLASS_NAME}(nn.Module):
    """
    Neural network model designed with NeuroFlow.
    Input shape: {input_shape_text}
    """
    def __init__(self):
        super({MODEL_CLASS_NAME}, self).__init__()
{chr(10).join(layer_blocks) if layer_blocks else "        pass"}{init_comment}

    def forward(self, x):
{chr(10).join(forward_lines)}
        return x
'''

    if config.is_classification:
        targets = CLASSIFICATION_TARGETS.format(num_classes=final_shape[-1])
    else:
        targets = REGRESSION_TARGETS
    main = MAIN_BLOCK.format(
        epochs=config.epochs,
        batch_size=config.batch_size,
        learning_rate=config.learning_rate,
        class_name=MODEL_CLASS_NAME,
        input_shape=format_shape(parse_shape(input_shape_text)),
        output_shape=format_shape(final_shape),
        targets=targets,
        optimizer=config.optimizer,
        loss_function=config.loss_function,
    )

    header = '''import torch
import torch.nn as nn
import torch.optim as optim
from torch.utils.data import DataLoader, TensorDataset

# ------------------- Model Definition -------------------
'''
    logger.debug("Generated code for %d layers (softmax omitted: %s)", len(layer_blocks), omit_softmax)
    return (header + model_definition + SCAFFOLD + main).strip() + "\n"


if __name__ == "__main__":
    # example: Simple CNN recipe → code
    from .recipes import get_recipe
    from .store import GraphStore

    store = GraphStore()
    store.apply_recipe(get_recipe("simple_cnn"))
    print(generate_pytorch_code(store.ordered_nodes()))
