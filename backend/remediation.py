"""
Remediation - user-triggered fixes.

Every action re-reads the live node, validates the request against it and
only then calls the host. Failures come back as a MutationResult with
success=False; nothing is retried. Batch renames are all-or-nothing: if the
host rejects one rename, the ones already applied are reverted.
"""

import logging
from typing import List, Literal, Optional, Sequence, Tuple

from document_provider import DocumentProvider
from figma_communicator import ToolExecutionError
from figma_nodes import FigmaModel, FigmaNode, NodeType, supports_property_definitions
from property_order import validate_property_order
from scan_variables import AUTO_LAYOUT_FIELDS, STYLE_FIELDS

logger = logging.getLogger(__name__)

NUMERIC_SLOTS = frozenset(
    [slot for _, slot in AUTO_LAYOUT_FIELDS] + [slot for _, slots in STYLE_FIELDS for slot in slots]
)


class MutationResult(FigmaModel):
    type: Literal["mutation-result"] = "mutation-result"
    action: str
    node_id: str
    success: bool
    message: str = ""
    code: Optional[str] = None

    def to_message(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


def _ok(action: str, node_id: str, message: str = "") -> MutationResult:
    logger.info(f"✅ {action} {node_id} {message}".rstrip())
    return MutationResult(action=action, node_id=node_id, success=True, message=message)


def _failed(action: str, node_id: str, code: str, message: str) -> MutationResult:
    logger.warning(f"❌ {action} {node_id} failed ({code}): {message}")
    return MutationResult(action=action, node_id=node_id, success=False, code=code, message=message)


def _is_locked(node: FigmaNode) -> bool:
    return node.remote or any(ancestor.remote for ancestor in node.ancestors())


async def _editable_node(provider: DocumentProvider, action: str, node_id: str) -> Tuple[Optional[FigmaNode], Optional[MutationResult]]:
    node = await provider.get_node_by_id(node_id)
    if node is None:
        return None, _failed(action, node_id, "node_not_found", f"Node {node_id} no longer exists")
    if _is_locked(node):
        return None, _failed(action, node_id, "node_locked", f"{node.name} is owned by a library and cannot be edited")
    return node, None


async def rename_node(provider: DocumentProvider, node_id: str, new_name: str) -> MutationResult:
    action = "rename-node"
    name = (new_name or "").strip()
    if not name:
        return _failed(action, node_id, "invalid_parameter", "New name must not be empty")
    node, failure = await _editable_node(provider, action, node_id)
    if failure:
        return failure
    if node.name == name:
        return _ok(action, node_id, "unchanged")
    try:
        await provider.set_name(node_id, name)
    except ToolExecutionError as te:
        return _failed(action, node_id, te.code, te.message or str(te))
    return _ok(action, node_id, f"renamed to {name}")


async def apply_renames(provider: DocumentProvider, renames: Sequence[Tuple[str, str]]) -> MutationResult:
    """Rename several nodes as one action.

    All targets are validated before the first rename. If the host rejects
    a rename midway, earlier renames are rolled back and the failure names
    the rejected node.
    """
    action = "rename-nodes"
    if not renames:
        return _failed(action, "", "invalid_parameter", "Nothing to rename")

    plan: List[Tuple[str, str, str]] = []
    for node_id, new_name in renames:
        name = (new_name or "").strip()
        if not name:
            return _failed(action, node_id, "invalid_parameter", "New name must not be empty")
        node, failure = await _editable_node(provider, action, node_id)
        if failure:
            return failure
        if node.name != name:
            plan.append((node_id, node.name, name))

    applied: List[Tuple[str, str]] = []
    for node_id, old_name, name in plan:
        try:
            await provider.set_name(node_id, name)
        except ToolExecutionError as te:
            for done_id, previous in reversed(applied):
                try:
                    await provider.set_name(done_id, previous)
                except ToolExecutionError as rollback_error:
                    logger.error(f"💥 Rollback of {done_id} failed: {rollback_error}")
            return _failed(action, node_id, te.code, te.message or str(te))
        applied.append((node_id, old_name))
    return _ok(action, renames[0][0], f"{len(applied)} renamed")


async def delete_node(provider: DocumentProvider, node_id: str) -> MutationResult:
    action = "delete-node"
    node, failure = await _editable_node(provider, action, node_id)
    if failure:
        return failure
    if node.type in (NodeType.PAGE, NodeType.DOCUMENT):
        return _failed(action, node_id, "invalid_parameter", "Pages cannot be deleted from the linter")
    try:
        await provider.remove(node_id)
    except ToolExecutionError as te:
        return _failed(action, node_id, te.code, te.message or str(te))
    return _ok(action, node_id, "deleted")


async def bind_variable(provider: DocumentProvider, node_id: str, slot_key: str, variable_id: str) -> MutationResult:
    """Bind `variable_id` to a numeric slot (e.g. `itemSpacing`) or a paint slot (`fills/0`)."""
    action = "bind-variable"
    node, failure = await _editable_node(provider, action, node_id)
    if failure:
        return failure
    variable = await provider.resolve_variable(variable_id)
    if variable is None:
        return _failed(action, node_id, "variable_not_found", f"Variable {variable_id} no longer exists")

    field_name, _, index = slot_key.partition("/")
    if field_name in ("fills", "strokes") and index.isdigit():
        paints = getattr(node, field_name) or []
        if int(index) >= len(paints) or not paints[int(index)].is_solid:
            return _failed(action, node_id, "invalid_parameter", f"No solid paint at {slot_key}")
        expected_type = "COLOR"
    elif slot_key in NUMERIC_SLOTS:
        expected_type = "FLOAT"
    else:
        return _failed(action, node_id, "invalid_parameter", f"Slot {slot_key} cannot be bound from the linter")

    if variable.resolved_type != expected_type:
        return _failed(
            action, node_id, "invalid_parameter",
            f"{variable.name} is a {variable.resolved_type} variable, {slot_key} needs {expected_type}",
        )
    try:
        await provider.set_bound_variable(node_id, slot_key, variable_id)
    except ToolExecutionError as te:
        return _failed(action, node_id, te.code, te.message or str(te))
    return _ok(action, node_id, f"{slot_key} bound to {variable.name}")


async def _definitions_of(provider: DocumentProvider, action: str, node_id: str):
    node, failure = await _editable_node(provider, action, node_id)
    if failure:
        return None, failure
    if not supports_property_definitions(node):
        return None, _failed(action, node_id, "not_applicable", f"{node.name} does not own property definitions")
    return dict(node.component_property_definitions or {}), None


async def reorder_properties(provider: DocumentProvider, node_id: str, desired_order: Optional[Sequence[str]] = None) -> MutationResult:
    """Rewrite a component's property definitions in `desired_order` (canonical order when omitted)."""
    action = "reorder-properties"
    definitions, failure = await _definitions_of(provider, action, node_id)
    if failure:
        return failure

    order = list(desired_order) if desired_order is not None else validate_property_order(definitions).desired_order
    if sorted(order) != sorted(definitions):
        return _failed(action, node_id, "invalid_parameter", "Requested order does not match the current properties")
    if order == list(definitions):
        return _ok(action, node_id, "unchanged")

    reordered = {name: definitions[name] for name in order}
    try:
        await provider.set_property_definitions(node_id, reordered)
    except ToolExecutionError as te:
        return _failed(action, node_id, te.code, te.message or str(te))
    return _ok(action, node_id, f"{len(order)} properties reordered")


async def rename_property(provider: DocumentProvider, node_id: str, old_name: str, new_name: str) -> MutationResult:
    """Rename one property definition in place, keeping its position.

    Instance values stored under the old name move to the new one.
    """
    action = "rename-property"
    name = (new_name or "").strip()
    if not name:
        return _failed(action, node_id, "invalid_parameter", "New name must not be empty")
    definitions, failure = await _definitions_of(provider, action, node_id)
    if failure:
        return failure
    if old_name not in definitions:
        return _failed(action, node_id, "property_not_found", f"Property {old_name} no longer exists")
    if name == old_name:
        return _ok(action, node_id, "unchanged")
    if name in definitions:
        return _failed(action, node_id, "invalid_parameter", f"Property {name} already exists")

    try:
        await provider.rename_property(node_id, old_name, name)
    except ToolExecutionError as te:
        return _failed(action, node_id, te.code, te.message or str(te))
    return _ok(action, node_id, f"{old_name} renamed to {name}")
