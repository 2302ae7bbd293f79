"""Selection inspector: property definitions, bindings and children of the selected layer."""

import logging
from typing import Optional

from document_provider import DocumentProvider, Scope, resolve_scope
from figma_nodes import supports_property_definitions
from lint_config import DEFAULT_CONFIG, LintConfig
from property_order import validate_property_order
from report import Issue, ProgressReporter, ReportAssembler, ScanReport

logger = logging.getLogger(__name__)

PREVIEW_ITEMS = 20


async def scan_hierarchy(
    provider: DocumentProvider,
    config: LintConfig = DEFAULT_CONFIG,
    progress: Optional[ProgressReporter] = None,
) -> ScanReport:
    """Inspect the first selected node.

    Raises:
        ScanPreconditionError: when nothing is selected.
    """
    progress = progress or ProgressReporter()
    roots = await resolve_scope(provider, Scope.SELECTION, require_selection=True)
    await progress.update(0, "Building hierarchy tree...")
    root = roots[0]

    assembler = ReportAssembler("hierarchy", max_items=min(PREVIEW_ITEMS, config.max_items))
    stats = {"node_id": root.id, "name": root.name, "type": root.type.value}

    definitions = {}
    if supports_property_definitions(root):
        definitions = root.component_property_definitions or {}
    if definitions:
        order = validate_property_order(definitions)
        positions = {entry.name: entry for entry in order.entries}
        assembler.add_group("properties", "Component Properties", [
            Issue(
                id=root.id,
                category="properties",
                label=definition.type.value,
                name=name,
                value=positions[name].desired_index,
                tags=None if positions[name].in_position else ["out-of-order"],
            )
            for name, definition in definitions.items()
        ])
        stats.update(property_order_mismatches=order.mismatch_count, desired_order=order.desired_order)

    bound_count = len(root.bound_variable_ids())
    if bound_count:
        assembler.add_group("bound-variables", "Bound Variables", [
            Issue(id=root.id, category="bound-variables", label="Variables", name=f"{bound_count} variable(s) bound", value=bound_count)
        ])
    stats["bound_variables"] = bound_count

    if root.children is not None:
        assembler.add_group("children", "Children", [
            Issue(id=child.id, category="children", label=child.type.value, name=child.name, node_type=child.type.value)
            for child in root.children
        ])
        stats["children"] = len(root.children)

    assembler.add_stats(**stats)
    await progress.update(100, "Done")
    return assembler.build()
