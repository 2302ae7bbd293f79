"""
Variable hygiene scan.

Inventory checks over every local variable (grouping, descriptions,
component tokens parked in the Global namespace, unused tokens), plus a walk
of the scoped document looking for style values that could be bound to a
variable but are not.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set, Tuple

from document_provider import DocumentProvider, Scope, resolve_scope
from figma_nodes import FigmaNode, Variable, VariableCollection, build_parent_path
from fuzzy_match import NumericCandidate, find_closest_numeric
from lint_config import DEFAULT_CONFIG, LintConfig
from name_heuristics import DEFAULT_TABLES, NamingTables, split_words
from report import Issue, ProgressReporter, ReportAssembler, ScanReport
from tree_walker import walk_async

logger = logging.getLogger(__name__)

UNUSED = "unused"
ORPHANS = "orphans"
MISSING_DESCRIPTION = "missing-description"
MISPLACED = "misplaced"
UNBOUND_NUMBERS = "unbound-numbers"
UNBOUND_COLORS = "unbound-colors"

# (model field, bindable slot) pairs checked on auto-layout containers
AUTO_LAYOUT_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("item_spacing", "itemSpacing"),
    ("counter_axis_spacing", "counterAxisSpacing"),
    ("padding_left", "paddingLeft"),
    ("padding_right", "paddingRight"),
    ("padding_top", "paddingTop"),
    ("padding_bottom", "paddingBottom"),
)

# Style fields checked on every node; a field counts as bound when any of its slots is
STYLE_FIELDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("corner_radius", ("cornerRadius", "topLeftRadius", "topRightRadius", "bottomLeftRadius", "bottomRightRadius")),
    ("stroke_weight", ("strokeWeight", "strokeTopWeight", "strokeRightWeight", "strokeBottomWeight", "strokeLeftWeight")),
)


@dataclass
class InventoryEntry:
    variable: Variable
    collection: VariableCollection

    @property
    def display_name(self) -> str:
        return f"{self.variable.name} ({self.collection.name})"


@dataclass
class VariableFindings:
    inventory: List[InventoryEntry] = field(default_factory=list)
    used_ids: Set[str] = field(default_factory=set)
    orphans: List[Issue] = field(default_factory=list)
    missing_description: List[Issue] = field(default_factory=list)
    misplaced: List[Issue] = field(default_factory=list)
    unused: List[Issue] = field(default_factory=list)
    unbound_numbers: List[Issue] = field(default_factory=list)
    unbound_colors: List[Issue] = field(default_factory=list)
    visited: int = 0


def is_orphan(variable: Variable) -> bool:
    return "/" not in variable.name


def is_missing_description(variable: Variable) -> bool:
    return not (variable.description or "").strip()


def is_misplaced(variable: Variable, tables: NamingTables = DEFAULT_TABLES) -> bool:
    """Global-namespace token whose name mentions a UI component."""
    segments = variable.name.split("/")
    if len(segments) < 2 or segments[0].strip().lower() != "global":
        return False
    words = {w.lower() for w in split_words("/".join(segments[1:]))}
    for keyword in tables.ui_keywords:
        if keyword in words or f"{keyword}s" in words or f"{keyword}es" in words:
            return True
    return False


async def build_inventory(provider: DocumentProvider) -> List[InventoryEntry]:
    inventory: List[InventoryEntry] = []
    for collection in await provider.list_variable_collections():
        for variable_id in collection.variable_ids:
            variable = await provider.resolve_variable(variable_id)
            if variable is None:
                logger.debug(f"⚠️ Variable {variable_id} in {collection.name} could not be resolved; skipping")
                continue
            inventory.append(InventoryEntry(variable=variable, collection=collection))
    return inventory


def numeric_pool(inventory: Sequence[InventoryEntry]) -> List[NumericCandidate]:
    """FLOAT variables with their default-mode value, in inventory order.

    Aliased values (a variable pointing at another variable) are skipped.
    """
    pool: List[NumericCandidate] = []
    for entry in inventory:
        if entry.variable.resolved_type != "FLOAT":
            continue
        value = entry.variable.value_for_mode(entry.collection.default_mode_id)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        pool.append(NumericCandidate(id=entry.variable.id, name=entry.variable.name, value=float(value)))
    return pool


def _numeric_issue(node: FigmaNode, slot: str, value: float, pool: Sequence[NumericCandidate]) -> Issue:
    closest = find_closest_numeric(value, pool)
    return Issue(
        id=node.id,
        category=UNBOUND_NUMBERS,
        label=slot,
        name=node.name,
        node_type=node.type.value,
        value=value,
        suggestion=closest.name if closest else None,
        suggestion_id=closest.id if closest else None,
        path=build_parent_path(node) or None,
    )


def find_unbound_fields(node: FigmaNode, pool: Sequence[NumericCandidate]) -> Tuple[List[Issue], List[Issue]]:
    """Numeric and color style values on `node` that are not bound to a variable."""
    numbers: List[Issue] = []
    colors: List[Issue] = []

    if node.has_auto_layout:
        for field_name, slot in AUTO_LAYOUT_FIELDS:
            value = getattr(node, field_name)
            if value is not None and not node.is_slot_bound(slot):
                numbers.append(_numeric_issue(node, slot, value, pool))

    for field_name, slots in STYLE_FIELDS:
        value = getattr(node, field_name)
        if field_name == "stroke_weight" and not node.strokes:
            continue
        if value and not any(node.is_slot_bound(slot) for slot in slots):
            numbers.append(_numeric_issue(node, slots[0], value, pool))

    for field_name in ("fills", "strokes"):
        paints = getattr(node, field_name) or []
        node_slot = (node.bound_variables or {}).get(field_name)
        node_refs = node_slot if isinstance(node_slot, list) else []
        for index, paint in enumerate(paints):
            if not paint.is_solid:
                continue
            bound_here = (paint.bound_variables or {}).get("color") is not None
            bound_on_node = index < len(node_refs) and node_refs[index] is not None
            if bound_here or bound_on_node:
                continue
            colors.append(Issue(
                id=node.id,
                category=UNBOUND_COLORS,
                label=f"{field_name}/{index}",
                name=node.name,
                node_type=node.type.value,
                value=paint.color.to_hex(),
                path=build_parent_path(node) or None,
            ))
    return numbers, colors


def _variable_issue(entry: InventoryEntry, category: str, label: str) -> Issue:
    return Issue(
        id=entry.variable.id,
        category=category,
        label=label,
        name=entry.display_name,
        path=entry.collection.name,
    )


async def classify_variables(
    roots: Sequence[FigmaNode],
    provider: DocumentProvider,
    tables: NamingTables = DEFAULT_TABLES,
    config: LintConfig = DEFAULT_CONFIG,
    progress: Optional[ProgressReporter] = None,
) -> VariableFindings:
    findings = VariableFindings()
    findings.inventory = await build_inventory(provider)

    for entry in findings.inventory:
        if is_orphan(entry.variable):
            findings.orphans.append(_variable_issue(entry, ORPHANS, "Orphan"))
        if is_missing_description(entry.variable):
            findings.missing_description.append(_variable_issue(entry, MISSING_DESCRIPTION, "No description"))
        if is_misplaced(entry.variable, tables):
            findings.misplaced.append(_variable_issue(entry, MISPLACED, "Component token in Global"))

    if progress:
        await progress.update(30, f"Found {len(findings.inventory)} variables. Scanning usage...")

    pool = numeric_pool(findings.inventory)
    on_tick = progress.ticker(60, "{visited:,} nodes scanned...") if progress else None
    async for node in walk_async(roots, yield_every=config.yield_every, on_tick=on_tick):
        findings.visited += 1
        findings.used_ids.update(node.bound_variable_ids())
        numbers, colors = find_unbound_fields(node, pool)
        findings.unbound_numbers.extend(numbers)
        findings.unbound_colors.extend(colors)

    findings.unused = [
        _variable_issue(entry, UNUSED, "Unused")
        for entry in findings.inventory
        if entry.variable.id not in findings.used_ids
    ]
    logger.info(
        f"🎨 Variables: {len(findings.inventory)} total, {len(findings.unused)} unused, "
        f"{len(findings.unbound_numbers)} unbound number(s), {len(findings.unbound_colors)} unbound color(s)"
    )
    return findings


async def scan_variables(
    provider: DocumentProvider,
    scope: Scope = Scope.CURRENT_PAGE,
    node_ids: Optional[Sequence[str]] = None,
    config: LintConfig = DEFAULT_CONFIG,
    tables: NamingTables = DEFAULT_TABLES,
    progress: Optional[ProgressReporter] = None,
) -> ScanReport:
    progress = progress or ProgressReporter()
    await progress.update(0, "Loading variable collections...")

    roots = await resolve_scope(provider, scope, node_ids)
    findings = await classify_variables(roots, provider, tables=tables, config=config, progress=progress)

    assembler = ReportAssembler("variables", max_items=config.max_items)
    assembler.add_group(UNUSED, "Unused Variables", findings.unused)
    assembler.add_group(ORPHANS, "Variables Without Groups", findings.orphans)
    assembler.add_group(MISSING_DESCRIPTION, "Variables Without Descriptions", findings.missing_description)
    assembler.add_group(MISPLACED, "Component Tokens In Global", findings.misplaced)
    assembler.add_group(UNBOUND_NUMBERS, "Values Not Bound To Variables", findings.unbound_numbers)
    assembler.add_group(UNBOUND_COLORS, "Colors Not Bound To Variables", findings.unbound_colors)

    used_in_inventory = sum(1 for e in findings.inventory if e.variable.id in findings.used_ids)
    assembler.add_stats(
        total_variables=len(findings.inventory),
        used=used_in_inventory,
        unused=len(findings.unused),
        visited=findings.visited,
    )

    await progress.update(100, "Done")
    return assembler.build()
