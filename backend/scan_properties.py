"""
Component property scan.

Components and component sets are checked for missing property definitions
and for property / variant option names that break the naming rules.
Instances are checked for whether they ever override their component's
defaults; the share that does is reported as the override rate.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from document_provider import DocumentProvider, Scope, resolve_scope
from figma_nodes import (
    FigmaNode,
    NodeType,
    PropertyDefinition,
    PropertyType,
    build_parent_path,
    supports_property_definitions,
)
from lint_config import DEFAULT_CONFIG, LintConfig
from name_heuristics import DEFAULT_TABLES, NamingTables, apply_naming_rules
from report import Issue, ProgressReporter, ReportAssembler, ScanReport
from tree_walker import walk_async

logger = logging.getLogger(__name__)

NO_PROPERTIES = "no-properties"
PROPERTY_NAMES = "property-names"
OPTION_NAMES = "option-names"
DEFAULTS_ONLY = "defaults-only"
UNKNOWN_PROPERTIES = "unknown-properties"


def stringify_value(value: Any) -> str:
    """String form used to compare instance values with defaults (booleans lower-case, integral floats bare)."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def definitions_source(component: FigmaNode) -> Dict[str, PropertyDefinition]:
    """Definitions an instance of `component` is validated against.

    Variants take their definitions from the owning component set.
    """
    parent = component.parent
    if parent is not None and parent.type == NodeType.COMPONENT_SET:
        return parent.component_property_definitions or {}
    return component.component_property_definitions or {}


@dataclass
class InstanceUsage:
    instance: FigmaNode
    component: FigmaNode
    overrides: List[str] = field(default_factory=list)
    unknown: List[str] = field(default_factory=list)

    @property
    def has_override(self) -> bool:
        return bool(self.overrides)


def evaluate_instance(instance: FigmaNode, component: FigmaNode) -> InstanceUsage:
    defaults = definitions_source(component)
    usage = InstanceUsage(instance=instance, component=component)
    for key, prop in (instance.component_properties or {}).items():
        definition = defaults.get(key)
        if definition is None:
            usage.unknown.append(key)
        elif stringify_value(prop.value) != stringify_value(definition.default_value):
            usage.overrides.append(key)
    return usage


@dataclass
class PropertyFindings:
    no_properties: List[Issue] = field(default_factory=list)
    property_names: List[Issue] = field(default_factory=list)
    option_names: List[Issue] = field(default_factory=list)
    defaults_only: List[Issue] = field(default_factory=list)
    unknown_properties: List[Issue] = field(default_factory=list)
    total_components: int = 0
    total_instances: int = 0
    overridden_instances: int = 0
    unresolved_instances: int = 0

    @property
    def override_rate(self) -> float:
        if self.total_instances == 0:
            return 0.0
        return round(100.0 * self.overridden_instances / self.total_instances, 1)


def _check_definitions(node: FigmaNode, findings: PropertyFindings, tables: NamingTables) -> None:
    definitions = node.component_property_definitions or {}
    findings.total_components += 1
    path = build_parent_path(node) or None

    if not definitions:
        findings.no_properties.append(Issue(
            id=node.id, category=NO_PROPERTIES, label="Component",
            name=node.name, node_type=node.type.value, path=path,
        ))
        return

    for prop_name, definition in definitions.items():
        result = apply_naming_rules(prop_name, tables)
        if not result.ok:
            findings.property_names.append(Issue(
                id=node.id, category=PROPERTY_NAMES, label=result.reason,
                name=prop_name, suggestion=result.suggestion or None,
                node_type=node.type.value, path=node.name,
            ))
        if definition.type != PropertyType.VARIANT:
            continue
        for option in definition.variant_options or []:
            option_result = apply_naming_rules(option, tables)
            if not option_result.ok:
                findings.option_names.append(Issue(
                    id=node.id, category=OPTION_NAMES, label=option_result.reason,
                    name=option, suggestion=option_result.suggestion or None,
                    node_type=node.type.value, path=f"{node.name} > {prop_name}",
                ))


async def classify_properties(
    roots: Sequence[FigmaNode],
    provider: DocumentProvider,
    tables: NamingTables = DEFAULT_TABLES,
    config: LintConfig = DEFAULT_CONFIG,
    progress: Optional[ProgressReporter] = None,
) -> PropertyFindings:
    findings = PropertyFindings()
    on_tick = progress.ticker(50, "{visited:,} nodes checked...") if progress else None

    async for node in walk_async(roots, yield_every=config.yield_every, on_tick=on_tick):
        if supports_property_definitions(node):
            _check_definitions(node, findings, tables)

        if node.type != NodeType.INSTANCE:
            continue
        findings.total_instances += 1
        component = await provider.resolve_main_component(node)
        if component is None:
            findings.unresolved_instances += 1
            logger.debug(f"⚠️ Main component unavailable for instance {node.id}; skipping")
            continue

        usage = evaluate_instance(node, component)
        if usage.unknown:
            findings.unknown_properties.append(Issue(
                id=node.id, category=UNKNOWN_PROPERTIES, label="Unknown property",
                name=f"{node.name} ({component.name})", value=", ".join(usage.unknown),
                node_type=node.type.value,
            ))
        if usage.has_override:
            findings.overridden_instances += 1
        elif node.component_properties:
            findings.defaults_only.append(Issue(
                id=node.id, category=DEFAULTS_ONLY, label="Instance",
                name=f"{node.name} ({component.name})", node_type=node.type.value,
                path=build_parent_path(node) or None,
            ))

    logger.info(
        f"🧩 Properties: {findings.total_components} component(s), {findings.total_instances} instance(s), "
        f"override rate {findings.override_rate}%"
    )
    return findings


async def scan_properties(
    provider: DocumentProvider,
    scope: Scope = Scope.CURRENT_PAGE,
    node_ids: Optional[Sequence[str]] = None,
    config: LintConfig = DEFAULT_CONFIG,
    tables: NamingTables = DEFAULT_TABLES,
    progress: Optional[ProgressReporter] = None,
) -> ScanReport:
    progress = progress or ProgressReporter()
    await progress.update(0, "Scanning component properties...")

    roots = await resolve_scope(provider, scope, node_ids)
    findings = await classify_properties(roots, provider, tables=tables, config=config, progress=progress)

    assembler = ReportAssembler("properties", max_items=config.max_items)
    assembler.add_group(NO_PROPERTIES, "Components Without Properties", findings.no_properties)
    assembler.add_group(PROPERTY_NAMES, "Property Naming Issues", findings.property_names)
    assembler.add_group(OPTION_NAMES, "Variant Option Naming Issues", findings.option_names)
    assembler.add_group(DEFAULTS_ONLY, "Instances Using Only Defaults", findings.defaults_only)
    assembler.add_group(UNKNOWN_PROPERTIES, "Instances With Unknown Properties", findings.unknown_properties)
    assembler.add_stats(
        total_components=findings.total_components,
        total_instances=findings.total_instances,
        overridden_instances=findings.overridden_instances,
        unresolved_instances=findings.unresolved_instances,
        override_rate=findings.override_rate,
    )

    await progress.update(100, "Done")
    return assembler.build()
