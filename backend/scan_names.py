"""
Layer naming scan.

Walks the scoped document, classifies every layer name and collects the
offenders into (overlapping) buckets. Base names that recur across the scope
and are themselves well formed become the pool for fuzzy suggestions, so
suggestions are only synthesized once the whole walk is done.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence

from document_provider import DocumentProvider, Scope, resolve_scope
from figma_nodes import FigmaNode, NodeType, build_parent_path
from lint_config import DEFAULT_CONFIG, LintConfig
from name_heuristics import (
    DEFAULT_TABLES,
    NameIssue,
    NamingTables,
    base_name,
    classify_name,
    frequent_good_names,
    suggest_replacement,
)
from report import Issue, ProgressReporter, ReportAssembler, ScanReport
from tree_walker import walk_async

logger = logging.getLogger(__name__)

DEFAULT_NAMES = "default-names"
SHORT_NAMES = "short-names"
CASING = "casing"
WHITESPACE = "whitespace"
AUTO_LAYOUT_DEFAULT = "auto-layout-default-names"

_BUCKETS = (
    (DEFAULT_NAMES, "Default Layer Names"),
    (SHORT_NAMES, "Names Too Short"),
    (CASING, "Names Not In camelCase"),
    (WHITESPACE, "Names With Extra Whitespace"),
    (AUTO_LAYOUT_DEFAULT, "Auto Layout Frames With Default Names"),
)

_SKIPPED_TYPES = frozenset({NodeType.DOCUMENT, NodeType.PAGE})


def naming_children(node: FigmaNode) -> List[FigmaNode]:
    """Children to visit for the naming walk.

    Instance internals belong to their component and are skipped. The variant
    components of a set are skipped too, but their own children are visited.
    """
    if node.type == NodeType.INSTANCE:
        return []
    if node.type == NodeType.COMPONENT_SET:
        return [grandchild for variant in node.children or [] for grandchild in variant.children or []]
    return list(node.children or [])


@dataclass
class FlaggedName:
    node: FigmaNode
    issues: FrozenSet[NameIssue]
    suggestion: str = ""


@dataclass
class NameFindings:
    flagged: List[FlaggedName] = field(default_factory=list)
    frequency: Counter = field(default_factory=Counter)
    frequent_names: List[str] = field(default_factory=list)
    visited: int = 0

    def bucket(self, category: str) -> List[FlaggedName]:
        return [item for item in self.flagged if category in bucket_categories(item)]


def bucket_categories(item: FlaggedName) -> List[str]:
    categories = []
    if NameIssue.DEFAULT_GENERIC in item.issues:
        categories.append(DEFAULT_NAMES)
    if NameIssue.TOO_SHORT in item.issues:
        categories.append(SHORT_NAMES)
    if NameIssue.NON_CANONICAL_CASING in item.issues:
        categories.append(CASING)
    if NameIssue.EXTRA_WHITESPACE in item.issues:
        categories.append(WHITESPACE)
    if NameIssue.DEFAULT_GENERIC in item.issues and item.node.has_auto_layout:
        categories.append(AUTO_LAYOUT_DEFAULT)
    return categories


async def classify_names(
    roots: Sequence[FigmaNode],
    tables: NamingTables = DEFAULT_TABLES,
    config: LintConfig = DEFAULT_CONFIG,
    progress: Optional[ProgressReporter] = None,
) -> NameFindings:
    findings = NameFindings()
    on_tick = progress.ticker(50, "{visited:,} layers checked...") if progress else None

    async for node in walk_async(roots, children_of=naming_children, yield_every=config.yield_every, on_tick=on_tick):
        if node.type in _SKIPPED_TYPES:
            continue
        findings.visited += 1
        findings.frequency[base_name(node.name)] += 1
        issues = classify_name(node.name, tables)
        if issues:
            findings.flagged.append(FlaggedName(node=node, issues=issues))

    findings.frequent_names = frequent_good_names(
        findings.frequency.items(), config.frequent_name_threshold, tables
    )
    if progress:
        await progress.update(80, f"Suggesting names for {len(findings.flagged):,} layers...")
    for item in findings.flagged:
        item.suggestion = suggest_replacement(item.node, findings.frequent_names, tables)

    logger.info(
        f"🏷️ Names: {len(findings.flagged)} flagged of {findings.visited} layers, "
        f"{len(findings.frequent_names)} frequent good name(s)"
    )
    return findings


def _name_issue(item: FlaggedName, category: str) -> Issue:
    return Issue(
        id=item.node.id,
        category=category,
        label=item.node.type.value,
        name=item.node.name,
        node_type=item.node.type.value,
        suggestion=item.suggestion or None,
        path=build_parent_path(item.node) or None,
        tags=sorted(issue.value for issue in item.issues),
    )


async def scan_names(
    provider: DocumentProvider,
    scope: Scope = Scope.CURRENT_PAGE,
    node_ids: Optional[Sequence[str]] = None,
    config: LintConfig = DEFAULT_CONFIG,
    tables: NamingTables = DEFAULT_TABLES,
    progress: Optional[ProgressReporter] = None,
) -> ScanReport:
    progress = progress or ProgressReporter()
    await progress.update(0, "Checking layer names...")

    roots = await resolve_scope(provider, scope, node_ids)
    findings = await classify_names(roots, tables=tables, config=config, progress=progress)

    assembler = ReportAssembler("names", max_items=config.max_items)
    buckets: Dict[str, List[Issue]] = {category: [] for category, _ in _BUCKETS}
    for item in findings.flagged:
        for category in bucket_categories(item):
            buckets[category].append(_name_issue(item, category))
    for category, title in _BUCKETS:
        assembler.add_group(category, title, buckets[category])
    assembler.add_stats(
        visited=findings.visited,
        flagged=len(findings.flagged),
        frequent_names=findings.frequent_names[: config.max_items],
    )

    await progress.update(100, "Done")
    return assembler.build()
