"""
Hidden layer scan.

Every hidden node is sorted into exactly one bucket:

- expected: sits inside a component, component set or instance (unused
  variant states and toggled-off slots are hidden on purpose)
- artifact: zero-sized, or still carrying a stock name such as "Vector" or
  "Union" (leftovers of boolean operations and vector edits)
- suspicious: anything else

Only the topmost hidden node of a hidden subtree is reported.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from document_provider import DocumentProvider, Scope, resolve_scope
from figma_nodes import FigmaNode, build_parent_path, has_component_ancestor
from lint_config import DEFAULT_CONFIG, LintConfig
from name_heuristics import DEFAULT_TABLES, NamingTables
from report import Issue, ProgressReporter, ReportAssembler, ScanReport
from tree_walker import walk_async

logger = logging.getLogger(__name__)

EXPECTED = "expected"
ARTIFACT = "artifact"
SUSPICIOUS = "suspicious"


@dataclass
class HiddenLayerFindings:
    expected: List[FigmaNode] = field(default_factory=list)
    artifact: List[FigmaNode] = field(default_factory=list)
    suspicious: List[FigmaNode] = field(default_factory=list)
    visited: int = 0

    @property
    def total_hidden(self) -> int:
        return len(self.expected) + len(self.artifact) + len(self.suspicious)


def classify_hidden_node(node: FigmaNode, tables: NamingTables = DEFAULT_TABLES) -> str:
    if has_component_ancestor(node):
        return EXPECTED
    if (node.width == 0 and node.height == 0) or node.name in tables.artifact_names:
        return ARTIFACT
    return SUSPICIOUS


def _is_hidden(node: FigmaNode) -> bool:
    return not node.visible


async def classify_hidden_layers(
    roots: Sequence[FigmaNode],
    tables: NamingTables = DEFAULT_TABLES,
    config: LintConfig = DEFAULT_CONFIG,
    progress: Optional[ProgressReporter] = None,
) -> HiddenLayerFindings:
    findings = HiddenLayerFindings()
    on_tick = progress.ticker(50, "{visited:,} nodes scanned...") if progress else None

    async for node in walk_async(roots, prune=_is_hidden, yield_every=config.hidden_yield_every, on_tick=on_tick):
        findings.visited += 1
        if node.visible:
            continue
        bucket = classify_hidden_node(node, tables)
        getattr(findings, bucket).append(node)

    logger.info(
        f"🙈 Hidden layers: {len(findings.suspicious)} suspicious, {len(findings.artifact)} artifact, "
        f"{len(findings.expected)} expected ({findings.visited} nodes visited)"
    )
    return findings


def _hidden_issue(node: FigmaNode, category: str) -> Issue:
    return Issue(
        id=node.id,
        category=category,
        label="Hidden",
        name=node.name,
        node_type=node.type.value,
        path=build_parent_path(node) or None,
    )


async def scan_hidden_layers(
    provider: DocumentProvider,
    scope: Scope = Scope.CURRENT_PAGE,
    node_ids: Optional[Sequence[str]] = None,
    config: LintConfig = DEFAULT_CONFIG,
    tables: NamingTables = DEFAULT_TABLES,
    progress: Optional[ProgressReporter] = None,
) -> ScanReport:
    progress = progress or ProgressReporter()
    await progress.update(0, "Starting hidden layer scan...")

    roots = await resolve_scope(provider, scope, node_ids)
    findings = await classify_hidden_layers(roots, tables=tables, config=config, progress=progress)

    assembler = ReportAssembler("layers", max_items=config.max_items)
    assembler.add_group(SUSPICIOUS, "Suspicious Hidden Layers", [_hidden_issue(n, SUSPICIOUS) for n in findings.suspicious])
    assembler.add_group(ARTIFACT, "Hidden Artifacts", [_hidden_issue(n, ARTIFACT) for n in findings.artifact])
    assembler.add_group(EXPECTED, "Expected (In Components)", [_hidden_issue(n, EXPECTED) for n in findings.expected])
    assembler.add_stats(
        visited=findings.visited,
        hidden=findings.total_hidden,
        suspicious=len(findings.suspicious),
        artifact=len(findings.artifact),
        expected=len(findings.expected),
    )

    await progress.update(100, "Done")
    return assembler.build()
