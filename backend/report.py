"""
Report - scan results and UI events.

Scans produce raw findings; the ReportAssembler turns them into capped,
titled issue groups. Group counts always carry the full number of findings,
the item list carries at most `max_items` of them.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Sequence, Union

from pydantic import Field

from figma_nodes import FigmaModel

logger = logging.getLogger(__name__)

Emit = Callable[[Dict[str, Any]], Awaitable[None]]


class Issue(FigmaModel):
    id: str
    category: str
    label: str
    name: str
    node_type: Optional[str] = None
    suggestion: Optional[str] = None
    suggestion_id: Optional[str] = None
    value: Optional[Union[float, str]] = None
    path: Optional[str] = None
    tags: Optional[List[str]] = None


class IssueGroup(FigmaModel):
    title: str
    category: str
    count: int
    items: List[Issue]


class ScanReport(FigmaModel):
    type: str
    scan: str
    issues: List[IssueGroup] = Field(default_factory=list)
    stats: Dict[str, Any] = Field(default_factory=dict)

    def group(self, category: str) -> Optional[IssueGroup]:
        for group in self.issues:
            if group.category == category:
                return group
        return None

    def to_message(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ProgressEvent(FigmaModel):
    type: Literal["progress"] = "progress"
    percent: int
    label: str


class ErrorEvent(FigmaModel):
    type: Literal["error"] = "error"
    message: str


class ReportAssembler:
    """Collects issue lists for one scan and builds the terminal report."""

    def __init__(self, scan: str, max_items: int = 50):
        self.scan = scan
        self.max_items = max_items
        self._groups: List[IssueGroup] = []
        self._stats: Dict[str, Any] = {}

    def add_group(self, category: str, title: str, items: Sequence[Issue]) -> None:
        if not items:
            return
        self._groups.append(IssueGroup(
            title=title,
            category=category,
            count=len(items),
            items=list(items[: self.max_items]),
        ))

    def add_stats(self, **stats: Any) -> None:
        self._stats.update(stats)

    def build(self) -> ScanReport:
        report = ScanReport(type=f"{self.scan}-results", scan=self.scan, issues=self._groups, stats=self._stats)
        total = sum(group.count for group in self._groups)
        logger.info(f"📋 {self.scan} report: {len(self._groups)} group(s), {total} issue(s)")
        return report


class ProgressReporter:
    """Emits progress events for a single scan; percent never goes backwards."""

    def __init__(self, emit: Optional[Emit] = None):
        self.emit = emit
        self.percent = 0

    async def update(self, percent: int, label: str) -> None:
        self.percent = max(self.percent, min(100, int(percent)))
        if self.emit is None:
            return
        await self.emit(ProgressEvent(percent=self.percent, label=label).model_dump())

    def ticker(self, percent: int, template: str) -> Callable[[int], Awaitable[None]]:
        """Callback for walk_async that reports `template.format(visited=...)` at a fixed percent."""
        async def tick(visited: int) -> None:
            await self.update(percent, template.format(visited=visited))
        return tick
