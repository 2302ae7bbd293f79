"""
Tests for report assembly and progress events.
"""

import asyncio

from report import Issue, ProgressReporter, ReportAssembler


def _issues(count, category="demo"):
    return [Issue(id=f"1:{i}", category=category, label="Frame", name=f"Frame {i}") for i in range(count)]


class TestReportAssembler:

    def test_count_is_total_items_capped(self):
        assembler = ReportAssembler("names", max_items=50)
        assembler.add_group("demo", "Demo", _issues(120))
        group = assembler.build().group("demo")
        assert group.count == 120
        assert len(group.items) == 50
        assert group.items[0].id == "1:0"

    def test_empty_groups_omitted(self):
        assembler = ReportAssembler("layers")
        assembler.add_group("empty", "Nothing", [])
        assembler.add_group("demo", "Demo", _issues(1))
        report = assembler.build()
        assert [g.category for g in report.issues] == ["demo"]
        assert report.group("empty") is None

    def test_message_shape(self):
        assembler = ReportAssembler("variables")
        assembler.add_group("demo", "Demo", [
            Issue(id="1:1", category="demo", label="paddingTop", name="stack", value=12.0, suggestion_id="VariableID:3"),
        ])
        assembler.add_stats(visited=3)
        message = assembler.build().to_message()
        assert message["type"] == "variables-results"
        assert message["scan"] == "variables"
        assert message["stats"] == {"visited": 3}
        assert message["issues"][0]["items"][0] == {
            "id": "1:1",
            "category": "demo",
            "label": "paddingTop",
            "name": "stack",
            "value": 12.0,
            "suggestionId": "VariableID:3",
        }


class TestProgressReporter:

    def test_monotonic_and_clamped(self, emit, emitted):
        progress = ProgressReporter(emit)

        async def run():
            await progress.update(40, "a")
            await progress.update(10, "b")
            await progress.update(250, "c")

        asyncio.run(run())
        assert [e["percent"] for e in emitted] == [40, 40, 100]
        assert [e["label"] for e in emitted] == ["a", "b", "c"]
        assert all(e["type"] == "progress" for e in emitted)

    def test_ticker_formats_visited(self, emit, emitted):
        tick = ProgressReporter(emit).ticker(50, "{visited:,} nodes scanned...")
        asyncio.run(tick(12000))
        assert emitted == [{"type": "progress", "percent": 50, "label": "12,000 nodes scanned..."}]

    def test_without_emit(self):
        progress = ProgressReporter()
        asyncio.run(progress.update(30, "quiet"))
        assert progress.percent == 30
