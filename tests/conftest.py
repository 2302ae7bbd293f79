"""
Shared pytest fixtures for the lint test suite.

Documents are built in memory with DocumentFactory and served through a
SnapshotDocumentProvider, so no plugin or bridge connection is needed.

Usage in tests:
    def test_something(figma):
        card = figma.frame("card", figma.text("Title", "Hello"))
        provider = figma.page_provider(card)
        report = asyncio.run(scan_names(provider))

    def test_with_events(figma, emitted, emit):
        service = LintService(figma.page_provider(), emit)
        asyncio.run(service.handle({"type": "scan-names"}))
        assert emitted[-1]["type"] == "names-results"
"""

import pytest

from lint_config import LintConfig
from tests.factories import DocumentFactory


@pytest.fixture
def figma():
    """Empty DocumentFactory with its own id sequence and variable store."""
    return DocumentFactory()


@pytest.fixture
def emitted():
    """Messages captured by the `emit` fixture, in send order."""
    return []


@pytest.fixture
def emit(emitted):
    """Async emit callback recording every outbound message."""
    async def _emit(payload):
        emitted.append(payload)
    return _emit


@pytest.fixture
def small_config():
    """Config with tiny caps and yield intervals to exercise capping and ticking."""
    return LintConfig(max_items=2, frequent_name_threshold=2, yield_every=2, hidden_yield_every=2)
