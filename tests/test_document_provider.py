"""
Tests for scope resolution and the snapshot-backed provider.
"""

import asyncio

import pytest

from document_provider import (
    Scope,
    ScanPreconditionError,
    SnapshotDocumentProvider,
    resolve_scope,
)
from figma_communicator import ToolExecutionError
from figma_nodes import NodeType, build_parent_path
from tests.factories import SNAPSHOT


@pytest.fixture
def provider():
    return SnapshotDocumentProvider.from_json(SNAPSHOT)


class TestSnapshotProvider:

    def test_scopes(self, provider):
        def ids(scope):
            return [n.id for n in asyncio.run(provider.list_roots(scope))]

        assert ids(Scope.CURRENT_PAGE) == ["2:1"]
        assert ids(Scope.ALL_PAGES) == ["1:1", "2:1"]
        assert ids(Scope.SELECTION) == ["2:2"]

    def test_node_scopes_go_through_lookup(self, provider):
        with pytest.raises(ValueError):
            asyncio.run(provider.list_roots(Scope.NODE))

    def test_camel_case_fields(self, provider):
        login = asyncio.run(provider.get_node_by_id("2:1"))
        assert login.has_auto_layout
        assert login.item_spacing == 12
        text = login.children[0]
        assert text.type == NodeType.TEXT
        assert build_parent_path(text) == "login"

    def test_variables(self, provider):
        collections = asyncio.run(provider.list_variable_collections())
        variable = asyncio.run(provider.resolve_variable("v1"))
        assert variable.value_for_mode(collections[0].default_mode_id) == 12
        assert variable.value_for_mode("unknown") == 12
        assert asyncio.run(provider.resolve_variable("v404")) is None

    def test_current_page_falls_back_to_first(self):
        data = {**SNAPSHOT, "currentPageId": None}
        assert SnapshotDocumentProvider.from_json(data).current_page.name == "Cover"

    def test_remove_updates_selection(self, provider):
        asyncio.run(provider.remove("2:1"))
        assert provider.snapshot.selection == []
        assert asyncio.run(provider.list_roots(Scope.CURRENT_PAGE)) == []

    def test_mutation_errors(self, provider):
        with pytest.raises(ToolExecutionError) as exc_info:
            asyncio.run(provider.set_name("9:9", "x"))
        assert exc_info.value.code == "node_not_found"
        with pytest.raises(ToolExecutionError) as exc_info:
            asyncio.run(provider.set_bound_variable("2:1", "itemSpacing", "v404"))
        assert exc_info.value.code == "variable_not_found"


class TestResolveScope:

    def test_explicit_ids_in_order_skipping_unknown(self, provider):
        roots = asyncio.run(resolve_scope(provider, Scope.NODES, ["2:2", "nope", "1:1"]))
        assert [n.id for n in roots] == ["2:2", "1:1"]

    def test_single_node_scope_takes_first_id(self, provider):
        roots = asyncio.run(resolve_scope(provider, Scope.NODE, ["2:2", "1:1"]))
        assert [n.id for n in roots] == ["2:2"]

    def test_required_selection(self, provider):
        provider.snapshot.selection = []
        with pytest.raises(ScanPreconditionError):
            asyncio.run(resolve_scope(provider, Scope.SELECTION, require_selection=True))
        assert asyncio.run(resolve_scope(provider, Scope.SELECTION)) == []
