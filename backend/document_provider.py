"""
Document Provider - Host Document Access

The linter never touches the Figma scene graph directly. Everything it reads
or mutates goes through a DocumentProvider:

- SnapshotDocumentProvider serves an exported JSON snapshot held in memory
  (offline linting and tests). Mutations are applied to the in-memory models.
- PluginDocumentProvider forwards every call to the Figma plugin through the
  FigmaCommunicator RPC layer.

Mutations raise ToolExecutionError with a structured payload on failure.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from pydantic import Field

from figma_communicator import FigmaCommunicator, ToolExecutionError
from figma_nodes import (
    FigmaModel,
    FigmaNode,
    NodeType,
    PropertyDefinition,
    Variable,
    VariableAlias,
    VariableCollection,
    supports_property_definitions,
)
from tree_walker import walk

logger = logging.getLogger(__name__)


class Scope(str, Enum):
    NODE = "node"
    NODES = "nodes"
    SELECTION = "selection"
    CURRENT_PAGE = "current_page"
    ALL_PAGES = "all_pages"


class ScanPreconditionError(Exception):
    """A scan was requested against a document state it cannot run on."""


class DocumentProvider(ABC):
    """Narrow contract between the lint engine and the host document."""

    @abstractmethod
    async def list_roots(self, scope: Scope) -> List[FigmaNode]:
        """Top-level nodes for selection, current page or all pages scopes."""

    @abstractmethod
    async def get_node_by_id(self, node_id: str) -> Optional[FigmaNode]:
        ...

    @abstractmethod
    async def resolve_main_component(self, instance: FigmaNode) -> Optional[FigmaNode]:
        """The component an instance was created from, or None when unreachable."""

    @abstractmethod
    async def list_variable_collections(self) -> List[VariableCollection]:
        ...

    @abstractmethod
    async def resolve_variable(self, variable_id: str) -> Optional[Variable]:
        ...

    @abstractmethod
    async def set_name(self, node_id: str, name: str) -> None:
        ...

    @abstractmethod
    async def remove(self, node_id: str) -> None:
        ...

    @abstractmethod
    async def set_bound_variable(self, node_id: str, slot_key: str, variable_id: str) -> None:
        """Bind a variable to a node field. Paint slots are addressed as `fills/<index>` or `strokes/<index>`."""

    @abstractmethod
    async def set_property_definitions(self, node_id: str, definitions: Dict[str, PropertyDefinition]) -> None:
        """Replace a component's property definitions with a new ordered mapping."""

    @abstractmethod
    async def rename_property(self, node_id: str, old_name: str, new_name: str) -> None:
        """Rename a property definition in place and re-key the values instances hold for it."""


async def resolve_scope(
    provider: DocumentProvider,
    scope: Scope,
    node_ids: Optional[Sequence[str]] = None,
    require_selection: bool = False,
) -> List[FigmaNode]:
    """Turn a scan scope into the ordered list of roots to walk.

    NODE and NODES scopes look the ids up one by one, in the order given;
    unknown ids are skipped. With `require_selection`, an empty selection is a
    precondition failure.
    """
    if scope in (Scope.NODE, Scope.NODES):
        ids = list(node_ids or [])
        if scope == Scope.NODE:
            ids = ids[:1]
        roots = []
        for node_id in ids:
            node = await provider.get_node_by_id(node_id)
            if node is None:
                logger.warning(f"⚠️ Scope node not found: {node_id}")
                continue
            roots.append(node)
    else:
        roots = await provider.list_roots(scope)

    if require_selection and not roots:
        raise ScanPreconditionError("Select a layer to inspect first.")
    return roots


def _split_paint_slot(slot_key: str) -> Optional[tuple]:
    field_name, _, index = slot_key.partition("/")
    if field_name in ("fills", "strokes") and index.isdigit():
        return field_name, int(index)
    return None


def _rekeyed(mapping: Dict[str, Any], old_key: str, new_key: str) -> Dict[str, Any]:
    return {(new_key if key == old_key else key): value for key, value in mapping.items()}


class DocumentSnapshot(FigmaModel):
    """An exported document: the node tree, the UI state and local variables."""

    document: FigmaNode
    current_page_id: Optional[str] = None
    selection: List[str] = Field(default_factory=list)
    variable_collections: List[VariableCollection] = Field(default_factory=list)
    variables: List[Variable] = Field(default_factory=list)


class SnapshotDocumentProvider(DocumentProvider):
    """In-memory provider over a DocumentSnapshot."""

    def __init__(self, snapshot: DocumentSnapshot):
        self.snapshot = snapshot
        self._nodes: Dict[str, FigmaNode] = {node.id: node for node in walk([snapshot.document])}
        self._variables: Dict[str, Variable] = {v.id: v for v in snapshot.variables}
        logger.info(f"🗂️ Snapshot loaded ({len(self._nodes)} nodes, {len(self._variables)} variables)")

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "SnapshotDocumentProvider":
        return cls(DocumentSnapshot.model_validate(data))

    @property
    def pages(self) -> List[FigmaNode]:
        return [n for n in self.snapshot.document.children or [] if n.type == NodeType.PAGE]

    @property
    def current_page(self) -> Optional[FigmaNode]:
        pages = self.pages
        for page in pages:
            if page.id == self.snapshot.current_page_id:
                return page
        return pages[0] if pages else None

    async def list_roots(self, scope: Scope) -> List[FigmaNode]:
        if scope == Scope.SELECTION:
            return [self._nodes[i] for i in self.snapshot.selection if i in self._nodes]
        if scope == Scope.ALL_PAGES:
            return [child for page in self.pages for child in page.children or []]
        if scope == Scope.CURRENT_PAGE:
            page = self.current_page
            return list(page.children or []) if page else []
        raise ValueError(f"list_roots does not handle scope {scope.value!r}")

    async def get_node_by_id(self, node_id: str) -> Optional[FigmaNode]:
        return self._nodes.get(node_id)

    async def resolve_main_component(self, instance: FigmaNode) -> Optional[FigmaNode]:
        if not instance.main_component_id:
            return None
        component = self._nodes.get(instance.main_component_id)
        if component is None or component.type != NodeType.COMPONENT:
            return None
        return component

    async def list_variable_collections(self) -> List[VariableCollection]:
        return list(self.snapshot.variable_collections)

    async def resolve_variable(self, variable_id: str) -> Optional[Variable]:
        return self._variables.get(variable_id)

    def _editable(self, node_id: str) -> FigmaNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise ToolExecutionError({"code": "node_not_found", "message": f"Node {node_id} not found", "details": {"node_id": node_id}})
        if node.remote or any(a.remote for a in node.ancestors()):
            raise ToolExecutionError({"code": "node_locked", "message": f"Node {node_id} belongs to a library and cannot be edited", "details": {"node_id": node_id}})
        return node

    async def set_name(self, node_id: str, name: str) -> None:
        self._editable(node_id).name = name

    async def remove(self, node_id: str) -> None:
        node = self._editable(node_id)
        parent = node.parent
        if parent is None or node.type in (NodeType.PAGE, NodeType.DOCUMENT):
            raise ToolExecutionError({"code": "invalid_parameter", "message": f"Node {node_id} cannot be removed", "details": {"node_id": node_id}})
        parent.children = [c for c in parent.children or [] if c.id != node_id]
        for gone in walk([node]):
            self._nodes.pop(gone.id, None)
        self.snapshot.selection = [i for i in self.snapshot.selection if i in self._nodes]

    async def set_bound_variable(self, node_id: str, slot_key: str, variable_id: str) -> None:
        node = self._editable(node_id)
        if variable_id not in self._variables:
            raise ToolExecutionError({"code": "variable_not_found", "message": f"Variable {variable_id} not found", "details": {"variable_id": variable_id}})
        alias = VariableAlias(id=variable_id)
        paint_slot = _split_paint_slot(slot_key)
        if paint_slot:
            field_name, index = paint_slot
            paints = getattr(node, field_name) or []
            if index >= len(paints):
                raise ToolExecutionError({"code": "invalid_parameter", "message": f"Node {node_id} has no paint at {slot_key}", "details": {"slot_key": slot_key}})
            paints[index].bound_variables = {**(paints[index].bound_variables or {}), "color": alias}
            return
        node.bound_variables = {**(node.bound_variables or {}), slot_key: alias}

    async def set_property_definitions(self, node_id: str, definitions: Dict[str, PropertyDefinition]) -> None:
        node = self._editable(node_id)
        if not supports_property_definitions(node):
            raise ToolExecutionError({"code": "invalid_parameter", "message": f"Node {node_id} does not own property definitions", "details": {"node_id": node_id}})
        node.component_property_definitions = dict(definitions)

    async def rename_property(self, node_id: str, old_name: str, new_name: str) -> None:
        node = self._editable(node_id)
        definitions = node.component_property_definitions or {}
        if not supports_property_definitions(node) or old_name not in definitions:
            raise ToolExecutionError({"code": "property_not_found", "message": f"Node {node_id} has no property {old_name}", "details": {"node_id": node_id, "property": old_name}})
        node.component_property_definitions = _rekeyed(definitions, old_name, new_name)

        # Variants of a set share the set's definitions
        owners = {node.id}
        if node.type == NodeType.COMPONENT_SET:
            owners.update(variant.id for variant in node.children or [])
        for instance in self._nodes.values():
            if instance.type != NodeType.INSTANCE or instance.main_component_id not in owners:
                continue
            if old_name in (instance.component_properties or {}):
                instance.component_properties = _rekeyed(instance.component_properties, old_name, new_name)


class PluginDocumentProvider(DocumentProvider):
    """Provider backed by the live document inside the Figma plugin."""

    def __init__(self, communicator: FigmaCommunicator):
        self.communicator = communicator

    async def _call(self, command: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            logger.debug(f"🛰️ {command} {params or {}}")
            return await self.communicator.send_command(command, params or {})
        except ToolExecutionError:
            raise
        except (asyncio.TimeoutError, RuntimeError, OSError) as e:
            logger.error(f"❌ Communication/system error in {command}: {str(e)}")
            raise ToolExecutionError({
                "code": "communication_error",
                "message": f"Failed to call {command}: {str(e)}",
                "details": {"command": command}
            })

    async def _lookup(self, command: str, params: Dict[str, Any]) -> Any:
        try:
            return await self._call(command, params)
        except ToolExecutionError as te:
            if te.code in ("node_not_found", "variable_not_found"):
                return None
            raise

    async def list_roots(self, scope: Scope) -> List[FigmaNode]:
        result = await self._call("get_scope_tree", {"scope": scope.value})
        roots = [FigmaNode.model_validate(raw) for raw in (result or {}).get("roots", [])]
        logger.info(f"🧭 Fetched {len(roots)} root(s) for scope {scope.value}")
        return roots

    async def get_node_by_id(self, node_id: str) -> Optional[FigmaNode]:
        result = await self._lookup("get_node", {"node_id": node_id})
        if not result or not result.get("node"):
            return None
        node = FigmaNode.model_validate(result["node"])
        # Ancestor summaries come nearest first, up to the page
        child = node
        for summary in result.get("ancestors") or []:
            ancestor = FigmaNode.model_validate({**summary, "children": None})
            ancestor.adopt(child)
            child = ancestor
        if child is not node:
            node.keep_alive(child)
        return node

    async def resolve_main_component(self, instance: FigmaNode) -> Optional[FigmaNode]:
        result = await self._lookup("get_main_component", {"node_id": instance.id})
        if not result or not result.get("component"):
            return None
        component = FigmaNode.model_validate(result["component"])
        if result.get("component_set"):
            container = FigmaNode.model_validate(result["component_set"])
            for variant in container.children or []:
                if variant.id == component.id:
                    variant.keep_alive(container)
                    return variant
        return component

    async def list_variable_collections(self) -> List[VariableCollection]:
        result = await self._call("get_variable_collections")
        return [VariableCollection.model_validate(raw) for raw in (result or {}).get("collections", [])]

    async def resolve_variable(self, variable_id: str) -> Optional[Variable]:
        result = await self._lookup("get_variable", {"variable_id": variable_id})
        if not result or not result.get("variable"):
            return None
        return Variable.model_validate(result["variable"])

    async def set_name(self, node_id: str, name: str) -> None:
        await self._call("set_name", {"node_id": node_id, "name": name})

    async def remove(self, node_id: str) -> None:
        await self._call("remove_node", {"node_id": node_id})

    async def set_bound_variable(self, node_id: str, slot_key: str, variable_id: str) -> None:
        await self._call("set_bound_variable", {"node_id": node_id, "slot_key": slot_key, "variable_id": variable_id})

    async def set_property_definitions(self, node_id: str, definitions: Dict[str, PropertyDefinition]) -> None:
        payload = [
            {"name": name, **definition.model_dump(by_alias=True, exclude_none=True, mode="json")}
            for name, definition in definitions.items()
        ]
        await self._call("set_property_definitions", {"node_id": node_id, "definitions": payload})

    async def rename_property(self, node_id: str, old_name: str, new_name: str) -> None:
        await self._call("rename_property", {"node_id": node_id, "old_name": old_name, "new_name": new_name})
