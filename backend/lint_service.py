"""
Lint Service - request dispatcher.

Maps plugin requests ("scan-names", "rename-node", ...) onto scans and
remediation actions and emits exactly one terminal message per request:
a `<scan>-results` report, a `mutation-result`, or an `error`. Progress
events may precede the terminal message of a scan.
"""

import logging
from typing import Any, Dict, Optional

from document_provider import DocumentProvider, Scope, ScanPreconditionError
from lint_config import DEFAULT_CONFIG, LintConfig
from name_heuristics import DEFAULT_TABLES, NamingTables
from remediation import (
    apply_renames,
    bind_variable,
    delete_node,
    rename_node,
    rename_property,
    reorder_properties,
)
from report import Emit, ErrorEvent, ProgressReporter
from scan_hidden_layers import scan_hidden_layers
from scan_hierarchy import scan_hierarchy
from scan_names import scan_names
from scan_properties import scan_properties
from scan_variables import scan_variables

logger = logging.getLogger(__name__)

MESSAGE_TYPE_SCAN_PROPERTIES = "scan-properties"
MESSAGE_TYPE_SCAN_LAYERS = "scan-layers"
MESSAGE_TYPE_SCAN_VARIABLES = "scan-variables"
MESSAGE_TYPE_SCAN_NAMES = "scan-names"
MESSAGE_TYPE_SCAN_HIERARCHY = "scan-hierarchy"
MESSAGE_TYPE_RENAME_NODE = "rename-node"
MESSAGE_TYPE_RENAME_NODES = "rename-nodes"
MESSAGE_TYPE_DELETE_NODE = "delete-node"
MESSAGE_TYPE_BIND_VARIABLE = "bind-variable"
MESSAGE_TYPE_REORDER_PROPERTIES = "reorder-properties"
MESSAGE_TYPE_RENAME_PROPERTY = "rename-property"

SCAN_FUNCTIONS = {
    MESSAGE_TYPE_SCAN_PROPERTIES: scan_properties,
    MESSAGE_TYPE_SCAN_LAYERS: scan_hidden_layers,
    MESSAGE_TYPE_SCAN_VARIABLES: scan_variables,
    MESSAGE_TYPE_SCAN_NAMES: scan_names,
}


class LintService:
    def __init__(
        self,
        provider: DocumentProvider,
        emit: Emit,
        config: Optional[LintConfig] = None,
        tables: NamingTables = DEFAULT_TABLES,
    ):
        self.provider = provider
        self.emit = emit
        self.config = config or DEFAULT_CONFIG
        self.tables = tables

    def handles(self, msg_type: Optional[str]) -> bool:
        return msg_type in SCAN_FUNCTIONS or msg_type in self._handlers()

    def _handlers(self):
        return {
            MESSAGE_TYPE_SCAN_HIERARCHY: self._handle_scan_hierarchy,
            MESSAGE_TYPE_RENAME_NODE: self._handle_rename_node,
            MESSAGE_TYPE_RENAME_NODES: self._handle_rename_nodes,
            MESSAGE_TYPE_DELETE_NODE: self._handle_delete_node,
            MESSAGE_TYPE_BIND_VARIABLE: self._handle_bind_variable,
            MESSAGE_TYPE_REORDER_PROPERTIES: self._handle_reorder_properties,
            MESSAGE_TYPE_RENAME_PROPERTY: self._handle_rename_property,
        }

    async def handle(self, message: Dict[str, Any]) -> None:
        """Run one request. Any failure becomes a single error event."""
        msg_type = message.get("type")
        if msg_type in SCAN_FUNCTIONS:
            handler = self._handle_scan
        else:
            handler = self._handlers().get(msg_type)
        if handler is None:
            logger.debug(f"Ignoring unknown request type: {msg_type}")
            return

        logger.info(f"🔍 Handling {msg_type}")
        try:
            await handler(message)
        except ScanPreconditionError as e:
            logger.warning(f"⚠️ {msg_type} precondition failed: {e}")
            await self.emit(ErrorEvent(message=str(e)).model_dump())
        except Exception as e:
            logger.exception(f"❌ {msg_type} failed")
            await self.emit(ErrorEvent(message=str(e) or e.__class__.__name__).model_dump())

    async def _handle_scan(self, message: Dict[str, Any]) -> None:
        scan = SCAN_FUNCTIONS[message["type"]]
        scope = Scope(message.get("scope") or Scope.CURRENT_PAGE.value)
        report = await scan(
            self.provider,
            scope=scope,
            node_ids=message.get("nodeIds"),
            config=self.config,
            tables=self.tables,
            progress=ProgressReporter(self.emit),
        )
        await self.emit(report.to_message())

    async def _handle_scan_hierarchy(self, message: Dict[str, Any]) -> None:
        report = await scan_hierarchy(self.provider, config=self.config, progress=ProgressReporter(self.emit))
        await self.emit(report.to_message())

    async def _handle_rename_node(self, message: Dict[str, Any]) -> None:
        result = await rename_node(self.provider, message["nodeId"], message.get("name", ""))
        await self.emit(result.to_message())

    async def _handle_rename_nodes(self, message: Dict[str, Any]) -> None:
        renames = [(item["nodeId"], item.get("name", "")) for item in message.get("renames") or []]
        result = await apply_renames(self.provider, renames)
        await self.emit(result.to_message())

    async def _handle_delete_node(self, message: Dict[str, Any]) -> None:
        result = await delete_node(self.provider, message["nodeId"])
        await self.emit(result.to_message())

    async def _handle_bind_variable(self, message: Dict[str, Any]) -> None:
        result = await bind_variable(self.provider, message["nodeId"], message["slotKey"], message["variableId"])
        await self.emit(result.to_message())

    async def _handle_reorder_properties(self, message: Dict[str, Any]) -> None:
        result = await reorder_properties(self.provider, message["nodeId"], message.get("order"))
        await self.emit(result.to_message())

    async def _handle_rename_property(self, message: Dict[str, Any]) -> None:
        result = await rename_property(self.provider, message["nodeId"], message["oldName"], message["newName"])
        await self.emit(result.to_message())
