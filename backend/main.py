import json
import os
import sys
import signal
import logging
import asyncio
from typing import Dict, Any, Optional
import websockets
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from figma_communicator import FigmaCommunicator
from document_provider import PluginDocumentProvider, SnapshotDocumentProvider
from lint_config import LintConfig
from lint_service import LintService

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='[%(asctime)s] [lint] [%(levelname)s] %(message)s',
    datefmt='%Y-%m-%dT%H:%M:%S'
)
logger = logging.getLogger(__name__)

# Message type constants to avoid stringly-typed conditionals
MESSAGE_TYPE_JOIN = "join"
MESSAGE_TYPE_PING = "ping"
MESSAGE_TYPE_PONG = "pong"
MESSAGE_TYPE_SYSTEM = "system"
MESSAGE_TYPE_TOOL_RESPONSE = "tool_response"
MESSAGE_TYPE_ERROR = "error"


class LintAgent:
    """Websocket client that joins the plugin's bridge channel and serves lint requests."""

    def __init__(self, bridge_url: str, channel: str, config: LintConfig, tool_timeout: float = 30.0):
        self.bridge_url = bridge_url
        self.channel = channel
        self.config = config
        self.tool_timeout = tool_timeout
        self.websocket = None
        self.running = True
        self.reconnect_delay = 1  # Start with 1 second
        self.max_reconnect_delay = 30  # Max 30 seconds
        self._background_tasks: set[asyncio.Task] = set()
        self.communicator: Optional[FigmaCommunicator] = None
        self.service: Optional[LintService] = None

    async def _send_json(self, payload: Dict[str, Any]) -> None:
        """Send a JSON-serializable payload over the websocket if connected."""
        if not self.websocket:
            raise RuntimeError("WebSocket not connected")
        await self.websocket.send(json.dumps(payload))

    async def connect(self) -> bool:
        """Connect to the bridge and join as the lint agent"""
        try:
            logger.info(f"Connecting to bridge at {self.bridge_url}")
            # Whole-page trees can be large
            self.websocket = await websockets.connect(self.bridge_url, max_size=None, ping_interval=30, ping_timeout=10)

            await self._send_json({"type": MESSAGE_TYPE_JOIN, "role": "agent", "channel": self.channel})
            logger.info(f"Sent join message for channel: {self.channel}")
            await self._send_json({"type": MESSAGE_TYPE_PING})

            self.communicator = FigmaCommunicator(self.websocket, timeout=self.tool_timeout)
            self.service = LintService(PluginDocumentProvider(self.communicator), self._send_json, config=self.config)
            logger.info(f"Initialized FigmaCommunicator for document access (timeout: {self.tool_timeout}s)")

            self.reconnect_delay = 1
            return True

        except Exception as e:
            logger.error(f"Failed to connect: {e}")
            return False

    async def handle_message(self, message: Dict[str, Any]) -> None:
        """Dispatch bridge traffic; lint requests run as background tasks."""
        msg_type = message.get("type")

        handlers = {
            MESSAGE_TYPE_SYSTEM: self._handle_system,
            MESSAGE_TYPE_PONG: self._handle_pong,
            MESSAGE_TYPE_TOOL_RESPONSE: self._handle_tool_response,
            MESSAGE_TYPE_ERROR: self._handle_bridge_error,
        }
        handler = handlers.get(msg_type)
        if handler is not None:
            await handler(message)
            return

        if self.service and self.service.handles(msg_type):
            # Scans await tool responses, which arrive through this same listen loop
            task = asyncio.create_task(self.service.handle(message))
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)
            return

        logger.debug(f"Ignoring unknown message type: {msg_type}")

    async def _handle_system(self, message: Dict[str, Any]) -> None:
        sys_msg = message.get('message')
        logger.info(f"🔧 System message: {sys_msg}")
        if isinstance(sys_msg, str) and 'disconnected' in sys_msg.lower() and 'plugin' in sys_msg.lower():
            await self.cancel_active_operations(reason="plugin_disconnected")

    async def _handle_pong(self, _: Dict[str, Any]) -> None:
        logger.info("🏓 Received pong response from bridge")

    async def _handle_tool_response(self, message: Dict[str, Any]) -> None:
        if self.communicator:
            self.communicator.handle_tool_response(message)
        else:
            logger.warning("Received tool_response but communicator not initialized")

    async def _handle_bridge_error(self, message: Dict[str, Any]) -> None:
        logger.error(f"Bridge error: {message.get('message', 'Unknown error')}")

    async def cancel_active_operations(self, reason: str = "") -> None:
        """Cancel in-flight requests and pending tool calls."""
        if self._background_tasks:
            logger.info(f"🧹 Cancelling {len(self._background_tasks)} active request(s) ({reason})")
            for task in list(self._background_tasks):
                if not task.done():
                    task.cancel()
            await asyncio.sleep(0)
        if self.communicator:
            self.communicator.cleanup_pending_requests()

    async def listen(self) -> None:
        """Listen for messages from the bridge"""
        logger.info("🎧 Starting to listen for messages from bridge")
        while self.running and self.websocket:
            try:
                raw_message = await self.websocket.recv()
            except asyncio.CancelledError:
                logger.info("🛑 Listen loop cancelled")
                break
            except websockets.ConnectionClosed as e:
                logger.error(f"❌ Connection closed: {e}")
                break

            if not raw_message:
                logger.warning("📡 Received empty WebSocket message")
                continue

            try:
                message = json.loads(raw_message)
            except json.JSONDecodeError as e:
                logger.error(f"❌ Failed to decode message: {e}, Raw: {raw_message[:200]}")
                continue
            await self.handle_message(message)

        await self.cancel_active_operations(reason="connection_lost")

    async def run_with_reconnect(self) -> None:
        """Main loop with reconnection logic"""
        while self.running:
            if await self.connect():
                logger.info("🌉 Connected to bridge successfully")
                await self.listen()
            else:
                logger.warning("Failed to connect to bridge")

            if self.running:
                logger.info(f"Reconnecting in {self.reconnect_delay} seconds...")
                await asyncio.sleep(self.reconnect_delay)
                # Exponential backoff up to max delay
                self.reconnect_delay = min(self.reconnect_delay * 2, self.max_reconnect_delay)

    def shutdown(self) -> None:
        """Graceful shutdown"""
        logger.info("Shutting down lint agent")
        self.running = False
        if self.communicator:
            self.communicator.cleanup_pending_requests()
        self.websocket = None


async def lint_snapshot(path: str, scan: str, scope: str, config: LintConfig) -> int:
    """Run one scan against an exported snapshot and print the report as JSON."""
    with open(path, encoding="utf-8") as handle:
        provider = SnapshotDocumentProvider.from_json(json.load(handle))

    messages = []

    async def collect(payload: Dict[str, Any]) -> None:
        if payload.get("type") == "progress":
            logger.debug(f"📈 {payload.get('percent')}% {payload.get('label')}")
            return
        messages.append(payload)

    await LintService(provider, collect, config=config).handle({"type": f"scan-{scan}", "scope": scope})
    for payload in messages:
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 1 if any(p.get("type") == MESSAGE_TYPE_ERROR for p in messages) else 0


def get_config() -> Dict[str, Any]:
    """Get configuration from environment variables or CLI args"""
    config = {
        "bridge_url": os.getenv("BRIDGE_URL", "ws://localhost:3055"),
        "channel": os.getenv("FIGMA_CHANNEL"),
        "tool_timeout": float(os.getenv("FIGMA_TOOL_TIMEOUT", "30.0")),
        "snapshot": None,
        "scan": "names",
        "scope": "current_page",
    }

    # Parse CLI args for overrides
    for arg in sys.argv[1:]:
        if arg.startswith("--channel="):
            config["channel"] = arg.split("=", 1)[1]
        elif arg.startswith("--bridge-url="):
            config["bridge_url"] = arg.split("=", 1)[1]
        elif arg.startswith("--snapshot="):
            config["snapshot"] = arg.split("=", 1)[1]
        elif arg.startswith("--scan="):
            config["scan"] = arg.split("=", 1)[1]
        elif arg.startswith("--scope="):
            config["scope"] = arg.split("=", 1)[1]

    if not config["channel"]:
        config["channel"] = "figma-lint-default"
        logger.info(f"No channel specified, using default: {config['channel']}")
    return config


def main():
    config = get_config()
    lint_config = LintConfig.from_env()

    if config["snapshot"]:
        sys.exit(asyncio.run(lint_snapshot(config["snapshot"], config["scan"], config["scope"], lint_config)))

    logger.info(f"Starting Figma lint agent")
    logger.info(f"Bridge URL: {config['bridge_url']}")
    logger.info(f"Channel: {config['channel']}")

    agent = LintAgent(config["bridge_url"], config["channel"], lint_config, tool_timeout=config["tool_timeout"])

    def signal_handler(signum, frame):
        logger.info("Received shutdown signal")
        agent.shutdown()
        sys.exit(0)

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    try:
        asyncio.run(agent.run_with_reconnect())
    except KeyboardInterrupt:
        logger.info("Agent interrupted")
    finally:
        agent.shutdown()


if __name__ == "__main__":
    main()
