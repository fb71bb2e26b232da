"""
Session lifecycle for the market-data websocket.

DISCONNECTED → CONNECTING (connect) → AUTHENTICATING (socket open, authorize
sent) → LIVE (authorize accepted) → DISCONNECTED (close or error). There is
no automatic reconnection; a new ``connect()`` is required.

The manager owns every task it starts (reader, writer, keepalive) and cancels
them all when the session ends.
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from neurotrade.config import BotConfig
from neurotrade.constants import ConnectionState
from neurotrade.net import protocol
from neurotrade.utils.logger import LogFeed, log

Connector = Callable[[str], Awaitable[Any]]


async def websocket_connector(url: str):
    # App-level ping keeps the session alive; protocol pings are left off.
    return await websockets.connect(url, ping_interval=None, max_size=None)


class ConnectionManager:
    def __init__(self, cfg: BotConfig, feed: LogFeed,
                 on_message: Callable[[protocol.Message], None],
                 on_live: Optional[Callable[[], None]] = None,
                 on_disconnect: Optional[Callable[[], None]] = None,
                 connector: Optional[Connector] = None):
        self.cfg = cfg
        self.feed = feed
        self.on_message = on_message
        self.on_live = on_live
        self.on_disconnect = on_disconnect
        self.connector = connector or websocket_connector
        self.state = ConnectionState.DISCONNECTED

        self._ws = None
        self._outbox: Optional[asyncio.Queue] = None
        self._reader: Optional[asyncio.Task] = None
        self._writer: Optional[asyncio.Task] = None
        self._keepalive: Optional[asyncio.Task] = None
        self._closed = asyncio.Event()
        self._closed.set()

    @property
    def is_live(self) -> bool:
        return self.state == ConnectionState.LIVE

    @property
    def is_open(self) -> bool:
        return self.state in (ConnectionState.AUTHENTICATING, ConnectionState.LIVE)

    def _set_state(self, state: ConnectionState) -> None:
        if state != self.state:
            log.debug("Connection %s → %s", self.state.value, state.value)
            self.state = state

    # ------------------------------------------------------------------
    async def connect(self, token: str) -> bool:
        if not token:
            self.feed.error("Token required")
            return False
        if self.state != ConnectionState.DISCONNECTED:
            await self.disconnect()

        self._closed.clear()
        self._set_state(ConnectionState.CONNECTING)
        self.feed.info("Connecting...")
        try:
            ws = await self.connector(self.cfg.url)
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            self.feed.error(f"Connection failed: {e}")
            self._set_state(ConnectionState.DISCONNECTED)
            self._closed.set()
            return False

        loop = asyncio.get_running_loop()
        self._ws = ws
        self._outbox = asyncio.Queue()
        self._set_state(ConnectionState.AUTHENTICATING)
        self.feed.success("Connected.")
        self._writer = loop.create_task(self._write_loop(ws, self._outbox))
        self.send(protocol.authorize(token))
        self._reader = loop.create_task(self._read_loop(ws))
        return True

    async def disconnect(self, reason: str = "Disconnected") -> None:
        await self._teardown(reason)

    async def wait_closed(self) -> None:
        await self._closed.wait()

    def send(self, request: dict) -> bool:
        """Queue a frame for the writer. False when no socket is open."""
        if not self.is_open or self._outbox is None:
            return False
        self._outbox.put_nowait(request)
        return True

    # ------------------------------------------------------------------
    async def _write_loop(self, ws, outbox: asyncio.Queue) -> None:
        try:
            while True:
                request = await outbox.get()
                await ws.send(json.dumps(request))
        except (ConnectionClosed, OSError) as e:
            log.debug("Writer stopped: %s", e)

    async def _read_loop(self, ws) -> None:
        reason = "Disconnected"
        try:
            async for raw in ws:
                try:
                    msg = protocol.decode(raw)
                except protocol.ProtocolError as e:
                    log.warning("Dropping frame: %s", e)
                    continue
                if not self._handle(msg):
                    reason = "Disconnected — authorization rejected"
                    break
        except ConnectionClosed as e:
            log.debug("Socket closed: %s", e)
        except OSError as e:
            self.feed.error("Socket error")
            log.debug("Socket error: %s", e)
        finally:
            await self._teardown(reason)

    def _handle(self, msg: protocol.Message) -> bool:
        """Route one message to completion. False ends the session."""
        if isinstance(msg, protocol.ErrorFrame) and msg.msg_type == "authorize":
            self.feed.error(f"Auth failed: {msg.message}")
            return False

        try:
            self.on_message(msg)
        except Exception as e:
            log.error("Message handler error: %s", e, exc_info=True)

        if isinstance(msg, protocol.AuthResult) and self.state == ConnectionState.AUTHENTICATING:
            self._go_live()
        return True

    def _go_live(self) -> None:
        self._set_state(ConnectionState.LIVE)
        self._keepalive = asyncio.get_running_loop().create_task(self._keepalive_loop())
        if self.on_live is not None:
            self.on_live()

    async def _keepalive_loop(self) -> None:
        while self.is_live:
            await asyncio.sleep(self.cfg.keepalive_interval)
            self.send(protocol.ping())

    async def _teardown(self, reason: str) -> None:
        if self._ws is None and self.state == ConnectionState.DISCONNECTED:
            return
        current = asyncio.current_task()
        tasks = [t for t in (self._reader, self._writer, self._keepalive)
                 if t is not None and t is not current]
        ws = self._ws
        self._ws = self._outbox = None
        self._reader = self._writer = self._keepalive = None
        self._set_state(ConnectionState.DISCONNECTED)

        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if ws is not None:
            try:
                await ws.close()
            except (OSError, WebSocketException) as e:
                log.debug("Close failed: %s", e)

        self.feed.warning(reason)
        self._closed.set()
        if self.on_disconnect is not None:
            self.on_disconnect()
