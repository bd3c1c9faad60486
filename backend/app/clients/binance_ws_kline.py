"""Binance WebSocket client for real-time kline data using picows."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable

import orjson
from picows import ws_connect, WSFrame, WSTransport, WSListener, WSMsgType, WSCloseCode
from pydantic import ValidationError

from core.models.candle import KlineTick, format_label

from app.clients.binance_rest import to_pair

logger = logging.getLogger(__name__)

# Type alias for tick callback
TickCallback = Callable[[KlineTick], Awaitable[None]]


def stream_name(symbol: str, interval: str) -> str:
    return f"{to_pair(symbol).lower()}@kline_{interval}"


def parse_kline_message(payload: str | bytes) -> KlineTick | None:
    """
    Decode and validate one kline stream message.

    Returns:
        KlineTick, or None for non-kline messages (subscription acks)
        and for malformed payloads, which are logged and dropped
    """
    try:
        data = orjson.loads(payload)
    except orjson.JSONDecodeError as e:
        logger.warning(f"Dropping undecodable kline message: {e}")
        return None

    if not isinstance(data, dict) or data.get("e") != "kline":
        return None

    try:
        k = data["k"]
        ts = datetime.fromtimestamp(k["t"] / 1000, tz=timezone.utc)
        return KlineTick(
            label=format_label(ts),
            timestamp=ts,
            close=k["c"],
            high=k["h"],
            low=k["l"],
            volume=k["v"],
            is_closed=k.get("x", False),
        )
    except (KeyError, TypeError, ValueError, OverflowError) as e:
        # ValidationError is a ValueError subclass
        kind = "invalid" if isinstance(e, ValidationError) else "malformed"
        logger.warning(f"Dropping {kind} kline message: {e}")
        return None


class BinanceKlineListener(WSListener):
    """picows listener for a single Binance kline stream."""

    def __init__(
        self,
        stream: str,
        callback: TickCallback,
        on_connected: Callable[[], None],
        on_disconnected: Callable[[], None],
        loop: asyncio.AbstractEventLoop,
    ):
        self._stream = stream
        self._callback = callback
        self._on_connected = on_connected
        self._on_disconnected = on_disconnected
        self._transport: WSTransport | None = None
        # picows callbacks may run from different threads
        self._loop = loop

    def on_ws_connected(self, transport: WSTransport):
        """Called when WebSocket connection is established."""
        self._transport = transport
        logger.info(f"picows: kline WebSocket connected ({self._stream})")
        self._send_subscribe([self._stream])
        self._on_connected()

    def on_ws_disconnected(self, transport: WSTransport):
        """Called when WebSocket is disconnected."""
        logger.info(f"picows: kline WebSocket disconnected ({self._stream})")
        self._transport = None
        self._on_disconnected()

    def on_ws_frame(self, transport: WSTransport, frame: WSFrame):
        """Called when a new frame is received."""
        if frame.msg_type == WSMsgType.TEXT:
            self._handle_message(frame.get_payload_as_bytes())
        elif frame.msg_type == WSMsgType.PING:
            transport.send_pong(frame.get_payload_as_bytes())

    def _send_subscribe(self, streams: list[str]) -> None:
        if not self._transport:
            return

        msg = {
            "method": "SUBSCRIBE",
            "params": streams,
            "id": int(datetime.now().timestamp() * 1000),
        }
        self._transport.send(WSMsgType.TEXT, orjson.dumps(msg))
        logger.info(f"Subscribed to kline streams: {streams}")

    def _handle_message(self, message: bytes) -> None:
        tick = parse_kline_message(message)
        if tick is None:
            return
        asyncio.run_coroutine_threadsafe(self._safe_callback(tick), self._loop)

    async def _safe_callback(self, tick: KlineTick) -> None:
        try:
            await self._callback(tick)
        except Exception as e:
            logger.error(f"Kline callback error: {e}")

    def disconnect(self) -> None:
        """Disconnect the WebSocket."""
        if self._transport:
            self._transport.send_close(WSCloseCode.OK)
            self._transport.disconnect()


class BinanceKlineWebSocket:
    """Kline stream for one (symbol, interval) with reconnection."""

    def __init__(
        self,
        symbol: str,
        interval: str,
        callback: TickCallback,
        ws_url: str = "wss://stream.binance.com:9443/ws",
    ):
        self.stream = stream_name(symbol, interval)
        self.ws_url = ws_url
        self._callback = callback
        self._running = False
        self._reconnect_delay = 1.0
        self._max_reconnect_delay = 60.0
        self._task: asyncio.Task | None = None
        self._listener: BinanceKlineListener | None = None
        self._connected = asyncio.Event()
        self._disconnected = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the WebSocket connection and message processing."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the stream. Returns once the connection task has ended."""
        self._running = False
        if self._listener:
            self._listener.disconnect()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info(f"Kline stream stopped ({self.stream})")

    def _on_connected(self) -> None:
        self._connected.set()
        self._disconnected.clear()
        self._reconnect_delay = 1.0

    def _on_disconnected(self) -> None:
        self._connected.clear()
        self._disconnected.set()

    async def _run(self) -> None:
        """Main WebSocket loop with reconnection."""
        while self._running:
            try:
                await self._connect_and_process()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"picows kline error: {e}")

            if self._running:
                logger.info(
                    f"Reconnecting kline WS in {self._reconnect_delay} seconds..."
                )
                await asyncio.sleep(self._reconnect_delay)
                self._reconnect_delay = min(
                    self._reconnect_delay * 2, self._max_reconnect_delay
                )

    async def _connect_and_process(self) -> None:
        """Connect to WebSocket and wait for disconnection."""
        self._disconnected.clear()
        loop = asyncio.get_running_loop()

        def listener_factory():
            self._listener = BinanceKlineListener(
                stream=self.stream,
                callback=self._callback,
                on_connected=self._on_connected,
                on_disconnected=self._on_disconnected,
                loop=loop,
            )
            return self._listener

        logger.info(f"Connecting to {self.ws_url}")
        await ws_connect(
            listener_factory,
            self.ws_url,
            enable_auto_ping=True,
            auto_ping_idle_timeout=30,
            auto_ping_reply_timeout=10,
        )

        await self._disconnected.wait()
