# src/tradeworker/stream/price_stream.py
from __future__ import annotations
import itertools
import json
import logging
import threading
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

import websocket

from tradeworker.errors import FeedConnectionError, PriceParseError
from tradeworker.models.market import ConnectionStatus, PriceTick

log = logging.getLogger("stream")

WS_BASE = "wss://stream.binance.com:9443/ws"

UpdateListener = Callable[["StreamHandle"], None]


def parse_last_price(message) -> Decimal:
    """Last traded price (miniTicker field ``c``) from one raw message."""
    try:
        data = json.loads(message)
    except (TypeError, ValueError) as e:
        raise PriceParseError(f"message is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise PriceParseError("message is not a JSON object")
    # combined stream -> {"stream": "...", "data": {...}}
    if "stream" in data and isinstance(data.get("data"), dict):
        data = data["data"]
    raw = data.get("c")
    if raw is None:
        raise PriceParseError("missing last price field 'c'")
    try:
        px = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError) as e:
        raise PriceParseError(f"last price {raw!r} is not a number") from e
    if not px.is_finite():
        raise PriceParseError(f"last price {raw!r} is not finite")
    return px


class StreamHandle:
    """One activation of a price connection.

    Every transport callback checks that this handle is still the live
    generation of its stream and that the caller has not disconnected it;
    otherwise the event is dropped.
    """

    def __init__(
        self,
        stream: "PriceStream",
        symbol: str,
        generation: int,
        on_update: Optional[UpdateListener] = None,
    ):
        self.symbol = symbol.upper()
        self.generation = generation
        self._stream = stream
        self._on_update = on_update
        self._lock = threading.Lock()
        self._status = ConnectionStatus.CONNECTING
        self._tick: Optional[PriceTick] = None
        self._close_requested = False
        self._ws = None
        self._thread: Optional[threading.Thread] = None
        self.last_error: Optional[FeedConnectionError] = None
        self.socket_closed = threading.Event()

    # --- caller side ---
    def status(self) -> ConnectionStatus:
        with self._lock:
            return self._status

    def last_tick(self) -> Optional[PriceTick]:
        with self._lock:
            return self._tick

    def last_price(self) -> Optional[Decimal]:
        tick = self.last_tick()
        return tick.last_price if tick else None

    @property
    def active(self) -> bool:
        return not self._close_requested and self._stream.is_current(self.generation)

    def disconnect(self) -> None:
        with self._lock:
            if self._close_requested:
                return
            self._close_requested = True
            status = self._status
        if status is ConnectionStatus.CONNECTING:
            # closing a half-open socket is left to _on_open/_on_error
            log.debug("[%s#%d] disconnect while connecting, close deferred", self.symbol, self.generation)
            return
        if status is ConnectionStatus.OPEN:
            log.info("[%s#%d] disconnecting", self.symbol, self.generation)
            self._close_socket()

    # --- transport side ---
    def _start(self, url: str, app_factory, ping_interval: int, ping_timeout: int) -> None:
        log.info("[%s#%d] connecting → %s", self.symbol, self.generation, url)
        self._ws = app_factory(
            url,
            on_open=self._on_open,
            on_message=self._on_message,
            on_error=self._on_error,
            on_close=self._on_close,
        )

        def _run():
            try:
                self._ws.run_forever(ping_interval=ping_interval, ping_timeout=ping_timeout)
            except Exception as e:
                log.exception("[%s#%d] stream thread crashed", self.symbol, self.generation)
                self._on_error(self._ws, e)

        self._thread = threading.Thread(
            target=_run, name=f"price-{self.symbol}-{self.generation}", daemon=True
        )
        self._thread.start()

    def _close_socket(self) -> None:
        ws = self._ws
        if ws is None:
            return
        try:
            ws.close()
        finally:
            self.socket_closed.set()

    def _notify(self) -> None:
        if self._on_update is None:
            return
        try:
            self._on_update(self)
        except Exception:
            log.exception("[%s#%d] update listener failed", self.symbol, self.generation)

    def _on_open(self, _ws) -> None:
        with self._lock:
            stale = not self.active
            if not stale:
                self._status = ConnectionStatus.OPEN
        if stale:
            log.info("[%s#%d] opened after disconnect, closing now", self.symbol, self.generation)
            self._close_socket()
            return
        log.info("[%s#%d] WS CONNECTED", self.symbol, self.generation)
        self._notify()

    def _on_message(self, _ws, message) -> None:
        if not self.active:
            return
        try:
            px = parse_last_price(message)
        except PriceParseError as e:
            log.warning("[%s#%d] discarded message: %s", self.symbol, self.generation, e)
            return
        with self._lock:
            if not self.active:
                return
            self._tick = PriceTick(symbol=self.symbol, last_price=px)
        self._notify()

    def _on_error(self, _ws, err) -> None:
        with self._lock:
            stale = not self.active
            if not stale and self._status in (ConnectionStatus.CONNECTING, ConnectionStatus.OPEN):
                self._status = ConnectionStatus.ERRORED
                self.last_error = FeedConnectionError(str(err))
        if stale:
            log.debug("[%s#%d] error after disconnect: %s", self.symbol, self.generation, err)
            self._close_socket()
            return
        log.error("[%s#%d] WS ERROR: %s", self.symbol, self.generation, err)
        self._notify()

    def _on_close(self, _ws, *_a) -> None:
        self.socket_closed.set()
        with self._lock:
            if not self.active:
                return
            if self._status not in (ConnectionStatus.CONNECTING, ConnectionStatus.OPEN):
                return
            self._status = ConnectionStatus.CLOSED
        log.warning("[%s#%d] WS CLOSED", self.symbol, self.generation)
        self._notify()


class PriceStream:
    """Owns at most one live price connection; no automatic reconnect."""

    def __init__(
        self,
        base_url: str = WS_BASE,
        ping_interval: int = 20,
        ping_timeout: int = 10,
        app_factory=None,
    ):
        self.base_url = base_url.rstrip("/")
        self.ping_interval = ping_interval
        self.ping_timeout = ping_timeout
        self._app_factory = app_factory or websocket.WebSocketApp
        self._generations = itertools.count(1)
        self._current_generation = 0
        self._current: Optional[StreamHandle] = None
        self._lock = threading.Lock()

    def url_for(self, symbol: str) -> str:
        return f"{self.base_url}/{symbol.lower()}@miniTicker"

    def is_current(self, generation: int) -> bool:
        return self._current_generation == generation

    @property
    def current(self) -> Optional[StreamHandle]:
        return self._current

    def connect(self, symbol: str, on_update: Optional[UpdateListener] = None) -> StreamHandle:
        with self._lock:
            previous = self._current
            generation = next(self._generations)
            handle = StreamHandle(self, symbol, generation, on_update)
            self._current_generation = generation
            self._current = handle
        if previous is not None:
            previous.disconnect()
        handle._start(self.url_for(symbol), self._app_factory, self.ping_interval, self.ping_timeout)
        return handle

    def disconnect(self) -> None:
        if self._current is not None:
            self._current.disconnect()
