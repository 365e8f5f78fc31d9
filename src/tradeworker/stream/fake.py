import json
import threading
from decimal import Decimal


class FakeTickerApp:
    """Stands in for ``websocket.WebSocketApp``: opens, sends one miniTicker, idles."""

    def __init__(self, url, on_open=None, on_message=None, on_error=None, on_close=None,
                 price: Decimal = Decimal("58000.00")):
        self.url = url
        self.on_open = on_open
        self.on_message = on_message
        self.on_error = on_error
        self.on_close = on_close
        self.price = price
        self._closed = threading.Event()

    def run_forever(self, **_kw):
        if self.on_open:
            self.on_open(self)
        if self.on_message:
            self.on_message(self, json.dumps({"e": "24hrMiniTicker", "c": str(self.price)}))
        self._closed.wait()
        if self.on_close:
            self.on_close(self, 1000, "bye")

    def close(self, **_kw):
        self._closed.set()
