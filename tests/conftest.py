import pytest

from tradeworker.stream.price_stream import PriceStream


class RecordingApp:
    """websocket.WebSocketApp double: callbacks are fired by the test."""

    def __init__(self, url, on_open=None, on_message=None, on_error=None, on_close=None):
        self.url = url
        self.on_open = on_open
        self.on_message = on_message
        self.on_error = on_error
        self.on_close = on_close
        self.closed = 0
        self.run_kwargs = None

    def run_forever(self, **kw):
        self.run_kwargs = kw

    def close(self, **_kw):
        self.closed += 1


@pytest.fixture
def apps():
    return []


@pytest.fixture
def stream(apps):
    def factory(url, **callbacks):
        app = RecordingApp(url, **callbacks)
        apps.append(app)
        return app

    return PriceStream(app_factory=factory)
