import json

import pytest
import requests

from tradeworker.api.backend import BackendClient
from tradeworker.errors import FetchError, NoDataYet, SubmissionError
from tradeworker.models.order import BracketIntent


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else json.dumps(body)

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def _next(self, method, url, **kw):
        self.requests.append((method, url, kw))
        r = self.responses.pop(0)
        if isinstance(r, Exception):
            raise r
        return r

    def get(self, url, **kw):
        return self._next("GET", url, **kw)

    def post(self, url, **kw):
        return self._next("POST", url, **kw)


OCO_RESPONSE = {
    "symbol": "BTCUSDC",
    "entrySide": "SELL",
    "quantity": "0.00100000",
    "referencePrice": "64000.00",
    "takeProfitPrice": "63232.00",
    "stopLossPrice": "64384.00",
    "borrowAsset": "BTC",
    "borrowAmount": "0.001",
    "borrowOrder": {"orderId": 111},
    "entryOrder": {"orderId": 222, "status": "FILLED", "type": "MARKET", "side": "SELL"},
    "ocoOrder": {"orderListId": 333, "listClientOrderId": "oco-333", "listOrderStatus": "EXECUTING"},
}


def test_margin_account_get():
    s = FakeSession(FakeResponse(200, {"totalNetAssetOfBtc": "0.1", "userAssets": []}))
    c = BackendClient(base_url="http://backend:8080/", timeout=7, session=s)
    snap = c.get_margin_account()
    assert str(snap.total_net_asset_of_base) == "0.1"
    method, url, kw = s.requests[0]
    assert (method, url) == ("GET", "http://backend:8080/api/binance/margin-account")
    assert kw["timeout"] == 7


def test_non_2xx_is_fetch_error_with_status():
    c = BackendClient(session=FakeSession(FakeResponse(502, None, text="Bad gateway")))
    with pytest.raises(FetchError) as ei:
        c.get_margin_account()
    assert ei.value.status == 502
    assert "502" in str(ei.value)


def test_transport_failure_is_fetch_error_without_status():
    c = BackendClient(session=FakeSession(requests.ConnectionError("refused")))
    with pytest.raises(FetchError) as ei:
        c.get_margin_account()
    assert ei.value.status is None


def test_create_oco_posts_intent_and_parses_legs():
    s = FakeSession(FakeResponse(200, OCO_RESPONSE))
    c = BackendClient(session=s)
    intent = BracketIntent(side="SELL", take_profit_percent=1.2, stop_loss_percent=0.6)

    r = c.create_margin_oco(intent)

    method, url, kw = s.requests[0]
    assert (method, url) == ("POST", "http://localhost:8080/api/binance/margin/order/oco")
    assert kw["json"] == {
        "symbol": "BTCUSDC",
        "side": "SELL",
        "takeProfitPercent": 1.2,
        "stopLossPercent": 0.6,
        "isolated": False,
        "leverage": 20,
    }
    assert r.entry_side == "SELL"
    assert str(r.take_profit_price) == "63232.00"
    assert r.borrow_order.order_id == "111"
    assert r.entry_order.status == "FILLED"
    assert r.oco_order.order_id == "333"
    assert r.oco_order.client_order_id == "oco-333"


def test_create_oco_failure_is_not_retried():
    s = FakeSession(FakeResponse(400, {"message": "Insufficient balance"}), FakeResponse(200, OCO_RESPONSE))
    c = BackendClient(session=s)
    with pytest.raises(SubmissionError) as ei:
        c.create_margin_oco(BracketIntent(side="BUY", take_profit_percent=1, stop_loss_percent=1))
    assert ei.value.status == 400
    assert "Insufficient balance" in str(ei.value)
    assert len(s.requests) == 1


def test_open_orders_query():
    body = {
        "hasOpenOrders": True,
        "orders": [
            {"orderId": 1, "orderListId": 9, "listClientOrderId": "x", "price": "1.5", "side": "BUY"},
            {"orderId": 2, "orderListId": -1, "stopPrice": "0"},
        ],
    }
    s = FakeSession(FakeResponse(200, body))
    resp = BackendClient(session=s).get_open_margin_orders("BTCUSDC", True)
    assert s.requests[0][2]["params"] == {"symbol": "BTCUSDC", "isolated": "true"}
    assert resp.has_open_orders
    assert [o.order_list_id for o in resp.orders] == ["9", "-1"]
    assert resp.orders[0].list_client_order_id == "x"


def test_daily_metrics_404_means_no_data_yet():
    c = BackendClient(session=FakeSession(FakeResponse(404, None, text="")))
    with pytest.raises(NoDataYet):
        c.get_daily_metrics()


def test_liquidity_404_is_plain_fetch_error():
    c = BackendClient(session=FakeSession(FakeResponse(404, None, text="")))
    with pytest.raises(FetchError) as ei:
        c.get_liquidity_status()
    assert not isinstance(ei.value, NoDataYet)


@pytest.mark.parametrize("body", [[], "ok", 42, {"totalNetAssetOfBtc": "1", "userAssets": ["x"]}])
def test_unexpected_account_body_is_fetch_error(body):
    c = BackendClient(session=FakeSession(FakeResponse(200, body)))
    with pytest.raises(FetchError) as ei:
        c.get_margin_account()
    assert ei.value.status == 200
    assert "unexpected body" in str(ei.value)


def test_open_orders_with_non_object_entries_is_fetch_error():
    c = BackendClient(session=FakeSession(FakeResponse(200, {"hasOpenOrders": True, "orders": ["x"]})))
    with pytest.raises(FetchError):
        c.get_open_margin_orders("BTCUSDC", False)


def test_accepted_oco_with_unexpected_body_is_submission_error():
    s = FakeSession(FakeResponse(200, ["x"]))
    c = BackendClient(session=s)
    with pytest.raises(SubmissionError) as ei:
        c.create_margin_oco(BracketIntent(side="SELL", take_profit_percent=1.2, stop_loss_percent=0.6))
    assert ei.value.status == 200
    assert "check open orders" in str(ei.value)
    assert len(s.requests) == 1


def test_components_report_unexpected_bodies_instead_of_raising():
    from tradeworker.account.equity import EquitySnapshot
    from tradeworker.execution.bracket import OrderIntentBuilder
    from tradeworker.execution.open_orders import OpenOrderReconciler
    from tradeworker.store.highlight import HighlightMemory, MemoryStore

    memory = HighlightMemory(MemoryStore())

    account = EquitySnapshot(BackendClient(session=FakeSession(FakeResponse(200, []))))
    assert account.load() is None
    assert account.error is not None

    orders = OpenOrderReconciler(
        BackendClient(session=FakeSession(FakeResponse(200, {"hasOpenOrders": True, "orders": ["x"]}))),
        memory,
    )
    assert orders.load("BTCUSDC") is None
    assert orders.error is not None

    builder = OrderIntentBuilder(BackendClient(session=FakeSession(FakeResponse(200, ["x"]))), memory)
    builder.propose(BracketIntent(side="BUY", take_profit_percent=1, stop_loss_percent=1))
    assert builder.confirm() is None
    assert builder.last_error.status == 200
    assert memory.list_id is None
