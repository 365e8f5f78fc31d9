from tradeworker.api.fake import FakeBackend
from tradeworker.errors import FetchError
from tradeworker.execution.open_orders import OpenOrderReconciler, group_orders
from tradeworker.models.order import STANDALONE, BracketKey, HighlightIds, OpenOrder, OpenOrders
from tradeworker.store.highlight import LIST_CLIENT_ID_KEY, LIST_ID_KEY, HighlightMemory, MemoryStore


class StubBackend(FakeBackend):
    def __init__(self, responses):
        super().__init__()
        self.responses = list(responses)
        self.params = []

    def get_open_margin_orders(self, symbol, isolated):
        self.params.append((symbol, isolated))
        resp = self.responses.pop(0)
        if isinstance(resp, Exception):
            raise resp
        return resp


def _o(order_id, list_id=None, **kw):
    return OpenOrder(order_id=order_id, order_list_id=list_id, **kw)


def _reconciler(responses, **memory):
    store = MemoryStore()
    store.update({LIST_ID_KEY: memory.get("list_id"), LIST_CLIENT_ID_KEY: memory.get("client_id")})
    backend = StubBackend(responses)
    return OpenOrderReconciler(backend, HighlightMemory(store)), backend, store


def test_grouping_by_order_list_id():
    orders = [_o("a", "5"), _o("b", "5"), _o("c", "-1")]
    groups = group_orders(orders)
    assert [g.label for g in groups] == ["5", "single"]
    assert [o.order_id for o in groups[0].orders] == ["a", "b"]
    assert [o.order_id for o in groups[1].orders] == ["c"]
    assert groups[0].key == BracketKey("5")
    assert groups[1].key == STANDALONE


def test_grouping_preserves_first_appearance_order():
    orders = [_o("a", "7"), _o("b", "-1"), _o("c", "7"), _o("d"), _o("e", "9")]
    groups = group_orders(orders)
    assert [g.label for g in groups] == ["7", "single", "9"]
    assert [o.order_id for o in groups[0].orders] == ["a", "c"]
    assert [o.order_id for o in groups[1].orders] == ["b", "d"]
    assert sum(len(g.orders) for g in groups) == len(orders)


def test_bracket_named_single_stays_apart_from_standalone():
    groups = group_orders([_o("a", "single"), _o("b")])
    assert len(groups) == 2
    assert groups[0].key == BracketKey("single")
    assert groups[1].key is STANDALONE


def test_highlight_by_list_id():
    groups = group_orders(
        [_o("a", "5"), _o("b", "5"), _o("c", "6"), _o("d", "-1")],
        HighlightIds(list_id="5"),
    )
    assert [g.highlighted for g in groups] == [True, False, False]


def test_highlight_by_client_id_on_either_field():
    ids = HighlightIds(list_id="999", list_client_order_id="oco-xyz")
    groups = group_orders(
        [
            _o("a", "5", list_client_order_id="oco-xyz"),
            _o("b", "6"),
            _o("c", "-1", client_order_id="oco-xyz"),
        ],
        ids,
    )
    assert [g.highlighted for g in groups] == [True, False, True]


def test_load_groups_and_highlights_from_memory():
    resp = OpenOrders(True, (_o("a", "5"), _o("b", "5"), _o("c", "-1")))
    rec, backend, _ = _reconciler([resp], list_id="5")
    groups = rec.load("BTCUSDC", False)
    assert backend.params == [("BTCUSDC", False)]
    assert [g.label for g in groups] == ["5", "single"]
    assert rec.highlighted is groups[0]
    assert not groups[1].highlighted


def test_no_open_orders_yields_no_groups():
    resp = OpenOrders(False, (_o("a", "5"),))
    rec, _, _ = _reconciler([resp], list_id="5", client_id="x")
    assert rec.load("BTCUSDC") == []
    assert rec.highlighted is None


def test_each_load_replaces_groups_and_keeps_memory():
    first = OpenOrders(True, (_o("a", "5"), _o("b", "5")))
    second = OpenOrders(True, (_o("c", "8"),))
    rec, _, store = _reconciler([first, second], list_id="5")
    rec.load("BTCUSDC")
    groups = rec.load("BTCUSDC")
    assert [g.label for g in groups] == ["8"]
    assert rec.highlighted is None
    assert store.get(LIST_ID_KEY) == "5"


def test_fetch_failure_reported(caplog):
    ok = OpenOrders(True, (_o("a", "5"),))
    rec, _, _ = _reconciler([ok, FetchError(500, "/api/binance/margin/open-orders")])
    rec.load("BTCUSDC")
    caplog.set_level("ERROR")
    assert rec.load("BTCUSDC") is None
    assert rec.groups == []
    assert rec.last_error.status == 500
    assert "500" in rec.error
    assert rec.loading is False
