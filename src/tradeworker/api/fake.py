import itertools
from decimal import Decimal
from typing import List, Optional

from tradeworker.api.base import IBackendClient
from tradeworker.errors import NoDataYet
from tradeworker.models.market import AccountSnapshot, Asset, DailyMetricsSnapshot, LiquidityStatus
from tradeworker.models.order import (
    BracketIntent,
    BracketResult,
    OpenOrder,
    OpenOrders,
    OrderRef,
)


class FakeBackend(IBackendClient):
    """In-process backend: brackets it creates show up in its open orders."""

    name = "fake"

    def __init__(self, reference_price: Decimal = Decimal("60000"), net_btc: Decimal = Decimal("0.5")):
        self.reference_price = reference_price
        self.net_btc = net_btc
        self._ids = itertools.count(1000)
        self._open: List[OpenOrder] = []
        self.metrics: Optional[DailyMetricsSnapshot] = None
        self.calls: List[str] = []

    def get_margin_account(self) -> AccountSnapshot:
        self.calls.append("margin-account")
        return AccountSnapshot(
            total_net_asset_of_base=self.net_btc,
            assets=(
                Asset(symbol="BTC", net_amount=self.net_btc, free=self.net_btc),
                Asset(symbol="USDC", net_amount=Decimal(0)),
            ),
        )

    def create_margin_oco(self, intent: BracketIntent) -> BracketResult:
        self.calls.append("oco")
        px = self.reference_price
        tp = Decimal(str(intent.take_profit_percent)) / 100
        sl = Decimal(str(intent.stop_loss_percent)) / 100
        if intent.side.value == "BUY":
            tp_px, sl_px, exit_side = px * (1 + tp), px * (1 - sl), "SELL"
        else:
            tp_px, sl_px, exit_side = px * (1 - tp), px * (1 + sl), "BUY"
        list_id = str(next(self._ids))
        client_id = f"fake-oco-{list_id}"
        qty = Decimal("0.001")
        self._open.append(
            OpenOrder(order_id=str(next(self._ids)), order_list_id=list_id,
                      list_client_order_id=client_id, status="NEW",
                      price=tp_px, type="LIMIT_MAKER", side=exit_side)
        )
        self._open.append(
            OpenOrder(order_id=str(next(self._ids)), order_list_id=list_id,
                      list_client_order_id=client_id, status="NEW",
                      price=sl_px, stop_price=sl_px, type="STOP_LOSS_LIMIT", side=exit_side)
        )
        return BracketResult(
            symbol=intent.symbol,
            entry_side=intent.side.value,
            quantity=qty,
            reference_price=px,
            take_profit_price=tp_px,
            stop_loss_price=sl_px,
            entry_order=OrderRef(order_id=str(next(self._ids)), status="FILLED",
                                 type="MARKET", side=intent.side.value),
            oco_order=OrderRef(order_id=list_id, client_order_id=client_id,
                               status="EXECUTING"),
        )

    def get_open_margin_orders(self, symbol: str, isolated: bool) -> OpenOrders:
        self.calls.append("open-orders")
        return OpenOrders(has_open_orders=bool(self._open), orders=tuple(self._open))

    def get_liquidity_status(self) -> LiquidityStatus:
        self.calls.append("liquidity")
        return LiquidityStatus(date="2024-01-01", m2_value=Decimal("20800.5"),
                               yoy_change_pct=Decimal("1.8"), regime="EXPANSION")

    def get_daily_metrics(self) -> DailyMetricsSnapshot:
        self.calls.append("metrics")
        if self.metrics is None:
            raise NoDataYet(404, "/metrics/btc/daily/latest", "nothing stored yet")
        return self.metrics
