from typing import Protocol

from tradeworker.models.market import AccountSnapshot, DailyMetricsSnapshot, LiquidityStatus
from tradeworker.models.order import BracketIntent, BracketResult, OpenOrders


class IBackendClient(Protocol):
    name: str

    def get_margin_account(self) -> AccountSnapshot: ...
    def create_margin_oco(self, intent: BracketIntent) -> BracketResult: ...
    def get_open_margin_orders(self, symbol: str, isolated: bool) -> OpenOrders: ...
    def get_liquidity_status(self) -> LiquidityStatus: ...
    def get_daily_metrics(self) -> DailyMetricsSnapshot: ...
