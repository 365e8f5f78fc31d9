from __future__ import annotations
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from tradeworker.account.equity import EquitySnapshot, visible_assets
from tradeworker.api.base import IBackendClient
from tradeworker.execution.bracket import OrderIntentBuilder
from tradeworker.execution.open_orders import OpenOrderReconciler
from tradeworker.settings import Settings
from tradeworker.store.highlight import HighlightMemory, KeyValueStore
from tradeworker.stream.price_stream import PriceStream, StreamHandle

log = logging.getLogger("dashboard")

PLACEHOLDER = "–"


def fmt_money(value: Optional[Decimal], currency: str) -> str:
    if value is None:
        return PLACEHOLDER
    return f"{value:,.2f} {currency}"


def fmt_amount(value: Optional[Decimal], places: int = 6) -> str:
    if value is None:
        return PLACEHOLDER
    return f"{value:.{places}f}"


@dataclass(frozen=True)
class EquityView:
    equity: str
    net_base: str
    price: str
    status: str
    assets: List[tuple] = field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None


class Dashboard:
    """Wires the price feed, the account snapshot and the order components.

    Feed and account run independently; they meet only in ``equity_view``.
    """

    def __init__(
        self,
        settings: Settings,
        backend: IBackendClient,
        store: KeyValueStore,
        stream: Optional[PriceStream] = None,
    ):
        self.settings = settings
        self.backend = backend
        self.memory = HighlightMemory(store)
        self.stream = stream or PriceStream(
            base_url=settings.stream.base_url,
            ping_interval=settings.stream.ping_interval_s,
            ping_timeout=settings.stream.ping_timeout_s,
        )
        self.account = EquitySnapshot(backend)
        self.orders = OrderIntentBuilder(backend, self.memory)
        self.open_orders = OpenOrderReconciler(backend, self.memory)
        self.handle: Optional[StreamHandle] = None

    def start(self, load_account: bool = True) -> None:
        log.info(
            "[%s] dashboard start: feed=%s backend=%s",
            self.settings.env,
            self.settings.stream.symbol,
            self.backend.name,
        )
        self.handle = self.stream.connect(self.settings.stream.symbol)
        if load_account:
            self.account.load()

    def stop(self) -> None:
        if self.handle is not None:
            self.handle.disconnect()

    def last_price(self) -> Optional[Decimal]:
        return self.handle.last_price() if self.handle else None

    def equity_view(self) -> EquityView:
        fiat = self.settings.fiat
        price = self.last_price()
        snap = self.account.snapshot
        net = snap.total_net_asset_of_base if snap else None
        status = self.handle.status().value if self.handle else "closed"
        return EquityView(
            equity=fmt_money(self.account.equity(price), fiat),
            net_base=fmt_amount(net),
            price=fmt_money(price, fiat),
            status=status,
            assets=[(a.symbol, fmt_amount(a.net_amount)) for a in visible_assets(snap)],
            loading=self.account.loading,
            error=self.account.error,
        )
