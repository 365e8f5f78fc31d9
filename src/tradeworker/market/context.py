from __future__ import annotations
import logging
from typing import Optional

from tradeworker.api.base import IBackendClient
from tradeworker.errors import FetchError, NoDataYet
from tradeworker.models.market import DailyMetricsSnapshot, LiquidityStatus

log = logging.getLogger("context")

REGIMES = {
    "EXPANSION": ("Expansion", "expansion"),
    "CONTRACTION": ("Contraction", "contraction"),
    "NEUTRAL": ("Neutral", "neutral"),
}


def regime_tone(status: Optional[LiquidityStatus]) -> Optional[str]:
    if status is None:
        return None
    known = REGIMES.get(status.regime.upper())
    if known:
        return known[1]
    yoy = status.yoy_change_pct
    return "contraction" if yoy is not None and yoy < 0 else "neutral"


def regime_label(status: Optional[LiquidityStatus]) -> str:
    if status is None or not status.regime:
        return "No data"
    known = REGIMES.get(status.regime.upper())
    return known[0] if known else status.regime


class LiquidityPanel:
    def __init__(self, backend: IBackendClient):
        self.backend = backend
        self.status: Optional[LiquidityStatus] = None
        self.error: Optional[str] = None
        self.last_error: Optional[FetchError] = None

    def load(self) -> Optional[LiquidityStatus]:
        self.error = None
        self.last_error = None
        try:
            self.status = self.backend.get_liquidity_status()
        except FetchError as e:
            log.error("liquidity status load failed: %s", e)
            self.last_error = e
            self.error = "Could not load the liquidity status."
            return None
        log.info("liquidity %s regime=%s", self.status.date, self.status.regime)
        return self.status


class DailyMetricsPanel:
    def __init__(self, backend: IBackendClient):
        self.backend = backend
        self.metrics: Optional[DailyMetricsSnapshot] = None
        self.error: Optional[str] = None
        self.last_error: Optional[FetchError] = None

    @property
    def empty(self) -> bool:
        return isinstance(self.last_error, NoDataYet)

    def load(self) -> Optional[DailyMetricsSnapshot]:
        self.error = None
        self.last_error = None
        try:
            self.metrics = self.backend.get_daily_metrics()
        except NoDataYet as e:
            log.info("no daily metrics stored yet")
            self.last_error = e
            self.error = "No metrics stored yet (404)"
            return None
        except FetchError as e:
            log.error("daily metrics load failed: %s", e)
            self.last_error = e
            self.error = str(e)
            return None
        return self.metrics
