# src/tradeworker/api/backend.py
from __future__ import annotations
from typing import Any, Callable, Dict, Optional, TypeVar
import logging
import requests

from tradeworker.api.base import IBackendClient
from tradeworker.errors import FetchError, NoDataYet, SubmissionError
from tradeworker.models.market import AccountSnapshot, DailyMetricsSnapshot, LiquidityStatus
from tradeworker.models.order import BracketIntent, BracketResult, OpenOrders

log = logging.getLogger("backend")

BASE = "http://localhost:8080"

MARGIN_ACCOUNT = "/api/binance/margin-account"
MARGIN_OCO = "/api/binance/margin/order/oco"
OPEN_ORDERS = "/api/binance/margin/open-orders"
LIQUIDITY_STATUS = "/api/liquidity/status"
DAILY_METRICS = "/metrics/btc/daily/latest"

T = TypeVar("T")


def _detail(r: requests.Response) -> str:
    """Backend error text, preferring a JSON ``message`` field."""
    try:
        body = r.json()
    except ValueError:
        return (r.text or "").strip()[:200]
    if isinstance(body, dict):
        for k in ("message", "error", "detail"):
            if body.get(k):
                return str(body[k])[:200]
    return ""


def _parse_body(r: requests.Response, parser: Callable[[dict], T]) -> T:
    """Decode a 2xx body; anything that is not the expected object is a ValueError."""
    try:
        body = r.json()
    except ValueError as e:
        raise ValueError("invalid JSON body") from e
    if not isinstance(body, dict):
        raise ValueError(f"unexpected body: expected an object, got {type(body).__name__}")
    try:
        return parser(body)
    except (AttributeError, TypeError) as e:
        raise ValueError(f"unexpected body: {e}") from e


class BackendClient(IBackendClient):
    """REST client for the tradeworker backend.

    No retries anywhere: reads are refreshed by the user, and an order
    creation must never be sent twice behind the user's back.
    """

    name = "backend"

    def __init__(
        self,
        base_url: str = BASE,
        timeout: int = 10,
        session: Optional[requests.Session] = None,
    ):
        self.base = base_url.rstrip("/")
        self.timeout = timeout
        self.s = session or requests.Session()

    # --- Helper: GET + status check ---
    def _get(
        self,
        path: str,
        parser: Callable[[dict], T],
        params: Optional[Dict[str, Any]] = None,
        missing_is_empty: bool = False,
    ) -> T:
        try:
            r = self.s.get(f"{self.base}{path}", params=params, timeout=self.timeout)
        except requests.RequestException as e:
            log.error("GET %s failed: %s", path, e)
            raise FetchError(None, path, str(e)) from e
        if r.status_code == 404 and missing_is_empty:
            raise NoDataYet(404, path, "nothing stored yet")
        if not r.ok:
            log.warning("GET %s -> HTTP %s", path, r.status_code)
            raise FetchError(r.status_code, path, _detail(r))
        try:
            return _parse_body(r, parser)
        except ValueError as e:
            log.error("GET %s -> unexpected body: %s", path, e)
            raise FetchError(r.status_code, path, str(e)) from e

    # --- Account ---
    def get_margin_account(self) -> AccountSnapshot:
        return self._get(MARGIN_ACCOUNT, AccountSnapshot.from_json)

    # --- Orders ---
    def create_margin_oco(self, intent: BracketIntent) -> BracketResult:
        payload = intent.to_payload()
        log.info("POST %s %s", MARGIN_OCO, payload)
        try:
            r = self.s.post(
                f"{self.base}{MARGIN_OCO}", json=payload, timeout=self.timeout
            )
        except requests.RequestException as e:
            log.error("POST %s failed: %s", MARGIN_OCO, e)
            raise SubmissionError(None, str(e)) from e
        if not r.ok:
            log.warning("POST %s -> HTTP %s", MARGIN_OCO, r.status_code)
            raise SubmissionError(r.status_code, _detail(r))
        try:
            return _parse_body(r, BracketResult.from_json)
        except ValueError as e:
            # the backend accepted the request, so the order may exist
            log.error("POST %s -> HTTP %s with unexpected body: %s", MARGIN_OCO, r.status_code, e)
            raise SubmissionError(
                r.status_code, f"{e}; check open orders before sending again"
            ) from e

    def get_open_margin_orders(self, symbol: str, isolated: bool) -> OpenOrders:
        params = {"symbol": symbol, "isolated": "true" if isolated else "false"}
        return self._get(OPEN_ORDERS, OpenOrders.from_json, params=params)

    # --- Market context ---
    def get_liquidity_status(self) -> LiquidityStatus:
        return self._get(LIQUIDITY_STATUS, LiquidityStatus.from_json)

    def get_daily_metrics(self) -> DailyMetricsSnapshot:
        return self._get(DAILY_METRICS, DailyMetricsSnapshot.from_json, missing_is_empty=True)
