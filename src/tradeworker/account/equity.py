from __future__ import annotations
import logging
from decimal import Decimal
from typing import List, Optional

from tradeworker.api.base import IBackendClient
from tradeworker.errors import FetchError
from tradeworker.models.market import AccountSnapshot, Asset

log = logging.getLogger("account")

LOAD_FAILED = "Could not load the margin balance."


def compute_equity(
    snapshot: Optional[AccountSnapshot], last_price: Optional[Decimal]
) -> Optional[Decimal]:
    """netBase * lastPrice, or None until both sides are known."""
    if snapshot is None or last_price is None:
        return None
    net = snapshot.total_net_asset_of_base
    if net is None:
        return None
    return net * last_price


def visible_assets(snapshot: Optional[AccountSnapshot]) -> List[Asset]:
    if snapshot is None:
        return []
    return [a for a in snapshot.assets if a.net_amount != 0]


class EquitySnapshot:
    def __init__(self, backend: IBackendClient):
        self.backend = backend
        self.snapshot: Optional[AccountSnapshot] = None
        self.loading = False
        self.error: Optional[str] = None
        self.last_error: Optional[FetchError] = None

    def load(self) -> Optional[AccountSnapshot]:
        self.loading = True
        self.error = None
        self.last_error = None
        try:
            snap = self.backend.get_margin_account()
        except FetchError as e:
            log.error("margin account load failed: %s", e)
            self.last_error = e
            self.error = f"{LOAD_FAILED} ({e})"
            return None
        finally:
            self.loading = False
        self.snapshot = snap
        log.info(
            "margin account loaded: net=%s assets=%d",
            snap.total_net_asset_of_base,
            len(snap.assets),
        )
        return snap

    def equity(self, last_price: Optional[Decimal]) -> Optional[Decimal]:
        return compute_equity(self.snapshot, last_price)
