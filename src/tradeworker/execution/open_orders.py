import logging
from typing import Dict, List, Optional

from tradeworker.api.base import IBackendClient
from tradeworker.errors import FetchError
from tradeworker.models.order import (
    STANDALONE,
    BracketKey,
    GroupKey,
    HighlightIds,
    OpenOrder,
    OpenOrders,
    OrderGroup,
)
from tradeworker.store.highlight import HighlightMemory

log = logging.getLogger("open_orders")

LOAD_FAILED = "Could not load open orders."


def group_key(order: OpenOrder) -> GroupKey:
    if order.order_list_id is None or order.order_list_id == "-1":
        return STANDALONE
    return BracketKey(order.order_list_id)


def is_highlighted(key: GroupKey, orders: List[OpenOrder], ids: HighlightIds) -> bool:
    # the id returned at creation and the ids on open orders may sit in
    # different fields, so match on either
    if ids.list_id is not None and key == BracketKey(ids.list_id):
        return True
    cid = ids.list_client_order_id
    if cid is None:
        return False
    return any(cid in (o.client_order_id, o.list_client_order_id) for o in orders)


def group_orders(
    orders: List[OpenOrder], ids: Optional[HighlightIds] = None
) -> List[OrderGroup]:
    """Partition by bracket, keeping first-appearance order of groups and members."""
    ids = ids or HighlightIds()
    buckets: Dict[GroupKey, List[OpenOrder]] = {}
    for o in orders:
        buckets.setdefault(group_key(o), []).append(o)
    return [
        OrderGroup(key=k, orders=tuple(members), highlighted=is_highlighted(k, members, ids))
        for k, members in buckets.items()
    ]


class OpenOrderReconciler:
    def __init__(self, backend: IBackendClient, memory: HighlightMemory):
        self.backend = backend
        self.memory = memory
        self.groups: List[OrderGroup] = []
        self.response: Optional[OpenOrders] = None
        self.loading = False
        self.error: Optional[str] = None
        self.last_error: Optional[FetchError] = None

    @property
    def highlighted(self) -> Optional[OrderGroup]:
        return next((g for g in self.groups if g.highlighted), None)

    def load(self, symbol: str, isolated: bool = False) -> Optional[List[OrderGroup]]:
        self.loading = True
        self.error = None
        self.last_error = None
        try:
            resp = self.backend.get_open_margin_orders(symbol, isolated)
        except FetchError as e:
            log.error("open orders load failed: %s", e)
            self.last_error = e
            self.error = f"{LOAD_FAILED} ({e})"
            self.groups = []
            return None
        finally:
            self.loading = False

        self.response = resp
        if not resp.has_open_orders:
            self.groups = []
        else:
            self.groups = group_orders(list(resp.orders), self.memory.read())
        log.info(
            "open orders %s isolated=%s: %d orders in %d groups",
            symbol,
            isolated,
            len(resp.orders) if resp.has_open_orders else 0,
            len(self.groups),
        )
        return self.groups
