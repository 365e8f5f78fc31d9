from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union
import math

from tradeworker.models.market import to_decimal

DEFAULT_SYMBOL = "BTCUSDC"
DEFAULT_LEVERAGE = 20


class Side(str, Enum):
    BUY = "BUY"
    SELL = "SELL"

    @classmethod
    def parse(cls, value: Union[str, "Side"]) -> "Side":
        if isinstance(value, Side):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unsupported side: {value!r}") from None


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value)
    return s if s else None


@dataclass(frozen=True)
class BracketIntent:
    side: Side
    take_profit_percent: float
    stop_loss_percent: float
    symbol: str = DEFAULT_SYMBOL
    isolated: bool = False
    leverage: int = DEFAULT_LEVERAGE

    def __post_init__(self):
        object.__setattr__(self, "side", Side.parse(self.side))
        if not self.symbol or not self.symbol.strip():
            raise ValueError("symbol is required")
        object.__setattr__(self, "symbol", self.symbol.strip().upper())
        for name in ("take_profit_percent", "stop_loss_percent"):
            v = getattr(self, name)
            if isinstance(v, bool) or not isinstance(v, (int, float, Decimal)):
                raise ValueError(f"{name} must be a number, got {v!r}")
            if not math.isfinite(float(v)):
                raise ValueError(f"{name} must be finite, got {v!r}")
        if isinstance(self.leverage, bool) or not isinstance(self.leverage, int):
            raise ValueError(f"leverage must be an integer, got {self.leverage!r}")
        if self.leverage < 1:
            raise ValueError(f"leverage must be >= 1, got {self.leverage}")

    def to_payload(self) -> dict:
        return {
            "symbol": self.symbol,
            "side": self.side.value,
            "takeProfitPercent": float(self.take_profit_percent),
            "stopLossPercent": float(self.stop_loss_percent),
            "isolated": self.isolated,
            "leverage": self.leverage,
        }


@dataclass(frozen=True)
class OrderRef:
    order_id: Optional[str]
    client_order_id: Optional[str] = None
    status: Optional[str] = None
    price: Optional[Decimal] = None
    stop_price: Optional[Decimal] = None
    type: Optional[str] = None
    side: Optional[str] = None

    @classmethod
    def from_json(cls, data: Optional[dict]) -> Optional["OrderRef"]:
        if not data:
            return None
        # an OCO leg comes back as an order list
        order_id = data.get("orderId", data.get("orderListId"))
        client_id = data.get("clientOrderId", data.get("listClientOrderId"))
        return cls(
            order_id=_opt_str(order_id),
            client_order_id=_opt_str(client_id),
            status=_opt_str(data.get("status", data.get("listOrderStatus"))),
            price=to_decimal(data.get("price")),
            stop_price=to_decimal(data.get("stopPrice")),
            type=_opt_str(data.get("type")),
            side=_opt_str(data.get("side")),
        )


@dataclass(frozen=True)
class BracketResult:
    symbol: str
    entry_side: str
    quantity: Optional[Decimal]
    reference_price: Optional[Decimal]
    take_profit_price: Optional[Decimal]
    stop_loss_price: Optional[Decimal]
    borrow_asset: Optional[str] = None
    borrow_amount: Optional[Decimal] = None
    borrow_order: Optional[OrderRef] = None
    entry_order: Optional[OrderRef] = None
    oco_order: Optional[OrderRef] = None

    @classmethod
    def from_json(cls, data: dict) -> "BracketResult":
        return cls(
            symbol=str(data.get("symbol") or ""),
            entry_side=str(data.get("entrySide") or data.get("side") or ""),
            quantity=to_decimal(data.get("quantity")),
            reference_price=to_decimal(data.get("referencePrice")),
            take_profit_price=to_decimal(data.get("takeProfitPrice")),
            stop_loss_price=to_decimal(data.get("stopLossPrice")),
            borrow_asset=_opt_str(data.get("borrowAsset")),
            borrow_amount=to_decimal(data.get("borrowAmount")),
            borrow_order=OrderRef.from_json(data.get("borrowOrder")),
            entry_order=OrderRef.from_json(data.get("entryOrder")),
            oco_order=OrderRef.from_json(data.get("ocoOrder")),
        )


@dataclass(frozen=True)
class OpenOrder:
    order_id: Optional[str] = None
    client_order_id: Optional[str] = None
    order_list_id: Optional[str] = None
    list_client_order_id: Optional[str] = None
    status: Optional[str] = None
    price: Optional[Decimal] = None
    stop_price: Optional[Decimal] = None
    type: Optional[str] = None
    side: Optional[str] = None

    @classmethod
    def from_json(cls, data: dict) -> "OpenOrder":
        return cls(
            order_id=_opt_str(data.get("orderId")),
            client_order_id=_opt_str(data.get("clientOrderId")),
            order_list_id=_opt_str(data.get("orderListId")),
            list_client_order_id=_opt_str(data.get("listClientOrderId")),
            status=_opt_str(data.get("status")),
            price=to_decimal(data.get("price")),
            stop_price=to_decimal(data.get("stopPrice")),
            type=_opt_str(data.get("type")),
            side=_opt_str(data.get("side")),
        )


@dataclass(frozen=True)
class OpenOrders:
    has_open_orders: bool
    orders: tuple[OpenOrder, ...] = ()

    @classmethod
    def from_json(cls, data: dict) -> "OpenOrders":
        return cls(
            has_open_orders=bool(data.get("hasOpenOrders", False)),
            orders=tuple(OpenOrder.from_json(o) for o in data.get("orders") or []),
        )


@dataclass(frozen=True)
class BracketKey:
    list_id: str

    @property
    def label(self) -> str:
        return self.list_id


@dataclass(frozen=True)
class StandaloneKey:
    @property
    def label(self) -> str:
        return "single"


STANDALONE = StandaloneKey()
GroupKey = Union[BracketKey, StandaloneKey]


@dataclass(frozen=True)
class OrderGroup:
    key: GroupKey
    orders: tuple[OpenOrder, ...] = field(default_factory=tuple)
    highlighted: bool = False

    @property
    def label(self) -> str:
        return self.key.label


@dataclass(frozen=True)
class HighlightIds:
    list_id: Optional[str] = None
    list_client_order_id: Optional[str] = None
