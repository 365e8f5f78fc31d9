from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional


def to_decimal(value: Any, default: Optional[Decimal] = None) -> Optional[Decimal]:
    """Numeric strings from the backend keep their full precision."""
    if value is None or isinstance(value, bool):
        return default
    try:
        d = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return default
    if not d.is_finite():
        return default
    return d


class ConnectionStatus(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    ERRORED = "error"


@dataclass(frozen=True)
class PriceTick:
    symbol: str
    last_price: Decimal


@dataclass(frozen=True)
class Asset:
    symbol: str
    net_amount: Decimal
    free: Decimal = Decimal(0)
    locked: Decimal = Decimal(0)
    borrowed: Decimal = Decimal(0)
    interest: Decimal = Decimal(0)

    @classmethod
    def from_json(cls, row: dict) -> "Asset":
        zero = Decimal(0)
        return cls(
            symbol=str(row.get("asset", "")),
            net_amount=to_decimal(row.get("netAsset"), zero),
            free=to_decimal(row.get("free"), zero),
            locked=to_decimal(row.get("locked"), zero),
            borrowed=to_decimal(row.get("borrowed"), zero),
            interest=to_decimal(row.get("interest"), zero),
        )


@dataclass(frozen=True)
class AccountSnapshot:
    total_net_asset_of_base: Optional[Decimal]
    assets: tuple[Asset, ...] = field(default_factory=tuple)
    total_asset_of_base: Optional[Decimal] = None
    total_liability_of_base: Optional[Decimal] = None
    margin_level: Optional[Decimal] = None
    borrow_enabled: bool = False
    trade_enabled: bool = False
    transfer_enabled: bool = False

    @classmethod
    def from_json(cls, data: dict) -> "AccountSnapshot":
        return cls(
            total_net_asset_of_base=to_decimal(data.get("totalNetAssetOfBtc")),
            assets=tuple(Asset.from_json(a) for a in data.get("userAssets") or []),
            total_asset_of_base=to_decimal(data.get("totalAssetOfBtc")),
            total_liability_of_base=to_decimal(data.get("totalLiabilityOfBtc")),
            margin_level=to_decimal(data.get("marginLevel")),
            borrow_enabled=bool(data.get("borrowEnabled", False)),
            trade_enabled=bool(data.get("tradeEnabled", False)),
            transfer_enabled=bool(data.get("transferEnabled", False)),
        )


@dataclass(frozen=True)
class LiquidityStatus:
    date: str
    m2_value: Optional[Decimal]
    yoy_change_pct: Optional[Decimal]
    regime: str

    @classmethod
    def from_json(cls, data: dict) -> "LiquidityStatus":
        return cls(
            date=str(data.get("date") or ""),
            m2_value=to_decimal(data.get("m2Value")),
            yoy_change_pct=to_decimal(data.get("yoyChangePct")),
            regime=str(data.get("regime") or ""),
        )


METRIC_FIELDS = {
    "return1d": "return_1d",
    "return3d": "return_3d",
    "realizedVol7d": "realized_vol_7d",
    "atr14": "atr_14",
    "deltaOpenInterest24h": "delta_open_interest_24h",
    "fundingRateZScore30d": "funding_rate_zscore_30d",
    "takerBuySellRatio24h": "taker_buy_sell_ratio_24h",
    "liquidationLongVolumeUsd24h": "liquidation_long_volume_usd_24h",
    "liquidationShortVolumeUsd24h": "liquidation_short_volume_usd_24h",
    "volumeRelative24h": "volume_relative_24h",
}


@dataclass(frozen=True)
class DailyMetricsSnapshot:
    id: Optional[int]
    as_of: str
    return_1d: Optional[Decimal] = None
    return_3d: Optional[Decimal] = None
    realized_vol_7d: Optional[Decimal] = None
    atr_14: Optional[Decimal] = None
    delta_open_interest_24h: Optional[Decimal] = None
    funding_rate_zscore_30d: Optional[Decimal] = None
    taker_buy_sell_ratio_24h: Optional[Decimal] = None
    liquidation_long_volume_usd_24h: Optional[Decimal] = None
    liquidation_short_volume_usd_24h: Optional[Decimal] = None
    volume_relative_24h: Optional[Decimal] = None

    @classmethod
    def from_json(cls, data: dict) -> "DailyMetricsSnapshot":
        raw_id = data.get("id")
        values = {attr: to_decimal(data.get(key)) for key, attr in METRIC_FIELDS.items()}
        return cls(
            id=int(raw_id) if isinstance(raw_id, int) else None,
            as_of=str(data.get("asOf") or ""),
            **values,
        )
