from __future__ import annotations
from typing import Optional


class TradeworkerError(Exception):
    """Base for everything the dashboard core raises."""


class FeedConnectionError(TradeworkerError):
    """Price feed transport failure."""


class PriceParseError(TradeworkerError):
    """Inbound price message that cannot be turned into a tick."""


class FetchError(TradeworkerError):
    def __init__(self, status: Optional[int], path: str, detail: str = ""):
        self.status = status
        self.path = path
        self.detail = detail
        msg = f"Error HTTP {status}" if status is not None else "Network error"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class NoDataYet(FetchError):
    """404 from a read endpoint that has nothing stored yet."""


class SubmissionError(TradeworkerError):
    def __init__(self, status: Optional[int], detail: str = ""):
        self.status = status
        self.detail = detail
        msg = (
            f"Order rejected (HTTP {status})"
            if status is not None
            else "Order could not be sent"
        )
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)
