import logging
import threading
from typing import Optional

from tradeworker.api.base import IBackendClient
from tradeworker.errors import SubmissionError
from tradeworker.models.order import BracketIntent, BracketResult, Side
from tradeworker.store.highlight import HighlightMemory

log = logging.getLogger("orders")

SEND_FAILED = "Could not create the order."
HIGHLIGHT_NOT_SAVED = "Order created, but it will not be highlighted in open orders."


def _pct(v) -> str:
    return f"{v or 0:g}%"


class OrderIntentBuilder:
    """Review-then-send workflow for one bracket (OCO) exit order.

    ``propose`` only stages the intent; nothing reaches the backend until
    ``confirm``. While a confirmation is outstanding further calls are
    rejected instead of racing a second submission.
    """

    def __init__(self, backend: IBackendClient, memory: HighlightMemory):
        self.backend = backend
        self.memory = memory
        self.pending: Optional[BracketIntent] = None
        self.result: Optional[BracketResult] = None
        self.error: Optional[str] = None
        self.last_error: Optional[SubmissionError] = None
        self._busy = False
        self._guard = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._busy

    def propose(self, intent: BracketIntent) -> None:
        if self._busy:
            log.warning("Proposal ignored: submission in progress")
            return
        self.pending = intent
        log.info("staged %s", self.summary())

    def cancel(self) -> None:
        if self._busy:
            log.warning("Cancel ignored: submission in progress")
            return
        self.pending = None

    def summary(self) -> str:
        i = self.pending
        if i is None:
            return ""
        direction = "up" if i.side is Side.BUY else "down"
        margin = "Isolated" if i.isolated else "Cross"
        return (
            f"{i.side.value}: TP {_pct(i.take_profit_percent)} ({direction}) · "
            f"SL {_pct(i.stop_loss_percent)} · {margin} · x{i.leverage}"
        )

    def confirm(self) -> Optional[BracketResult]:
        with self._guard:
            if self._busy:
                log.warning("Confirm rejected: submission already in progress")
                return None
            intent = self.pending
            if intent is None:
                log.warning("Confirm rejected: nothing proposed")
                self.error = "Nothing to confirm."
                return None
            self._busy = True

        self.error = None
        self.last_error = None
        self.result = None
        try:
            try:
                result = self.backend.create_margin_oco(intent)
            except SubmissionError as e:
                log.error("OCO submission failed: %s", e)
                self.last_error = e
                self.error = str(e) or SEND_FAILED
                return None
            self.result = result
            self.pending = None
            oco = result.oco_order
            if oco is not None:
                # the order is live at this point; a store failure must not hide it
                try:
                    self.memory.remember(oco.order_id, oco.client_order_id)
                except OSError as e:
                    log.error("OCO %s created but highlight not saved: %s", oco.order_id, e)
                    self.error = f"{HIGHLIGHT_NOT_SAVED} ({e})"
        finally:
            self._busy = False

        log.info(
            "Created %s %s qty=%s ref=%s tp=%s sl=%s oco=%s",
            result.entry_side,
            result.symbol,
            result.quantity,
            result.reference_price,
            result.take_profit_price,
            result.stop_loss_price,
            oco.order_id if oco else None,
        )
        return result
