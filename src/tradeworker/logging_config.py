from __future__ import annotations
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from tradeworker.settings import LogCfg

FILE_FMT = "%(asctime)s | %(levelname)s | %(name)s | %(threadName)s | %(message)s"
CONSOLE_FMT = "%(asctime)s | %(levelname)s | %(message)s"

# component loggers always record DEBUG; handlers decide what is shown
COMPONENT_LOGGERS = (
    "stream",
    "account",
    "orders",
    "open_orders",
    "store",
    "backend",
    "context",
    "dashboard",
)
# third-party chatter kept at WARNING
QUIET_LOGGERS = ("urllib3", "websocket")

_INSTALLED = "_tradeworker_logging_installed"


def _handler(handler: logging.Handler, level: str, fmt: str) -> logging.Handler:
    handler.setLevel(level.upper())
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def build_handlers(cfg: LogCfg) -> list[logging.Handler]:
    log_dir = Path(cfg.dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    rotating = RotatingFileHandler(
        log_dir / cfg.filename,
        maxBytes=cfg.max_bytes,
        backupCount=cfg.backup_count,
        encoding="utf-8",
    )
    return [
        _handler(logging.StreamHandler(), cfg.console_level, CONSOLE_FMT),
        _handler(rotating, cfg.file_level, FILE_FMT),
    ]


def setup(cfg: Optional[LogCfg] = None) -> None:
    """Console + rotating file logging, installed once per process."""
    root = logging.getLogger()
    if getattr(root, _INSTALLED, False):
        return

    root.setLevel(logging.DEBUG)
    for h in build_handlers(cfg or LogCfg()):
        root.addHandler(h)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    for name in COMPONENT_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG)

    setattr(root, _INSTALLED, True)
