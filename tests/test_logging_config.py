import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from tradeworker.logging_config import build_handlers
from tradeworker.settings import LogCfg


def test_handlers_follow_log_settings(tmp_path: Path):
    cfg = LogCfg(dir=str(tmp_path / "logs"), console_level="warning", filename="x.log", backup_count=1)
    console, rotating = build_handlers(cfg)
    try:
        assert console.level == logging.WARNING
        assert isinstance(rotating, RotatingFileHandler)
        assert rotating.level == logging.DEBUG
        assert rotating.backupCount == 1
        assert Path(rotating.baseFilename) == tmp_path / "logs" / "x.log"
    finally:
        rotating.close()
