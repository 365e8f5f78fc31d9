# src/tradeworker/settings.py
from typing import Optional
import os

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml


class ApiCfg(BaseModel):
    base_url: str = "http://localhost:8080"
    timeout_s: int = 10


class StreamCfg(BaseModel):
    base_url: str = "wss://stream.binance.com:9443/ws"
    symbol: str = "BTCEUR"
    ping_interval_s: int = 20
    ping_timeout_s: int = 10


class TradingCfg(BaseModel):
    symbol: str = "BTCUSDC"
    leverage: int = 20
    isolated: bool = False
    take_profit_pct: float = 1.2
    stop_loss_pct: float = 0.6


class StoreCfg(BaseModel):
    path: str = ".tradeworker/highlight.json"


class LogCfg(BaseModel):
    dir: str = "logs"
    console_level: str = "INFO"
    file_level: str = "DEBUG"
    filename: str = "tradeworker.log"
    max_bytes: int = 5_000_000
    backup_count: int = 3


class Settings(BaseSettings):
    env: str = "dev"
    fiat: str = "EUR"
    api: ApiCfg = ApiCfg()
    stream: StreamCfg = StreamCfg()
    trading: TradingCfg = TradingCfg()
    store: StoreCfg = StoreCfg()
    log: LogCfg = LogCfg()

    model_config = SettingsConfigDict(
        env_prefix="TRADEWORKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",  # e.g. TRADEWORKER_TRADING__LEVERAGE
    )

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Settings":
        cfg: dict = {}
        if path is not None:
            # an explicit path that is missing is a typo, not "use defaults"
            with open(path, "r", encoding="utf-8") as f:
                cfg = yaml.safe_load(f) or {}

        # the backend URL is the one value usually set per machine
        base = os.getenv("TRADEWORKER_API_BASE_URL")
        if base:
            cfg.setdefault("api", {})
            cfg["api"]["base_url"] = base

        # init values win over TRADEWORKER_* variables; env fills what YAML leaves out
        return cls(**cfg)
