import time
from typing import Optional

import typer

from tradeworker.api.backend import BackendClient
from tradeworker.api.base import IBackendClient
from tradeworker.api.fake import FakeBackend
from tradeworker.dashboard import PLACEHOLDER, Dashboard, fmt_amount
from tradeworker.logging_config import setup as setup_logging
from tradeworker.market.context import DailyMetricsPanel, LiquidityPanel, regime_label, regime_tone
from tradeworker.models.order import BracketIntent
from tradeworker.settings import Settings
from tradeworker.store.highlight import JsonFileStore
from tradeworker.stream.fake import FakeTickerApp
from tradeworker.stream.price_stream import PriceStream

app = typer.Typer(help="tradeworker margin dashboard")


def _build(config: str, use_fake: bool, store: Optional[str]) -> Dashboard:
    try:
        s = Settings.load(config)
    except FileNotFoundError:
        typer.echo(f"Config file not found: {config}", err=True)
        raise typer.Exit(2)
    setup_logging(s.log)
    backend: IBackendClient
    if use_fake:
        backend = FakeBackend()
        stream = PriceStream(base_url=s.stream.base_url, app_factory=FakeTickerApp)
    else:
        backend = BackendClient(base_url=s.api.base_url, timeout=s.api.timeout_s)
        stream = None
    return Dashboard(s, backend, JsonFileStore(store or s.store.path), stream=stream)


def _dec(v) -> str:
    return PLACEHOLDER if v is None else f"{v:.2f}"


@app.command()
def balance(
    config: str = typer.Option("configs/dev.yaml", help="YAML config"),
    seconds: int = typer.Option(10, help="How long to follow the live price"),
    use_fake: bool = typer.Option(False, help="In-process fake backend and feed"),
    store: Optional[str] = typer.Option(None, help="Highlight store path"),
) -> None:
    """Margin equity in fiat, revalued with the live price."""
    d = _build(config, use_fake, store)
    d.start()
    try:
        if d.account.error:
            typer.echo(d.account.error, err=True)
        for _ in range(max(seconds, 1)):
            time.sleep(1)
            v = d.equity_view()
            typer.echo(f"equity {v.equity} | net {v.net_base} | price {v.price} | ws {v.status}")
        for sym, amount in d.equity_view().assets:
            typer.echo(f"  {sym:<8} {amount}")
    finally:
        d.stop()


@app.command()
def order(
    side: str = typer.Option(..., help="BUY or SELL"),
    tp: Optional[float] = typer.Option(None, help="Take profit %"),
    sl: Optional[float] = typer.Option(None, help="Stop loss %"),
    yes: bool = typer.Option(False, "--yes", help="Skip the review prompt"),
    config: str = typer.Option("configs/dev.yaml", help="YAML config"),
    use_fake: bool = typer.Option(False, help="In-process fake backend"),
    store: Optional[str] = typer.Option(None, help="Highlight store path"),
) -> None:
    """Review, then send a bracket (OCO) exit order."""
    d = _build(config, use_fake, store)
    t = d.settings.trading
    try:
        intent = BracketIntent(
            side=side,
            take_profit_percent=t.take_profit_pct if tp is None else tp,
            stop_loss_percent=t.stop_loss_pct if sl is None else sl,
            symbol=t.symbol,
            isolated=t.isolated,
            leverage=t.leverage,
        )
    except ValueError as e:
        typer.echo(f"Invalid order: {e}", err=True)
        raise typer.Exit(2)

    d.orders.propose(intent)
    typer.echo(f"Symbol {intent.symbol} | {d.orders.summary()}")
    if not yes and not typer.confirm("Send this OCO order to your account?"):
        d.orders.cancel()
        typer.echo("Cancelled.")
        raise typer.Exit(1)

    r = d.orders.confirm()
    if r is None:
        typer.echo(d.orders.error or "Could not create the order.", err=True)
        raise typer.Exit(1)
    typer.echo("Order created")
    if d.orders.error:
        typer.echo(d.orders.error, err=True)
    typer.echo(f"Ref: {_dec(r.reference_price)} · TP {_dec(r.take_profit_price)} · SL {_dec(r.stop_loss_price)}")
    typer.echo(f"Qty: {r.quantity} {r.symbol}")
    typer.echo(f"Borrow: {r.borrow_amount or 0} {r.borrow_asset or ''}".rstrip())

    def _id(ref):
        return ref.order_id if ref and ref.order_id else PLACEHOLDER

    typer.echo(f"IDs: borrow {_id(r.borrow_order)} · entry {_id(r.entry_order)} · oco {_id(r.oco_order)}")


@app.command("open-orders")
def open_orders(
    symbol: Optional[str] = typer.Option(None, help="Defaults to trading.symbol"),
    isolated: Optional[bool] = typer.Option(None, help="Defaults to trading.isolated"),
    config: str = typer.Option("configs/dev.yaml", help="YAML config"),
    use_fake: bool = typer.Option(False, help="In-process fake backend"),
    store: Optional[str] = typer.Option(None, help="Highlight store path"),
) -> None:
    """Open orders grouped by bracket; the last created bracket is marked."""
    d = _build(config, use_fake, store)
    sym = symbol or d.settings.trading.symbol
    iso = d.settings.trading.isolated if isolated is None else isolated
    groups = d.open_orders.load(sym, iso)
    if groups is None:
        typer.echo(d.open_orders.error, err=True)
        raise typer.Exit(1)
    if not groups:
        typer.echo(f"No open orders for {sym}.")
        return
    for g in groups:
        mark = " * NEW" if g.highlighted else ""
        typer.echo(f"[{g.label}]{mark}")
        for o in g.orders:
            typer.echo(
                f"  ID {o.order_id or o.client_order_id or PLACEHOLDER} "
                f"{o.type or PLACEHOLDER} {o.side or PLACEHOLDER} "
                f"price {o.price if o.price is not None else PLACEHOLDER} "
                f"stop {o.stop_price if o.stop_price is not None else PLACEHOLDER} "
                f"status {o.status or PLACEHOLDER}"
            )


@app.command()
def context(
    config: str = typer.Option("configs/dev.yaml", help="YAML config"),
    use_fake: bool = typer.Option(False, help="In-process fake backend"),
) -> None:
    """Liquidity regime and the latest daily market metrics."""
    d = _build(config, use_fake, None)
    liq = LiquidityPanel(d.backend)
    status = liq.load()
    if status is None:
        typer.echo(liq.error, err=True)
    else:
        yoy = PLACEHOLDER if status.yoy_change_pct is None else f"{status.yoy_change_pct:.2f} %"
        typer.echo(f"Liquidity {regime_label(status)} ({regime_tone(status)}) | YoY {yoy} | M2 {_dec(status.m2_value)} | {status.date}")

    metrics = DailyMetricsPanel(d.backend)
    m = metrics.load()
    if m is None:
        typer.echo(metrics.error)
        return
    typer.echo(f"Metrics as of {m.as_of or 'n/a'}")
    typer.echo(f"  ret 1d {fmt_amount(m.return_1d, 2)} | ret 3d {fmt_amount(m.return_3d, 2)} | vol 7d {fmt_amount(m.realized_vol_7d, 2)} | atr14 {fmt_amount(m.atr_14, 0)}")


if __name__ == "__main__":
    app()
