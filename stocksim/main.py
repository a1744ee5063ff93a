from __future__ import annotations

import logging
import sys
from decimal import Decimal
from typing import List, Optional

from stocksim.config.settings import load_settings
from stocksim.session import Session
from stocksim.storage.storage import JsonFileStorage
from stocksim.util.env import fix_ssl_env

logger = logging.getLogger(__name__)


def _fmt_money(value: Decimal) -> str:
    return f"${value:,.2f}"


def _fmt_change(change: Decimal, percent: Decimal) -> str:
    sign = "+" if change >= 0 else "-"
    return f"{sign}{_fmt_money(abs(change))} ({sign}{abs(percent):.2f}%)"


def render_dashboard(session: Session) -> List[str]:
    """Text lines for the account summary, positions and watchlist."""
    lines: List[str] = []
    mode = "Paper" if session.auth.is_paper_trading else "Live"
    lines.append(f"== Dashboard ({mode} trading) ==")

    summary = session.portfolio.summary
    if summary is not None:
        lines.append(f"Portfolio value: {_fmt_money(summary.total_value)}")
        lines.append(f"Cash:            {_fmt_money(summary.cash_balance)}")
        lines.append(f"Today:           {_fmt_change(summary.day_change, summary.day_change_percent)}")
        lines.append(f"Unrealized P/L:  {_fmt_change(summary.total_gain, summary.total_gain_percent)}")
    elif session.portfolio.error:
        lines.append(f"Portfolio unavailable: {session.portfolio.error}")

    if session.portfolio.positions:
        lines.append("")
        lines.append("Positions:")
        for p in session.portfolio.positions:
            lines.append(f"  {p.symbol:<6} {p.qty:>8} @ {_fmt_money(p.avg_entry_price)}  P/L {_fmt_money(p.unrealized_pl)}")

    lines.append("")
    lines.append("Watchlist:")
    market = session.market
    for symbol in market.watchlist:
        data = market.market_data.get(symbol)
        if data is None:
            lines.append(f"  {symbol:<6} n/a")
            continue
        lines.append(f"  {symbol:<6} {_fmt_money(data.price):>12}  {_fmt_change(data.change, data.change_percent)}")
    return lines


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    fix_ssl_env()

    storage = JsonFileStorage(load_settings().storage_dir)
    settings = load_settings(storage)
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    session = Session.create(settings, storage)
    try:
        if not session.auth.check_auth():
            print("Not authenticated: store API credentials first.", file=sys.stderr)
            return 1
        for symbol in argv:
            session.market.add_to_watchlist(symbol.upper())
        session.portfolio.fetch_portfolio()
        session.market.fetch_market_data(session.market.watchlist)
        print("\n".join(render_dashboard(session)))
        return 0
    finally:
        session.close()


if __name__ == "__main__":
    raise SystemExit(main())
