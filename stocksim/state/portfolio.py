"""Portfolio state: account, positions and the derived summary."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from typing import List, Optional, Sequence

from PySide6.QtCore import QObject

from stocksim.broker.client import AlpacaClient
from stocksim.broker.models import Account, Allocation, PortfolioSummary, Position

from .base import StateContainer

logger = logging.getLogger(__name__)

CASH_SYMBOL = "Cash"


def _percent(part: Decimal, whole: Decimal) -> Decimal:
    if whole <= 0:
        return Decimal("0")
    return part / whole * 100


def summarize(account: Account, positions: Sequence[Position]) -> PortfolioSummary:
    """Portfolio summary from an account snapshot and its positions.

    Day change is measured against the previous close equity; total gain is
    the sum of unrealized P/L over positions. Percentages are 0 when their
    denominator is not positive.
    """
    total_value = account.portfolio_value
    day_change = total_value - account.last_equity
    total_gain = sum((p.unrealized_pl for p in positions), Decimal("0"))
    return PortfolioSummary(
        total_value=total_value,
        cash_balance=account.cash,
        day_change=day_change,
        day_change_percent=_percent(day_change, account.last_equity),
        total_gain=total_gain,
        total_gain_percent=_percent(total_gain, total_value),
    )


def allocations(positions: Sequence[Position], summary: Optional[PortfolioSummary]) -> List[Allocation]:
    """Share of total value per position plus a cash row, largest first."""
    if not positions or summary is None:
        return []
    total = summary.total_value
    rows = [
        Allocation(symbol=p.symbol, value=p.market_value, percentage=_percent(p.market_value, total))
        for p in positions
    ]
    rows.append(
        Allocation(
            symbol=CASH_SYMBOL,
            value=summary.cash_balance,
            percentage=_percent(summary.cash_balance, total),
        )
    )
    return sorted(rows, key=lambda row: row.value, reverse=True)


class PortfolioState(StateContainer):
    """Account snapshot, positions and a summary recomputed from both."""

    _state_fields = ("account", "positions", "summary")

    def __init__(self, client: AlpacaClient, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._client = client
        self.account: Optional[Account] = None
        self.positions: List[Position] = []
        self.summary: Optional[PortfolioSummary] = None

    def fetch_account(self) -> None:
        self._update(is_loading=True, error=None)
        try:
            account = self._client.get_account()
        except Exception as e:
            logger.error(f"Failed to fetch account: {e}")
            self._fail(e, "Failed to fetch account")
            return
        self._update(account=account, is_loading=False)
        self.calculate_summary()

    def fetch_positions(self) -> None:
        self._update(is_loading=True, error=None)
        try:
            positions = self._client.get_positions()
        except Exception as e:
            logger.error(f"Failed to fetch positions: {e}")
            self._fail(e, "Failed to fetch positions")
            return
        self._update(positions=positions, is_loading=False)
        self.calculate_summary()

    def fetch_portfolio(self) -> None:
        """Fetch account and positions in parallel; both must succeed."""
        self._update(is_loading=True, error=None)
        try:
            with ThreadPoolExecutor(max_workers=2, thread_name_prefix="portfolio") as executor:
                account_future = executor.submit(self._client.get_account)
                positions_future = executor.submit(self._client.get_positions)
                account = account_future.result()
                positions = positions_future.result()
        except Exception as e:
            logger.error(f"Failed to fetch portfolio: {e}")
            self._fail(e, "Failed to fetch portfolio data")
            return
        self._update(account=account, positions=positions, is_loading=False)
        self.calculate_summary()

    def calculate_summary(self) -> None:
        """Recompute ``summary``; no-op until an account has been fetched."""
        if self.account is None:
            return
        self._update(summary=summarize(self.account, self.positions))

    def allocations(self) -> List[Allocation]:
        return allocations(self.positions, self.summary)

    def close_position(self, symbol: str) -> bool:
        """Liquidate ``symbol`` and refresh the portfolio."""
        self._update(is_loading=True, error=None)
        try:
            self._client.close_position(symbol)
        except Exception as e:
            logger.error(f"Failed to close position {symbol}: {e}")
            self._fail(e, "Failed to close position")
            return False
        logger.info(f"Position {symbol} close requested")
        self.fetch_portfolio()
        return True

    def close_all_positions(self) -> bool:
        self._update(is_loading=True, error=None)
        try:
            self._client.close_all_positions()
        except Exception as e:
            logger.error(f"Failed to close all positions: {e}")
            self._fail(e, "Failed to close positions")
            return False
        self.fetch_portfolio()
        return True
