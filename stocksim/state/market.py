"""Market state: watchlist, asset search, quotes and chart bars."""

from __future__ import annotations

import calendar
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Sequence, Union

from PySide6.QtCore import QObject

from stocksim.broker.client import AlpacaClient
from stocksim.broker.models import Asset, Bar, MarketData, Timeframe
from stocksim.config.settings import DEFAULT_WATCHLIST
from stocksim.storage.storage import IStorageService

from .base import StateContainer

logger = logging.getLogger(__name__)

WATCHLIST_STORAGE_KEY = "watchlist"
DEFAULT_BATCH_SIZE = 5


@dataclass(frozen=True)
class SymbolStatus:
    """Outcome of the last market data fetch for one symbol."""
    ok: bool
    error: Optional[str] = None


def compute_market_data(symbol: str, price: Decimal, previous_close: Decimal) -> MarketData:
    """Price change versus the previous close.

    ``change_percent`` is 0 when the previous close is 0.
    """
    change = price - previous_close
    if previous_close == 0:
        change_percent = Decimal("0")
    else:
        change_percent = change / previous_close * 100
    return MarketData(symbol=symbol, price=price, change=change, change_percent=change_percent)


def _months_before(moment: datetime, months: int) -> datetime:
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def lookback_start(timeframe: Timeframe, now: datetime) -> datetime:
    """Start of the chart window for ``timeframe``.

    Minute bars cover the last 24 hours, 15-minute and hourly bars the last
    7 days, daily bars the last 3 months.
    """
    if timeframe in (Timeframe.MIN_1, Timeframe.MIN_5):
        return now - timedelta(hours=24)
    if timeframe in (Timeframe.MIN_15, Timeframe.HOUR_1):
        return now - timedelta(days=7)
    return _months_before(now, 3)


class MarketState(StateContainer):
    """Watchlist plus cached quotes and bars.

    Args:
        client: Brokerage client
        storage: Persists the watchlist when given
        batch_size: Number of symbols fetched concurrently in one batch
        watchlist: Initial watchlist when none is stored
        now: Clock returning an aware UTC datetime
    """

    _state_fields = (
        "search_results",
        "watchlist",
        "market_data",
        "symbol_status",
        "selected_symbol",
        "historical_data",
    )

    def __init__(
        self,
        client: AlpacaClient,
        storage: Optional[IStorageService] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        watchlist: Optional[Sequence[str]] = None,
        now: Optional[Callable[[], datetime]] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._client = client
        self._storage = storage
        self._batch_size = max(1, batch_size)
        self._now = now or (lambda: datetime.now(timezone.utc))
        self.search_results: List[Asset] = []
        self.watchlist: List[str] = self._load_watchlist(watchlist)
        self.market_data: Dict[str, MarketData] = {}
        self.symbol_status: Dict[str, SymbolStatus] = {}
        self.selected_symbol: Optional[str] = None
        self.historical_data: List[Bar] = []

    @property
    def batch_size(self) -> int:
        return self._batch_size

    # ----- Watchlist -----
    def _load_watchlist(self, initial: Optional[Sequence[str]]) -> List[str]:
        if self._storage is not None:
            stored = self._storage.load(WATCHLIST_STORAGE_KEY)
            if isinstance(stored, list):
                return [str(s) for s in stored]
        return list(initial if initial is not None else DEFAULT_WATCHLIST)

    def _save_watchlist(self) -> None:
        if self._storage is None:
            return
        try:
            self._storage.save(WATCHLIST_STORAGE_KEY, self.watchlist)
        except Exception as e:
            logger.error(f"Failed to save watchlist: {e}")

    def add_to_watchlist(self, symbol: str) -> None:
        if symbol in self.watchlist:
            return
        self._update(watchlist=[*self.watchlist, symbol])
        self._save_watchlist()

    def remove_from_watchlist(self, symbol: str) -> None:
        if symbol not in self.watchlist:
            return
        self._update(watchlist=[s for s in self.watchlist if s != symbol])
        self._save_watchlist()

    def watchlist_data(self) -> List[MarketData]:
        """Market data of watchlist symbols, in watchlist order, where available."""
        return [self.market_data[s] for s in self.watchlist if s in self.market_data]

    # ----- Search -----
    def search_assets(self, query: str) -> None:
        """Replace ``search_results``; a blank query clears them without a request."""
        if not query.strip():
            self._update(search_results=[])
            return

        self._update(is_loading=True, error=None)
        try:
            results = self._client.search_assets(query)
        except Exception as e:
            logger.error(f"Asset search for {query!r} failed: {e}")
            self._fail(e, "Failed to search assets")
            return
        self._update(search_results=results, is_loading=False)

    # ----- Quotes -----
    def _fetch_symbol(self, symbol: str) -> MarketData:
        quote = self._client.get_quote(symbol)
        now = self._now()
        yesterday = now - timedelta(days=1)
        bars = self._client.get_bars(symbol, Timeframe.DAY_1, yesterday.date(), now.date(), limit=2)
        previous_close = bars[0].c if bars else quote.ap
        return compute_market_data(symbol, quote.ap, previous_close)

    def fetch_market_data(self, symbols: Sequence[str]) -> None:
        """Fetch quote and previous close for each symbol.

        Symbols are fetched ``batch_size`` at a time on worker threads; the
        next batch starts once the current one has finished. A failing symbol
        is logged, marked failed in ``symbol_status`` and dropped from
        ``market_data``; the other symbols are unaffected. Repeated symbols
        are fetched once.
        """
        symbols = list(dict.fromkeys(symbols))
        if not symbols:
            return

        self._update(is_loading=True, error=None)
        market_data = dict(self.market_data)
        symbol_status = dict(self.symbol_status)
        try:
            with ThreadPoolExecutor(
                max_workers=self._batch_size, thread_name_prefix="market_data"
            ) as executor:
                for start in range(0, len(symbols), self._batch_size):
                    batch = symbols[start:start + self._batch_size]
                    futures = [(symbol, executor.submit(self._fetch_symbol, symbol)) for symbol in batch]
                    for symbol, future in futures:
                        try:
                            market_data[symbol] = future.result()
                            symbol_status[symbol] = SymbolStatus(ok=True)
                        except Exception as e:
                            logger.error(f"Failed to fetch data for {symbol}: {e}")
                            market_data.pop(symbol, None)
                            symbol_status[symbol] = SymbolStatus(ok=False, error=str(e))
        except Exception as e:
            logger.error(f"Market data fetch failed: {e}")
            self._fail(e, "Failed to fetch market data")
            return

        self._update(market_data=market_data, symbol_status=symbol_status, is_loading=False)

    def failed_symbols(self) -> List[str]:
        return [s for s, status in self.symbol_status.items() if not status.ok]

    # ----- Charts -----
    def fetch_historical_data(
        self, symbol: str, timeframe: Union[Timeframe, str] = Timeframe.DAY_1
    ) -> None:
        """Replace ``historical_data`` with bars covering the timeframe's lookback window."""
        if not symbol:
            return

        self._update(is_loading=True, error=None)
        try:
            timeframe = Timeframe(timeframe)
            now = self._now()
            bars = self._client.get_bars(symbol, timeframe, lookback_start(timeframe, now), now)
        except Exception as e:
            logger.error(f"Failed to fetch {timeframe} bars for {symbol}: {e}")
            self._fail(e, "Failed to fetch historical data")
            return
        self._update(historical_data=bars, selected_symbol=symbol, is_loading=False)

    def set_selected_symbol(self, symbol: Optional[str]) -> None:
        """Select ``symbol`` and load its daily chart."""
        self._update(selected_symbol=symbol)
        if symbol:
            self.fetch_historical_data(symbol, Timeframe.DAY_1)
