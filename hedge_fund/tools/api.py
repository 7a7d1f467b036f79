"""
Financial Datasets API Client
Async access to api.financialdatasets.ai with a read-through merge cache.

Every getter checks the cache first and only goes to the network when the
cache has nothing usable for the requested window. Fresh results are merged
back into the cache (see hedge_fund.data.cache for the merge rules).

Endpoints used:
- GET  /prices/
- GET  /financial-metrics/
- POST /financials/search/line-items
- GET  /insider-trades/        (paged backwards by filing_date)
- GET  /news/                  (paged backwards by date)
- GET  /company/facts/
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import aiohttp
import pandas as pd

from hedge_fund.data.cache import Cache, CacheError, get_cache
from hedge_fund.data.models import (
    CompanyFacts,
    CompanyNews,
    FinancialMetrics,
    InsiderTrade,
    LineItem,
    Price,
)
from hedge_fund.utils.config import Config
from hedge_fund.utils.helpers import today_str

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 30


class FinancialDataAPIError(Exception):
    """Non-2xx response from the market data API."""

    def __init__(self, status: int, url: str, body: str = ""):
        self.status = status
        self.url = url
        self.body = body
        super().__init__(f"Error fetching data: {status} {url} - {body[:200]}")


def _day(value: Optional[str]) -> str:
    """'2024-01-15T10:30:00Z' -> '2024-01-15'"""
    return (value or "").split('T')[0]


class FinancialDatasetsAPI:
    """
    Market data client.

    Args:
        config: Application config (API key and base URL)
        cache: Cache to read/write; defaults to the process-wide cache
        session: Shared aiohttp session; one is opened per request otherwise
    """

    def __init__(self, config: Config, cache: Optional[Cache] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self.cache = cache if cache is not None else get_cache()
        self.session = session
        self.base_url = config.financial_datasets_base_url.rstrip('/')

    # ========================================================================
    # HTTP
    # ========================================================================

    def _headers(self) -> Dict[str, str]:
        headers = {'Content-Type': 'application/json', 'Accept': 'application/json'}
        if self.config.financial_datasets_api_key:
            headers['X-API-KEY'] = self.config.financial_datasets_api_key
        return headers

    async def _send(self, session: aiohttp.ClientSession, method: str, url: str,
                    params: Optional[Dict[str, Any]], json_body: Optional[Dict[str, Any]]) -> Tuple[int, Any, str]:
        async with session.request(
            method,
            url,
            params=params,
            json=json_body,
            headers=self._headers(),
            timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_SECONDS),
        ) as response:
            text = await response.text()
            if response.status < 200 or response.status >= 300:
                return response.status, None, text
            return response.status, await response.json(content_type=None), text

    async def _request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
                       json_body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Perform one API call and return the decoded JSON body.

        Raises:
            FinancialDataAPIError: On any non-2xx status
        """
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url} params={params}")

        if self.session is not None:
            status, payload, text = await self._send(self.session, method, url, params, json_body)
        else:
            async with aiohttp.ClientSession() as session:
                status, payload, text = await self._send(session, method, url, params, json_body)

        if payload is None:
            logger.error(f"API error {status} for {method} {url}: {text[:200]}")
            raise FinancialDataAPIError(status, url, text)
        return payload

    def _store(self, category: str, ticker: str, records: List[Dict[str, Any]]) -> None:
        if not records:
            return
        try:
            self.cache.set(category, ticker, records)
        except CacheError as e:
            logger.warning(f"Could not cache {category} for {ticker}: {e}")

    # ========================================================================
    # PRICES
    # ========================================================================

    async def get_prices(self, ticker: str, start_date: str, end_date: str) -> List[Price]:
        """
        Daily OHLCV bars for [start_date, end_date], oldest first.

        Example:
            >>> prices = await api.get_prices('AAPL', '2024-01-01', '2024-03-01')
        """
        cached = [
            record for record in self.cache.get_prices(ticker)
            if start_date <= _day(record['time']) <= end_date
        ]
        if cached:
            logger.debug(f"Prices for {ticker}: {len(cached)} served from cache")
            return [Price.from_dict(record) for record in sorted(cached, key=lambda r: r['time'])]

        payload = await self._request('GET', '/prices/', params={
            'ticker': ticker,
            'interval': 'day',
            'interval_multiplier': 1,
            'start_date': start_date,
            'end_date': end_date,
        })
        prices = [Price.from_dict(record) for record in payload.get('prices') or []]
        logger.info(f"Fetched {len(prices)} price bars for {ticker}")

        self._store('prices', ticker, [price.to_dict() for price in prices])
        return sorted(prices, key=lambda p: p.time)

    def prices_to_df(self, prices: List[Price]) -> pd.DataFrame:
        """Price list -> DataFrame indexed by Date, ascending."""
        df = pd.DataFrame([price.to_dict() for price in prices],
                          columns=['open', 'close', 'high', 'low', 'volume', 'time'])
        df['Date'] = pd.to_datetime(df['time'].map(_day))
        df = df.drop(columns=['time']).set_index('Date')
        for column in ('open', 'close', 'high', 'low'):
            df[column] = df[column].astype(float)
        df['volume'] = df['volume'].astype('int64')
        return df.sort_index()

    async def get_price_data(self, ticker: str, start_date: str, end_date: str) -> pd.DataFrame:
        prices = await self.get_prices(ticker, start_date, end_date)
        return self.prices_to_df(prices)

    # ========================================================================
    # FUNDAMENTALS
    # ========================================================================

    async def get_financial_metrics(self, ticker: str, end_date: str, period: str = 'ttm',
                                    limit: int = 10) -> List[FinancialMetrics]:
        """
        Financial metrics reported on or before end_date, newest first.

        Args:
            ticker: Stock ticker
            end_date: Latest report_period to include ('YYYY-MM-DD')
            period: 'ttm', 'annual' or 'quarterly'
            limit: Maximum number of periods returned
        """
        cached = [
            record for record in self.cache.get_financial_metrics(ticker)
            if record['report_period'] <= end_date and record.get('period') == period
        ]
        if cached:
            cached.sort(key=lambda r: r['report_period'], reverse=True)
            return [FinancialMetrics.from_dict(record) for record in cached[:limit]]

        payload = await self._request('GET', '/financial-metrics/', params={
            'ticker': ticker,
            'report_period_lte': end_date,
            'limit': limit,
            'period': period,
        })
        metrics = [FinancialMetrics.from_dict(record) for record in payload.get('financial_metrics') or []]
        logger.info(f"Fetched {len(metrics)} financial metric periods for {ticker}")

        self._store('financial_metrics', ticker, [metric.to_dict() for metric in metrics])
        return metrics[:limit]

    async def search_line_items(self, ticker: str, line_items: List[str], end_date: str,
                                period: str = 'ttm', limit: int = 10) -> List[LineItem]:
        """
        Search named financial statement line items.

        Cached results are reused only when every cached period carries all
        requested line items.
        """
        cached = [
            record for record in self.cache.get_line_items(ticker)
            if record['report_period'] <= end_date and record.get('period') == period
        ]
        if cached and all(all(name in record for name in line_items) for record in cached):
            cached.sort(key=lambda r: r['report_period'], reverse=True)
            return [LineItem.from_dict(record) for record in cached[:limit]]

        payload = await self._request('POST', '/financials/search/line-items', json_body={
            'tickers': [ticker],
            'line_items': list(line_items),
            'end_date': end_date,
            'period': period,
            'limit': limit,
        })
        results = [LineItem.from_dict(record) for record in payload.get('search_results') or []]
        results = results[:limit]
        logger.info(f"Fetched {len(results)} line item periods for {ticker}")

        self._store('line_items', ticker, [item.to_dict() for item in results])
        return results

    # ========================================================================
    # INSIDER TRADES / NEWS (paged)
    # ========================================================================

    async def _fetch_paged(self, path: str, result_key: str, date_field: str,
                           lte_param: str, gte_param: str, ticker: str, end_date: str,
                           start_date: Optional[str], limit: int) -> List[Dict[str, Any]]:
        """
        Page backwards from end_date until a short page or start_date is reached.

        A failing page is logged and ends paging; records fetched so far are kept.
        """
        collected: List[Dict[str, Any]] = []
        page_end = end_date

        while True:
            params = {'ticker': ticker, lte_param: page_end, 'limit': limit}
            if start_date:
                params[gte_param] = start_date

            try:
                payload = await self._request('GET', path, params=params)
            except FinancialDataAPIError as e:
                logger.error(f"Stopped paging {path} for {ticker}: {e}")
                break

            batch = payload.get(result_key) or []
            if not batch:
                break
            collected.extend(batch)

            if not start_date or len(batch) < limit:
                break

            oldest = min(_day(record.get(date_field)) for record in batch)
            if not oldest or oldest <= start_date or oldest == page_end:
                break
            page_end = oldest

        return collected

    async def get_insider_trades(self, ticker: str, end_date: str, start_date: Optional[str] = None,
                                 limit: int = 1000) -> List[InsiderTrade]:
        """Insider trades filed in the window, newest first."""

        def trade_day(record: Dict[str, Any]) -> str:
            return _day(record.get('transaction_date') or record.get('filing_date'))

        cached = [
            record for record in self.cache.get_insider_trades(ticker)
            if (not start_date or trade_day(record) >= start_date) and trade_day(record) <= end_date
        ]
        if cached:
            cached.sort(key=trade_day, reverse=True)
            return [InsiderTrade.from_dict(record) for record in cached]

        records = await self._fetch_paged(
            '/insider-trades/', 'insider_trades', 'filing_date',
            'filing_date_lte', 'filing_date_gte', ticker, end_date, start_date, limit,
        )
        logger.info(f"Fetched {len(records)} insider trades for {ticker}")

        self._store('insider_trades', ticker, [r for r in records if r.get('filing_date')])
        records.sort(key=trade_day, reverse=True)
        return [InsiderTrade.from_dict(record) for record in records]

    async def get_company_news(self, ticker: str, end_date: str, start_date: Optional[str] = None,
                               limit: int = 1000) -> List[CompanyNews]:
        """Company news published in the window, newest first."""
        cached = [
            record for record in self.cache.get_company_news(ticker)
            if (not start_date or _day(record['date']) >= start_date) and _day(record['date']) <= end_date
        ]
        if cached:
            cached.sort(key=lambda r: r['date'], reverse=True)
            return [CompanyNews.from_dict(record) for record in cached]

        records = await self._fetch_paged(
            '/news/', 'news', 'date', 'end_date', 'start_date',
            ticker, end_date, start_date, limit,
        )
        logger.info(f"Fetched {len(records)} news articles for {ticker}")

        self._store('company_news', ticker, records)
        records.sort(key=lambda r: r.get('date', ''), reverse=True)
        return [CompanyNews.from_dict(record) for record in records]

    # ========================================================================
    # MARKET CAP
    # ========================================================================

    async def get_company_facts(self, ticker: str) -> Optional[CompanyFacts]:
        payload = await self._request('GET', '/company/facts/', params={'ticker': ticker})
        facts = payload.get('company_facts')
        return CompanyFacts.from_dict(facts) if facts else None

    async def get_market_cap(self, ticker: str, end_date: str) -> Optional[float]:
        """
        Market cap as of end_date.

        Today's value comes from company facts; historical values come from
        the newest financial metrics period on or before end_date.
        """
        if end_date == today_str():
            facts = await self.get_company_facts(ticker)
            return facts.market_cap if facts else None

        metrics = await self.get_financial_metrics(ticker, end_date)
        if not metrics:
            return None
        return metrics[0].market_cap
