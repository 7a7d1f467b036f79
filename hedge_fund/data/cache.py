"""
In-Memory Market Data Cache
Per-ticker merge cache for API responses.

Each category has an identity field. Writing records for a ticker appends
only those whose identity value is not already cached (first seen wins, also
within one batch). Cached records are never changed or removed.

    prices            -> time
    financial_metrics -> report_period
    line_items        -> report_period
    insider_trades    -> filing_date
    company_news      -> date
"""

import copy
import logging
import threading
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


CACHE_KEY_FIELDS: Dict[str, str] = {
    'prices': 'time',
    'financial_metrics': 'report_period',
    'line_items': 'report_period',
    'insider_trades': 'filing_date',
    'company_news': 'date',
}


class CacheError(Exception):
    """Base class for cache failures."""


class MissingKeyFieldError(CacheError):
    def __init__(self, field: str, category: str):
        self.field = field
        self.category = category
        super().__init__(f"Record for '{category}' is missing identity field '{field}'")


class UnknownCacheCategoryError(CacheError):
    def __init__(self, category: str):
        self.category = category
        super().__init__(f"Unknown cache category: '{category}'")


class Cache:
    """Thread-safe merge cache keyed by (category, ticker)."""

    def __init__(self):
        self._lock = threading.Lock()
        self._store: Dict[str, Dict[str, List[Dict[str, Any]]]] = {
            category: {} for category in CACHE_KEY_FIELDS
        }

    @staticmethod
    def _key_field(category: str) -> str:
        try:
            return CACHE_KEY_FIELDS[category]
        except KeyError:
            raise UnknownCacheCategoryError(category) from None

    def get(self, category: str, key: str) -> List[Dict[str, Any]]:
        """
        Return a copy of the cached records for one ticker.

        Args:
            category: One of CACHE_KEY_FIELDS
            key: Entity key, usually the ticker

        Returns:
            List of records in insertion order (empty if nothing cached)
        """
        self._key_field(category)
        with self._lock:
            records = self._store[category].get(key, [])
            return copy.deepcopy(records)

    def set(self, category: str, key: str, records: List[Dict[str, Any]]) -> int:
        """
        Merge records into the cache for one ticker.

        Validation runs before anything is touched: if any record lacks the
        identity field, MissingKeyFieldError is raised and the cached list
        is left exactly as it was.

        Args:
            category: One of CACHE_KEY_FIELDS
            key: Entity key, usually the ticker
            records: New records to merge

        Returns:
            Number of records actually added

        Example:
            >>> cache = Cache()
            >>> cache.set('prices', 'AAPL', [{'time': 't1'}, {'time': 't1'}])
            1
        """
        key_field = self._key_field(category)

        for record in records:
            if key_field not in record:
                raise MissingKeyFieldError(key_field, category)

        incoming = copy.deepcopy(list(records))

        with self._lock:
            existing = self._store[category].get(key, [])
            seen = {record[key_field] for record in existing}
            merged = list(existing)
            added = 0
            for record in incoming:
                identity = record[key_field]
                if identity in seen:
                    continue
                seen.add(identity)
                merged.append(record)
                added += 1
            self._store[category][key] = merged

        logger.debug(f"Cache {category}[{key}]: +{added} record(s), {len(merged)} total")
        return added

    def clear(self) -> None:
        with self._lock:
            for category in self._store:
                self._store[category] = {}

    # ------------------------------------------------------------------
    # Typed conveniences
    # ------------------------------------------------------------------

    def get_prices(self, ticker: str) -> List[Dict[str, Any]]:
        return self.get('prices', ticker)

    def set_prices(self, ticker: str, data: List[Dict[str, Any]]) -> int:
        return self.set('prices', ticker, data)

    def get_financial_metrics(self, ticker: str) -> List[Dict[str, Any]]:
        return self.get('financial_metrics', ticker)

    def set_financial_metrics(self, ticker: str, data: List[Dict[str, Any]]) -> int:
        return self.set('financial_metrics', ticker, data)

    def get_line_items(self, ticker: str) -> List[Dict[str, Any]]:
        return self.get('line_items', ticker)

    def set_line_items(self, ticker: str, data: List[Dict[str, Any]]) -> int:
        return self.set('line_items', ticker, data)

    def get_insider_trades(self, ticker: str) -> List[Dict[str, Any]]:
        return self.get('insider_trades', ticker)

    def set_insider_trades(self, ticker: str, data: List[Dict[str, Any]]) -> int:
        return self.set('insider_trades', ticker, data)

    def get_company_news(self, ticker: str) -> List[Dict[str, Any]]:
        return self.get('company_news', ticker)

    def set_company_news(self, ticker: str, data: List[Dict[str, Any]]) -> int:
        return self.set('company_news', ticker, data)


# ============================================================================
# PROCESS-WIDE DEFAULT
# ============================================================================

_cache: Optional[Cache] = None
_cache_lock = threading.Lock()


def get_cache() -> Cache:
    """Return the process-wide cache, creating it on first use."""
    global _cache
    if _cache is None:
        with _cache_lock:
            if _cache is None:
                _cache = Cache()
                logger.debug("Created process-wide cache")
    return _cache
