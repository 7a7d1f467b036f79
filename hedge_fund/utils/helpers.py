"""
Helper Utilities
Common date, ticker and arithmetic helpers used across the application.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Tuple

DATE_FORMAT = '%Y-%m-%d'
DEFAULT_LOOKBACK_DAYS = 90


def parse_date(date_str: str) -> Optional[datetime]:
    """
    Parse date string to datetime object.

    Handles the formats returned by the market data API.

    Args:
        date_str: Date string in various formats

    Returns:
        datetime object or None if parsing fails

    Example:
        >>> dt = parse_date('2024-01-15')
        >>> dt = parse_date('2024-01-15T10:30:00Z')
    """
    if not date_str:
        return None

    formats = [
        '%Y-%m-%d',
        '%Y-%m-%dT%H:%M:%SZ',
        '%Y-%m-%dT%H:%M:%S.%fZ',
        '%Y-%m-%d %H:%M:%S'
    ]

    for fmt in formats:
        try:
            return datetime.strptime(date_str, fmt)
        except ValueError:
            continue

    return None


def is_valid_date(date_str: str) -> bool:
    """True when date_str is exactly 'YYYY-MM-DD'."""
    try:
        datetime.strptime(date_str, DATE_FORMAT)
    except (TypeError, ValueError):
        return False
    return True


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, returning default if denominator is zero.

    Example:
        >>> safe_divide(10, 2)
        5.0
        >>> safe_divide(10, 0)
        0.0
    """
    if not denominator:
        return default
    return numerator / denominator


def normalize_ticker(ticker: str) -> str:
    """
    Normalize ticker symbol to uppercase.

    Example:
        >>> normalize_ticker(' aapl ')
        'AAPL'
    """
    return ticker.strip().upper()


def today_str() -> str:
    return date.today().strftime(DATE_FORMAT)


def get_date_range(days: int = DEFAULT_LOOKBACK_DAYS, end_date: Optional[str] = None) -> Tuple[str, str]:
    """
    Get a (start_date, end_date) window ending at end_date (default today).

    Args:
        days: Number of days to look back
        end_date: Window end as 'YYYY-MM-DD'

    Returns:
        Tuple of (start_date, end_date) in 'YYYY-MM-DD' format

    Example:
        >>> get_date_range(90, '2024-04-01')
        ('2024-01-02', '2024-04-01')
    """
    end = datetime.strptime(end_date, DATE_FORMAT) if end_date else datetime.now()
    start = end - timedelta(days=days)
    return start.strftime(DATE_FORMAT), end.strftime(DATE_FORMAT)


def resolve_date_window(
    start_date: Optional[str],
    end_date: Optional[str],
    days: int = DEFAULT_LOOKBACK_DAYS,
) -> Tuple[str, str]:
    """Fill a missing end date with today and a missing start date with end - days."""
    end = end_date or today_str()
    if start_date:
        return start_date, end
    start, _ = get_date_range(days, end)
    return start, end
