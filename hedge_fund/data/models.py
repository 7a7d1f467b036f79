"""
Market Data Records
Typed views of the financialdatasets.ai payloads.

Records go into the cache as plain dicts (to_dict) and come back out through
from_dict, which ignores keys the dataclass does not declare.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Optional


class _Record:
    @classmethod
    def from_dict(cls, payload: Dict[str, Any]):
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in payload.items() if key in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Price(_Record):
    open: float
    close: float
    high: float
    low: float
    volume: int
    time: str


@dataclass
class FinancialMetrics(_Record):
    ticker: str
    report_period: str
    period: str
    currency: str
    market_cap: Optional[float] = None
    enterprise_value: Optional[float] = None
    price_to_earnings_ratio: Optional[float] = None
    price_to_book_ratio: Optional[float] = None
    price_to_sales_ratio: Optional[float] = None
    enterprise_value_to_ebitda_ratio: Optional[float] = None
    enterprise_value_to_revenue_ratio: Optional[float] = None
    free_cash_flow_yield: Optional[float] = None
    peg_ratio: Optional[float] = None
    gross_margin: Optional[float] = None
    operating_margin: Optional[float] = None
    net_margin: Optional[float] = None
    return_on_equity: Optional[float] = None
    return_on_assets: Optional[float] = None
    return_on_invested_capital: Optional[float] = None
    asset_turnover: Optional[float] = None
    inventory_turnover: Optional[float] = None
    receivables_turnover: Optional[float] = None
    days_sales_outstanding: Optional[float] = None
    operating_cycle: Optional[float] = None
    working_capital_turnover: Optional[float] = None
    current_ratio: Optional[float] = None
    quick_ratio: Optional[float] = None
    cash_ratio: Optional[float] = None
    operating_cash_flow_ratio: Optional[float] = None
    debt_to_equity: Optional[float] = None
    debt_to_assets: Optional[float] = None
    interest_coverage: Optional[float] = None
    revenue_growth: Optional[float] = None
    earnings_growth: Optional[float] = None
    book_value_growth: Optional[float] = None
    earnings_per_share_growth: Optional[float] = None
    free_cash_flow_growth: Optional[float] = None
    operating_income_growth: Optional[float] = None
    ebitda_growth: Optional[float] = None
    payout_ratio: Optional[float] = None
    earnings_per_share: Optional[float] = None
    book_value_per_share: Optional[float] = None
    free_cash_flow_per_share: Optional[float] = None


@dataclass
class LineItem:
    """A line-item search result. Requested items land in `extra`."""

    ticker: str
    report_period: str
    period: str
    currency: str
    extra: Dict[str, Any] = field(default_factory=dict)

    _BASE_FIELDS = ('ticker', 'report_period', 'period', 'currency')

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "LineItem":
        extra = {key: value for key, value in payload.items() if key not in cls._BASE_FIELDS}
        return cls(
            ticker=payload['ticker'],
            report_period=payload['report_period'],
            period=payload['period'],
            currency=payload['currency'],
            extra=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        flat = {name: getattr(self, name) for name in self._BASE_FIELDS}
        flat.update(self.extra)
        return flat

    def get(self, name: str, default: Any = None) -> Any:
        return self.extra.get(name, default)


@dataclass
class InsiderTrade(_Record):
    ticker: str
    issuer: Optional[str] = None
    name: Optional[str] = None
    title: Optional[str] = None
    is_board_director: Optional[bool] = None
    transaction_date: Optional[str] = None
    transaction_shares: Optional[float] = None
    transaction_price_per_share: Optional[float] = None
    transaction_value: Optional[float] = None
    shares_owned_before_transaction: Optional[float] = None
    shares_owned_after_transaction: Optional[float] = None
    security_title: Optional[str] = None
    filing_date: Optional[str] = None


@dataclass
class CompanyNews(_Record):
    ticker: str
    title: str
    author: str
    source: str
    date: str
    url: str
    sentiment: Optional[str] = None


@dataclass
class CompanyFacts(_Record):
    ticker: str
    name: str
    cik: Optional[str] = None
    industry: Optional[str] = None
    sector: Optional[str] = None
    category: Optional[str] = None
    exchange: Optional[str] = None
    is_active: Optional[bool] = None
    listing_date: Optional[str] = None
    location: Optional[str] = None
    market_cap: Optional[float] = None
    number_of_employees: Optional[int] = None
    sec_filings_url: Optional[str] = None
    sic_code: Optional[str] = None
    sic_industry: Optional[str] = None
    sic_sector: Optional[str] = None
    website_url: Optional[str] = None
    weighted_average_shares: Optional[int] = None
