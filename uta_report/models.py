"""
Result Objects.

Immutable value objects returned by the parser and the aggregators. Every
call builds fresh instances; nothing here is mutated after construction.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .config import FIELD_DIRECTION, FIELD_SIDE, FIELD_TYPE
from .utils import to_upper


@dataclass(frozen=True)
class ParsedRow:
    """
    One transaction record from an export.

    'raw' is the canonical source of truth, keyed by the cleaned header text.
    'category' is only a best-guess convenience copy of the type column.
    """
    row_id: str
    raw: Dict[str, str]
    category: Optional[str] = None

    def get(self, name: str, fallback: Optional[str] = None) -> Optional[str]:
        """Raw value of 'name', or 'fallback' only when the column is absent."""
        return self.raw[name] if name in self.raw else fallback

    @property
    def transaction_type(self) -> str:
        return to_upper(self.get(FIELD_TYPE, self.category))

    @property
    def direction(self) -> str:
        return to_upper(self.get(FIELD_DIRECTION, self.get(FIELD_SIDE)))


@dataclass(frozen=True)
class ParseResult:
    headers: List[str]
    rows: List[ParsedRow]
    warnings: List[str]
    # Informational: role -> resolved header text (None if unresolved)
    columns: Dict[str, Optional[str]] = field(default_factory=dict)
    header_row_index: int = 0
    strategy: Optional[str] = None


@dataclass(frozen=True)
class FeesBreakdown:
    """
    Fee, funding and refund totals in USDT.

    The first five fields are signed. The three '*_cost_usdt' fields are
    non-negative views meant for display.
    """
    trading_fees_usdt: float = 0.0      # usually negative
    funding_paid_usdt: float = 0.0      # negative only
    funding_received_usdt: float = 0.0  # positive only
    fee_refund_usdt: float = 0.0        # usually positive
    net_fees_usdt: float = 0.0          # trading + funding paid + refund

    trading_cost_usdt: float = 0.0
    funding_cost_usdt: float = 0.0
    net_cost_usdt: float = 0.0


@dataclass(frozen=True)
class CoinTradeSummary:
    coin: str
    quote: str
    total_qty: float
    total_quote_amount: float
    avg_price: float
    trades: int


@dataclass(frozen=True)
class PositionLeg:
    qty: float
    amount: float  # cost for the buy leg, proceeds for the sell leg
    avg_price: float


@dataclass(frozen=True)
class CoinPosition:
    coin: str
    quote: str
    buy: PositionLeg
    sell: PositionLeg
    net_qty: float
    status: str  # OPEN | CLOSED | PARTIAL


@dataclass(frozen=True)
class TradeCoinsResult:
    bought: List[CoinTradeSummary]
    sold: List[CoinTradeSummary]
    positions: List[CoinPosition]
