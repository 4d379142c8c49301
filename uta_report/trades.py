"""
Trade Position Aggregation.

Builds the "bought", "sold" and "positions" views from Asset Change Details
rows. A UTA trade is exported as two legs, one per currency (e.g. ADA and
USDT). Only the base-coin leg is used, valued with execution fields:
- Base quantity: abs('Quantity') on the base coin row.
- Execution price: 'Filled Price'.
- Quote amount: quantity * price.
"""
from typing import Dict, Iterable, List, Tuple

from .config import (
    DEFAULT_QUOTE_CURRENCY, EPSILON, FIELD_CONTRACT, FIELD_CURRENCY,
    FIELD_FILLED_PRICE, FIELD_QUANTITY, FIELD_SYMBOL, QUOTE_CURRENCIES,
    SIDE_BUY, SIDE_SELL, TYPE_TRADE
)
from .models import (
    CoinPosition, CoinTradeSummary, ParsedRow, PositionLeg, TradeCoinsResult
)
from .utils import parse_number, to_upper

STATUS_OPEN = 'OPEN'
STATUS_CLOSED = 'CLOSED'
STATUS_PARTIAL = 'PARTIAL'


def quote_from_contract(contract: str) -> str:
    """'BTCUSDC' -> 'USDC', 'ETHUSD' -> 'USD', unknown suffix -> 'USDT'."""
    for quote in QUOTE_CURRENCIES:
        if contract.endswith(quote):
            return quote
    return DEFAULT_QUOTE_CURRENCY


def _average(amount: float, qty: float) -> float:
    return amount / qty if qty > EPSILON else 0.0


def _position_status(buy_qty: float, sell_qty: float) -> str:
    net_qty = buy_qty - sell_qty
    if abs(net_qty) <= EPSILON:
        return STATUS_CLOSED
    if sell_qty > EPSILON and sell_qty < buy_qty - EPSILON:
        return STATUS_PARTIAL
    # Never sold, or sold more than bought
    return STATUS_OPEN


def _summaries(buckets: Dict[Tuple[str, str], List[float]]) -> List[CoinTradeSummary]:
    summaries = [
        CoinTradeSummary(
            coin=coin,
            quote=quote,
            total_qty=qty,
            total_quote_amount=amount,
            avg_price=_average(amount, qty),
            trades=int(trades)
        )
        for (coin, quote), (qty, amount, trades) in buckets.items()
    ]
    return sorted(summaries, key=lambda s: s.coin)


def get_trade_coins(rows: Iterable[ParsedRow]) -> TradeCoinsResult:
    """
    Aggregates executed trades into per-coin buy/sell totals and positions.

    A row contributes only if it is a 'TRADE' with a BUY/SELL direction, has
    a currency and a contract, is not itself a quote-currency leg, and has a
    positive quantity and filled price.

    Args:
        rows (Iterable[ParsedRow]): Rows from one or more parsed exports.

    Returns:
        TradeCoinsResult: 'bought' and 'sold' summaries plus merged
        'positions', each sorted by coin.
    """
    # (coin, quote) -> [qty, quote amount, trade count]
    buy_buckets: Dict[Tuple[str, str], List[float]] = {}
    sell_buckets: Dict[Tuple[str, str], List[float]] = {}

    for row in rows:
        if row.transaction_type != TYPE_TRADE:
            continue

        direction = row.direction
        if direction not in (SIDE_BUY, SIDE_SELL):
            continue

        currency = to_upper(row.get(FIELD_CURRENCY, ''))
        contract = to_upper(row.get(FIELD_CONTRACT, row.get(FIELD_SYMBOL, '')))
        if not currency or not contract:
            continue

        # Quote legs would double count the trade
        if currency in QUOTE_CURRENCIES:
            continue

        qty = abs(parse_number(row.get(FIELD_QUANTITY, '')))
        if qty <= EPSILON:
            continue

        price = parse_number(row.get(FIELD_FILLED_PRICE, ''))
        if price <= EPSILON:
            continue

        buckets = buy_buckets if direction == SIDE_BUY else sell_buckets
        bucket = buckets.setdefault((currency, quote_from_contract(contract)), [0.0, 0.0, 0])
        bucket[0] += qty
        bucket[1] += qty * price
        bucket[2] += 1

    bought = _summaries(buy_buckets)
    sold = _summaries(sell_buckets)

    buy_map = {(s.coin, s.quote): s for s in bought}
    sell_map = {(s.coin, s.quote): s for s in sold}

    positions = []
    for key in list(buy_map) + [k for k in sell_map if k not in buy_map]:
        buy = buy_map.get(key)
        sell = sell_map.get(key)

        buy_qty = buy.total_qty if buy else 0.0
        buy_cost = buy.total_quote_amount if buy else 0.0
        sell_qty = sell.total_qty if sell else 0.0
        sell_proceeds = sell.total_quote_amount if sell else 0.0

        positions.append(CoinPosition(
            coin=key[0],
            quote=key[1],
            buy=PositionLeg(qty=buy_qty, amount=buy_cost, avg_price=_average(buy_cost, buy_qty)),
            sell=PositionLeg(qty=sell_qty, amount=sell_proceeds, avg_price=_average(sell_proceeds, sell_qty)),
            net_qty=buy_qty - sell_qty,
            status=_position_status(buy_qty, sell_qty)
        ))

    positions.sort(key=lambda p: p.coin)

    return TradeCoinsResult(bought=bought, sold=sold, positions=positions)
