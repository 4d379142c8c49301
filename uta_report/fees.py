"""
Fee & Balance Aggregation.

Derives the fee picture of an account from its Asset Change Details rows:
- Trading fees ('TRADE' rows, 'Fee Paid' converted to USDT).
- Funding payments ('SETTLEMENT' rows, 'Funding' split by sign).
- Fee refunds ('FEE_REFUND' rows, 'Change').

All reads go straight to the named raw fields of each row.
"""
from typing import Iterable

from .config import (
    FEE_QUOTE_CURRENCY, FIELD_CHANGE, FIELD_CONTRACT, FIELD_CURRENCY,
    FIELD_FEE_PAID, FIELD_FILLED_PRICE, FIELD_FUNDING, FIELD_WALLET_BALANCE,
    TYPE_FEE_REFUND, TYPE_SETTLEMENT, TYPE_TRADE
)
from .models import FeesBreakdown, ParsedRow
from .utils import parse_number, to_upper


def fee_paid_to_usdt(row: ParsedRow) -> float:
    """
    Converts the 'Fee Paid' of a trade row to USDT.

    Fees charged in USDT are taken as-is. Fees charged in the base coin of a
    '<BASE>USDT' contract are valued at the row's filled price. Any other
    fee currency cannot be converted and contributes 0.

    Args:
        row (ParsedRow): A 'TRADE' row.

    Returns:
        float: Signed fee in USDT (usually negative).
    """
    fee_native = parse_number(row.get(FIELD_FEE_PAID, ''))
    if not fee_native:
        return 0.0

    currency = to_upper(row.get(FIELD_CURRENCY, ''))
    contract = to_upper(row.get(FIELD_CONTRACT, ''))
    filled_price = parse_number(row.get(FIELD_FILLED_PRICE, ''))

    if currency == FEE_QUOTE_CURRENCY:
        return fee_native

    if contract.endswith(FEE_QUOTE_CURRENCY) and filled_price:
        base = contract[:-len(FEE_QUOTE_CURRENCY)]
        if base == currency:
            return fee_native * filled_price

    return 0.0


def fees_paid(rows: Iterable[ParsedRow]) -> FeesBreakdown:
    """
    Accumulates trading fees, funding and refunds over a set of rows.

    Row order does not matter. Rows of any other type are ignored.

    Args:
        rows (Iterable[ParsedRow]): Rows from one or more parsed exports.

    Returns:
        FeesBreakdown: Signed totals plus non-negative cost views.
    """
    trading_fees = 0.0
    funding_paid = 0.0
    funding_received = 0.0
    fee_refund = 0.0

    for row in rows:
        row_type = row.transaction_type

        if row_type == TYPE_TRADE:
            # Sign is kept (fees are usually negative)
            trading_fees += fee_paid_to_usdt(row)

        elif row_type == TYPE_SETTLEMENT:
            funding = parse_number(row.get(FIELD_FUNDING, ''))
            if funding < 0:
                funding_paid += funding
            elif funding > 0:
                funding_received += funding

        elif row_type == TYPE_FEE_REFUND:
            fee_refund += parse_number(row.get(FIELD_CHANGE, ''))

    trading_cost = max(0.0, -trading_fees)
    funding_cost = max(0.0, -funding_paid)

    return FeesBreakdown(
        trading_fees_usdt=trading_fees,
        funding_paid_usdt=funding_paid,
        funding_received_usdt=funding_received,
        fee_refund_usdt=fee_refund,
        net_fees_usdt=trading_fees + funding_paid + fee_refund,
        trading_cost_usdt=trading_cost,
        funding_cost_usdt=funding_cost,
        net_cost_usdt=max(0.0, trading_cost + funding_cost - fee_refund)
    )


def last_wallet_balance(rows: Iterable[ParsedRow]) -> float:
    """
    Returns the 'Wallet Balance' of the first row that carries one.

    Exports list the newest change first, so the first non-blank balance in
    original row order is the latest known balance. Returns 0 if none.
    """
    for row in rows:
        value = row.get(FIELD_WALLET_BALANCE)
        if value is not None and str(value).strip() != '':
            return parse_number(value)
    return 0.0
