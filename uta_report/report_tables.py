"""
Report Tables Module.

Turns parsed rows and aggregation results into pandas objects for console
display and CSV export. No figure is recomputed here; the tables are views
of what csv_parser, fees and trades already produced.
"""
import os
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from .config import (
    FIELD_CHANGE, FIELD_FEE_PAID, FIELD_FILLED_PRICE, FIELD_FUNDING,
    FIELD_QUANTITY, FIELD_WALLET_BALANCE
)
from .models import CoinPosition, CoinTradeSummary, FeesBreakdown, ParsedRow

NUMERIC_FIELDS = [
    FIELD_QUANTITY, FIELD_FILLED_PRICE, FIELD_FEE_PAID,
    FIELD_FUNDING, FIELD_CHANGE, FIELD_WALLET_BALANCE
]

SUMMARY_COLUMNS = ['coin', 'quote', 'total_qty', 'total_quote_amount', 'avg_price', 'trades']
POSITION_COLUMNS = [
    'coin', 'quote',
    'buy_qty', 'buy_cost', 'buy_avg_price',
    'sell_qty', 'sell_proceeds', 'sell_avg_price',
    'net_qty', 'status'
]

FEE_LABELS = {
    'trading_fees_usdt': 'Trading Fees (USDT)',
    'funding_paid_usdt': 'Funding Paid (USDT)',
    'funding_received_usdt': 'Funding Received (USDT)',
    'fee_refund_usdt': 'Fee Refund (USDT)',
    'net_fees_usdt': 'Net Fees (USDT)',
    'trading_cost_usdt': 'Trading Cost (USDT)',
    'funding_cost_usdt': 'Funding Cost (USDT)',
    'net_cost_usdt': 'Net Cost (USDT)'
}

# ==========================================
# SECTION 1: NUMERIC CLEANING
# ==========================================
def clean_number_series(series: pd.Series) -> pd.Series:
    """
    Vectorised version of utils.parse_number() for whole columns.

    Strips currency symbols and thousands separators with the .str accessor,
    negates accounting-style '(x)' values and coerces anything unparseable
    to 0.

    Args:
        series (pd.Series): Raw string cells.

    Returns:
        pd.Series: Float series, same index.
    """
    s = series.fillna('').astype(str).str.strip()

    is_paren_negative = s.str.match(r'^\(.*\)$')
    core = s.where(~is_paren_negative, s.str.slice(1, -1))

    cleaned = (
        core.str.replace(r'[, ]', '', regex=True)
            .str.replace(r'(?a)[^\d.+-]', '', regex=True)
    )

    # Only plain literals survive, matching parse_number ('--' and '1.2.3' -> 0)
    valid = cleaned.str.fullmatch(r'(?a)[+-]?(\d+\.?\d*|\.\d+)')
    numbers = pd.to_numeric(cleaned.where(valid), errors='coerce').fillna(0.0)

    return pd.Series(np.where(is_paren_negative, -numbers, numbers), index=series.index, dtype=float)


def numeric_columns(frame: pd.DataFrame) -> pd.DataFrame:
    """Returns a copy of a transactions frame with its numeric fields parsed to floats."""
    out = frame.copy()
    for field in NUMERIC_FIELDS:
        if field in out.columns:
            out[field] = clean_number_series(out[field])
    return out

# ==========================================
# SECTION 2: TABLE BUILDERS
# ==========================================
def transactions_frame(rows: List[ParsedRow], headers: Optional[List[str]] = None) -> pd.DataFrame:
    """
    Builds the transaction table shown to the user.

    Args:
        rows (List[ParsedRow]): Parsed rows (possibly from several files).
        headers (Optional[List[str]]): Column order. Defaults to the union of
            raw keys in first-seen order.

    Returns:
        pd.DataFrame: 'row_id', one column per header, then 'category'.
        Cells absent from a row's file are ''.
    """
    if headers is None:
        headers = []
        for row in rows:
            headers.extend(h for h in row.raw if h not in headers)

    records = []
    for row in rows:
        record = {h: row.raw.get(h, '') for h in headers}
        record['row_id'] = row.row_id
        record['category'] = row.category
        records.append(record)

    # Raw headers may collide with the helper column names
    columns = ['row_id'] + [h for h in headers if h not in ('row_id', 'category')] + ['category']
    return pd.DataFrame(records, columns=columns)


def summary_frame(summaries: List[CoinTradeSummary]) -> pd.DataFrame:
    """Bought or sold summaries as a DataFrame."""
    records = [
        {
            'coin': s.coin,
            'quote': s.quote,
            'total_qty': s.total_qty,
            'total_quote_amount': s.total_quote_amount,
            'avg_price': s.avg_price,
            'trades': s.trades
        }
        for s in summaries
    ]
    return pd.DataFrame(records, columns=SUMMARY_COLUMNS)


def positions_frame(positions: List[CoinPosition]) -> pd.DataFrame:
    """Flattens the buy/sell legs of each position into one row."""
    records = [
        {
            'coin': p.coin,
            'quote': p.quote,
            'buy_qty': p.buy.qty,
            'buy_cost': p.buy.amount,
            'buy_avg_price': p.buy.avg_price,
            'sell_qty': p.sell.qty,
            'sell_proceeds': p.sell.amount,
            'sell_avg_price': p.sell.avg_price,
            'net_qty': p.net_qty,
            'status': p.status
        }
        for p in positions
    ]
    return pd.DataFrame(records, columns=POSITION_COLUMNS)


def fees_series(fees: FeesBreakdown) -> pd.Series:
    return pd.Series(
        {label: getattr(fees, name) for name, label in FEE_LABELS.items()},
        name='value',
        dtype=float
    )

# ==========================================
# SECTION 3: EXPORT
# ==========================================
def export_tables(
    package: Dict[str, Any],
    summary: Dict[str, Any],
    output_dir: str
) -> List[str]:
    """
    Writes every report table to CSV.

    Args:
        package (Dict[str, Any]): Output of data_loader.load_uta_reports().
        summary (Dict[str, Any]): Output of data_loader.summarise_package().
        output_dir (str): Target directory (created if missing).

    Returns:
        List[str]: Paths of the written files.
    """
    os.makedirs(output_dir, exist_ok=True)

    trades = summary['trades']
    fees = fees_series(summary['fees'])
    fees['Wallet Balance'] = summary['wallet_balance']

    tables = {
        'transactions.csv': (numeric_columns(transactions_frame(package['rows'])), False),
        'bought.csv': (summary_frame(trades.bought), False),
        'sold.csv': (summary_frame(trades.sold), False),
        'positions.csv': (positions_frame(trades.positions), False),
        'fees.csv': (fees.to_frame(), True)
    }

    written = []
    for filename, (table, keep_index) in tables.items():
        path = os.path.join(output_dir, filename)
        table.to_csv(path, index=keep_index)
        written.append(path)

    return written
