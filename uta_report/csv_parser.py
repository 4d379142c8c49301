"""
Asset Change CSV Parser.

Turns the raw text of an exchange export into structured rows. Exports are
not always clean tables: they may start with a byte-order mark, use CRLF or
bare CR line endings, quote fields with embedded commas and carry banner or
metadata rows above the real header.

The pipeline is:
1. Text normalisation (BOM, line endings).
2. Tokenisation into a matrix of string cells.
3. Header detection among the leading rows.
4. Column role resolution against a candidate table.
5. Row materialisation into ParsedRow objects.

Nothing in this module raises on malformed data. Heuristic decisions are
reported through ParseResult.warnings.
"""
import re
from typing import Dict, List, Optional

from .config import (
    COLUMN_CANDIDATES, EXPLICIT_METRIC_ROLES, HEADER_DATE_FRAGMENT,
    HEADER_SCAN_LIMIT, HEADER_SCORE_THRESHOLD, HEADER_SIGNALS
)
from .models import ParsedRow, ParseResult

_WHITESPACE = re.compile(r'\s+')
_NON_ALNUM = re.compile(r'[^a-z0-9]+')

EMPTY_WARNING = 'CSV appears empty.'
DEPOSIT_WITHDRAWAL_WARNING = (
    'Detected Withdraw/Deposit History. Using Type+Amount: revenue=Deposit, cost=Withdraw.'
)
QUANTITY_SIGN_WARNING = (
    'Detected Asset Change Details. Using QTY sign: revenue=positive, cost=negative.'
)

# ==========================================
# SECTION 1: TEXT & TOKENISING
# ==========================================
def normalize_text(text: Optional[str]) -> str:
    """Drops a leading BOM and converts CRLF / CR line endings to LF."""
    text = text or ''
    if text.startswith('\ufeff'):
        text = text[1:]
    return text.replace('\r\n', '\n').replace('\r', '\n')


def _is_blank_row(row: List[str]) -> bool:
    return all((cell or '').strip() == '' for cell in row)


def parse_csv_to_matrix(text: str) -> List[List[str]]:
    """
    Splits normalised text into rows of string cells.

    Implements the quoting rules exchange exports rely on:
    - A double quote outside quotes opens a quoted section (it is not kept).
    - Inside quotes, '""' is a literal quote and a lone '"' closes quoting.
    - Commas and newlines inside quotes are literal.

    Rows whose cells are all empty or whitespace are dropped, including
    the final row flushed at end of input.

    Args:
        text (str): Output of normalize_text().

    Returns:
        List[List[str]]: The cell matrix. Empty if the input has no data.
    """
    rows = []
    row = []
    field = []
    in_quotes = False

    i = 0
    length = len(text)
    while i < length:
        ch = text[i]

        if in_quotes:
            if ch == '"':
                if i + 1 < length and text[i + 1] == '"':
                    field.append('"')
                    i += 1
                else:
                    in_quotes = False
            else:
                field.append(ch)
        elif ch == '"':
            in_quotes = True
        elif ch == ',':
            row.append(''.join(field))
            field = []
        elif ch == '\n':
            row.append(''.join(field))
            field = []
            if not _is_blank_row(row):
                rows.append(row)
            row = []
        else:
            field.append(ch)

        i += 1

    # Flush the last row (files often lack a trailing newline)
    row.append(''.join(field))
    if not _is_blank_row(row):
        rows.append(row)

    return rows

# ==========================================
# SECTION 2: HEADER DETECTION
# ==========================================
def clean_header(header: Optional[str]) -> str:
    """Trims and collapses internal whitespace, keeping the original case."""
    return _WHITESPACE.sub(' ', (header or '').strip())


def normalize_key(header: Optional[str]) -> str:
    """'Date & Time (UTC)' -> 'datetimeutc'."""
    return _NON_ALNUM.sub('', clean_header(header).lower())


def _score_header(keys: List[str]) -> int:
    signals = [
        any(k in keys for k in HEADER_SIGNALS['account_id']),
        any(HEADER_DATE_FRAGMENT in k for k in keys),
        any(k in keys for k in HEADER_SIGNALS['asset']),
        any(k in keys for k in HEADER_SIGNALS['quantity']),
    ]
    return sum(signals)


def find_header_row_index(matrix: List[List[str]]) -> int:
    """
    Locates the real column header among the leading rows.

    Each row inside the scan window is scored on four signals: an account
    identifier key, a date key, an asset key and a quantity key. The first
    row showing at least three of them is the header.

    Args:
        matrix (List[List[str]]): Output of parse_csv_to_matrix().

    Returns:
        int: Index of the header row, or 0 if no row qualifies.
    """
    for i, row in enumerate(matrix[:HEADER_SCAN_LIMIT]):
        keys = [normalize_key(cell) for cell in row]
        if _score_header(keys) >= HEADER_SCORE_THRESHOLD:
            return i
    return 0

# ==========================================
# SECTION 3: COLUMN RESOLUTION
# ==========================================
def pick_column_index(headers: List[str], candidates: List[str]) -> Optional[int]:
    """
    Returns the position of the first candidate found in the header.

    Candidates are tried in their own order, so an earlier candidate wins
    even if a later one appears further left in the header.
    """
    norm_headers = [normalize_key(h) for h in headers]
    for candidate in candidates:
        if candidate in norm_headers:
            return norm_headers.index(candidate)
    return None


def resolve_columns(headers: List[str]) -> Dict[str, Optional[int]]:
    """Maps every role of COLUMN_CANDIDATES to a header position (or None)."""
    return {
        role: pick_column_index(headers, candidates)
        for role, candidates in COLUMN_CANDIDATES.items()
    }


def detect_breakdown_strategy(indices: Dict[str, Optional[int]]) -> tuple[Optional[str], Optional[str]]:
    """
    Decides how a revenue/cost breakdown would be derived for this layout.

    Returns:
        tuple[Optional[str], Optional[str]]: (strategy name, warning text).
        Strategy is one of 'explicit', 'deposit_withdrawal', 'quantity_sign'
        or None. The warning is None when no fallback was taken.
    """
    has_explicit_metrics = any(indices.get(role) is not None for role in EXPLICIT_METRIC_ROLES)

    if has_explicit_metrics:
        return 'explicit', None
    if indices.get('amount') is not None and indices.get('category') is not None:
        return 'deposit_withdrawal', DEPOSIT_WITHDRAWAL_WARNING
    if indices.get('qty') is not None:
        return 'quantity_sign', QUANTITY_SIGN_WARNING
    return None, None

# ==========================================
# SECTION 4: MAIN PART
# ==========================================
def materialize_rows(
    headers: List[str],
    data_rows: List[List[str]],
    category_index: Optional[int]
) -> List[ParsedRow]:
    """
    Builds ParsedRow objects from the rows below the header.

    Cells missing at the end of a short row are filled with ''. Row ids are
    assigned sequentially (from '1') over the kept rows only.
    """
    rows = []
    for cols in data_rows:
        if _is_blank_row(cols):
            continue

        raw = {h: (cols[idx] if idx < len(cols) else '') for idx, h in enumerate(headers)}

        category = None
        if category_index is not None and category_index < len(cols):
            category = cols[category_index].strip() or None

        rows.append(ParsedRow(row_id=str(len(rows) + 1), raw=raw, category=category))

    return rows


def parse_csv(text: Optional[str]) -> ParseResult:
    """
    Parses the full text of an export into headers, rows and warnings.

    Args:
        text (Optional[str]): File contents, already read into memory.

    Returns:
        ParseResult: Structured rows plus human-readable warnings. An empty
        input yields empty headers/rows and the 'CSV appears empty.' warning.
    """
    warnings = []
    matrix = parse_csv_to_matrix(normalize_text(text))

    if not matrix:
        return ParseResult(headers=[], rows=[], warnings=[EMPTY_WARNING])

    header_row_index = find_header_row_index(matrix)
    if header_row_index > 0:
        warnings.append(f'Skipped {header_row_index} metadata row(s) before header.')

    headers = [clean_header(h) for h in matrix[header_row_index]]
    indices = resolve_columns(headers)

    strategy, strategy_warning = detect_breakdown_strategy(indices)
    if strategy_warning:
        warnings.append(strategy_warning)

    rows = materialize_rows(headers, matrix[header_row_index + 1:], indices['category'])

    columns = {role: (headers[idx] if idx is not None else None) for role, idx in indices.items()}

    return ParseResult(
        headers=headers,
        rows=rows,
        warnings=warnings,
        columns=columns,
        header_row_index=header_row_index,
        strategy=strategy
    )
