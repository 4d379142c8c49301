"""
Bybit UTA Report Loader.

Handles the file-level side of ingestion for Bybit Unified Trading Account
"Asset Change Details" exports: file-name validation, reading, parsing and
merging several exports into one 'Report Package'.

The package contains:
1. Rows: the ParsedRow objects of every accepted file, in file order.
2. Warnings: parser notices and per-file errors, labelled with the file name.
3. Metadata: accepted/rejected file names and each file's header.

A failure in one file never aborts the batch; it is reported as a warning
and the loader moves on to the next file.
"""
import os
import re
from typing import Any, Dict, Iterable, List

from .config import REPORT_FILE_PREFIX, REPORT_FILE_SUFFIX
from .csv_parser import parse_csv
from .fees import fees_paid, last_wallet_balance
from .trades import get_trade_coins

INVALID_FILE_WARNING = 'Invalid CSV format. Please upload Bybit export: AssetChangeDetails (UTA) CSV.'
NO_ROWS_WARNING = 'No valid rows found.'

_PREFIX_PATTERN = re.compile('^' + re.escape(REPORT_FILE_PREFIX), re.IGNORECASE)
_SUFFIX_PATTERN = re.compile(re.escape(REPORT_FILE_SUFFIX) + '$', re.IGNORECASE)

# ==========================================
# SECTION 1: FILE UTILITIES
# ==========================================
def is_uta_asset_change_csv(file_name: str) -> bool:
    """
    Checks the export naming convention, e.g.
    'Bybit_AssetChangeDetails_uta_123456_20250101_20250131.csv'.
    """
    name = (file_name or '').strip()
    return bool(_PREFIX_PATTERN.search(name)) and bool(_SUFFIX_PATTERN.search(name))


def read_report_text(path: str) -> str:
    """
    Reads a whole export into memory.

    The BOM is kept; csv_parser.normalize_text() strips it. Undecodable bytes
    are replaced rather than aborting the read.
    """
    with open(path, 'r', encoding='utf-8', errors='replace', newline='') as f:
        return f.read()


def list_report_files(directory: str) -> List[str]:
    """Returns the CSV files in 'directory', newest first."""
    if not os.path.isdir(directory):
        return []

    files = [f for f in os.listdir(directory) if f.lower().endswith('.csv')]
    files.sort(key=lambda x: os.path.getmtime(os.path.join(directory, x)), reverse=True)
    return [os.path.join(directory, f) for f in files]

# ==========================================
# SECTION 2: MAIN PART
# ==========================================
def load_uta_reports(paths: Iterable[str], verbose: bool = False) -> Dict[str, Any]:
    """
    Loads and merges one or more Asset Change Details exports.

    Steps per file:
    1. Rejects names that do not follow the export convention.
    2. Reads the file into memory.
    3. Parses it and labels every parser warning with the file name.
    4. Appends its rows to the combined row list.

    Args:
        paths (Iterable[str]): Paths to the CSV exports.
        verbose (bool): Prints progress lines when True.

    Returns:
        Dict[str, Any]: Report package with keys 'files', 'rejected',
        'headers' (file name -> header list), 'rows' and 'warnings'.
    """
    accepted = []
    rejected = []
    headers = {}
    all_rows = []
    all_warnings = []

    for path in paths:
        name = os.path.basename(path)

        if not is_uta_asset_change_csv(name):
            rejected.append(name)
            all_warnings.append(f'[{name}] {INVALID_FILE_WARNING}')
            if verbose:
                print(f" [!] Skipping '{name}': not a Bybit UTA Asset Change Details export.")
            continue

        if verbose:
            print(f" [>] Reading report: {name}...")

        try:
            result = parse_csv(read_report_text(path))
        except FileNotFoundError:
            all_warnings.append(f'[{name}] Unexpected error: file not found.')
            if verbose:
                print(f" [!] Error: The file was not found at '{path}'")
            continue
        except Exception as e:
            all_warnings.append(f'[{name}] Unexpected error: {e}')
            if verbose:
                print(f" [!] Error loading '{name}': {e}")
            continue

        accepted.append(name)
        headers[name] = result.headers
        all_warnings.extend(f'[{name}] {w}' for w in result.warnings)
        all_rows.extend(result.rows)

        if verbose:
            print(f"     - Rows: {len(result.rows)}")
            for w in result.warnings:
                print(f"     - {w}")

    if not all_rows and not all_warnings:
        all_warnings.append(NO_ROWS_WARNING)

    if verbose:
        print(f" [+] Loaded {len(all_rows)} rows from {len(accepted)} file(s).")

    return {
        'files': accepted,
        'rejected': rejected,
        'headers': headers,
        'rows': all_rows,
        'warnings': all_warnings
    }


def summarise_package(package: Dict[str, Any]) -> Dict[str, Any]:
    """
    Runs every aggregation over the merged rows of a report package.

    Returns:
        Dict[str, Any]: 'fees' (FeesBreakdown), 'wallet_balance' (float) and
        'trades' (TradeCoinsResult).
    """
    rows = package['rows']
    return {
        'fees': fees_paid(rows),
        'wallet_balance': last_wallet_balance(rows),
        'trades': get_trade_coins(rows)
    }
