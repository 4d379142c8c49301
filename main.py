"""
UTA Report Application Entry Point.

Executes the Bybit Unified Trading Account reporting workflow. Coordinates
ingestion of "Asset Change Details" exports, fee aggregation, trade position
reconstruction and CSV export of the resulting tables.

Implements a step-based state machine so that every view is computed from the
currently loaded reports, never from stale results of a previous load.
Manages user interaction via a CLI menu.
"""
import os
import sys
import time
from typing import Callable

import pandas as pd

# --- Custom Module Imports ---
# dl: Validates, reads and merges exports.
# rt: Builds pandas tables and CSV exports.
from uta_report import data_loader as dl
from uta_report import report_tables as rt

# --- Configuration Constants ---
# Directory scanned for exports.
DATA_DIR = r'data'

# Directory for exported tables.
OUTPUT_DIR = r'output'

ENABLE_TIMING = False


class UtaReportApp:
    """
    Controls the report loading, aggregation and export workflow.

    Manages application state and the interactive command-line interface.
    Enforces the dependency chain: views require loaded reports, and loaded
    reports require a successful summary before export.
    """
    def __init__(self) -> None:
        # None indicates the step has not run yet.
        self.package = None
        self.summary = None
        self.report_name = None

    def menu(self) -> None:
        """
        Displays the main menu and routes user input to pipeline steps.
        """
        while True:
            self._print_header()
            print(" 0. RUN FULL PIPELINE")
            print(" 1. Load Asset Change Details Report(s)")
            print(" 2. Show Fee Breakdown")
            print(" 3. Show Trade Positions")
            print(" 4. Export Tables to CSV")
            print()
            print(" Q. Quit")
            print("-" * 60)

            flags = []
            flags.append("DATA: OK" if self.package else "DATA: --")
            flags.append("SUMMARY: OK" if self.summary else "SUMMARY: --")
            print(f" STATUS: {' | '.join(flags)}")
            print("-" * 60)

            choice = input(" >> Select Option: ").upper().strip()

            if choice == '0':
                self._reset_state()
                self.step_load_data()
                self.step_show_fees()
                self.step_show_positions()
                self.step_export()

            elif choice == '1':
                # Reset state to prevent mixing new reports with old results.
                self._reset_state()
                self.step_load_data()

            elif choice == '2':
                self.step_show_fees()

            elif choice == '3':
                self.step_show_positions()

            elif choice == '4':
                self.step_export()

            elif choice == 'Q':
                sys.exit()

            else:
                print(" [!] Invalid selection.")
                time.sleep(0.5)

    # =========================================================================
    # STEP 1: DATA LOADING
    # =========================================================================
    def step_load_data(self) -> None:
        """
        Ingests one or more exports and computes all summaries.

        Offers the CSV files found in DATA_DIR (newest first). Multiple files
        can be selected as a comma-separated list; '*' selects all of them.
        """
        self._print_section_header("STEP 1: DATA LOADING")

        self.summary = None

        files = dl.list_report_files(DATA_DIR)
        paths = []

        if files:
            while True:
                print(f"\n Available Reports in '{DATA_DIR}':")
                print("   [0] Manual Path Entry")
                for idx, f in enumerate(files):
                    print(f"   [{idx+1}] {os.path.basename(f)}")

                choice = input("\n >> Select file numbers, comma separated or '*' [Default: 1]: ").strip()

                if not choice:
                    paths = [files[0]]
                    break
                elif choice == '*':
                    paths = list(files)
                    break
                elif choice == '0':
                    break
                else:
                    try:
                        indices = [int(c) - 1 for c in choice.split(',') if c.strip()]
                        if indices and all(0 <= i < len(files) for i in indices):
                            paths = [files[i] for i in indices]
                            break
                        print(" [!] Number out of range. Please try again.")
                    except ValueError:
                        print(" [!] Invalid input. Please enter numbers.")

        # Fallback: manual path entry.
        if not paths:
            entry = input(" >> Enter path(s) to CSV, comma separated: ").strip()
            paths = [p.strip() for p in entry.split(',') if p.strip()]

        if not paths:
            print("\n [!] No report selected.")
            return

        start_time = time.time() if ENABLE_TIMING else 0.0

        self.package = dl.load_uta_reports(paths, verbose=True)
        self.report_name = (
            os.path.splitext(self.package['files'][0])[0] if len(self.package['files']) == 1 else 'combined'
        )

        if self.package['warnings']:
            print("\n Warnings:")
            for w in self.package['warnings']:
                print(f"     - {w}")

        if not self.package['rows']:
            print("\n [!] Data load failed: no rows to analyse.")
            self.package = None
            return

        self.summary = dl.summarise_package(self.package)
        print(f"\n     - Last Wallet Balance: {self.summary['wallet_balance']:,.2f}")
        print(" [+] Reports loaded successfully.")

        if start_time > 0.0:
            print(f"\n [t] Step 1: {time.time() - start_time:.2f}s")

    # =========================================================================
    # STEP 2: FEES
    # =========================================================================
    def step_show_fees(self) -> None:
        """Prints the signed fee totals and their cost views."""
        self._check_dependency(self.summary is not None, "Step 1 (Load Data)", self.step_load_data)
        if self.summary is None:
            return

        self._print_section_header("STEP 2: FEE BREAKDOWN")

        fees = rt.fees_series(self.summary['fees'])
        with pd.option_context('display.float_format', '{:,.4f}'.format):
            print(fees.to_string())

    # =========================================================================
    # STEP 3: TRADE POSITIONS
    # =========================================================================
    def step_show_positions(self) -> None:
        """Prints bought/sold coins and the merged position table."""
        self._check_dependency(self.summary is not None, "Step 1 (Load Data)", self.step_load_data)
        if self.summary is None:
            return

        self._print_section_header("STEP 3: TRADE POSITIONS")

        trades = self.summary['trades']
        if not trades.positions:
            print(" [!] No BUY/SELL trades found.")
            return

        with pd.option_context('display.width', 160, 'display.max_columns', None):
            print("Bought:")
            print(rt.summary_frame(trades.bought).to_string(index=False))
            print("\nSold:")
            print(rt.summary_frame(trades.sold).to_string(index=False))
            print("\nPositions:")
            print(rt.positions_frame(trades.positions).to_string(index=False))

    # =========================================================================
    # STEP 4: EXPORT
    # =========================================================================
    def step_export(self) -> None:
        """Writes all tables to OUTPUT_DIR/<report name>/."""
        self._check_dependency(self.summary is not None, "Step 1 (Load Data)", self.step_load_data)
        if self.summary is None:
            return

        self._print_section_header("STEP 4: EXPORT")

        output_dir = os.path.join(OUTPUT_DIR, self.report_name or 'report')
        try:
            written = rt.export_tables(self.package, self.summary, output_dir)
        except OSError as e:
            print(f" [!] Export failed: {e}")
            return

        for path in written:
            print(f"     - {path}")
        print(f"\n [+] All tables saved to: {output_dir}")

    # =========================================================================
    # UTILITY FUNCTIONS
    # =========================================================================
    def _reset_state(self) -> None:
        """
        Clears loaded reports and derived results.
        """
        print("\n [!] Clearing previous application state...")
        self.package = None
        self.summary = None
        self.report_name = None

    def _print_section_header(self, title: str) -> None:
        print("\n" + "="*60)
        print(f" {title}")
        print("="*60 + "\n")

    def _check_dependency(self, condition: bool, fix_action_name: str, fix_action_func: Callable[[], None]) -> bool:
        """
        Verifies a prerequisite step and triggers it if missing.

        Args:
            condition (bool): True if the dependency is met.
            fix_action_name (str): Name of the missing step.
            fix_action_func (callable): Step to execute if condition is False.

        Returns:
            bool: True if the dependency was already met, False if the fix was triggered.
        """
        if not condition:
            print(f"\n [!] Missing dependency: {fix_action_name}")
            print(f" [>] Auto-triggering {fix_action_name}...")
            fix_action_func()
            return False
        return True

    def _print_header(self) -> None:
        print("\n" + "#"*60)
        print("       BYBIT UTA ASSET CHANGE REPORT")
        print("#"*60)


if __name__ == "__main__":
    app = UtaReportApp()
    try:
        app.menu()
    except KeyboardInterrupt:
        print("\n [!] Interrupted by user. Exiting.")
