#!/usr/bin/env python3
"""
Airdrop Compiler: Entry Point
=============================

Demonstrates the full pipeline on a sample ledger export.

Usage:
    python main.py                                   # Demo rates (15%, 1:1)
    AIRDROP_RETAINED_FRACTION=0.15 \\
    AIRDROP_CONVERSION_FACTOR=1 python main.py       # Rates from the environment
"""

from __future__ import annotations

import logging
import sys
from decimal import Decimal

from airdrop_compiler.config import Settings
from airdrop_compiler.exceptions import MissingConfigurationError
from airdrop_compiler.models import AirdropReport, Severity
from airdrop_compiler.pipeline import AirdropPipeline


# ─── Sample Export, Some Rows Broken on Purpose ─────────────────────

SAMPLE_EXPORT = """\
XRPAddress,FlareAddress,XRPBalance,FlareBalance
rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh,0x1111111111111111111111111111111111111111,100,100000000000000
rrrrrrrrrrrrrrrrrrrrBZbvji,0x1111111111111111111111111111111111111111,160,160000000000000
rrrrrrrrrrrrrrrrrrrrrhoLvTp,0x2222222222222222222222222222222222222222,25.5,25500000000000
rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh,0x3333333333333333333333333333333333333333,10,10000000000000
rNotAnXrpAddress000000000000000,0x4444444444444444444444444444444444444444,5,5000000000000
rrrrrrrrrrrrrrrrrNAMEtxvNvQ,0xNOTHEX,7,7000000000000
rrrrrrrrrrrrrrrrrrrn5RM1rHd,0x5555555555555555555555555555555555555555,"1,000",1000000000000000
"""

DEMO_SETTINGS = Settings(
    retained_fraction=Decimal("0.15"),
    conversion_factor=Decimal("1"),
)


# ─── ANSI Color Constants ───────────────────────────────────────────

_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"
_BOLD = "\033[1m"
_RESET = "\033[0m"
_WIDTH = 72


# ─── Pretty Printer Helpers ─────────────────────────────────────────


def _print_totals(report: AirdropReport) -> None:
    """Print the validator's bookkeeping."""
    v = report.validation
    print(f"  Rows:        {report.row_count} ({v.valid_count} valid, {v.invalid_count} invalid)")
    print(f"  XRP valid:   {v.total_source_balance_valid}")
    print(f"  XRP excl.:   {v.total_source_balance_invalid}")
    print(f"  FLR valid:   {v.total_destination_balance_valid}")
    print(f"  FLR excl.:   {v.total_destination_balance_invalid}")


def _print_accounts(report: AirdropReport) -> None:
    """Print the distribution list and fan-in histogram."""
    c = report.compilation
    print(f"  Accounts:    {c.account_count} from {c.processed_rows} rows")
    print(f"  Total wei:   {c.total_converted_balance}")
    for account in c.accounts:
        print(
            f"    {account.destination_address}  {account.balance:>24}  "
            f"{_DIM}0x{account.native_balance} ×{account.contribution_count}{_RESET}"
        )
    fan_in = ", ".join(f"{n} row(s): {count}" for n, count in c.contribution_histogram.items())
    print(f"  Fan-in:      {fan_in or '-'}")
    print(f"  Batches:     {len(report.batches)}")


def _print_findings_group(findings, color: str, label: str) -> None:
    """Print a categorized group of findings."""
    if not findings:
        return
    print(f"\n  {color}{_BOLD}{label} ({len(findings)}){_RESET}")
    for f in findings:
        print(f"    {color}[{f.code}]{_RESET} {f.message}")


# ─── Pretty Printer ─────────────────────────────────────────────────


def print_report(report: AirdropReport) -> int:
    """Pretty-print the airdrop report with ANSI color codes.

    Returns:
        0 if every row was valid, 1 if any row was excluded.
    """
    print(f"\n{'=' * _WIDTH}")
    print(f"{_BOLD}{_CYAN}  AIRDROP COMPILATION REPORT{_RESET}")
    print(f"{'=' * _WIDTH}")
    print(f"  Audit Hash:  {_DIM}{report.original_hash[:16]}...{_RESET}")
    print(f"{'─' * _WIDTH}")
    _print_totals(report)
    print(f"{'─' * _WIDTH}")
    _print_accounts(report)

    errors = [f for f in report.findings if f.severity == Severity.ERROR]
    warnings = [f for f in report.findings if f.severity == Severity.WARNING]
    infos = [f for f in report.findings if f.severity == Severity.INFO]

    _print_findings_group(errors, _RED, "EXCLUDED ROWS")
    _print_findings_group(warnings, _YELLOW, "WARNINGS")
    _print_findings_group(infos, _CYAN, "INFO")

    print(f"\n{'=' * _WIDTH}")
    if report.validation.invalid_count == 0:
        print(f"  {_GREEN}{_BOLD}ALL ROWS INCLUDED{_RESET}")
    else:
        print(
            f"  {_RED}{_BOLD}{report.validation.invalid_count} ROW(S) EXCLUDED"
            f"  --  {report.validation.line_error_count} line error(s){_RESET}"
        )
    print(f"{'=' * _WIDTH}\n")

    return 0 if report.validation.invalid_count == 0 else 1


# ─── Main ────────────────────────────────────────────────────────────


def main():
    """Run the full pipeline on the sample export and print the report."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        settings = Settings.from_env()
    except MissingConfigurationError:
        print("\n  No rates in the environment, using demo rates (15%, 1:1).")
        settings = DEMO_SETTINGS

    pipeline = AirdropPipeline(settings)
    report = pipeline.run(SAMPLE_EXPORT)
    exit_code = print_report(report)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
