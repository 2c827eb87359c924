"""
Command line entry point.

Reads an exchange export and a beancount ledger, matches them and prints the
trace and totals to stdout. Exit status is 0 on a clean run and 1 when the run
fails or leaves exchange records unmatched.
"""

import argparse
import logging
import pathlib
import sys

from wayex_ledger.config import load_settings
from wayex_ledger.errors import ReconcileError
from wayex_ledger.normalize import import_csv, read_ledger
from wayex_ledger.reconcile import TIE_BREAK_POLICIES, iter_outcomes
from wayex_ledger.report import (
    ReconciliationReport,
    generate_reconciliation_report,
    save_reconciliation_results
)
from wayex_ledger.utils import setup_logging
from wayex_ledger.version import version_string

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(
        prog='wayex_ledger',
        description='Synchronise a Wayex export with a beancount ledger'
    )
    parser.add_argument('-w', '--wayex-file', type=str,
                        help='Path to the exchange CSV export')
    parser.add_argument('-l', '--ledger-file', type=str,
                        help='Path to the beancount ledger')
    parser.add_argument('-b', '--build-version', action='store_true',
                        help='Print version and build information and exit')
    parser.add_argument('--asset', type=str, default=None,
                        help='Asset to reconcile (default: BTC)')
    parser.add_argument('--account', type=str, default=None,
                        help='Ledger account holding the asset (default: Assets:Cash-On-Hand:CryptoSpend:<ASSET>)')
    parser.add_argument('--min-days', type=int, default=None,
                        help='Smallest allowed exchange date minus ledger date')
    parser.add_argument('--max-days', type=int, default=None,
                        help='Largest allowed exchange date minus ledger date')
    parser.add_argument('--continue-on-unmatched', action='store_true',
                        help='Keep going after an unmatched record and list them all at the end')
    parser.add_argument('--tie-break', choices=TIE_BREAK_POLICIES, default=None,
                        help='How to choose between several matching ledger records')
    parser.add_argument('--output', type=str, default=None,
                        help='Directory or CSV file for the machine readable results. A file path gets its summary next to it as <name>_report.txt')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug logging')
    return parser


def run(args, stream=None):
    """Run one reconciliation from parsed arguments.

    Returns:
        ReconciliationReport: Report after the run

    Raises:
        ReconcileError: On bad input or, by default, the first unmatched record
        OSError: If either source cannot be read
    """
    settings = load_settings(args)

    external, fmt = import_csv(args.wayex_file, settings.target_asset)
    ledger = read_ledger(args.ledger_file, settings.account, settings.target_asset)
    min_days, max_days = settings.window_for(fmt)

    report = ReconciliationReport(stream)
    report.consume(iter_outcomes(
        external,
        ledger,
        min_days,
        max_days,
        stop_on_first_unmatched=settings.stop_on_first_unmatched,
        tie_break=settings.tie_break,
    ))
    report.finish()

    if args.output:
        csv_path = save_reconciliation_results(report.outcomes, args.output)
        summary_path = args.output
        if pathlib.Path(args.output).suffix:
            summary_path = csv_path.with_name(f"{csv_path.stem}_report.txt")
        generate_reconciliation_report(report, summary_path)

    return report


def main(argv=None):
    """Main execution function."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.build_version:
        print(version_string())
        return 0

    if not args.wayex_file or not args.ledger_file:
        parser.error("--wayex-file and --ledger-file are required")

    setup_logging(debug=args.debug)
    logger.info("Starting reconciliation process")

    try:
        report = run(args)
    except (ReconcileError, ValueError, OSError) as e:
        logger.error(f"Error during reconciliation: {str(e)}")
        print(f"error running reconciliation: {e}")
        return 1

    if report.unmatched:
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
