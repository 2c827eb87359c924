"""
Running totals and reporting for a reconciliation run.

The trace written while matching looks like:

    2024-01-10 09:15:00 Coffee                                   -0.00100000 -0.00100000
    2024-01-09          Coffee at the corner                     -0.00100000

followed by the unaccounted ledger records and the spent / paid / total lines.
All amounts are printed with 8 decimal places.
"""

import csv
import logging
import pathlib
import sys

import pandas as pd

from wayex_ledger.models import MatchStatus, ZERO

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'

# Columns of the CSV export
result_columns = [
    'Status',
    'Timestamp',
    'Type',
    'Details',
    'Reference',
    'Amount',
    'Ledger Date',
    'Ledger Description',
    'Ledger Amount',
    'Day Difference',
    'Date Mismatches',
]


def format_amount(amount):
    """Format a Decimal with exactly 8 decimal places."""
    return f"{amount:.8f}"


def format_external_line(record, running_total):
    return (f"{record.timestamp.strftime(TIMESTAMP_FORMAT)} {record.description:40} "
            f"{format_amount(record.signed_amount)} {format_amount(running_total)}")


def format_ledger_line(ledger):
    # Date padded to line up with the 19 character timestamp above it
    return f"{ledger.date.isoformat()}          {ledger.description:40} {format_amount(ledger.amount)}"


def format_unaccounted_line(ledger):
    return f"{ledger.date.isoformat():24} {ledger.description:40} {format_amount(ledger.amount)}"


class ReconciliationReport:
    """
    Consumes match outcomes, keeps running totals and writes the trace.

    Attributes:
        total (Decimal): Sum of all exchange amounts seen so far
        inflow_total (Decimal): Sum of the positive amounts
        outflow_total (Decimal): Sum of the negative amounts
        outcomes (list): Every outcome handled, in order
    """

    def __init__(self, stream=None):
        self.stream = stream if stream is not None else sys.stdout
        self.total = ZERO
        self.inflow_total = ZERO
        self.outflow_total = ZERO
        self.outcomes = []
        self.matched = []
        self.unmatched = []
        self.unaccounted = []
        self.zero_amount = []

    def _write(self, line=''):
        self.stream.write(line + '\n')
        self.stream.flush()

    def _add(self, amount):
        self.total += amount
        if amount > ZERO:
            self.inflow_total += amount
        elif amount < ZERO:
            self.outflow_total += amount

    def handle(self, outcome):
        """Update totals for one outcome and write its trace lines."""
        self.outcomes.append(outcome)

        if outcome.status == MatchStatus.UNACCOUNTED:
            self.unaccounted.append(outcome)
            return

        record = outcome.external
        self._add(record.signed_amount)
        self._write(format_external_line(record, self.total))

        if outcome.status == MatchStatus.ZERO_AMOUNT:
            self.zero_amount.append(outcome)
            self._write()
            return

        for mismatch in outcome.date_mismatches:
            self._write(format_ledger_line(mismatch.ledger))
            self._write(f"Date mismatch: {mismatch.day_difference} {mismatch.ledger.date.isoformat()}")

        if outcome.status == MatchStatus.MATCHED:
            self.matched.append(outcome)
            self._write(format_ledger_line(outcome.ledger))
        else:
            self.unmatched.append(outcome)
            self._write("Could not find ledger record")

        self._write()

    def consume(self, outcomes):
        """Handle outcomes as they are produced and return the report."""
        for outcome in outcomes:
            self.handle(outcome)
        return self

    def finish(self):
        """Write the unaccounted records, any unmatched records and the totals."""
        self._write("Unaccounted ledger records:")
        for outcome in self.unaccounted:
            self._write(format_unaccounted_line(outcome.ledger))

        if self.unmatched:
            self._write()
            self._write("Unmatched exchange records:")
            for outcome in self.unmatched:
                record = outcome.external
                self._write(f"{record.timestamp.strftime(TIMESTAMP_FORMAT):24} {record.description:40} "
                            f"{format_amount(record.signed_amount)}")

        self._write()
        self._write(f"spent {format_amount(self.outflow_total)}")
        self._write(f"paid {format_amount(self.inflow_total)}")
        self._write(f"total {format_amount(self.total)}")
        logger.info(f"Matched {len(self.matched)}, unmatched {len(self.unmatched)}, "
                    f"unaccounted {len(self.unaccounted)}, zero amount {len(self.zero_amount)}")


def format_report_summary(report):
    """Format a summary of reconciliation results.

    Args:
        report (ReconciliationReport): Report after the run

    Returns:
        str: Formatted summary text
    """
    exchange_count = len(report.matched) + len(report.unmatched) + len(report.zero_amount)
    summary = [
        f"Exchange Records: {exchange_count}",
        f"Matched Records: {len(report.matched)}",
        f"Unmatched Records: {len(report.unmatched)}",
        f"Zero Amount Records: {len(report.zero_amount)}",
        f"Unaccounted Ledger Records: {len(report.unaccounted)}",
        f"Spent: {format_amount(report.outflow_total)}",
        f"Paid: {format_amount(report.inflow_total)}",
        f"Total: {format_amount(report.total)}",
    ]
    return "\n".join(summary)


def _resolve_output_path(output_path, default_name):
    output_path = pathlib.Path(output_path)
    if output_path.is_dir() or not output_path.suffix:
        output_path = output_path / default_name
    output_path.parent.mkdir(parents=True, exist_ok=True)
    return output_path


def generate_reconciliation_report(report, output_path):
    """Write the summary of a finished run to a text file.

    Args:
        report (ReconciliationReport): Report after the run
        output_path (str or pathlib.Path): File or directory to write to

    Returns:
        pathlib.Path: Path of the written file
    """
    output_path = _resolve_output_path(output_path, "reconciliation_report.txt")
    lines = [format_report_summary(report)]
    if not report.unaccounted:
        lines.append("\nNo unaccounted ledger records found")
    if not report.unmatched:
        lines.append("\nNo unmatched exchange records found")

    logger.debug(f"Writing reconciliation report to {output_path}")
    with open(output_path, 'w') as f:
        f.write('\n'.join(lines))
    return output_path


def outcomes_to_frame(outcomes):
    """Flatten outcomes into a DataFrame with ``result_columns``."""
    rows = []
    for outcome in outcomes:
        record = outcome.external
        ledger = outcome.ledger
        rows.append({
            'Status': outcome.status.value,
            'Timestamp': record.timestamp.strftime(TIMESTAMP_FORMAT) if record else '',
            'Type': record.kind.value if record else '',
            'Details': record.description if record else '',
            'Reference': record.reference if record else '',
            'Amount': format_amount(record.signed_amount) if record else '',
            'Ledger Date': ledger.date.isoformat() if ledger else '',
            'Ledger Description': ledger.description if ledger else '',
            'Ledger Amount': format_amount(ledger.amount) if ledger else '',
            'Day Difference': '' if outcome.day_difference is None else str(outcome.day_difference),
            'Date Mismatches': '; '.join(
                f"{m.ledger.date.isoformat()} ({m.day_difference})" for m in outcome.date_mismatches
            ),
        })
    if not rows:
        return pd.DataFrame(columns=result_columns)
    return pd.DataFrame(rows, columns=result_columns)


def save_reconciliation_results(outcomes, output_path):
    """Save reconciliation outcomes to a CSV file.

    Args:
        outcomes (list): MatchOutcomes in run order
        output_path (str or pathlib.Path): File or directory to write to

    Returns:
        pathlib.Path: Path of the written file
    """
    output_path = _resolve_output_path(output_path, "reconciled_transactions.csv")
    result = outcomes_to_frame(outcomes)
    # Amounts are written as text to keep all 8 decimal places
    result.to_csv(output_path, index=False, quoting=csv.QUOTE_NONNUMERIC)
    logger.info(f"Saved {len(result)} outcomes to {output_path}")
    return output_path
