"""
Wayex Ledger - reconcile a Wayex exchange export against a beancount ledger.

This package provides functionality to:
- Read the exchange CSV export (legacy local-time and UTC revisions)
- Extract the postings of one tracked account from a beancount ledger
- Pair each exchange record with at most one ledger posting of the same
  amount within a date window
- Report running totals, date mismatches and unaccounted ledger postings

Amounts are handled as ``decimal.Decimal`` throughout and printed with
8 decimal places.
"""

from .errors import (
    ReconcileError,
    RecordParseError,
    LedgerIntegrityError,
    UnmatchedRecordError
)
from .models import (
    Asset,
    TransactionKind,
    ExternalRecord,
    LedgerRecord,
    MatchStatus,
    MatchOutcome
)
from .normalize import (
    import_csv,
    read_ledger,
    extract_ledger_records,
    standardize_timestamp,
    clean_amount
)
from .reconcile import (
    iter_outcomes,
    reconcile_transactions
)
from .report import (
    ReconciliationReport,
    format_report_summary,
    generate_reconciliation_report,
    save_reconciliation_results
)
from .version import VERSION as __version__

__all__ = [
    'ReconcileError',
    'RecordParseError',
    'LedgerIntegrityError',
    'UnmatchedRecordError',
    'Asset',
    'TransactionKind',
    'ExternalRecord',
    'LedgerRecord',
    'MatchStatus',
    'MatchOutcome',
    'import_csv',
    'read_ledger',
    'extract_ledger_records',
    'standardize_timestamp',
    'clean_amount',
    'iter_outcomes',
    'reconcile_transactions',
    'ReconciliationReport',
    'format_report_summary',
    'generate_reconciliation_report',
    'save_reconciliation_results'
]
