"""
Error types raised while reconciling an exchange export against a ledger.

All of them derive from ``ValueError`` so callers that only care about
"bad input" can keep catching that.
"""


class ReconcileError(ValueError):
    """Base class for reconciliation failures."""


class RecordParseError(ReconcileError):
    """A row of the exchange export could not be turned into a record.

    Args:
        field (str): Column name that failed to parse
        value: Raw value found in the column
        reason (str): Why the value was rejected
        row_number (int, optional): 1-based data row in the source file, header excluded
    """

    def __init__(self, field, value, reason, row_number=None):
        self.field = field
        self.value = value
        self.reason = reason
        self.row_number = row_number
        location = f" on row {row_number}" if row_number is not None else ""
        super().__init__(f"Invalid {field!r}{location}: {reason} (value: {value!r})")


class LedgerIntegrityError(ReconcileError):
    """The ledger breaks an assumption about the tracked account postings."""

    def __init__(self, reason, entry_date=None, narration=None):
        self.reason = reason
        self.entry_date = entry_date
        self.narration = narration
        context = []
        if entry_date is not None:
            context.append(str(entry_date))
        if narration:
            context.append(repr(narration))
        suffix = f" [{' '.join(context)}]" if context else ""
        super().__init__(f"Ledger integrity error: {reason}{suffix}")


class UnmatchedRecordError(ReconcileError):
    """An exchange record with a non-zero amount has no ledger counterpart."""

    def __init__(self, outcome):
        self.outcome = outcome
        record = outcome.external
        super().__init__(
            f"Could not find ledger record for {record.timestamp:%Y-%m-%d %H:%M:%S} "
            f"{record.description!r} {record.signed_amount:.8f}"
        )
