"""
Record shapes shared by the normaliser, the matcher and the reporter.

Exchange rows become ``ExternalRecord`` objects, tracked-account postings
become ``LedgerRecord`` objects. The matcher emits one ``MatchOutcome`` per
exchange record plus one per ledger record it never consumed.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

ZERO = Decimal('0')


class Asset(Enum):
    """Asset codes used by the exchange export."""
    AUD = 'AUD'
    BTC = 'BTC'
    XRP = 'XRP'
    BCH = 'BCH'


class TransactionKind(Enum):
    """Transaction types, labelled exactly as the export spells them."""
    RECEIVED = 'Received'
    SPENT = 'Spent'
    SENT = 'Sent'
    SELL = 'Sell'
    BANK_WITHDRAWAL = 'Bank Withdrawal (BSB)'
    CARD_PURCHASE = 'Card (Purchase)'
    CARD_REFUND = 'Card (Refund)'
    CRYPTO_DEPOSIT = 'Crypto Deposit'


# +1 moves the asset into the account, -1 moves it out
POLARITY = {
    TransactionKind.RECEIVED: 1,
    TransactionKind.CRYPTO_DEPOSIT: 1,
    TransactionKind.CARD_REFUND: 1,
    TransactionKind.SPENT: -1,
    TransactionKind.SENT: -1,
    TransactionKind.SELL: -1,
    TransactionKind.BANK_WITHDRAWAL: -1,
    TransactionKind.CARD_PURCHASE: -1,
}


def _check_polarity_table():
    missing = [kind.value for kind in TransactionKind if kind not in POLARITY]
    if missing:
        raise RuntimeError(f"No polarity defined for transaction kinds: {missing}")
    invalid = {kind.value: sign for kind, sign in POLARITY.items() if sign not in (1, -1)}
    if invalid:
        raise RuntimeError(f"Polarity must be +1 or -1: {invalid}")


_check_polarity_table()


@dataclass(frozen=True)
class ExternalRecord:
    """One exchange transaction for a single asset."""
    timestamp: datetime
    asset: Asset
    kind: TransactionKind
    raw_magnitude: Decimal
    description: str
    reference: str
    fiat_amount: Optional[Decimal] = None

    @property
    def signed_amount(self) -> Decimal:
        if POLARITY[self.kind] > 0:
            return self.raw_magnitude
        return -self.raw_magnitude


@dataclass(frozen=True)
class LedgerRecord:
    """One posting against the tracked ledger account."""
    date: date
    description: str
    asset: Asset
    amount: Decimal


class MatchStatus(Enum):
    MATCHED = 'matched'
    ZERO_AMOUNT = 'zero_amount'
    UNMATCHED = 'unmatched'
    UNACCOUNTED = 'unaccounted'


@dataclass(frozen=True)
class DateMismatch:
    """A ledger record with the right amount but a date outside the window."""
    ledger: LedgerRecord
    day_difference: int


@dataclass
class MatchOutcome:
    """Result of looking up one exchange record, or one leftover ledger record.

    ``external`` is unset for ``UNACCOUNTED`` outcomes and ``ledger`` is only
    set for ``MATCHED`` and ``UNACCOUNTED`` outcomes.
    """
    status: MatchStatus
    external: Optional[ExternalRecord] = None
    ledger: Optional[LedgerRecord] = None
    day_difference: Optional[int] = None
    date_mismatches: Tuple[DateMismatch, ...] = field(default_factory=tuple)

    @property
    def is_matched(self) -> bool:
        return self.status == MatchStatus.MATCHED
