"""
Matching exchange records against ledger postings.

Matching rules:
- Exchange records are processed in the order given (oldest first)
- A record with a zero amount is reported as ZERO_AMOUNT and never looked up
- A ledger record qualifies when its amount equals the signed exchange amount
  exactly and (exchange date - ledger date) lies in [min_days, max_days]
- Same-amount ledger records outside the window are reported as date
  mismatches and the scan carries on
- A qualifying ledger record is consumed and can never match again
- Ledger records left over at the end are reported as UNACCOUNTED

Tie-break policies:
- 'first': first qualifying record in ledger order wins
- 'closest': qualifying record with the smallest absolute day difference wins,
  ledger order breaks ties
"""

import logging

from wayex_ledger.errors import UnmatchedRecordError
from wayex_ledger.models import DateMismatch, MatchOutcome, MatchStatus, ZERO

logger = logging.getLogger(__name__)

TIE_BREAK_POLICIES = ('first', 'closest')


def day_difference(external, ledger):
    """Signed days from the ledger date to the exchange record's local date."""
    return (external.timestamp.date() - ledger.date).days


def _find_match(external, pool, min_days, max_days, tie_break):
    """Scan the pool for a ledger record matching one exchange record.

    Returns:
        tuple: (pool index or None, day difference or None, list of DateMismatch)
    """
    amount = external.signed_amount
    mismatches = []
    best_index = None
    best_days = None

    for index, ledger in enumerate(pool):
        if ledger is None or ledger.amount != amount:
            continue

        days = day_difference(external, ledger)
        if days < min_days or days > max_days:
            logger.warning(f"Date mismatch: {days} {ledger.date} {ledger.description!r} "
                           f"{ledger.amount:.8f}")
            mismatches.append(DateMismatch(ledger=ledger, day_difference=days))
            continue

        if tie_break == 'first':
            return index, days, mismatches
        if best_index is None or abs(days) < abs(best_days):
            best_index, best_days = index, days

    return best_index, best_days, mismatches


def iter_outcomes(external_records, ledger_records, min_days, max_days,
                  stop_on_first_unmatched=True, tie_break='first'):
    """
    Match exchange records against ledger records, one outcome at a time.

    Args:
        external_records (iterable): ExternalRecords, oldest first
        ledger_records (iterable): LedgerRecords in ledger order. The sequence
            passed in is copied and never modified.
        min_days (int): Smallest allowed (exchange date - ledger date)
        max_days (int): Largest allowed (exchange date - ledger date)
        stop_on_first_unmatched (bool): Raise UnmatchedRecordError once the
            first UNMATCHED outcome has been consumed
        tie_break (str): 'first' or 'closest'

    Yields:
        MatchOutcome: One per exchange record, then one UNACCOUNTED outcome
            per ledger record never consumed

    Raises:
        ValueError: If the window or tie-break policy is invalid
        UnmatchedRecordError: In stop-on-first mode, after yielding the first
            unmatched outcome
    """
    if min_days > max_days:
        raise ValueError(f"Invalid date window: [{min_days}, {max_days}]")
    if tie_break not in TIE_BREAK_POLICIES:
        raise ValueError(f"Unknown tie-break policy: {tie_break}. "
                         f"Expected one of: {list(TIE_BREAK_POLICIES)}")

    # Consumed slots are set to None
    pool = list(ledger_records)
    logger.info(f"Reconciling against {len(pool)} ledger records, window [{min_days}, {max_days}], "
                f"tie-break {tie_break}")

    for external in external_records:
        if external.signed_amount == ZERO:
            yield MatchOutcome(status=MatchStatus.ZERO_AMOUNT, external=external)
            continue

        index, days, mismatches = _find_match(external, pool, min_days, max_days, tie_break)

        if index is None:
            outcome = MatchOutcome(
                status=MatchStatus.UNMATCHED,
                external=external,
                date_mismatches=tuple(mismatches),
            )
            logger.error(f"Could not find ledger record for {external.timestamp:%Y-%m-%d %H:%M:%S} "
                         f"{external.description!r} {external.signed_amount:.8f}")
            yield outcome
            if stop_on_first_unmatched:
                raise UnmatchedRecordError(outcome)
            continue

        ledger = pool[index]
        pool[index] = None
        logger.debug(f"Matched {external.reference!r} to {ledger.date} {ledger.description!r} ({days} days)")
        yield MatchOutcome(
            status=MatchStatus.MATCHED,
            external=external,
            ledger=ledger,
            day_difference=days,
            date_mismatches=tuple(mismatches),
        )

    for ledger in pool:
        if ledger is not None:
            yield MatchOutcome(status=MatchStatus.UNACCOUNTED, ledger=ledger)


def reconcile_transactions(external_records, ledger_records, min_days, max_days,
                           stop_on_first_unmatched=True, tie_break='first'):
    """Run the whole match and return every outcome as a list.

    See ``iter_outcomes`` for arguments and errors.
    """
    return list(iter_outcomes(
        external_records,
        ledger_records,
        min_days,
        max_days,
        stop_on_first_unmatched=stop_on_first_unmatched,
        tie_break=tie_break,
    ))
