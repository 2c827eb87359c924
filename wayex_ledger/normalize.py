"""
Loading and normalising the two sources.

Exchange exports:
- Read with pandas as strings, one row per transaction, newest first
- The source revision is recognised from the header row
- Each row becomes an ExternalRecord; a bad field aborts the load with a
  RecordParseError naming the column
- Rows for other assets are dropped, the rest are returned oldest first

Ledger files:
- Parsed with the beancount parser (no booking, no plugins)
- Only the posting against the tracked account is kept from each transaction
- Tracked postings without narration, amount or the right currency raise
  LedgerIntegrityError
"""

import logging
import os
import pathlib
from datetime import datetime
from decimal import Decimal, InvalidOperation

import pandas as pd
from beancount.core import data
from beancount.core.amount import Amount
from beancount.core.number import MISSING
from beancount.parser import parser as beancount_parser

from wayex_ledger.errors import LedgerIntegrityError, RecordParseError
from wayex_ledger.models import Asset, ExternalRecord, LedgerRecord, TransactionKind

logger = logging.getLogger(__name__)

EIGHT_PLACES = Decimal('0.00000001')

LEGACY_TIMESTAMP_FORMAT = '%a, %d %b %Y, %I:%M %p'

# Header signatures for each revision of the exchange export
format_signatures = {
    'wayex_legacy': ['Date/Time', 'Type', 'Asset', 'Amount AUD', 'Amount Crypto', 'Details', 'Reference'],
    'wayex_utc': ['Date (UTC)', 'Type', 'Asset', 'Amount AUD', 'Amount Crypto', 'Details', 'Reference'],
}

timestamp_columns = {
    'wayex_legacy': 'Date/Time',
    'wayex_utc': 'Date (UTC)',
}

# Allowed (exchange date - ledger date) in days, per revision
date_windows = {
    'wayex_legacy': (-2, 14),
    'wayex_utc': (-14, 14),
}


def standardize_timestamp(value, fmt, tz=None):
    """
    Convert an export timestamp into a timezone-aware local datetime.

    Args:
        value (str): Raw timestamp text
        fmt (str): Export revision the value comes from
        tz (datetime.tzinfo, optional): Local zone. Defaults to the system zone.

    Returns:
        datetime: Timestamp in the local zone

    Raises:
        ValueError: If the value is empty or cannot be parsed
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        raise ValueError("Timestamp cannot be empty")
    if not isinstance(value, str):
        raise ValueError(f"Timestamp must be a string, got {type(value)}")

    value = value.strip()
    if not value:
        raise ValueError("Timestamp cannot be empty")

    if fmt == 'wayex_legacy':
        try:
            naive = datetime.strptime(value, LEGACY_TIMESTAMP_FORMAT)
        except ValueError:
            raise ValueError(f"Cannot parse datetime {value}")
        # Legacy exports are written in local time
        if tz is None:
            return naive.astimezone()
        return naive.replace(tzinfo=tz)

    if fmt == 'wayex_utc':
        try:
            instant = pd.to_datetime(value, utc=True)
        except (ValueError, TypeError, OverflowError):
            raise ValueError(f"Cannot parse datetime {value}")
        if pd.isna(instant):
            raise ValueError(f"Cannot parse datetime {value}")
        return instant.to_pydatetime().astimezone(tz)

    raise ValueError(f"Unknown format: {fmt}")


def clean_amount(amount, allow_empty=False):
    """Parse a decimal amount without going through float.

    Args:
        amount (str or Decimal): Amount to clean
        allow_empty (bool): Return None for empty cells instead of raising

    Returns:
        Decimal or None: Parsed amount

    Raises:
        ValueError: If the amount is empty (and not allowed), not numeric or
            finer than 8 decimal places
    """
    if amount is None or (not isinstance(amount, (str, Decimal)) and pd.isna(amount)) \
            or (isinstance(amount, str) and amount.strip() == ""):
        if allow_empty:
            return None
        raise ValueError("Amount cannot be empty")

    if isinstance(amount, Decimal):
        result = amount
    elif isinstance(amount, str):
        cleaned = amount.strip().replace(',', '')
        try:
            result = Decimal(cleaned)
        except InvalidOperation:
            raise ValueError(f"Invalid amount format: {amount}")
    else:
        raise ValueError(f"Amount must be a string or Decimal, got {type(amount)}")

    if not result.is_finite():
        raise ValueError(f"Invalid amount format: {amount}")

    try:
        exact = result.quantize(EIGHT_PLACES) == result
    except InvalidOperation:
        exact = False
    if not exact:
        raise ValueError(f"Amount has more than 8 decimal places: {amount}")

    return result


def parse_kind(value):
    """Map an export ``Type`` label to a TransactionKind."""
    if not isinstance(value, str):
        raise ValueError(f"Transaction type must be a string, got {type(value)}")
    try:
        return TransactionKind(value.strip())
    except ValueError:
        raise ValueError(f"Unknown transaction type: {value}")


def parse_asset(value):
    """Map an asset code to an Asset."""
    if isinstance(value, Asset):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Asset must be a string, got {type(value)}")
    try:
        return Asset(value.strip().upper())
    except ValueError:
        raise ValueError(f"Unknown asset code: {value}")


def _text(value):
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ''
    return str(value).replace('\n', ' ')


def parse_external_row(row, fmt, tz=None, row_number=None):
    """
    Build an ExternalRecord from one export row.

    Args:
        row (dict): Column name to raw value
        fmt (str): Export revision
        tz (datetime.tzinfo, optional): Local zone for timestamps
        row_number (int, optional): Data row number used in error messages

    Returns:
        ExternalRecord or None: None when the row has no crypto amount

    Raises:
        RecordParseError: If any field is invalid
    """
    def _field(column, parse):
        raw = row.get(column)
        try:
            return parse(raw)
        except ValueError as e:
            raise RecordParseError(column, raw, str(e), row_number) from e

    timestamp = _field(timestamp_columns[fmt], lambda v: standardize_timestamp(v, fmt, tz))
    kind = _field('Type', parse_kind)
    asset = _field('Asset', parse_asset)
    fiat_amount = _field('Amount AUD', lambda v: clean_amount(v, allow_empty=True))
    magnitude = _field('Amount Crypto', lambda v: clean_amount(v, allow_empty=True))

    if magnitude is None:
        return None
    if magnitude < 0:
        raise RecordParseError('Amount Crypto', row.get('Amount Crypto'),
                               "amount must not be negative", row_number)

    return ExternalRecord(
        timestamp=timestamp,
        asset=asset,
        kind=kind,
        raw_magnitude=magnitude,
        description=_text(row.get('Details')),
        reference=_text(row.get('Reference')),
        fiat_amount=fiat_amount,
    )


def identify_format(df):
    """Identify the export revision of a DataFrame from its columns.

    Args:
        df (pd.DataFrame): DataFrame to identify

    Returns:
        str: Format identifier ('wayex_legacy' or 'wayex_utc')

    Raises:
        ValueError: If format cannot be identified
    """
    df.columns = df.columns.str.strip()
    logger.debug(f"DataFrame columns: {df.columns.tolist()}")

    for format_name, required_cols in format_signatures.items():
        if all(col in df.columns for col in required_cols):
            logger.info(f"Identified format: {format_name}")
            return format_name

    raise ValueError(f"Unknown file format: {df.columns.tolist()}")


def _check_file(file_path, extensions=None):
    path = pathlib.Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")
    if path.is_dir():
        raise ValueError(f"Path is a directory: {file_path}")
    if extensions and path.suffix.lower() not in extensions:
        raise ValueError(f"Unsupported file format: {file_path}")
    return path


def read_export(file_path):
    """Read an exchange export into a DataFrame of strings.

    Args:
        file_path (str or Path): Path to the CSV export

    Returns:
        pd.DataFrame: Raw rows in file order

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is empty or cannot be decoded
    """
    path = _check_file(file_path, ['.csv'])

    if os.path.getsize(path) == 0:
        raise ValueError(f"Could not read CSV file: {path} is empty")

    df = None
    for encoding in ['utf-8-sig', 'cp1252']:
        try:
            df = pd.read_csv(
                path,
                header=0,
                dtype=str,
                skipinitialspace=True,
                keep_default_na=False,
                na_values=[''],
                encoding=encoding
            )
            logger.debug(f"Read {path} with encoding {encoding}")
            break
        except UnicodeDecodeError:
            continue
        except pd.errors.EmptyDataError:
            raise ValueError(f"Could not read CSV file: {path} has no data")

    if df is None:
        raise ValueError(f"Could not read CSV file with any supported encoding: {path}")

    return df


def import_csv(file_path, target_asset=Asset.BTC, tz=None):
    """Load an exchange export as ExternalRecords for one asset.

    Args:
        file_path (str or Path): Path to the CSV export
        target_asset (Asset or str): Asset to keep. Defaults to BTC.
        tz (datetime.tzinfo, optional): Local zone for timestamps

    Returns:
        tuple: (records oldest first, format identifier)

    Raises:
        FileNotFoundError: If the file does not exist
        RecordParseError: If a row cannot be parsed
        ValueError: If the file is unreadable or its format unknown
    """
    target_asset = parse_asset(target_asset)
    df = read_export(file_path)
    fmt = identify_format(df)

    records = []
    skipped = 0
    for idx, row in df.iterrows():
        # Rows are counted after the header; quoted cells may span several lines
        record = parse_external_row(row.to_dict(), fmt, tz, row_number=idx + 1)
        if record is None:
            logger.warning(f"Skipping row {idx + 1} of {file_path}: no crypto amount")
            skipped += 1
            continue
        if record.asset != target_asset:
            continue
        records.append(record)

    # Exports list newest first
    records.reverse()
    logger.info(f"Loaded {len(records)} {target_asset.value} records from {file_path} "
                f"({len(df)} rows, {skipped} without amount)")
    return records, fmt


def extract_ledger_records(entries, account, asset=Asset.BTC):
    """
    Pick the tracked-account posting out of each ledger transaction.

    Args:
        entries (list): Parsed beancount directives in file order
        account (str): Full account name to track
        asset (Asset or str): Currency the tracked postings must use

    Returns:
        list: LedgerRecords in file order

    Raises:
        LedgerIntegrityError: If a tracked posting has no narration, no amount
            or a different currency
    """
    asset = parse_asset(asset)
    records = []
    for entry in entries:
        if not isinstance(entry, data.Transaction):
            continue

        posting = next((p for p in entry.postings if p.account == account), None)
        if posting is None:
            continue

        if not entry.narration:
            raise LedgerIntegrityError("transaction has no narration", entry.date)

        units = posting.units
        if not isinstance(units, Amount) or units.number is None or units.number is MISSING:
            raise LedgerIntegrityError(f"posting to {account} has no amount",
                                       entry.date, entry.narration)

        if units.currency != asset.value:
            raise LedgerIntegrityError(
                f"posting to {account} is in {units.currency}, expected {asset.value}",
                entry.date, entry.narration)

        records.append(LedgerRecord(
            date=entry.date,
            description=entry.narration,
            asset=asset,
            amount=units.number,
        ))

    logger.info(f"Found {len(records)} postings to {account}")
    return records


def read_ledger(file_path, account, asset=Asset.BTC):
    """Parse a beancount ledger file and extract the tracked postings.

    Raises:
        FileNotFoundError: If the file does not exist
        LedgerIntegrityError: If the ledger has syntax errors or a tracked
            posting is malformed
    """
    path = _check_file(file_path)

    logger.debug(f"Reading ledger: {path}")
    with open(path, 'r', encoding='utf-8') as f:
        text = f.read()

    entries, errors, _ = beancount_parser.parse_string(text)
    if errors:
        first = errors[0]
        lineno = first.source.get('lineno') if first.source else None
        raise LedgerIntegrityError(f"could not parse ledger line {lineno}: {first.message}")

    return extract_ledger_records(entries, account, asset)
