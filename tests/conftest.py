import pytest
import pandas as pd
from datetime import datetime, date, timedelta, timezone
from decimal import Decimal

from wayex_ledger.models import Asset, ExternalRecord, LedgerRecord, TransactionKind

# Fixed zone so local dates do not depend on the machine running the tests
BRISBANE = timezone(timedelta(hours=10))

TRACKED_ACCOUNT = 'Assets:Cash-On-Hand:CryptoSpend:BTC'

# Newest first, as the exchange exports it
wayex_legacy_sample_data = {
    'Date/Time': [
        'Thu, 01 Feb 2024, 06:30 pm',
        'Fri, 19 Jan 2024, 11:00 am',
        'Mon, 15 Jan 2024, 08:05 am',
        'Wed, 10 Jan 2024, 09:15 am',
    ],
    'Type': ['Card (Purchase)', 'Sell', 'Card (Purchase)', 'Received'],
    'Asset': ['BTC', 'AUD', 'BTC', 'BTC'],
    'Amount AUD': ['12.50', '100.00', '4.75', ''],
    'Amount Crypto': ['0.00020000', '', '0.00007500', '0.00100000'],
    'Details': ['Groceries', 'Sold for AUD', 'Coffee', 'From hardware wallet'],
    'Reference': ['REF-4', 'REF-3', 'REF-2', 'REF-1'],
}

wayex_utc_sample_data = {
    'Date (UTC)': ['2024-01-15T22:05:00Z', '2024-01-09T23:15:00Z'],
    'Type': ['Spent', 'Crypto Deposit'],
    'Asset': ['BTC', 'BTC'],
    'Amount AUD': ['4.75', ''],
    'Amount Crypto': ['0.00007500', '0.00100000'],
    'Details': ['Coffee', 'From hardware wallet'],
    'Reference': ['REF-2', 'REF-1'],
}

sample_ledger_text = """
2024-01-01 open Assets:Cash-On-Hand:CryptoSpend:BTC BTC

2024-01-09 * "Wallet" "Top up spending wallet"
  Assets:Cash-On-Hand:CryptoSpend:BTC   0.00100000 BTC
  Assets:Crypto:Cold-Storage:BTC       -0.00100000 BTC

2024-01-12 * "Rent"
  Assets:Bank:Checking                 -1500.00 AUD
  Expenses:Housing:Rent                 1500.00 AUD

2024-01-15 * "Cafe" "Coffee"
  Assets:Cash-On-Hand:CryptoSpend:BTC  -0.00007500 BTC
  Expenses:Food:Coffee                  0.00007500 BTC

2024-02-01 * "Supermarket" "Groceries"
  Assets:Cash-On-Hand:CryptoSpend:BTC  -0.00020000 BTC
  Expenses:Food:Groceries               0.00020000 BTC

2024-02-20 * "Cafe" "Coffee not on the export"
  Assets:Cash-On-Hand:CryptoSpend:BTC  -0.00005000 BTC
  Expenses:Food:Coffee                  0.00005000 BTC
"""


@pytest.fixture
def create_test_df():
    """Helper fixture to create raw export DataFrames"""
    def _create_df(format_name):
        sample_data = {
            'wayex_legacy': wayex_legacy_sample_data,
            'wayex_utc': wayex_utc_sample_data,
        }
        if format_name not in sample_data:
            raise ValueError(f"Unknown format: {format_name}")
        return pd.DataFrame(sample_data[format_name])
    return _create_df


@pytest.fixture
def write_export(tmp_path, create_test_df):
    """Write a sample export (or a given DataFrame) to a CSV file"""
    def _write(format_name='wayex_legacy', df=None, name='wayex.csv'):
        if df is None:
            df = create_test_df(format_name)
        file_path = tmp_path / name
        df.to_csv(file_path, index=False)
        return file_path
    return _write


@pytest.fixture
def write_ledger(tmp_path):
    """Write beancount text to a ledger file"""
    def _write(text=sample_ledger_text, name='main.beancount'):
        file_path = tmp_path / name
        file_path.write_text(text)
        return file_path
    return _write


@pytest.fixture
def make_external():
    """Build an ExternalRecord from a date string and a raw magnitude"""
    def _make(day, magnitude, kind=TransactionKind.RECEIVED, description='Exchange record',
              reference='REF', hour=9):
        timestamp = datetime.strptime(day, '%Y-%m-%d').replace(hour=hour, tzinfo=BRISBANE)
        return ExternalRecord(
            timestamp=timestamp,
            asset=Asset.BTC,
            kind=kind,
            raw_magnitude=Decimal(magnitude),
            description=description,
            reference=reference,
        )
    return _make


@pytest.fixture
def make_ledger():
    """Build a LedgerRecord from a date string and a signed amount"""
    def _make(day, amount, description='Ledger posting'):
        return LedgerRecord(
            date=date.fromisoformat(day),
            description=description,
            asset=Asset.BTC,
            amount=Decimal(amount),
        )
    return _make
