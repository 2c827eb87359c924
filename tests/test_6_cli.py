import pytest

from wayex_ledger import cli, version
from wayex_ledger.config import DEFAULT_ACCOUNT, default_account, load_settings
from conftest import sample_ledger_text


@pytest.fixture(autouse=True)
def log_to_tmp(tmp_path, monkeypatch):
    """Keep the log file out of the working directory"""
    monkeypatch.setenv('LOG_FILE', str(tmp_path / 'logs' / 'test.log'))
    monkeypatch.delenv('WAYEX_LEDGER_ASSET', raising=False)
    monkeypatch.delenv('WAYEX_LEDGER_ACCOUNT', raising=False)


def test_build_version(capsys, monkeypatch):
    monkeypatch.setattr(version, 'VCS_REF', 'abc1234')
    monkeypatch.setattr(version, 'BUILD_DATE', None)
    assert cli.main(['--build-version']) == 0
    out = capsys.readouterr().out
    assert out.strip() == f"wayex_ledger v{version.VERSION} (abc1234 unknown)"


def test_build_version_does_not_read_files(capsys):
    assert cli.main(['-b', '-w', 'missing.csv', '-l', 'missing.beancount']) == 0


def test_files_are_required():
    with pytest.raises(SystemExit) as exc_info:
        cli.main([])
    assert exc_info.value.code == 2


class TestRun:
    """Test suite for complete runs through the command line."""

    def test_clean_run(self, write_export, write_ledger, capsys):
        code = cli.main(['-w', str(write_export()), '-l', str(write_ledger())])
        out = capsys.readouterr().out.splitlines()
        assert code == 0
        assert out[0].startswith("2024-01-10 09:15:00 From hardware wallet")
        assert "Unaccounted ledger records:" in out
        assert any(line.startswith("2024-02-20") and "Coffee not on the export" in line for line in out)
        assert out[-3:] == [
            "spent -0.00027500",
            "paid 0.00100000",
            "total 0.00072500",
        ]

    def test_unmatched_stops_run(self, write_export, write_ledger, capsys):
        ledger = sample_ledger_text.replace('-0.00020000 BTC', '-0.00030000 BTC')
        code = cli.main(['-w', str(write_export()), '-l', str(write_ledger(ledger))])
        out = capsys.readouterr().out
        assert code == 1
        assert "Could not find ledger record" in out
        assert "error running reconciliation:" in out
        assert "Unaccounted ledger records:" not in out

    def test_continue_on_unmatched(self, write_export, write_ledger, capsys):
        ledger = sample_ledger_text.replace('-0.00020000 BTC', '-0.00030000 BTC')
        code = cli.main(['-w', str(write_export()), '-l', str(write_ledger(ledger)),
                         '--continue-on-unmatched'])
        out = capsys.readouterr().out
        assert code == 1
        assert "Unmatched exchange records:" in out
        assert "total 0.00072500" in out

    def test_narrow_window(self, write_export, write_ledger, capsys):
        """The Jan 10 deposit is one day after its ledger posting."""
        code = cli.main(['-w', str(write_export()), '-l', str(write_ledger()),
                         '--min-days', '0', '--max-days', '0'])
        out = capsys.readouterr().out
        assert code == 1
        assert "Date mismatch: 1 2024-01-09" in out

    def test_output_files(self, write_export, write_ledger, tmp_path, capsys):
        output_dir = tmp_path / 'output'
        code = cli.main(['-w', str(write_export()), '-l', str(write_ledger()), '--output', str(output_dir)])
        assert code == 0
        assert (output_dir / 'reconciled_transactions.csv').exists()
        assert (output_dir / 'reconciliation_report.txt').exists()

    def test_output_csv_file(self, write_export, write_ledger, tmp_path, capsys):
        """A CSV file path keeps the CSV and puts the summary beside it."""
        output_file = tmp_path / 'results.csv'
        code = cli.main(['-w', str(write_export()), '-l', str(write_ledger()), '--output', str(output_file)])
        assert code == 0

        first_line = output_file.read_text().splitlines()[0]
        assert first_line.startswith('"Status"')
        summary = tmp_path / 'results_report.txt'
        assert summary.exists()
        assert "Matched Records: 3" in summary.read_text()

    def test_other_asset_uses_its_own_account(self, write_export, write_ledger, create_test_df, capsys):
        df = create_test_df('wayex_legacy')
        df['Asset'] = df['Asset'].replace('BTC', 'XRP')
        ledger = sample_ledger_text.replace('BTC', 'XRP')
        code = cli.main(['-w', str(write_export(df=df)), '-l', str(write_ledger(ledger)), '--asset', 'XRP'])
        out = capsys.readouterr().out
        assert code == 0
        assert "total 0.00072500" in out

    def test_ledger_integrity_error(self, write_export, write_ledger, capsys):
        ledger = sample_ledger_text.replace('0.00100000 BTC\n', '0.00100000 BCH\n', 1)
        code = cli.main(['-w', str(write_export()), '-l', str(write_ledger(ledger))])
        out = capsys.readouterr().out
        assert code == 1
        assert "Ledger integrity error" in out

    def test_parse_error(self, write_export, write_ledger, create_test_df, capsys):
        df = create_test_df('wayex_legacy')
        df.loc[0, 'Date/Time'] = 'yesterday'
        code = cli.main(['-w', str(write_export(df=df)), '-l', str(write_ledger())])
        out = capsys.readouterr().out
        assert code == 1
        assert "'Date/Time' on row 1" in out

    def test_missing_file(self, write_ledger, tmp_path, capsys):
        code = cli.main(['-w', str(tmp_path / 'missing.csv'), '-l', str(write_ledger())])
        out = capsys.readouterr().out
        assert code == 1
        assert "File not found" in out


class TestSettings:
    """Test suite for settings precedence."""

    def test_defaults(self):
        settings = load_settings(cli.build_parser().parse_args([]))
        assert settings.target_asset == 'BTC'
        assert settings.account == DEFAULT_ACCOUNT
        assert settings.stop_on_first_unmatched is True
        assert settings.tie_break == 'first'
        assert settings.window_for('wayex_legacy') == (-2, 14)
        assert settings.window_for('wayex_utc') == (-14, 14)

    def test_environment(self, monkeypatch):
        monkeypatch.setenv('WAYEX_LEDGER_ASSET', 'xrp')
        monkeypatch.setenv('WAYEX_LEDGER_ACCOUNT', 'Assets:Crypto:XRP')
        settings = load_settings(cli.build_parser().parse_args([]))
        assert settings.target_asset == 'XRP'
        assert settings.account == 'Assets:Crypto:XRP'

    def test_account_follows_asset(self):
        settings = load_settings(cli.build_parser().parse_args(['--asset', 'bch']))
        assert settings.account == 'Assets:Cash-On-Hand:CryptoSpend:BCH'
        assert default_account('XRP') == 'Assets:Cash-On-Hand:CryptoSpend:XRP'

    def test_explicit_account_is_kept(self):
        settings = load_settings(cli.build_parser().parse_args(['--asset', 'XRP', '--account', 'Assets:Crypto:XRP']))
        assert settings.account == 'Assets:Crypto:XRP'

    def test_flags_win(self, monkeypatch):
        monkeypatch.setenv('WAYEX_LEDGER_ASSET', 'XRP')
        args = cli.build_parser().parse_args(['--asset', 'BCH', '--min-days', '-1',
                                              '--tie-break', 'closest', '--continue-on-unmatched'])
        settings = load_settings(args)
        assert settings.target_asset == 'BCH'
        assert settings.window_for('wayex_legacy') == (-1, 14)
        assert settings.tie_break == 'closest'
        assert settings.stop_on_first_unmatched is False

    def test_invalid_settings(self):
        with pytest.raises(ValueError, match="Unknown asset code"):
            load_settings(cli.build_parser().parse_args(['--asset', 'DOGE']))
        with pytest.raises(ValueError, match="Invalid date window"):
            load_settings(cli.build_parser().parse_args(['--min-days', '3', '--max-days', '1']))
        with pytest.raises(ValueError, match="Invalid date window"):
            load_settings(cli.build_parser().parse_args(['--min-days', '20'])).window_for('wayex_legacy')
