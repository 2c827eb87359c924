"""
Run settings for a reconciliation.

Precedence: command line flags, then environment variables, then defaults.
The date window defaults to the one that goes with the detected export
revision, so it is only filled in once the export has been read.
"""

import os
from dataclasses import dataclass
from typing import Optional

from wayex_ledger.normalize import date_windows, parse_asset
from wayex_ledger.reconcile import TIE_BREAK_POLICIES

DEFAULT_ASSET = 'BTC'
ACCOUNT_TEMPLATE = 'Assets:Cash-On-Hand:CryptoSpend:{asset}'
DEFAULT_ACCOUNT = ACCOUNT_TEMPLATE.format(asset=DEFAULT_ASSET)


def default_account(asset):
    """Tracked account used when none is configured for an asset."""
    return ACCOUNT_TEMPLATE.format(asset=parse_asset(asset).value)


@dataclass
class ReconcileSettings:
    target_asset: str = DEFAULT_ASSET
    account: str = DEFAULT_ACCOUNT
    min_days: Optional[int] = None
    max_days: Optional[int] = None
    stop_on_first_unmatched: bool = True
    tie_break: str = 'first'

    def window_for(self, fmt):
        """Return the (min_days, max_days) window to use for an export revision."""
        default_min, default_max = date_windows[fmt]
        min_days = default_min if self.min_days is None else self.min_days
        max_days = default_max if self.max_days is None else self.max_days
        if min_days > max_days:
            raise ValueError(f"Invalid date window: [{min_days}, {max_days}]")
        return min_days, max_days


def load_settings(args=None):
    """Build settings from parsed CLI arguments and the environment.

    Args:
        args (argparse.Namespace, optional): Parsed arguments. Attributes left
            as None fall back to the environment, then the defaults.

    Returns:
        ReconcileSettings: Validated settings

    Raises:
        ValueError: If the asset or tie-break policy is unknown
    """
    def _pick(name, env_var, default):
        value = getattr(args, name, None) if args is not None else None
        if value is not None:
            return value
        return os.getenv(env_var, default)

    settings = ReconcileSettings(
        target_asset=_pick('asset', 'WAYEX_LEDGER_ASSET', DEFAULT_ASSET),
        account=_pick('account', 'WAYEX_LEDGER_ACCOUNT', None),
        min_days=getattr(args, 'min_days', None),
        max_days=getattr(args, 'max_days', None),
        stop_on_first_unmatched=not getattr(args, 'continue_on_unmatched', False),
        tie_break=getattr(args, 'tie_break', None) or 'first',
    )

    # Fail before any file is read
    settings.target_asset = parse_asset(settings.target_asset).value
    if settings.account is None:
        settings.account = default_account(settings.target_asset)
    if settings.tie_break not in TIE_BREAK_POLICIES:
        raise ValueError(f"Unknown tie-break policy: {settings.tie_break}")
    if settings.min_days is not None and settings.max_days is not None \
            and settings.min_days > settings.max_days:
        raise ValueError(f"Invalid date window: [{settings.min_days}, {settings.max_days}]")

    return settings
