"""
base.py - Rate keeper capability

A rate keeper decides the annual quota rate of every quoted asset and pushes
it into the QuotaKeeper at most once per epoch. Implementations share no base
class; they only satisfy the RateKeeper protocol:

- GaugeRateKeeper: rates interpolated from staked votes
- TumblerRateKeeper: rates set directly by configuration
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, Optional, Protocol, runtime_checkable


@runtime_checkable
class RateKeeper(Protocol):
    """
    Protocol for quota rate keepers.

    Implementations must provide get_rates(), register_asset(),
    refresh_if_due() and is_asset_registered().
    """

    def get_rates(self, assets: Iterable[str]) -> Dict[str, Decimal]:
        """Current annual rate for each asset. Raises AssetNotQuoted for unknown assets."""
        ...

    def register_asset(self, asset: str, *args, **kwargs) -> None:
        """Start pricing an asset and register it with the quota keeper."""
        ...

    def refresh_if_due(self) -> bool:
        """Push rates into the quota keeper if an epoch has passed. Returns True if pushed."""
        ...

    def is_asset_registered(self, asset: str) -> bool:
        ...


def epoch_elapsed(last_update: Optional[datetime], now: datetime, epoch_length_seconds: int) -> bool:
    """True when no refresh happened yet or at least one epoch has passed since the last one."""
    if last_update is None:
        return True
    return (now - last_update).total_seconds() >= epoch_length_seconds
