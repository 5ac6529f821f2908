"""
tumbler.py - Direct rate keeper

Rates are set by configuration and pushed into the QuotaKeeper at most once
every epoch_length seconds.
"""

from __future__ import annotations
from decimal import Decimal
from typing import Dict, Iterable
import logging

from ..core import (
    DEFAULT_EPOCH_LENGTH_SECONDS, RATE_DECIMAL_PLACES, RateMap,
    AssetNotQuoted, AssetAlreadyQuoted, InvalidRate,
    to_decimal, round_down,
)
from ..quotas import QuotaKeeper
from .base import epoch_elapsed

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class TumblerRateKeeper:
    """
    Rate keeper with administrator-set rates.

    Example:
        tumbler = TumblerRateKeeper(keeper, epoch_length_seconds=86400)
        keeper.set_rate_keeper(tumbler)
        tumbler.register_asset("WBTC", Decimal("0.02"))
        tumbler.refresh_if_due()
    """

    def __init__(
        self,
        quota_keeper: QuotaKeeper,
        epoch_length_seconds: int = DEFAULT_EPOCH_LENGTH_SECONDS,
        name: str = "tumbler",
    ):
        if epoch_length_seconds <= 0:
            raise ValueError("epoch_length_seconds must be positive")
        self.quota_keeper = quota_keeper
        self.epoch_length_seconds = epoch_length_seconds
        self.name = name
        self.events = quota_keeper.events
        self.rates: Dict[str, Decimal] = {}

    @property
    def current_time(self):
        return self.quota_keeper.current_time

    @staticmethod
    def _validate_rate(rate: Decimal) -> Decimal:
        rate = round_down(to_decimal(rate), RATE_DECIMAL_PLACES)
        if rate <= ZERO:
            raise InvalidRate(f"Rate must be positive, got {rate}")
        return rate

    def is_asset_registered(self, asset: str) -> bool:
        return asset in self.rates

    def get_rates(self, assets: Iterable[str]) -> RateMap:
        rates = {}
        for asset in assets:
            if asset not in self.rates:
                raise AssetNotQuoted(f"Asset {asset} is not registered in {self.name}")
            rates[asset] = self.rates[asset]
        return rates

    def register_asset(self, asset: str, rate: Decimal) -> None:
        if asset in self.rates:
            raise AssetAlreadyQuoted(f"Asset {asset} is already registered in {self.name}")
        rate = self._validate_rate(rate)
        if not self.quota_keeper.is_quoted_token(asset):
            self.quota_keeper.add_quota_token(asset, caller=self)
        self.rates[asset] = rate
        self.events.emit("SetRate", self.current_time, self.name, token=asset, rate=rate)
        logger.info("%s registered %s at %s", self.name, asset, rate)

    def set_rate(self, asset: str, rate: Decimal) -> None:
        """New rate takes effect at the next refresh."""
        if asset not in self.rates:
            raise AssetNotQuoted(f"Asset {asset} is not registered in {self.name}")
        rate = self._validate_rate(rate)
        self.rates[asset] = rate
        self.events.emit("SetRate", self.current_time, self.name, token=asset, rate=rate)
        logger.info("%s rate for %s set to %s", self.name, asset, rate)

    def set_epoch_length(self, epoch_length_seconds: int) -> None:
        if epoch_length_seconds <= 0:
            raise ValueError("epoch_length_seconds must be positive")
        self.epoch_length_seconds = epoch_length_seconds
        self.events.emit("SetEpochLength", self.current_time, self.name, epoch_length=epoch_length_seconds)
        logger.info("%s epoch length set to %ds", self.name, epoch_length_seconds)

    def refresh_if_due(self) -> bool:
        if not epoch_elapsed(self.quota_keeper.last_quota_rate_update, self.current_time, self.epoch_length_seconds):
            return False
        self.quota_keeper.refresh_rates(caller=self)
        return True

    def __repr__(self) -> str:
        return f"TumblerRateKeeper({self.name}, rates={self.rates})"
