"""
gauge.py - Voting rate keeper

Stakers vote each asset's quota rate up or down with voting power locked in
the StakingLedger. The rate of an asset is the vote-weighted blend of its
bounds:

    rate = (min_rate * votes_for_decrease + max_rate * votes_for_increase)
           / (votes_for_decrease + votes_for_increase)

and min_rate when no votes are cast. Rates reach the QuotaKeeper once per
staking epoch; while the epoch is frozen, epochs still advance but nothing is
pushed.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Dict, Iterable, Tuple
import logging

from ..core import (
    RATE_DECIMAL_PLACES, RateMap,
    AssetNotQuoted, AssetAlreadyQuoted, InsufficientVotes, InvalidRate,
    to_decimal, round_down,
)
from ..quotas import QuotaKeeper
from .base import epoch_elapsed
from .staking import StakingLedger

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True, slots=True)
class QuotaRateParams:
    min_rate: Decimal
    max_rate: Decimal
    votes_for_increase: Decimal = ZERO
    votes_for_decrease: Decimal = ZERO

    @property
    def rate(self) -> Decimal:
        total = self.votes_for_increase + self.votes_for_decrease
        if total == ZERO:
            return self.min_rate
        blended = (self.min_rate * self.votes_for_decrease + self.max_rate * self.votes_for_increase) / total
        return round_down(blended, RATE_DECIMAL_PLACES)


@dataclass(frozen=True, slots=True)
class UserVotes:
    votes_for_increase: Decimal = ZERO
    votes_for_decrease: Decimal = ZERO


def _validate_bounds(min_rate: Decimal, max_rate: Decimal) -> Tuple[Decimal, Decimal]:
    min_rate, max_rate = to_decimal(min_rate), to_decimal(max_rate)
    if min_rate <= ZERO or max_rate < min_rate:
        raise InvalidRate(f"Rate bounds must satisfy 0 < min <= max, got [{min_rate}, {max_rate}]")
    return min_rate, max_rate


class GaugeRateKeeper:
    """
    Rate keeper driven by staker votes.

    Example:
        gauge = GaugeRateKeeper(keeper, staking)
        keeper.set_rate_keeper(gauge)
        gauge.register_asset("WETH", Decimal("0.01"), Decimal("0.05"))
        gauge.vote("bob", "WETH", Decimal("100"), increase=True)
    """

    def __init__(self, quota_keeper: QuotaKeeper, staking: StakingLedger, name: str = "gauge"):
        self.quota_keeper = quota_keeper
        self.staking = staking
        self.name = name
        self.events = quota_keeper.events
        self.epoch_last_update = staking.get_current_epoch()
        self.epoch_frozen = False
        self.quota_rate_params: Dict[str, QuotaRateParams] = {}
        self.user_votes: Dict[Tuple[str, str], UserVotes] = {}

    @property
    def current_time(self):
        return self.quota_keeper.current_time

    # ========================================================================
    # RATE KEEPER CAPABILITY
    # ========================================================================

    def is_asset_registered(self, asset: str) -> bool:
        return asset in self.quota_rate_params

    def get_rates(self, assets: Iterable[str]) -> RateMap:
        rates = {}
        for asset in assets:
            params = self.quota_rate_params.get(asset)
            if params is None:
                raise AssetNotQuoted(f"Asset {asset} is not registered in {self.name}")
            rates[asset] = params.rate
        return rates

    def register_asset(self, asset: str, min_rate: Decimal, max_rate: Decimal) -> None:
        """Start pricing an asset between min_rate and max_rate."""
        if asset in self.quota_rate_params:
            raise AssetAlreadyQuoted(f"Asset {asset} is already registered in {self.name}")
        min_rate, max_rate = _validate_bounds(min_rate, max_rate)
        if not self.quota_keeper.is_quoted_token(asset):
            self.quota_keeper.add_quota_token(asset, caller=self)
        self.quota_rate_params[asset] = QuotaRateParams(min_rate, max_rate)
        self.events.emit("SetQuotaTokenParams", self.current_time, self.name,
                         token=asset, min_rate=min_rate, max_rate=max_rate)
        logger.info("%s registered %s with rates [%s, %s]", self.name, asset, min_rate, max_rate)

    def refresh_if_due(self) -> bool:
        """
        Track the staking epoch and push rates once an epoch has passed since
        the quota keeper was last refreshed (or if it never was).
        """
        epoch = self.staking.get_current_epoch()
        if epoch > self.epoch_last_update:
            self.epoch_last_update = epoch
            self.events.emit("UpdateEpoch", self.current_time, self.name, epoch=epoch)
        if not epoch_elapsed(self.quota_keeper.last_quota_rate_update, self.current_time,
                             self.staking.epoch_length_seconds):
            return False
        if self.epoch_frozen:
            logger.debug("%s epoch %d frozen, rates not pushed", self.name, epoch)
            return False
        self.quota_keeper.refresh_rates(caller=self)
        return True

    # ========================================================================
    # VOTING
    # ========================================================================

    def vote(self, voter: str, asset: str, amount: Decimal, increase: bool) -> None:
        """Lock `amount` of the voter's stake as votes for raising or lowering an asset's rate."""
        self.refresh_if_due()
        params = self.quota_rate_params.get(asset)
        if params is None:
            raise AssetNotQuoted(f"Asset {asset} is not registered in {self.name}")
        amount = to_decimal(amount)
        if amount <= ZERO:
            raise ValueError(f"Vote amount must be positive, got {amount}")

        self.staking.lock_votes(voter, amount)
        votes = self.user_votes.get((voter, asset), UserVotes())
        if increase:
            self.quota_rate_params[asset] = replace(params, votes_for_increase=params.votes_for_increase + amount)
            self.user_votes[(voter, asset)] = replace(votes, votes_for_increase=votes.votes_for_increase + amount)
        else:
            self.quota_rate_params[asset] = replace(params, votes_for_decrease=params.votes_for_decrease + amount)
            self.user_votes[(voter, asset)] = replace(votes, votes_for_decrease=votes.votes_for_decrease + amount)

        self.events.emit("Vote", self.current_time, self.name,
                         user=voter, token=asset, votes=amount, low_rate=not increase)
        logger.debug("%s voted %s %s on %s", voter, amount, "up" if increase else "down", asset)

    def unvote(self, voter: str, asset: str, amount: Decimal, increase: bool) -> None:
        """Withdraw votes previously cast on the same side and release the stake."""
        self.refresh_if_due()
        params = self.quota_rate_params.get(asset)
        if params is None:
            raise AssetNotQuoted(f"Asset {asset} is not registered in {self.name}")
        amount = to_decimal(amount)
        votes = self.user_votes.get((voter, asset), UserVotes())
        cast = votes.votes_for_increase if increase else votes.votes_for_decrease
        if amount <= ZERO or amount > cast:
            raise InsufficientVotes(f"{voter} has {cast} votes on {asset}, cannot remove {amount}")

        self.staking.release_votes(voter, amount)
        if increase:
            self.quota_rate_params[asset] = replace(params, votes_for_increase=params.votes_for_increase - amount)
            self.user_votes[(voter, asset)] = replace(votes, votes_for_increase=votes.votes_for_increase - amount)
        else:
            self.quota_rate_params[asset] = replace(params, votes_for_decrease=params.votes_for_decrease - amount)
            self.user_votes[(voter, asset)] = replace(votes, votes_for_decrease=votes.votes_for_decrease - amount)

        self.events.emit("Unvote", self.current_time, self.name,
                         user=voter, token=asset, votes=amount, low_rate=not increase)
        logger.debug("%s removed %s %s votes on %s", voter, amount, "up" if increase else "down", asset)

    # ========================================================================
    # CONFIGURATION
    # ========================================================================

    def change_rate_params(self, asset: str, min_rate: Decimal, max_rate: Decimal) -> None:
        params = self.quota_rate_params.get(asset)
        if params is None:
            raise AssetNotQuoted(f"Asset {asset} is not registered in {self.name}")
        min_rate, max_rate = _validate_bounds(min_rate, max_rate)
        self.quota_rate_params[asset] = replace(params, min_rate=min_rate, max_rate=max_rate)
        self.events.emit("SetQuotaTokenParams", self.current_time, self.name,
                         token=asset, min_rate=min_rate, max_rate=max_rate)
        logger.info("%s rate bounds for %s set to [%s, %s]", self.name, asset, min_rate, max_rate)

    def set_frozen_epoch(self, frozen: bool) -> None:
        if frozen == self.epoch_frozen:
            return
        self.epoch_frozen = frozen
        self.events.emit("SetFrozenEpoch", self.current_time, self.name, status=frozen)
        logger.info("%s epoch %s", self.name, "frozen" if frozen else "unfrozen")

    def __repr__(self) -> str:
        return f"GaugeRateKeeper({self.name}, assets={sorted(self.quota_rate_params)}, epoch={self.epoch_last_update})"
