"""
quotas.py - Quota Ledger

Caps and prices exposure to individual risky assets. Each asset has a global
quota limit, an annual quota rate set by the rate keeper and its own
cumulative index; each (position, asset) pair holds a quota and the index
value at its last checkpoint.

    asset_index(now)   = index_lu * (1 + rate * (now - last_rate_update) / YEAR)
    interest(position) = quota * (asset_index(now) / position.index_lu - 1)

Every asset index is checkpointed together at each rate refresh, so a single
last_quota_rate_update timestamp is shared by all assets.

After every committed change in aggregate quota the keeper reports the new
revenue to the pool (update_quota_revenue / set_quota_revenue). The pool call
comes last; all checks run before any keeper state is assigned.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
import logging

from .core import (
    RAY, RATE_DECIMAL_PLACES, UNLIMITED, RateMap,
    AssetNotQuoted, AssetAlreadyQuoted, InvalidRate, OutOfBounds, Unauthorized,
    to_decimal, round_down, round_up, grow_index, calc_accrued_interest,
)
from .events import EventLog
from .pool import LiquidityPool

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


# ============================================================================
# RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class TokenQuotaParams:
    """
    Per-asset quota state.

    Attributes:
        rate: Annual quota rate charged on quota held
        cumulative_index_lu: Asset index at the last rate refresh
        total_quoted: Sum of all positions' quotas
        limit: Cap on total_quoted for increases
        increase_fee: One-time fee charged on quota increases (fraction of 1)
        is_active: False until the first rate refresh after registration
    """
    rate: Decimal = ZERO
    cumulative_index_lu: Decimal = RAY
    total_quoted: Decimal = ZERO
    limit: Decimal = ZERO
    increase_fee: Decimal = ZERO
    is_active: bool = False


@dataclass(frozen=True, slots=True)
class AccountQuota:
    quota: Decimal = ZERO
    cumulative_index_lu: Decimal = RAY


@dataclass(frozen=True, slots=True)
class QuotaUpdate:
    """
    Outcome of update_quota.

    Attributes:
        accrued_interest: Interest realized on the position before the change
        fees: One-time increase fee owed by the position
        enable_token: Quota went from zero to positive
        disable_token: Quota went from positive to zero
        actual_delta: Quota change applied after clamping
        revenue_delta: Change in annual quota revenue reported to the pool
    """
    accrued_interest: Decimal
    fees: Decimal
    enable_token: bool
    disable_token: bool
    actual_delta: Decimal
    revenue_delta: Decimal


# ============================================================================
# QUOTA KEEPER
# ============================================================================

class QuotaKeeper:
    """
    Per-asset and per-position quota accounting for one pool.

    Example:
        keeper = QuotaKeeper(pool)
        pool.set_quota_keeper(keeper)
        keeper.set_rate_keeper(gauge)
        gauge.register_asset("WETH", Decimal("0.01"), Decimal("0.05"))
        keeper.set_token_limit("WETH", Decimal("1000000"))
        gauge.refresh_if_due()
        result = keeper.update_quota("account1", "WETH", Decimal("5000"))
    """

    def __init__(self, pool: LiquidityPool, events: Optional[EventLog] = None, name: str = "quota_keeper"):
        self.pool = pool
        self.ledger = pool.ledger
        self.name = name
        self.events = events if events is not None else pool.events
        self.decimals = pool.decimals
        self.rate_keeper = None
        self.last_quota_rate_update: Optional[datetime] = None
        self.token_params: Dict[str, TokenQuotaParams] = {}
        self.account_quotas: Dict[Tuple[str, str], AccountQuota] = {}

    @property
    def current_time(self) -> datetime:
        return self.ledger.current_time

    # ========================================================================
    # READS
    # ========================================================================

    def quoted_tokens(self) -> List[str]:
        """Registered assets in registration order."""
        return list(self.token_params)

    def is_quoted_token(self, asset: str) -> bool:
        return asset in self.token_params

    def get_token_quota_params(self, asset: str) -> TokenQuotaParams:
        return self._params(asset)

    def get_quota_rate(self, asset: str) -> Decimal:
        return self._params(asset).rate

    def cumulative_index(self, asset: str) -> Decimal:
        """Current cumulative index of an asset, grown at its stored rate."""
        params = self._params(asset)
        return grow_index(params.cumulative_index_lu, params.rate, self.last_quota_rate_update, self.current_time)

    def get_quota(self, position: str, asset: str) -> AccountQuota:
        return self.account_quotas.get((position, asset), AccountQuota())

    def get_quota_and_outstanding_interest(self, position: str, asset: str) -> Tuple[Decimal, Decimal]:
        """Quota held and interest owed since the position's last checkpoint."""
        account = self.get_quota(position, asset)
        interest = calc_accrued_interest(
            account.quota, self.cumulative_index(asset), account.cumulative_index_lu, self.decimals
        )
        return account.quota, interest

    def pool_quota_revenue(self) -> Decimal:
        """Annual quota revenue implied by current totals and rates."""
        return sum((p.total_quoted * p.rate for p in self.token_params.values()), ZERO)

    def _params(self, asset: str) -> TokenQuotaParams:
        params = self.token_params.get(asset)
        if params is None:
            raise AssetNotQuoted(f"Asset {asset} is not quoted")
        return params

    def _active_params(self, asset: str) -> TokenQuotaParams:
        params = self._params(asset)
        if not params.is_active:
            raise AssetNotQuoted(f"Asset {asset} has no rate yet")
        return params

    def _require_attached(self) -> None:
        if self.pool.quota_keeper is not self:
            raise Unauthorized(f"{self.name} is not the quota keeper of pool {self.pool.name}")

    # ========================================================================
    # POSITION OPERATIONS
    # ========================================================================

    def update_quota(
        self,
        position: str,
        asset: str,
        requested_delta: Decimal,
        min_quota: Decimal = ZERO,
        max_quota: Decimal = UNLIMITED,
    ) -> QuotaUpdate:
        """
        Change a position's quota on an asset.

        Interest owed so far is realized first. Increases are clamped to the
        room left under the asset limit; decreases are clamped to the quota
        held.

        Raises:
            AssetNotQuoted: Asset unknown or not yet active
            OutOfBounds: Resulting quota outside [min_quota, max_quota]
        """
        self._require_attached()
        params = self._active_params(asset)
        requested_delta = round_down(to_decimal(requested_delta), self.decimals)
        account = self.get_quota(position, asset)
        index_now = self.cumulative_index(asset)
        accrued = calc_accrued_interest(account.quota, index_now, account.cumulative_index_lu, self.decimals)

        if requested_delta > ZERO:
            room = max(params.limit - params.total_quoted, ZERO)
            actual_delta = min(requested_delta, room)
        elif requested_delta < ZERO:
            actual_delta = -min(-requested_delta, account.quota)
        else:
            actual_delta = ZERO

        new_quota = account.quota + actual_delta
        if new_quota < to_decimal(min_quota) or new_quota > to_decimal(max_quota):
            raise OutOfBounds(
                f"{position} quota on {asset} would be {new_quota}, "
                f"outside [{min_quota}, {max_quota}]"
            )

        fees = round_up(actual_delta * params.increase_fee, self.decimals) if actual_delta > ZERO else ZERO
        enable_token = account.quota == ZERO and new_quota > ZERO
        disable_token = account.quota > ZERO and new_quota == ZERO
        revenue_delta = params.rate * actual_delta

        if account.quota > ZERO or new_quota > ZERO:
            self.account_quotas[(position, asset)] = AccountQuota(new_quota, index_now)
        if actual_delta != ZERO:
            self.token_params[asset] = replace(params, total_quoted=params.total_quoted + actual_delta)
            self.pool.update_quota_revenue(revenue_delta, caller=self)
            self.events.emit("UpdateQuota", self.current_time, self.name,
                             position=position, token=asset, quota_change=actual_delta)
        logger.debug("%s %s quota %s -> %s (requested %s), interest %s, fee %s",
                     position, asset, account.quota, new_quota, requested_delta, accrued, fees)

        return QuotaUpdate(
            accrued_interest=accrued,
            fees=fees,
            enable_token=enable_token,
            disable_token=disable_token,
            actual_delta=actual_delta,
            revenue_delta=revenue_delta,
        )

    def remove_quotas(self, position: str, assets: Iterable[str], set_limits_to_zero: bool = False) -> Decimal:
        """
        Zero a position's quotas, e.g. when the position is closed.

        Interest is not realized here; callers accrue beforehand. With
        set_limits_to_zero the asset limits are zeroed too, blocking further
        increases until a limit is set again.

        Returns:
            Change in annual quota revenue reported to the pool
        """
        self._require_attached()
        assets = list(assets)
        for asset in assets:
            self._params(asset)

        revenue_delta = ZERO
        now = self.current_time
        for asset in assets:
            params = self.token_params[asset]
            account = self.get_quota(position, asset)
            if account.quota > ZERO:
                params = replace(params, total_quoted=params.total_quoted - account.quota)
                revenue_delta -= params.rate * account.quota
                self.account_quotas[(position, asset)] = replace(account, quota=ZERO)
                self.events.emit("UpdateQuota", now, self.name,
                                 position=position, token=asset, quota_change=-account.quota)
            if set_limits_to_zero and params.limit != ZERO:
                params = replace(params, limit=ZERO)
                self.events.emit("SetTokenLimit", now, self.name, token=asset, limit=ZERO)
                logger.warning("%s limit zeroed on removal of %s quotas", asset, position)
            self.token_params[asset] = params

        if revenue_delta != ZERO:
            self.pool.update_quota_revenue(revenue_delta, caller=self)
        return revenue_delta

    def accrue_interest(self, position: str, assets: Iterable[str]) -> Decimal:
        """Realize interest owed on each asset and move the position's checkpoints to now."""
        assets = list(assets)
        for asset in assets:
            self._params(asset)

        total = ZERO
        for asset in assets:
            account = self.get_quota(position, asset)
            index_now = self.cumulative_index(asset)
            total += calc_accrued_interest(account.quota, index_now, account.cumulative_index_lu, self.decimals)
            if (position, asset) in self.account_quotas:
                self.account_quotas[(position, asset)] = replace(account, cumulative_index_lu=index_now)
        return total

    # ========================================================================
    # RATE REFRESH (rate keeper only)
    # ========================================================================

    def refresh_rates(self, caller) -> RateMap:
        """
        Pull fresh rates from the rate keeper for every quoted asset.

        Each asset index is checkpointed at its old rate before the new rate
        is stored; the pool's quota revenue is then replaced by the new total.

        Raises:
            Unauthorized: caller is not the attached rate keeper
            AssetNotQuoted: rate missing for a quoted asset, or given for an unknown one
            InvalidRate: a rate is not positive
        """
        if self.rate_keeper is None or caller is not self.rate_keeper:
            raise Unauthorized("Only the rate keeper may refresh quota rates")
        self._require_attached()

        assets = self.quoted_tokens()
        rates = {asset: to_decimal(rate) for asset, rate in self.rate_keeper.get_rates(assets).items()}
        unknown = set(rates) - set(assets)
        if unknown:
            raise AssetNotQuoted(f"Rates given for unquoted assets: {sorted(unknown)}")
        missing = set(assets) - set(rates)
        if missing:
            raise AssetNotQuoted(f"No rate for quoted assets: {sorted(missing)}")
        for asset, rate in rates.items():
            if rate <= ZERO:
                raise InvalidRate(f"Rate for {asset} must be positive, got {rate}")

        now = self.current_time
        updated = {}
        for asset in assets:
            rate = round_down(rates[asset], RATE_DECIMAL_PLACES)
            updated[asset] = replace(
                self.token_params[asset],
                rate=rate,
                cumulative_index_lu=self.cumulative_index(asset),
                is_active=True,
            )
        self.token_params.update(updated)
        self.last_quota_rate_update = now

        for asset, params in updated.items():
            self.events.emit("UpdateTokenQuotaRate", now, self.name, token=asset, rate=params.rate)
        self.pool.set_quota_revenue(self.pool_quota_revenue(), caller=self)
        logger.debug("Quota rates refreshed for %d assets", len(updated))
        return {asset: params.rate for asset, params in updated.items()}

    # ========================================================================
    # CONFIGURATION
    # ========================================================================

    def set_rate_keeper(self, rate_keeper) -> None:
        """
        Attach the rate keeper. Every quoted asset must already be registered
        with it.
        """
        for asset in self.token_params:
            if not rate_keeper.is_asset_registered(asset):
                raise AssetNotQuoted(f"Asset {asset} is not registered with the new rate keeper")
        self.rate_keeper = rate_keeper
        self.events.emit("SetGauge", self.current_time, self.name, rate_keeper=type(rate_keeper).__name__)
        logger.info("%s rate keeper set to %s", self.name, type(rate_keeper).__name__)

    def add_quota_token(self, asset: str, caller) -> None:
        """Register an asset; it stays inactive until the next rate refresh."""
        if self.rate_keeper is None or caller is not self.rate_keeper:
            raise Unauthorized("Only the rate keeper may add quota tokens")
        if asset in self.token_params:
            raise AssetAlreadyQuoted(f"Asset {asset} is already quoted")
        self.token_params[asset] = TokenQuotaParams()
        self.events.emit("AddQuotaToken", self.current_time, self.name, token=asset)
        logger.info("%s added quota token %s", self.name, asset)

    def set_token_limit(self, asset: str, limit: Decimal) -> None:
        """
        Set an asset's quota limit. Lowering it below total_quoted is allowed;
        it only blocks further increases.
        """
        params = self._params(asset)
        limit = to_decimal(limit)
        if limit < ZERO:
            raise ValueError(f"Quota limit must be non-negative, got {limit}")
        self.token_params[asset] = replace(params, limit=limit)
        self.events.emit("SetTokenLimit", self.current_time, self.name, token=asset, limit=limit)
        logger.info("%s limit set to %s", asset, limit)

    def set_token_quota_increase_fee(self, asset: str, fee: Decimal) -> None:
        params = self._params(asset)
        fee = to_decimal(fee)
        if not (ZERO <= fee <= Decimal("1")):
            raise ValueError(f"Increase fee must be in [0, 1], got {fee}")
        self.token_params[asset] = replace(params, increase_fee=fee)
        self.events.emit("SetQuotaIncreaseFee", self.current_time, self.name, token=asset, fee=fee)
        logger.info("%s quota increase fee set to %s", asset, fee)

    def __repr__(self) -> str:
        return f"QuotaKeeper({self.pool.name}, tokens={self.quoted_tokens()})"
