"""
Core types and pure functions for the lending pool accounting engine.

This module provides the foundational data structures shared by every component:
1. Decimal context, numeric constants and rounding helpers
2. Protocols: LedgerView for read-only access to the balance book
3. Immutable data structures: Move, PendingTransaction, Transaction, Unit
4. Exceptions: LedgerError (balance book) and PoolError (accrual engine) families
5. Unit factories: Functions to create token units

All functions in this module are pure. No function can mutate ledger state directly.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_EVEN, ROUND_DOWN, ROUND_UP, getcontext
from enum import Enum
from typing import (
    Dict, List, Set, Optional, Any, Protocol,
    Tuple, FrozenSet, runtime_checkable,
)


# ============================================================================
# DECIMAL CONTEXT CONFIGURATION
# ============================================================================
#
# All accrual arithmetic is deterministic Decimal arithmetic.
# The global context is configured once at module load time.
#
# PRECONDITION: No other code should modify the global Decimal context.
#
#   - prec=50: enough headroom for 27-place indices multiplied by token amounts
#   - rounding=ROUND_HALF_EVEN: default for intermediate results; every stored
#     value is quantized with an explicit rounding mode
#
_POOL_DECIMAL_CONTEXT = getcontext()
_POOL_DECIMAL_CONTEXT.prec = 50
_POOL_DECIMAL_CONTEXT.rounding = ROUND_HALF_EVEN


# ============================================================================
# CONSTANTS
# ============================================================================

# Reserved wallet for issuance and redemption.
# The system wallet is exempt from balance validation and can hold any balance,
# so the issued supply of a unit is the negated system wallet balance.
SYSTEM_WALLET = "system"

UNIT_TYPE_TOKEN = "TOKEN"
UNIT_TYPE_SHARE = "SHARE"

SECONDS_PER_YEAR = 365 * 24 * 60 * 60

# Unit value of a cumulative interest index.
RAY = Decimal("1")

# Decimal places kept for cumulative indices (ray precision).
INDEX_DECIMAL_PLACES = 27

# Decimal places kept for annual rates.
RATE_DECIMAL_PLACES = 8

# Upper bound for the pool's withdrawal fee.
MAX_WITHDRAW_FEE = Decimal("0.01")

# Minimum time between two rate refresh passes.
DEFAULT_EPOCH_LENGTH_SECONDS = 7 * 24 * 60 * 60

# Sentinel for "no debt limit".
UNLIMITED = Decimal("Infinity")

# Epsilon for Decimal comparisons.
QUANTITY_EPSILON = Decimal("1e-18")

DECIMAL_ROUNDING = {
    UNIT_TYPE_TOKEN: ROUND_DOWN,
    UNIT_TYPE_SHARE: ROUND_DOWN,
}


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Mapping from wallet ID to quantity held by that wallet for a specific unit.
Positions = Dict[str, Decimal]

# Mapping from unit symbol to quantity held in a single wallet.
BalanceMap = Dict[str, Decimal]

# Mapping from asset to annual rate.
RateMap = Dict[str, Decimal]


# ============================================================================
# NUMERIC HELPERS
# ============================================================================

def to_decimal(value: Any) -> Decimal:
    """Convert int/float/str to Decimal via str() so floats keep their printed value."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_down(value: Decimal, places: int) -> Decimal:
    """Quantize toward zero. Used for credits the ledger grants itself."""
    return value.quantize(Decimal(10) ** -places, rounding=ROUND_DOWN)


def round_up(value: Decimal, places: int) -> Decimal:
    """Quantize away from zero. Used for charges collected from callers."""
    return value.quantize(Decimal(10) ** -places, rounding=ROUND_UP)


def year_fraction(start: Optional[datetime], end: datetime) -> Decimal:
    """
    Elapsed time between two timestamps as a fraction of SECONDS_PER_YEAR.

    Returns Decimal("0") when start is None or end is not after start.
    """
    if start is None or end <= start:
        return Decimal("0")
    seconds = Decimal(str((end - start).total_seconds()))
    return seconds / Decimal(SECONDS_PER_YEAR)


def grow_index(index_lu: Decimal, rate: Decimal, start: Optional[datetime], end: datetime) -> Decimal:
    """
    Linear growth of a cumulative index since its last checkpoint.

        index_now = index_lu * (1 + rate * dt / SECONDS_PER_YEAR)

    Rounded down so an index never runs ahead of the interest it encodes.
    """
    elapsed = year_fraction(start, end)
    if elapsed == 0 or rate == 0:
        return index_lu
    return round_down(index_lu * (RAY + rate * elapsed), INDEX_DECIMAL_PLACES)


def calc_accrued_interest(amount: Decimal, index_now: Decimal, index_lu: Decimal, places: int) -> Decimal:
    """
    Interest owed on an amount between two index checkpoints.

        interest = amount * (index_now / index_lu - 1)

    Rounded up to the token precision: the debtor never underpays. Returns
    zero when the index has not moved, so the result is never negative.
    """
    if amount <= 0 or index_now <= index_lu:
        return Decimal("0")
    return round_up(amount * (index_now - index_lu) / index_lu, places)


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to the balance book.

    The pool and the staking ledger only need the clock and balances; passing a
    LedgerView declares that a function will not move funds.
    """

    @property
    def current_time(self) -> datetime:
        """Return the current logical time of the ledger."""
        ...

    def get_balance(self, wallet_id: str, unit_symbol: str) -> Decimal:
        """Return the balance of a unit in a wallet (Decimal("0") if none)."""
        ...

    def get_positions(self, unit_symbol: str) -> Positions:
        """Return all non-zero positions for a unit across all wallets."""
        ...

    def list_wallets(self) -> Set[str]:
        """Return the set of all registered wallet IDs."""
        ...

    def get_unit(self, symbol: str) -> 'Unit':
        """Return the Unit object for a given symbol."""
        ...


# ============================================================================
# ENUMS
# ============================================================================

class ExecuteResult(Enum):
    """
    Outcome of a transaction execution attempt.

    APPLIED: Transaction was validated and applied to the ledger.
    REJECTED: Transaction failed validation (registration, balance constraints).
    """
    APPLIED = "applied"
    REJECTED = "rejected"


class OriginType(Enum):
    """Classification of where a balance-book transaction originated."""
    USER_ACTION = "user_action"           # Direct transfer between wallets
    POOL = "pool"                         # Liquidity pool operation
    STAKING = "staking"                   # Staking deposit/withdrawal
    SYSTEM = "system"                     # Issuance and initial funding


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all balance-book errors."""
    pass


class InsufficientFunds(LedgerError):
    """Raised when a transfer would take a wallet balance below the unit's minimum."""
    pass


class UnitNotRegistered(LedgerError):
    """Raised when attempting to operate on a unit that has not been registered with the ledger."""
    pass


class WalletNotRegistered(LedgerError):
    """Raised when attempting to operate on a wallet that has not been registered with the ledger."""
    pass


class PoolError(Exception):
    """Base exception for the interest and quota accrual engine."""
    pass


class CapacityExceeded(PoolError):
    """A hard capacity limit (debt limit or utilization cap) would be breached."""
    pass


class DebtLimitExceeded(CapacityExceeded):
    """Borrowing would exceed the aggregate or the borrower's debt limit."""
    pass


class OutOfBounds(PoolError):
    """A resulting quota fell outside the caller's acceptable range."""
    pass


class InsufficientVotes(PoolError):
    """A voter tried to cast or remove more votes than it has available."""
    pass


class InvalidRate(PoolError):
    """A rate keeper was configured with, or produced, an unusable rate."""
    pass


class AssetNotQuoted(PoolError):
    """The asset is not registered (or not yet live) in the quota ledger or rate keeper."""
    pass


class AssetAlreadyQuoted(PoolError):
    """The asset is already registered."""
    pass


class Paused(PoolError):
    """Pool operations are suspended."""
    pass


class ZeroAddress(PoolError):
    """A required wallet or component reference is empty."""
    pass


class ZeroReceiver(ZeroAddress):
    """Deposit or withdrawal destination is empty."""
    pass


class Unauthorized(PoolError):
    """The caller is not the component allowed to invoke this operation."""
    pass


class RepaymentExceedsDebt(PoolError):
    """A repayment's principal part exceeds what the borrower owes."""
    pass


# ============================================================================
# TRANSACTION ORIGIN
# ============================================================================

@dataclass(frozen=True, slots=True)
class TransactionOrigin:
    """
    Immutable record of a transaction's origin for audit purposes.

    Attributes:
        origin_type: Classification of the origin source
        source_id: Identifier of the specific source (pool name, user ID, etc.)
        event_type: Operation within the source (e.g., "DEPOSIT", "BORROW")
    """
    origin_type: OriginType
    source_id: str
    event_type: Optional[str] = None

    def __repr__(self) -> str:
        parts = [f"{self.origin_type.value}:{self.source_id}"]
        if self.event_type:
            parts.append(f"event={self.event_type}")
        return f"Origin({', '.join(parts)})"


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Move:
    """
    A single transfer of value between two wallets.

    Attributes:
        quantity: The amount to transfer (must be finite and positive).
        unit_symbol: The symbol of the unit being transferred.
        source: The wallet ID from which value is debited.
        dest: The wallet ID to which value is credited.
        contract_id: Identifier of the operation generating this move.
    """
    quantity: Decimal
    unit_symbol: str
    source: str
    dest: str
    contract_id: str

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Move source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Move dest cannot be empty")
        if not self.unit_symbol or not self.unit_symbol.strip():
            raise ValueError("Move unit_symbol cannot be empty")
        if not self.contract_id or not self.contract_id.strip():
            raise ValueError("Move contract_id cannot be empty")
        if not isinstance(self.quantity, Decimal):
            raise ValueError(f"Move quantity must be Decimal, got {type(self.quantity)}")
        if self.quantity.is_infinite() or self.quantity.is_nan():
            raise ValueError(f"Move quantity must be finite, got {self.quantity}")
        if self.quantity <= 0:
            raise ValueError(f"Move quantity must be positive, got {self.quantity}")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Move({self.quantity} {self.unit_symbol}: {self.source}->{self.dest})"


@dataclass(frozen=True, slots=True)
class PendingTransaction:
    """
    A set of moves before execution - represents INTENT.

    Built by pool and staking operations and submitted to Ledger.execute().

    Attributes:
        moves: Tuple of value transfers between wallets
        origin: Who/what created this transaction and why
        timestamp: When this pending transaction was created
    """
    moves: Tuple[Move, ...]
    origin: TransactionOrigin
    timestamp: datetime

    def is_empty(self) -> bool:
        """Return True if this pending transaction has no moves."""
        return not self.moves

    def __repr__(self) -> str:
        return f"PendingTransaction({len(self.moves)} moves, {self.origin})"


def build_transaction(
    view: LedgerView,
    moves: List[Move],
    origin: Optional[TransactionOrigin] = None,
) -> PendingTransaction:
    """
    Build a PendingTransaction from moves.

    Args:
        view: Read-only ledger view (provides current_time)
        moves: List of moves to include in the transaction
        origin: Transaction origin (defaults to a USER_ACTION origin)

    Returns:
        A PendingTransaction ready for execution

    Example:
        tx = build_transaction(ledger, [
            Move(Decimal("100"), "USDC", "alice", "pool", "deposit")
        ])
        ledger.execute(tx)
    """
    if origin is None:
        origin = TransactionOrigin(
            origin_type=OriginType.USER_ACTION,
            source_id="user",
        )
    return PendingTransaction(
        moves=tuple(moves),
        origin=origin,
        timestamp=view.current_time,
    )


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    An executed, immutable record of balance changes - represents FACT.

    Attributes:
        moves: Tuple of value transfers between wallets
        origin: Who/what created this transaction and why
        timestamp: When the PendingTransaction was created
        exec_id: Unique execution identifier (ledger + sequence + time)
        ledger_name: Name of the ledger that executed this
        execution_time: When this was executed and logged
        sequence_number: Monotonic sequence within the ledger (for ordering)
        contract_ids: Set of contract IDs from moves (auto-populated)
    """
    moves: Tuple[Move, ...]
    origin: TransactionOrigin
    timestamp: datetime
    exec_id: str
    ledger_name: str
    execution_time: datetime
    sequence_number: int
    contract_ids: FrozenSet[str] = None

    def __post_init__(self):
        if not self.moves:
            raise ValueError("Transaction must have moves")
        if self.contract_ids is None:
            object.__setattr__(
                self, 'contract_ids',
                frozenset(m.contract_id for m in self.moves)
            )

    def __repr__(self) -> str:
        moves = ", ".join(repr(m) for m in self.moves)
        return f"Transaction({self.exec_id}, {self.origin}, [{moves}])"


@dataclass(frozen=True, slots=True)
class Unit:
    """
    Definition of a unit (token or ownership share) held in the balance book.

    Attributes:
        symbol: Short identifier for the unit (e.g., "USDC", "dUSDC").
        name: Human-readable name for the unit.
        unit_type: UNIT_TYPE_TOKEN or UNIT_TYPE_SHARE.
        min_balance: Minimum allowed balance in any non-system wallet.
        max_balance: Maximum allowed balance in any wallet.
        decimal_places: Number of decimal places for rounding (None = no rounding).
    """
    symbol: str
    name: str
    unit_type: str
    min_balance: Decimal = Decimal("0")
    max_balance: Decimal = Decimal("Infinity")
    decimal_places: Optional[int] = None

    def round(self, value: Decimal) -> Decimal:
        """
        Round a value to this unit's decimal precision using quantize.

        Returns the value unchanged if decimal_places is None.
        """
        if self.decimal_places is None:
            return value
        value = to_decimal(value)
        quantizer = Decimal(10) ** -self.decimal_places
        rounding_mode = DECIMAL_ROUNDING.get(self.unit_type, ROUND_HALF_EVEN)
        return value.quantize(quantizer, rounding=rounding_mode)


# ============================================================================
# UNIT FACTORIES
# ============================================================================

def token(symbol: str, name: str, decimal_places: int = 6) -> Unit:
    """
    Create a fungible token unit (pool underlying, staking token).

    Balances may not go negative outside the system wallet.
    """
    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_TOKEN,
        decimal_places=decimal_places,
    )


def share(symbol: str, name: str, decimal_places: int = 6) -> Unit:
    """Create the pool's ownership unit, minted to depositors and the treasury."""
    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_SHARE,
        decimal_places=decimal_places,
    )
