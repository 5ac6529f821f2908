"""
events.py - Audit events emitted by the accrual engine

The balance book's transaction_log records value transfers. State transitions
that move no tokens (quota changes, rate updates, limit changes, uncovered
losses) are recorded here instead, as immutable PoolEvent records appended to
an EventLog shared by every component of one lending system.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterator, List


@dataclass(frozen=True, slots=True)
class PoolEvent:
    """
    Immutable record of a state transition.

    Attributes:
        name: Event name (e.g. "UpdateQuota", "IncurUncoveredLoss")
        timestamp: Logical time the event was emitted
        source: Component that emitted it (pool name, "quota_keeper", ...)
        params: Event parameters as frozen tuple of (key, value) pairs
    """
    name: str
    timestamp: datetime
    source: str = ""
    params: tuple = ()

    @property
    def params_dict(self) -> Dict[str, Any]:
        """Get params as a dictionary for convenience."""
        return dict(self.params)

    def __getitem__(self, key: str) -> Any:
        return self.params_dict[key]

    def __repr__(self) -> str:
        args = ", ".join(f"{k}={v!r}" for k, v in self.params)
        return f"{self.name}({args})"


class EventLog:
    """Append-only list of PoolEvents, in emission order."""

    def __init__(self):
        self._events: List[PoolEvent] = []

    def emit(self, name: str, timestamp: datetime, source: str = "", **params: Any) -> PoolEvent:
        event = PoolEvent(
            name=name,
            timestamp=timestamp,
            source=source,
            params=tuple(sorted(params.items())),
        )
        self._events.append(event)
        return event

    def named(self, name: str) -> List[PoolEvent]:
        """All events with the given name, oldest first."""
        return [e for e in self._events if e.name == name]

    def last(self, name: str) -> PoolEvent:
        """Most recent event with the given name."""
        matches = self.named(name)
        if not matches:
            raise KeyError(f"No {name} event emitted")
        return matches[-1]

    def __iter__(self) -> Iterator[PoolEvent]:
        return iter(self._events)

    def __len__(self) -> int:
        return len(self._events)
