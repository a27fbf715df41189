from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from threading import Lock
from typing import List, Optional, Tuple
from uuid import uuid4

from .events import RunEvent
from .hashing import stable_event_hash

CHAIN_ROOT = "GENESIS"


@dataclass
class RunContext:
    """
    Audit ledger of one cleanup run.

    Every stage of the pipeline appends a RunEvent. Events are sealed on
    append: each one stores the hash of its predecessor (CHAIN_ROOT for the
    first) and its own hash over payload + predecessor, so any later edit
    of a stored event breaks `verify_integrity()`.

    Event timestamps never go backwards within a run.
    """

    run_id: str = field(default_factory=lambda: f"run-{uuid4().hex}")
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    process_id: Optional[str] = None

    _events: List[RunEvent] = field(default_factory=list, init=False, repr=False)
    _lock: Lock = field(default_factory=Lock, init=False, repr=False)

    @property
    def head_hash(self) -> str:
        """Hash the next event will link to."""

        with self._lock:
            return self._events[-1].event_hash if self._events else CHAIN_ROOT

    def emit_event(self, event: RunEvent) -> "RunContext":
        """Seal `event` onto the chain and append it.

        Raises
        - TypeError: for anything that is not a RunEvent.
        - RuntimeError: when the event is older than the current head, or
          was already sealed by another context.
        """

        if not isinstance(event, RunEvent):
            raise TypeError("Only RunEvent instances may be emitted")
        if event.sealed:
            raise RuntimeError(f"{event.event_type} {event.event_id} is already sealed")

        with self._lock:
            link = CHAIN_ROOT
            if self._events:
                head = self._events[-1]
                if event.created_at < head.created_at:
                    raise RuntimeError(
                        f"{event.event_type} predates the previous event ({event.created_at} < {head.created_at})"
                    )
                link = head.event_hash

            # Frozen dataclass; the ledger is the only writer of the hash fields.
            object.__setattr__(event, "previous_event_hash", link)
            object.__setattr__(event, "event_hash", stable_event_hash(event.to_payload(), link))
            self._events.append(event)

        return self

    def get_events(self) -> Tuple[RunEvent, ...]:
        with self._lock:
            return tuple(self._events)

    def verify_integrity(self) -> bool:
        """Recompute the chain and compare it with the stored hashes."""

        expected = CHAIN_ROOT
        for event in self.get_events():
            if event.previous_event_hash != expected:
                return False
            if event.event_hash != stable_event_hash(event.to_payload(), expected):
                return False
            expected = event.event_hash
        return True
