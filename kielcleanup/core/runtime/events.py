from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from kielcleanup.utils.json_safe import to_jsonable

# Set by RunContext when the event is appended; excluded from the payload.
_SEAL_FIELDS = frozenset({"previous_event_hash", "event_hash"})


@dataclass(frozen=True)
class RunEvent:
    """One immutable entry of a run ledger.

    Subclasses add the stage-specific data as regular dataclass fields.
    The payload (everything except the seal) is what gets hashed and
    stored, so it must be JSON-safe after `to_jsonable`.
    """

    event_id: UUID = field(default_factory=uuid4, init=False)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC), init=False)

    previous_event_hash: Optional[str] = field(default=None, init=False)
    event_hash: Optional[str] = field(default=None, init=False)

    @property
    def event_type(self) -> str:
        return type(self).__name__

    @property
    def sealed(self) -> bool:
        return self.event_hash is not None

    def to_payload(self) -> Dict[str, Any]:
        data = {f.name: to_jsonable(getattr(self, f.name)) for f in fields(self) if f.name not in _SEAL_FIELDS}
        data["event_type"] = self.event_type
        return data


@dataclass(frozen=True)
class RecordLoadedEvent(RunEvent):
    record_id: str
    field_count: int
    entity_count: int


@dataclass(frozen=True)
class RecordNormalizedEvent(RunEvent):
    """Normalization summary; carries counts and hashes, not record content."""

    record_id: str
    before_hash: str
    after_hash: str
    report: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RecordSavedEvent(RunEvent):
    record_id: str


@dataclass(frozen=True)
class ImagesMatchedEvent(RunEvent):
    unit_id: str
    prefix: str
    copied: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class StepsDisabledEvent(RunEvent):
    steps: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class RunFailedEvent(RunEvent):
    """Terminal failure of a run. Earlier stages are not rolled back."""

    stage: str
    cause: str
