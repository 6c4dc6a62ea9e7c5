"""Building blocks shared by the checkout domain model.

The checkout core has a single aggregate, the CheckoutSession, plus a
set of immutable value objects and the events the session records.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, ClassVar
from uuid import UUID, uuid4


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Value Object Base
# ============================================================================


@dataclass(frozen=True)
class ValueObject:
    """Base class for value objects.

    Value objects are immutable and compared by their attributes. A
    session swaps them out instead of mutating them, so a stale
    reference held by an in-flight request never changes under it.
    """


# ============================================================================
# Domain Event Base
# ============================================================================


@dataclass(frozen=True)
class DomainEvent:
    """Something that happened to a checkout session.

    Subclasses set ``event_type`` and add their own fields; every field
    a subclass adds becomes part of the logged payload.

    Attributes:
        event_id: Unique identifier for this event instance.
        occurred_at: When the event was recorded.
        aggregate_id: Id of the session that recorded the event.
        aggregate_type: Type name of the recording aggregate.
    """

    event_type: ClassVar[str]

    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=utc_now)
    aggregate_id: str = ""
    aggregate_type: str = "CheckoutSession"

    _ENVELOPE: ClassVar[frozenset[str]] = frozenset(
        {"event_id", "occurred_at", "aggregate_id", "aggregate_type"}
    )

    def payload(self) -> dict[str, Any]:
        """Get the fields the subclass added."""
        return {
            f.name: getattr(self, f.name) for f in fields(self) if f.name not in self._ENVELOPE
        }

    def to_dict(self) -> dict[str, Any]:
        """Flatten the event into log-friendly keyword fields."""
        return {
            "event_id": str(self.event_id),
            "event_type": self.event_type,
            "occurred_at": self.occurred_at.isoformat(),
            "aggregate_id": self.aggregate_id,
            "aggregate_type": self.aggregate_type,
            "payload": self.payload(),
        }


# ============================================================================
# Aggregate Root Base
# ============================================================================


@dataclass(kw_only=True)
class AggregateRoot:
    """Base class for the session aggregate.

    Identity is the session id; two roots with the same id are the same
    session. Events recorded by state changes are buffered until the
    application service collects them.

    Attributes:
        id: Session identifier.
        created_at: When the session was created.
        updated_at: When the session last changed.
    """

    id: str
    created_at: datetime = field(default_factory=utc_now, compare=False)
    updated_at: datetime = field(default_factory=utc_now, compare=False)
    _events: list[DomainEvent] = field(
        default_factory=list, init=False, repr=False, compare=False
    )

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self) and other.id == self.id

    def __hash__(self) -> int:
        return hash(self.id)

    def _record_event(self, event: DomainEvent) -> None:
        self._events.append(event)

    def collect_events(self) -> list[DomainEvent]:
        """Return recorded events and clear the buffer."""
        events, self._events = self._events, []
        return events

    def _touch(self) -> None:
        self.updated_at = utc_now()
