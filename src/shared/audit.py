"""Audit stamp captured by command handlers and passed into aggregates.

Aggregates never look up "who" or "when" from ambient request state. A
handler captures an ``AuditStamp`` once per command and hands it to every
aggregate operation it calls.

Every timestamp that enters an aggregate goes through ``as_utc()`` first, so
stored and compared datetimes are always timezone-aware UTC. A value without
an offset is read as UTC.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

SYSTEM_ACTOR = "system"


def as_utc(value: datetime | None) -> datetime | None:
    """Aware UTC datetime for ``value``; naive values are taken to be UTC."""
    if value is None:
        return None
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass(frozen=True)
class AuditStamp:
    """Who performed a change, when, and from where."""

    actor_id: str
    at: datetime
    ip_address: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "at", as_utc(self.at))

    @classmethod
    def capture(
        cls,
        actor_id: str | None = None,
        ip_address: str | None = None,
        at: datetime | None = None,
    ) -> "AuditStamp":
        actor = actor_id.strip() if actor_id and actor_id.strip() else SYSTEM_ACTOR
        ip = ip_address.strip() if ip_address and ip_address.strip() else None
        return cls(actor_id=actor, at=at or datetime.now(UTC), ip_address=ip)
