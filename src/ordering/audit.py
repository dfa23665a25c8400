"""Audit trail value object embedded in ordering aggregates."""

from protean.fields import Boolean, DateTime, String

from ordering.domain import ordering


@ordering.value_object
class AuditTrail:
    """Creator/updater metadata carried by an aggregate.

    Replaced wholesale on every change. The aggregate is the only writer of
    ``updated_at``; repositories and handlers never overwrite it.
    """

    created_by = String(max_length=255)
    created_at = DateTime()
    updated_by = String(max_length=255)
    updated_at = DateTime()
    ip_address = String(max_length=64)
    is_deleted = Boolean(default=False)

    @classmethod
    def opened(cls, stamp):
        return cls(
            created_by=stamp.actor_id,
            created_at=stamp.at,
            updated_by=stamp.actor_id,
            updated_at=stamp.at,
            ip_address=stamp.ip_address,
            is_deleted=False,
        )

    def touched(self, stamp):
        return AuditTrail(
            created_by=self.created_by,
            created_at=self.created_at,
            updated_by=stamp.actor_id,
            updated_at=stamp.at,
            ip_address=stamp.ip_address or self.ip_address,
            is_deleted=self.is_deleted,
        )
