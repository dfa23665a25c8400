from datetime import UTC, datetime, timedelta, timezone

from shared.audit import SYSTEM_ACTOR, AuditStamp, as_utc


class TestAuditStampCapture:
    def test_defaults_to_system_actor(self):
        stamp = AuditStamp.capture()
        assert stamp.actor_id == SYSTEM_ACTOR
        assert stamp.ip_address is None
        assert stamp.at.tzinfo is not None

    def test_blank_values_are_treated_as_missing(self):
        stamp = AuditStamp.capture(actor_id="   ", ip_address=" ")
        assert stamp.actor_id == SYSTEM_ACTOR
        assert stamp.ip_address is None

    def test_values_are_trimmed(self):
        stamp = AuditStamp.capture(actor_id=" user-1 ", ip_address=" 10.0.0.1 ")
        assert stamp.actor_id == "user-1"
        assert stamp.ip_address == "10.0.0.1"

    def test_explicit_timestamp_is_kept(self):
        moment = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        assert AuditStamp.capture(at=moment).at == moment

    def test_naive_timestamp_is_read_as_utc(self):
        stamp = AuditStamp.capture(at=datetime(2026, 1, 1, 12, 0))
        assert stamp.at == datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        assert stamp.at.tzinfo is UTC

    def test_direct_construction_normalizes_timestamp(self):
        stamp = AuditStamp(actor_id="user-1", at=datetime(2026, 1, 1, 12, 0))
        assert stamp.at.tzinfo is UTC


class TestAsUtc:
    def test_none_passes_through(self):
        assert as_utc(None) is None

    def test_naive_value_gets_utc(self):
        assert as_utc(datetime(2026, 1, 1, 8, 0)) == datetime(2026, 1, 1, 8, 0, tzinfo=UTC)

    def test_offset_value_is_converted(self):
        local = datetime(2026, 1, 1, 10, 0, tzinfo=timezone(timedelta(hours=2)))
        converted = as_utc(local)
        assert converted.tzinfo is UTC
        assert converted.hour == 8
