"""Readable, unique references for wallet transactions."""

from datetime import UTC, datetime
from uuid import uuid4


def generate_reference(prefix: str, at: datetime | None = None) -> str:
    """Build ``<prefix>-<yyyymmddHHMMSS>-<6 hex chars>``, e.g. ``WLDEP-20260101120000-3F9A1C``."""
    moment = (at or datetime.now(UTC)).astimezone(UTC)
    return f"{prefix}-{moment:%Y%m%d%H%M%S}-{uuid4().hex[:6].upper()}"
