"""Wall-clock access for the bidding domain.

All timestamps in the domain come from :func:`utc_now`. Callers import the
module (``from bidding.utils import clock``) and call ``clock.utc_now()`` so
the clock can be pinned in tests.
"""

from datetime import UTC, datetime

import structlog

from bidding.errors import DeadlineExceeded

logger = structlog.get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` as an aware UTC datetime.

    Naive values are taken to be UTC already; storage backends such as SQLite
    hand them back without tzinfo.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def check_deadline(deadline: datetime | None, operation: str) -> None:
    """Raise ``DeadlineExceeded`` once ``deadline`` is at or before now."""
    if deadline is None:
        return
    if as_utc(deadline) <= utc_now():
        logger.info("deadline_exceeded", operation=operation, deadline=as_utc(deadline).isoformat())
        raise DeadlineExceeded({"deadline": [f"Deadline passed before `{operation}` could complete"]})
