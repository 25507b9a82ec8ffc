from __future__ import annotations

from datetime import datetime, timezone


# PUBLIC_INTERFACE
class DateTimeService:
    """
    Source of the current time used to stamp todo records.

    Repositories take an instance of this class so tests can substitute a
    deterministic clock.
    """

    def now(self) -> datetime:
        """Return the current time in UTC."""
        return datetime.now(timezone.utc)
