from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """Source of message, read-receipt and last-seen timestamps."""

    def now(self) -> datetime: ...


class SystemClock:
    """UTC wall clock, truncated to milliseconds.

    Browser clients echo timestamps back as ``before_timestamp`` with
    millisecond precision; stored rows must compare equal to those echoes.
    """

    def now(self) -> datetime:
        current = datetime.now(timezone.utc)
        return current.replace(microsecond=current.microsecond // 1000 * 1000)
