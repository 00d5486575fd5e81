from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller identity bound to a request or realtime connection."""

    user_id: int
    display_name: str = ""
