from __future__ import annotations

from enum import StrEnum


class UserStatus(StrEnum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"
    AWAY = "AWAY"
    BUSY = "BUSY"


class CallRejectReason(StrEnum):
    OFFLINE = "offline"
    DECLINED = "declined"
