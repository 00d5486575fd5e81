from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    code = "app_error"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    code = "not_found"


class ForbiddenError(AppError):
    code = "forbidden"


class ValidationError(AppError):
    code = "invalid_data"


class UnauthorizedError(AppError):
    """Caller asserted an identity it is not bound to (e.g. spoofed sender_id)."""

    code = "unauthorized"


class StoreError(AppError):
    """A persistence call failed. Nothing has been fanned out to other parties."""

    code = "store_failure"


class StaleAuthError(AppError):
    """Token is valid but the user no longer exists; the handshake is refused."""

    code = "stale_auth"
