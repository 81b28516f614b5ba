from __future__ import annotations


class MarketError(Exception):
    """Base for failures the caller can act on.

    ``status_code`` and ``category`` are rendered into the response
    envelope so clients can tell "fix your input" apart from "you may not
    do this" and "refresh, the state moved on".
    """

    status_code: int = 400
    category: str = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequest(MarketError):
    status_code = 400
    category = "validation_error"

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class Forbidden(MarketError):
    status_code = 403
    category = "authorization_error"


class Conflict(MarketError):
    status_code = 400
    category = "state_conflict"


class NotFound(MarketError):
    status_code = 404
    category = "not_found"
