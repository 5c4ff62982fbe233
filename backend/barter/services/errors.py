"""Error taxonomy for the negotiation engine.

Every error carries the HTTP status it maps to so the router can translate it
without a lookup table.
"""


class TransactionError(Exception):
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message


class ValidationError(TransactionError):
    status_code = 400


class InvalidOperation(TransactionError):
    status_code = 400


class Unauthorized(TransactionError):
    status_code = 401


class AccessForbidden(TransactionError):
    status_code = 403


class NotFound(TransactionError):
    status_code = 404


class Conflict(TransactionError):
    status_code = 409
