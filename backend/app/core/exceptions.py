"""
Domain exceptions raised by the settlement and membership services.

Routes do not catch these; the handlers registered in ``app.main`` turn
each class into the matching HTTP status.
"""


class SettlementError(Exception):
    """Base class for all domain errors."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SettlementError):
    """Malformed input (NaN amount, non-positive amount, payer == payee...)."""
    status_code = 400


class NotFoundError(SettlementError):
    """Referenced trip, member, settlement, expense or activity does not exist."""
    status_code = 404


class PermissionDeniedError(SettlementError):
    """The acting user is not allowed to perform the operation."""
    status_code = 403


class ConflictError(SettlementError):
    """Illegal state transition or an operation blocked by current state."""
    status_code = 409
