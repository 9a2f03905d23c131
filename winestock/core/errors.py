"""
Wine Stock — Domain exceptions

Raised by the db/ops layer and rendered by the handlers in main.py as
{"message": ...} with the class's status code.
"""


class WineStockError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(WineStockError):
    status_code = 404


class BusinessRuleError(WineStockError):
    """A well-formed request that the current stock state does not allow."""
    status_code = 400


class InsufficientStockError(BusinessRuleError):
    pass


class AuthenticationError(WineStockError):
    status_code = 401


class PermissionDeniedError(WineStockError):
    status_code = 403


class ConflictError(WineStockError):
    status_code = 409
