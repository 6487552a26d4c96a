"""Custom exceptions for the stock ledger application."""


class StockLedgerError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        rv['error'] = type(self).__name__
        return rv


class NotAuthenticatedError(StockLedgerError):
    """Raised when there is no caller identity."""
    def __init__(self, message="Not authenticated"):
        super().__init__(message, 401)


class ForbiddenError(StockLedgerError):
    """Raised when the caller lacks team membership or ownership of a record."""
    def __init__(self, message="Not authorized"):
        super().__init__(message, 403)


class NotFoundError(StockLedgerError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class ValidationError(StockLedgerError):
    """Exception raised for invalid input detected before any write."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class InvalidQuantityError(ValidationError):
    """Non-positive or non-integer quantity, or an empty sale."""


class InvalidAmountError(ValidationError):
    """Negative price/tax/discount, or a discount exceeding subtotal + tax."""


class InvalidDateRangeError(ValidationError):
    """Reporting window whose start is after its end, or an unparseable period."""


class InsufficientStockError(StockLedgerError):
    """Raised when an operation fails due to lack of stock."""
    def __init__(self, available, requested, batch_id=None, line_index=None):
        self.available = available
        self.requested = requested
        self.batch_id = batch_id
        self.line_index = line_index
        message = f"Insufficient stock: available {available}, requested {requested}"
        payload = {'available': available, 'requested': requested}
        if batch_id is not None:
            payload['batch_id'] = batch_id
        if line_index is not None:
            payload['line_index'] = line_index
        super().__init__(message, status_code=409, payload=payload)


class ConflictError(StockLedgerError):
    """Concurrent writes kept invalidating the sale; retry budget exhausted."""
    def __init__(self, attempts, message=None):
        self.attempts = attempts
        message = message or (
            f"Sale could not be committed after {attempts} attempts due to concurrent updates"
        )
        super().__init__(message, 409, {'attempts': attempts})


class ConfigurationError(StockLedgerError):
    """Raised for an invalid deployment setting."""
    def __init__(self, message):
        super().__init__(message, 500)


class StockInvariantError(StockLedgerError):
    """Raised when a batch would leave 0 <= remaining <= received."""
    def __init__(self, batch_id, remaining, received):
        message = (
            f"Stock invariant violated for batch {batch_id}: "
            f"remaining {remaining}, received {received}"
        )
        super().__init__(message, 500, {'batch_id': batch_id})
