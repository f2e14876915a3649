# errors.py
class LedgerError(Exception):
    """Base for failures that map onto an HTTP error envelope."""
    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(LedgerError):
    status_code = 400
    default_message = "Invalid or missing input fields"


class NotFoundError(LedgerError):
    status_code = 404
    default_message = "Not found"


class ConflictError(LedgerError):
    status_code = 409
    default_message = "Already exists"


class IntegrityFailure(LedgerError):
    status_code = 500
    default_message = "Database integrity failure"


class PlaidError(LedgerError):
    """Plaid answered with an error object or an unexpected status."""
    status_code = 502
    default_message = "Plaid request failed"

    def __init__(self, message=None, error_code=None, http_status=None):
        super().__init__(message)
        self.error_code = error_code
        self.http_status = http_status
