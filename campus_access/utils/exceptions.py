# =======================================================================================
# campus_access/utils/exceptions.py - Custom Exceptions
# =======================================================================================
class CampusAccessError(Exception):
    """Base exception for the campus access tap ledger.

    ``message`` is safe to show to API callers; ``status_code`` is the HTTP
    status the API layer answers with.
    """
    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

class InvalidInputError(CampusAccessError):
    """Raised when a required field is missing or malformed."""
    status_code = 400
    default_message = "Invalid input"

class ConflictError(CampusAccessError):
    """Raised when a uniqueness rule (or the tap alternation guard) is violated."""
    status_code = 409
    default_message = "Conflict with existing data"

class NotFoundError(CampusAccessError):
    status_code = 404
    default_message = "Not found"

class CardholderNotFoundError(NotFoundError):
    """Raised when no cardholder matches the given RFID."""
    default_message = "Student not found."

class TransientStoreError(CampusAccessError):
    """Raised when the store is unreachable or a query fails for reasons unrelated to input."""
    status_code = 500
    default_message = "A database error occurred. Please try again later."
