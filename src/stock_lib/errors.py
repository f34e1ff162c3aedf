"""
Error taxonomy for the stock library.

Every error carries a short machine-readable ``kind`` alongside its message so
front-ends can pick a notification style without string matching.
"""


class StockError(Exception):
    """Base error for all inventory and project operations."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StockError):
    """Raised when user supplied values are rejected."""

    kind = "invalid_input"


class DuplicateIdError(StockError):
    """Raised when a new or renamed id is already taken."""

    kind = "id_collision"


class NotFoundError(StockError):
    """Raised when a part or project id does not exist."""

    kind = "not_found"


class ImportFormatError(StockError):
    """Raised when an imported file cannot be parsed."""

    kind = "malformed_import"


class StorageDecodeError(StockError):
    """Raised when persisted state cannot be decoded at all."""

    kind = "malformed_storage"
