"""Domain-specific exceptions — framework-independent."""


class EntityNotFoundError(Exception):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, entity_id: int | float | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id '{entity_id}' not found")


class InvalidIdentityError(ValueError):
    """Raised when a caller passes a record or key without a usable identity.

    This is a programming error on the caller's side, not an environmental
    condition, so it is never swallowed.
    """

    def __init__(self, record_type: str, detail: str = "identity is missing"):
        self.record_type = record_type
        super().__init__(f"{record_type}: {detail}")


class StoreUnavailableError(Exception):
    """Raised when the record store cannot be reached or a query fails.

    Transient — the watcher retries on its next tick.
    """

    def __init__(self, operation: str, cause: Exception | None = None):
        self.operation = operation
        self.cause = cause
        message = f"Record store unavailable during '{operation}'"
        if cause is not None:
            message += f": {type(cause).__name__}: {cause}"
        super().__init__(message)


class MalformedRowError(Exception):
    """Raised for a single row that cannot be fingerprinted.

    Handled row-by-row: the row is dropped from the sample and logged.
    """

    def __init__(self, record_type: str, reason: str):
        self.record_type = record_type
        self.reason = reason
        super().__init__(f"Malformed {record_type} row: {reason}")
