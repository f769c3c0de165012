"""Custom exception hierarchy for the journal."""


class JournalError(Exception):
    """Base exception for all journal errors."""


# --- Configuration ---
class ConfigError(JournalError):
    """Invalid or missing configuration."""


# --- Validation ---
class ValidationError(JournalError):
    """User-correctable input problem. The message is shown verbatim."""


class CapacityError(ValidationError):
    """A collection limit (e.g. the filter preset cap) would be exceeded."""

    def __init__(self, limit: int, message: str | None = None):
        self.limit = limit
        super().__init__(message or f"At most {limit} filter presets can be saved")


# --- Storage ---
class PersistenceError(JournalError):
    """The key-value store rejected a write or returned unreadable data."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Storage error on '{key}': {reason}")


# --- Lookup ---
class NotFoundError(JournalError):
    """An operation referenced an id that does not exist."""

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")
