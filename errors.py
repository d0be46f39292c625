"""
Error taxonomy shared by the API, the document store adapter and the
offline client. Handlers in main.py turn these into JSON responses.
"""
from typing import Any, List, Optional


class TrackerError(Exception):
    """Base class. `message` is safe to show to an API client."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(TrackerError):
    def __init__(self, message: str, errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.errors = errors or []


class NotFound(TrackerError):
    pass


class OrphanedChild(TrackerError):
    """A child document was created but linking it to its parent failed."""

    def __init__(self, message: str, child_id: str):
        super().__init__(message)
        self.child_id = child_id


class StorageFault(TrackerError):
    """The client's local durable queue could not be read or written."""


class StorageUnavailable(TrackerError):
    """The server has no database connection configured."""
