"""Error taxonomy shared by the store, the reconciler and the HTTP layer."""

from typing import Optional


class TaskboardError(Exception):
    """Base class for every error raised by this service."""


class ValidationError(TaskboardError):
    """Missing, malformed or unknown field. Raised before any store mutation."""


class NotFoundError(TaskboardError):
    """
    An entity id does not exist.

    `referenced` marks an id named inside a request body (e.g. assignedUser)
    rather than the entity the request addresses; it is a client error, not a 404.
    """

    def __init__(self, kind: str, entity_id: str, message: Optional[str] = None, referenced: bool = False):
        self.kind = kind
        self.entity_id = entity_id
        self.referenced = referenced
        super().__init__(message or "Not Found")


class StoreError(TaskboardError):
    """The entity store failed to perform a read or write."""


class DuplicateError(StoreError):
    """A unique index rejected the write."""


class ReconciliationError(TaskboardError):
    """A counterpart write failed after the primary write succeeded."""

    def __init__(self, action: str, kind: str, entity_id: str, cause: Exception):
        self.action = action
        self.kind = kind
        self.entity_id = entity_id
        self.cause = cause
        super().__init__(f"{action} on {kind}/{entity_id} failed: {cause}")
