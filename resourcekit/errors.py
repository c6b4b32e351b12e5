"""
Error taxonomy for resource operations.

Every failure a handler can recognize maps to one of these classes; the
controller converts them into response envelopes at the handler boundary.
"""
from typing import Iterable, Tuple


class ResourceError(Exception):
    """Base class for errors that end a request with an error envelope."""

    status_code: int = 500
    default_message: str = "Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationRejected(ResourceError):
    """A transformer declined the request input."""

    status_code = 400
    default_message = "Invalid Body"


class MissingIdentifier(ResourceError):
    status_code = 400
    default_message = "Invalid ID format"


class NotFound(ResourceError):
    status_code = 404
    default_message = "Item not found"


class UniquenessConflict(ResourceError):
    """One or more unique fields already exist in the collection."""

    status_code = 409

    def __init__(self, fields: Iterable[str]):
        self.fields: Tuple[str, ...] = tuple(fields)
        super().__init__(f"These fields [{','.join(self.fields)}] are already existing")


class PersistenceFailure(ResourceError):
    """Unexpected failure raised by the persistence collaborator."""

    status_code = 500
