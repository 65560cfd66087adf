"""Domain error taxonomy shared by the stores, the media gateway and the API layer."""


class DomainError(Exception):
    """Base class for failures that carry a client-safe message and HTTP status."""

    status_code: int = 500
    default_message: str = "Server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DomainError):
    """A required field is missing or a value is outside its allowed set."""

    status_code = 400
    default_message = "Invalid request"


class NotFoundError(DomainError):
    """An id does not resolve to an existing document."""

    status_code = 404
    default_message = "Not found"


class ConflictError(DomainError):
    """A uniqueness rule was violated."""

    status_code = 400
    default_message = "Conflict"


class UpstreamError(DomainError):
    """The media host or the database failed for infrastructure reasons."""

    status_code = 500
    default_message = "Server error"
