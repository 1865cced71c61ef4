class MoralCompassError(Exception):
    """Base exception for Moral Compass application.

    ``status_code`` is the HTTP status the API layer answers with.
    """

    status_code: int = 500
    detail: str = "Internal server error"

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class GatewayError(MoralCompassError):
    """Raised when the language model backend fails or returns garbage."""

    status_code = 502
    detail = "Language model unavailable"


class NotInitializedError(MoralCompassError):
    """Raised when a user has no progress record yet."""

    status_code = 409
    detail = "No progress found. Initialize progress first."


class ResponseNotFoundError(MoralCompassError):
    """Raised when a response id is unknown or owned by another user."""

    status_code = 404
    detail = "Response not found"


class ContradictionPendingError(MoralCompassError):
    """Raised when new questions are requested while a contradiction is unresolved."""

    status_code = 409
    detail = "Resolve the pending contradiction before continuing."


class NoContradictionPendingError(MoralCompassError):
    """Raised when a resolution operation runs with nothing to resolve."""

    status_code = 409
    detail = "No contradiction is pending."


class AnswerConflictError(MoralCompassError):
    """Raised when an answer write would violate the versioning rules."""

    status_code = 409
    detail = "Response cannot be changed in its current state"


class InvalidAnswerError(MoralCompassError):
    """Raised when a submitted answer or theme is blank."""

    status_code = 400
    detail = "Answer must not be empty"
