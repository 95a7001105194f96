"""Typed errors raised by the league services.

Each error carries the HTTP status the API layer answers with and a
user-facing message. Services raise these instead of returning partial
results; the DRF exception handler in ``api.exceptions`` renders them.
"""


class LeagueError(Exception):
    """Base class for all domain errors raised by league services."""
    status_code = 400
    default_message = "Request could not be completed"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(LeagueError):
    """League, entry, member or challenge id does not resolve."""
    status_code = 404
    default_message = "Not found"


class Conflict(LeagueError):
    """A non-rejected entry already exists for the same member and day."""
    status_code = 409
    default_message = "An entry already exists for this date"


class ValidationFailed(LeagueError):
    """Malformed input or a business rule rejected the write."""
    status_code = 400
    default_message = "Validation failed"


class Forbidden(LeagueError):
    """Caller lacks the league role required for the action."""
    status_code = 403
    default_message = "You do not have permission to perform this action"


class InfrastructureError(LeagueError):
    """Storage or read failure unrelated to input validity.

    The message shown to callers is always generic; the underlying cause is
    chained on the exception and logged where it is raised.
    """
    status_code = 503
    default_message = "Service temporarily unavailable, please retry"

    def __init__(self, message=None):
        super().__init__(self.default_message)
        self.detail = message
