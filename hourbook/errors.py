"""
Error taxonomy shared by all use cases.

Routers never catch these; the application factory maps them to HTTP
status codes (see hourbook.main).
"""


class HourbookError(Exception):
    pass


class ValidationError(HourbookError, ValueError):
    """Malformed or contradictory input. Raised before any write."""


class NotFoundError(HourbookError):
    """Referenced entity does not exist."""


class ConflictError(HourbookError):
    """Uniqueness or business-rule violation (e.g. deleting a referenced row)."""


class AuthorizationError(HourbookError):
    """Caller lacks the role or ownership required."""


class AuthenticationError(HourbookError):
    """Bad credentials or no session."""


class ExternalServiceError(HourbookError):
    """The accounting bridge failed. Never unwinds a local write."""
