"""
Error taxonomy shared by the services, the client managers and the proxy.

Services raise these; the managers catch them at the originating operation,
log them and surface them as notifications.
"""


class TiacherError(Exception):
    """Base class for all expected TIAcher failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthError(TiacherError):
    """Invalid credentials, duplicate registration, or no active session."""

    pass


class DataAccessError(TiacherError):
    """Any persistence failure: network, constraint violation, not-found."""

    pass


class CompletionError(TiacherError):
    """Missing credential, upstream non-success status, or malformed response."""

    pass
