"""Library exceptions."""


class CloudNotesException(Exception):
    """Generic cloudnotes exception."""


# API
class CloudNotesAPIResponseException(CloudNotesException):
    """Remote service response exception."""

    def __init__(self, reason, code=None):
        self.reason = reason
        self.code = code
        message = reason or ""
        if code:
            message += f" ({code})"
        super().__init__(message)


class CloudNotesServiceUnavailable(CloudNotesException):
    """Raised when a remote endpoint is not configured or not reachable."""


# Login
class CloudNotesFailedLoginException(CloudNotesException):
    """Raised when the identity provider rejects the credentials."""


class CloudNotesNoSessionException(CloudNotesException):
    """Raised when an operation needs a signed-in session and there is none."""
