"""
Error types raised by the signing services.

Every error carries a stable `code` that is returned to the (anonymous)
caller and an HTTP status. Views turn them into the `{data, error}`
envelope; nothing else about the failure leaves the server.
"""

from rest_framework import status


class SigningError(Exception):
    """Base class for expected signing workflow failures."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = 'internal_error'

    def __init__(self, code=None, details=None):
        self.code = code or self.default_code
        self.details = details
        super().__init__(self.code)


class NotFound(SigningError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = 'not_found'


class TerminalState(SigningError):
    """The entity exists but its state no longer allows the operation."""
    status_code = status.HTTP_410_GONE
    default_code = 'already_used'


class InvalidRequest(SigningError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'invalid_payload'


class InfrastructureFailure(SigningError):
    default_code = 'internal_error'


class AttachmentDecodeError(ValueError):
    """Inline attachment payload could not be decoded."""
