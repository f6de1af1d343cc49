"""Custom exception classes for QR Studio."""

from fastapi import status


class QRStudioError(Exception):
    """Base exception for QR Studio."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class ValidationError(QRStudioError):
    """Raised when input validation fails."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class AuthenticationError(QRStudioError):
    """Raised when authentication fails."""
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(QRStudioError):
    """Raised when user lacks permission."""
    status_code = status.HTTP_403_FORBIDDEN


class InvalidRoleError(QRStudioError):
    """Raised when a role key is not in the role table."""
    status_code = status.HTTP_400_BAD_REQUEST


class ProtectedRoleError(QRStudioError):
    """Raised when attempting to delete a protected account."""
    status_code = status.HTTP_403_FORBIDDEN


class ResourceNotFoundError(QRStudioError):
    """Raised when a requested resource is not found."""
    status_code = status.HTTP_404_NOT_FOUND


class ResourceConflictError(QRStudioError):
    """Raised when a resource already exists."""
    status_code = status.HTTP_409_CONFLICT


class RemoteStoreError(QRStudioError):
    """Raised when the database rejects or fails an operation."""
    status_code = status.HTTP_502_BAD_GATEWAY
