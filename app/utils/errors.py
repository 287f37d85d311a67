from typing import Optional

from fastapi import HTTPException, status


class ApiError(HTTPException):
    """Base for errors that map straight onto a `{success: false, message}` response."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(status_code=self.status_code, detail=message or self.default_message)


class BadRequest(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ProviderError(ApiError):
    """A downstream service (FCM, Firebase Auth, SMTP, Spotify, ...) failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Upstream provider error"
