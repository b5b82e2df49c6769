from typing import Any, Optional


class ShortLinkError(Exception):
    """Base class for failures surfaced to the request boundary"""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None, detail: Optional[Any] = None):
        self.message = message or self.message
        self.detail = detail
        super().__init__(self.message)


class ValidationFailed(ShortLinkError):
    status_code = 400
    message = "Validation failed"


class SlugTaken(ShortLinkError):
    status_code = 409
    message = "Custom slug is already taken"


class CodeSpaceExhausted(ShortLinkError):
    """No free code found within the retry budget. Safe for the client to retry."""

    status_code = 503
    message = "Unable to generate a unique short code after multiple attempts. Please try again later."


class LinkNotFound(ShortLinkError):
    # Missing, inactive, expired and not-owned all look the same to callers
    status_code = 404
    message = "Link not found"


class StoreUnavailable(ShortLinkError):
    status_code = 500
    message = "Storage is unavailable"


class InvalidConfiguration(ShortLinkError):
    status_code = 500
    message = "Invalid configuration"
