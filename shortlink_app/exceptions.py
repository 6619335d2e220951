"""
Domain errors raised by the link service.

Every error carries the HTTP status the API layer answers with, so routes
never translate errors by hand (see the handler registered in main.py).
"""

from enum import Enum


class ShortLinkError(Exception):
    """Base class for all short link errors"""
    
    status_code = 500
    
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class LinkNotFoundError(ShortLinkError):
    """Raised when a short code does not exist."""
    
    # The public API answers 400 for unknown links
    status_code = 400
    
    def __init__(self, code: str):
        super().__init__(f"Link '{code}' not found")
        self.code = code


class ForbiddenError(ShortLinkError):
    """Raised when the caller's handle is not the link owner's handle."""
    
    status_code = 403


class InvalidInputError(ShortLinkError):
    """Raised on malformed input (unparseable handle, empty URL, bad limit)."""
    
    status_code = 400


class CodeCollisionError(ShortLinkError):
    """Raised when no unique short code was found within the retry budget."""
    
    status_code = 500


class StoreError(ShortLinkError):
    """Raised when the persistence layer fails."""
    
    status_code = 500


class UnavailableReason(Enum):
    """Why a link can no longer redirect"""
    INACTIVE = "inactive"
    LIMIT_REACHED = "limit_reached"
    EXPIRED = "expired"


_UNAVAILABLE_MESSAGES = {
    UnavailableReason.INACTIVE: "Link is no longer available",
    UnavailableReason.LIMIT_REACHED: "Click limit reached",
    UnavailableReason.EXPIRED: "Link lifetime has expired",
}


class LinkUnavailableError(ShortLinkError):
    """Raised when a link exists but cannot redirect any more."""
    
    status_code = 400
    
    def __init__(self, code: str, reason: UnavailableReason):
        super().__init__(_UNAVAILABLE_MESSAGES[reason])
        self.code = code
        self.reason = reason
