"""
shared/utils/exceptions.py
Error taxonomy for the API. Every class is an HTTPException so routers
raise them directly; main.py renders all of them into the
{success: false, error: ...} envelope.
"""

from fastapi import HTTPException, status


class ValidationError(HTTPException):
    """Malformed or out-of-range input."""

    def __init__(self, detail: str = "Validation error"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class Unauthenticated(HTTPException):
    """Missing, invalid, expired or revoked credential."""

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class Forbidden(HTTPException):
    """Authenticated, but not allowed to touch this resource or route."""

    def __init__(self, detail: str = "Insufficient permissions"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFound(HTTPException):
    """Resource absent, or hidden from the caller by its lifecycle status."""

    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class Conflict(HTTPException):
    """Violates a uniqueness expectation (one profile per user, one active interest)."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class InvalidState(HTTPException):
    """Operation not valid for the profile's current lifecycle status."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class InvalidOperation(HTTPException):
    """Request is well-formed but not allowed, such as interest in your own profile."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
