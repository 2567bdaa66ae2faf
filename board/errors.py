"""
Error taxonomy shared by the auth core, storage layer and HTTP handlers.

Every error carries the HTTP status it maps to. The API layer renders them as
`{"success": false, "error": <message>, ...extra}`.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class BoardError(Exception):
    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra: Dict[str, Any] = dict(extra or {})


class ValidationError(BoardError):
    """Missing or malformed input."""

    status_code = 400


class GoogleLoginRequired(ValidationError):
    """Password login attempted on an account that only has Google sign-in."""

    def __init__(self, message: str = "This account uses Google sign-in. Please continue with Google.") -> None:
        super().__init__(message, extra={"requiresGoogleLogin": True})


class AuthenticationFailure(BoardError):
    status_code = 401


class AuthorizationFailure(BoardError):
    status_code = 403


class NotFoundError(BoardError):
    status_code = 404


class ConflictError(BoardError):
    status_code = 409


class ConfigurationError(BoardError):
    """Server-side misconfiguration. The message is never shown to clients."""

    status_code = 500
    public_message = "Server configuration error"


class UpstreamFailure(BoardError):
    """Database / OAuth provider / image host failure."""

    status_code = 503
