from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    CREDENTIAL_MISSING = "CREDENTIAL_MISSING"
    UNAUTHORIZED = "UNAUTHORIZED"
    RATE_LIMITED = "RATE_LIMITED"
    BAD_REQUEST = "BAD_REQUEST"
    INCOMPLETE_RESPONSE = "INCOMPLETE_RESPONSE"
    NETWORK_OR_TIMEOUT = "NETWORK_OR_TIMEOUT"
    NO_OUTPUT = "NO_OUTPUT"
    UNKNOWN_HTTP = "UNKNOWN_HTTP"
    DOMAIN_DISABLED = "DOMAIN_DISABLED"
    PAGE_FETCH_FAILED = "PAGE_FETCH_FAILED"
    URL_NOT_ALLOWED = "URL_NOT_ALLOWED"
    NO_ACTIVE_PAGE = "NO_ACTIVE_PAGE"
    INVALID_INPUT = "INVALID_INPUT"


class MessageCategory(StrEnum):
    """User-facing message bucket an error is rendered into."""

    KEY_PROMPT = "key_prompt"
    WAIT = "wait"
    SHORTEN = "shorten"
    GENERIC = "generic"


_CATEGORY_BY_CODE: dict[ErrorCode, MessageCategory] = {
    ErrorCode.CREDENTIAL_MISSING: MessageCategory.KEY_PROMPT,
    ErrorCode.UNAUTHORIZED: MessageCategory.KEY_PROMPT,
    ErrorCode.RATE_LIMITED: MessageCategory.WAIT,
    ErrorCode.BAD_REQUEST: MessageCategory.SHORTEN,
    ErrorCode.INCOMPLETE_RESPONSE: MessageCategory.SHORTEN,
}


class DigestError(Exception):
    """Raised for every expected failure in the digest pipeline.

    ``status`` carries the HTTP status of a failed backend call, or ``0`` for
    network failures and timeouts. The controller catches this at its boundary
    and renders it; business logic should let it propagate.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str,
        *,
        status: int = 0,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.status = status
        self.recoverable = recoverable

    @property
    def category(self) -> MessageCategory:
        return _CATEGORY_BY_CODE.get(self.code, MessageCategory.GENERIC)

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
                "status": self.status,
                "recoverable": self.recoverable,
            }
        }


def error_for_status(status: int, body: str = "") -> DigestError:
    """Build the DigestError for a non-2xx backend response."""
    if status == 401:
        return DigestError(
            code=ErrorCode.UNAUTHORIZED,
            message="Unauthorized (401). Please enter a valid API key.",
            suggestion="Set a new API key and try again.",
            status=status,
        )
    if status == 429:
        return DigestError(
            code=ErrorCode.RATE_LIMITED,
            message="Rate limited by API (429). Try again in a minute.",
            suggestion="Wait a minute before requesting another digest.",
            status=status,
            recoverable=True,
        )
    if status == 400:
        return DigestError(
            code=ErrorCode.BAD_REQUEST,
            message="Bad request (400). The API could not parse the text.",
            suggestion="Try selecting less text.",
            status=status,
        )
    detail = f" {body[:200]}" if body else ""
    return DigestError(
        code=ErrorCode.UNKNOWN_HTTP,
        message=f"Unknown error ({status}).{detail}",
        suggestion="Check your network or try again.",
        status=status,
        recoverable=True,
    )
