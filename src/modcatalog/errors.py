from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    NETWORK_ERROR = "NETWORK_ERROR"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    PROFILE_NOT_FOUND = "PROFILE_NOT_FOUND"
    INVALID_FORMAT = "INVALID_FORMAT"
    TIMEOUT = "TIMEOUT"
    INVALID_INPUT = "INVALID_INPUT"


class ModCatalogError(Exception):
    """Base class for all expected failure conditions.

    Raised by the registry client and the profile pipeline. The refresh
    loop logs and drops these; profile imports let them propagate to the
    caller, which decides how to present them.
    """

    code: ErrorCode = ErrorCode.TRANSPORT_ERROR
    default_suggestion: str = ""
    default_recoverable: bool = False

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        recoverable: bool | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.suggestion = self.default_suggestion if suggestion is None else suggestion
        self.recoverable = self.default_recoverable if recoverable is None else recoverable

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
                "recoverable": self.recoverable,
            }
        }


class NetworkError(ModCatalogError):
    code = ErrorCode.NETWORK_ERROR
    default_suggestion = "Thunderstore could not be reached. Check connectivity and retry."
    default_recoverable = True


class TransportError(NetworkError):
    """Non-2xx response that is not otherwise classified."""

    code = ErrorCode.TRANSPORT_ERROR
    default_suggestion = "Thunderstore returned an unexpected response. Try again later."
    default_recoverable = False

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        recoverable: bool | None = None,
        *,
        status_code: int | None = None,
    ) -> None:
        if recoverable is None and status_code is not None:
            recoverable = status_code >= 500
        super().__init__(message, suggestion, recoverable)
        self.status_code = status_code


class RateLimitedError(ModCatalogError):
    code = ErrorCode.RATE_LIMITED
    default_suggestion = "Rate limited by Thunderstore (429). Try again later."
    default_recoverable = True


class KeyNotFoundError(ModCatalogError):
    code = ErrorCode.PROFILE_NOT_FOUND
    default_suggestion = "The profile code may be expired or mistyped."


class FormatError(ModCatalogError):
    code = ErrorCode.INVALID_FORMAT
    default_suggestion = "The payload does not match the expected legacy profile format."


class ProfileTimeoutError(ModCatalogError):
    code = ErrorCode.TIMEOUT
    default_suggestion = "The profile import took too long. Try again in a moment."
    default_recoverable = True


class InvalidInputError(ModCatalogError):
    code = ErrorCode.INVALID_INPUT
    default_suggestion = "Provide a non-empty legacy profile code."
