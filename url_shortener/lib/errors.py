"""Error taxonomy for URL shortener."""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Tagged error kinds surfaced to callers."""

    INVALID_URL = "invalid_url"
    INVALID_TTL = "invalid_ttl"
    INVALID_FORMAT = "invalid_format"
    CODE_TAKEN = "code_taken"
    GENERATION_EXHAUSTED = "generation_exhausted"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    STORAGE_UNAVAILABLE = "storage_unavailable"
    STORAGE_FULL = "storage_full"
    SERIALIZATION_ERROR = "serialization_error"


class URLShortenerError(Exception):
    """Base class for all URL shortener errors.

    Attributes:
        kind: The ErrorKind tag for this error
        message: Human readable message
    """

    default_kind: Optional[ErrorKind] = None

    def __init__(self, message: str, kind: Optional[ErrorKind] = None):
        super().__init__(message)
        self.kind = kind or self.default_kind
        self.message = message

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "error": self.kind.value if self.kind else None,
            "message": self.message,
        }


class InvalidInputError(URLShortenerError, ValueError):
    """User input failed validation (URL, TTL, custom code format or availability)."""

    default_kind = ErrorKind.INVALID_FORMAT


class LookupFailedError(URLShortenerError, LookupError):
    """Short code could not be resolved (not found or expired)."""

    default_kind = ErrorKind.NOT_FOUND


class GenerationExhaustedError(URLShortenerError):
    """No free short code was found within the retry budget."""

    default_kind = ErrorKind.GENERATION_EXHAUSTED


class StorageError(URLShortenerError):
    """The underlying key-value store rejected an operation."""

    default_kind = ErrorKind.STORAGE_UNAVAILABLE


class SerializationError(URLShortenerError):
    """A stored document could not be parsed or a value could not be encoded."""

    default_kind = ErrorKind.SERIALIZATION_ERROR


VALIDATION_KINDS = frozenset({
    ErrorKind.INVALID_URL,
    ErrorKind.INVALID_TTL,
    ErrorKind.INVALID_FORMAT,
    ErrorKind.CODE_TAKEN,
})
