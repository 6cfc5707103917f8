"""Short code generation utilities."""

import logging
import random
import string
from typing import AbstractSet, Optional

from .common.validators import MAX_CODE_LENGTH, MIN_CODE_LENGTH, is_valid_short_code
from .errors import ErrorKind, GenerationExhaustedError, InvalidInputError


class ShortCodeGenerator:
    """Generate and validate short codes for URLs."""

    # Base62 characters (alphanumeric, case-sensitive)
    BASE62_CHARS = string.ascii_letters + string.digits  # a-zA-Z0-9

    def __init__(
        self,
        default_length: int = 6,
        max_attempts: int = 10,
        rng: Optional[random.Random] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize short code generator.

        Args:
            default_length: Default length for generated codes
            max_attempts: Random draws allowed before giving up
            rng: Optional random source (seeded in tests)
            logger: Optional logger
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._check_length(default_length)
        self.default_length = default_length
        self.max_attempts = max_attempts
        self.rng = rng or random.SystemRandom()
        self.logger = logger or logging.getLogger(__name__)

    def generate_random(self, length: Optional[int] = None) -> str:
        """Generate a random short code.

        Args:
            length: Length of the code (uses default if not specified)

        Returns:
            Random short code
        """
        length = self.default_length if length is None else length
        return ''.join(self.rng.choices(self.BASE62_CHARS, k=length))

    def generate(self, existing_codes: AbstractSet[str], length: Optional[int] = None) -> str:
        """Generate a short code that is not in existing_codes.

        Args:
            existing_codes: Codes already in use
            length: Length of the code (uses default if not specified)

        Returns:
            Unused short code

        Raises:
            InvalidInputError: If length is out of range
            GenerationExhaustedError: If every attempt collided
        """
        length = self.default_length if length is None else length
        self._check_length(length)

        for attempt in range(self.max_attempts):
            code = self.generate_random(length)
            if code not in existing_codes:
                if attempt:
                    self.logger.debug(f"Generated code after {attempt + 1} attempts: {code}")
                return code

        self.logger.error(
            f"Short code space exhausted: {self.max_attempts} collisions "
            f"at length {length} with {len(existing_codes)} codes in use"
        )
        raise GenerationExhaustedError(
            f"Unable to generate a unique short code of length {length} "
            f"after {self.max_attempts} attempts"
        )

    @staticmethod
    def validate_custom(code: str, existing_codes: AbstractSet[str]) -> str:
        """Validate a user supplied short code.

        Args:
            code: Requested short code
            existing_codes: Codes that may not be reused

        Returns:
            The validated code

        Raises:
            InvalidInputError: INVALID_FORMAT or CODE_TAKEN
        """
        is_valid, error = is_valid_short_code(code)
        if not is_valid:
            raise InvalidInputError(f"Invalid short code: {error}", ErrorKind.INVALID_FORMAT)

        if code in existing_codes:
            raise InvalidInputError(f"Short code '{code}' already exists", ErrorKind.CODE_TAKEN)

        return code

    @staticmethod
    def is_valid_format(code: str) -> bool:
        """Check if code has valid format (alphanumeric).

        Args:
            code: Code to validate

        Returns:
            True if valid format
        """
        return bool(code) and all(c in ShortCodeGenerator.BASE62_CHARS for c in code)

    @staticmethod
    def _check_length(length: int) -> None:
        if not MIN_CODE_LENGTH <= length <= MAX_CODE_LENGTH:
            raise InvalidInputError(
                f"Short code length must be between {MIN_CODE_LENGTH} and {MAX_CODE_LENGTH}",
                ErrorKind.INVALID_FORMAT,
            )
