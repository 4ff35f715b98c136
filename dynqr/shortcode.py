"""Short code generation utilities."""

import random
from typing import Awaitable, Callable, Optional

from .errors import GenerationExhausted


class ShortCodeGenerator:
    """Generate random codes for QR records, groups and scan links."""

    # No 0/O, 1/I/l and similar look-alikes: codes get typed in from print.
    ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghjkmnpqrstuvwxyz23456789"

    def __init__(
        self,
        default_length: int = 9,
        max_attempts: int = 10,
        rng: Optional[random.Random] = None,
    ):
        """Initialize short code generator.

        Args:
            default_length: Default length for generated codes
            max_attempts: Draws allowed per unique code before giving up
            rng: Optional random source (a SystemRandom by default)
        """
        if default_length < 1:
            raise ValueError("default_length must be positive")
        if max_attempts < 1:
            raise ValueError("max_attempts must be positive")
        self.default_length = default_length
        self.max_attempts = max_attempts
        self.rng = rng or random.SystemRandom()

    def generate(self, length: Optional[int] = None) -> str:
        """Generate a random code.

        Args:
            length: Length of the code (uses default if not specified)

        Returns:
            Random code drawn uniformly from ALPHABET
        """
        length = length or self.default_length
        return "".join(self.rng.choices(self.ALPHABET, k=length))

    async def generate_unique(
        self,
        exists: Callable[[str], Awaitable[bool]],
        length: Optional[int] = None,
        max_attempts: Optional[int] = None,
    ) -> str:
        """Draw codes until one is not taken.

        Args:
            exists: Coroutine function telling whether a code is in use
            length: Length of the code (uses default if not specified)
            max_attempts: Override for the retry budget

        Returns:
            A code for which ``exists`` returned False

        Raises:
            GenerationExhausted: If every draw collided
        """
        length = length or self.default_length
        attempts = max_attempts or self.max_attempts

        for _ in range(attempts):
            code = self.generate(length)
            if not await exists(code):
                return code

        raise GenerationExhausted(length=length, attempts=attempts)

    @classmethod
    def is_valid_format(cls, code: str) -> bool:
        """Check that every character of code comes from ALPHABET.

        Args:
            code: Code to validate

        Returns:
            True if valid format
        """
        return bool(code) and all(c in cls.ALPHABET for c in code)
