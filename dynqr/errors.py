"""Exception types for the dynamic QR service."""

from typing import Dict, Optional


class DynQRError(Exception):
    """Base class for all service errors."""


class ValidationError(DynQRError):
    """Input rejected before reaching the record store.

    Args:
        errors: Mapping of field name to error message
    """

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        detail = "; ".join(f"{field}: {message}" for field, message in self.errors.items())
        super().__init__(f"Invalid request data: {detail}")


class GenerationExhausted(DynQRError):
    """No unused code could be drawn within the retry budget."""

    def __init__(self, length: int, attempts: int):
        self.length = length
        self.attempts = attempts
        super().__init__(
            f"Unable to generate a unique code of length {length} after {attempts} attempts"
        )


class DuplicateShortCode(DynQRError):
    """The store refused a short code that is already taken."""

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' already exists")


class DuplicateEmail(DynQRError):
    """A user profile with this email is already registered."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"User with email '{email}' already exists")


class DuplicateUser(DynQRError):
    """A profile is already registered for this user id."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User '{user_id}' is already registered")


class StoreError(DynQRError):
    """Backing storage engine failure."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)
