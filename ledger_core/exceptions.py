"""Domain-specific exceptions for the budget ledger core services."""


class ValidationError(ValueError):
    """Raised when provided data does not meet validation requirements."""


class ConfigurationError(ValueError):
    """Raised when process settings are missing or malformed."""


class DuplicateAccountError(ValueError):
    """Raised when an account already exists for a normalized email."""


class InvalidCredentialsError(Exception):
    """Raised for an unknown email or a wrong password alike."""


class TokenError(Exception):
    """Base class for session token failures."""


class TokenExpiredError(TokenError):
    """Raised when a correctly signed token is past its expiry."""


class InvalidSignatureError(TokenError):
    """Raised when a token is malformed or its signature does not match."""


class UnauthorizedError(Exception):
    """Raised at the service boundary for any missing or rejected token."""


class RecordNotFoundError(LookupError):
    """Raised when an account or transaction record cannot be located."""


class NotOwnerError(RecordNotFoundError):
    """Raised when a transaction exists but belongs to another account."""


class InternalError(RuntimeError):
    """Raised for storage or unexpected failures."""


class PersistenceError(InternalError, IOError):
    """Raised when the persistence layer encounters unrecoverable issues."""
