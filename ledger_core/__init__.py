"""Core business logic package for the budget ledger."""

from .aggregator import BudgetAggregator
from .credentials import CredentialStore
from .exceptions import (
    ConfigurationError,
    DuplicateAccountError,
    InternalError,
    InvalidCredentialsError,
    InvalidSignatureError,
    NotOwnerError,
    PersistenceError,
    RecordNotFoundError,
    TokenExpiredError,
    UnauthorizedError,
    ValidationError,
)
from .ledger import TransactionLedger
from .models import Account, BudgetSummary, CategoryTotal, Period, Transaction
from .services import BudgetService
from .settings import Settings
from .storage import JSONStorage, MemoryStorage
from .tokens import TokenService

__all__ = [
    "Account",
    "BudgetAggregator",
    "BudgetService",
    "BudgetSummary",
    "CategoryTotal",
    "ConfigurationError",
    "CredentialStore",
    "DuplicateAccountError",
    "InternalError",
    "InvalidCredentialsError",
    "InvalidSignatureError",
    "JSONStorage",
    "MemoryStorage",
    "NotOwnerError",
    "Period",
    "PersistenceError",
    "RecordNotFoundError",
    "Settings",
    "TokenExpiredError",
    "TokenService",
    "Transaction",
    "TransactionLedger",
    "UnauthorizedError",
    "ValidationError",
]
