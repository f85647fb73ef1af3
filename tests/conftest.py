from datetime import datetime, timedelta, timezone

import pytest

from ledger_core.credentials import CredentialStore
from ledger_core.ledger import TransactionLedger
from ledger_core.services import BudgetService
from ledger_core.settings import Settings
from ledger_core.storage import MemoryStorage
from ledger_core.tokens import TokenService


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        secret_key="test-secret-key",
        bcrypt_rounds=4,
        data_dir=tmp_path,
        env="test",
    )


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def credentials(storage, settings, clock):
    return CredentialStore(storage, settings, clock=clock)


@pytest.fixture
def tokens(settings, clock):
    return TokenService(settings, clock=clock)


@pytest.fixture
def ledger(storage, settings, clock):
    return TransactionLedger(storage, settings, clock=clock)


@pytest.fixture
def service(credentials, tokens, ledger, clock):
    return BudgetService(credentials, tokens, ledger, clock=clock)
