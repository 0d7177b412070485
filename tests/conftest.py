import pytest

from support import KEY, VERIFIER_SEED

ORACLE_ENV = {
    "IDENTITY_ENCRYPTION_KEY": KEY,
    "VERIFIER_INDEX": "1",
    "VERIFIER_SECRET": VERIFIER_SEED,
    "LEDGER_ENDPOINT": "memory://pytest",
    "ORACLE_LOG_JSON": "false",
}


@pytest.fixture
def oracle_env(monkeypatch):
    for name, value in ORACLE_ENV.items():
        monkeypatch.setenv(name, value)
    monkeypatch.delenv("DERIVATION_PATH", raising=False)
    return ORACLE_ENV
