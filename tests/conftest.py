import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from pathlib import Path

import pytest

from lore.auth.accounts import reset_roster
from lore.auth.session import reset_signing_key
from lore.config import get_settings

TEST_SECRET = "test-session-secret-0123456789abcdef"

_AUTH_ENV = [
    "SESSION_SECRET",
    "LORE_ENV",
    "APP_ENV",
    "LORE_ACCOUNTS_PATH",
    "LORE_PROTECTED_PREFIXES",
    "AUTH_ACCOUNT_ARCHIVIST_PASSWORD",
    "AUTH_ACCOUNT_ARCHIVIST_SALT",
    "AUTH_ACCOUNT_CHRONICLE_PASSWORD",
    "AUTH_ACCOUNT_CHRONICLE_SALT",
    "AUTH_ACCOUNT_SCRIBE_PASSWORD",
    "AUTH_ACCOUNT_SCRIBE_SALT",
]


def reset_auth_caches() -> None:
    get_settings.cache_clear()
    reset_roster()
    reset_signing_key()


@pytest.fixture(autouse=True)
def auth_env(tmp_path: Path, monkeypatch):
    """
    Isolate every test from the host environment:
      - a fixed signing secret
      - no accounts.yml (seed roster with development passwords)
      - fresh settings/roster/signing-key caches before and after
    """
    for name in _AUTH_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SESSION_SECRET", TEST_SECRET)
    monkeypatch.setenv("LORE_ACCOUNTS_PATH", str(tmp_path / "missing-accounts.yml"))
    reset_auth_caches()
    yield
    reset_auth_caches()


@pytest.fixture()
def flams():
    from lore.auth.session import SessionUser

    return SessionUser(id="flams1", username="flams", display_name="flams")


@pytest.fixture()
def client():
    from fastapi.testclient import TestClient

    import lore.app as app_module
    from lore.media.store import MediaStore

    app_module.app.state.media = MediaStore()
    with TestClient(app_module.app) as c:
        yield c


@pytest.fixture()
def logged_in(client):
    r = client.post("/login", json={"username": "flams", "password": "1234"})
    assert r.status_code == 200
    return client
