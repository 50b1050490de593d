# Shared fixtures for TokenHub tests.
# Created: 2026-10-12

from datetime import UTC, datetime, timedelta

import pytest

from tokenhub.registry import ApplicationRegistry
from tokenhub.store.file_store import FileCredentialStore
from tokenhub.tokens import TokenService
from tokenhub.users import UserService


def _reset_singletons():
    from tokenhub.config import reset_settings
    from tokenhub.registry import reset_application_registry
    from tokenhub.security.audit import reset_audit_logger
    from tokenhub.store.file_store import reset_credential_store
    from tokenhub.tokens import reset_token_service
    from tokenhub.users import reset_user_service

    reset_settings()
    reset_credential_store()
    reset_application_registry()
    reset_token_service()
    reset_user_service()
    reset_audit_logger()


@pytest.fixture(autouse=True)
def tokenhub_home(tmp_path, monkeypatch):
    """Point every test at an empty TokenHub home directory."""
    home = tmp_path / "home"
    monkeypatch.setenv("TOKENHUB_HOME", str(home))
    for var in ("TOKENHUB_SESSION_SECRET", "TOKENHUB_TOKEN_TTL_DAYS", "TOKENHUB_PER_PAGE"):
        monkeypatch.delenv(var, raising=False)
    _reset_singletons()
    yield home
    _reset_singletons()


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime.now(UTC).replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tokenhub_home):
    return FileCredentialStore(base_path=tokenhub_home / "data")


@pytest.fixture
def registry(store):
    return ApplicationRegistry(store)


@pytest.fixture
def token_service(store, clock):
    return TokenService(store, clock=clock)


@pytest.fixture
def users(store):
    return UserService(store)


@pytest.fixture
def owner(users):
    return users.create("Ada Lovelace", "ada@example.com", "correct-horse")


@pytest.fixture
def other_user(users):
    return users.create("Grace Hopper", "grace@example.com", "battery-staple")


@pytest.fixture
def app_and_secret(registry, owner):
    return registry.create(owner, "Test App", scopes=["read", "write"])


@pytest.fixture
def application(app_and_secret):
    return app_and_secret[0]


@pytest.fixture
def services(monkeypatch, store, registry, token_service, users):
    """Install the fixture services as the process singletons used by the API and CLI."""
    import tokenhub.registry as registry_mod
    import tokenhub.store.file_store as store_mod
    import tokenhub.tokens as tokens_mod
    import tokenhub.users as users_mod

    monkeypatch.setattr(store_mod, "_store", store)
    monkeypatch.setattr(registry_mod, "_registry", registry)
    monkeypatch.setattr(tokens_mod, "_service", token_service)
    monkeypatch.setattr(users_mod, "_service", users)
    return store


@pytest.fixture
def client(services):
    from fastapi.testclient import TestClient

    from tokenhub.api.serve import create_api_app

    return TestClient(create_api_app())


@pytest.fixture
def session_headers(owner, users):
    """Authorization header carrying a valid owner session token."""
    token, _ = users.issue_session(owner)
    return {"Authorization": f"Bearer {token}"}
