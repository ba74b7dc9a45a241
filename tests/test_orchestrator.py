"""Tests for application wiring and configuration."""

import pytest

from fintrack.config import AuthSettings, get_settings, validate_all_settings
from fintrack.models import ApiRequest
from fintrack.orchestrator import create_app_components, create_memory_stores
from fintrack.services.storage import InMemoryCategoryStorage

from conftest import category, run


@pytest.fixture
def env(monkeypatch):
    monkeypatch.setenv("AUTH_ACCESS_KEY", "wiring-test-key")
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:

    def test_access_key_is_required(self, monkeypatch):
        monkeypatch.delenv("AUTH_ACCESS_KEY", raising=False)
        with pytest.raises(ValueError):
            AuthSettings(_env_file=None)

    def test_non_hmac_algorithm_rejected(self):
        with pytest.raises(ValueError):
            AuthSettings(access_key="k", algorithm="RS256")

    def test_validate_all_settings(self, env):
        results = validate_all_settings()
        assert results["auth"] is True
        assert results["app"] is True


class TestCreateAppComponents:

    def test_memory_backend_is_default(self, env):
        components = create_app_components()

        assert isinstance(components.stores.categories, InMemoryCategoryStorage)

    def test_full_session_flow(self, env):
        """Register, log in, create data, then read it back with the issued cookies."""
        stores = create_memory_stores()
        run(stores.categories.insert_category(category("food")))
        components = create_app_components(stores=stores)

        run(components.sessions.register_admin(ApiRequest(), "root", "root@example.com", "pw"))
        run(components.sessions.register(ApiRequest(), "alice", "alice@example.com", "pw"))
        run(components.sessions.register(ApiRequest(), "bob", "bob@example.com", "pw"))

        admin_login = run(components.sessions.login(ApiRequest(), "root@example.com", "pw"))
        admin = ApiRequest(cookies={c.name: c.value for c in admin_login.cookies})
        alice_login = run(components.sessions.login(ApiRequest(), "alice@example.com", "pw"))
        alice = ApiRequest(cookies={c.name: c.value for c in alice_login.cookies})

        created = run(components.groups.create_group(alice, "home", ["bob@example.com"]))
        assert created.ok

        assert run(components.categories.create_category(admin, "rent", "blue")).ok
        assert run(components.transactions.create_transaction(alice, "alice", "alice", "rent", 700)).ok

        deleted = run(components.categories.delete_categories(admin, ["rent"]))
        assert deleted.data["count"] == 1

        listed = run(components.transactions.list_transactions_by_group(alice, "home"))
        assert [row["type"] for row in listed.data] == ["food"]

        removed = run(components.users.delete_user(admin, "alice@example.com"))
        assert removed.data == {"deletedTransactions": 1, "deletedFromGroup": True}
        assert run(stores.groups.get_group("home")).member_emails == ["bob@example.com"]

        events = run(stores.audit.get_recent_events())
        assert len(events) > 0
