"""Tests for UserService."""

import pytest

from fintrack.auth import NOT_ADMIN, TOKEN_MISSING
from fintrack.models import ApiRequest, Group, GroupMember, Role, Transaction
from fintrack.services.storage import (
    InMemoryGroupStorage,
    InMemoryTransactionStorage,
    InMemoryUserStorage,
)
from fintrack.services.users import (
    ADMIN_NOT_DELETABLE,
    INCOMPLETE_EMAIL,
    USER_MISSING,
    USER_NOT_FOUND,
    UserService,
)

from conftest import run, user_for


@pytest.fixture
def users():
    return InMemoryUserStorage([
        user_for("alice"),
        user_for("bob"),
        user_for("carol"),
        user_for("root", Role.ADMIN),
    ])


@pytest.fixture
def transactions():
    return InMemoryTransactionStorage([
        Transaction(username="alice", type="food", amount=10),
        Transaction(username="alice", type="rent", amount=800),
        Transaction(username="bob", type="food", amount=4),
    ])


@pytest.fixture
def groups():
    return InMemoryGroupStorage([
        Group(name="home", members=[
            GroupMember(email="alice@example.com", username="alice"),
            GroupMember(email="bob@example.com", username="bob"),
        ]),
        Group(name="solo", members=[GroupMember(email="carol@example.com", username="carol")]),
    ])


@pytest.fixture
def service(gate, users, transactions, groups):
    return UserService(gate, users, transactions, groups)


class TestListUsers:

    def test_admin_lists_everyone(self, service, request_as):
        response = run(service.list_users(request_as("root", Role.ADMIN)))

        assert response.status_code == 200
        assert {"username": "root", "email": "root@example.com", "role": "Admin"} in response.data
        assert len(response.data) == 4

    def test_regular_user_is_denied(self, service, request_as):
        response = run(service.list_users(request_as("alice")))

        assert response.status_code == 401
        assert response.error == NOT_ADMIN


class TestGetUser:

    def test_user_reads_own_profile(self, service, request_as):
        response = run(service.get_user(request_as("alice"), "alice"))

        assert response.status_code == 200
        assert response.data == {
            "username": "alice",
            "email": "alice@example.com",
            "role": "Regular",
        }

    def test_admin_reads_any_profile(self, service, request_as):
        response = run(service.get_user(request_as("root", Role.ADMIN), "bob"))

        assert response.status_code == 200
        assert response.data["username"] == "bob"

    def test_other_user_is_denied_as_non_admin(self, service, request_as):
        """A failed owner check falls back to the admin check and reports it."""
        response = run(service.get_user(request_as("bob"), "alice"))

        assert response.status_code == 401
        assert response.error == NOT_ADMIN

    def test_session_failure_is_not_overridden(self, service):
        response = run(service.get_user(ApiRequest(), "alice"))

        assert response.status_code == 401
        assert response.error == TOKEN_MISSING

    def test_unknown_user(self, service, request_as):
        response = run(service.get_user(request_as("root", Role.ADMIN), "ghost"))

        assert response.status_code == 400
        assert response.error == USER_NOT_FOUND


class TestDeleteUser:

    def test_cascade_keeps_group_with_members(self, service, users, transactions, groups, request_as):
        response = run(service.delete_user(request_as("root", Role.ADMIN), "alice@example.com"))

        assert response.status_code == 200
        assert response.data == {"deletedTransactions": 2, "deletedFromGroup": True}
        assert run(users.get_user_by_username("alice")) is None
        assert [t.username for t in run(transactions.list_transactions())] == ["bob"]
        assert run(groups.get_group("home")).member_emails == ["bob@example.com"]

    def test_last_member_takes_group_along(self, service, groups, request_as):
        response = run(service.delete_user(request_as("root", Role.ADMIN), "carol@example.com"))

        assert response.data == {"deletedTransactions": 0, "deletedFromGroup": True}
        assert run(groups.get_group("solo")) is None

    def test_user_without_group(self, gate, users, transactions, request_as):
        service = UserService(gate, users, transactions, InMemoryGroupStorage())
        response = run(service.delete_user(request_as("root", Role.ADMIN), "bob@example.com"))

        assert response.data == {"deletedTransactions": 1, "deletedFromGroup": False}

    def test_admin_cannot_be_deleted(self, service, users, request_as):
        response = run(service.delete_user(request_as("root", Role.ADMIN), "root@example.com"))

        assert response.status_code == 400
        assert response.error == ADMIN_NOT_DELETABLE
        assert run(users.get_user_by_username("root")) is not None

    @pytest.mark.parametrize("email", [None, "", "   ", "not-an-email"])
    def test_invalid_email(self, service, request_as, email):
        response = run(service.delete_user(request_as("root", Role.ADMIN), email))

        assert response.status_code == 400
        assert response.error == INCOMPLETE_EMAIL

    def test_unknown_email(self, service, request_as):
        response = run(service.delete_user(request_as("root", Role.ADMIN), "ghost@example.com"))

        assert response.error == USER_MISSING

    def test_regular_user_is_denied(self, service, users, request_as):
        response = run(service.delete_user(request_as("alice"), "bob@example.com"))

        assert response.status_code == 401
        assert run(users.get_user_by_username("bob")) is not None
