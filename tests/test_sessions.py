"""Tests for SessionService: registration, login and logout."""

import pytest

from fintrack.auth import PasswordHasher
from fintrack.models import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE, ApiRequest, DecodeStatus, Role
from fintrack.services.sessions import (
    ALREADY_REGISTERED,
    INCOMPLETE_LOGIN,
    INCOMPLETE_REGISTRATION,
    REFRESH_TOKEN_NOT_FOUND,
    UNKNOWN_EMAIL,
    USER_NOT_FOUND,
    WRONG_PASSWORD,
    SessionService,
)
from fintrack.services.storage import InMemoryUserStorage

from conftest import ACCESS_TTL, REFRESH_TTL, run, user_for


@pytest.fixture
def users():
    return InMemoryUserStorage([user_for("alice", password="wonderland")])


@pytest.fixture
def sessions(users, codec):
    return SessionService(
        users,
        codec,
        hasher=PasswordHasher(),
        access_token_ttl_seconds=ACCESS_TTL,
        refresh_token_ttl_seconds=REFRESH_TTL,
    )


class TestRegistration:

    def test_register_regular_user(self, sessions, users):
        response = run(sessions.register(ApiRequest(), "bob", "bob@example.com", "pw"))

        assert response.status_code == 200
        assert response.data == {"message": "User added successfully"}
        stored = run(users.get_user_by_username("bob"))
        assert stored.role is Role.REGULAR
        assert stored.password_hash != "pw"

    def test_register_admin(self, sessions, users):
        response = run(sessions.register_admin(ApiRequest(), "root", "root@example.com", "pw"))

        assert response.data == {"message": "Admin added successfully"}
        assert run(users.get_user_by_username("root")).role is Role.ADMIN

    @pytest.mark.parametrize(
        "username,email,password",
        [(None, "x@example.com", "pw"), ("x", "", "pw"), ("x", "x@example.com", None)],
    )
    def test_incomplete_body(self, sessions, username, email, password):
        response = run(sessions.register(ApiRequest(), username, email, password))

        assert response.status_code == 400
        assert response.error == INCOMPLETE_REGISTRATION

    def test_duplicate_username(self, sessions):
        response = run(sessions.register(ApiRequest(), "alice", "new@example.com", "pw"))

        assert response.status_code == 400
        assert response.error == ALREADY_REGISTERED

    def test_duplicate_email(self, sessions):
        response = run(sessions.register(ApiRequest(), "alicia", "alice@example.com", "pw"))

        assert response.error == ALREADY_REGISTERED


class TestLogin:

    def test_login_issues_token_pair(self, sessions, users, codec):
        response = run(sessions.login(ApiRequest(), "alice@example.com", "wonderland"))

        assert response.status_code == 200
        access = response.data["accessToken"]
        refresh = response.data["refreshToken"]

        decoded = codec.decode(access)
        assert decoded.status is DecodeStatus.VALID
        assert decoded.claims.username == "alice"
        assert decoded.claims.role == "Regular"
        assert decoded.claims.id == "id-alice"
        assert codec.decode(refresh).claims.identity() == decoded.claims.identity()

        assert run(users.get_user_by_username("alice")).refresh_token == refresh

    def test_login_sets_both_cookies(self, sessions):
        response = run(sessions.login(ApiRequest(), "alice@example.com", "wonderland"))
        cookies = {c.name: c for c in response.cookies}

        assert cookies[ACCESS_TOKEN_COOKIE].max_age_seconds == ACCESS_TTL
        assert cookies[REFRESH_TOKEN_COOKIE].max_age_seconds == REFRESH_TTL
        assert cookies[REFRESH_TOKEN_COOKIE].value == response.data["refreshToken"]
        assert "refreshedTokenMessage" not in response.body

    def test_unknown_email(self, sessions):
        response = run(sessions.login(ApiRequest(), "nobody@example.com", "pw"))

        assert response.status_code == 400
        assert response.error == UNKNOWN_EMAIL

    def test_wrong_password(self, sessions):
        response = run(sessions.login(ApiRequest(), "alice@example.com", "nope"))

        assert response.status_code == 400
        assert response.error == WRONG_PASSWORD

    def test_incomplete_body(self, sessions):
        assert run(sessions.login(ApiRequest(), "", "pw")).error == INCOMPLETE_LOGIN


class TestLogout:

    def test_logout_revokes_and_clears(self, sessions, users):
        login = run(sessions.login(ApiRequest(), "alice@example.com", "wonderland"))
        request = ApiRequest(cookies={
            ACCESS_TOKEN_COOKIE: login.data["accessToken"],
            REFRESH_TOKEN_COOKIE: login.data["refreshToken"],
        })
        response = run(sessions.logout(request))

        assert response.status_code == 200
        assert response.data == {"message": "User logged out"}
        assert run(users.get_user_by_username("alice")).refresh_token is None
        for cookie in response.cookies:
            assert cookie.value == ""
            assert cookie.max_age_seconds == 0
        assert {c.name for c in response.cookies} == {ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE}

    def test_missing_refresh_token(self, sessions):
        response = run(sessions.logout(ApiRequest()))

        assert response.status_code == 400
        assert response.error == REFRESH_TOKEN_NOT_FOUND

    def test_unknown_refresh_token(self, sessions):
        request = ApiRequest(cookies={REFRESH_TOKEN_COOKIE: "stale-token"})
        response = run(sessions.logout(request))

        assert response.status_code == 400
        assert response.error == USER_NOT_FOUND
