"""Tests for GroupService."""

import pytest

from fintrack.auth import NOT_ADMIN, NOT_GROUP_MEMBER
from fintrack.models import Group, GroupMember, Role
from fintrack.services.groups import (
    GROUP_MISSING,
    INCOMPLETE_EMAILS,
    INCOMPLETE_GROUP,
    INCOMPLETE_NAME,
    INVALID_EMAILS,
    LAST_MEMBER,
    NOT_IN_GROUP,
    REMOVE_MIXED,
    REMOVE_NOT_FOUND,
    GroupService,
    already_member,
    group_exists,
)
from fintrack.services.storage import InMemoryGroupStorage, InMemoryUserStorage

from conftest import run, user_for


@pytest.fixture
def users():
    return InMemoryUserStorage([
        user_for(name) for name in ("alice", "bob", "carol", "dave", "erin")
    ] + [user_for("root", Role.ADMIN)])


@pytest.fixture
def groups():
    return InMemoryGroupStorage([
        Group(name="home", members=[
            GroupMember(email="alice@example.com", username="alice"),
            GroupMember(email="bob@example.com", username="bob"),
        ]),
    ])


@pytest.fixture
def service(gate, groups, users):
    return GroupService(gate, groups, users)


class TestCreateGroup:

    def test_caller_joins_new_group(self, service, groups, request_as):
        response = run(service.create_group(
            request_as("carol"), "work", ["dave@example.com", "ghost@example.com"]
        ))

        assert response.status_code == 200
        assert response.data == {
            "group": {
                "name": "work",
                "members": [{"email": "dave@example.com"}, {"email": "carol@example.com"}],
            },
            "alreadyInGroup": [],
            "membersNotFound": ["ghost@example.com"],
        }
        stored = run(groups.get_group("work"))
        assert [m.username for m in stored.members] == ["dave", "carol"]

    def test_grouped_users_are_reported(self, service, request_as):
        response = run(service.create_group(
            request_as("carol"), "work", ["alice@example.com", "dave@example.com"]
        ))

        assert response.data["alreadyInGroup"] == ["alice@example.com"]

    def test_caller_email_in_list_is_ignored(self, service, request_as):
        response = run(service.create_group(
            request_as("carol"), "work", ["carol@example.com", "dave@example.com"]
        ))

        emails = [m["email"] for m in response.data["group"]["members"]]
        assert emails == ["dave@example.com", "carol@example.com"]

    def test_caller_already_grouped(self, service, request_as):
        response = run(service.create_group(request_as("alice"), "work", ["dave@example.com"]))

        assert response.status_code == 400
        assert response.error == already_member("home")

    def test_name_taken(self, service, request_as):
        response = run(service.create_group(request_as("carol"), " home ", ["dave@example.com"]))

        assert response.error == group_exists("home")

    @pytest.mark.parametrize("name, emails", [
        (None, ["dave@example.com"]),
        ("   ", ["dave@example.com"]),
        ("work", []),
        ("work", None),
    ])
    def test_incomplete_body(self, service, request_as, name, emails):
        response = run(service.create_group(request_as("carol"), name, emails))

        assert response.error == INCOMPLETE_GROUP

    def test_malformed_email(self, service, request_as):
        response = run(service.create_group(request_as("carol"), "work", ["dave@example.com", ""]))

        assert response.error == INVALID_EMAILS

    @pytest.mark.parametrize("emails, error", [
        (["bob@example.com"], "All the given users (minus you) already belong to other groups"),
        (["ghost@example.com"], "All the given users (minus you) do not exist"),
        (
            ["bob@example.com", "ghost@example.com"],
            "All the given users (minus you) do not exist or are already in a group",
        ),
    ])
    def test_nobody_to_add(self, service, groups, request_as, emails, error):
        response = run(service.create_group(request_as("carol"), "work", emails))

        assert response.error == error
        assert run(groups.get_group("work")) is None


class TestReadGroups:

    def test_admin_lists_groups(self, service, request_as):
        response = run(service.list_groups(request_as("root", Role.ADMIN)))

        assert response.data == [{
            "name": "home",
            "members": [{"email": "alice@example.com"}, {"email": "bob@example.com"}],
        }]

    def test_list_requires_admin(self, service, request_as):
        response = run(service.list_groups(request_as("alice")))

        assert response.error == NOT_ADMIN

    def test_member_reads_group(self, service, request_as):
        response = run(service.get_group(request_as("bob"), "home"))

        assert response.status_code == 200
        assert response.data["name"] == "home"

    def test_admin_reads_group(self, service, request_as):
        response = run(service.get_group(request_as("root", Role.ADMIN), "home"))

        assert response.status_code == 200

    def test_outsider_is_denied(self, service, request_as):
        response = run(service.get_group(request_as("carol"), "home"))

        assert response.status_code == 401
        assert response.error == NOT_ADMIN

    def test_unknown_group(self, service, request_as):
        response = run(service.get_group(request_as("root", Role.ADMIN), "ghost"))

        assert response.status_code == 400
        assert response.error == GROUP_MISSING


class TestAddToGroup:

    def test_member_adds_users(self, service, groups, request_as):
        response = run(service.add_to_group(
            request_as("alice"), "home", ["carol@example.com", "ghost@example.com"]
        ))

        assert response.status_code == 200
        assert response.data["membersNotFound"] == ["ghost@example.com"]
        assert run(groups.get_group("home")).member_emails == [
            "alice@example.com",
            "bob@example.com",
            "carol@example.com",
        ]

    def test_outsider_is_denied(self, service, request_as):
        response = run(service.add_to_group(request_as("carol"), "home", ["dave@example.com"]))

        assert response.error == NOT_GROUP_MEMBER

    def test_admin_view(self, service, request_as):
        response = run(service.add_to_group(
            request_as("root", Role.ADMIN), "home", ["dave@example.com"], admin_view=True
        ))

        assert response.status_code == 200

    def test_admin_view_rejects_members(self, service, request_as):
        response = run(service.add_to_group(
            request_as("alice"), "home", ["dave@example.com"], admin_view=True
        ))

        assert response.error == NOT_ADMIN

    def test_user_in_other_group(self, service, groups, request_as):
        run(groups.insert_group(Group(name="work", members=[GroupMember(email="dave@example.com")])))
        response = run(service.add_to_group(request_as("alice"), "home", ["dave@example.com"]))

        assert response.error == "All the given users already belong to other groups"

    def test_empty_emails(self, service, request_as):
        response = run(service.add_to_group(request_as("alice"), "home", []))

        assert response.error == INCOMPLETE_EMAILS


class TestRemoveFromGroup:

    def test_member_removes_user(self, service, groups, request_as):
        run(service.add_to_group(request_as("alice"), "home", ["carol@example.com"]))
        response = run(service.remove_from_group(
            request_as("alice"), "home", ["carol@example.com", "dave@example.com"]
        ))

        assert response.status_code == 200
        assert response.data["notInGroup"] == ["dave@example.com"]
        assert run(groups.get_group("home")).member_emails == [
            "alice@example.com",
            "bob@example.com",
        ]

    def test_removing_everyone_keeps_first_member(self, service, groups, request_as):
        response = run(service.remove_from_group(
            request_as("bob"), "home", ["alice@example.com", "bob@example.com"]
        ))

        assert response.status_code == 200
        assert response.data["group"]["members"] == [{"email": "alice@example.com"}]

    def test_single_member_group(self, service, groups, request_as):
        run(groups.insert_group(Group(name="solo", members=[GroupMember(email="carol@example.com")])))
        response = run(service.remove_from_group(request_as("carol"), "solo", ["carol@example.com"]))

        assert response.error == LAST_MEMBER

    @pytest.mark.parametrize("emails, error", [
        (["carol@example.com"], NOT_IN_GROUP),
        (["ghost@example.com"], REMOVE_NOT_FOUND),
        (["carol@example.com", "ghost@example.com"], REMOVE_MIXED),
    ])
    def test_nobody_to_remove(self, service, request_as, emails, error):
        response = run(service.remove_from_group(request_as("alice"), "home", emails))

        assert response.status_code == 400
        assert response.error == error

    def test_malformed_email(self, service, request_as):
        response = run(service.remove_from_group(request_as("alice"), "home", ["bob@"]))

        assert response.error == INVALID_EMAILS


class TestDeleteGroup:

    def test_admin_deletes_group(self, service, groups, request_as):
        response = run(service.delete_group(request_as("root", Role.ADMIN), "home"))

        assert response.data == {"message": "Group deleted successfully"}
        assert run(groups.get_group("home")) is None

    def test_unknown_group(self, service, request_as):
        response = run(service.delete_group(request_as("root", Role.ADMIN), "ghost"))

        assert response.error == GROUP_MISSING

    def test_blank_name(self, service, request_as):
        response = run(service.delete_group(request_as("root", Role.ADMIN), "  "))

        assert response.error == INCOMPLETE_NAME

    def test_requires_admin(self, service, request_as):
        response = run(service.delete_group(request_as("alice"), "home"))

        assert response.error == NOT_ADMIN
