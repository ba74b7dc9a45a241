"""
Group Service

Protected group operations. A user belongs to at most one group, so every
email is checked against all groups before it is added anywhere.

Membership changes come in two flavours, selected by admin_view:
- the member's view (Group mode), for people already in the group
- the admin view (Admin mode)
"""

from typing import Optional

from fintrack.audit import AuditLogger
from fintrack.auth.gate import AuthGate
from fintrack.models.api import ApiRequest, ApiResponse, ResponseContext
from fintrack.models.auth import AuthMode
from fintrack.models.ledger import Group, GroupMember, clean_key
from fintrack.services.base import ProtectedService, is_valid_email
from fintrack.services.storage import (
    DuplicateError,
    GroupStorageInterface,
    UserStorageInterface,
)


INCOMPLETE_GROUP = (
    "Request's body is incomplete: it should contain non-empty `name` and "
    "non-empty array `memberEmails`"
)
INCOMPLETE_EMAILS = (
    "Request's body is incomplete: it should contain a non-empty array `emails`"
)
INCOMPLETE_NAME = "Request's body is incomplete: it should contain a non-empty `name`"
INVALID_EMAILS = "At least one of the emails is in the wrong format or empty"
GROUP_MISSING = "The requested group doesn't exist"
LAST_MEMBER = "The requested group has only one member and they can't be removed"
NOT_IN_GROUP = "All the given users don't belong to this group"
REMOVE_NOT_FOUND = "All the given users don't exist"
REMOVE_MIXED = "All the given users do not exist or are not in this group"


def group_exists(name: str) -> str:
    return f"A group with the name {name} already exists"


def already_member(name: str) -> str:
    return f"You already belong to the group {name}"


def nobody_added(already_in_group: list, not_found: list, creating: bool) -> str:
    """Error for a request in which no email could be added."""
    who = "All the given users (minus you)" if creating else "All the given users"
    if already_in_group and not_found:
        return f"{who} do not exist or are already in a group"
    if not_found:
        return f"{who} do not exist"
    return f"{who} already belong to other groups"


def _clean_emails(emails) -> Optional[list[str]]:
    """Stripped, de-duplicated emails in request order; None if any is invalid."""
    cleaned = [email.strip() if isinstance(email, str) else email for email in emails]
    if not all(is_valid_email(email) for email in cleaned):
        return None
    return list(dict.fromkeys(cleaned))


def _public(group: Group) -> dict:
    return {
        "name": group.name,
        "members": [{"email": email} for email in group.member_emails],
    }


class GroupService(ProtectedService):
    """
    Args:
        gate: AuthGate for every operation
        groups: Group storage
        users: User storage (resolves emails to users)
        audit_logger: Optional audit logger
    """

    def __init__(
        self,
        gate: AuthGate,
        groups: GroupStorageInterface,
        users: UserStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(gate, audit_logger)
        self._groups = groups
        self._users = users

    async def create_group(
        self,
        request: ApiRequest,
        name: Optional[str],
        member_emails: Optional[list[str]],
    ) -> ApiResponse:
        """
        Any authenticated user not yet in a group. The caller always becomes
        a member; their own email in member_emails is ignored.

        Response data: {group, alreadyInGroup, membersNotFound}.
        """
        context = ResponseContext()
        try:
            auth = await self._authorize(request, context, AuthMode.SIMPLE)
            if not auth.authorized:
                return self._unauthorized(auth, context)

            name = clean_key(name)
            if name is None or not member_emails or not isinstance(member_emails, list):
                return self._bad_request(INCOMPLETE_GROUP, context)

            emails = _clean_emails(member_emails)
            if emails is None:
                return self._bad_request(INVALID_EMAILS, context)

            if await self._groups.get_group(name) is not None:
                return self._bad_request(group_exists(name), context)

            caller_email = auth.claims.email
            caller_group = await self._groups.get_group_by_member_email(caller_email)
            if caller_group is not None:
                return self._bad_request(already_member(caller_group.name), context)

            emails = [email for email in emails if email != caller_email]
            members, already_in_group, not_found = await self._classify(emails)
            if not members:
                return self._bad_request(
                    nobody_added(already_in_group, not_found, creating=True),
                    context,
                )

            members.append(GroupMember(email=caller_email, username=auth.actor))
            group = Group(name=name, members=members)
            try:
                await self._groups.insert_group(group)
            except DuplicateError:
                return self._bad_request(group_exists(name), context)

            if self._audit_logger:
                await self._audit_logger.log_group_created(
                    name=group.name,
                    member_emails=group.member_emails,
                    actor=auth.actor,
                    correlation_id=request.correlation_id,
                )
            return ApiResponse.success(
                {
                    "group": _public(group),
                    "alreadyInGroup": already_in_group,
                    "membersNotFound": not_found,
                },
                context,
            )
        except Exception as e:
            return await self._server_error(e, request, context)

    async def list_groups(self, request: ApiRequest) -> ApiResponse:
        """Admin only. Response data: [{name, members: [{email}]}]."""
        context = ResponseContext()
        try:
            auth = await self._authorize(request, context, AuthMode.ADMIN)
            if not auth.authorized:
                return self._unauthorized(auth, context)

            groups = await self._groups.list_groups()
            return ApiResponse.success([_public(group) for group in groups], context)
        except Exception as e:
            return await self._server_error(e, request, context)

    async def get_group(self, request: ApiRequest, name: str) -> ApiResponse:
        """Members of the group, or an admin. Response data: {name, members}."""
        context = ResponseContext()
        try:
            group = await self._groups.get_group(name)
            if group is None:
                return self._bad_request(GROUP_MISSING, context)

            auth = await self._authorize(
                request,
                context,
                AuthMode.GROUP,
                emails=group.member_emails,
                admin_fallback=True,
            )
            if not auth.authorized:
                return self._unauthorized(auth, context)

            return ApiResponse.success(_public(group), context)
        except Exception as e:
            return await self._server_error(e, request, context)

    async def add_to_group(
        self,
        request: ApiRequest,
        name: str,
        emails: Optional[list[str]],
        admin_view: bool = False,
    ) -> ApiResponse:
        """
        Add users that are not in any group yet.

        Response data: {group, alreadyInGroup, membersNotFound}.
        """
        context = ResponseContext()
        try:
            group = await self._groups.get_group(name)
            if group is None:
                return self._bad_request(GROUP_MISSING, context)

            auth = await self._authorize_membership(request, context, group, admin_view)
            if not auth.authorized:
                return self._unauthorized(auth, context)

            if not emails or not isinstance(emails, list):
                return self._bad_request(INCOMPLETE_EMAILS, context)
            cleaned = _clean_emails(emails)
            if cleaned is None:
                return self._bad_request(INVALID_EMAILS, context)

            added, already_in_group, not_found = await self._classify(cleaned)
            if not added:
                return self._bad_request(
                    nobody_added(already_in_group, not_found, creating=False),
                    context,
                )

            group.members.extend(added)
            await self._groups.set_members(group.name, group.members)

            if self._audit_logger:
                await self._audit_logger.log_group_members_changed(
                    name=group.name,
                    added=[member.email for member in added],
                    removed=[],
                    actor=auth.actor,
                    correlation_id=request.correlation_id,
                )
            return ApiResponse.success(
                {
                    "group": _public(group),
                    "alreadyInGroup": already_in_group,
                    "membersNotFound": not_found,
                },
                context,
            )
        except Exception as e:
            return await self._server_error(e, request, context)

    async def remove_from_group(
        self,
        request: ApiRequest,
        name: str,
        emails: Optional[list[str]],
        admin_view: bool = False,
    ) -> ApiResponse:
        """
        Remove members from a group. A group is never left empty: when every
        member is named, the first member stays.

        Response data: {group, notInGroup, membersNotFound}.
        """
        context = ResponseContext()
        try:
            group = await self._groups.get_group(name)
            if group is None:
                return self._bad_request(GROUP_MISSING, context)

            auth = await self._authorize_membership(request, context, group, admin_view)
            if not auth.authorized:
                return self._unauthorized(auth, context)

            if not emails or not isinstance(emails, list):
                return self._bad_request(INCOMPLETE_EMAILS, context)
            cleaned = _clean_emails(emails)
            if cleaned is None:
                return self._bad_request(INVALID_EMAILS, context)

            if len(group.members) == 1:
                return self._bad_request(LAST_MEMBER, context)

            current = set(group.member_emails)
            removed, not_in_group, not_found = [], [], []
            for email in cleaned:
                if await self._users.get_user_by_email(email) is None:
                    not_found.append(email)
                elif email not in current:
                    not_in_group.append(email)
                else:
                    removed.append(email)

            if not removed:
                if not not_found:
                    error = NOT_IN_GROUP
                elif not not_in_group:
                    error = REMOVE_NOT_FOUND
                else:
                    error = REMOVE_MIXED
                return self._bad_request(error, context)

            if len(removed) == len(group.members):
                removed.remove(group.members[0].email)
            group.members = [m for m in group.members if m.email not in removed]
            await self._groups.set_members(group.name, group.members)

            if self._audit_logger:
                await self._audit_logger.log_group_members_changed(
                    name=group.name,
                    added=[],
                    removed=removed,
                    actor=auth.actor,
                    correlation_id=request.correlation_id,
                )
            return ApiResponse.success(
                {
                    "group": _public(group),
                    "notInGroup": not_in_group,
                    "membersNotFound": not_found,
                },
                context,
            )
        except Exception as e:
            return await self._server_error(e, request, context)

    async def delete_group(self, request: ApiRequest, name: Optional[str]) -> ApiResponse:
        """Admin only. Response data: {message}."""
        context = ResponseContext()
        try:
            auth = await self._authorize(request, context, AuthMode.ADMIN)
            if not auth.authorized:
                return self._unauthorized(auth, context)

            name = clean_key(name)
            if name is None:
                return self._bad_request(INCOMPLETE_NAME, context)

            if not await self._groups.delete_group(name):
                return self._bad_request(GROUP_MISSING, context)

            if self._audit_logger:
                await self._audit_logger.log_group_deleted(
                    name=name,
                    actor=auth.actor,
                    correlation_id=request.correlation_id,
                )
            return ApiResponse.success({"message": "Group deleted successfully"}, context)
        except Exception as e:
            return await self._server_error(e, request, context)

    async def _authorize_membership(
        self,
        request: ApiRequest,
        context: ResponseContext,
        group: Group,
        admin_view: bool,
    ):
        if admin_view:
            return await self._authorize(request, context, AuthMode.ADMIN)
        return await self._authorize(
            request, context, AuthMode.GROUP, emails=group.member_emails
        )

    async def _classify(
        self,
        emails: list[str],
    ) -> tuple[list[GroupMember], list[str], list[str]]:
        """Split emails into addable members, already grouped and unknown."""
        members, already_in_group, not_found = [], [], []
        for email in emails:
            user = await self._users.get_user_by_email(email)
            if user is None:
                not_found.append(email)
            elif await self._groups.get_group_by_member_email(email) is not None:
                already_in_group.append(email)
            else:
                members.append(GroupMember(email=email, username=user.username))
        return members, already_in_group, not_found
