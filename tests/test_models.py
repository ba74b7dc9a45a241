"""
Tests for the Finance Tracker models

Test strategy:
1. Unit tests for individual components (models, codec, filters)
2. Service tests against in-memory storage
3. No real database in tests
"""

import pytest
from datetime import datetime, timezone
from uuid import uuid4

from fintrack.models import (
    REFRESHED_TOKEN_MESSAGE,
    ApiResponse,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Category,
    CookieDirective,
    Group,
    GroupMember,
    ResponseContext,
    TokenClaims,
    TokenPair,
    Transaction,
    TransactionFilter,
)
from fintrack.models.ledger import clean_key


class TestAuthModels:
    """Tests for token-related models."""

    def test_claims_completeness(self):
        """Test that username, email and role are all required for completeness."""
        assert TokenClaims(username="a", email="a@x", role="Regular").is_complete
        assert not TokenClaims(username="a", email="a@x").is_complete
        assert not TokenClaims(username="", email="a@x", role="Regular").is_complete

    def test_claims_payload_omits_missing_id(self):
        """Test that id is only embedded when known."""
        payload = TokenClaims(username="a", email="a@x", role="Admin").to_payload()
        assert "id" not in payload
        assert payload["role"] == "Admin"

    def test_claims_ignore_registered_fields(self):
        """Test that exp/iat in a decoded payload are ignored."""
        claims = TokenClaims.model_validate(
            {"username": "a", "email": "a@x", "role": "Regular", "exp": 1, "iat": 0}
        )
        assert claims.identity() == ("a", "a@x", "Regular")

    def test_token_pair_from_cookies(self):
        """Test that a pair is read from the standard cookie names."""
        tokens = TokenPair.from_cookies({"accessToken": "a", "refreshToken": "r", "other": "x"})
        assert tokens.access == "a"
        assert tokens.refresh == "r"
        assert tokens.is_complete


class TestApiModels:
    """Tests for response building."""

    def test_success_body(self):
        """Test success responses wrap data."""
        response = ApiResponse.success({"type": "food"})
        assert response.status_code == 200
        assert response.body == {"data": {"type": "food"}}
        assert response.ok

    def test_failure_body(self):
        """Test failure responses carry the error."""
        response = ApiResponse.failure(400, "bad")
        assert response.body == {"error": "bad"}
        assert not response.ok

    def test_refresh_message_is_included(self):
        """Test that a context with a renewed token adds the advisory message."""
        context = ResponseContext()
        context.record_token_refresh("new-token", max_age_seconds=3600)

        response = ApiResponse.failure(401, "denied", context)
        assert response.body["refreshedTokenMessage"] == REFRESHED_TOKEN_MESSAGE
        assert response.cookies[0].value == "new-token"
        assert context.refreshed_access_token == "new-token"

    def test_set_cookie_last_write_wins(self):
        """Test that setting a cookie twice keeps one directive."""
        context = ResponseContext()
        context.set_cookie(CookieDirective(name="accessToken", value="a", max_age_seconds=1))
        context.set_cookie(CookieDirective(name="accessToken", value="b", max_age_seconds=1))
        assert [c.value for c in context.cookies] == ["b"]

    def test_cleared_cookie(self):
        """Test the clearing directive."""
        cookie = CookieDirective.clear("refreshToken")
        assert cookie.value == ""
        assert cookie.max_age_seconds == 0
        assert cookie.path == "/api"


class TestLedgerModels:
    """Tests for category, transaction and group models."""

    def test_category_strips_whitespace(self):
        """Test that whitespace is stripped from the category type."""
        assert Category(type="  food  ", color="red").type == "food"

    def test_category_rejects_empty_type(self):
        """Test that an empty type is rejected."""
        with pytest.raises(ValueError):
            Category(type="", color="red")

    def test_natural_keys_share_one_rule(self):
        """Test that every natural key is stripped and must not be blank."""
        assert Transaction(username="alice", type=" food ", amount=1).type == "food"
        assert Category(type="food", color=" red ").color == "red"
        with pytest.raises(ValueError):
            Group(name="   ")

    def test_clean_key(self):
        """Test request-side normalisation of natural keys."""
        assert clean_key("  food ") == "food"
        assert clean_key("   ") is None
        assert clean_key(None) is None
        assert clean_key(3) is None

    def test_group_member_emails(self):
        """Test member email extraction."""
        group = Group(name="g", members=[GroupMember(email="a@x"), GroupMember(email="b@x")])
        assert group.member_emails == ["a@x", "b@x"]

    def test_filter_rejects_inverted_amounts(self):
        """Test that min > max is rejected."""
        with pytest.raises(ValueError, match="Invalid amount range"):
            TransactionFilter(min_amount=10, max_amount=1)

    def test_filter_rejects_inverted_dates(self):
        """Test that from > to is rejected."""
        with pytest.raises(ValueError, match="Invalid date range"):
            TransactionFilter(
                date_from=datetime(2024, 2, 1, tzinfo=timezone.utc),
                date_to=datetime(2024, 1, 1, tzinfo=timezone.utc),
            )

    def test_filter_matches(self):
        """Test that every set field must match."""
        tx = Transaction(
            username="alice",
            type="food",
            amount=20,
            date=datetime(2024, 1, 15, tzinfo=timezone.utc),
        )
        assert TransactionFilter().matches(tx)
        assert TransactionFilter(usernames=["alice"], type="food", min_amount=20).matches(tx)
        assert not TransactionFilter(usernames=["bob"]).matches(tx)
        assert not TransactionFilter(max_amount=19.99).matches(tx)
        assert not TransactionFilter(
            date_from=datetime(2024, 1, 16, tzinfo=timezone.utc)
        ).matches(tx)


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.CATEGORY_CREATED,
            description="Category created",
        )
        assert event.event_type == AuditEventType.CATEGORY_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.CATEGORIES_DELETED,
            description="Deleted 2 categories",
            details={"deleted_types": ["rent", "fun"]},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "categories_deleted"
        assert log_dict["details"]["deleted_types"] == ["rent", "fun"]

    def test_audit_event_to_document_keeps_datetime(self):
        """Test that the stored document keeps a real timestamp."""
        event = AuditEvent(event_type=AuditEventType.LOGOUT, description="bye")
        assert isinstance(event.to_document()["timestamp"], datetime)

    def test_builder_category_renamed(self):
        """Test AuditEventBuilder.category_renamed."""
        correlation_id = uuid4()
        event = AuditEventBuilder.category_renamed(
            old_type="food",
            new_type="groceries",
            transaction_count=3,
            actor="root",
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.CATEGORY_RENAMED
        assert event.entity_id == "groceries"
        assert event.details["transactions_retargeted"] == 3
        assert event.correlation_id == correlation_id

    def test_builder_color_only_change(self):
        """Test that an unchanged type is recorded as a recolor."""
        event = AuditEventBuilder.category_renamed("food", "food", 0)
        assert event.event_type == AuditEventType.CATEGORY_RECOLORED

    def test_builder_authorization_denied(self):
        """Test AuditEventBuilder.authorization_denied."""
        event = AuditEventBuilder.authorization_denied("Admin", "You are not an admin", actor="alice")
        assert event.severity == AuditSeverity.WARNING
        assert event.details["mode"] == "Admin"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
