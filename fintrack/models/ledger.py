"""
Ledger Models

Users, groups, categories and transactions as stored in the document store,
plus the outcome types of the category consistency engine.

Transaction.type points at Category.type by natural key. Nothing in the
store enforces that reference; CategoryConsistencyEngine keeps it valid.
"""

from datetime import datetime, timezone
from typing import Annotated, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, StringConstraints, model_validator

from fintrack.models.auth import Role


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Natural keys (category type and color, transaction type, group name) are
# stored stripped and never blank. Services apply clean_key to request input
# before any lookup so that lookups and stored values agree.
NaturalKey = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


def clean_key(value) -> Optional[str]:
    """Strip a natural key taken from a request; None when missing or blank."""
    if not isinstance(value, str):
        return None
    return value.strip() or None


class Category(BaseModel):
    """A spending category, identified by its type."""

    type: NaturalKey = Field(..., description="Unique natural key")
    color: NaturalKey
    created_at: datetime = Field(
        default_factory=utcnow,
        description="Only used to pick the oldest category"
    )

    def to_public_dict(self) -> dict:
        return {"type": self.type, "color": self.color}


class Transaction(BaseModel):
    """A single expense recorded by a user against a category type."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    username: str = Field(..., min_length=1)
    type: NaturalKey = Field(..., description="Category.type (weak reference)")
    amount: float
    date: datetime = Field(default_factory=utcnow)


class TransactionView(BaseModel):
    """A transaction joined with the color of its category."""

    id: str
    username: str
    type: str
    amount: float
    date: datetime
    color: str

    def to_public_dict(self) -> dict:
        return {
            "_id": self.id,
            "username": self.username,
            "type": self.type,
            "amount": self.amount,
            "date": self.date.isoformat(),
            "color": self.color,
        }


class User(BaseModel):
    """A registered user."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    username: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    password_hash: str
    role: Role = Role.REGULAR
    refresh_token: Optional[str] = None


class GroupMember(BaseModel):
    email: str
    username: Optional[str] = None


class Group(BaseModel):
    """A named set of users whose aggregate spending can be queried."""

    name: NaturalKey
    members: list[GroupMember] = Field(default_factory=list)

    @property
    def member_emails(self) -> list[str]:
        return [member.email for member in self.members]


class TransactionFilter(BaseModel):
    """
    Filters for listing transactions.

    Every set field must match; unset fields do not filter.
    """

    usernames: Optional[list[str]] = None
    type: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None

    @model_validator(mode="after")
    def validate_ranges(self) -> "TransactionFilter":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("Invalid date range")
        if (
            self.min_amount is not None
            and self.max_amount is not None
            and self.min_amount > self.max_amount
        ):
            raise ValueError("Invalid amount range")
        return self

    def matches(self, transaction: Transaction) -> bool:
        """Python-side evaluation, for backends that cannot push filters down."""
        if self.usernames is not None and transaction.username not in self.usernames:
            return False
        if self.type is not None and transaction.type != self.type:
            return False
        if self.date_from and transaction.date < self.date_from:
            return False
        if self.date_to and transaction.date > self.date_to:
            return False
        if self.min_amount is not None and transaction.amount < self.min_amount:
            return False
        if self.max_amount is not None and transaction.amount > self.max_amount:
            return False
        return True


class RenameOutcome(BaseModel):
    """Result of CategoryConsistencyEngine.rename."""

    old_type: str
    new_type: str
    updated_transaction_count: int = 0


class DeleteOutcome(BaseModel):
    """Result of CategoryConsistencyEngine.delete_many."""

    deleted_types: list[str] = Field(default_factory=list)
    retained_type: Optional[str] = Field(
        default=None,
        description="Category spared by the total-deletion guard, if any"
    )
    fallback_type: Optional[str] = None
    reassigned_transaction_count: int = 0
