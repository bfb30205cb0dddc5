"""
Ledger Models for STARK

A ledger is a set of items per period (year-month). An item is either
an expense or an income and moves from an open status to a settled one.

Two kinds of records live next to the durable items:

- Baseline items come from a read-only dataset. They cannot be mutated,
  so changes to them are expressed as overlays.
- Overlays (status override, edit override, deletion marker) are sparse
  patches keyed by (period, kind, item name). There is at most one
  overlay of each type per key; writing one again replaces it.

DESIGN DECISION: Durable records always win. Overlays only ever patch
baseline items, never items that exist in the ledger itself.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import ClassVar, NamedTuple, Optional
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


PERIOD_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"

CENTS = Decimal("0.01")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_money(value) -> Decimal:
    """Convert a number (float, int, str, Decimal) to a 2-place Decimal."""
    if isinstance(value, float):
        value = repr(value)
    return Decimal(value).quantize(CENTS)


# =============================================================================
# ENUMS
# =============================================================================

class ItemStatus(str, Enum):
    """
    Item status.

    Open and settled states are different words per kind:
    an expense is Payable until Paid, an income Receivable until Received.
    """
    PAYABLE = "Payable"
    PAID = "Paid"
    RECEIVABLE = "Receivable"
    RECEIVED = "Received"


class ItemKind(str, Enum):
    """Whether money leaves (expense) or enters (income)."""
    EXPENSE = "expense"
    INCOME = "income"

    @property
    def open_status(self) -> ItemStatus:
        if self is ItemKind.EXPENSE:
            return ItemStatus.PAYABLE
        return ItemStatus.RECEIVABLE

    @property
    def settled_status(self) -> ItemStatus:
        if self is ItemKind.EXPENSE:
            return ItemStatus.PAID
        return ItemStatus.RECEIVED

    @property
    def allowed_statuses(self) -> tuple[ItemStatus, ItemStatus]:
        return (self.open_status, self.settled_status)


class LedgerKey(NamedTuple):
    """Natural identity of an item: (period, kind, name)."""
    period: str
    kind: ItemKind
    name: str


def _check_status(kind: ItemKind, status: ItemStatus) -> None:
    if status not in kind.allowed_statuses:
        allowed = ", ".join(s.value for s in kind.allowed_statuses)
        raise ValueError(
            f"Status '{status.value}' is not valid for {kind.value}; use one of: {allowed}"
        )


# =============================================================================
# LEDGER ITEM
# =============================================================================

class LedgerItem(BaseModel):
    """
    A single financial record.

    Durable items carry an id assigned by storage. Baseline items have
    no id; their identity is the (period, kind, name) key.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[UUID] = Field(
        default=None,
        description="Storage-assigned id (None for baseline items)"
    )
    period: str = Field(
        ...,
        pattern=PERIOD_PATTERN,
        description="Year-month key, e.g. 2025-12"
    )
    kind: ItemKind
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount in BRL"
    )
    category: str = Field(
        default="Outros",
        max_length=100,
    )
    status: Optional[ItemStatus] = Field(
        default=None,
        description="Defaults to the open status of the kind"
    )
    due_date: Optional[date] = None
    settlement_date: Optional[date] = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator('amount')
    @classmethod
    def quantize_amount(cls, v: Decimal) -> Decimal:
        return v.quantize(CENTS)

    @model_validator(mode='after')
    def validate_status(self) -> 'LedgerItem':
        if self.status is None:
            self.status = self.kind.open_status
        _check_status(self.kind, self.status)
        return self

    @property
    def is_durable(self) -> bool:
        return self.id is not None

    @property
    def key(self) -> LedgerKey:
        return LedgerKey(self.period, self.kind, self.name)

    def to_result(self) -> dict:
        """Serialize for a tool result (JSON-safe)."""
        return {
            "id": str(self.id) if self.id else None,
            "period": self.period,
            "kind": self.kind.value,
            "name": self.name,
            "amount": float(self.amount),
            "category": self.category,
            "status": self.status.value,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "settlement_date": self.settlement_date.isoformat() if self.settlement_date else None,
            "source": "ledger" if self.is_durable else "baseline",
        }


# =============================================================================
# OVERLAYS
# =============================================================================

class OverlayRecord(BaseModel):
    """Base for sparse patches keyed by (period, kind, item name)."""
    model_config = ConfigDict(str_strip_whitespace=True)

    overlay_type: ClassVar[str] = "overlay"

    period: str = Field(..., pattern=PERIOD_PATTERN)
    kind: ItemKind
    item_name: str = Field(..., min_length=1, max_length=200)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def key(self) -> LedgerKey:
        return LedgerKey(self.period, self.kind, self.item_name)

    def to_result(self) -> dict:
        data = self.model_dump(mode="json", exclude={"updated_at"})
        data["overlay_type"] = self.overlay_type
        return data


class StatusOverride(OverlayRecord):
    """Changes the status (and settlement date) of a baseline item."""

    overlay_type: ClassVar[str] = "status_override"

    status: ItemStatus
    settlement_date: Optional[date] = None

    @model_validator(mode='after')
    def validate_status(self) -> 'StatusOverride':
        _check_status(self.kind, self.status)
        return self

    def apply(self, item: LedgerItem) -> LedgerItem:
        update = {"status": self.status}
        if self.settlement_date is not None:
            update["settlement_date"] = self.settlement_date
        return item.model_copy(update=update)


class EditOverride(OverlayRecord):
    """
    Changes name, amount or category of a baseline item.

    Only supplied fields are carried; None means "leave unchanged".
    """

    overlay_type: ClassVar[str] = "edit_override"

    new_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    new_amount: Optional[Decimal] = Field(default=None, ge=0)
    new_category: Optional[str] = Field(default=None, max_length=100)

    @field_validator('new_amount')
    @classmethod
    def quantize_amount(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return v.quantize(CENTS) if v is not None else v

    @property
    def is_empty(self) -> bool:
        return self.new_name is None and self.new_amount is None and self.new_category is None

    def merged_onto(self, previous: Optional['EditOverride']) -> 'EditOverride':
        """Combine with an earlier override for the same key; newer fields win."""
        if previous is None:
            return self
        return self.model_copy(update={
            "new_name": self.new_name if self.new_name is not None else previous.new_name,
            "new_amount": self.new_amount if self.new_amount is not None else previous.new_amount,
            "new_category": (
                self.new_category if self.new_category is not None else previous.new_category
            ),
        })

    def apply(self, item: LedgerItem) -> LedgerItem:
        update = {}
        if self.new_name is not None:
            update["name"] = self.new_name
        if self.new_amount is not None:
            update["amount"] = self.new_amount
        if self.new_category is not None:
            update["category"] = self.new_category
        return item.model_copy(update=update)


class DeletionMarker(OverlayRecord):
    """Tombstone: the baseline item with this key must not be shown anywhere."""

    overlay_type: ClassVar[str] = "deletion_marker"


OVERLAY_TYPES: tuple[type[OverlayRecord], ...] = (StatusOverride, EditOverride, DeletionMarker)
