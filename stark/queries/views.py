"""
Ledger Views

DESIGN DECISION: Reads are DETERMINISTIC and come in two flavors.

- raw: only durable items, exactly as stored.
- reconciled: durable items plus baseline items, with edit overrides,
  status overrides and deletion markers applied to the baseline side.

The model never computes totals itself; it only sees what these views
return. Durable records always win: a baseline item whose key matches a
durable item is shadowed by it, and overlays never touch durable items.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Literal, Optional

from stark.models.ledger import (
    DeletionMarker,
    EditOverride,
    ItemKind,
    LedgerItem,
    StatusOverride,
)
from stark.services.storage import BaselineDataset, LedgerStorageInterface


ViewName = Literal["raw", "reconciled"]

ZERO = Decimal("0")


class LedgerViews:
    """
    Read paths over a ledger and an optional baseline dataset.

    Without a baseline the reconciled view equals the raw view, since
    overlays only ever patch baseline items.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        baseline: Optional[BaselineDataset] = None,
    ):
        self._storage = storage
        self._baseline = baseline

    async def items(
        self,
        period: str,
        kind: Optional[ItemKind] = None,
        view: ViewName = "raw",
    ) -> list[LedgerItem]:
        if view == "reconciled":
            return await self.reconciled_items(period, kind)
        return await self.raw_items(period, kind)

    async def raw_items(
        self,
        period: str,
        kind: Optional[ItemKind] = None,
    ) -> list[LedgerItem]:
        """Durable items of a period in insertion order."""
        return await self._storage.list_items(period, kind)

    async def reconciled_items(
        self,
        period: str,
        kind: Optional[ItemKind] = None,
    ) -> list[LedgerItem]:
        """
        Durable items followed by the visible baseline items.

        Overlays are matched on the baseline item's original key and on
        every name an edit override gave it since. An edit recorded under
        a new name is applied on top of the rename, so a renamed item can
        still be edited, settled or deleted under its new name. When a
        status override exists for several of those names, the latest
        name wins.
        """
        durable = await self._storage.list_items(period, kind)
        if self._baseline is None:
            return durable

        baseline_items = self._baseline.items(period, kind)
        if not baseline_items:
            return durable

        markers = {m.key for m in await self._storage.list_overlays(DeletionMarker, period)}
        edits = {o.key: o for o in await self._storage.list_overlays(EditOverride, period)}
        statuses = {o.key: o for o in await self._storage.list_overlays(StatusOverride, period)}
        durable_keys = {item.key for item in durable}

        visible = []
        for item in baseline_items:
            original_key = item.key
            if original_key in durable_keys or original_key in markers:
                continue

            keys = [original_key]
            edit = edits.get(original_key)
            while edit is not None:
                item = edit.apply(item)
                if item.key in keys:
                    break
                keys.append(item.key)
                edit = edits.get(item.key)

            if any(k in markers for k in keys) or item.key in durable_keys:
                continue

            override = next((statuses[k] for k in reversed(keys) if k in statuses), None)
            if override is not None:
                item = override.apply(item)

            visible.append(item)

        return durable + visible


# =============================================================================
# AGGREGATES
# =============================================================================

def _sum(items: list[LedgerItem], kind: ItemKind) -> Decimal:
    return sum((item.amount for item in items if item.kind == kind), ZERO)


def compute_totals(items: list[LedgerItem]) -> dict:
    """Income, expense and balance of a list of items."""
    income = _sum(items, ItemKind.INCOME)
    expense = _sum(items, ItemKind.EXPENSE)
    return {
        "receitas": float(income),
        "despesas": float(expense),
        "saldo": float(income - expense),
    }


def compute_margin(income: Decimal, expense: Decimal) -> float:
    """
    Profit margin in percent, rounded to one decimal place.

    Zero when there is no income.
    """
    if income <= ZERO:
        return 0.0
    margin = (income - expense) / income * 100
    return float(margin.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _by_category(items: list[LedgerItem], kind: ItemKind) -> dict[str, float]:
    groups: dict[str, Decimal] = {}
    for item in items:
        if item.kind != kind:
            continue
        groups[item.category] = groups.get(item.category, ZERO) + item.amount
    ordered = sorted(groups.items(), key=lambda pair: pair[1], reverse=True)
    return {category: float(total) for category, total in ordered}


def compute_summary(items: list[LedgerItem]) -> dict:
    """Full financial summary of a period's items."""
    income = _sum(items, ItemKind.INCOME)
    expense = _sum(items, ItemKind.EXPENSE)
    income_count = sum(1 for item in items if item.kind == ItemKind.INCOME)
    expense_count = len(items) - income_count

    return {
        "receitas": float(income),
        "despesas": float(expense),
        "saldo": float(income - expense),
        "margem": compute_margin(income, expense),
        "por_categoria": {
            "despesas": _by_category(items, ItemKind.EXPENSE),
            "receitas": _by_category(items, ItemKind.INCOME),
        },
        "quantidade": {
            "despesas": expense_count,
            "receitas": income_count,
            "total": len(items),
        },
    }
