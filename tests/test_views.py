"""Tests for raw and reconciled ledger views and their aggregates."""

from decimal import Decimal

import pytest

from stark.models.ledger import (
    DeletionMarker,
    EditOverride,
    ItemKind,
    ItemStatus,
    LedgerItem,
    StatusOverride,
)
from stark.queries import LedgerViews, compute_margin, compute_summary, compute_totals


PERIOD = "2025-12"


def item(kind, name, amount, category="Outros"):
    return LedgerItem(period=PERIOD, kind=kind, name=name, amount=amount, category=category)


class TestLedgerViews:
    """Tests for the two read paths."""

    @pytest.mark.asyncio
    async def test_raw_view_ignores_baseline(self, storage, baseline):
        """Test raw view only returns durable items."""
        await storage.create_item(item("expense", "Posto", 100))
        views = LedgerViews(storage, baseline)

        raw = await views.items(PERIOD)
        assert [i.name for i in raw] == ["Posto"]

    @pytest.mark.asyncio
    async def test_reconciled_view_adds_baseline(self, storage, baseline):
        """Test reconciled view lists durable items then baseline items."""
        await storage.create_item(item("expense", "Posto", 100))
        views = LedgerViews(storage, baseline)

        reconciled = await views.items(PERIOD, view="reconciled")
        assert [i.name for i in reconciled] == ["Posto", "Starken", "Alpha", "Aluguel"]

    @pytest.mark.asyncio
    async def test_reconciled_view_filters_kind(self, storage, baseline):
        """Test kind filter applies to both sides."""
        views = LedgerViews(storage, baseline)
        incomes = await views.items(PERIOD, ItemKind.INCOME, view="reconciled")
        assert {i.name for i in incomes} == {"Starken", "Alpha"}

    @pytest.mark.asyncio
    async def test_overlays_patch_baseline(self, storage, baseline):
        """Test status and edit overrides are applied to baseline items."""
        await storage.upsert_overlay(StatusOverride(
            period=PERIOD, kind="expense", item_name="Aluguel", status=ItemStatus.PAID,
        ))
        await storage.upsert_overlay(EditOverride(
            period=PERIOD, kind="income", item_name="Alpha", new_amount=25000,
        ))
        views = LedgerViews(storage, baseline)

        by_name = {i.name: i for i in await views.items(PERIOD, view="reconciled")}
        assert by_name["Aluguel"].status == ItemStatus.PAID
        assert by_name["Alpha"].amount == Decimal("25000.00")

    @pytest.mark.asyncio
    async def test_deletion_marker_hides_baseline_item(self, storage, baseline):
        """Test a deletion marker removes the baseline item everywhere."""
        await storage.upsert_overlay(DeletionMarker(
            period=PERIOD, kind="expense", item_name="Aluguel",
        ))
        views = LedgerViews(storage, baseline)

        names = [i.name for i in await views.items(PERIOD, view="reconciled")]
        assert "Aluguel" not in names

    @pytest.mark.asyncio
    async def test_durable_item_shadows_baseline(self, storage, baseline):
        """Test a durable item with the same key wins over the baseline."""
        await storage.create_item(item("expense", "Aluguel", 4000))
        views = LedgerViews(storage, baseline)

        rent = [i for i in await views.items(PERIOD, view="reconciled") if i.name == "Aluguel"]
        assert len(rent) == 1
        assert rent[0].amount == Decimal("4000.00")
        assert rent[0].is_durable

    @pytest.mark.asyncio
    async def test_renamed_baseline_item_settled_by_new_name(self, storage, baseline):
        """Test a status override under the edited name still applies."""
        await storage.upsert_overlay(EditOverride(
            period=PERIOD, kind="expense", item_name="Aluguel", new_name="Aluguel Sede",
        ))
        await storage.upsert_overlay(StatusOverride(
            period=PERIOD, kind="expense", item_name="Aluguel Sede", status=ItemStatus.PAID,
        ))
        views = LedgerViews(storage, baseline)

        by_name = {i.name: i for i in await views.items(PERIOD, view="reconciled")}
        assert by_name["Aluguel Sede"].status == ItemStatus.PAID

    @pytest.mark.asyncio
    async def test_renamed_baseline_item_edited_by_new_name(self, storage, baseline):
        """Test an edit override under the edited name is applied on top of the rename."""
        await storage.upsert_overlay(EditOverride(
            period=PERIOD, kind="expense", item_name="Aluguel", new_name="Aluguel Sede",
        ))
        await storage.upsert_overlay(EditOverride(
            period=PERIOD, kind="expense", item_name="Aluguel Sede", new_amount=4000,
        ))
        views = LedgerViews(storage, baseline)

        expenses = await views.items(PERIOD, ItemKind.EXPENSE, view="reconciled")
        assert [(i.name, i.amount) for i in expenses] == [("Aluguel Sede", Decimal("4000.00"))]
        assert expenses[0].category == "Infraestrutura"

    @pytest.mark.asyncio
    async def test_rename_cycle_terminates(self, storage, baseline):
        """Test edits that rename an item back to an earlier name stop at the repeat."""
        await storage.upsert_overlay(EditOverride(
            period=PERIOD, kind="expense", item_name="Aluguel", new_name="Sede",
        ))
        await storage.upsert_overlay(EditOverride(
            period=PERIOD, kind="expense", item_name="Sede", new_name="Aluguel",
        ))
        views = LedgerViews(storage, baseline)

        expenses = await views.items(PERIOD, ItemKind.EXPENSE, view="reconciled")
        assert [i.name for i in expenses] == ["Aluguel"]

    @pytest.mark.asyncio
    async def test_without_baseline_views_match(self, storage):
        """Test reconciled equals raw when there is no baseline."""
        await storage.create_item(item("income", "Starken", 10))
        views = LedgerViews(storage)
        assert await views.items(PERIOD) == await views.items(PERIOD, view="reconciled")


class TestAggregates:
    """Tests for totals and the financial summary."""

    def test_totals(self):
        """Test totals and balance."""
        items = [item("income", "A", 100), item("expense", "B", 30.5)]
        assert compute_totals(items) == {"receitas": 100.0, "despesas": 30.5, "saldo": 69.5}

    def test_margin_zero_without_income(self):
        """Test margin is 0 (not NaN or infinite) when income is 0."""
        assert compute_margin(Decimal("0"), Decimal("500")) == 0.0
        summary = compute_summary([item("expense", "B", 500)])
        assert summary["margem"] == 0.0
        assert summary["saldo"] == -500.0

    def test_margin_rounded_to_one_decimal(self):
        """Test margin = (income - expense) / income * 100, one decimal."""
        assert compute_margin(Decimal("54982.75"), Decimal("31869.90")) == 42.0
        assert compute_margin(Decimal("3"), Decimal("1")) == 66.7
        assert compute_margin(Decimal("100"), Decimal("150")) == -50.0

    def test_summary_groups_by_category(self):
        """Test per-category totals and counts by kind."""
        items = [
            item("expense", "Posto", 100, "Combustível"),
            item("expense", "Shell", 50, "Combustível"),
            item("expense", "Padaria", 20, "Alimentação"),
            item("income", "Starken", 1000, "Serviços"),
        ]
        summary = compute_summary(items)
        assert summary["por_categoria"]["despesas"] == {"Combustível": 150.0, "Alimentação": 20.0}
        assert summary["por_categoria"]["receitas"] == {"Serviços": 1000.0}
        assert summary["quantidade"] == {"despesas": 3, "receitas": 1, "total": 4}
        assert summary["margem"] == 83.0

    def test_empty_summary(self):
        """Test a period without items."""
        summary = compute_summary([])
        assert summary["receitas"] == 0.0
        assert summary["margem"] == 0.0
        assert summary["quantidade"]["total"] == 0
