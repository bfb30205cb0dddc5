"""Tests for ledger storage backends and the baseline dataset."""

import json
import threading
from uuid import uuid4

import pytest

from stark.models.audit import AuditEvent, AuditEventType
from stark.models.ledger import (
    DeletionMarker,
    EditOverride,
    ItemKind,
    ItemStatus,
    LedgerItem,
    LedgerKey,
    StatusOverride,
)
from stark.services.storage import (
    BaselineDataset,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsLedgerStorage,
    InMemoryLedgerStorage,
    NotFoundError,
)
from stark.services.storage.google_sheets import (
    AUDIT_COLUMNS,
    LEDGER_COLUMNS,
    columns_for,
    model_to_row,
    row_to_model,
)


PERIOD = "2025-12"


def item(name="Posto Ipiranga", kind="expense", amount=150):
    return LedgerItem(period=PERIOD, kind=kind, name=name, amount=amount, category="Outros")


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the storage classes."""

    def __init__(self, columns):
        self.rows = [list(columns)]
        self.updates = []
        self.threads = set()

    def get_all_values(self):
        self.threads.add(threading.get_ident())
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append(list(values))

    def update(self, range_name, values, value_input_option=None):
        self.updates.append(range_name)
        row = int(range_name.lstrip("A"))
        self.rows[row - 1] = list(values[0])

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:
    """Stands in for GoogleSheetsClient with one worksheet per entity."""

    def __init__(self, reachable=True):
        self.reachable = reachable
        self.ledger = FakeWorksheet(LEDGER_COLUMNS)
        self.audit = FakeWorksheet(AUDIT_COLUMNS)
        self.overlays = {}

    def get_spreadsheet(self):
        if not self.reachable:
            raise ConnectionError("Spreadsheet not found: test")
        return object()

    def get_ledger_sheet(self):
        return self.ledger

    def get_overlay_sheet(self, overlay_type):
        return self.overlays.setdefault(
            overlay_type.overlay_type, FakeWorksheet(columns_for(overlay_type))
        )

    def get_audit_sheet(self):
        return self.audit


class TestInMemoryLedgerStorage:
    """Tests for the dict-backed ledger."""

    @pytest.mark.asyncio
    async def test_create_assigns_id(self, storage):
        """Test a new item gets an id and becomes durable."""
        stored = await storage.create_item(item())
        assert stored.id is not None
        assert stored.is_durable
        assert await storage.get_item(stored.id) == stored

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, storage):
        """Test the same id cannot be created twice."""
        stored = await storage.create_item(item())
        with pytest.raises(DuplicateError):
            await storage.create_item(stored)

    @pytest.mark.asyncio
    async def test_find_returns_oldest(self, storage):
        """Test find_item returns the first item created with that key."""
        first = await storage.create_item(item(amount=1))
        await storage.create_item(item(amount=2))
        found = await storage.find_item(PERIOD, ItemKind.EXPENSE, "Posto Ipiranga")
        assert found.id == first.id

    @pytest.mark.asyncio
    async def test_update_missing_item(self, storage):
        """Test updating an unknown id fails."""
        with pytest.raises(NotFoundError):
            await storage.update_item(item().model_copy(update={"id": uuid4()}))

    @pytest.mark.asyncio
    async def test_overlay_upsert_keeps_one_per_key(self, storage):
        """Test a second write for the same key replaces the first."""
        await storage.upsert_overlay(StatusOverride(
            period=PERIOD, kind="expense", item_name="Aluguel", status=ItemStatus.PAYABLE,
        ))
        await storage.upsert_overlay(StatusOverride(
            period=PERIOD, kind="expense", item_name="Aluguel", status=ItemStatus.PAID,
        ))
        overlays = await storage.list_overlays(StatusOverride, PERIOD)
        assert len(overlays) == 1
        assert overlays[0].status == ItemStatus.PAID

    @pytest.mark.asyncio
    async def test_overlay_types_are_separate(self, storage):
        """Test overlays of different types with one key coexist."""
        await storage.upsert_overlay(DeletionMarker(period=PERIOD, kind="expense", item_name="X"))
        await storage.upsert_overlay(EditOverride(
            period=PERIOD, kind="expense", item_name="X", new_category="Y",
        ))
        assert await storage.get_overlay(DeletionMarker, PERIOD, ItemKind.EXPENSE, "X")
        assert await storage.get_overlay(EditOverride, PERIOD, ItemKind.EXPENSE, "X")
        assert await storage.get_overlay(StatusOverride, PERIOD, ItemKind.EXPENSE, "X") is None


class TestGoogleSheetsLedgerStorage:
    """Tests for the Sheets backend against an in-memory worksheet."""

    def test_row_conversion(self):
        """Test a row keeps money as text and empty cells as missing fields."""
        original = item().model_copy(update={"id": uuid4()})
        row = model_to_row(original)

        assert row[LEDGER_COLUMNS.index("amount")] == "150.00"
        assert row[LEDGER_COLUMNS.index("due_date")] == ""
        assert row_to_model(LedgerItem, row) == original

    @pytest.mark.asyncio
    async def test_item_lifecycle(self):
        """Test create, find, update and delete through rows."""
        client = FakeSheetsClient()
        sheets = GoogleSheetsLedgerStorage(client)

        stored = await sheets.create_item(item())
        assert len(client.ledger.rows) == 2

        found = await sheets.find_item(PERIOD, ItemKind.EXPENSE, "Posto Ipiranga")
        assert found.id == stored.id

        await sheets.update_item(found.model_copy(update={"status": ItemStatus.PAID}))
        assert (await sheets.get_item(stored.id)).status == ItemStatus.PAID

        assert await sheets.delete_item(stored.id) is True
        assert await sheets.list_items(PERIOD) == []
        assert await sheets.delete_item(stored.id) is False

    @pytest.mark.asyncio
    async def test_malformed_rows_skipped(self):
        """Test rows edited by hand into an invalid state are ignored."""
        client = FakeSheetsClient()
        client.ledger.rows.append(["not-a-uuid", "2025-12"])
        sheets = GoogleSheetsLedgerStorage(client)

        await sheets.create_item(item())
        assert len(await sheets.list_items(PERIOD)) == 1

    @pytest.mark.asyncio
    async def test_overlay_upsert(self):
        """Test overlays are updated in place by key."""
        client = FakeSheetsClient()
        sheets = GoogleSheetsLedgerStorage(client)

        await sheets.upsert_overlay(EditOverride(
            period=PERIOD, kind="expense", item_name="Aluguel", new_amount=10,
        ))
        await sheets.upsert_overlay(EditOverride(
            period=PERIOD, kind="expense", item_name="Aluguel", new_amount=20,
        ))

        overlays = await sheets.list_overlays(EditOverride, PERIOD)
        assert len(overlays) == 1
        assert str(overlays[0].new_amount) == "20.00"

    @pytest.mark.asyncio
    async def test_update_writes_row_in_one_call(self):
        """Test an update rewrites the whole row with a single range write."""
        client = FakeSheetsClient()
        sheets = GoogleSheetsLedgerStorage(client)
        stored = await sheets.create_item(item())

        await sheets.update_item(stored.model_copy(update={"amount": 175}))

        assert client.ledger.updates == ["A2"]
        assert (await sheets.get_item(stored.id)).amount == 175

    @pytest.mark.asyncio
    async def test_sheet_calls_leave_event_loop_thread(self):
        """Test blocking sheet reads run in a worker thread."""
        client = FakeSheetsClient()
        sheets = GoogleSheetsLedgerStorage(client)

        await sheets.list_items(PERIOD)
        await sheets.list_overlays(DeletionMarker, PERIOD)

        loop_thread = threading.get_ident()
        assert client.ledger.threads
        assert loop_thread not in client.ledger.threads
        assert loop_thread not in client.overlays[DeletionMarker.overlay_type].threads

    @pytest.mark.asyncio
    async def test_check_connection(self):
        """Test an unreachable spreadsheet reports False."""
        assert await GoogleSheetsLedgerStorage(FakeSheetsClient()).check_connection() is True
        assert await GoogleSheetsLedgerStorage(
            FakeSheetsClient(reachable=False)
        ).check_connection() is False

    @pytest.mark.asyncio
    async def test_audit_events_round_trip(self):
        """Test audit events are appended and read back by correlation id."""
        client = FakeSheetsClient()
        audit = GoogleSheetsAuditStorage(client)
        correlation_id = uuid4()

        await audit.append_event(AuditEvent(
            event_type=AuditEventType.TOOL_EXECUTED,
            description="Tool create_item succeeded",
            entity_type="tool_call",
            entity_id="tu_1",
            correlation_id=correlation_id,
            details={"tool_name": "create_item"},
        ))
        await audit.append_event(AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            description="other request",
        ))

        events = await audit.get_events_by_correlation_id(correlation_id)
        assert len(events) == 1
        assert events[0].entity_id == "tu_1"
        assert events[0].details == {"tool_name": "create_item"}
        assert len(await audit.get_recent_events(limit=5)) == 2


class TestBaselineDataset:
    """Tests for the read-only baseline."""

    def test_from_dict(self, baseline):
        """Test items are grouped per period and filtered by kind."""
        assert len(baseline) == 3
        assert {i.name for i in baseline.items(PERIOD, ItemKind.INCOME)} == {"Starken", "Alpha"}
        assert baseline.items("2026-01") == []

    def test_contains(self, baseline):
        """Test lookup by key."""
        assert baseline.contains(LedgerKey(PERIOD, ItemKind.EXPENSE, "Aluguel"))
        assert not baseline.contains(LedgerKey(PERIOD, ItemKind.INCOME, "Aluguel"))

    def test_items_are_copies(self, baseline):
        """Test callers cannot mutate the baseline through returned items."""
        first = baseline.items(PERIOD)[0]
        first.name = "changed"
        assert baseline.items(PERIOD)[0].name != "changed"

    def test_from_file(self, tmp_path):
        """Test the JSON file format."""
        path = tmp_path / "baseline.json"
        path.write_text(json.dumps({
            PERIOD: [{"kind": "expense", "name": "Aluguel", "amount": 3500}],
        }), encoding="utf-8")

        dataset = BaselineDataset.from_file(str(path))
        assert dataset.items(PERIOD)[0].status == ItemStatus.PAYABLE

    def test_rejects_durable_items(self):
        """Test baseline items cannot carry an id."""
        with pytest.raises(ValueError):
            BaselineDataset([item().model_copy(update={"id": uuid4()})])
