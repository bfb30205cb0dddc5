"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the ledger backend because:
1. The finance team can read and fix the ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (one company, a few hundred rows a month)
- No transactions (each tool call touches one row)
- Limited query capabilities (we filter in Python)

One worksheet per entity: ledger items, and one per overlay type.
Columns are the model's field names, so a row is just the model dumped
in JSON mode.
"""

import asyncio
import functools
import json
from typing import Optional, TypeVar
from uuid import UUID, uuid4

import gspread
from google.oauth2.service_account import Credentials
from pydantic import BaseModel

from stark.config import get_settings
from stark.models.audit import AuditEvent, AuditEventType, AuditSeverity
from stark.models.ledger import (
    DeletionMarker,
    EditOverride,
    ItemKind,
    LedgerItem,
    OverlayRecord,
    StatusOverride,
    utc_now,
)
from stark.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)


M = TypeVar("M", bound=BaseModel)
O = TypeVar("O", bound=OverlayRecord)

LEDGER_COLUMNS = list(LedgerItem.model_fields)

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]


def columns_for(model: type[BaseModel]) -> list[str]:
    return list(model.model_fields)


def model_to_row(instance: BaseModel) -> list[str]:
    """Dump a model as a row of strings in column order."""
    data = instance.model_dump(mode="json")
    return ["" if data[col] is None else str(data[col]) for col in columns_for(type(instance))]


def row_to_model(model: type[M], row: list[str]) -> M:
    """Build a model from a row; empty cells become missing fields."""
    data = {
        col: value
        for col, value in zip(columns_for(model), row)
        if value != ""
    }
    return model.model_validate(data)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and worksheet creation.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet with the given header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_ledger_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.ledger_sheet_name, LEDGER_COLUMNS)

    def get_overlay_sheet(self, overlay_type: type[OverlayRecord]) -> gspread.Worksheet:
        titles = {
            StatusOverride.overlay_type: self._settings.status_overrides_sheet_name,
            EditOverride.overlay_type: self._settings.edit_overrides_sheet_name,
            DeletionMarker.overlay_type: self._settings.deletion_markers_sheet_name,
        }
        return self.get_worksheet(titles[overlay_type.overlay_type], columns_for(overlay_type))

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)


async def run_blocking(func, *args):
    """Run a blocking gspread call in the default thread pool."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args))


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of ledger storage.

    Items and overlays are stored one per row. Overlays are located by
    their (period, kind, item_name) columns.

    gspread is synchronous; every sheet round-trip runs in a worker
    thread so the event loop keeps serving other requests.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _item_rows(self) -> list[tuple[int, LedgerItem]]:
        """All parseable item rows with their 1-based sheet row index."""
        sheet = self._client.get_ledger_sheet()
        rows = []
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if not row or not row[0]:
                continue
            try:
                rows.append((idx, row_to_model(LedgerItem, row)))
            except ValueError:
                continue  # Skip malformed rows
        return rows

    @staticmethod
    def _write_row(sheet: gspread.Worksheet, idx: int, values: list[str]) -> None:
        """Overwrite one row with a single API call."""
        sheet.update(range_name=f"A{idx}", values=[values], value_input_option="RAW")

    def _append_item(self, item: LedgerItem) -> None:
        sheet = self._client.get_ledger_sheet()
        sheet.append_row(model_to_row(item), value_input_option="RAW")

    def _replace_item(self, item: LedgerItem) -> LedgerItem:
        sheet = self._client.get_ledger_sheet()
        for idx, existing in self._item_rows():
            if existing.id == item.id:
                updated = item.model_copy(update={"updated_at": utc_now()})
                self._write_row(sheet, idx, model_to_row(updated))
                return updated
        raise NotFoundError(f"Item not found: {item.id}")

    def _remove_item(self, item_id: UUID) -> bool:
        sheet = self._client.get_ledger_sheet()
        for idx, item in self._item_rows():
            if item.id == item_id:
                sheet.delete_rows(idx)
                return True
        return False

    async def create_item(self, item: LedgerItem) -> LedgerItem:
        try:
            stored = item.model_copy(update={"id": item.id or uuid4()})
            await run_blocking(self._append_item, stored)
            return stored
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save item: {e}")

    async def get_item(self, item_id: UUID) -> Optional[LedgerItem]:
        try:
            for _, item in await run_blocking(self._item_rows):
                if item.id == item_id:
                    return item
            return None
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get item: {e}")

    async def find_item(
        self,
        period: str,
        kind: ItemKind,
        name: str,
    ) -> Optional[LedgerItem]:
        try:
            for _, item in await run_blocking(self._item_rows):
                if item.key == (period, kind, name):
                    return item
            return None
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to find item: {e}")

    async def list_items(
        self,
        period: str,
        kind: Optional[ItemKind] = None,
    ) -> list[LedgerItem]:
        try:
            return [
                item
                for _, item in await run_blocking(self._item_rows)
                if item.period == period and (kind is None or item.kind == kind)
            ]
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list items: {e}")

    async def update_item(self, item: LedgerItem) -> LedgerItem:
        try:
            return await run_blocking(self._replace_item, item)
        except (NotFoundError, ConnectionError):
            raise
        except Exception as e:
            raise StorageError(f"Failed to update item: {e}")

    async def delete_item(self, item_id: UUID) -> bool:
        try:
            return await run_blocking(self._remove_item, item_id)
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete item: {e}")

    def _overlay_rows(self, overlay_type: type[O]) -> list[tuple[int, O]]:
        sheet = self._client.get_overlay_sheet(overlay_type)
        rows = []
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if not row or not row[0]:
                continue
            try:
                rows.append((idx, row_to_model(overlay_type, row)))
            except ValueError:
                continue
        return rows

    def _write_overlay(self, overlay: OverlayRecord) -> OverlayRecord:
        overlay_type = type(overlay)
        sheet = self._client.get_overlay_sheet(overlay_type)
        stored = overlay.model_copy(update={"updated_at": utc_now()})
        for idx, existing in self._overlay_rows(overlay_type):
            if existing.key == overlay.key:
                self._write_row(sheet, idx, model_to_row(stored))
                return stored
        sheet.append_row(model_to_row(stored), value_input_option="RAW")
        return stored

    async def upsert_overlay(self, overlay: OverlayRecord) -> OverlayRecord:
        try:
            return await run_blocking(self._write_overlay, overlay)
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write {overlay.overlay_type}: {e}")

    async def get_overlay(
        self,
        overlay_type: type[O],
        period: str,
        kind: ItemKind,
        item_name: str,
    ) -> Optional[O]:
        try:
            for _, overlay in await run_blocking(self._overlay_rows, overlay_type):
                if overlay.key == (period, kind, item_name):
                    return overlay
            return None
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {overlay_type.overlay_type}: {e}")

    async def list_overlays(
        self,
        overlay_type: type[O],
        period: str,
    ) -> list[O]:
        try:
            return [
                overlay
                for _, overlay in await run_blocking(self._overlay_rows, overlay_type)
                if overlay.period == period
            ]
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list {overlay_type.overlay_type}: {e}")

    async def check_connection(self) -> bool:
        try:
            await run_blocking(self._client.get_spreadsheet)
            return True
        except ConnectionError:
            return False


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=safe_get(1),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
        )

    def _all_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except ValueError:
                continue
        return events

    def _append_event(self, event: AuditEvent) -> None:
        sheet = self._client.get_audit_sheet()
        sheet.append_row(event.to_sheets_row(), value_input_option="RAW")

    async def append_event(self, event: AuditEvent) -> bool:
        await run_blocking(self._append_event, event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [
                e for e in await run_blocking(self._all_events)
                if e.correlation_id == correlation_id
            ]
            events.sort(key=lambda e: e.timestamp)
            return events
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = await run_blocking(self._all_events)
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
