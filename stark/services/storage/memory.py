"""
In-Memory Storage Implementation

Used by the test suite and for local development
(STORAGE_BACKEND=memory). Nothing survives a restart.
"""

from typing import Optional, TypeVar
from uuid import UUID, uuid4

from stark.models.audit import AuditEvent
from stark.models.ledger import ItemKind, LedgerItem, LedgerKey, OverlayRecord, utc_now
from stark.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
)


O = TypeVar("O", bound=OverlayRecord)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Dict-backed ledger storage."""

    def __init__(self):
        self._items: dict[UUID, LedgerItem] = {}
        self._overlays: dict[str, dict[LedgerKey, OverlayRecord]] = {}

    async def create_item(self, item: LedgerItem) -> LedgerItem:
        if item.id is not None and item.id in self._items:
            raise DuplicateError(f"Item already exists: {item.id}")
        stored = item.model_copy(update={"id": item.id or uuid4()})
        self._items[stored.id] = stored
        return stored.model_copy()

    async def get_item(self, item_id: UUID) -> Optional[LedgerItem]:
        item = self._items.get(item_id)
        return item.model_copy() if item else None

    async def find_item(
        self,
        period: str,
        kind: ItemKind,
        name: str,
    ) -> Optional[LedgerItem]:
        for item in self._items.values():
            if item.key == (period, kind, name):
                return item.model_copy()
        return None

    async def list_items(
        self,
        period: str,
        kind: Optional[ItemKind] = None,
    ) -> list[LedgerItem]:
        return [
            item.model_copy()
            for item in self._items.values()
            if item.period == period and (kind is None or item.kind == kind)
        ]

    async def update_item(self, item: LedgerItem) -> LedgerItem:
        if item.id is None or item.id not in self._items:
            raise NotFoundError(f"Item not found: {item.id}")
        stored = item.model_copy(update={"updated_at": utc_now()})
        self._items[item.id] = stored
        return stored.model_copy()

    async def delete_item(self, item_id: UUID) -> bool:
        return self._items.pop(item_id, None) is not None

    async def upsert_overlay(self, overlay: OverlayRecord) -> OverlayRecord:
        stored = overlay.model_copy(update={"updated_at": utc_now()})
        self._overlays.setdefault(overlay.overlay_type, {})[overlay.key] = stored
        return stored.model_copy()

    async def get_overlay(
        self,
        overlay_type: type[O],
        period: str,
        kind: ItemKind,
        item_name: str,
    ) -> Optional[O]:
        overlay = self._overlays.get(overlay_type.overlay_type, {}).get(
            LedgerKey(period, kind, item_name)
        )
        return overlay.model_copy() if overlay else None

    async def list_overlays(
        self,
        overlay_type: type[O],
        period: str,
    ) -> list[O]:
        return [
            overlay.model_copy()
            for key, overlay in self._overlays.get(overlay_type.overlay_type, {}).items()
            if key.period == period
        ]

    async def check_connection(self) -> bool:
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """List-backed audit storage."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
