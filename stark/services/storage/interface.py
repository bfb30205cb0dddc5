"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for ledger storage.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing and local development
3. Keep the tool executor decoupled from the storage implementation

Overlays (status overrides, edit overrides, deletion markers) share one
set of operations parameterized by the overlay class, so adding a new
overlay type never adds methods here.
"""

from abc import ABC, abstractmethod
from typing import Optional, TypeVar
from uuid import UUID

from stark.models.audit import AuditEvent
from stark.models.ledger import ItemKind, LedgerItem, OverlayRecord


O = TypeVar("O", bound=OverlayRecord)


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger storage operations.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def create_item(self, item: LedgerItem) -> LedgerItem:
        """
        Insert a ledger item.

        Names are not unique: creating an item whose (period, kind, name)
        already exists adds a second record.

        Returns:
            The stored item, with its id assigned

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def get_item(self, item_id: UUID) -> Optional[LedgerItem]:
        """Retrieve an item by id, or None."""
        pass

    @abstractmethod
    async def find_item(
        self,
        period: str,
        kind: ItemKind,
        name: str,
    ) -> Optional[LedgerItem]:
        """
        Find the first durable item with this (period, kind, name).

        Returns:
            The oldest matching item, or None
        """
        pass

    @abstractmethod
    async def list_items(
        self,
        period: str,
        kind: Optional[ItemKind] = None,
    ) -> list[LedgerItem]:
        """
        List durable items of a period, optionally of one kind.

        Returns:
            Items in insertion order
        """
        pass

    @abstractmethod
    async def update_item(self, item: LedgerItem) -> LedgerItem:
        """
        Replace a stored item (matched by id).

        Raises:
            NotFoundError: If the item doesn't exist
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    async def delete_item(self, item_id: UUID) -> bool:
        """
        Delete an item by id.

        Returns:
            True if something was deleted
        """
        pass

    @abstractmethod
    async def upsert_overlay(self, overlay: OverlayRecord) -> OverlayRecord:
        """
        Write an overlay, replacing any overlay of the same type and key.
        """
        pass

    @abstractmethod
    async def get_overlay(
        self,
        overlay_type: type[O],
        period: str,
        kind: ItemKind,
        item_name: str,
    ) -> Optional[O]:
        """Get the overlay of this type for a key, or None."""
        pass

    @abstractmethod
    async def list_overlays(
        self,
        overlay_type: type[O],
        period: str,
    ) -> list[O]:
        """List all overlays of one type for a period."""
        pass

    @abstractmethod
    async def check_connection(self) -> bool:
        """Return True if the backend is reachable."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (one /agent request).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
