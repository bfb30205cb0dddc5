"""
Storage Services Package

Provides abstract interfaces and concrete implementations for ledger storage.
Google Sheets is the production backend; the in-memory backend serves tests
and local development.
"""

from stark.services.storage.baseline import BaselineDataset
from stark.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)
from stark.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
)
from stark.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerStorageInterface",
    # Baseline
    "BaselineDataset",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
]
