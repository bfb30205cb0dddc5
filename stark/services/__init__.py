"""Services package."""

from stark.services.llm import (
    AnthropicProvider,
    GeminiProvider,
    ModelProvider,
    ModelProviderError,
)
from stark.services.storage import (
    AuditStorageInterface,
    BaselineDataset,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Model providers
    "AnthropicProvider",
    "GeminiProvider",
    "ModelProvider",
    "ModelProviderError",
    # Storage services
    "AuditStorageInterface",
    "BaselineDataset",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    "LedgerStorageInterface",
    "NotFoundError",
    "StorageError",
]
