"""Shared test fixtures."""

import pytest

from stark.audit import AuditLogger
from stark.config import AppSettings
from stark.services.storage import (
    BaselineDataset,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
)
from stark.tools import ToolExecutor


PERIOD = "2025-12"


@pytest.fixture
def storage():
    return InMemoryLedgerStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def baseline():
    """Closed figures of December 2025, never written to."""
    return BaselineDataset.from_dict({
        PERIOD: [
            {"kind": "income", "name": "Starken", "amount": 29833.00,
             "category": "Serviços", "status": "Received"},
            {"kind": "income", "name": "Alpha", "amount": 25149.75,
             "category": "Royalties"},
            {"kind": "expense", "name": "Aluguel", "amount": 3500.00,
             "category": "Infraestrutura"},
        ]
    })


@pytest.fixture
def executor(storage, audit_logger):
    return ToolExecutor(storage=storage, audit_logger=audit_logger)


@pytest.fixture
def baseline_executor(storage, baseline, audit_logger):
    return ToolExecutor(storage=storage, baseline=baseline, audit_logger=audit_logger)


@pytest.fixture
def app_settings():
    return AppSettings(
        tools_enabled=True,
        max_tool_iterations=10,
        history_window=6,
        storage_backend="memory",
        request_deadline_seconds=None,
    )
