"""Ledger read paths and aggregates."""

from stark.queries.views import (
    LedgerViews,
    ViewName,
    compute_margin,
    compute_summary,
    compute_totals,
)

__all__ = [
    "LedgerViews",
    "ViewName",
    "compute_margin",
    "compute_summary",
    "compute_totals",
]
