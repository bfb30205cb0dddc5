"""
Read-only baseline dataset.

Baseline items are records the ledger did not create (for example the
figures of a closed month imported once). They are never written to;
status changes, edits and deletions reach them through overlays.

File format (JSON):

    {
      "2025-12": [
        {"kind": "income", "name": "Starken", "amount": 29833.00,
         "category": "Serviços", "status": "Received"},
        ...
      ]
    }
"""

import json
from pathlib import Path
from typing import Optional

from stark.models.ledger import ItemKind, LedgerItem, LedgerKey


class BaselineDataset:
    """Immutable baseline items grouped by period."""

    def __init__(self, items: Optional[list[LedgerItem]] = None):
        self._by_period: dict[str, list[LedgerItem]] = {}
        for item in items or []:
            if item.is_durable:
                raise ValueError(f"Baseline items cannot carry an id: {item.name}")
            self._by_period.setdefault(item.period, []).append(item)

    @classmethod
    def from_dict(cls, data: dict[str, list[dict]]) -> 'BaselineDataset':
        items = [
            LedgerItem(period=period, **entry)
            for period, entries in data.items()
            for entry in entries
        ]
        return cls(items)

    @classmethod
    def from_file(cls, path: str) -> 'BaselineDataset':
        with Path(path).open(encoding="utf-8") as fh:
            return cls.from_dict(json.load(fh))

    def items(self, period: str, kind: Optional[ItemKind] = None) -> list[LedgerItem]:
        return [
            item.model_copy()
            for item in self._by_period.get(period, [])
            if kind is None or item.kind == kind
        ]

    def contains(self, key: LedgerKey) -> bool:
        return any(item.key == key for item in self._by_period.get(key.period, []))

    def __len__(self) -> int:
        return sum(len(items) for items in self._by_period.values())
