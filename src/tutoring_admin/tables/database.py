from __future__ import annotations

import logging

from ..store.row_store import RowStore
from .ids import IdGenerator, default_id_generator
from .schema import SchemaRegistry, default_registry
from .table import Table

"""Composition root for the table engine: registry + store + id generator."""

__all__ = [
    "Database",
]

logger = logging.getLogger(__name__)


class Database:
    def __init__(
        self,
        store: RowStore,
        registry: SchemaRegistry | None = None,
        id_generator: IdGenerator | None = None,
    ) -> None:
        self.store = store
        self.registry = registry or default_registry()
        self.id_generator = id_generator or default_id_generator()
        self._tables: dict[str, Table] = {}

    def table(self, name: str) -> Table:
        """Return the cached Table handle for ``name`` (SchemaNotFound if unknown)."""
        cached = self._tables.get(name)
        if cached is None:
            cached = Table(self.registry.lookup(name), self.store, self.id_generator)
            self._tables[name] = cached
        return cached

    def initialize(self) -> list[str]:
        """Create every missing sheet with its header row. Returns created table names."""
        created = []
        for name in self.registry.names():
            table = self.table(name)
            if self.store.ensure_table(table.sheet_name):
                table.rebuild_headers()
                created.append(name)
        logger.info(f"initialized tables created={len(created)}")
        return created

    def flush(self) -> None:
        self.store.flush()
