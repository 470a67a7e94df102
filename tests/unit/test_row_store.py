from __future__ import annotations

import pytest

from tutoring_admin.errors import StorageError
from tutoring_admin.store.row_store import MemoryRowStore


def test_append_update_delete():
    store = MemoryRowStore({"$t": [["id", "name"]]})
    store.append_row("$t", [1, "a"])
    store.append_row("$t", [2, "b"])
    store.update_row("$t", 1, [1, "z"])
    store.delete_row("$t", 2)
    assert store.get_all_rows("$t") == [["id", "name"], [1, "z"]]
    assert store.dirty is True


def test_get_all_rows_returns_copies():
    store = MemoryRowStore({"$t": [["id"], [1]]})
    rows = store.get_all_rows("$t")
    rows[1][0] = 99
    assert store.get_all_rows("$t")[1][0] == 1


def test_column_count_is_widest_row():
    store = MemoryRowStore({"$t": [["a", "b"], [1, 2, 3]]})
    assert store.get_column_count("$t") == 3
    store.ensure_table("$empty")
    assert store.get_column_count("$empty") == 0


def test_missing_table_and_bad_index():
    store = MemoryRowStore()
    with pytest.raises(StorageError, match="not found"):
        store.get_all_rows("$missing")
    assert store.ensure_table("$t") is True
    assert store.ensure_table("$t") is False
    with pytest.raises(StorageError, match="out of range"):
        store.update_row("$t", 3, [1])
    with pytest.raises(StorageError):
        store.delete_row("$t", 0)
