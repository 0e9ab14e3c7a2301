"""
Tests for storage backends and transaction support
"""

import pytest
import tempfile
import threading
import time
from datetime import datetime, timezone
from pathlib import Path

from loan_tracker.storage import InMemoryStorage, SQLiteStorage, StorageRecord


# Test data
test_data = {
    "id": "loan_001",
    "principal": "100000",
    "status": "active",
    "created_at": datetime.now(timezone.utc).isoformat(),
    "updated_at": datetime.now(timezone.utc).isoformat()
}


def exercise_crud(storage):
    # Save and load
    storage.save("loans", "loan_001", test_data)
    assert storage.load("loans", "loan_001") == test_data
    assert storage.load("loans", "missing") is None

    # Exists
    assert storage.exists("loans", "loan_001")
    assert not storage.exists("loans", "missing")

    # Load all and find
    storage.save("loans", "loan_002", {"id": "loan_002", "status": "completed"})
    assert len(storage.load_all("loans")) == 2
    results = storage.find("loans", {"status": "completed"})
    assert [r["id"] for r in results] == ["loan_002"]

    # Count and delete
    assert storage.count("loans") == 2
    assert storage.delete("loans", "loan_001")
    assert not storage.delete("loans", "loan_001")
    assert storage.count("loans") == 1

    # Clear
    storage.clear_table("loans")
    assert storage.count("loans") == 0


def exercise_concurrent_atomic(storage):
    """A failed block on one thread is undone even while another thread commits"""
    a_saved = threading.Event()
    b_waiting = threading.Event()

    def failing_writer():
        try:
            with storage.atomic():
                storage.save("loans", "a", {"v": 1})
                a_saved.set()
                b_waiting.wait(timeout=5)
                time.sleep(0.05)
                raise RuntimeError("boom")
        except RuntimeError:
            pass

    def committing_writer():
        a_saved.wait(timeout=5)
        b_waiting.set()
        with storage.atomic():
            storage.save("loans", "b", {"v": 2})

    threads = [threading.Thread(target=failing_writer), threading.Thread(target=committing_writer)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert storage.load("loans", "a") is None
    assert storage.load("loans", "b") == {"v": 2}


def exercise_nested_atomic(storage):
    with pytest.raises(RuntimeError):
        with storage.atomic():
            storage.save("loans", "outer", {"v": 1})
            with storage.atomic():
                storage.save("loans", "inner", {"v": 2})
            raise RuntimeError("boom")

    assert not storage.exists("loans", "outer")
    assert not storage.exists("loans", "inner")


class TestInMemoryStorage:
    """InMemoryStorage operations"""

    def test_basic_operations(self):
        """Test basic CRUD operations with InMemoryStorage"""
        storage = InMemoryStorage()
        exercise_crud(storage)
        storage.close()

    def test_loaded_records_are_copies(self):
        """Mutating a loaded dict does not change the stored record"""
        storage = InMemoryStorage()
        storage.save("loans", "loan_001", test_data)

        loaded = storage.load("loans", "loan_001")
        loaded["status"] = "completed"

        assert storage.load("loans", "loan_001")["status"] == "active"

    def test_atomic_rollback(self):
        """Changes inside a failed atomic block are discarded"""
        storage = InMemoryStorage()
        storage.save("loans", "loan_001", test_data)

        with pytest.raises(RuntimeError):
            with storage.atomic():
                storage.save("loans", "loan_002", {"id": "loan_002"})
                storage.delete("loans", "loan_001")
                raise RuntimeError("boom")

        assert storage.exists("loans", "loan_001")
        assert not storage.exists("loans", "loan_002")

    def test_atomic_commit(self):
        storage = InMemoryStorage()
        with storage.atomic():
            storage.save("loans", "loan_001", test_data)
        assert storage.exists("loans", "loan_001")

    def test_concurrent_atomic_blocks(self):
        exercise_concurrent_atomic(InMemoryStorage())

    def test_nested_atomic_joins_outer(self):
        exercise_nested_atomic(InMemoryStorage())


class TestSQLiteStorage:
    """SQLiteStorage operations"""

    def test_basic_operations(self):
        """Test basic CRUD operations with SQLiteStorage"""
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = SQLiteStorage(Path(temp_dir) / "test.db")
            exercise_crud(storage)
            storage.close()

    def test_in_memory_database(self):
        storage = SQLiteStorage(":memory:")
        exercise_crud(storage)
        storage.close()

    def test_data_survives_reopen(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            db_path = Path(temp_dir) / "test.db"
            storage = SQLiteStorage(db_path)
            storage.save("loans", "loan_001", test_data)
            storage.close()

            reopened = SQLiteStorage(db_path)
            assert reopened.load("loans", "loan_001") == test_data
            reopened.close()

    def test_atomic_rollback(self):
        """A failed atomic block leaves no partial writes behind"""
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = SQLiteStorage(Path(temp_dir) / "test.db")
            storage.save("loans", "loan_001", test_data)

            with pytest.raises(RuntimeError):
                with storage.atomic():
                    storage.save("loans", "loan_002", {"id": "loan_002"})
                    storage.delete("loans", "loan_001")
                    raise RuntimeError("boom")

            assert storage.exists("loans", "loan_001")
            assert not storage.exists("loans", "loan_002")
            storage.close()

    def test_concurrent_atomic_blocks(self):
        storage = SQLiteStorage(":memory:")
        exercise_concurrent_atomic(storage)
        storage.close()

    def test_nested_atomic_joins_outer(self):
        storage = SQLiteStorage(":memory:")
        exercise_nested_atomic(storage)
        storage.close()

    def test_update_keeps_single_row(self):
        storage = SQLiteStorage(":memory:")
        storage.save("loans", "loan_001", test_data)
        storage.save("loans", "loan_001", dict(test_data, status="overdue"))

        assert storage.count("loans") == 1
        assert storage.load("loans", "loan_001")["status"] == "overdue"
        storage.close()


class TestStorageRecord:
    def test_touch_moves_only_updated_at(self):
        created = datetime(2024, 1, 1, tzinfo=timezone.utc)
        record = StorageRecord(id="r1", created_at=created, updated_at=created)

        later = datetime(2024, 2, 1, tzinfo=timezone.utc)
        record.touch(later)

        assert record.created_at == created
        assert record.updated_at == later
