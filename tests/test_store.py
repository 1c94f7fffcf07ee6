import json
import os
import tempfile
import threading
import unittest

from cpauth.errors import StorageFailure
from cpauth.registry import IdentityRegistry
from cpauth.store import JSONFileStore, MemoryStore, open_store


class StoreContract:
    """Behaviour every ``AuthStore`` backend must share."""

    def make_store(self):
        raise NotImplementedError

    def test_identity_lifecycle(self) -> None:
        store = self.make_store()
        self.assertFalse(store.exists_identity("a1"))
        self.assertIsNone(store.get_identity("a1"))
        store.put_identity("a1", "2", "3")
        self.assertTrue(store.exists_identity("a1"))
        self.assertEqual(store.get_identity("a1"), ("2", "3"))

    def test_pending_upsert_and_delete(self) -> None:
        store = self.make_store()
        self.assertIsNone(store.get_pending("a1"))
        store.put_pending("a1", "8", "4", "3")
        store.put_pending("a1", "10", "c", "5")
        self.assertEqual(store.get_pending("a1"), ("10", "c", "5"))
        store.delete_pending("a1")
        self.assertIsNone(store.get_pending("a1"))
        store.delete_pending("a1")

    def test_put_identity_if_absent(self) -> None:
        store = self.make_store()
        self.assertTrue(store.put_identity_if_absent("a1", "2", "3"))
        self.assertFalse(store.put_identity_if_absent("a1", "8", "4"))
        self.assertEqual(store.get_identity("a1"), ("2", "3"))

    def test_concurrent_registration_writes_once(self) -> None:
        store = self.make_store()
        results = []

        def register(value: str) -> None:
            results.append((value, store.put_identity_if_absent("a1", value, value)))

        threads = [threading.Thread(target=register, args=(format(n, "x"),)) for n in range(2, 10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        winners = [value for value, created in results if created]
        self.assertEqual(len(winners), 1)
        self.assertEqual(store.get_identity("a1"), (winners[0], winners[0]))


class TestMemoryStore(StoreContract, unittest.TestCase):
    def make_store(self):
        return MemoryStore()


class TestJSONFileStore(StoreContract, unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmpdir.name, "users.json")

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def make_store(self):
        return JSONFileStore(self.path)

    def test_persists_across_instances(self) -> None:
        JSONFileStore(self.path).put_identity("a1", "2", "3")
        self.assertEqual(JSONFileStore(self.path).get_identity("a1"), ("2", "3"))

    def test_corrupt_file_raises_storage_failure(self) -> None:
        with open(self.path, "w", encoding="utf-8") as handle:
            handle.write("{not json")
        with self.assertRaises(StorageFailure):
            JSONFileStore(self.path).exists_identity("a1")

    def test_unexpected_row_shape_raises_storage_failure(self) -> None:
        with open(self.path, "w", encoding="utf-8") as handle:
            json.dump({"identities": {"a1": {"y1": "2"}}, "pending": {}}, handle)
        with self.assertRaises(StorageFailure):
            JSONFileStore(self.path).get_identity("a1")

    def test_unwritable_path_raises_storage_failure(self) -> None:
        store = JSONFileStore(os.path.join(self.path, "missing", "users.json"))
        with self.assertRaises(StorageFailure):
            store.put_identity("a1", "2", "3")


class TestOpenStore(unittest.TestCase):
    def test_selects_backend(self) -> None:
        self.assertIsInstance(open_store("memory://"), MemoryStore)
        self.assertIsInstance(open_store("users-test.json"), JSONFileStore)
        self.assertFalse(os.path.exists("users-test.json"))


class TestIdentityRegistry(unittest.TestCase):
    def test_put_only_if_absent(self) -> None:
        registry = IdentityRegistry(MemoryStore())
        self.assertTrue(registry.put("a1", 2, 3))
        self.assertFalse(registry.put("a1", 8, 4))
        record = registry.get("a1")
        self.assertEqual((record.y1, record.y2), (2, 3))
        self.assertTrue(registry.exists("a1"))
        self.assertIsNone(registry.get("b2"))

    def test_non_hex_row_raises_storage_failure(self) -> None:
        store = MemoryStore()
        store.put_identity("a1", "xyz", "3")
        with self.assertRaises(StorageFailure):
            IdentityRegistry(store).get("a1")


if __name__ == "__main__":
    unittest.main()
