import json
import tempfile
import unittest
import sys
from datetime import datetime, timezone
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from contract_health.core.errors import StoreError
from contract_health.schemas.contracts import ContractRecord
from contract_health.store import (
    JsonFileContractStore,
    MemoryContractStore,
    SqliteContractStore,
    build_contract_store,
    hash_content,
)


def make_record(contract_id: str, content: bytes, **overrides) -> ContractRecord:
    data = {
        "contract_id": contract_id,
        "file_hash": hash_content(content),
        "file_id": f"file-{contract_id}",
        "filename": f"{contract_id}.pdf",
        "upload_date": datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
        "health_score": 88,
        "health_tier": "A",
        "health_tier_label": "Healthy",
        "score_breakdown": {"safetyScore": 58.2, "valueScore": 25.1, "bonusPoints": 5},
        "health_dimensions": {"mad": 3, "mao": 78, "maa": 60, "map": 50},
        "document_type": "contract",
        "seller_company": "Acme Ltd.",
        "raw_data": {"document_type": "contract"},
    }
    data.update(overrides)
    return ContractRecord(**data)


class ContractStoreBehaviour:
    """Shared checks; subclasses provide ``make_store``."""

    def make_store(self):
        raise NotImplementedError

    def setUp(self):
        self.store = self.make_store()

    def test_hash_lookup_finds_exact_bytes_only(self):
        record = make_record("c1", b"%PDF-1.7 first")
        self.store.upsert(record)

        found = self.store.find_by_content_hash(hash_content(b"%PDF-1.7 first"))
        self.assertIsNotNone(found)
        self.assertEqual(found.contract_id, "c1")
        self.assertIsNone(self.store.find_by_content_hash(hash_content(b"%PDF-1.7 first ")))

    def test_find_by_id_round_trips_full_record(self):
        record = make_record("c1", b"one", company_data={"profile": {"results": [{"title": "Acme"}]}})
        self.store.upsert(record)

        loaded = self.store.find_by_id("c1")
        self.assertEqual(loaded.to_storage(), record.to_storage())
        self.assertEqual(loaded.score_breakdown.bonus_points, 5)
        self.assertIsNone(self.store.find_by_id("missing"))

    def test_upsert_replaces_existing_record(self):
        self.store.upsert(make_record("c1", b"one"))
        self.store.upsert(make_record("c1", b"one", seller_company="Renamed Co.", health_score=56, health_tier="D"))

        loaded = self.store.find_by_id("c1")
        self.assertEqual(loaded.seller_company, "Renamed Co.")
        self.assertEqual(loaded.health_tier, "D")
        self.assertEqual(len(self.store.list_summaries()), 1)

    def test_delete_by_id(self):
        self.store.upsert(make_record("c1", b"one"))
        self.assertTrue(self.store.delete_by_id("c1"))
        self.assertFalse(self.store.delete_by_id("c1"))
        self.assertIsNone(self.store.find_by_id("c1"))
        self.assertIsNone(self.store.find_by_content_hash(hash_content(b"one")))

    def test_list_summaries(self):
        self.assertEqual(self.store.list_summaries(), [])
        self.store.upsert(make_record("c1", b"one"))
        self.store.upsert(make_record("c2", b"two", seller_company="Beta GmbH"))

        summaries = {item.contract_id: item for item in self.store.list_summaries()}
        self.assertEqual(set(summaries), {"c1", "c2"})
        self.assertEqual(summaries["c2"].seller_company, "Beta GmbH")
        self.assertEqual(summaries["c1"].health_score, 88)
        self.assertEqual(summaries["c1"].upload_date, datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


class MemoryContractStoreTests(ContractStoreBehaviour, unittest.TestCase):
    def make_store(self):
        return MemoryContractStore()

    def test_returned_records_are_copies(self):
        self.store.upsert(make_record("c1", b"one"))
        loaded = self.store.find_by_id("c1")
        loaded.raw_data["document_type"] = "changed"
        self.assertEqual(self.store.find_by_id("c1").raw_data["document_type"], "contract")


class JsonFileContractStoreTests(ContractStoreBehaviour, unittest.TestCase):
    def make_store(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = Path(self._tmp.name) / "data" / "contracts.json"
        return JsonFileContractStore(self.path)

    def test_file_is_a_plain_array_with_camel_case_breakdown(self):
        self.store.upsert(make_record("c1", b"one"))
        rows = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertIsInstance(rows, list)
        self.assertEqual(rows[0]["contract_id"], "c1")
        self.assertEqual(rows[0]["score_breakdown"], {"safetyScore": 58.2, "valueScore": 25.1, "bonusPoints": 5})

    def test_corrupt_file_raises_store_error(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(StoreError):
            self.store.list_summaries()

    def test_rows_outside_the_record_schema_are_skipped_in_listings(self):
        legacy = {
            "contract_id": "legacy1",
            "file_hash": hash_content(b"legacy"),
            "filename": "old.pdf",
            "contract_analysis": {"risk": "high"},
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps([legacy]), encoding="utf-8")

        self.store.upsert(make_record("c1", b"one"))

        self.assertEqual([item.contract_id for item in self.store.list_summaries()], ["c1"])
        with self.assertRaises(StoreError):
            self.store.find_by_id("legacy1")
        rows = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(rows[0], legacy)


class SqliteContractStoreTests(ContractStoreBehaviour, unittest.TestCase):
    def make_store(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        store = SqliteContractStore(str(Path(self._tmp.name) / "contracts.db"))
        self.addCleanup(store.close)
        return store

    def test_records_survive_reopen(self):
        self.store.upsert(make_record("c1", b"one"))
        db_path = str(Path(self._tmp.name) / "contracts.db")
        reopened = SqliteContractStore(db_path)
        self.addCleanup(reopened.close)
        self.assertEqual(reopened.find_by_id("c1").seller_company, "Acme Ltd.")


class BuildContractStoreTests(unittest.TestCase):
    def test_memory_backend(self):
        self.assertIsInstance(build_contract_store("memory"), MemoryContractStore)

    def test_unknown_backend(self):
        with self.assertRaises(ValueError):
            build_contract_store("redis")

    def test_hash_content_is_sha256_hex(self):
        self.assertEqual(
            hash_content(b""),
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855",
        )


if __name__ == "__main__":
    unittest.main()
