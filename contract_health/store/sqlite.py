from __future__ import annotations

import json
import logging
import os
import sqlite3
import threading

from pydantic import ValidationError

from contract_health.core.errors import StoreError
from contract_health.schemas.contracts import ContractRecord, ContractSummary
from contract_health.store.base import ContractStore

logger = logging.getLogger(__name__)


class SqliteContractStore(ContractStore):
    """One row per record: the full JSON payload plus the columns list views need."""

    def __init__(self, db_path: str):
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._conn_lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        with self._conn_lock:
            if self._conn is not None:
                return self._conn

            directory = os.path.dirname(self._db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)

            conn = sqlite3.connect(
                self._db_path,
                check_same_thread=False,
                timeout=5,
                isolation_level=None,
            )
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            conn.execute("PRAGMA busy_timeout=5000;")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS contract_records (
                    contract_id TEXT PRIMARY KEY,
                    file_hash TEXT NOT NULL,
                    filename TEXT NOT NULL,
                    seller_company TEXT NOT NULL,
                    document_type TEXT NOT NULL,
                    health_score INTEGER NOT NULL,
                    health_tier TEXT NOT NULL,
                    upload_date TEXT NOT NULL,
                    last_updated TEXT,
                    payload_json TEXT NOT NULL
                );
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_contract_records_file_hash
                ON contract_records (file_hash);
                """
            )
            self._conn = conn
            return conn

    def _parse_payload(self, payload_json: str) -> ContractRecord:
        try:
            return ContractRecord.model_validate(json.loads(payload_json))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise StoreError(f"Stored contract payload is corrupt: {exc}") from exc

    def _fetch_one(self, query: str, params: tuple) -> ContractRecord | None:
        conn = self._get_connection()
        try:
            with self._conn_lock:
                row = conn.execute(query, params).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Contract store query failed: {exc}") from exc
        if not row:
            return None
        return self._parse_payload(row[0])

    def find_by_content_hash(self, file_hash: str) -> ContractRecord | None:
        return self._fetch_one(
            "SELECT payload_json FROM contract_records WHERE file_hash = ? ORDER BY upload_date LIMIT 1",
            (file_hash,),
        )

    def find_by_id(self, contract_id: str) -> ContractRecord | None:
        return self._fetch_one(
            "SELECT payload_json FROM contract_records WHERE contract_id = ?",
            (contract_id,),
        )

    def upsert(self, record: ContractRecord) -> ContractRecord:
        conn = self._get_connection()
        payload = record.to_storage()
        try:
            with self._conn_lock:
                conn.execute(
                    """
                    INSERT INTO contract_records (
                        contract_id, file_hash, filename, seller_company, document_type,
                        health_score, health_tier, upload_date, last_updated, payload_json
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(contract_id) DO UPDATE SET
                        file_hash = excluded.file_hash,
                        filename = excluded.filename,
                        seller_company = excluded.seller_company,
                        document_type = excluded.document_type,
                        health_score = excluded.health_score,
                        health_tier = excluded.health_tier,
                        upload_date = excluded.upload_date,
                        last_updated = excluded.last_updated,
                        payload_json = excluded.payload_json
                    """,
                    (
                        record.contract_id,
                        record.file_hash,
                        record.filename,
                        record.seller_company,
                        record.document_type,
                        record.health_score,
                        record.health_tier,
                        payload["upload_date"],
                        payload["last_updated"],
                        json.dumps(payload, ensure_ascii=False),
                    ),
                )
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to write contract '{record.contract_id}': {exc}") from exc
        logger.debug("contract_store_upsert backend=sqlite contract_id=%s", record.contract_id)
        return record

    def delete_by_id(self, contract_id: str) -> bool:
        conn = self._get_connection()
        try:
            with self._conn_lock:
                cur = conn.execute("DELETE FROM contract_records WHERE contract_id = ?", (contract_id,))
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to delete contract '{contract_id}': {exc}") from exc
        return cur.rowcount > 0

    def list_summaries(self) -> list[ContractSummary]:
        conn = self._get_connection()
        try:
            with self._conn_lock:
                rows = conn.execute(
                    """
                    SELECT contract_id, filename, seller_company, document_type,
                           health_score, health_tier, upload_date, last_updated
                    FROM contract_records
                    ORDER BY upload_date
                    """
                ).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Contract store query failed: {exc}") from exc
        return [
            ContractSummary(
                contract_id=row[0],
                filename=row[1],
                seller_company=row[2],
                document_type=row[3],
                health_score=row[4],
                health_tier=row[5],
                upload_date=row[6],
                last_updated=row[7],
            )
            for row in rows
        ]

    def close(self) -> None:
        with self._conn_lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
