# docledger/storage/sqlite.py
import json
import sqlite3
from pathlib import Path
from typing import List, Optional, Union

from docledger.core.canon import canonical_json_str
from docledger.core.types import Issuer
from . import LedgerStore, StoredDocument, TransactionRecord, PENDING


class SQLiteLedgerStore(LedgerStore):
    """SQLite state for the development ledger. ":memory:" gives a throwaway ledger."""

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        if str(db_path) == ":memory:":
            self.db_path: Optional[Path] = None
        else:
            self.db_path = Path(db_path)
            # Ensure the entire parent directory tree exists
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.db_path = self.db_path.resolve()

        self._conn: Optional[sqlite3.Connection] = None
        self._connect()

    def _connect(self):
        conn_str = str(self.db_path) if self.db_path else ":memory:"
        self._conn = sqlite3.connect(conn_str, isolation_level=None)
        if self.db_path:
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._create_schema()

    def _create_schema(self):
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS contracts (
                address          TEXT    PRIMARY KEY,
                kind             TEXT    NOT NULL,
                registry_address TEXT
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS issuers (
                registry      TEXT    NOT NULL,
                id            INTEGER NOT NULL,
                name          TEXT    NOT NULL,
                organization  TEXT    NOT NULL,
                email         TEXT    NOT NULL,
                owner         TEXT    NOT NULL,
                PRIMARY KEY (registry, id)
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                verifier    TEXT    NOT NULL,
                digest      TEXT    NOT NULL,
                issuer_id   INTEGER NOT NULL,
                owner       TEXT    NOT NULL,
                created_at  INTEGER NOT NULL,
                PRIMARY KEY (verifier, digest)
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS transactions (
                seq             INTEGER PRIMARY KEY AUTOINCREMENT,
                reference       TEXT    NOT NULL UNIQUE,
                sender          TEXT    NOT NULL,
                nonce           INTEGER NOT NULL,
                canonical_json  TEXT    NOT NULL,
                status          TEXT    NOT NULL,
                reason          TEXT,
                result          INTEGER,
                block_number    INTEGER,
                timestamp       INTEGER
            )
        """)
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_tx_status ON transactions(status, seq)")
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_tx_sender ON transactions(sender)")

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Ledger store connection is closed")
        return self._conn

    # ── contracts

    def add_contract(self, address: str, kind: str, registry_address: Optional[str] = None) -> None:
        self.conn.execute(
            "INSERT INTO contracts (address, kind, registry_address) VALUES (?, ?, ?)",
            (address.lower(), kind, registry_address.lower() if registry_address else None),
        )

    def get_contract(self, address: str) -> Optional[tuple]:
        row = self.conn.execute(
            "SELECT kind, registry_address FROM contracts WHERE address = ?",
            (address.lower(),),
        ).fetchone()
        return tuple(row) if row else None

    # ── issuer registry

    def insert_issuer(self, registry: str, name: str, organization: str, email: str, owner: str) -> int:
        registry = registry.lower()
        # ids are dense and start at 0, in insertion order
        next_id = self.conn.execute(
            "SELECT COUNT(*) FROM issuers WHERE registry = ?", (registry,)
        ).fetchone()[0]
        self.conn.execute("""
            INSERT INTO issuers (registry, id, name, organization, email, owner)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (registry, next_id, name, organization, email, owner))
        return next_id

    def list_issuers(self, registry: str) -> List[Issuer]:
        cursor = self.conn.execute("""
            SELECT id, name, organization, email, owner
            FROM issuers WHERE registry = ? ORDER BY id ASC
        """, (registry.lower(),))
        return [Issuer(*row) for row in cursor]

    def get_issuer(self, registry: str, issuer_id: int) -> Optional[Issuer]:
        row = self.conn.execute("""
            SELECT id, name, organization, email, owner
            FROM issuers WHERE registry = ? AND id = ?
        """, (registry.lower(), issuer_id)).fetchone()
        return Issuer(*row) if row else None

    # ── document ledger

    def get_document(self, verifier: str, digest: str) -> Optional[StoredDocument]:
        row = self.conn.execute("""
            SELECT digest, issuer_id, owner, created_at
            FROM documents WHERE verifier = ? AND digest = ?
        """, (verifier.lower(), digest)).fetchone()
        return StoredDocument(*row) if row else None

    def put_document(self, verifier: str, doc: StoredDocument) -> None:
        # Plain INSERT: a second live record for the same digest is a bug upstream, not an upsert
        self.conn.execute("""
            INSERT INTO documents (verifier, digest, issuer_id, owner, created_at)
            VALUES (?, ?, ?, ?, ?)
        """, (verifier.lower(), doc.digest, doc.issuer_id, doc.owner_address, doc.created_at))

    def remove_document(self, verifier: str, digest: str) -> None:
        self.conn.execute(
            "DELETE FROM documents WHERE verifier = ? AND digest = ?",
            (verifier.lower(), digest),
        )

    # ── transactions

    def add_transaction(self, tx: TransactionRecord) -> None:
        self.conn.execute("""
            INSERT INTO transactions (reference, sender, nonce, canonical_json, status)
            VALUES (?, ?, ?, ?, ?)
        """, (tx.reference, tx.sender, tx.nonce, canonical_json_str(tx.payload), tx.status))

    def _row_to_tx(self, row) -> TransactionRecord:
        ref, sender, nonce, cjson, status, reason, result, block, ts = row
        return TransactionRecord(
            reference=ref,
            sender=sender,
            nonce=nonce,
            payload=json.loads(cjson),
            status=status,
            reason=reason,
            result=result,
            block_number=block,
            timestamp=ts,
        )

    def get_transaction(self, reference: str) -> Optional[TransactionRecord]:
        row = self.conn.execute("""
            SELECT reference, sender, nonce, canonical_json, status, reason, result, block_number, timestamp
            FROM transactions WHERE reference = ?
        """, (reference,)).fetchone()
        return self._row_to_tx(row) if row else None

    def pending_transactions(self) -> List[TransactionRecord]:
        cursor = self.conn.execute("""
            SELECT reference, sender, nonce, canonical_json, status, reason, result, block_number, timestamp
            FROM transactions WHERE status = ? ORDER BY seq ASC
        """, (PENDING,))
        return [self._row_to_tx(row) for row in cursor.fetchall()]

    def finalize_transaction(self, reference: str, status: str, reason: Optional[str],
                             result: Optional[int], block_number: int, timestamp: int) -> None:
        self.conn.execute("""
            UPDATE transactions
            SET status = ?, reason = ?, result = ?, block_number = ?, timestamp = ?
            WHERE reference = ?
        """, (status, reason, result, block_number, timestamp, reference))

    def transaction_count(self, sender: str) -> int:
        return self.conn.execute(
            "SELECT COUNT(*) FROM transactions WHERE sender = ?", (sender,)
        ).fetchone()[0]

    def latest_block(self) -> int:
        row = self.conn.execute("SELECT MAX(block_number) FROM transactions").fetchone()
        return row[0] if row and row[0] is not None else 0

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
