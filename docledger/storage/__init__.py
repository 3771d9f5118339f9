# docledger/storage/__init__.py
"""
State backends for the development ledger (issuers, documents, transactions).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from docledger.core.types import Issuer

PENDING = "pending"
SUCCESS = "success"
REVERTED = "reverted"


@dataclass(frozen=True)
class StoredDocument:
    digest: str
    issuer_id: int
    owner_address: str
    created_at: int


@dataclass(frozen=True)
class TransactionRecord:
    reference: str
    sender: str
    nonce: int
    payload: dict
    status: str = PENDING
    reason: Optional[str] = None
    result: Optional[int] = None
    block_number: Optional[int] = None
    timestamp: Optional[int] = None


class LedgerStore(ABC):
    """Abstract base for all ledger state implementations."""

    # contracts
    @abstractmethod
    def add_contract(self, address: str, kind: str, registry_address: Optional[str] = None) -> None:
        pass

    @abstractmethod
    def get_contract(self, address: str) -> Optional[tuple]:
        """(kind, registry_address) or None when nothing is deployed there."""

    # issuer registry
    @abstractmethod
    def insert_issuer(self, registry: str, name: str, organization: str, email: str, owner: str) -> int:
        pass

    @abstractmethod
    def list_issuers(self, registry: str) -> List[Issuer]:
        pass

    @abstractmethod
    def get_issuer(self, registry: str, issuer_id: int) -> Optional[Issuer]:
        pass

    # document ledger
    @abstractmethod
    def get_document(self, verifier: str, digest: str) -> Optional[StoredDocument]:
        pass

    @abstractmethod
    def put_document(self, verifier: str, doc: StoredDocument) -> None:
        pass

    @abstractmethod
    def remove_document(self, verifier: str, digest: str) -> None:
        pass

    # transactions
    @abstractmethod
    def add_transaction(self, tx: TransactionRecord) -> None:
        pass

    @abstractmethod
    def get_transaction(self, reference: str) -> Optional[TransactionRecord]:
        pass

    @abstractmethod
    def pending_transactions(self) -> List[TransactionRecord]:
        """Pending transactions in submission order."""

    @abstractmethod
    def finalize_transaction(self, reference: str, status: str, reason: Optional[str],
                             result: Optional[int], block_number: int, timestamp: int) -> None:
        pass

    @abstractmethod
    def transaction_count(self, sender: str) -> int:
        """Submitted transactions (pending included) from sender; the next nonce."""

    @abstractmethod
    def latest_block(self) -> int:
        pass

    @abstractmethod
    def close(self) -> None:
        pass


def create_store(uri: str) -> LedgerStore:
    from .sqlite import SQLiteLedgerStore

    stripped = uri.strip()
    if stripped in ("memory://", ":memory:"):
        return SQLiteLedgerStore(":memory:")

    if stripped.startswith("sqlite://"):
        # sqlite:///abs/path.db is absolute, sqlite://rel/path.db is relative to the cwd
        raw_path = stripped[len("sqlite://"):]
        if not raw_path:
            raise ValueError(f"No database path in ledger URI: {uri}")
        return SQLiteLedgerStore(Path(raw_path).expanduser().resolve())

    if "://" in stripped:
        raise ValueError(f"Unsupported ledger URI: {uri}")

    if not stripped:
        raise ValueError("Empty ledger URI")

    # Plain file path -> SQLite file
    return SQLiteLedgerStore(Path(stripped).expanduser().resolve())


from .sqlite import SQLiteLedgerStore

__all__ = [
    "LedgerStore", "SQLiteLedgerStore", "StoredDocument", "TransactionRecord",
    "create_store", "PENDING", "SUCCESS", "REVERTED",
]
