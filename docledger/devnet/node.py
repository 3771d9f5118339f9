# docledger/devnet/node.py
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from docledger.config import DEFAULT_REGISTRY_ADDRESS, DEFAULT_VERIFIER_ADDRESS
from docledger.core.canon import canonical_json
from docledger.core.encoding import b64url_decode
from docledger.crypto.hashing import transaction_hash
from docledger.crypto.keys import SignedTransaction, SignerKeyPair, address_from_public_bytes
from docledger.storage import LedgerStore, TransactionRecord, create_store, PENDING, SUCCESS, REVERTED
from .contracts import (
    LEDGER_KIND,
    REGISTRY_KIND,
    Contract,
    ContractRevert,
    DocumentLedgerContract,
    IssuerRegistryContract,
    RemoteError,
    SubmissionRejected,
    UnknownContract,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Deployment:
    registry_address: str
    verifier_address: str


class LedgerNode:
    """
    In-process development ledger.

    Accepts signed transactions into a pending queue and finalizes them in
    submission order when a block is mined. With auto_mine (the default) a
    block is mined as soon as anyone waits for a receipt; without it, waiters
    suspend until mine() is called, and stay suspended forever if it never is.
    """

    def __init__(self, store: LedgerStore, auto_mine: bool = True,
                 clock: Optional[Callable[[], float]] = None, latency: float = 0.0):
        self.store = store
        self.auto_mine = auto_mine
        self.latency = latency
        self._clock = clock or time.time
        self._waiters: Dict[str, asyncio.Event] = {}

    @classmethod
    def from_uri(cls, uri: str, **kwargs) -> "LedgerNode":
        return cls(create_store(uri), **kwargs)

    # ── deployment

    def provision(self, registry_address: str = DEFAULT_REGISTRY_ADDRESS,
                  verifier_address: str = DEFAULT_VERIFIER_ADDRESS) -> Deployment:
        """
        Deploy the issuer registry, then the document ledger bound to it.
        Re-provisioning the same addresses is a no-op.
        """
        self._deploy(registry_address, REGISTRY_KIND)
        self._deploy(verifier_address, LEDGER_KIND, registry_address)
        if not self.is_provisioned(registry_address, verifier_address):
            raise ValueError(f"Document ledger {verifier_address} is bound to a different registry")
        logger.info("Provisioned registry %s and document ledger %s", registry_address, verifier_address)
        return Deployment(registry_address, verifier_address)

    def _deploy(self, address: str, kind: str, registry_address: Optional[str] = None) -> None:
        existing = self.store.get_contract(address)
        if existing is None:
            self.store.add_contract(address, kind, registry_address)
        elif existing[0] != kind:
            raise ValueError(f"Address {address} already holds a {existing[0]} contract")

    def is_provisioned(self, registry_address: str, verifier_address: str) -> bool:
        registry = self.store.get_contract(registry_address)
        verifier = self.store.get_contract(verifier_address)
        return (
            registry is not None and registry[0] == REGISTRY_KIND
            and verifier is not None and verifier[0] == LEDGER_KIND
            and verifier[1] == registry_address.lower()
        )

    def contract(self, address: str) -> Contract:
        info = self.store.get_contract(address)
        if info is None:
            raise UnknownContract(f"No contract deployed at {address}")
        kind, registry_address = info
        if kind == REGISTRY_KIND:
            return IssuerRegistryContract(self.store, address)
        return DocumentLedgerContract(
            self.store, address, IssuerRegistryContract(self.store, registry_address)
        )

    # ── transactions

    def nonce(self, address: str) -> int:
        return self.store.transaction_count(address)

    @property
    def pending(self) -> List[TransactionRecord]:
        return self.store.pending_transactions()

    async def send_transaction(self, signed: Union[SignedTransaction, dict]) -> str:
        """Validate and queue a signed transaction; returns its reference."""
        await asyncio.sleep(self.latency)
        tx = signed.to_dict() if isinstance(signed, SignedTransaction) else signed

        try:
            payload = tx["payload"]
            sender = payload["from"]
            to = payload["to"]
            method = payload["method"]
            args = list(payload["args"])
            nonce = payload["nonce"]
            public_raw = b64url_decode(tx["public_key"])
            signature = b64url_decode(tx["signature"])
        except (KeyError, TypeError, ValueError) as e:
            raise SubmissionRejected(f"Malformed transaction: {e}")

        try:
            verifier = SignerKeyPair.from_public_b64url(tx["public_key"])
        except ValueError as e:
            raise SubmissionRejected(f"Invalid public key: {e}")
        if address_from_public_bytes(public_raw) != sender:
            raise SubmissionRejected("Sender does not match signing key")
        if not verifier.verify_bytes(signature, canonical_json(payload)):
            raise SubmissionRejected("Invalid signature")

        expected = self.nonce(sender)
        if nonce != expected:
            raise SubmissionRejected(f"Invalid nonce: expected {expected}, got {nonce}")

        self.contract(to).check_call(method, args, write=True)

        reference = transaction_hash(tx)
        self.store.add_transaction(TransactionRecord(reference, sender, nonce, payload))
        logger.debug("Queued %s.%s from %s as %s", to, method, sender, reference)
        return reference

    def mine(self) -> int:
        """Finalize every pending transaction in one block. Returns how many were included."""
        pending = self.store.pending_transactions()
        if not pending:
            return 0

        block = self.store.latest_block() + 1
        timestamp = int(self._clock())
        for tx in pending:
            status, reason, result = self._execute(tx, timestamp)
            self.store.finalize_transaction(tx.reference, status, reason, result, block, timestamp)
            logger.debug("Block %d: %s %s%s", block, tx.reference, status, f" ({reason})" if reason else "")

        for tx in pending:
            event = self._waiters.pop(tx.reference, None)
            if event is not None:
                event.set()
        return len(pending)

    def _execute(self, tx: TransactionRecord, timestamp: int):
        payload = tx.payload
        try:
            contract = self.contract(payload["to"])
            result = getattr(contract, payload["method"])(tx.sender, timestamp, *payload["args"])
        except ContractRevert as e:
            return REVERTED, e.reason, None
        except RemoteError as e:
            return REVERTED, str(e), None
        return SUCCESS, None, result if isinstance(result, int) else None

    async def wait_for_receipt(self, reference: str) -> TransactionRecord:
        await asyncio.sleep(self.latency)
        tx = self.store.get_transaction(reference)
        if tx is None:
            raise RemoteError(f"Unknown transaction {reference}")

        if tx.status == PENDING:
            if self.auto_mine:
                self.mine()
            else:
                event = self._waiters.setdefault(reference, asyncio.Event())
                await event.wait()
            tx = self.store.get_transaction(reference)
        return tx

    # ── reads

    async def call(self, address: str, method: str, *args: Any) -> Any:
        await asyncio.sleep(self.latency)
        contract = self.contract(address)
        contract.check_call(method, list(args), write=False)
        return getattr(contract, method)(*args)

    def close(self) -> None:
        self.store.close()
