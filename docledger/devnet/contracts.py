# docledger/devnet/contracts.py
"""
The two contract surfaces of the development ledger.

Rules live here and only here: the client never re-checks names, duplicates or
ownership, it just reports what the ledger decided. Reason strings match the
deployed contracts so the same classification applies to both.
"""

from typing import Any, Dict, List, Optional, Tuple

from docledger.core.types import ZERO_ADDRESS
from docledger.crypto.hashing import is_digest
from docledger.storage import LedgerStore, StoredDocument

REGISTRY_KIND = "IssuerRegistry"
LEDGER_KIND = "DocumentVerifier"

# Reasons the ledger reverts with
EMPTY_NAME = "Empty name"
ALREADY_STORED = "Already stored"
INVALID_ISSUER = "Invalid issuer"
DOCUMENT_MISSING = "Document does not exist"
NOT_OWNER = "Not document owner"


class RemoteError(Exception):
    """Base class for everything the development ledger raises."""


class SubmissionRejected(RemoteError):
    """Transaction refused before it was queued (bad signature, nonce, call shape)."""


class UnknownContract(RemoteError):
    pass


class ContractRevert(RemoteError):
    def __init__(self, reason: str):
        super().__init__(f"execution reverted: {reason}")
        self.reason = reason


def require(condition: bool, reason: str) -> None:
    if not condition:
        raise ContractRevert(reason)


def check_arg(kind: str, value: Any) -> bool:
    if kind == "string":
        return isinstance(value, str)
    if kind == "uint256":
        return isinstance(value, int) and not isinstance(value, bool) and value >= 0
    if kind == "bytes32":
        return is_digest(value)
    return False


class Contract:
    kind = ""
    # method name -> argument types
    WRITES: Dict[str, Tuple[str, ...]] = {}
    READS: Dict[str, Tuple[str, ...]] = {}

    def __init__(self, store: LedgerStore, address: str):
        self.store = store
        self.address = address.lower()

    def check_call(self, method: str, args: List[Any], write: bool) -> None:
        table = self.WRITES if write else self.READS
        if method not in table:
            raise SubmissionRejected(f"{self.kind} has no {'write' if write else 'read'} method '{method}'")
        types = table[method]
        if len(args) != len(types):
            raise SubmissionRejected(f"{method} expects {len(types)} arguments, got {len(args)}")
        for i, (kind, value) in enumerate(zip(types, args)):
            if not check_arg(kind, value):
                raise SubmissionRejected(f"{method}: argument {i} is not a valid {kind}")


class IssuerRegistryContract(Contract):
    kind = REGISTRY_KIND
    WRITES = {"registerIssuer": ("string", "string", "string")}
    READS = {"getAllIssuers": ()}

    def registerIssuer(self, sender: str, timestamp: int, name: str, organization: str, email: str) -> int:
        require(len(name) > 0, EMPTY_NAME)
        return self.store.insert_issuer(self.address, name, organization, email, sender)

    def getAllIssuers(self) -> List[dict]:
        return [
            {"id": i.id, "name": i.name, "organization": i.organization, "email": i.email, "owner": i.owner_address}
            for i in self.store.list_issuers(self.address)
        ]

    def get(self, issuer_id: int):
        return self.store.get_issuer(self.address, issuer_id)


class DocumentLedgerContract(Contract):
    kind = LEDGER_KIND
    WRITES = {
        "storeDocument": ("bytes32", "uint256"),
        "deleteDocument": ("bytes32",),
    }
    READS = {"verifyDocument": ("bytes32",)}

    def __init__(self, store: LedgerStore, address: str, registry: IssuerRegistryContract):
        super().__init__(store, address)
        self.registry = registry

    def storeDocument(self, sender: str, timestamp: int, digest: str, issuer_id: int) -> None:
        require(self.store.get_document(self.address, digest) is None, ALREADY_STORED)
        require(self.registry.get(issuer_id) is not None, INVALID_ISSUER)
        self.store.put_document(self.address, StoredDocument(digest, issuer_id, sender, timestamp))

    def deleteDocument(self, sender: str, timestamp: int, digest: str) -> None:
        doc: Optional[StoredDocument] = self.store.get_document(self.address, digest)
        require(doc is not None, DOCUMENT_MISSING)
        require(doc.owner_address == sender, NOT_OWNER)
        self.store.remove_document(self.address, digest)

    def verifyDocument(self, digest: str) -> tuple:
        """(exists, id, name, organization, email, owner, timestamp)"""
        doc = self.store.get_document(self.address, digest)
        if doc is None:
            return (False, 0, "", "", "", ZERO_ADDRESS, 0)
        issuer = self.registry.get(doc.issuer_id)
        return (
            True,
            doc.issuer_id,
            issuer.name,
            issuer.organization,
            issuer.email,
            doc.owner_address,
            doc.created_at,
        )
