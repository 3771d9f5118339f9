# docledger/gateway/devnet.py
import functools
import logging
from typing import List, Optional

from docledger.core.errors import FailureKind, GatewayError, GatewayFailure
from docledger.core.types import DocumentRecord, Issuer, OperationKind
from docledger.crypto.hashing import normalize_digest
from docledger.crypto.keys import SignerKeyPair
from docledger.devnet import ContractRevert, LedgerNode, SubmissionRejected
from docledger.storage import REVERTED
from . import ContractGateway, PendingTransaction, TransactionReceipt, normalize_failure

logger = logging.getLogger(__name__)


def _to_failure(exc: Exception) -> GatewayFailure:
    if isinstance(exc, ContractRevert):
        return GatewayFailure(FailureKind.REVERTED, str(exc), exc.reason)
    if isinstance(exc, (SubmissionRejected, ValueError)):
        return GatewayFailure(FailureKind.SUBMISSION_REJECTED, str(exc))
    return normalize_failure(exc)


def normalized(fn):
    """Re-raise anything escaping a gateway call as GatewayError."""

    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except GatewayError:
            raise
        except Exception as e:
            raise GatewayError(_to_failure(e)) from e

    return wrapper


class DevnetGateway(ContractGateway):
    """Gateway to a LedgerNode at fixed registry / document-ledger addresses."""

    def __init__(self, node: LedgerNode, registry_address: str, verifier_address: str):
        self.node = node
        self.registry_address = registry_address
        self.verifier_address = verifier_address

    def _require_signer(self, signer: Optional[SignerKeyPair]) -> SignerKeyPair:
        if signer is None or not signer.can_sign:
            raise GatewayError(GatewayFailure(FailureKind.NO_SIGNER, "No active identity to sign with; connect a wallet first"))
        return signer

    async def _submit(self, signer: Optional[SignerKeyPair], operation: OperationKind,
                      to: str, method: str, args: list) -> PendingTransaction:
        signer = self._require_signer(signer)
        payload = {
            "from": signer.address,
            "to": to,
            "method": method,
            "args": args,
            "nonce": self.node.nonce(signer.address),
        }
        reference = await self.node.send_transaction(signer.sign_transaction(payload))
        logger.debug("Submitted %s as %s", operation.value, reference)
        return PendingTransaction(reference, operation, signer.address)

    @normalized
    async def submit_register_issuer(self, signer, name, organization, email) -> PendingTransaction:
        return await self._submit(
            signer, OperationKind.REGISTER_ISSUER, self.registry_address,
            "registerIssuer", [name, organization, email],
        )

    @normalized
    async def submit_store_document(self, signer, digest, issuer_id) -> PendingTransaction:
        return await self._submit(
            signer, OperationKind.STORE_DOCUMENT, self.verifier_address,
            "storeDocument", [normalize_digest(digest), issuer_id],
        )

    @normalized
    async def submit_delete_document(self, signer, digest) -> PendingTransaction:
        return await self._submit(
            signer, OperationKind.DELETE_DOCUMENT, self.verifier_address,
            "deleteDocument", [normalize_digest(digest)],
        )

    @normalized
    async def confirm(self, pending: PendingTransaction) -> TransactionReceipt:
        tx = await self.node.wait_for_receipt(pending.reference)
        if tx.status == REVERTED:
            raise ContractRevert(tx.reason)
        return TransactionReceipt(
            reference=tx.reference,
            operation=pending.operation,
            block_number=tx.block_number,
            timestamp=tx.timestamp,
            result=tx.result,
        )

    @normalized
    async def list_issuers(self) -> List[Issuer]:
        rows = await self.node.call(self.registry_address, "getAllIssuers")
        return [
            Issuer(id=r["id"], name=r["name"], organization=r["organization"],
                   email=r["email"], owner_address=r["owner"])
            for r in rows
        ]

    @normalized
    async def verify_document(self, digest: str) -> DocumentRecord:
        digest = normalize_digest(digest)
        exists, issuer_id, name, org, email, owner, timestamp = await self.node.call(
            self.verifier_address, "verifyDocument", digest
        )
        if not exists:
            return DocumentRecord.missing(digest)
        return DocumentRecord(
            digest=digest,
            exists=True,
            issuer_id=issuer_id,
            name=name,
            organization=org,
            email=email,
            owner_address=owner,
            created_at=timestamp,
        )

    def close(self) -> None:
        self.node.close()
