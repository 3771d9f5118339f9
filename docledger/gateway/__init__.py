# docledger/gateway/__init__.py
"""
Typed façade over the issuer registry and the document ledger.

Writes are two-phased: submit_* returns a PendingTransaction as soon as the
ledger has accepted it, confirm() suspends until it is finalized. Every
failure leaving a gateway is a GatewayError.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from docledger.config import DEFAULT_REGISTRY_ADDRESS, DEFAULT_VERIFIER_ADDRESS
from docledger.core.errors import (
    ConnectionRejected,
    FailureKind,
    GatewayError,
    GatewayFailure,
    WalletUnavailable,
)
from docledger.core.types import DocumentRecord, Issuer, OperationKind
from docledger.crypto.keys import SignerKeyPair
from docledger.devnet import LedgerNode


@dataclass(frozen=True)
class PendingTransaction:
    reference: str
    operation: OperationKind
    sender: str


@dataclass(frozen=True)
class TransactionReceipt:
    reference: str
    operation: OperationKind
    block_number: int
    timestamp: int
    result: Optional[int] = None    # issuer id for RegisterIssuer


def normalize_failure(exc: BaseException) -> GatewayFailure:
    """Turn whatever was raised into the closed GatewayFailure union."""
    if isinstance(exc, GatewayError):
        return exc.failure
    if isinstance(exc, WalletUnavailable):
        return GatewayFailure(FailureKind.WALLET_UNAVAILABLE, str(exc))
    if isinstance(exc, ConnectionRejected):
        return GatewayFailure(FailureKind.CONNECTION_REJECTED, str(exc))

    # Duck-typed errors: prefer a structured `reason`, fall back to the message
    reason = getattr(exc, "reason", None)
    message = str(exc) or exc.__class__.__name__
    return GatewayFailure(
        FailureKind.TRANSPORT,
        message,
        reason if isinstance(reason, str) and reason else None,
    )


class ContractGateway(ABC):
    """Stateless façade; holds nothing but the handle to the remote services."""

    # ── writes, phase 1

    @abstractmethod
    async def submit_register_issuer(self, signer: Optional[SignerKeyPair], name: str,
                                     organization: str, email: str) -> PendingTransaction:
        pass

    @abstractmethod
    async def submit_store_document(self, signer: Optional[SignerKeyPair], digest: str,
                                    issuer_id: int) -> PendingTransaction:
        pass

    @abstractmethod
    async def submit_delete_document(self, signer: Optional[SignerKeyPair], digest: str) -> PendingTransaction:
        pass

    # ── writes, phase 2

    @abstractmethod
    async def confirm(self, pending: PendingTransaction) -> TransactionReceipt:
        pass

    # ── reads

    @abstractmethod
    async def list_issuers(self) -> List[Issuer]:
        pass

    @abstractmethod
    async def verify_document(self, digest: str) -> DocumentRecord:
        pass

    def close(self) -> None:
        pass

    # ── one-shot writes

    async def register_issuer(self, signer: Optional[SignerKeyPair], name: str,
                              organization: str, email: str) -> int:
        pending = await self.submit_register_issuer(signer, name, organization, email)
        receipt = await self.confirm(pending)
        return receipt.result

    async def store_document(self, signer: Optional[SignerKeyPair], digest: str, issuer_id: int) -> str:
        pending = await self.submit_store_document(signer, digest, issuer_id)
        return (await self.confirm(pending)).reference

    async def delete_document(self, signer: Optional[SignerKeyPair], digest: str) -> str:
        pending = await self.submit_delete_document(signer, digest)
        return (await self.confirm(pending)).reference


def create_gateway(uri: str, registry_address: Optional[str] = None,
                   verifier_address: Optional[str] = None, **node_kwargs) -> ContractGateway:
    """
    memory://         fresh in-process ledger, provisioned on the spot
    sqlite://<path>   development ledger persisted to a SQLite file
    <path>            same as sqlite://<path>
    """
    registry_address = registry_address or DEFAULT_REGISTRY_ADDRESS
    verifier_address = verifier_address or DEFAULT_VERIFIER_ADDRESS

    node = LedgerNode.from_uri(uri, **node_kwargs)
    if uri.strip() in ("memory://", ":memory:"):
        node.provision(registry_address, verifier_address)
    return DevnetGateway(node, registry_address, verifier_address)


from .devnet import DevnetGateway

__all__ = [
    "ContractGateway", "DevnetGateway", "PendingTransaction", "TransactionReceipt",
    "create_gateway", "normalize_failure",
]
