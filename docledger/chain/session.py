# docledger/chain/session.py
from typing import Optional, Tuple

from docledger.config import ClientConfig
from docledger.core.errors import LedgerError, ReadError
from docledger.core.types import DocumentRecord, Issuer, OperationKind, TransactionAttempt
from docledger.crypto.hashing import digest_source, source_label
from docledger.gateway import ContractGateway, create_gateway
from docledger.verify.classifier import GENERIC_SUGGESTION, LOAD_ISSUERS_SUGGESTION, classify
from docledger.wallet.session import SigningProvider, WalletSession
from .cache import IssuerCache
from .lifecycle import TransactionLifecycle
from .logs import ActivityLog, ErrorLog


class LedgerSession:
    """
    One user session against the ledger.

    Wires the independent components together: the wallet owns the identity,
    the cache owns the issuer list, the lifecycle owns the single in-flight
    write, and the two logs collect what happened. Nothing here is persisted.
    """

    def __init__(self, gateway: ContractGateway, provider: Optional[SigningProvider] = None):
        self.gateway = gateway
        self.wallet = WalletSession(provider)
        self.activity = ActivityLog()
        self.errors = ErrorLog()
        self.issuers = IssuerCache(gateway)
        self.lifecycle = TransactionLifecycle(self.wallet, gateway, self.issuers, self.activity, self.errors)

    @classmethod
    def from_config(cls, config: ClientConfig, provider: Optional[SigningProvider] = None) -> "LedgerSession":
        gateway = create_gateway(config.ledger_uri, config.registry_address, config.verifier_address)
        return cls(gateway, provider)

    async def start(self) -> "LedgerSession":
        """
        Initial issuer load, then a silent reconnect to an account the provider
        already granted. A failed load is logged; the session stays usable.
        """
        try:
            await self.load_issuers()
        except ReadError:
            pass

        identity = await self.wallet.resume()
        if identity is not None:
            self.activity.add(f"Auto-connected: {identity}")
        return self

    # ── wallet

    async def connect(self, account: Optional[str] = None) -> str:
        try:
            identity = await self.wallet.connect(account)
        except LedgerError as e:
            self._read_failed("connectWallet", e)
            raise
        self.activity.add(f"Wallet connected: {identity}")
        return identity

    @property
    def identity(self) -> Optional[str]:
        return self.wallet.current_identity()

    # ── reads

    async def load_issuers(self) -> Tuple[Issuer, ...]:
        try:
            issuers = await self.issuers.refresh()
        except Exception as e:
            raise ReadError(self._read_failed("loadIssuers", e, fallback=LOAD_ISSUERS_SUGGESTION))
        if issuers:
            self.activity.add(f"Loaded {len(issuers)} issuers from the ledger")
        return issuers

    async def verify_document(self, source, label: Optional[str] = None) -> DocumentRecord:
        label = label or source_label(source)
        try:
            record = await self.gateway.verify_document(await digest_source(source))
        except Exception as e:
            raise ReadError(self._read_failed("verifyDocument", e, OperationKind.VERIFY_DOCUMENT))

        if record.exists:
            self.activity.add(f"Verified file: {label} (issuer {record.name})")
        else:
            self.activity.add(f"No ledger record for {label}")
        return record

    def _read_failed(self, location: str, exc: Exception, operation: Optional[OperationKind] = None,
                     fallback: str = GENERIC_SUGGESTION):
        error = classify(exc, operation, fallback)
        self.errors.add(location, error)
        self.activity.add(f"{location}: {error.message}", "error")
        return error

    # ── writes

    async def register_issuer(self, name: str, organization: str, email: str) -> TransactionAttempt:
        return await self.lifecycle.register_issuer(name, organization, email)

    async def store_document(self, source, issuer_id: int, label: Optional[str] = None) -> TransactionAttempt:
        return await self.lifecycle.store_document(source, issuer_id, label)

    async def delete_document(self, source, label: Optional[str] = None) -> TransactionAttempt:
        return await self.lifecycle.delete_document(source, label)

    # ── lifetime

    def close(self) -> None:
        self.gateway.close()

    async def __aenter__(self):
        return await self.start()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.close()
