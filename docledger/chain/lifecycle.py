# docledger/chain/lifecycle.py
"""
Submit/confirm state machine for user-triggered writes.

    Idle -> Hashing -> Submitting -> Confirming -> Succeeded | Failed

RegisterIssuer has no input to hash and goes straight from Idle to
Submitting. Every failure is caught here, classified and attached to the
attempt; nothing propagates to the caller except AttemptInProgress, which
means the trigger was rejected and no attempt was created. A cancelled caller
fails the attempt before the in-flight slot is released, then gets the
CancelledError back.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from docledger.core.errors import AttemptInProgress, FailureKind, GatewayFailure
from docledger.core.types import AttemptState, OperationKind, TransactionAttempt
from docledger.crypto.hashing import digest_source, source_label
from docledger.gateway import ContractGateway, PendingTransaction
from docledger.verify.classifier import LOAD_ISSUERS_SUGGESTION, classify
from docledger.wallet.session import WalletSession
from .cache import IssuerCache
from .logs import ActivityLog, ErrorLog, utc_now

logger = logging.getLogger(__name__)

LOCATIONS = {
    OperationKind.REGISTER_ISSUER: "registerIssuer",
    OperationKind.STORE_DOCUMENT: "storeDocument",
    OperationKind.DELETE_DOCUMENT: "deleteDocument",
}

Submit = Callable[..., Awaitable[PendingTransaction]]

CANCELLED_MESSAGE = "Stopped waiting for the ledger; the transaction may still be finalized"


class TransactionLifecycle:
    def __init__(self, wallet: WalletSession, gateway: ContractGateway, cache: IssuerCache,
                 activity: ActivityLog, errors: ErrorLog):
        self.wallet = wallet
        self.gateway = gateway
        self.cache = cache
        self.activity = activity
        self.errors = errors
        self._busy = False
        self._current: Optional[TransactionAttempt] = None

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def current(self) -> Optional[TransactionAttempt]:
        """The in-flight attempt, or the last finished one."""
        return self._current

    def _begin(self, operation: OperationKind, label: str) -> TransactionAttempt:
        # Must run before the first await so two triggers can never both pass
        if self._busy:
            raise AttemptInProgress(
                f"Cannot start {operation.value}: {self._current.operation.value} is still {self._current.state.value}"
            )
        self._busy = True
        attempt = TransactionAttempt(operation=operation, label=label, started_at=utc_now())
        self._current = attempt
        return attempt

    async def register_issuer(self, name: str, organization: str, email: str) -> TransactionAttempt:
        attempt = self._begin(OperationKind.REGISTER_ISSUER, f"{name} ({organization})")

        async def submit(signer, _digest):
            return await self.gateway.submit_register_issuer(signer, name, organization, email)

        return await self._run(attempt, None, submit)

    async def store_document(self, source, issuer_id: int, label: Optional[str] = None) -> TransactionAttempt:
        attempt = self._begin(OperationKind.STORE_DOCUMENT, label or source_label(source))

        async def submit(signer, digest):
            return await self.gateway.submit_store_document(signer, digest, issuer_id)

        return await self._run(attempt, source, submit)

    async def delete_document(self, source, label: Optional[str] = None) -> TransactionAttempt:
        attempt = self._begin(OperationKind.DELETE_DOCUMENT, label or source_label(source))

        async def submit(signer, digest):
            return await self.gateway.submit_delete_document(signer, digest)

        return await self._run(attempt, source, submit)

    async def _run(self, attempt: TransactionAttempt, source, submit: Submit) -> TransactionAttempt:
        try:
            if source is not None:
                attempt.advance(AttemptState.HASHING)
                attempt.digest = await digest_source(source)

            attempt.advance(AttemptState.SUBMITTING)
            pending = await submit(self.wallet.signer(), attempt.digest)
            attempt.remote_reference = pending.reference

            attempt.advance(AttemptState.CONFIRMING)
            receipt = await self.gateway.confirm(pending)
            attempt.remote_reference = receipt.reference
            attempt.result = receipt.result

            if attempt.operation is OperationKind.REGISTER_ISSUER:
                await self._refresh_issuers()

            attempt.advance(AttemptState.SUCCEEDED)
            self.activity.add(self._success_message(attempt))
        except asyncio.CancelledError:
            if not attempt.finished:
                self._record_failure(
                    attempt, GatewayFailure(FailureKind.TRANSPORT, f"{CANCELLED_MESSAGE} ({attempt.state.value})")
                )
            raise
        except Exception as e:
            if attempt.finished:
                raise
            logger.debug("%s failed in %s", attempt.operation.value, attempt.state.value, exc_info=True)
            self._record_failure(attempt, e)
        finally:
            self._busy = False
        return attempt

    def _record_failure(self, attempt: TransactionAttempt, raw) -> None:
        location = LOCATIONS[attempt.operation]
        error = classify(raw, attempt.operation)
        attempt.fail(error)
        self.errors.add(location, error)
        self.activity.add(f"{location}: {error.message}", "error")

    async def _refresh_issuers(self) -> None:
        # The registration itself is final; a failed reload is reported but does not undo it
        try:
            await self.cache.refresh()
        except Exception as e:
            error = classify(e, fallback=LOAD_ISSUERS_SUGGESTION)
            self.errors.add("loadIssuers", error)
            self.activity.add(f"loadIssuers: {error.message}", "error")

    @staticmethod
    def _success_message(attempt: TransactionAttempt) -> str:
        if attempt.operation is OperationKind.REGISTER_ISSUER:
            return f"Registered issuer: {attempt.label} as #{attempt.result}"
        if attempt.operation is OperationKind.STORE_DOCUMENT:
            return f"Stored hash: {attempt.label} ({attempt.digest})"
        return f"Deleted document: {attempt.label} ({attempt.digest})"
