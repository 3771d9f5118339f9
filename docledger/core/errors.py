# docledger/core/errors.py
"""
Exception hierarchy for the client.

Anything the remote ledger (or the wallet) throws at us is normalized at the
gateway boundary into a GatewayError carrying a GatewayFailure, so the
classifier only ever sees a closed set of failure kinds.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from docledger.core.types import ClassifiedError


class FailureKind(str, Enum):
    REVERTED = "reverted"                       # ledger finalized the tx as failed; reason is set
    SUBMISSION_REJECTED = "submission_rejected" # ledger refused to accept the tx at all
    NO_SIGNER = "no_signer"                     # write attempted without an active identity
    WALLET_UNAVAILABLE = "wallet_unavailable"
    CONNECTION_REJECTED = "connection_rejected"
    TRANSPORT = "transport"                     # anything else


@dataclass(frozen=True)
class GatewayFailure:
    kind: FailureKind
    message: str
    reason: Optional[str] = None    # structured rejection reason from the ledger, when it gave one

    @property
    def text(self) -> str:
        return self.reason or self.message


class LedgerError(Exception):
    """Base class for every error raised by docledger itself."""


class WalletUnavailable(LedgerError):
    def __init__(self, message: str = "No signing provider is available"):
        super().__init__(message)


class ConnectionRejected(LedgerError):
    def __init__(self, message: str = "The wallet holder declined the connection request"):
        super().__init__(message)


class WalletBusy(LedgerError):
    """A connect() is already in flight for this session."""


class AttemptInProgress(LedgerError):
    """Another write attempt has not reached a terminal state yet."""


class InvalidTransition(LedgerError):
    """A TransactionAttempt was asked to move backwards or skip a phase."""


class GatewayError(LedgerError):
    def __init__(self, failure: GatewayFailure):
        super().__init__(failure.text)
        self.failure = failure

    @property
    def reason(self) -> Optional[str]:
        return self.failure.reason


class ReadError(LedgerError):
    """A read (list issuers, verify document) failed; carries the classified error."""

    def __init__(self, error: "ClassifiedError"):
        super().__init__(str(error))
        self.error = error
