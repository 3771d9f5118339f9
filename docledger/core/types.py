# docledger/core/types.py
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from docledger.core.errors import InvalidTransition

ZERO_ADDRESS = "0x" + "00" * 20


class OperationKind(str, Enum):
    REGISTER_ISSUER = "RegisterIssuer"
    STORE_DOCUMENT = "StoreDocument"
    VERIFY_DOCUMENT = "VerifyDocument"   # read-only, never runs through the lifecycle
    DELETE_DOCUMENT = "DeleteDocument"


class AttemptState(str, Enum):
    IDLE = "Idle"
    HASHING = "Hashing"
    SUBMITTING = "Submitting"
    CONFIRMING = "Confirming"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (AttemptState.SUCCEEDED, AttemptState.FAILED)


class ErrorCategory(str, Enum):
    EMPTY_ISSUER_NAME = "EmptyIssuerName"
    DUPLICATE_DOCUMENT = "DuplicateDocument"
    NOT_DOCUMENT_OWNER = "NotDocumentOwner"
    DOCUMENT_NOT_FOUND = "DocumentNotFound"
    WALLET_UNAVAILABLE = "WalletUnavailable"
    CONNECTION_REJECTED = "ConnectionRejected"
    GENERIC = "Generic"


# Allowed forward moves. RegisterIssuer has nothing to hash and goes Idle -> Submitting.
TRANSITIONS = {
    AttemptState.IDLE: (AttemptState.HASHING, AttemptState.SUBMITTING),
    AttemptState.HASHING: (AttemptState.SUBMITTING, AttemptState.FAILED),
    AttemptState.SUBMITTING: (AttemptState.CONFIRMING, AttemptState.FAILED),
    AttemptState.CONFIRMING: (AttemptState.SUCCEEDED, AttemptState.FAILED),
    AttemptState.SUCCEEDED: (),
    AttemptState.FAILED: (),
}


@dataclass(frozen=True)
class Issuer:
    """Trusted issuing party as reported by the issuer registry."""
    id: int
    name: str
    organization: str
    email: str
    owner_address: str


@dataclass(frozen=True)
class DocumentRecord:
    """Result of a ledger lookup. Only `digest` and `exists` mean anything when exists=False."""
    digest: str
    exists: bool
    issuer_id: int = 0
    name: str = ""
    organization: str = ""
    email: str = ""
    owner_address: str = ZERO_ADDRESS
    created_at: int = 0              # unix seconds, set by the ledger at finalization

    @classmethod
    def missing(cls, digest: str) -> "DocumentRecord":
        return cls(digest=digest, exists=False)


@dataclass(frozen=True)
class ClassifiedError:
    category: ErrorCategory
    message: str
    suggestion: str

    def __str__(self):
        return f"{self.category.value}: {self.message}"


@dataclass
class TransactionAttempt:
    """
    One run of the submit/confirm state machine for a single user-triggered write.
    States only move forward (see TRANSITIONS); a finished attempt is never reused.
    """
    operation: OperationKind
    label: str = ""                         # what the user acted on, e.g. a file name
    state: AttemptState = AttemptState.IDLE
    digest: Optional[str] = None
    remote_reference: Optional[str] = None
    result: Optional[int] = None            # issuer id for RegisterIssuer
    error: Optional[ClassifiedError] = None
    started_at: Optional[datetime] = None
    history: List[AttemptState] = field(default_factory=lambda: [AttemptState.IDLE])

    @property
    def succeeded(self) -> bool:
        return self.state is AttemptState.SUCCEEDED

    @property
    def failed(self) -> bool:
        return self.state is AttemptState.FAILED

    @property
    def finished(self) -> bool:
        return self.state.is_terminal

    def advance(self, new_state: AttemptState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise InvalidTransition(f"{self.operation.value}: {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)

    def fail(self, error: ClassifiedError) -> None:
        self.advance(AttemptState.FAILED)
        self.error = error
