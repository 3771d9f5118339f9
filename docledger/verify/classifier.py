# docledger/verify/classifier.py
"""
Maps raw failures to a category the user can act on.

Matching runs against the ledger's structured rejection reason when there is
one and the failure message otherwise. Anything unrecognized is Generic, so
classify() never raises.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from docledger.core.errors import FailureKind, GatewayFailure
from docledger.core.types import ClassifiedError, DocumentRecord, ErrorCategory, OperationKind
from docledger.gateway import normalize_failure

GENERIC_SUGGESTION = "Check the diagnostic log for more details."
LOAD_ISSUERS_SUGGESTION = "Check ABI or contract address."


@dataclass(frozen=True)
class Rule:
    category: ErrorCategory
    operations: Tuple[OperationKind, ...]
    needle: str
    suggestion: str


RULES = (
    Rule(ErrorCategory.EMPTY_ISSUER_NAME, (OperationKind.REGISTER_ISSUER,),
         "Empty name", "Issuer name cannot be empty."),
    Rule(ErrorCategory.DUPLICATE_DOCUMENT, (OperationKind.STORE_DOCUMENT,),
         "Already stored", "This document was already stored."),
    Rule(ErrorCategory.NOT_DOCUMENT_OWNER, (OperationKind.DELETE_DOCUMENT,),
         "Not document owner", "You are not the owner of this document."),
    Rule(ErrorCategory.DOCUMENT_NOT_FOUND, (OperationKind.DELETE_DOCUMENT, OperationKind.VERIFY_DOCUMENT),
         "Document does not exist", "This document does not exist on the ledger."),
)

WALLET_SUGGESTIONS = {
    FailureKind.WALLET_UNAVAILABLE: (
        ErrorCategory.WALLET_UNAVAILABLE,
        "Install or open a wallet (signing provider) and try again.",
    ),
    FailureKind.NO_SIGNER: (
        ErrorCategory.WALLET_UNAVAILABLE,
        "Connect your wallet before sending a transaction.",
    ),
    FailureKind.CONNECTION_REJECTED: (
        ErrorCategory.CONNECTION_REJECTED,
        "Open your wallet and approve the connection request.",
    ),
}


def classify(raw_error, operation: Optional[OperationKind] = None,
             fallback: str = GENERIC_SUGGESTION) -> ClassifiedError:
    """`fallback` is the suggestion given when no rule matches."""
    failure = raw_error if isinstance(raw_error, GatewayFailure) else normalize_failure(raw_error)

    if failure.kind in WALLET_SUGGESTIONS:
        category, suggestion = WALLET_SUGGESTIONS[failure.kind]
        return ClassifiedError(category, failure.message, suggestion)

    text = failure.text
    for rule in RULES:
        if operation in rule.operations and rule.needle in text:
            return ClassifiedError(rule.category, text, rule.suggestion)

    return ClassifiedError(ErrorCategory.GENERIC, text, fallback)


def classify_record(record: DocumentRecord) -> Optional[ClassifiedError]:
    """DocumentNotFound for a verify result without a live record, else None."""
    if record.exists:
        return None
    return ClassifiedError(
        ErrorCategory.DOCUMENT_NOT_FOUND,
        "This document is not stored on the ledger.",
        "Nothing to act on: store the document first or check you picked the right file.",
    )
