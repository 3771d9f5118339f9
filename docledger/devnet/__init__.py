# docledger/devnet/__init__.py
"""
Development ledger: an in-process stand-in for the remote issuer registry and
document ledger, backed by a LedgerStore.
"""

from .contracts import ContractRevert, RemoteError, SubmissionRejected, UnknownContract
from .node import Deployment, LedgerNode

__all__ = [
    "LedgerNode", "Deployment",
    "RemoteError", "ContractRevert", "SubmissionRejected", "UnknownContract",
]
