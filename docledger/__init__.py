# docledger/__init__.py
"""
docledger: record, verify and revoke document digests on an issuer-backed ledger.

Hashes files locally, registers trusted issuers, and drives every ledger write
through a submit/confirm state machine that turns remote failures into
actionable, classified errors.
"""

__version__ = "0.1.0-dev"

from docledger.chain.session import LedgerSession
from docledger.crypto.hashing import digest
from docledger.crypto.keys import SignerKeyPair
from docledger.gateway import create_gateway
from docledger.wallet.session import KeyringProvider

__all__ = ["LedgerSession", "SignerKeyPair", "KeyringProvider", "create_gateway", "digest"]
