# docledger/config.py
"""
Client configuration.

Every setting resolves in the same order: explicit value (CLI flag), then
environment variable, then default.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# Addresses of the reference deployment (registry first, then the document
# ledger that is constructed with the registry's address).
DEFAULT_REGISTRY_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
DEFAULT_VERIFIER_ADDRESS = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"

DEFAULT_HOME = Path.home() / ".docledger"

ENV_LEDGER = "DOCLEDGER_LEDGER"
ENV_KEY_PATH = "DOCLEDGER_KEY_PATH"
ENV_REGISTRY_ADDRESS = "DOCLEDGER_REGISTRY_ADDRESS"
ENV_VERIFIER_ADDRESS = "DOCLEDGER_VERIFIER_ADDRESS"
ENV_LOG_LEVEL = "DOCLEDGER_LOG_LEVEL"


def _pick(flag, env_name: str, default):
    if flag:
        return flag
    return os.environ.get(env_name) or default


@dataclass(frozen=True)
class ClientConfig:
    ledger_uri: str
    key_path: Path
    registry_address: str = DEFAULT_REGISTRY_ADDRESS
    verifier_address: str = DEFAULT_VERIFIER_ADDRESS
    log_level: str = "WARNING"

    @classmethod
    def resolve(
        cls,
        ledger: Optional[str] = None,
        key_path: Optional[Path] = None,
        registry_address: Optional[str] = None,
        verifier_address: Optional[str] = None,
        log_level: Optional[str] = None,
    ) -> "ClientConfig":
        """Resolve in this order:
        1. explicit argument (CLI flag)
        2. DOCLEDGER_* environment variable
        3. Default: ~/.docledger/devnet.db and ~/.docledger/wallet.key
        """
        ledger_uri = _pick(ledger, ENV_LEDGER, f"sqlite://{DEFAULT_HOME / 'devnet.db'}")
        key = _pick(key_path, ENV_KEY_PATH, DEFAULT_HOME / "wallet.key")
        return cls(
            ledger_uri=str(ledger_uri),
            key_path=Path(key).expanduser(),
            registry_address=_pick(registry_address, ENV_REGISTRY_ADDRESS, DEFAULT_REGISTRY_ADDRESS),
            verifier_address=_pick(verifier_address, ENV_VERIFIER_ADDRESS, DEFAULT_VERIFIER_ADDRESS),
            log_level=str(_pick(log_level, ENV_LOG_LEVEL, "WARNING")).upper(),
        )
