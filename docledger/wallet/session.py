# docledger/wallet/session.py
import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional, Union

from docledger.core.errors import ConnectionRejected, WalletBusy, WalletUnavailable
from docledger.crypto.keys import SignerKeyPair

logger = logging.getLogger(__name__)


class SigningProvider(ABC):
    """Something that holds keys and asks its holder before handing out an identity."""

    @abstractmethod
    async def request_accounts(self) -> List[str]:
        """Ask the holder for access. Raises ConnectionRejected when declined."""

    async def authorized_accounts(self) -> List[str]:
        """Accounts already granted to this client, without asking the holder again."""
        return []

    @abstractmethod
    def signer_for(self, address: str) -> SignerKeyPair:
        pass


class KeyringProvider(SigningProvider):
    """Local key ring. `approve=False` simulates a holder declining every request."""

    def __init__(self, keys: Iterable[SignerKeyPair], approve: bool = True, latency: float = 0.0,
                 authorized: bool = False):
        self._keys = {k.address: k for k in keys}
        self.approve = approve
        self.latency = latency
        # set once the holder has approved a request
        self.authorized = authorized

    @classmethod
    def from_key_file(cls, path: Union[str, Path], **kwargs) -> "KeyringProvider":
        return cls([SignerKeyPair.load(path)], **kwargs)

    @property
    def addresses(self) -> List[str]:
        return list(self._keys)

    async def request_accounts(self) -> List[str]:
        await asyncio.sleep(self.latency)
        if not self.approve:
            raise ConnectionRejected("User rejected the request")
        self.authorized = True
        return self.addresses

    async def authorized_accounts(self) -> List[str]:
        await asyncio.sleep(self.latency)
        return self.addresses if self.authorized else []

    def signer_for(self, address: str) -> SignerKeyPair:
        try:
            return self._keys[address]
        except KeyError:
            raise ConnectionRejected(f"Account {address} is not managed by this provider")


class WalletSession:
    """
    Holds the signing provider and the session's active identity.
    Reads never need it; writes take their signer from here.
    """

    def __init__(self, provider: Optional[SigningProvider] = None):
        self.provider = provider
        self._identity: Optional[str] = None
        self._connecting = False

    @property
    def available(self) -> bool:
        return self.provider is not None

    def current_identity(self) -> Optional[str]:
        return self._identity

    async def connect(self, account: Optional[str] = None) -> str:
        """
        Request access from the provider and make `account` (or its first
        account) the active identity.
        """
        if self.provider is None:
            raise WalletUnavailable("No signing provider installed")
        if self._connecting:
            raise WalletBusy("A wallet connection request is already pending")

        self._connecting = True
        try:
            accounts = await self.provider.request_accounts()
            if not accounts:
                raise ConnectionRejected("Provider returned no accounts")
            if account is None:
                chosen = accounts[0]
            elif account in accounts:
                chosen = account
            else:
                raise ConnectionRejected(f"Account {account} was not granted")
            self._identity = chosen
        finally:
            self._connecting = False

        logger.info("Wallet connected: %s", chosen)
        return chosen

    async def resume(self) -> Optional[str]:
        """
        Adopt the first already-granted account without prompting. Returns the
        adopted identity, or None when nothing was adopted.
        """
        if self.provider is None or self._identity is not None:
            return None
        accounts = await self.provider.authorized_accounts()
        if accounts and self._identity is None:
            self._identity = accounts[0]
            logger.info("Wallet resumed: %s", self._identity)
            return self._identity
        return None

    def signer(self) -> Optional[SignerKeyPair]:
        """Signer for the active identity, or None in read-only mode."""
        if self.provider is None or self._identity is None:
            return None
        return self.provider.signer_for(self._identity)

    def disconnect(self) -> None:
        self._identity = None
