# docledger/chain/cache.py
import asyncio
import logging
from typing import Optional, Tuple

from docledger.core.types import Issuer
from docledger.gateway import ContractGateway

logger = logging.getLogger(__name__)


class IssuerCache:
    """
    Mirror of the registry's issuer list. Only refresh() writes it, and always
    by swapping in a whole new snapshot.
    """

    def __init__(self, gateway: ContractGateway):
        self.gateway = gateway
        self._issuers: Tuple[Issuer, ...] = ()
        self._lock = asyncio.Lock()

    async def refresh(self) -> Tuple[Issuer, ...]:
        async with self._lock:
            issuers = tuple(await self.gateway.list_issuers())
            self._issuers = issuers
        logger.debug("Issuer cache refreshed: %d issuers", len(issuers))
        return issuers

    def current(self) -> Tuple[Issuer, ...]:
        return self._issuers

    def get(self, issuer_id: int) -> Optional[Issuer]:
        for issuer in self._issuers:
            if issuer.id == issuer_id:
                return issuer
        return None

    def __len__(self):
        return len(self._issuers)
