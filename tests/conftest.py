# tests/conftest.py
import asyncio

import pytest

from docledger.chain.session import LedgerSession
from docledger.crypto.keys import SignerKeyPair
from docledger.gateway import create_gateway
from docledger.wallet.session import KeyringProvider


@pytest.fixture
def gateway():
    """Fresh provisioned in-memory ledger, auto-mining."""
    gw = create_gateway("memory://")
    yield gw
    gw.close()


@pytest.fixture
def manual_gateway():
    """In-memory ledger that only finalizes when the test calls node.mine()."""
    gw = create_gateway("memory://", auto_mine=False)
    yield gw
    gw.close()


@pytest.fixture
def alice_keys() -> SignerKeyPair:
    return SignerKeyPair.generate()


@pytest.fixture
def bob_keys() -> SignerKeyPair:
    return SignerKeyPair.generate()


@pytest.fixture
async def alice(gateway, alice_keys) -> LedgerSession:
    session = LedgerSession(gateway, KeyringProvider([alice_keys]))
    await session.start()
    await session.connect()
    return session


@pytest.fixture
async def bob(gateway, bob_keys) -> LedgerSession:
    session = LedgerSession(gateway, KeyringProvider([bob_keys]))
    await session.start()
    await session.connect()
    return session


@pytest.fixture
def ten_byte_file(tmp_path):
    path = tmp_path / "contract.pdf"
    path.write_bytes(b"0123456789")
    return path


async def wait_for_state(lifecycle, state, max_ticks: int = 200):
    """Yield to the loop until the in-flight attempt reaches `state`."""
    for _ in range(max_ticks):
        current = lifecycle.current
        if current is not None and current.state is state:
            return current
        await asyncio.sleep(0)
    raise AssertionError(f"attempt never reached {state}")
