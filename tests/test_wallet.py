# tests/test_wallet.py
import asyncio

import pytest

from docledger.core.canon import canonical_json
from docledger.core.encoding import b64url_decode
from docledger.core.errors import ConnectionRejected, WalletBusy, WalletUnavailable
from docledger.crypto.keys import SignerKeyPair
from docledger.wallet.session import KeyringProvider, WalletSession


def test_address_format(alice_keys):
    address = alice_keys.address
    assert address.startswith("0x")
    assert len(address) == 42
    assert address == address.lower()


def test_sign_and_verify(alice_keys, bob_keys):
    sig = alice_keys.sign_bytes(b"hello")
    assert alice_keys.verify_bytes(sig, b"hello")
    assert not alice_keys.verify_bytes(sig, b"hell0")
    assert not bob_keys.verify_bytes(sig, b"hello")


def test_public_only_pair_cannot_sign(alice_keys):
    public = SignerKeyPair.from_public_b64url(alice_keys.public_key_b64url())
    assert public.address == alice_keys.address
    assert not public.can_sign
    with pytest.raises(ValueError):
        public.sign_bytes(b"x")


def test_sign_transaction_checks_sender(alice_keys, bob_keys):
    payload = {"from": alice_keys.address, "to": "0x00", "method": "m", "args": [], "nonce": 0}
    signed = alice_keys.sign_transaction(payload)
    assert alice_keys.verify_bytes(
        b64url_decode(signed.signature),
        canonical_json(payload),
    )
    with pytest.raises(ValueError, match="sender"):
        bob_keys.sign_transaction(payload)


def test_key_file_roundtrip(tmp_path, alice_keys):
    path = alice_keys.save(tmp_path / "nested" / "wallet.key")
    loaded = SignerKeyPair.load(path)
    assert loaded.address == alice_keys.address
    assert (path.stat().st_mode & 0o777) == 0o600


async def test_connect_sets_identity(alice_keys):
    wallet = WalletSession(KeyringProvider([alice_keys]))
    assert wallet.current_identity() is None
    assert wallet.signer() is None

    identity = await wallet.connect()
    assert identity == alice_keys.address
    assert wallet.current_identity() == identity
    assert wallet.signer() is alice_keys


async def test_connect_specific_account(alice_keys, bob_keys):
    wallet = WalletSession(KeyringProvider([alice_keys, bob_keys]))
    assert await wallet.connect(bob_keys.address) == bob_keys.address
    with pytest.raises(ConnectionRejected):
        await wallet.connect("0x" + "ab" * 20)
    # failed switch leaves the previous identity in place
    assert wallet.current_identity() == bob_keys.address


async def test_connect_without_provider():
    wallet = WalletSession()
    assert not wallet.available
    with pytest.raises(WalletUnavailable):
        await wallet.connect()
    assert wallet.current_identity() is None


async def test_connect_declined(alice_keys):
    wallet = WalletSession(KeyringProvider([alice_keys], approve=False))
    with pytest.raises(ConnectionRejected):
        await wallet.connect()
    assert wallet.current_identity() is None


async def test_concurrent_connect_rejected(alice_keys):
    wallet = WalletSession(KeyringProvider([alice_keys], latency=0.01))
    first = asyncio.create_task(wallet.connect())
    await asyncio.sleep(0)
    with pytest.raises(WalletBusy):
        await wallet.connect()
    assert await first == alice_keys.address


async def test_disconnect(alice_keys):
    wallet = WalletSession(KeyringProvider([alice_keys]))
    await wallet.connect()
    wallet.disconnect()
    assert wallet.current_identity() is None
    assert wallet.signer() is None


async def test_resume_needs_prior_grant(alice_keys):
    provider = KeyringProvider([alice_keys])
    wallet = WalletSession(provider)
    assert await wallet.resume() is None
    assert wallet.current_identity() is None

    await wallet.connect()
    wallet.disconnect()
    # granted once, so no second prompt is needed
    provider.approve = False
    assert await wallet.resume() == alice_keys.address
    assert wallet.current_identity() == alice_keys.address
    assert await wallet.resume() is None


async def test_resume_preauthorized(alice_keys):
    wallet = WalletSession(KeyringProvider([alice_keys], authorized=True))
    assert await wallet.resume() == alice_keys.address
    assert await WalletSession().resume() is None
