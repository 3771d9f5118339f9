# tests/test_devnet.py
import asyncio

import pytest

from docledger.core.canon import canonical_json
from docledger.core.encoding import b64url_encode
from docledger.crypto.hashing import digest
from docledger.devnet import ContractRevert, LedgerNode, RemoteError, SubmissionRejected, UnknownContract
from docledger.devnet.contracts import ALREADY_STORED, EMPTY_NAME, INVALID_ISSUER
from docledger.storage import REVERTED, SUCCESS, SQLiteLedgerStore

REGISTRY = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
VERIFIER = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"
DOC = digest(b"0123456789")


@pytest.fixture
def node():
    n = LedgerNode(SQLiteLedgerStore(":memory:"), clock=lambda: 1_700_000_000)
    n.provision(REGISTRY, VERIFIER)
    yield n
    n.close()


def tx(keys, node, to, method, args, nonce=None):
    payload = {
        "from": keys.address,
        "to": to,
        "method": method,
        "args": args,
        "nonce": node.nonce(keys.address) if nonce is None else nonce,
    }
    return keys.sign_transaction(payload)


def test_provision_is_idempotent(node):
    assert node.is_provisioned(REGISTRY, VERIFIER)
    deployment = node.provision(REGISTRY, VERIFIER)
    assert deployment.registry_address == REGISTRY
    assert deployment.verifier_address == VERIFIER


def test_provision_conflicts(node):
    with pytest.raises(ValueError):
        node.provision(VERIFIER, REGISTRY)   # kinds swapped
    other_registry = "0x" + "12" * 20
    with pytest.raises(ValueError, match="different registry"):
        node.provision(other_registry, VERIFIER)


def test_unprovisioned_node():
    n = LedgerNode(SQLiteLedgerStore(":memory:"))
    assert not n.is_provisioned(REGISTRY, VERIFIER)
    with pytest.raises(UnknownContract):
        n.contract(REGISTRY)
    n.close()


async def test_register_and_list(node, alice_keys):
    ref = await node.send_transaction(tx(alice_keys, node, REGISTRY, "registerIssuer", ["Alice", "ExampleOrg", "a@x.test"]))
    assert ref.startswith("0x") and len(ref) == 66
    assert len(node.pending) == 1

    receipt = await node.wait_for_receipt(ref)
    assert receipt.status == SUCCESS
    assert receipt.result == 0
    assert receipt.block_number == 1
    assert node.pending == []

    issuers = await node.call(REGISTRY, "getAllIssuers")
    assert issuers == [{
        "id": 0, "name": "Alice", "organization": "ExampleOrg",
        "email": "a@x.test", "owner": alice_keys.address,
    }]


async def test_reverts_carry_reason(node, alice_keys):
    ref = await node.send_transaction(tx(alice_keys, node, REGISTRY, "registerIssuer", ["", "Org", "e@x.test"]))
    receipt = await node.wait_for_receipt(ref)
    assert receipt.status == REVERTED
    assert receipt.reason == EMPTY_NAME

    ref = await node.send_transaction(tx(alice_keys, node, VERIFIER, "storeDocument", [DOC, 5]))
    assert (await node.wait_for_receipt(ref)).reason == INVALID_ISSUER


async def test_store_verify_and_duplicate(node, alice_keys):
    await node.wait_for_receipt(await node.send_transaction(
        tx(alice_keys, node, REGISTRY, "registerIssuer", ["Alice", "ExampleOrg", "a@x.test"])))

    first = await node.send_transaction(tx(alice_keys, node, VERIFIER, "storeDocument", [DOC, 0]))
    second = await node.send_transaction(tx(alice_keys, node, VERIFIER, "storeDocument", [DOC, 0]))
    # both queued; the ledger decides at finalization, in submission order
    assert node.mine() == 2
    assert (await node.wait_for_receipt(first)).status == SUCCESS
    dup = await node.wait_for_receipt(second)
    assert dup.status == REVERTED
    assert dup.reason == ALREADY_STORED

    exists, issuer_id, name, org, email, owner, ts = await node.call(VERIFIER, "verifyDocument", DOC)
    assert exists is True
    assert (issuer_id, name, org, email) == (0, "Alice", "ExampleOrg", "a@x.test")
    assert owner == alice_keys.address
    assert ts == 1_700_000_000


async def test_verify_unknown_digest(node):
    result = await node.call(VERIFIER, "verifyDocument", digest(b"never stored"))
    assert result[0] is False


async def test_rejects_tampered_payload(node, alice_keys):
    signed = tx(alice_keys, node, REGISTRY, "registerIssuer", ["Alice", "ExampleOrg", "a@x.test"])
    forged = signed.to_dict()
    forged["payload"] = {**signed.payload, "args": ["Mallory", "ExampleOrg", "a@x.test"]}
    with pytest.raises(SubmissionRejected, match="Invalid signature"):
        await node.send_transaction(forged)
    assert node.pending == []


async def test_rejects_sender_mismatch(node, alice_keys, bob_keys):
    payload = {"from": bob_keys.address, "to": REGISTRY, "method": "registerIssuer",
               "args": ["Bob", "Org", "b@x.test"], "nonce": 0}
    forged = {
        "payload": payload,
        "public_key": alice_keys.public_key_b64url(),
        "signature": b64url_encode(alice_keys.sign_bytes(canonical_json(payload))),
    }
    with pytest.raises(SubmissionRejected, match="Sender"):
        await node.send_transaction(forged)


async def test_rejects_bad_nonce(node, alice_keys):
    with pytest.raises(SubmissionRejected, match="nonce"):
        await node.send_transaction(tx(alice_keys, node, REGISTRY, "registerIssuer", ["A", "B", "C"], nonce=3))


async def test_rejects_malformed_calls(node, alice_keys):
    with pytest.raises(SubmissionRejected):
        await node.send_transaction(tx(alice_keys, node, VERIFIER, "storeDocument", ["not-a-digest", 0]))
    with pytest.raises(SubmissionRejected):
        await node.send_transaction(tx(alice_keys, node, VERIFIER, "storeDocument", [DOC, -1]))
    with pytest.raises(SubmissionRejected):
        await node.send_transaction(tx(alice_keys, node, VERIFIER, "mintTokens", []))
    with pytest.raises(SubmissionRejected):
        await node.send_transaction({"payload": {}})
    with pytest.raises(UnknownContract):
        await node.send_transaction(tx(alice_keys, node, "0x" + "99" * 20, "registerIssuer", ["A", "B", "C"]))


async def test_unknown_reference(node):
    with pytest.raises(RemoteError):
        await node.wait_for_receipt("0x" + "00" * 32)


async def test_manual_mining_blocks_waiters(alice_keys):
    n = LedgerNode(SQLiteLedgerStore(":memory:"), auto_mine=False)
    n.provision(REGISTRY, VERIFIER)
    ref = await n.send_transaction(tx(alice_keys, n, REGISTRY, "registerIssuer", ["Alice", "Org", "a@x.test"]))

    waiter = asyncio.create_task(n.wait_for_receipt(ref))
    for _ in range(10):
        await asyncio.sleep(0)
    assert not waiter.done()

    assert n.mine() == 1
    receipt = await waiter
    assert receipt.status == SUCCESS
    n.close()


def test_contract_revert_message():
    err = ContractRevert(ALREADY_STORED)
    assert err.reason == ALREADY_STORED
    assert "execution reverted" in str(err)
