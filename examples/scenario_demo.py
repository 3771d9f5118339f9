# examples/scenario_demo.py
# Run with: python examples/scenario_demo.py
#
# Two users on a fresh in-memory ledger: Alice registers as an issuer and
# records a document, Bob verifies it, fails to revoke it, and Alice revokes it.

import asyncio
import logging

from docledger import KeyringProvider, LedgerSession, SignerKeyPair, create_gateway


def show(attempt):
    trail = " -> ".join(s.value for s in attempt.history)
    if attempt.succeeded:
        print(f"  ok   {attempt.operation.value}: {attempt.label}  [{trail}]")
    else:
        print(f"  fail {attempt.operation.value}: {attempt.error}  [{trail}]")
        print(f"       hint: {attempt.error.suggestion}")


async def main():
    gateway = create_gateway("memory://")
    alice = LedgerSession(gateway, KeyringProvider([SignerKeyPair.generate()]))
    bob = LedgerSession(gateway, KeyringProvider([SignerKeyPair.generate()]))

    for session in (alice, bob):
        await session.start()
        await session.connect()

    print("Alice:", alice.identity)
    print("Bob:  ", bob.identity)

    document = b"Certificate of completion: Jane Doe"

    show(await alice.register_issuer("Alice", "ExampleOrg", "alice@example.org"))
    show(await alice.store_document(document, 0, label="certificate.txt"))

    record = await bob.verify_document(document, label="certificate.txt")
    print(f"  Bob sees: exists={record.exists} issuer={record.name} owner={record.owner_address}")

    show(await bob.store_document(document, 0, label="certificate.txt"))
    show(await bob.delete_document(document, label="certificate.txt"))
    show(await alice.delete_document(document, label="certificate.txt"))

    record = await bob.verify_document(document, label="certificate.txt")
    print(f"  Bob sees: exists={record.exists}")

    print("\nBob's error log (newest first):")
    for entry in bob.errors.entries():
        print(f"  {entry.time:%H:%M:%S} {entry.location}: {entry.category.value}: {entry.message}")

    gateway.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    asyncio.run(main())
