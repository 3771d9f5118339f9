# docledger/cli/main.py
"""
CLI for hashing documents, registering issuers and recording, verifying and
revoking documents on the ledger.
"""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from docledger.chain.session import LedgerSession
from docledger.config import ClientConfig
from docledger.core.errors import LedgerError, ReadError
from docledger.core.types import ClassifiedError, TransactionAttempt
from docledger.crypto.hashing import digest_file
from docledger.crypto.keys import SignerKeyPair
from docledger.devnet import LedgerNode
from docledger.gateway import DevnetGateway
from docledger.verify.classifier import classify, classify_record
from docledger.wallet.session import KeyringProvider, WalletSession

app = typer.Typer(
    name="docledger",
    help="Record, verify and revoke document digests on the ledger",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    ledger: Optional[str] = typer.Option(
        None, "--ledger",
        help="Ledger URI: sqlite://<path>, a plain path, or memory:// (overrides DOCLEDGER_LEDGER)",
    ),
    key: Optional[Path] = typer.Option(
        None, "--key",
        help="Wallet key file (overrides DOCLEDGER_KEY_PATH)",
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (overrides DOCLEDGER_LOG_LEVEL)"),
):
    """Manage documents and issuers on the ledger."""
    config = ClientConfig.resolve(ledger=ledger, key_path=key, log_level=log_level)
    logging.basicConfig(
        level=config.log_level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    ctx.obj = config


def _provider(config: ClientConfig) -> Optional[KeyringProvider]:
    if not config.key_path.exists():
        return None
    return KeyringProvider.from_key_file(config.key_path)


def _open_session(config: ClientConfig) -> LedgerSession:
    try:
        session = LedgerSession.from_config(config, _provider(config))
    except Exception as e:
        console.print(f"[red]Failed to open ledger {escape(config.ledger_uri)}: {escape(str(e))}[/]")
        raise typer.Exit(1)

    gateway = session.gateway
    if isinstance(gateway, DevnetGateway) and not gateway.node.is_provisioned(
        config.registry_address, config.verifier_address
    ):
        session.close()
        console.print(f"[red]Ledger {escape(config.ledger_uri)} has no contracts at the configured addresses.[/]")
        console.print("[yellow]To get started:[/]")
        console.print("  • Provision the development ledger: docledger provision")
        console.print("  • Or point --ledger / DOCLEDGER_LEDGER at a provisioned ledger")
        raise typer.Exit(1)
    return session


def _print_error(error: ClassifiedError, location: str = "") -> None:
    where = f" at {location}" if location else ""
    console.print(f"[red]✗ Error{where}: {error.category.value}[/]")
    console.print(f"  {escape(error.message)}")
    console.print(f"[yellow]  💡 {error.suggestion}[/]")


def _report(attempt: TransactionAttempt) -> None:
    trail = " → ".join(s.value for s in attempt.history)
    if attempt.succeeded:
        console.print(f"[green]✓ {attempt.operation.value} succeeded: {escape(attempt.label)}[/]")
        if attempt.result is not None:
            console.print(f"  Issuer ID: {attempt.result}")
        if attempt.digest:
            console.print(f"  Hash: {attempt.digest}")
        console.print(f"  Tx: {attempt.remote_reference}")
        console.print(f"  [dim]{trail}[/]")
        return

    _print_error(attempt.error, attempt.operation.value)
    console.print(f"  [dim]{trail}[/]")
    raise typer.Exit(1)


async def _write(config: ClientConfig, action) -> TransactionAttempt:
    session = _open_session(config)
    try:
        await session.start()
        try:
            await session.connect()
        except LedgerError:
            _print_error(session.errors.latest.as_error(), "connectWallet")
            raise typer.Exit(1)
        return await action(session)
    finally:
        session.close()


@app.command("hash")
def hash_file(file: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to hash")):
    """Print the content digest of a file (same key store/verify/delete use)."""
    console.print(digest_file(file))


@app.command()
def keygen(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", help="Overwrite an existing key file"),
):
    """Create a wallet key file."""
    config: ClientConfig = ctx.obj
    if config.key_path.exists() and not force:
        console.print(f"[yellow]Key file already exists: {escape(str(config.key_path))}[/]")
        console.print("  Use --force to replace it (the old identity is lost).")
        raise typer.Exit(1)

    keys = SignerKeyPair.generate()
    keys.save(config.key_path)
    console.print(f"[green]Wallet key written to {escape(str(config.key_path))}[/]")
    console.print(f"Address: {keys.address}")


@app.command()
def provision(ctx: typer.Context):
    """Deploy the issuer registry and document ledger on the development ledger."""
    config: ClientConfig = ctx.obj
    try:
        node = LedgerNode.from_uri(config.ledger_uri)
    except Exception as e:
        console.print(f"[red]Failed to open ledger {escape(config.ledger_uri)}: {escape(str(e))}[/]")
        raise typer.Exit(1)

    try:
        deployment = node.provision(config.registry_address, config.verifier_address)
    except ValueError as e:
        console.print(f"[red]Provisioning failed: {escape(str(e))}[/]")
        raise typer.Exit(1)
    finally:
        node.close()

    console.print("[green]✓ Ledger provisioned[/]")
    console.print(f"  Issuer registry:  {deployment.registry_address}")
    console.print(f"  Document ledger:  {deployment.verifier_address}")


@app.command()
def connect(ctx: typer.Context):
    """Check that the wallet is available and show its identity."""
    config: ClientConfig = ctx.obj

    async def run():
        wallet = WalletSession(_provider(config))
        try:
            return await wallet.connect()
        except LedgerError as e:
            _print_error(classify(e), "connectWallet")
            raise typer.Exit(1)

    identity = asyncio.run(run())
    console.print(f"[green]✓ Connected: {identity}[/]")


@app.command()
def issuers(ctx: typer.Context):
    """List registered issuers."""
    config: ClientConfig = ctx.obj

    async def run():
        session = _open_session(config)
        try:
            return await session.load_issuers()
        except ReadError as e:
            _print_error(e.error, "loadIssuers")
            raise typer.Exit(1)
        finally:
            session.close()

    listed = asyncio.run(run())
    if not listed:
        console.print("[yellow]No issuers registered yet.[/]")
        console.print("  Register one: docledger register-issuer NAME ORGANIZATION EMAIL")
        return

    table = Table(title="Registered Issuers")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Organization")
    table.add_column("Email")
    table.add_column("Owner")
    for issuer in listed:
        table.add_row(
            str(issuer.id), escape(issuer.name), escape(issuer.organization),
            escape(issuer.email), issuer.owner_address,
        )
    console.print(table)


@app.command("register-issuer")
def register_issuer(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Issuer name"),
    organization: str = typer.Argument(..., help="Organization"),
    email: str = typer.Argument(..., help="Contact email"),
):
    """Register a trusted issuer."""
    config: ClientConfig = ctx.obj
    attempt = asyncio.run(_write(config, lambda s: s.register_issuer(name, organization, email)))
    _report(attempt)


@app.command()
def store(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="Document to record"),
    issuer: int = typer.Option(..., "--issuer", "-i", help="Issuer ID (see `docledger issuers`)"),
):
    """Record a document's digest under an issuer."""
    config: ClientConfig = ctx.obj
    attempt = asyncio.run(_write(config, lambda s: s.store_document(file, issuer)))
    _report(attempt)


@app.command()
def delete(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="Document to revoke"),
):
    """Revoke a document's record (owner only)."""
    config: ClientConfig = ctx.obj
    attempt = asyncio.run(_write(config, lambda s: s.delete_document(file)))
    _report(attempt)


@app.command()
def verify(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="Document to check"),
):
    """Check whether a document is recorded and by whom."""
    config: ClientConfig = ctx.obj

    async def run():
        session = _open_session(config)
        try:
            return await session.verify_document(file)
        except ReadError as e:
            _print_error(e.error, "verifyDocument")
            raise typer.Exit(1)
        finally:
            session.close()

    record = asyncio.run(run())
    missing = classify_record(record)
    if missing is not None:
        console.print(f"[yellow]Hash: {record.digest}[/]")
        _print_error(missing, "verifyDocument")
        raise typer.Exit(1)

    created = datetime.fromtimestamp(record.created_at, tz=timezone.utc).isoformat()
    console.print(f"[green]✓ Document verified: {escape(file.name)}[/]")
    console.print(f"  Hash: {record.digest}")
    console.print(f"  Issuer: {escape(record.name)}")
    console.print(f"  Organization: {escape(record.organization)}")
    console.print(f"  Email: {escape(record.email)}")
    console.print(f"  Owner: {record.owner_address}")
    console.print(f"  Timestamp: {created}")


if __name__ == "__main__":
    app()
