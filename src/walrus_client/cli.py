"""
walrus CLI - Query and manage a wallet hosted by a walrus server.
"""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import typer
from loguru import logger
from pydantic import TypeAdapter, ValidationError

from walrus_client.client import InvalidRequestError, WalrusClient, WalrusError
from walrus_client.config import get_settings
from walrus_client.models import (
    SeedAddressInfo,
    Transaction,
    format_currency,
    siacoins_to_hastings,
)

T = TypeVar("T")

app = typer.Typer(
    name="walrus",
    help="Client for a walrus wallet server",
    add_completion=False,
)

_JSON = TypeAdapter(Any)


def setup_logging(level: str = "INFO") -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def _echo_json(value: Any) -> None:
    typer.echo(json.dumps(_JSON.dump_python(value, mode="json", by_alias=True), indent=2))


def _load(path: Path, model: Any) -> Any:
    if not path.exists():
        logger.error(f"File not found: {path}")
        raise typer.Exit(1)
    try:
        return TypeAdapter(model).validate_json(path.read_bytes())
    except ValidationError as e:
        logger.error(f"Invalid contents in {path}: {e}")
        raise typer.Exit(1)


def _run(ctx: typer.Context, call: Callable[[WalrusClient], Awaitable[T]]) -> T:
    state = ctx.ensure_object(dict)

    async def runner() -> T:
        async with WalrusClient.from_settings(
            state["settings"], transport=state.get("transport")
        ) as client:
            return await call(client)

    try:
        return asyncio.run(runner())
    except WalrusError as e:
        logger.error(f"Request failed: {e}")
        raise typer.Exit(1)
    except InvalidRequestError as e:
        logger.error(str(e))
        raise typer.Exit(2)


@app.callback()
def main_callback(
    ctx: typer.Context,
    address: str | None = typer.Option(
        None, "--address", "-a", help="walrus server address (env: WALRUS_ADDRESS)"
    ),
    log_level: str | None = typer.Option(None, "--log-level", "-l"),
) -> None:
    """Client for a walrus wallet server."""
    settings = get_settings()
    overrides: dict[str, Any] = {}
    if address:
        overrides["address"] = address
    if log_level:
        overrides["log_level"] = log_level
    if overrides:
        settings = settings.model_copy(update=overrides)
    setup_logging(settings.log_level)

    state = ctx.ensure_object(dict)
    state["settings"] = settings


@app.command()
def addresses(ctx: typer.Context) -> None:
    """List all addresses known to the wallet."""
    for addr in _run(ctx, lambda c: c.addresses()):
        typer.echo(addr)


@app.command()
def address_info(ctx: typer.Context, address: str = typer.Argument(...)) -> None:
    """Show unlock conditions and seed index of an address."""
    _echo_json(_run(ctx, lambda c: c.address_info(address)))


@app.command()
def add_address(
    ctx: typer.Context,
    info_file: Path = typer.Argument(..., help="JSON file with unlockConditions and keyIndex"),
) -> None:
    """Add address metadata so future activity on it is tracked."""
    info = _load(info_file, SeedAddressInfo)
    addr = _run(ctx, lambda c: c.add_address(info))
    logger.info(f"Added address {addr}")
    typer.echo(addr)


@app.command()
def remove_address(ctx: typer.Context, address: str = typer.Argument(...)) -> None:
    """Stop tracking an address. Recorded history is kept."""
    _run(ctx, lambda c: c.remove_address(address))
    logger.info(f"Removed address {address}")


@app.command()
def balance(
    ctx: typer.Context,
    limbo: bool = typer.Option(False, "--limbo", help="Reflect transactions in Limbo"),
) -> None:
    """Show the wallet balance."""
    bal = _run(ctx, lambda c: c.balance(limbo))
    typer.echo(f"{format_currency(bal)} ({bal} H)")


@app.command()
def consensus(ctx: typer.Context) -> None:
    """Show chain height and consensus change ID."""
    info = _run(ctx, lambda c: c.consensus_info())
    typer.echo(f"Height: {info.height}")
    typer.echo(f"Change ID: {info.ccid}")


@app.command()
def fee(ctx: typer.Context) -> None:
    """Show the recommended fee per byte."""
    rate = _run(ctx, lambda c: c.recommended_fee())
    typer.echo(f"{format_currency(rate)}/byte ({rate} H/byte)")


@app.command()
def hastings(amount: str = typer.Argument(..., help="Amount in siacoins, e.g. 1.5")) -> None:
    """Convert a siacoin amount to hastings."""
    try:
        typer.echo(siacoins_to_hastings(amount))
    except (ArithmeticError, ValueError) as e:
        logger.error(f"Invalid amount {amount!r}: {e}")
        raise typer.Exit(2)


@app.command()
def seed_index(ctx: typer.Context) -> None:
    """Show the seed index of the next address."""
    typer.echo(_run(ctx, lambda c: c.seed_index()))


@app.command()
def transactions(
    ctx: typer.Context,
    limit: int = typer.Option(-1, "--max", "-m", help="Maximum IDs to list (negative = all)"),
    addr: str | None = typer.Option(None, "--addr", help="Only transactions of this address"),
) -> None:
    """List IDs of wallet-relevant transactions, newest first."""
    if addr:
        txids = _run(ctx, lambda c: c.transactions_by_address(addr, limit))
    else:
        txids = _run(ctx, lambda c: c.transactions(limit))
    for txid in txids:
        typer.echo(txid)


@app.command()
def transaction(ctx: typer.Context, txid: str = typer.Argument(...)) -> None:
    """Show a transaction with its inflow, outflow and fee."""
    _echo_json(_run(ctx, lambda c: c.transaction(txid)))


@app.command()
def block_rewards(
    ctx: typer.Context,
    limit: int = typer.Option(-1, "--max", "-m", help="Maximum rewards to list (negative = all)"),
) -> None:
    """List block rewards, newest first."""
    _echo_json(_run(ctx, lambda c: c.block_rewards(limit)))


@app.command()
def file_contracts(
    ctx: typer.Context,
    limit: int = typer.Option(
        -1, "--max", "-m", help="Maximum contracts to list (negative = all)"
    ),
) -> None:
    """List file contracts, newest first."""
    _echo_json(_run(ctx, lambda c: c.file_contracts(limit)))


@app.command()
def contract_history(ctx: typer.Context, contract_id: str = typer.Argument(...)) -> None:
    """Show the revision history of a file contract."""
    _echo_json(_run(ctx, lambda c: c.file_contract_history(contract_id)))


@app.command()
def utxos(
    ctx: typer.Context,
    limbo: bool = typer.Option(False, "--limbo", help="Reflect transactions in Limbo"),
) -> None:
    """List spendable outputs."""
    _echo_json(_run(ctx, lambda c: c.unspent_outputs(limbo)))


@app.command()
def limbo(ctx: typer.Context) -> None:
    """List transactions in Limbo."""
    _echo_json(_run(ctx, lambda c: c.limbo_transactions()))


@app.command()
def limbo_add(
    ctx: typer.Context,
    txid: str = typer.Argument(...),
    txn_file: Path = typer.Argument(..., help="JSON file with the transaction"),
) -> None:
    """Manually place a transaction in Limbo."""
    txn = _load(txn_file, Transaction)
    _run(ctx, lambda c: c.add_to_limbo(txid, txn))
    logger.info(f"Added {txid} to Limbo")


@app.command()
def limbo_remove(ctx: typer.Context, txid: str = typer.Argument(...)) -> None:
    """Manually remove a transaction from Limbo."""
    _run(ctx, lambda c: c.remove_from_limbo(txid))
    logger.info(f"Removed {txid} from Limbo")


@app.command()
def unconfirmed_parents(
    ctx: typer.Context,
    txn_file: Path = typer.Argument(..., help="JSON file with the transaction"),
) -> None:
    """List Limbo parents that must be broadcast along with a transaction."""
    txn = _load(txn_file, Transaction)
    _echo_json(_run(ctx, lambda c: c.unconfirmed_parents(txn)))


@app.command()
def broadcast(
    ctx: typer.Context,
    txn_set_file: Path = typer.Argument(..., help="JSON file with a list of transactions"),
) -> None:
    """Broadcast a transaction set. The transactions move to Limbo."""
    txn_set = _load(txn_set_file, list[Transaction])
    _run(ctx, lambda c: c.broadcast(txn_set))
    logger.info(f"Broadcast {len(txn_set)} transaction(s)")


@app.command()
def memo(ctx: typer.Context, txid: str = typer.Argument(...)) -> None:
    """Print the memo of a transaction."""
    typer.echo(_run(ctx, lambda c: c.memo(txid)))


@app.command()
def set_memo(
    ctx: typer.Context,
    txid: str = typer.Argument(...),
    text: str = typer.Argument(...),
) -> None:
    """Set the memo of a transaction, replacing any previous memo."""
    _run(ctx, lambda c: c.set_memo(txid, text.encode("utf-8")))
    logger.info(f"Memo set for {txid}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
