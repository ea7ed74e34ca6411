"""
cfx - command-line front end for the Conflux client.

Commands:
  epoch        - Show the current epoch number
  balance      - Show an account balance
  nonce        - Show the next nonce of an account
  gas-price    - Show the node's mean gas price
  tx           - Show a transaction by hash
  revert-rate  - Show block revert rates
  deploy       - Deploy a contract and wait for the result
  whoami       - Show the default signing account
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .accounts import LocalAccountManager
from .client import Client
from .config import ClientConfig
from .errors import ClientError
from .types import ContractDeployOption, Epoch, hex_to_bytes

TAGS = ["latest_state", "latest_mined", "latest_checkpoint", "earliest"]


def _make_client(config: ClientConfig) -> Client:
    return Client.from_config(config, account_manager=LocalAccountManager.from_env())


def _epoch(value: Optional[str]) -> Optional[Epoch]:
    if value is None:
        return None
    if value in TAGS:
        return Epoch(tag=value)
    try:
        return Epoch.at(int(value, 0))
    except ValueError as exc:
        raise click.BadParameter(f"not an epoch tag or number: {value}") from exc


def _fail(message: str) -> None:
    click.secho(f"ERROR: {message}", fg="red")
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="cfx")
@click.option("--rpc-url", envvar="CFX_RPC_URL", default=None, help="Conflux node RPC URL")
@click.option("--retry", "retry_count", type=int, default=None, help="Retries per RPC call")
@click.option("--verbose", "-v", is_flag=True, help="Log RPC traffic")
@click.pass_context
def cli(ctx: click.Context, rpc_url: Optional[str], retry_count: Optional[int], verbose: bool) -> None:
    """Conflux client."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    ctx.obj = ClientConfig.from_env(node_url=rpc_url, retry_count=retry_count)


@cli.command()
@click.option("--epoch", "epoch", default=None, help="Epoch tag (latest_state, latest_mined, ...)")
@click.pass_obj
def epoch(config: ClientConfig, epoch: Optional[str]) -> None:
    """Show the current epoch number."""
    try:
        with _make_client(config) as client:
            click.echo(client.get_epoch_number(_epoch(epoch)))
    except ClientError as exc:
        _fail(str(exc))


@cli.command()
@click.argument("address")
@click.option("--epoch", "epoch", default=None, help="Epoch tag or number")
@click.pass_obj
def balance(config: ClientConfig, address: str, epoch: Optional[str]) -> None:
    """Show the balance of ADDRESS in drip."""
    try:
        with _make_client(config) as client:
            drip = client.get_balance(address, _epoch(epoch))
    except ClientError as exc:
        _fail(str(exc))
        return
    click.echo(f"  Address: {address}")
    click.echo(f"  Balance: {drip} drip ({drip / 1e18:.6f} CFX)")


@cli.command()
@click.argument("address")
@click.pass_obj
def nonce(config: ClientConfig, address: str) -> None:
    """Show the next nonce of ADDRESS."""
    try:
        with _make_client(config) as client:
            click.echo(client.get_next_nonce(address))
    except ClientError as exc:
        _fail(str(exc))


@cli.command("gas-price")
@click.pass_obj
def gas_price(config: ClientConfig) -> None:
    """Show the node's mean gas price."""
    try:
        with _make_client(config) as client:
            click.echo(client.get_gas_price())
    except ClientError as exc:
        _fail(str(exc))


@cli.command()
@click.argument("tx_hash")
@click.pass_obj
def tx(config: ClientConfig, tx_hash: str) -> None:
    """Show transaction TX_HASH."""
    try:
        with _make_client(config) as client:
            transaction = client.get_transaction_by_hash(tx_hash)
    except ClientError as exc:
        _fail(str(exc))
        return
    if transaction is None:
        click.echo("Transaction not found.")
        sys.exit(1)
    click.echo(f"  Hash:    {transaction.hash}")
    click.echo(f"  From:    {transaction.from_}")
    click.echo(f"  To:      {transaction.to or '(contract creation)'}")
    click.echo(f"  Value:   {transaction.value}")
    click.echo(f"  Nonce:   {transaction.nonce}")
    status = {None: "pending", 0: "success"}.get(transaction.status, "failed")
    click.echo(f"  Status:  {status}")
    if transaction.contract_created:
        click.echo(f"  Created: {transaction.contract_created}")


@cli.command("revert-rate")
@click.argument("block_hashes", nargs=-1, required=True)
@click.pass_obj
def revert_rate(config: ClientConfig, block_hashes: tuple[str, ...]) -> None:
    """Show the revert rate of each block in BLOCK_HASHES."""
    try:
        with _make_client(config) as client:
            rates = client.batch_get_block_revert_rates(list(block_hashes))
    except ClientError as exc:
        _fail(str(exc))
        return
    for block_hash, rate in zip(block_hashes, rates):
        click.echo(f"  {block_hash}  {rate:.6g}")


@cli.command()
@click.option("--abi", "abi_path", required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--bytecode", "bytecode_path", required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--args", "args_json", default="[]", help="Constructor args as JSON array")
@click.option("--timeout", type=float, default=None, help="Seconds to wait for the deployment")
@click.pass_obj
def deploy(
    config: ClientConfig,
    abi_path: str,
    bytecode_path: str,
    args_json: str,
    timeout: Optional[float],
) -> None:
    """Deploy a contract from ABI and hex bytecode files."""
    try:
        args = json.loads(args_json)
        if not isinstance(args, list):
            raise ValueError("Args must be a JSON array")
    except (json.JSONDecodeError, ValueError) as exc:
        _fail(f"Invalid args: {exc}")
        return

    abi = Path(abi_path).read_text(encoding="utf-8")
    try:
        bytecode = hex_to_bytes(Path(bytecode_path).read_text(encoding="utf-8").strip())
    except ClientError as exc:
        _fail(str(exc))
        return

    click.echo("=== Deploying contract ===")
    try:
        with _make_client(config) as client:
            result = client.deploy_contract(ContractDeployOption(timeout=timeout), abi, bytecode, *args)
            outcome = result.wait()
    except ClientError as exc:
        _fail(str(exc))
        return

    if outcome.error is not None:
        click.secho(f"FAILED ({outcome.state.value}): {outcome.error}", fg="red")
        if outcome.transaction_hash:
            click.echo(f"  TX: {outcome.transaction_hash}")
        sys.exit(1)

    click.secho("SUCCESS: Contract deployed!", fg="green")
    click.echo(f"  Address: {outcome.contract.address}")
    click.echo(f"  TX: {outcome.transaction_hash}")


@cli.command()
def whoami() -> None:
    """Show the default signing account."""
    try:
        address = LocalAccountManager.from_env().get_default()
    except ClientError as exc:
        _fail(str(exc))
        return
    if address is None:
        click.echo("No account found.")
        click.echo("Set PRIVATE_KEY in the environment or ~/.cfxclient/.env.")
        sys.exit(1)
    click.echo(f"Address: {address}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
