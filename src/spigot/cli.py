"""CLI subcommands for Spigot operations.

Provides command-line interface for:
- Faucet account (address, balance, sequence)
- Sequence gap recovery (fill-gap)
- One-off funding through the dispatch pipeline (send)
- Key generation (generate-key)
"""

import argparse
import asyncio
import json
import sys
from decimal import Decimal

from spigot.bootstrap import build_assets, build_pipeline
from spigot.chain.client import LedgerClient
from spigot.config import ConfirmationMode, SpigotConfig
from spigot.core.signer import Signer, generate_key_file
from spigot.dispatch.errors import DispatchError
from spigot.dispatch.validator import validate_funding_request


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="spigot",
        description="Spigot - HTTP faucet for EVM ledgers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Global flags
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would happen without executing",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("run", help="Start the faucet service (default)")
    subparsers.add_parser("address", help="Show faucet address")
    subparsers.add_parser("balance", help="Show faucet native and token balances")
    subparsers.add_parser("sequence", help="Show confirmed and pending nonce of the faucet")

    gap_parser = subparsers.add_parser(
        "fill-gap", help="Occupy an unused nonce with a zero-value self-transfer"
    )
    gap_parser.add_argument("nonce", type=int, help="Nonce to fill")

    send_parser = subparsers.add_parser("send", help="Send funds through the dispatch pipeline")
    send_parser.add_argument("asset", type=str, help="Asset symbol (native symbol or token)")
    send_parser.add_argument("address", type=str, help="Recipient address")
    send_parser.add_argument("amount", type=str, help="Amount in whole units")
    send_parser.add_argument(
        "--no-wait",
        action="store_true",
        help="Return after submission instead of waiting for confirmation",
    )

    key_parser = subparsers.add_parser("generate-key", help="Generate a new faucet key")
    key_parser.add_argument("file", type=str, help="File to write the private key to")

    return parser


class CLIContext:
    """Shared context for CLI commands."""

    def __init__(self, config: SpigotConfig, dry_run: bool = False, json_output: bool = False):
        self.config = config
        self.dry_run = dry_run
        self.json_output = json_output
        self._signer: Signer | None = None

    @property
    def signer(self) -> Signer:
        """Get signer (lazy loaded)."""
        if self._signer is None:
            self._signer = Signer.from_settings(
                self.config.private_key, self.config.private_key_file
            )
        return self._signer

    def ledger(self) -> LedgerClient:
        """Create a ledger client; the caller closes it."""
        return LedgerClient(self.config.rpc_endpoint)

    def output(self, data: dict) -> None:
        """Output data in the appropriate format."""
        if self.json_output:
            # Convert Decimal to string for JSON serialization
            def decimal_default(obj):
                if isinstance(obj, Decimal):
                    return str(obj)
                raise TypeError(f"Object of type {type(obj)} is not JSON serializable")

            print(json.dumps(data, default=decimal_default, indent=2))
        else:
            self._print_formatted(data)

    def _print_formatted(self, data: dict, indent: int = 0) -> None:
        """Print data in human-readable format."""
        prefix = "  " * indent
        for key, value in data.items():
            if isinstance(value, dict):
                print(f"{prefix}{key}:")
                self._print_formatted(value, indent + 1)
            else:
                print(f"{prefix}{key}: {value}")


def _from_base_units(units: int, decimals: int) -> Decimal:
    return Decimal(units).scaleb(-decimals)


# Account commands


def cmd_address(ctx: CLIContext) -> int:
    """Show faucet address."""
    try:
        ctx.output({"address": ctx.signer.address})
        return 0
    except Exception as e:
        ctx.output({"error": str(e)})
        return 1


async def _fetch_balances(ctx: CLIContext) -> dict:
    native, tokens = build_assets(ctx.config)
    address = ctx.signer.address
    ledger = ctx.ledger()
    try:
        if not await ledger.is_connected():
            raise ConnectionError("Not connected to RPC endpoint")
        balances = {
            native.symbol: _from_base_units(await ledger.get_balance(address), native.decimals)
        }
        for token in tokens:
            raw = await ledger.call(
                token.contract.address, token.contract.encode_balance_of_call(address)
            )
            balances[token.label] = _from_base_units(
                token.contract.decode_uint256(raw), token.decimals
            )
        return {
            "address": address,
            "balances": balances,
            "rpc": ctx.config.rpc_endpoint,
            "chain_id": await ledger.get_chain_id(),
        }
    finally:
        await ledger.close()


def cmd_balance(ctx: CLIContext) -> int:
    """Show faucet balances."""
    try:
        ctx.output(asyncio.run(_fetch_balances(ctx)))
        return 0
    except Exception as e:
        ctx.output({"error": str(e)})
        return 1


async def _fetch_sequence(ctx: CLIContext) -> dict:
    address = ctx.signer.address
    ledger = ctx.ledger()
    try:
        latest = await ledger.get_account_sequence(address, "latest")
        pending = await ledger.get_account_sequence(address, "pending")
    finally:
        await ledger.close()
    return {
        "address": address,
        "latest": latest,
        "pending": pending,
        # Pending transactions that are not mined; a lasting value can mean a gap
        "in_flight": pending - latest,
    }


def cmd_sequence(ctx: CLIContext) -> int:
    """Show confirmed and pending nonce."""
    try:
        ctx.output(asyncio.run(_fetch_sequence(ctx)))
        return 0
    except Exception as e:
        ctx.output({"error": str(e)})
        return 1


# Recovery commands


async def _fill_gap(ctx: CLIContext, nonce: int) -> dict:
    ledger = ctx.ledger()
    try:
        latest = await ledger.get_account_sequence(ctx.signer.address, "latest")
        if nonce < latest:
            raise ValueError(f"Nonce {nonce} is already confirmed (account nonce is {latest})")
        pipeline = await build_pipeline(ctx.config, ctx.signer, ledger)
        tx_hash = await pipeline.dispatcher.fill_gap(nonce)
    finally:
        await ledger.close()
    return {
        "success": True,
        "action": "fill_gap",
        "nonce": nonce,
        "tx_hash": tx_hash,
        "explorer_url": pipeline.network.tx_url(tx_hash),
    }


def cmd_fill_gap(ctx: CLIContext, nonce: int) -> int:
    """Fill an unused nonce with a zero-value self-transfer."""
    if nonce < 0:
        ctx.output({"error": "Nonce must not be negative"})
        return 1

    try:
        if ctx.dry_run:
            ctx.output(
                {
                    "dry_run": True,
                    "action": "fill_gap",
                    "nonce": nonce,
                    "message": f"Would send a zero-value self-transfer at nonce {nonce}",
                }
            )
            return 0

        ctx.output(asyncio.run(_fill_gap(ctx, nonce)))
        return 0
    except DispatchError as e:
        ctx.output({"error": e.message, "code": e.code})
        return 1
    except Exception as e:
        ctx.output({"error": str(e)})
        return 1


# Funding commands


async def _send(ctx: CLIContext, symbol: str, body: dict, wait: bool) -> dict:
    ledger = ctx.ledger()
    try:
        pipeline = await build_pipeline(ctx.config, ctx.signer, ledger)
        asset = pipeline.dispatcher.get_asset(symbol)
        mode = None if wait else ConfirmationMode.SUBMIT
        outcome = await pipeline.dispatcher.fund(asset, body, mode=mode)
    finally:
        await ledger.close()

    result = {
        "success": True,
        "action": "send",
        "asset": asset.symbol,
        "to": outcome.request.recipient,
        "amount": outcome.request.amount,
        "tx_hash": outcome.tx_hash,
        "status": outcome.status.value,
        "nonce": outcome.sequence,
    }
    if outcome.confirmation is not None:
        result["block_number"] = outcome.confirmation.block_number
    if url := pipeline.network.tx_url(outcome.tx_hash):
        result["explorer_url"] = url
    return result


def cmd_send(ctx: CLIContext, symbol: str, address: str, amount_str: str, wait: bool) -> int:
    """Send funds to an address."""
    body = {"address": address, "amount": amount_str}
    try:
        if ctx.dry_run:
            native, tokens = build_assets(ctx.config)
            assets = {asset.symbol.lower(): asset for asset in [native, *tokens]}
            asset = assets.get(symbol.lower())
            if asset is None:
                ctx.output({"error": f"Unknown asset: {symbol}"})
                return 1
            request = validate_funding_request(body, asset)
            ctx.output(
                {
                    "dry_run": True,
                    "action": "send",
                    "asset": asset.symbol,
                    "to": request.recipient,
                    "amount": request.amount,
                    "message": f"Would send {request.amount} {asset.symbol} to {request.recipient}",
                }
            )
            return 0

        ctx.output(asyncio.run(_send(ctx, symbol, body, wait)))
        return 0
    except KeyError:
        ctx.output({"error": f"Unknown asset: {symbol}"})
        return 1
    except DispatchError as e:
        result = {"error": e.message, "code": e.code}
        if e.tx_hash:
            result["tx_hash"] = e.tx_hash
        if e.sequence is not None:
            result["nonce"] = e.sequence
        ctx.output(result)
        return 1
    except Exception as e:
        ctx.output({"error": str(e)})
        return 1


def cmd_generate_key(file: str, json_output: bool = False) -> int:
    """Generate a new faucet key file."""
    try:
        address = generate_key_file(file)
    except OSError as e:
        _print_error(f"Could not write key file: {e}", json_output)
        return 1

    if json_output:
        print(json.dumps({"address": address, "key_file": file}))
        return 0

    print(f"""
Key generated successfully!

  Address:     {address}
  Private Key: {file}

Next steps:

  1. Fund this address on your target network

  2. Launch Spigot with this key:

     export SPIGOT_PRIVATE_KEY_FILE={file}
     spigot run

IMPORTANT: Keep this private key secure. Anyone with access can control the account.
""")
    return 0


def _print_error(message: str, json_output: bool) -> None:
    if json_output:
        print(json.dumps({"error": message}))
    else:
        print(message, file=sys.stderr)


def run_cli(args: argparse.Namespace) -> int:
    """Execute CLI command based on parsed arguments.

    Returns
    -------
    int
        Exit code: 0 for success, positive for error.
    """
    # Key generation needs no configuration
    if args.command == "generate-key":
        return cmd_generate_key(args.file, json_output=args.json)

    try:
        config = SpigotConfig()
    except Exception as e:
        _print_error(f"Configuration error: {e}", args.json)
        return 1

    ctx = CLIContext(config, dry_run=args.dry_run, json_output=args.json)

    if args.command == "address":
        return cmd_address(ctx)
    elif args.command == "balance":
        return cmd_balance(ctx)
    elif args.command == "sequence":
        return cmd_sequence(ctx)
    elif args.command == "fill-gap":
        return cmd_fill_gap(ctx, args.nonce)
    elif args.command == "send":
        return cmd_send(ctx, args.asset, args.address, args.amount, wait=not args.no_wait)
    else:
        print(
            "Usage: spigot [run|address|balance|sequence|fill-gap|send|generate-key]",
            file=sys.stderr,
        )
        return 1
