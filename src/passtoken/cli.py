"""Command line interface.

Usage:
    passtoken balance
    passtoken set-password
    passtoken protection on|off
    passtoken transfer 0xRecipient 50
    passtoken deposit 100
    passtoken withdraw request 25
    passtoken withdraw finalize 7 [--poll]

The operating account comes from --account or PRIVATE_KEY. Passwords are
prompted for when --password is not given.
"""

import argparse
import asyncio
import logging
import sys
from getpass import getpass
from typing import Optional

from passtoken.client import ConfidentialClient, account_from_key
from passtoken.config import Settings, get_settings
from passtoken.errors import NotReadyError, PassTokenError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NOT_READY = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="passtoken",
        description="Confidential token transfers, deposits and withdrawals",
    )
    parser.add_argument("--account", help="Operating account (defaults to PRIVATE_KEY's address)")
    parser.add_argument("--mock", action="store_true", help="Use in-memory oracle and ledger")
    parser.add_argument("--debug", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("balance", help="Show public and private balances")

    set_pw = sub.add_parser("set-password", help="Set the numeric transfer password")
    set_pw.add_argument("--password")

    protection = sub.add_parser("protection", help="Toggle password protection")
    protection.add_argument("state", choices=["on", "off"])

    transfer = sub.add_parser("transfer", help="Send an encrypted transfer")
    transfer.add_argument("recipient")
    transfer.add_argument("amount")
    transfer.add_argument("--password")

    deposit = sub.add_parser("deposit", help="Convert public tokens to confidential tokens")
    deposit.add_argument("amount")
    deposit.add_argument(
        "--skip-approve", action="store_true", help="Vault allowance is already in place"
    )

    withdraw = sub.add_parser("withdraw", help="Two-phase withdrawal")
    withdraw_sub = withdraw.add_subparsers(dest="phase", required=True)
    request = withdraw_sub.add_parser("request", help="Request a withdrawal")
    request.add_argument("amount")
    request.add_argument("--password")
    finalize = withdraw_sub.add_parser("finalize", help="Finalize a requested withdrawal")
    finalize.add_argument("request_id")
    finalize.add_argument(
        "--poll", action="store_true", help="Keep retrying while decryption is pending"
    )

    return parser


def _password(args: argparse.Namespace) -> str:
    if args.password is not None:
        return args.password
    return getpass("Password (numeric): ")


def _resolve_account(args: argparse.Namespace, settings: Settings) -> str:
    if args.account:
        return args.account
    if settings.private_key:
        return account_from_key(settings.private_key)
    raise PassTokenError("No account: pass --account or set PRIVATE_KEY")


async def run_command(client: ConfidentialClient, args: argparse.Namespace) -> str:
    """Execute a parsed command and return the message to print."""
    if args.command == "balance":
        snapshot = await client.balance()
        private = "Error" if snapshot.private_balance is None else snapshot.private_balance
        lines = [
            f"Account:          {snapshot.account}",
            f"Public balance:   {snapshot.public_balance}",
            f"Private balance:  {private}",
            f"Password enabled: {snapshot.password_enabled}",
        ]
        lines.extend(f"  ! {err}" for err in snapshot.errors)
        return "\n".join(lines)

    if args.command == "set-password":
        result = await client.orchestrator.set_password(_password(args))
        return f"✅ {result.message} ({result.tx_hash})"

    if args.command == "protection":
        result = await client.orchestrator.set_password_protection(args.state == "on")
        return f"✅ {result.message} ({result.tx_hash})"

    if args.command == "transfer":
        result = await client.orchestrator.transfer(args.recipient, args.amount, _password(args))
        return f"✅ {result.message} ({result.tx_hash})"

    if args.command == "deposit":
        if not args.skip_approve:
            approval = await client.orchestrator.approve_deposit(args.amount)
            print(f"Step 1/2: {approval.message}")
        result = await client.orchestrator.deposit(args.amount)
        return f"✅ {result.message} ({result.tx_hash})"

    if args.command == "withdraw" and args.phase == "request":
        outcome = await client.withdrawals.request_withdraw(args.amount, _password(args))
        return f"✅ {outcome.message}"

    if args.command == "withdraw" and args.phase == "finalize":
        if args.poll:
            result = await client.withdrawals.finalize_with_polling(request_id=args.request_id)
        else:
            result = await client.withdrawals.finalize_withdraw(args.request_id)
        return f"✅ {result.message} ({result.tx_hash})"

    raise PassTokenError(f"Unknown command: {args.command}")


async def _main(args: argparse.Namespace, settings: Settings) -> int:
    account = _resolve_account(args, settings)
    client = await ConfidentialClient.connect(account, settings=settings)
    try:
        print(await run_command(client, args))
        return EXIT_OK
    finally:
        await client.close()


def main(argv: Optional[list[str]] = None) -> int:
    """Console script entry point."""
    args = build_parser().parse_args(argv)

    settings = get_settings()
    overrides = {}
    if args.mock:
        overrides["mock_mode"] = True
    if args.debug:
        overrides["debug"] = True
    if overrides:
        settings = settings.model_copy(update=overrides)

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        return asyncio.run(_main(args, settings))
    except NotReadyError as e:
        print(f"⏳ {e.guidance}")
        return EXIT_NOT_READY
    except PassTokenError as e:
        print(f"❌ Error: {e}")
        return EXIT_ERROR
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
