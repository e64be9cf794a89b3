#!/usr/bin/env python3
"""Verify the configured oracle and contract deployment answer.

Checks:
- oracle gateway health
- ledger RPC connectivity
- vault/token cross-links match the configured addresses
- read calls for the operating account
"""

import asyncio
import sys

# (ANSI colour, symbol) per check outcome
MARKS = {
    "ok": ("\033[92m", "✓"),
    "fail": ("\033[91m", "✗"),
    "warn": ("\033[93m", "⚠"),
}
RESET = "\033[0m"


def report(outcome: str, name: str, detail: str = "") -> None:
    """Print one check line."""
    colour, symbol = MARKS[outcome]
    suffix = f" - {detail}" if detail else ""
    print(f"  {colour}{symbol}{RESET} {name}{suffix}")


def report_check(name: str, passed: bool, detail: str = "") -> None:
    report("ok" if passed else "fail", name, detail)


async def check_oracle(settings) -> bool:
    """Check the oracle gateway responds."""
    print("\n🔐 Checking Oracle...")

    from passtoken.oracle.factory import get_oracle_backend

    oracle = get_oracle_backend(settings)
    healthy = await oracle.health_check()
    report_check(f"Oracle ({oracle.name})", healthy, settings.oracle_url)
    return healthy


async def check_contracts(settings, account: str) -> bool:
    """Check contract links and read calls."""
    print("\n📜 Checking Contracts...")

    try:
        from passtoken.ledger.web3_ledger import Web3Ledger

        ledger = Web3Ledger(
            account,
            rpc_url=settings.rpc_url,
            pass_token_address=settings.pass_token_address,
            vault_address=settings.vault_address,
            underlying_token_address=settings.underlying_token_address,
            chain_id=settings.chain_id,
        )

        connected = await ledger.health_check()
        report_check("RPC connection", connected, settings.rpc_url)
        if not connected:
            return False

        links = await ledger.linked_addresses()
        expected = {
            "vault.pToken": settings.pass_token_address,
            "vault.uToken": settings.underlying_token_address,
            "pass_token.vault": settings.vault_address,
        }
        ok = True
        for name, value in links.items():
            match = value.lower() == expected[name].lower()
            ok = ok and match
            report_check(name, match, f"{value} (expected {expected[name]})")

        required = await ledger.is_password_required(account)
        report_check("isPasswordRequired", True, str(required))
        handle = await ledger.balance_handle(account)
        report_check("balanceHandle", True, hex(handle))
        return ok
    except Exception as e:
        report_check("Contracts", False, str(e))
        return False


async def main() -> int:
    from passtoken.client import account_from_key
    from passtoken.config import get_settings

    settings = get_settings()
    print("=" * 50)
    print("Confidential token setup verification")
    print("=" * 50)

    if settings.mock_mode:
        report("warn", "MOCK_MODE is on", "nothing to verify against a network")
        return 0

    if not settings.private_key:
        report("warn", "PRIVATE_KEY not set", "using the vault address for read calls")
        account = settings.vault_address
    else:
        account = account_from_key(settings.private_key)

    results = [
        await check_oracle(settings),
        await check_contracts(settings, account),
    ]

    print()
    if all(results):
        print(f"{MARKS['ok'][0]}All checks passed{RESET}")
        return 0
    print(f"{MARKS['fail'][0]}Some checks failed{RESET}")
    return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
