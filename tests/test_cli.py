"""Tests for the command line interface."""

from unittest.mock import AsyncMock

import pytest

from conftest import ALICE, BOB
from passtoken import cli
from passtoken.client import ConfidentialClient
from passtoken.config import Settings
from passtoken.errors import NotReadyError
from passtoken.ledger.memory import InMemoryLedger
from passtoken.oracle.mock import MockOracle


class TestParser:
    """Argument parsing."""

    def test_transfer(self):
        args = cli.build_parser().parse_args(["transfer", BOB, "50", "--password", "1234"])
        assert (args.command, args.recipient, args.amount, args.password) == (
            "transfer", BOB, "50", "1234"
        )

    def test_withdraw_finalize_poll(self):
        args = cli.build_parser().parse_args(["withdraw", "finalize", "7", "--poll"])
        assert args.phase == "finalize"
        assert args.request_id == "7"
        assert args.poll

    def test_protection_choices(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["protection", "maybe"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])


class TestMain:
    """Full runs in mock mode."""

    def test_balance(self, capsys):
        code = cli.main(["--mock", "--account", ALICE, "balance"])

        assert code == cli.EXIT_OK
        out = capsys.readouterr().out
        assert f"Account:          {ALICE}" in out
        assert "Private balance:  0" in out

    def test_withdraw_request(self, capsys):
        code = cli.main(["--mock", "--account", ALICE, "withdraw", "request", "10", "--password", "0"])

        assert code == cli.EXIT_OK
        assert "Request #1 submitted!" in capsys.readouterr().out

    def test_insufficient_balance(self, capsys):
        code = cli.main(["--mock", "--account", ALICE, "transfer", BOB, "5", "--password", "0"])

        assert code == cli.EXIT_ERROR
        assert "Insufficient private balance" in capsys.readouterr().out

    def test_validation_error(self, capsys):
        code = cli.main(["--mock", "--account", ALICE, "transfer", "0x12", "5", "--password", "0"])

        assert code == cli.EXIT_ERROR
        assert "Invalid EVM address format" in capsys.readouterr().out

    def test_missing_account(self, capsys):
        code = cli.main(["--mock", "balance"])

        assert code == cli.EXIT_ERROR
        assert "No account" in capsys.readouterr().out

    def test_key_for_other_account(self, capsys, monkeypatch):
        monkeypatch.setenv("MOCK_MODE", "false")
        monkeypatch.setenv("PRIVATE_KEY", "0x" + "11" * 32)

        code = cli.main(["--account", BOB, "balance"])

        assert code == cli.EXIT_ERROR
        out = capsys.readouterr().out
        assert "account: Private key controls" in out
        assert BOB in out

    def test_not_ready_exit_code(self, capsys, monkeypatch):
        monkeypatch.setattr(cli, "_main", AsyncMock(side_effect=NotReadyError()))

        code = cli.main(["--mock", "--account", ALICE, "withdraw", "finalize", "1"])

        assert code == cli.EXIT_NOT_READY
        assert "Please wait another 30s" in capsys.readouterr().out


class TestRunCommand:
    """Command dispatch against a prepared client."""

    @pytest.mark.asyncio
    async def test_deposit_approves_first(self, capsys):
        oracle = MockOracle()
        ledger = InMemoryLedger(ALICE, oracle=oracle)
        ledger.mint_underlying(ALICE, 10 * 10**18)
        client = await ConfidentialClient.connect(
            ALICE, settings=Settings(_env_file=None, mock_mode=True), oracle=oracle, ledger=ledger
        )
        args = cli.build_parser().parse_args(["deposit", "5"])

        message = await cli.run_command(client, args)

        assert message.startswith("✅ Conversion successful!")
        assert "Step 1/2" in capsys.readouterr().out
        assert ledger.private_balance(ALICE) == 5

    @pytest.mark.asyncio
    async def test_set_password_prompts(self, monkeypatch):
        monkeypatch.setattr(cli, "getpass", lambda prompt: "321")
        oracle = MockOracle()
        ledger = InMemoryLedger(ALICE, oracle=oracle)
        client = await ConfidentialClient.connect(
            ALICE, settings=Settings(_env_file=None, mock_mode=True), oracle=oracle, ledger=ledger
        )

        await cli.run_command(client, cli.build_parser().parse_args(["set-password"]))

        assert await ledger.is_password_required(ALICE)
        await client.validator.check_password(ALICE, 321)
