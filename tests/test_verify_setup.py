"""Tests for the deployment verification script."""

import importlib.util
from pathlib import Path

import pytest

from passtoken.config import Settings

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "verify_setup.py"


@pytest.fixture
def verify_setup():
    spec = importlib.util.spec_from_file_location("verify_setup", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestReport:
    """Check line rendering."""

    def test_outcome_marks(self, verify_setup, capsys):
        verify_setup.report_check("RPC connection", True, "http://node")
        verify_setup.report_check("vault.uToken", False)
        verify_setup.report("warn", "PRIVATE_KEY not set")

        lines = capsys.readouterr().out.splitlines()
        assert "✓" in lines[0] and lines[0].endswith("RPC connection - http://node")
        assert "✗" in lines[1] and lines[1].endswith("vault.uToken")
        assert "⚠" in lines[2]

    def test_unknown_outcome(self, verify_setup):
        with pytest.raises(KeyError):
            verify_setup.report("maybe", "x")


class TestChecks:
    """Checks that need no network."""

    @pytest.mark.asyncio
    async def test_mock_mode_skips_verification(self, verify_setup, capsys):
        assert await verify_setup.main() == 0
        assert "MOCK_MODE is on" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_mock_oracle_is_healthy(self, verify_setup, capsys):
        assert await verify_setup.check_oracle(Settings(_env_file=None, mock_mode=True))
        assert "Oracle (mock)" in capsys.readouterr().out
