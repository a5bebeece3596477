"""Basic tests for lomba-relay main module."""

import pytest
from asyncclick.testing import CliRunner

from lomba_relay.main import app as main


def test_main_function_exists():
    """Test that the main function exists and is callable."""
    assert callable(main)


@pytest.mark.asyncio
async def test_main_command_help():
    """Test that main command can show help."""
    runner = CliRunner()
    result = await runner.invoke(main, ["--help"])

    assert result.exit_code == 0
    assert "Lomba Relay" in result.output
    for command in ("run", "extract", "deliver", "deliver-random", "logging-status"):
        assert command in result.output


@pytest.mark.asyncio
async def test_main_with_logging_status():
    """Test that logging-status command works."""
    runner = CliRunner()
    result = await runner.invoke(main, ["--json", "logging-status"])

    assert result.exit_code == 0
    assert "Logging Configuration" in result.output


@pytest.mark.asyncio
async def test_extract_requires_record_ids():
    """Test that extract refuses to run without ids."""
    runner = CliRunner()
    result = await runner.invoke(main, ["--json", "extract"])

    assert result.exit_code != 0
    assert "RECORD_IDS" in result.output
