"""Tests for the command-line entry point"""
from unittest.mock import AsyncMock, patch

import pytest

from progress_engine import main as cli
from progress_engine.exceptions import ConfigurationError, RecordNotFoundError, StoreUnavailableError


def test_parse_complete_flags():
    args = cli.build_parser().parse_args(["complete", "u1", "--verified", "--perfect-day"])

    assert args.command == "complete"
    assert args.user_id == "u1"
    assert args.verified is True
    assert args.perfect_day is True


def test_parse_complete_defaults():
    args = cli.build_parser().parse_args(["complete", "u1"])

    assert args.verified is False
    assert args.perfect_day is False


def test_command_required():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


def test_invalid_config_exits_with_error(capsys):
    with patch("progress_engine.main.validate_config", side_effect=ConfigurationError("bad", config_key="X")):
        code = cli.main(["show", "u1"])

    assert code == 2
    assert "not properly configured" in capsys.readouterr().err


def test_store_error_reported(capsys):
    with patch("progress_engine.main.validate_config"), \
         patch("progress_engine.main.run", new=AsyncMock(side_effect=StoreUnavailableError())):
        code = cli.main(["complete", "u1"])

    assert code == 2
    assert "trouble saving your progress" in capsys.readouterr().err


def test_successful_run_returns_code():
    with patch("progress_engine.main.validate_config"), \
         patch("progress_engine.main.run", new=AsyncMock(return_value=0)) as run:
        code = cli.main(["init-user", "u1"])

    assert code == 0
    assert run.await_args.args[0].user_id == "u1"


@pytest.mark.asyncio
async def test_show_unknown_user_raises_not_found():
    evaluator = AsyncMock()
    evaluator.get_user_progress.return_value = None

    with patch("progress_engine.main.db") as db, \
         patch("progress_engine.main.AchievementEvaluator", return_value=evaluator):
        db.init_pool = AsyncMock()
        db.close_pool = AsyncMock()
        with pytest.raises(RecordNotFoundError):
            await cli.run(cli.build_parser().parse_args(["show", "ghost"]))

    db.close_pool.assert_awaited_once()
