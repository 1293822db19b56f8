"""Tests for the command-line entry point."""

import json
import logging
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from app.main import (
    EXIT_FATAL,
    EXIT_NOT_FOUND,
    EXIT_OK,
    EXIT_UNAVAILABLE,
    EXIT_VALIDATION,
    build_parser,
    exit_code_for,
    load_runtime_config,
    main,
    query_params_from_args,
)
from app.logging.config import configure_logging
from app.persistence.database import close_database as reset_database
from app.persistence.exceptions import DatabaseConnectionError
from app.pipeline import MatchRunResult

STARTED = datetime(2025, 10, 15, 12, 0, tzinfo=timezone.utc)


def _result(status_code, body=None):
    return MatchRunResult(
        request_id="req",
        viewer_id=1,
        status_code=status_code,
        body=body or {"success": status_code == 200},
        run_started_at=STARTED,
        run_finished_at=STARTED,
    )


@pytest.fixture
def cli_env(tmp_path, mock_env_vars):
    """Run from an empty directory against an in-memory database."""
    mock_env_vars.chdir(tmp_path)
    mock_env_vars.setenv("DATABASE_URL", "sqlite:///:memory:")

    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield mock_env_vars
    reset_database()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestParser:
    def test_flags_become_query_params(self):
        args = build_parser().parse_args(
            ["--viewer-id", "7", "--page", "2", "--medium", "offline", "--no-location", "--timeout", "2.5"]
        )

        params = query_params_from_args(args)

        assert args.viewer_id == 7
        assert args.timeout == 2.5
        assert params["page"] == "2"
        assert params["medium"] == "offline"
        assert params["limit"] is None
        assert params["match_skills"] is True
        assert params["match_location"] is False
        assert params["require_location"] is False

    def test_viewer_id_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestExitCodes:
    @pytest.mark.parametrize(
        "status_code,expected",
        [
            (200, EXIT_OK),
            (400, EXIT_VALIDATION),
            (404, EXIT_NOT_FOUND),
            (503, EXIT_UNAVAILABLE),
            (504, EXIT_UNAVAILABLE),
        ],
    )
    def test_exit_code_for(self, status_code, expected):
        assert exit_code_for(_result(status_code)) == expected


class TestLoadRuntimeConfig:
    def test_cli_level_wins(self, cli_env):
        cli_env.setenv("LOG_LEVEL", "WARNING")

        _, env_config = load_runtime_config(None, "DEBUG")

        assert env_config.log_level == "DEBUG"

    def test_environment_level_over_config(self, cli_env):
        cli_env.setenv("LOG_LEVEL", "WARNING")

        _, env_config = load_runtime_config(None, None)

        assert env_config.log_level == "WARNING"

    def test_config_level_as_fallback(self, cli_env):
        _, env_config = load_runtime_config(None, None)

        assert env_config.log_level == "INFO"
        assert type(env_config.log_level) is str

    def test_default_level_configures_logging(self, cli_env):
        _, env_config = load_runtime_config(None, None)

        configure_logging(level=env_config.log_level, environment="test")

        assert logging.getLogger().level == logging.INFO


class TestMain:
    def test_success_prints_json(self, cli_env, capsys):
        body = {"success": True, "data": [{"id": 10}]}

        with patch("app.main.MatchingPipeline") as pipeline_cls:
            pipeline_cls.from_config.return_value.run.return_value = _result(200, body)
            exit_code = main(["--viewer-id", "1", "--min-match-score", "40"])

        assert exit_code == EXIT_OK
        assert json.loads(capsys.readouterr().out) == body
        viewer_id, params = pipeline_cls.from_config.return_value.run.call_args.args
        assert viewer_id == 1
        assert params["min_match_score"] == "40"
        assert pipeline_cls.from_config.return_value.run.call_args.kwargs == {"timeout": None}

    def test_unknown_viewer(self, cli_env, capsys):
        exit_code = main(["--viewer-id", "1"])

        assert exit_code == EXIT_NOT_FOUND
        assert json.loads(capsys.readouterr().out) == {
            "success": False,
            "message": "User not found",
        }

    def test_invalid_query(self, cli_env, capsys):
        exit_code = main(["--viewer-id", "1", "--limit", "500"])

        assert exit_code == EXIT_VALIDATION
        assert json.loads(capsys.readouterr().out)["errors"][0]["field"] == "limit"

    def test_missing_config_file(self, cli_env, tmp_path, capsys):
        exit_code = main(["--viewer-id", "1", "--config", str(tmp_path / "absent.yaml")])

        assert exit_code == EXIT_FATAL
        assert "Configuration Error" in capsys.readouterr().err

    def test_database_unavailable(self, cli_env, capsys):
        with patch("app.main.init_database", side_effect=DatabaseConnectionError("refused")):
            exit_code = main(["--viewer-id", "1"])

        assert exit_code == EXIT_UNAVAILABLE
        assert "Database Error" in capsys.readouterr().err

    def test_database_closed_after_run(self, cli_env):
        with patch("app.main.MatchingPipeline") as pipeline_cls, patch(
            "app.main.close_database"
        ) as close_database:
            pipeline_cls.from_config.return_value.run.side_effect = RuntimeError("boom")
            exit_code = main(["--viewer-id", "1"])

        assert exit_code == EXIT_FATAL
        close_database.assert_called_once()
