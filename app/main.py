"""Command-line entry point for the post matching engine."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import json
import sys
import time
from pathlib import Path
from typing import List, Optional, Tuple

from app.config.environment import EnvironmentConfig
from app.config.exceptions import ConfigurationError
from app.config.loader import load_config
from app.config.models import AppConfig, LogLevel
from app.logging import get_logger
from app.logging.config import configure_logging
from app.persistence.database import close_database, init_database
from app.persistence.exceptions import PersistenceError
from app.pipeline import MatchingPipeline, MatchRunResult

logger = get_logger(__name__, component="cli")

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_VALIDATION = 2
EXIT_NOT_FOUND = 3
EXIT_UNAVAILABLE = 4


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and resolve the effective log level.

    Log level priority: CLI > LOG_LEVEL environment variable > config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = LogLevel(app_config.logging.level).value

    return app_config, env_config


def exit_code_for(result: MatchRunResult) -> int:
    """Map a run's HTTP-style status to a process exit code."""
    if result.status_code == 200:
        return EXIT_OK
    if result.status_code == 400:
        return EXIT_VALIDATION
    if result.status_code == 404:
        return EXIT_NOT_FOUND
    return EXIT_UNAVAILABLE


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Post Matching Engine - rank posts for a user by skill, sub-skill and location"
    )
    parser.add_argument("--viewer-id", type=int, required=True, help="Requesting user id")
    parser.add_argument("--page", default=None, help="1-based page number (default: 1)")
    parser.add_argument("--limit", default=None, help="Items per page, 1-100 (default: 10)")
    parser.add_argument("--status", default=None, help="Post status filter (default: active)")
    parser.add_argument("--medium", default=None, help="Medium filter: online or offline")
    parser.add_argument(
        "--min-match-score", default=None, help="Minimum match percentage (0-100)"
    )
    parser.add_argument("--no-skills", action="store_true", help="Disable the skill axis")
    parser.add_argument(
        "--no-sub-skills", action="store_true", help="Disable the sub-skill axis"
    )
    parser.add_argument("--no-location", action="store_true", help="Disable the location axis")
    parser.add_argument(
        "--require-location",
        action="store_true",
        help="Fail when the user has no active temporary address",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Request budget in seconds (overrides matching.request_timeout)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: ./config.yaml if present)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    return parser


def query_params_from_args(args: argparse.Namespace) -> dict:
    """Translate CLI flags into raw query parameters (None means use the default)."""
    return {
        "page": args.page,
        "limit": args.limit,
        "status": args.status,
        "medium": args.medium,
        "min_match_score": args.min_match_score,
        "match_skills": not args.no_skills,
        "match_sub_skills": not args.no_sub_skills,
        "match_location": not args.no_location,
        "require_location": args.require_location,
    }


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run one matching request and print the JSON response to stdout.

    Returns:
        Exit code: 0 success, 2 invalid query, 3 user not found,
        4 storage unavailable or timed out, 1 configuration or fatal error.
    """
    start_time = time.time()
    args = build_parser().parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=env_config.environment,
        )

        logger.info(
            "Post matching engine starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
            },
        )

        init_database(env_config.database_url)

        try:
            pipeline = MatchingPipeline.from_config(app_config)
            result = pipeline.run(
                args.viewer_id, query_params_from_args(args), timeout=args.timeout
            )
        finally:
            close_database()

        print(json.dumps(result.body, indent=2))

        logger.info(
            "Post matching engine stopped",
            extra={
                "event": "service.stopping",
                "status_code": result.status_code,
                "uptime_seconds": round(time.time() - start_time, 2),
            },
        )
        return exit_code_for(result)

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e}",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return EXIT_FATAL
    except PersistenceError as e:
        print(f"Database Error: {e}", file=sys.stderr)
        logger.error(
            f"Database error: {e}",
            extra={"event": "database.error", "error_type": type(e).__name__},
        )
        return EXIT_UNAVAILABLE
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return EXIT_FATAL
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error while serving matching request",
            extra={
                "event": "service.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())
