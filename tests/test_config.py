"""Tests for configuration loading and validation."""

import warnings

import pytest

from app.config import (
    AppConfig,
    ConfigurationError,
    build_app_config,
    load_config,
    load_environment_config,
    validate_config_file,
)
from app.config.duration import (
    DurationParseError,
    parse_duration,
    seconds_to_human_readable,
    validate_duration_range,
)
from app.config.environment import DEFAULT_DATABASE_URL
from app.config.validators import check_for_warnings

VALID_YAML = """
matching:
  weights:
    skills: 5
    sub_skills: 3
    location: 1
  swipe_hide_duration: "30d"
  request_timeout: "PT5S"
  parallel_reads: true
logging:
  level: DEBUG
  format: json
"""


class TestDurationParsing:
    """Test human-readable and ISO-8601 duration parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("10s", 10),
            ("15m", 900),
            ("1h", 3600),
            ("120d", 10368000),
            ("1h30m", 5400),
            ("PT30S", 30),
            ("PT1H30M", 5400),
            ("P120D", 10368000),
            ("pt10s", 10),
        ],
    )
    def test_valid_durations(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["", "   ", "10", "ten seconds", "10x", "P", "PT", "0s"])
    def test_invalid_durations(self, value):
        with pytest.raises(DurationParseError):
            parse_duration(value)

    def test_range_check(self):
        validate_duration_range(10, 1, 300)

        with pytest.raises(DurationParseError, match="too short"):
            validate_duration_range(0, 1, 300, label="Request timeout")
        with pytest.raises(DurationParseError, match="too long"):
            validate_duration_range(301, 1, 300)

    def test_human_readable(self):
        assert seconds_to_human_readable(1) == "1 second"
        assert seconds_to_human_readable(10) == "10 seconds"
        assert seconds_to_human_readable(10368000) == "120 days"


class TestAppConfig:
    """Test AppConfig validation through build_app_config."""

    def test_defaults(self):
        config = build_app_config({})

        assert isinstance(config, AppConfig)
        assert config.matching.weights.skills == 3
        assert config.matching.weights.sub_skills == 2
        assert config.matching.weights.location == 1
        assert config.matching.swipe_hide_seconds == 10368000
        assert config.matching.request_timeout_seconds == 10
        assert config.matching.exclude_expired_posts is True
        assert config.matching.parallel_reads is False
        assert config.logging.level == "INFO"
        assert config.logging.format == "key-value"

    def test_logging_defaults_are_plain_strings(self):
        """Test that unset logging values are usable by configure_logging."""
        config = build_app_config({})

        assert type(config.logging.level) is str
        assert type(config.logging.format) is str

    def test_weight_out_of_range(self):
        with pytest.raises(ConfigurationError) as exc_info:
            build_app_config({"matching": {"weights": {"skills": 0}}})

        assert any("skills" in error for error in exc_info.value.errors)

    def test_swipe_hide_duration_bounds(self):
        with pytest.raises(ConfigurationError) as exc_info:
            build_app_config({"matching": {"swipe_hide_duration": "1h"}})

        assert any("too short" in error for error in exc_info.value.errors)

    def test_request_timeout_bounds(self):
        with pytest.raises(ConfigurationError) as exc_info:
            build_app_config({"matching": {"request_timeout": "10m"}})

        assert any("too long" in error for error in exc_info.value.errors)

    def test_invalid_log_format(self):
        with pytest.raises(ConfigurationError):
            build_app_config({"logging": {"format": "xml"}})

    def test_error_str_lists_errors_and_suggestions(self):
        with pytest.raises(ConfigurationError) as exc_info:
            build_app_config({"matching": {"request_timeout": "soon"}})

        rendered = str(exc_info.value)
        assert "Validation Errors:" in rendered
        assert "Suggestions:" in rendered


class TestWarnings:
    def test_equal_weights(self):
        found = check_for_warnings(
            {"matching": {"weights": {"skills": 2, "sub_skills": 2, "location": 2}}}
        )

        assert len(found) == 1
        assert "equal" in found[0]

    def test_long_timeout_and_expired_posts(self):
        found = check_for_warnings(
            {"matching": {"request_timeout": "2m", "exclude_expired_posts": False}}
        )

        assert len(found) == 2

    def test_unparseable_timeout_left_to_validation(self):
        assert check_for_warnings({"matching": {"request_timeout": "soon"}}) == []

    def test_non_mapping_section_ignored(self):
        assert check_for_warnings({"matching": "yes"}) == []

    def test_warnings_emitted_on_build(self):
        with pytest.warns(UserWarning, match="exclude_expired_posts"):
            build_app_config({"matching": {"exclude_expired_posts": False}})


class TestLoadConfig:
    """Test file discovery and YAML handling in load_config."""

    def test_defaults_when_no_file(self, tmp_path, mock_env_vars):
        mock_env_vars.chdir(tmp_path)

        app_config, env_config = load_config()

        assert app_config.matching.weights.skills == 3
        assert env_config.database_url == DEFAULT_DATABASE_URL
        assert env_config.environment == "local"
        assert env_config.log_level is None

    def test_explicit_file(self, tmp_path, mock_env_vars):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(VALID_YAML)

        app_config, _ = load_config(config_file)

        assert app_config.matching.weights.skills == 5
        assert app_config.matching.swipe_hide_seconds == 30 * 86400
        assert app_config.matching.request_timeout_seconds == 5
        assert app_config.matching.parallel_reads is True
        assert app_config.logging.format == "json"

    def test_discovers_config_in_working_directory(self, tmp_path, mock_env_vars):
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "config.yaml").write_text(VALID_YAML)
        mock_env_vars.chdir(tmp_path)

        app_config, _ = load_config()

        assert app_config.matching.weights.skills == 5

    def test_missing_explicit_file(self, tmp_path, mock_env_vars):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "absent.yaml")

    def test_empty_file_uses_defaults(self, tmp_path, mock_env_vars):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")

        app_config, _ = load_config(config_file)

        assert app_config.matching.request_timeout_seconds == 10

    def test_invalid_yaml(self, tmp_path, mock_env_vars):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("matching: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Failed to parse YAML"):
            load_config(config_file)

    def test_top_level_must_be_mapping(self, tmp_path, mock_env_vars):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(config_file)


class TestEnvironmentConfig:
    def test_values_read(self, mock_env_vars):
        mock_env_vars.setenv("DATABASE_URL", "sqlite:///:memory:")
        mock_env_vars.setenv("LOG_LEVEL", "debug")
        mock_env_vars.setenv("ENVIRONMENT", "staging")

        env_config = load_environment_config()

        assert env_config.database_url == "sqlite:///:memory:"
        assert env_config.log_level == "DEBUG"
        assert env_config.environment == "staging"

    def test_invalid_values_collected(self, mock_env_vars):
        mock_env_vars.setenv("DATABASE_URL", "./data/db.sqlite")
        mock_env_vars.setenv("LOG_LEVEL", "LOUD")

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert len(exc_info.value.errors) == 2


class TestValidateConfigFile:
    def test_valid(self, tmp_path, capsys):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(VALID_YAML)

        assert validate_config_file(config_file) is True
        assert "is valid" in capsys.readouterr().out

    def test_invalid(self, tmp_path, capsys):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("matching:\n  weights:\n    location: 500\n")

        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            assert validate_config_file(config_file) is False

        assert "validation failed" in capsys.readouterr().out
