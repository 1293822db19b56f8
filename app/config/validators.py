"""Non-fatal configuration checks."""

import warnings
from typing import Any, Dict, List

from .duration import DurationParseError, parse_duration


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check raw configuration for settings that are valid but probably unintended.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    matching = config_dict.get("matching", {})
    if not isinstance(matching, dict):
        return warning_messages

    weights = matching.get("weights", {})
    if isinstance(weights, dict) and weights:
        values = [weights.get(axis) for axis in ("skills", "sub_skills", "location")]
        if all(isinstance(v, int) for v in values) and len(set(values)) == 1:
            warning_messages.append(
                "All axis weights are equal; skill and sub-skill matches will rank no higher "
                "than location matches"
            )

    timeout = matching.get("request_timeout")
    if isinstance(timeout, str):
        try:
            if parse_duration(timeout) > 60:
                warning_messages.append(
                    f"Long request_timeout ({timeout}) may hold transport workers for a long time"
                )
        except DurationParseError:
            # Reported as a hard error by model validation
            pass

    if matching.get("exclude_expired_posts") is False:
        warning_messages.append(
            "exclude_expired_posts is disabled; posts past their deadline will be matched"
        )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit warning messages using Python's warnings module."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
