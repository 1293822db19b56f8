#!/usr/bin/env python3
"""Simple script to verify a matching config file's structure without the app's models."""

import sys
from pathlib import Path

import yaml

KNOWN_MATCHING_KEYS = {
    "weights",
    "swipe_hide_duration",
    "request_timeout",
    "exclude_expired_posts",
    "parallel_reads",
}
WEIGHT_KEYS = ("skills", "sub_skills", "location")


def verify_config_structure(path: str = "config.example.yaml") -> bool:
    """Verify a config file has the expected structure."""
    config_file = Path(path)

    if not config_file.exists():
        print(f"✗ {config_file} not found")
        return False

    try:
        with open(config_file, "r") as f:
            config = yaml.safe_load(f) or {}
    except Exception as e:
        print(f"✗ Failed to parse {config_file}: {e}")
        return False

    errors = []

    matching = config.get("matching", {})
    if not isinstance(matching, dict):
        errors.append("'matching' must be a dictionary")
        matching = {}

    for key in matching:
        if key not in KNOWN_MATCHING_KEYS:
            errors.append(f"Unknown matching key: {key}")

    weights = matching.get("weights", {})
    if not isinstance(weights, dict):
        errors.append("'matching.weights' must be a dictionary")
    else:
        for key in WEIGHT_KEYS:
            value = weights.get(key)
            if value is not None and (not isinstance(value, int) or not 1 <= value <= 100):
                errors.append(f"Weight '{key}' must be an integer between 1 and 100")

    for key in ("exclude_expired_posts", "parallel_reads"):
        if key in matching and not isinstance(matching[key], bool):
            errors.append(f"'{key}' must be true or false")

    logging_config = config.get("logging", {})
    if isinstance(logging_config, dict) and logging_config.get("format") not in (
        None,
        "json",
        "key-value",
    ):
        errors.append("'logging.format' must be 'json' or 'key-value'")

    if errors:
        print("✗ Configuration has errors:")
        for error in errors:
            print(f"  - {error}")
        return False

    print(f"✓ {config_file} structure is valid")
    return True


if __name__ == "__main__":
    target = sys.argv[1] if len(sys.argv) > 1 else "config.example.yaml"
    sys.exit(0 if verify_config_structure(target) else 1)
