"""Duration parsing for configuration values such as timeouts and swipe TTLs."""

import re

_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}

_ISO_PATTERN = re.compile(
    r"^P(?:(?P<d>\d+)D)?(?:T(?:(?P<h>\d+)H)?(?:(?P<m>\d+)M)?(?:(?P<s>\d+(?:\.\d+)?)S)?)?$"
)
_HUMAN_TOKEN = re.compile(r"(\d+)([smhd])")


class DurationParseError(ValueError):
    """Raised when a duration string cannot be parsed or is out of range."""


def parse_duration(duration_str: str) -> int:
    """
    Parse a duration string to whole seconds.

    Supports human-readable values ("30s", "15m", "1h", "120d", "1h30m") and
    ISO-8601 durations ("PT30S", "PT15M", "P120D").

    Args:
        duration_str: Duration string to parse

    Returns:
        Duration in seconds

    Raises:
        DurationParseError: If the string is empty, malformed, or zero

    Examples:
        >>> parse_duration("10s")
        10
        >>> parse_duration("P120D")
        10368000
    """
    if not isinstance(duration_str, str) or not duration_str.strip():
        raise DurationParseError("Duration string cannot be empty")

    text = duration_str.strip()
    if text.upper().startswith("P"):
        seconds = _parse_iso8601(text)
    else:
        seconds = _parse_human_readable(text)

    if seconds == 0:
        raise DurationParseError(f"Duration cannot be zero: '{duration_str}'")
    return seconds


def _parse_iso8601(text: str) -> int:
    match = _ISO_PATTERN.match(text.upper())
    if not match or text.upper() in ("P", "PT"):
        raise DurationParseError(
            f"Invalid ISO-8601 duration format: '{text}'. "
            "Expected format like 'P120D', 'PT1H30M', or 'PT30S'"
        )

    parts = match.groupdict()
    total = int(parts["d"] or 0) * _UNIT_SECONDS["d"]
    total += int(parts["h"] or 0) * _UNIT_SECONDS["h"]
    total += int(parts["m"] or 0) * _UNIT_SECONDS["m"]
    total += int(float(parts["s"] or 0))
    return total


def _parse_human_readable(text: str) -> int:
    compact = re.sub(r"\s+", "", text.lower())
    tokens = _HUMAN_TOKEN.findall(compact)

    if not tokens or "".join(num + unit for num, unit in tokens) != compact:
        raise DurationParseError(
            f"Invalid duration format: '{text}'. "
            "Use digits with units s, m, h, d (e.g. '10s', '15m', '120d', '1h30m')"
        )

    return sum(int(num) * _UNIT_SECONDS[unit] for num, unit in tokens)


def validate_duration_range(
    duration_seconds: int, min_seconds: int, max_seconds: int, label: str = "Duration"
) -> None:
    """
    Ensure a parsed duration lies within [min_seconds, max_seconds].

    Raises:
        DurationParseError: If the duration is outside the range
    """
    if duration_seconds < min_seconds:
        raise DurationParseError(
            f"{label} too short: {seconds_to_human_readable(duration_seconds)}. "
            f"Minimum is {seconds_to_human_readable(min_seconds)}."
        )
    if duration_seconds > max_seconds:
        raise DurationParseError(
            f"{label} too long: {seconds_to_human_readable(duration_seconds)}. "
            f"Maximum is {seconds_to_human_readable(max_seconds)}."
        )


def seconds_to_human_readable(seconds: int) -> str:
    """Render seconds using the largest whole unit ("10 seconds", "120 days")."""
    for unit_name, unit_seconds in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= unit_seconds:
            value = seconds // unit_seconds
            return f"{value} {unit_name}{'s' if value != 1 else ''}"
    return f"{seconds} second{'s' if seconds != 1 else ''}"
