"""
Go style duration strings, as understood by the IPFS HTTP API
"""

import re
from datetime import timedelta

# Microseconds per unit
UNIT_MICROSECONDS = {
    "ns": 0.001,
    "us": 1,
    "µs": 1,
    "μs": 1,
    "ms": 1_000,
    "s": 1_000_000,
    "m": 60_000_000,
    "h": 3_600_000_000,
}

_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def _decimal(whole: int, fraction: int, width: int) -> str:
    if not fraction:
        return str(whole)
    return f"{whole}.{fraction:0{width}d}".rstrip("0")


def format_duration(value: timedelta) -> str:
    """Format a timedelta the way Go's time.Duration.String() does

    >>> format_duration(timedelta(hours=50))
    '50h0m0s'
    >>> format_duration(timedelta(0))
    '0s'
    """
    total_us = (value.days * 86_400 + value.seconds) * 1_000_000 + value.microseconds
    if total_us < 0:
        raise ValueError(f"Negative durations are not supported: {value}")
    if total_us == 0:
        return "0s"

    if total_us < 1_000:
        return f"{total_us}µs"
    if total_us < 1_000_000:
        return _decimal(total_us // 1_000, total_us % 1_000, 3) + "ms"

    hours, rest = divmod(total_us, 3_600_000_000)
    minutes, rest = divmod(rest, 60_000_000)
    seconds = _decimal(rest // 1_000_000, rest % 1_000_000, 6) + "s"
    if hours:
        return f"{hours}h{minutes}m{seconds}"
    if minutes:
        return f"{minutes}m{seconds}"
    return seconds


def parse_duration(text: str) -> timedelta:
    """Parse '50h', '1h30m', '250ms' or a bare number of seconds"""
    value = text.strip()
    if not value:
        raise ValueError("Empty duration")
    if value.isdigit():
        return timedelta(seconds=int(value))

    total_us = 0.0
    position = 0
    while position < len(value):
        match = _COMPONENT.match(value, position)
        if not match:
            raise ValueError(f"Invalid duration: {text!r}")
        total_us += float(match.group(1)) * UNIT_MICROSECONDS[match.group(2)]
        position = match.end()

    return timedelta(microseconds=round(total_us))
