# logvault/naming.py
"""
Log file naming scheme.

A log file is named ``{stream}-{YYYY-MM-DD}-{token}.log`` where ``token`` is
10 lowercase hex characters that tells apart files rotated on the same day.
Decoding matches the most specific pattern first (date and token, then date
only) with a greedy stream prefix, so stream names that contain date-like
text still round-trip.
"""

import re
import secrets
from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

LOG_SUFFIX = ".log"
TOKEN_LENGTH = 10
MAX_STREAM_LENGTH = 200

_TOKEN = re.compile(r"^[a-f0-9]{%d}$" % TOKEN_LENGTH)
_DATED_TOKENED = re.compile(
    r"^(?P<stream>.*)-(?P<day>\d{4}-\d{2}-\d{2})-(?P<token>[a-f0-9]{%d})$" % TOKEN_LENGTH
)
_DATED = re.compile(r"^(?P<stream>.*)-(?P<day>\d{4}-\d{2}-\d{2})$")

_WHITESPACE = re.compile(r"\s+")
_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")
_DASH_RUNS = re.compile(r"-{2,}")


@dataclass(frozen=True)
class ParsedName:
    """Components recovered from a log file name."""

    stream: str
    day: Optional[date] = None
    token: Optional[str] = None


def sanitize_stream(name: str) -> str:
    """
    Reduce a stream name to a filesystem- and SQL-safe token.

    Whitespace becomes ``-``, characters outside ``[A-Za-z0-9._-]`` are
    dropped (path separators and control characters included), dash runs
    collapse, and leading/trailing ``.``, ``-`` and ``_`` are stripped.

    Raises:
        ValueError: If nothing usable remains
    """
    if not isinstance(name, str):
        raise TypeError(f"Stream name must be str, got {type(name).__name__}")

    cleaned = _WHITESPACE.sub("-", name.strip())
    cleaned = _UNSAFE.sub("", cleaned)
    cleaned = _DASH_RUNS.sub("-", cleaned)
    cleaned = cleaned[:MAX_STREAM_LENGTH].strip(".-_")

    if not cleaned:
        raise ValueError(f"Invalid stream name: {name!r}")
    return cleaned


def new_rotation_token() -> str:
    """Random 10-character hex token."""
    return secrets.token_hex(TOKEN_LENGTH // 2)


def is_rotation_token(value: str) -> bool:
    return bool(_TOKEN.match(value))


def encode(stream: str, day: Union[date, str], rotation_token: str) -> str:
    """
    Build the file name for one stream, day and rotation token.

    Example:
        >>> encode("auth", date(2024, 5, 1), "0a1b2c3d4e")
        'auth-2024-05-01-0a1b2c3d4e.log'
    """
    if not is_rotation_token(rotation_token):
        raise ValueError(f"Invalid rotation token: {rotation_token!r}")
    if isinstance(day, str):
        day = date.fromisoformat(day)
    return f"{sanitize_stream(stream)}-{day.isoformat()}-{rotation_token}{LOG_SUFFIX}"


def candidate_pattern(stream: str, day: date) -> str:
    """Glob pattern matching every rotated file of one stream and day."""
    return f"{stream}-{day.isoformat()}-*{LOG_SUFFIX}"


def _strip_suffix(filename: str) -> str:
    if filename.endswith(LOG_SUFFIX):
        return filename[: -len(LOG_SUFFIX)]
    return filename


def _parse_day(raw: str) -> Optional[date]:
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


def parse(filename: str) -> ParsedName:
    """
    Split a log file name into stream, day and token.

    The date is matched by shape only; a date-shaped segment that is not a
    real calendar day still splits the name, with ``day`` left as None.
    Falls back to the bare name (extension removed) when neither the dated
    nor the dated-and-tokened pattern matches.
    """
    base = _strip_suffix(filename)

    match = _DATED_TOKENED.match(base)
    if match:
        return ParsedName(match.group("stream"), _parse_day(match.group("day")), match.group("token"))

    match = _DATED.match(base)
    if match:
        return ParsedName(match.group("stream"), _parse_day(match.group("day")))

    return ParsedName(base)


def decode(filename: str) -> str:
    """Recover the stream name from a log file name."""
    return parse(filename).stream


__all__ = [
    "LOG_SUFFIX",
    "MAX_STREAM_LENGTH",
    "TOKEN_LENGTH",
    "ParsedName",
    "candidate_pattern",
    "decode",
    "encode",
    "is_rotation_token",
    "new_rotation_token",
    "parse",
    "sanitize_stream",
]
