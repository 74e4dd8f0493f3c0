import re
from datetime import datetime, timezone
from typing import Union

from .errors import InvalidArgument

# Timestamp of the Ethereum mainnet genesis block (2015-07-30T15:26:13Z).
GENESIS_TIMESTAMP = 1438269973

TimestampInput = Union[int, datetime, str]

_EPOCH_RE = re.compile(r"-?[0-9]+")


def to_timestamp(value: TimestampInput) -> int:
    """
    Normalize an epoch integer, a datetime, or a date-time string to epoch
    seconds. Naive datetimes and strings without an offset are read as UTC.
    """
    if isinstance(value, bool):
        raise InvalidArgument("timestamp must be an int, datetime, or date-time string, not bool.")
    if isinstance(value, int):
        return value
    if isinstance(value, datetime):
        return _datetime_to_epoch(value)
    if isinstance(value, str):
        return _parse_timestamp_string(value)
    raise InvalidArgument(
        f"timestamp must be an int, datetime, or date-time string; got {type(value).__name__}."
    )


def _datetime_to_epoch(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def _parse_timestamp_string(value: str) -> int:
    text = value.strip()
    if not text:
        raise InvalidArgument("timestamp string must not be empty.")

    if _EPOCH_RE.fullmatch(text):
        return int(text)

    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise InvalidArgument(f"Unparseable date-time string '{value}'.") from exc
    return _datetime_to_epoch(parsed)
