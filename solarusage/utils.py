# solarusage/utils.py
from __future__ import annotations
import math
import re
import numpy as np
from collections import Counter
from datetime import datetime, timedelta, tzinfo
from pathlib import PurePath
from typing import Any, Iterable, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from . import canon, exceptions
from .types import Coerced, UsageRecord

_SEQUENCE_RE = re.compile(r"__(\d+)(?:\.\w+)?$", re.ASCII)
_BASE_RE = re.compile(r"^(.*?)___")
_EXT_RE = re.compile(r"\.[^/.]+$")


def _zone(tz: str | tzinfo) -> tzinfo:
    if isinstance(tz, tzinfo):
        return tz
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError, TypeError) as e:
        raise exceptions.ConfigError(f"Unknown time zone: {tz!r}") from e


def _epoch_ms(timestamp_ms: Any) -> int:
    if isinstance(timestamp_ms, (bool, np.bool_)):
        raise exceptions.TimestampError(f"Invalid timestamp: {timestamp_ms!r}")
    if isinstance(timestamp_ms, (int, np.integer)):
        return int(timestamp_ms)
    if isinstance(timestamp_ms, (float, np.floating)) and math.isfinite(timestamp_ms):
        return int(timestamp_ms)
    raise exceptions.TimestampError(f"Invalid timestamp: {timestamp_ms!r}")


def _local(ms: int, tz: str | tzinfo) -> datetime:
    zone = _zone(tz)
    try:
        return datetime.fromtimestamp(ms // 1000, tz=zone)
    except (OverflowError, OSError, ValueError) as e:
        raise exceptions.TimestampError(f"Timestamp out of range: {ms}") from e


def round_to_minute(timestamp_ms: Any, tz: str | tzinfo = canon.DEFAULT_TZ) -> int:
    """
    Round an epoch-ms timestamp to the nearest whole minute of civil time in tz.

    Seconds >= 30 round up, anything below rounds down; seconds and
    milliseconds of the result are always zero. DST gaps and overlaps are
    not treated specially.
    """
    local = _local(_epoch_ms(timestamp_ms), tz)
    rounded = local.replace(second=0, microsecond=0)
    if local.second >= 30:
        rounded = rounded + timedelta(minutes=1)
    return int(rounded.timestamp()) * 1000


def format_time(
    timestamp_ms: Any,
    tz: str | tzinfo = canon.DEFAULT_TZ,
    fmt: str = canon.TIME_FORMAT,
) -> str:
    """Render an epoch-ms timestamp as civil time in tz ('yyyy/MM/dd HH:mm:ss' by default)."""
    return _local(_epoch_ms(timestamp_ms), tz).strftime(fmt)


def format_minute(timestamp_ms: Any, tz: str | tzinfo = canon.DEFAULT_TZ) -> str:
    return format_time(timestamp_ms, tz, canon.MINUTE_FORMAT)


def extract_sequence(name: str) -> int:
    """Sequence number after the last '__' before the extension, or 0 when absent."""
    m = _SEQUENCE_RE.search(name)
    return int(m.group(1)) if m else 0


def stem(filename: str) -> str:
    """File name without directory and extension."""
    return _EXT_RE.sub("", PurePath(filename).name)


def base_name(filename: str) -> str:
    """Text before the first '___' in the file name, else the name without extension."""
    name = PurePath(filename).name
    m = _BASE_RE.match(name)
    if m and m.group(1):
        return m.group(1)
    return _EXT_RE.sub("", name)


def _parse_time(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if math.isfinite(raw) else None
    if isinstance(raw, str):
        s = raw.strip()
        try:
            return int(s)
        except ValueError:
            pass
        try:
            f = float(s)
        except (ValueError, OverflowError):
            return None
        return int(f) if math.isfinite(f) else None
    return None


def _parse_value(raw: Any) -> float | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        try:
            f = float(raw)
        except OverflowError:
            return None
    elif isinstance(raw, str):
        try:
            f = float(raw.strip())
        except (ValueError, OverflowError):
            return None
    else:
        return None
    return f if math.isfinite(f) else None


def coerce_record(item: Any) -> Coerced:
    """
    Parse one raw {generatedTime, value} record.

    Both fields may be numbers or numeric strings. Returns a Coerced holding
    either the parsed UsageRecord or the reason it was rejected.
    """
    if not isinstance(item, Mapping):
        return Coerced(reason="not an object")
    raw_time = item.get(canon.GENERATED_TIME)
    raw_value = item.get(canon.VALUE)
    if raw_time is None:
        return Coerced(reason=f"missing {canon.GENERATED_TIME}")
    if raw_value is None:
        return Coerced(reason=f"missing {canon.VALUE}")

    t = _parse_time(raw_time)
    if t is None:
        return Coerced(reason=f"invalid {canon.GENERATED_TIME}")
    v = _parse_value(raw_value)
    if v is None:
        return Coerced(reason=f"invalid {canon.VALUE}")
    return Coerced(record=UsageRecord(generated_time=t, value=v))


def coerce_records(items: Iterable[Any]) -> tuple[list[UsageRecord], Counter[str]]:
    """Coerce every item, returning the usable records and a count of rejection reasons."""
    kept: list[UsageRecord] = []
    rejected: Counter[str] = Counter()
    for item in items:
        c = coerce_record(item)
        if c.record is not None:
            kept.append(c.record)
        else:
            rejected[c.reason or "unknown"] += 1
    return kept, rejected
