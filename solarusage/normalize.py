from __future__ import annotations
import logging
import numpy as np
import pandas as pd
from typing import Any, Iterable, Optional, Sequence, cast

from . import canon, exceptions, utils
from .config import NormalizeConfig, default_config
from .types import ConvertedSample, RoundedSample, SampleFrame

logger = logging.getLogger(__name__)


def _rounded_frame(items: Iterable[Any], tz: str, channel: str) -> pd.DataFrame:
    """
    Coerce raw records and attach their minute-rounded time.

    Returns columns ['generated_time', 'round_time', 'value'] in input order.
    Records that fail coercion or rounding are dropped.
    """
    records, rejected = utils.coerce_records(items)
    rows: list[tuple[int, int, float]] = []
    for r in records:
        try:
            rt = utils.round_to_minute(r.generated_time, tz)
        except exceptions.TimestampError:
            rejected["timestamp out of range"] += 1
            continue
        rows.append((r.generated_time, rt, r.value))

    if rejected:
        logger.debug(
            "%s: dropped %d records %s", channel, sum(rejected.values()), dict(rejected)
        )

    df = pd.DataFrame(rows, columns=["generated_time", "round_time", "value"])
    return df.astype(
        {"generated_time": "int64", "round_time": "int64", "value": "float64"}
    )


def _thin(keys: np.ndarray, interval_ms: int) -> np.ndarray:
    """
    Greedy spacing filter over ascending keys.

    Keeps the first key and every key at least interval_ms after the last kept one.
    """
    keep = np.zeros(len(keys), dtype=bool)
    last: Optional[int] = None
    for i, k in enumerate(keys):
        if last is None or k - last >= interval_ms:
            keep[i] = True
            last = int(k)
    return keep


def _reverse_difference(cur: pd.Series) -> pd.Series:
    # 0 where a value starts after a gap (or at the first row), null where absent
    prev = cur.shift()
    return (cur - prev).mask(cur.notna() & prev.isna(), 0.0)


def normalize_frame(
    normal_usage: Iterable[Any],
    reverse_usage: Iterable[Any] = (),
    *,
    config: Optional[NormalizeConfig] = None,
) -> SampleFrame:
    """
    Reduce raw usage records to samples spaced at least config.interval_ms apart.

    - normalUsage: sorted by generatedTime, rounded to the minute; the first
      record per round time wins.
    - Round times are thinned greedily from the earliest one.
    - normal_usage_difference is taken against the previous kept sample (0 first).
    - reverseUsage: the last record per round time wins and is matched to kept
      samples by exact round time only; it never creates samples of its own.

    Raises NormalizeError when normal_usage has no usable records.
    """
    cfg = config or default_config()

    normal = _rounded_frame(normal_usage, cfg.tz, canon.NORMAL_USAGE)
    exceptions.require(
        not normal.empty,
        f"{canon.NORMAL_USAGE} has no usable records; nothing to normalise.",
        exceptions.NormalizeError,
    )

    buckets = (
        normal.sort_values("generated_time", kind="stable")
        .drop_duplicates("round_time", keep="first")
        .set_index("round_time")
        .sort_index()
    )
    keep = _thin(buckets.index.to_numpy(), cfg.interval_ms)
    kept = buckets.loc[keep].rename(columns={"value": "normal_usage_cumulative"}).copy()
    logger.debug(
        "%s: %d records, %d round times, %d kept",
        canon.NORMAL_USAGE,
        len(normal),
        len(buckets),
        len(kept),
    )

    kept["normal_usage_difference"] = (
        kept["normal_usage_cumulative"].diff().fillna(0.0)
    )

    reverse = _rounded_frame(reverse_usage, cfg.tz, canon.REVERSE_USAGE)
    if reverse.empty:
        kept["reverse_usage_cumulative"] = np.nan
    else:
        latest = (
            reverse.sort_values("generated_time", kind="stable")
            .drop_duplicates("round_time", keep="last")
            .set_index("round_time")["value"]
        )
        kept["reverse_usage_cumulative"] = latest.reindex(kept.index)
        logger.debug(
            "%s: %d round times, %d matched",
            canon.REVERSE_USAGE,
            len(latest),
            int(kept["reverse_usage_cumulative"].notna().sum()),
        )
    kept["reverse_usage_difference"] = _reverse_difference(
        kept["reverse_usage_cumulative"].astype("float64")
    )

    out = kept[canon.SAMPLE_COLS].copy()
    out.index.name = canon.INDEX_NAME
    out.attrs["tz"] = cfg.tz
    out.attrs["time_format"] = cfg.time_format
    out.__class__ = SampleFrame
    return cast(SampleFrame, out)


def _opt(x: Any) -> Optional[float]:
    return None if pd.isna(x) else float(x)


def normalize(
    normal_usage: Iterable[Any],
    reverse_usage: Iterable[Any] = (),
    *,
    config: Optional[NormalizeConfig] = None,
) -> list[RoundedSample]:
    """Ordered RoundedSample list for the given channels; see normalize_frame."""
    cfg = config or default_config()
    df = normalize_frame(normal_usage, reverse_usage, config=cfg)
    return [
        RoundedSample(
            generated_time=int(row.generated_time),
            round_time=int(row.Index),
            normal_usage_cumulative=float(row.normal_usage_cumulative),
            normal_usage_difference=float(row.normal_usage_difference),
            reverse_usage_cumulative=_opt(row.reverse_usage_cumulative),
            reverse_usage_difference=_opt(row.reverse_usage_difference),
            tz=cfg.tz,
            time_format=cfg.time_format,
        )
        for row in df.itertuples()
    ]


def to_frame(samples: Sequence[RoundedSample]) -> pd.DataFrame:
    """Tabular view of samples (index 'round_time') including the formatted time."""
    df = pd.DataFrame(
        {
            canon.INDEX_NAME: pd.Series([s.round_time for s in samples], dtype="int64"),
            "generated_time": pd.Series(
                [s.generated_time for s in samples], dtype="int64"
            ),
            "formated_time": pd.Series(
                [s.formated_time for s in samples], dtype="object"
            ),
            "normal_usage_cumulative": [s.normal_usage_cumulative for s in samples],
            "normal_usage_difference": [s.normal_usage_difference for s in samples],
            "reverse_usage_cumulative": pd.Series(
                [s.reverse_usage_cumulative for s in samples], dtype="float64"
            ),
            "reverse_usage_difference": pd.Series(
                [s.reverse_usage_difference for s in samples], dtype="float64"
            ),
        }
    )
    return df.set_index(canon.INDEX_NAME)


def convert_records(
    items: Any,
    *,
    config: Optional[NormalizeConfig] = None,
) -> list[ConvertedSample]:
    """
    Single-file conversion of a top-level array of {generatedTime, value}.

    Items are ordered by round time (ties keep input order) and thinned with
    the same spacing rule, so the first item per round time in input order wins.
    """
    cfg = config or default_config()
    exceptions.require(
        isinstance(items, list),
        "JSON data is not an array.",
        exceptions.NormalizeError,
    )

    df = _rounded_frame(items, cfg.tz, "records")
    exceptions.require(
        not df.empty, "No usable records to convert.", exceptions.NormalizeError
    )

    df = df.sort_values("round_time", kind="stable")
    kept = df.loc[_thin(df["round_time"].to_numpy(), cfg.interval_ms)]
    diff = kept["value"].diff().fillna(0.0)
    logger.debug("converted %d records to %d samples", len(df), len(kept))

    return [
        ConvertedSample(
            generated_time=int(g),
            round_time=int(rt),
            cumulative=float(v),
            difference=float(d),
            tz=cfg.tz,
            time_format=cfg.time_format,
        )
        for g, rt, v, d in zip(
            kept["generated_time"], kept["round_time"], kept["value"], diff
        )
    ]
