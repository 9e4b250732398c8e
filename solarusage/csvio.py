from __future__ import annotations
import io
import math
from decimal import Decimal
import numpy as np
import pandas as pd
from typing import Any, Sequence

from . import canon
from .types import ConvertedSample, RoundedSample


def _shortest(f: float) -> str:
    # Exponent form only below 1e-6 or from 1e21 up, written as '1e-7' / '1.5e+21'
    s = repr(f)
    if "e" not in s:
        return s
    mantissa, exp = s.split("e")
    e = int(exp)
    if -7 < e < 21:
        return format(Decimal(s), "f")
    return f"{mantissa}e{'+' if e > 0 else '-'}{abs(e)}"


def format_number(x: Any) -> str:
    """
    Render a numeric CSV field.

    Nulls become an empty field; integral values drop the decimal point
    (10.0 -> '10'); other floats use the shortest round-trip form, with
    exponents written as '1e-7' rather than '1e-07'.
    """
    if x is None:
        return ""
    if isinstance(x, (int, np.integer)) and not isinstance(x, bool):
        return str(int(x))
    f = float(x)
    if math.isnan(f):
        return ""
    if f.is_integer() and abs(f) < 1e21:
        return str(int(f))
    return _shortest(f)


def has_reverse(samples: Sequence[RoundedSample]) -> bool:
    """True when any sample carries a reverse-usage cumulative value."""
    return any(s.reverse_usage_cumulative is not None for s in samples)


def _join(fields: list[str]) -> str:
    # Fields are numeric or formatted timestamps; no quoting is applied.
    return ",".join(fields) + "\n"


def serialize(samples: Sequence[RoundedSample]) -> str:
    """
    Render normalised samples as CSV text.

    Reverse-usage columns are included only when at least one sample has a
    reverse cumulative value; rows without one leave both fields empty.
    """
    with_reverse = has_reverse(samples)
    header = list(canon.CSV_BASE_HEADER)
    if with_reverse:
        header += canon.CSV_REVERSE_HEADER

    out = [_join(header)]
    for s in samples:
        row = [
            format_number(s.generated_time),
            format_number(s.round_time),
            s.formated_time,
            format_number(s.normal_usage_cumulative),
            format_number(s.normal_usage_difference),
        ]
        if with_reverse:
            row += [
                format_number(s.reverse_usage_cumulative),
                format_number(s.reverse_usage_difference),
            ]
        out.append(_join(row))
    return "".join(out)


def serialize_converted(samples: Sequence[ConvertedSample]) -> str:
    """CSV text for the single-file conversion layout."""
    out = [_join(list(canon.CSV_CONVERTED_HEADER))]
    for s in samples:
        out.append(
            _join(
                [
                    format_number(s.generated_time),
                    format_number(s.round_time),
                    s.formated_time,
                    format_number(s.cumulative),
                    format_number(s.difference),
                ]
            )
        )
    return "".join(out)


def parse_csv(text: str) -> pd.DataFrame:
    """Read CSV text produced by serialize/serialize_converted back into a DataFrame."""
    return pd.read_csv(
        io.StringIO(text), dtype={"formatedTime": str}, float_precision="round_trip"
    )
