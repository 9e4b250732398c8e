from __future__ import annotations

from dataclasses import dataclass

from . import canon


@dataclass
class NormalizeConfig:
    # Civil time zone used for minute rounding and formatting
    tz: str = canon.DEFAULT_TZ

    # Minimum spacing between kept samples
    interval_ms: int = canon.DEFAULT_INTERVAL_MS

    time_format: str = canon.TIME_FORMAT
    minute_format: str = canon.MINUTE_FORMAT


def default_config() -> NormalizeConfig:
    return NormalizeConfig()
