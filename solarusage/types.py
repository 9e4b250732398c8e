from __future__ import annotations
from typing import TypedDict, List, Dict, Optional, NamedTuple, Any
from dataclasses import dataclass, field

import pandas as pd

from . import canon


# Sample DataFrame
class SampleFrame(pd.DataFrame):
    """
    Normalised sample dataframe produced by normalize.normalize_frame.

    Expected:
      - integer index named 'round_time' (epoch ms, multiple of 60000), strictly increasing
      - Columns: ['generated_time', 'normal_usage_cumulative', 'normal_usage_difference',
                  'reverse_usage_cumulative', 'reverse_usage_difference']
    """

    @property
    def _constructor(self):
        return SampleFrame

    @property
    def generated_time(self) -> pd.Series:
        return self["generated_time"]

    @property
    def normal_usage_cumulative(self) -> pd.Series:
        return self["normal_usage_cumulative"]

    @property
    def normal_usage_difference(self) -> pd.Series:
        return self["normal_usage_difference"]

    @property
    def reverse_usage_cumulative(self) -> pd.Series:
        return self["reverse_usage_cumulative"]

    @property
    def reverse_usage_difference(self) -> pd.Series:
        return self["reverse_usage_difference"]


## Raw input
@dataclass(frozen=True)
class UsageRecord:
    generated_time: int  # epoch ms
    value: float


@dataclass(frozen=True)
class Coerced:
    """Result of parsing one raw record: either a record or the reason it was rejected."""

    record: Optional[UsageRecord] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


class NamedDocument(NamedTuple):
    name: str  # originating file name, used for sequence ordering
    content: Any  # parsed JSON


# Merge output, keyed by wire channel names
class MergedChannels(TypedDict):
    normalUsage: List[Any]
    reverseUsage: List[Any]
    instanceElectricity: List[Any]


def empty_channels() -> MergedChannels:
    return {name: [] for name in canon.CHANNELS}  # type: ignore[return-value]


@dataclass
class MergeResult:
    channels: MergedChannels
    log: List[str] = field(default_factory=list)

    @property
    def counts(self) -> Dict[str, int]:
        return {name: len(self.channels[name]) for name in canon.CHANNELS}  # type: ignore[literal-required]

    @property
    def total(self) -> int:
        return sum(self.counts.values())


## Normalised samples
@dataclass
class RoundedSample:
    generated_time: int
    round_time: int
    normal_usage_cumulative: float
    normal_usage_difference: float
    reverse_usage_cumulative: Optional[float] = None
    reverse_usage_difference: Optional[float] = None
    tz: str = field(default=canon.DEFAULT_TZ, repr=False)
    time_format: str = field(default=canon.TIME_FORMAT, repr=False)

    @property
    def formated_time(self) -> str:
        from .utils import format_time

        return format_time(self.round_time, self.tz, self.time_format)


@dataclass
class ConvertedSample:
    """Row of the single-file conversion (one channel, no reverse columns)."""

    generated_time: int
    round_time: int
    cumulative: float
    difference: float
    tz: str = field(default=canon.DEFAULT_TZ, repr=False)
    time_format: str = field(default=canon.TIME_FORMAT, repr=False)

    @property
    def formated_time(self) -> str:
        from .utils import format_time

        return format_time(self.round_time, self.tz, self.time_format)
