from __future__ import annotations
from typing import Final

DEFAULT_TZ: Final[str] = "Asia/Tokyo"

# Source samples arrive at roughly one-minute granularity
MINUTE_MS: Final[int] = 60_000
DEFAULT_INTERVAL_MS: Final[int] = 30 * MINUTE_MS

# Channel names as they appear under a document's "data" key
NORMAL_USAGE: Final[str] = "normalUsage"
REVERSE_USAGE: Final[str] = "reverseUsage"
INSTANCE_ELECTRICITY: Final[str] = "instanceElectricity"
CHANNELS: Final[tuple[str, ...]] = (NORMAL_USAGE, REVERSE_USAGE, INSTANCE_ELECTRICITY)

# Raw record keys
GENERATED_TIME: Final[str] = "generatedTime"
VALUE: Final[str] = "value"

TIME_FORMAT: Final[str] = "%Y/%m/%d %H:%M:%S"
MINUTE_FORMAT: Final[str] = "%Y年%m月%d日 %H時%M分"

INDEX_NAME: Final[str] = "round_time"
SAMPLE_COLS: Final[list[str]] = [
    "generated_time",
    "normal_usage_cumulative",
    "normal_usage_difference",
    "reverse_usage_cumulative",
    "reverse_usage_difference",
]

# CSV headers (wire names)
CSV_BASE_HEADER: Final[list[str]] = [
    "generatedTime",
    "roundTime",
    "formatedTime",
    "normalUsage_cumulative",
    "normalUsage_difference",
]
CSV_REVERSE_HEADER: Final[list[str]] = [
    "reverseUsage_cumulative",
    "reverseUsage_difference",
]
CSV_CONVERTED_HEADER: Final[list[str]] = [
    "generatedTime",
    "roundTime",
    "formatedTime",
    "cumulative",
    "difference",
]

# Output file naming
MERGED_CSV_SUFFIX: Final[str] = "_mergedcsv.csv"
CONVERTED_CSV_SUFFIX: Final[str] = "_converted.csv"
DEFAULT_MERGED_CSV: Final[str] = "merged_solar_data.csv"
MERGED_JSON_TEMPLATE: Final[str] = "merged_{channel}.json"
PAGE_FILE_TEMPLATE: Final[str] = "{device}___{seq:03d}.json"

# Vendor API
TOKEN_HEADER: Final[str] = "X-ND-TOKEN"
MASKED_TOKEN: Final[str] = "********"
