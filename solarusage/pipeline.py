from __future__ import annotations
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional

from . import canon, csvio, exceptions, ingest, merge, normalize, utils
from .config import NormalizeConfig, default_config
from .types import ConvertedSample, MergeResult, RoundedSample

logger = logging.getLogger(__name__)

Progress = Callable[[int, int], None]


@dataclass
class BatchResult:
    samples: list[RoundedSample]
    merged: MergeResult
    csv_text: str
    path: Optional[Path]


@dataclass
class ConvertResult:
    samples: list[ConvertedSample]
    csv_text: str
    path: Optional[Path]


@dataclass
class MergeJsonResult:
    merged: MergeResult
    paths: list[Path]


def merged_csv_name(first_file: Optional[str]) -> str:
    """'<base>_mergedcsv.csv' from the first selected file, or the generic default."""
    base = utils.base_name(first_file) if first_file else ""
    return f"{base}{canon.MERGED_CSV_SUFFIX}" if base else canon.DEFAULT_MERGED_CSV


def converted_csv_name(source: str) -> str:
    return f"{utils.stem(source)}{canon.CONVERTED_CSV_SUFFIX}"


def _load_and_merge(
    paths: list[Path], progress: Optional[Progress]
) -> MergeResult:
    exceptions.require(bool(paths), "No files selected.", exceptions.DocumentError)
    docs = merge.sort_documents(ingest.load_documents(paths))
    return merge.merge_documents(docs, progress=progress)


def batch_csv(
    paths: Iterable[str | Path],
    out_dir: Optional[str | Path] = None,
    *,
    config: Optional[NormalizeConfig] = None,
    progress: Optional[Progress] = None,
) -> BatchResult:
    """
    Merge several usage exports and convert them to one CSV.

    Files are ordered by their '__<n>' sequence suffix. When out_dir is
    given the CSV is written there as '<base>_mergedcsv.csv', where base
    comes from the first selected file.
    """
    cfg = config or default_config()
    paths = [Path(p) for p in paths]
    merged = _load_and_merge(paths, progress)

    normal = merged.channels[canon.NORMAL_USAGE]  # type: ignore[literal-required]
    if not normal:
        merged.log.append(f"No {canon.NORMAL_USAGE} data; CSV conversion aborted.")
        raise exceptions.NormalizeError(
            f"No {canon.NORMAL_USAGE} data; CSV conversion aborted."
        )

    samples = normalize.normalize(
        normal,
        merged.channels[canon.REVERSE_USAGE],  # type: ignore[literal-required]
        config=cfg,
    )
    merged.log.append(f"Converted {len(samples)} samples.")
    text = csvio.serialize(samples)

    target = None
    if out_dir is not None:
        target = ingest.write_csv(text, Path(out_dir) / merged_csv_name(paths[0].name))
    logger.info("Batch conversion produced %d samples", len(samples))
    return BatchResult(samples=samples, merged=merged, csv_text=text, path=target)


def convert_file(
    path: str | Path,
    out_dir: Optional[str | Path] = None,
    *,
    config: Optional[NormalizeConfig] = None,
) -> ConvertResult:
    """Convert a single JSON array file; written as '<stem>_converted.csv' when out_dir is given."""
    cfg = config or default_config()
    doc = ingest.read_document(path)
    samples = normalize.convert_records(doc.content, config=cfg)
    text = csvio.serialize_converted(samples)

    target = None
    if out_dir is not None:
        target = ingest.write_csv(text, Path(out_dir) / converted_csv_name(doc.name))
    return ConvertResult(samples=samples, csv_text=text, path=target)


def merge_json(
    paths: Iterable[str | Path],
    out_dir: str | Path,
    *,
    progress: Optional[Progress] = None,
) -> MergeJsonResult:
    """Merge channel arrays across files and write one 'merged_<channel>.json' per channel."""
    merged = _load_and_merge([Path(p) for p in paths], progress)
    exceptions.require(
        merged.total > 0,
        "No mergeable data found in the selected files.",
        exceptions.MergeError,
    )
    written = ingest.write_channels(merged.channels, out_dir)
    return MergeJsonResult(merged=merged, paths=written)
