from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Callable, Iterable, Optional

from . import canon, exceptions
from .types import MergedChannels, NamedDocument

logger = logging.getLogger(__name__)

PathLike = str | Path


def read_document(path: PathLike) -> NamedDocument:
    """
    Read and parse one JSON file.

    Raises DocumentError naming the file when it cannot be read or parsed.
    """
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise exceptions.DocumentError(f"Failed to read {p.name}: {e}") from e
    try:
        content = json.loads(text)
    except json.JSONDecodeError as e:
        raise exceptions.DocumentError(f"Failed to parse {p.name}: {e}") from e
    return NamedDocument(name=p.name, content=content)


def load_documents(
    paths: Iterable[PathLike],
    *,
    progress: Optional[Callable[[int, int], None]] = None,
) -> list[NamedDocument]:
    """Read every file; a single failure aborts the whole batch."""
    paths = list(paths)
    docs: list[NamedDocument] = []
    for i, path in enumerate(paths, start=1):
        docs.append(read_document(path))
        if progress is not None:
            progress(i, len(paths))
    logger.info("Loaded %d documents", len(docs))
    return docs


def write_channels(merged: MergedChannels, out_dir: PathLike) -> list[Path]:
    """
    Write each non-empty merged channel to 'merged_<channel>.json'.

    Output is pretty-printed with a 2-space indent. Returns the written paths.
    """
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for name in canon.CHANNELS:
        values = merged[name]  # type: ignore[literal-required]
        if not values:
            logger.info("%s: no data, nothing written", name)
            continue
        target = out / canon.MERGED_JSON_TEMPLATE.format(channel=name)
        target.write_text(
            json.dumps(values, indent=2, ensure_ascii=False), encoding="utf-8"
        )
        written.append(target)
        logger.info("Wrote %d %s records to %s", len(values), name, target)
    return written


def write_csv(text: str, path: PathLike) -> Path:
    """Write CSV text; raises SerializeError when the file cannot be written."""
    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
    except OSError as e:
        raise exceptions.SerializeError(f"Failed to write {target}: {e}") from e
    logger.info("Wrote %s", target)
    return target
