from __future__ import annotations
import logging
from collections.abc import Mapping
from typing import Callable, Iterable, Optional, Sequence

from . import canon, utils
from .types import MergeResult, NamedDocument, empty_channels

logger = logging.getLogger(__name__)

Progress = Callable[[int, int], None]


def sort_documents(documents: Iterable[NamedDocument]) -> list[NamedDocument]:
    """Order documents by the sequence number in their file name (stable; unnumbered first)."""
    return sorted(documents, key=lambda d: utils.extract_sequence(d.name))


def merge_documents(
    documents: Sequence[NamedDocument],
    *,
    progress: Optional[Progress] = None,
) -> MergeResult:
    """
    Concatenate the channel arrays of already-ordered documents.

    - Documents without a 'data' object are skipped.
    - Channels that are absent or not a list count as empty for that document.
    - instanceElectricity is merged but never normalised downstream.

    The returned log lists the file order, per-channel actions and final counts.
    """
    channels = empty_channels()
    log: list[str] = ["File order:"]
    for i, doc in enumerate(documents, start=1):
        seq = utils.extract_sequence(doc.name)
        log.append(f"{i}. {doc.name} (sequence: {seq or 'none'})")

    total = len(documents)
    for i, doc in enumerate(documents, start=1):
        log.append(f"File: {doc.name}")
        data = doc.content.get("data") if isinstance(doc.content, Mapping) else None
        if not isinstance(data, Mapping):
            log.append("- no 'data' key found")
            logger.info("Skipping %s: no 'data' object", doc.name)
        else:
            for name in canon.CHANNELS:
                values = data.get(name)
                if isinstance(values, list):
                    channels[name].extend(values)  # type: ignore[literal-required]
                    log.append(f"- {name}: added {len(values)} records")
                    logger.debug("%s: %s +%d", doc.name, name, len(values))
                else:
                    log.append(f"- {name}: no data")
        if progress is not None:
            progress(i, total)

    result = MergeResult(channels=channels, log=log)
    log.append("Merged:")
    for name, n in result.counts.items():
        log.append(f"- {name}: {n} records")
    logger.info("Merged %d documents: %s", total, result.counts)
    return result
