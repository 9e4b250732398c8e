from . import (
    canon,
    config,
    exceptions,
    types,
    utils,
    merge,
    normalize,
    csvio,
    ingest,
    pipeline,
    client,
)

__all__ = [
    "canon",
    "config",
    "exceptions",
    "types",
    "utils",
    "merge",
    "normalize",
    "csvio",
    "ingest",
    "pipeline",
    "client",
]
