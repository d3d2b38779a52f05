"""Basura: reproducible random values for exercising other software."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ._builder import build_index
from ._codepoints import CodepointIndex
from ._config import GenerationConfig
from ._derive import TraceDeriver, derive_trace
from ._errors import (
    BasuraChecksumError,
    BasuraError,
    BasuraVersionError,
    GenerationError,
    IndexBuildError,
    IndexCorruptError,
    TraceError,
    TraceExhaustedError,
    TraceMismatchError,
    UnknownScriptError,
)
from ._generator import Kind, KindRegistry, ValueGenerator
from ._loader import load_index, write_index
from ._random import (
    CryptoSource,
    RandomSource,
    RecordingSource,
    ReplayingSource,
    dump_trace,
    load_trace,
    trace_from_json,
    trace_to_json,
)
from ._scripts import ScriptCatalog
from ._types import CodepointInfo, IndexMeta, ScriptRecord, TraceEntry

if TYPE_CHECKING:
    from pathlib import Path

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "load",
    "build_index",
    "derive_trace",
    "dump_trace",
    "load_index",
    "load_trace",
    "trace_from_json",
    "trace_to_json",
    "write_index",
    "BasuraChecksumError",
    "BasuraError",
    "BasuraVersionError",
    "CodepointIndex",
    "CodepointInfo",
    "CryptoSource",
    "GenerationConfig",
    "GenerationError",
    "IndexBuildError",
    "IndexCorruptError",
    "IndexMeta",
    "Kind",
    "KindRegistry",
    "RandomSource",
    "RecordingSource",
    "ReplayingSource",
    "ScriptCatalog",
    "ScriptRecord",
    "TraceDeriver",
    "TraceEntry",
    "TraceError",
    "TraceExhaustedError",
    "TraceMismatchError",
    "UnknownScriptError",
    "ValueGenerator",
]


def load(data_dir: Path | str | None = None) -> ScriptCatalog:
    """Load the codepoint index and return a ready-to-use ScriptCatalog.

    The catalog is meant to be built once and shared by every
    ValueGenerator; its index is available as ``catalog.index``.

    Args:
        data_dir: Path to data directory. If None, uses bundled package data.
    """
    return ScriptCatalog(load_index(data_dir))
