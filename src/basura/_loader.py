"""Index persistence: manifest validation, SHA-256 checksums, msgpack sidecar."""

from __future__ import annotations

import hashlib
import json
import logging
from importlib import resources
from pathlib import Path
from typing import TYPE_CHECKING, Any

import msgpack

from ._errors import BasuraChecksumError, BasuraError, BasuraVersionError
from ._trie import CodepointTrie
from ._types import IndexMeta

if TYPE_CHECKING:
    from ._codepoints import CodepointIndex

logger = logging.getLogger(__name__)

_EXPECTED_VERSION = "1.0"

TRIE_FILE = "codepoints.trie"
META_FILE = "codepoints.meta"

_DATA_FILES = (TRIE_FILE, META_FILE)


def _default_data_dir() -> Path:
    return Path(str(resources.files("basura") / "data"))


def _sha256(path: Path) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


def _read_manifest(data_dir: Path) -> dict[str, Any]:
    manifest_path = data_dir / "manifest.json"
    if not manifest_path.exists():
        raise BasuraError(f"manifest.json not found in {data_dir}")
    with open(manifest_path) as f:
        return json.load(f)


def _validate_manifest(manifest: dict[str, Any], data_dir: Path) -> None:
    version = manifest.get("version")
    if version != _EXPECTED_VERSION:
        raise BasuraVersionError(
            f"Expected data version {_EXPECTED_VERSION!r}, got {version!r}"
        )
    checksums = manifest.get("files", {})
    for filename in _DATA_FILES:
        filepath = data_dir / filename
        if not filepath.exists():
            raise BasuraError(f"Missing data file: {filepath}")
        expected = checksums.get(filename)
        if expected is None:
            raise BasuraError(f"No checksum in manifest for {filename}")
        actual = _sha256(filepath)
        if actual != expected:
            raise BasuraChecksumError(
                f"Checksum mismatch for {filename}: "
                f"expected {expected[:16]}..., got {actual[:16]}..."
            )


def _load_msgpack(path: Path, **kwargs: Any) -> Any:
    with open(path, "rb") as f:
        return msgpack.unpackb(f.read(), raw=False, **kwargs)


def write_index(
    trie: CodepointTrie, meta: IndexMeta, data_dir: Path | str
) -> Path:
    """Write trie, metadata and manifest as one versioned unit."""
    data_dir = Path(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)

    (data_dir / TRIE_FILE).write_bytes(trie.to_bytes())
    (data_dir / META_FILE).write_bytes(
        msgpack.packb(meta.to_dict(), use_bin_type=True)
    )
    manifest = {
        "version": _EXPECTED_VERSION,
        "files": {name: _sha256(data_dir / name) for name in _DATA_FILES},
    }
    with open(data_dir / "manifest.json", "w") as f:
        json.dump(manifest, f, indent=2)
    logger.debug("Wrote index files to %s", data_dir)
    return data_dir


def load_index(data_dir: Path | str | None = None) -> CodepointIndex:
    """Load and validate the index files, returning a ``CodepointIndex``."""
    from ._codepoints import CodepointIndex

    if data_dir is None:
        data_dir = _default_data_dir()
    else:
        data_dir = Path(data_dir)

    manifest = _read_manifest(data_dir)
    _validate_manifest(manifest, data_dir)

    trie = CodepointTrie.from_bytes((data_dir / TRIE_FILE).read_bytes())
    try:
        meta = IndexMeta.from_dict(_load_msgpack(data_dir / META_FILE))
    except (KeyError, IndexError, TypeError) as e:
        raise BasuraError(f"Malformed {META_FILE}: {e}") from e
    if (trie.initial, trie.error) != (meta.invalid, meta.error):
        raise BasuraError(
            f"{TRIE_FILE} sentinels do not match {META_FILE}"
        )

    logger.debug(
        "Loaded index from %s: %d scripts, %d categories",
        data_dir, len(meta.scripts), len(meta.categories),
    )
    return CodepointIndex(trie, meta)
