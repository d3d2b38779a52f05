"""Offline index builder: UCD + IDNA property table -> trie and metadata.

Inputs are the UCD ``UnicodeData.txt`` and ``Scripts.txt`` files and the
IANA ``idna-tables-properties.csv`` table. Run as::

    python -m basura._builder --ucd ./ucd --idna ./idna-tables-properties.csv

to refresh the bundled ``basura/data`` directory.
"""

from __future__ import annotations

import argparse
import csv
import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING

from ._errors import IndexBuildError
from ._loader import _default_data_dir, write_index
from ._trie import TrieBuilder
from ._types import UNASSIGNED, IndexMeta, ScriptRecord

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from ._trie import CodepointTrie

logger = logging.getLogger(__name__)

_RANGE_RE = re.compile(r"^\s*([0-9A-Fa-f]+)(?:-([0-9A-Fa-f]+))?\s*$")
_SCRIPTS_RE = re.compile(
    r"^([0-9A-Fa-f]+)(?:\.\.([0-9A-Fa-f]+))?\s*;\s*([A-Za-z_]+)"
)


def field_bits(count: int) -> int:
    """Bits needed to store indices 0..count-1 (0 for a single value)."""
    if count < 1:
        raise IndexBuildError("cannot size a field with no values")
    return (count - 1).bit_length()


def parse_range(text: str) -> tuple[int, int]:
    """Parse ``XXXX`` or ``XXXX-YYYY`` (hex, inclusive)."""
    m = _RANGE_RE.match(text)
    if not m:
        raise IndexBuildError(f"Invalid codepoint: {text!r}")
    start = int(m.group(1), 16)
    end = int(m.group(2), 16) if m.group(2) else start
    if end < start:
        raise IndexBuildError(f"Invalid codepoint range: {text!r}")
    return start, end


def build_index(
    database: Iterable[tuple[int, str, str]],
    properties: Iterable[tuple[str, str]],
) -> tuple[CodepointTrie, IndexMeta]:
    """Build the packed trie and its metadata.

    Args:
        database: ``(code, category, script)`` for every codepoint that has a
            script. Enumeration indices are assigned in codepoint order.
        properties: ``(range, property)`` rows; ``UNASSIGNED`` rows are
            dropped, and codepoints missing from ``database`` are skipped.
    """
    codes: dict[int, tuple[str, str]] = {}
    categories: dict[str, int] = {}
    scripts: dict[str, dict[str, int]] = {}
    for code, category, script in sorted(database):
        if category not in categories:
            categories[category] = len(categories)
        entry = scripts.get(script)
        if entry is None:
            entry = scripts[script] = {
                "num": len(scripts), "first": code, "count": 0,
            }
        entry["last"] = code
        codes[code] = (category, script)
    if not codes:
        raise IndexBuildError("No classified codepoints in database")

    prop_index: dict[str, int] = {}
    rows: list[tuple[int, int, str]] = []
    for text, prop in properties:
        if prop == UNASSIGNED:
            continue
        if prop not in prop_index:
            prop_index[prop] = len(prop_index)
        start, end = parse_range(text)
        rows.append((start, end, prop))
    if not prop_index:
        raise IndexBuildError("Property table has no assigned entries")

    category_bits = field_bits(len(categories))
    script_bits = field_bits(len(scripts))
    property_bits = field_bits(len(prop_index))
    script_shift = property_bits
    category_shift = script_shift + script_bits
    top = category_shift + category_bits
    invalid, error = 1 << top, 1 << (top + 1)

    trie = TrieBuilder(invalid, error)
    skipped = 0
    for start, end, prop in rows:
        for code in range(start, end + 1):
            found = codes.get(code)
            if found is None:
                skipped += 1
                continue
            category, script = found
            # schema skew between the two sources leaves some scripts empty
            scripts[script]["count"] += 1
            trie.set(
                code,
                prop_index[prop]
                | (scripts[script]["num"] << script_shift)
                | (categories[category] << category_shift),
            )

    meta = IndexMeta(
        categories=list(categories),
        scripts=[
            ScriptRecord(
                name=name, index=s["num"], first_code=s["first"],
                last_code=s["last"], count=s["count"],
            )
            for name, s in scripts.items()
            if s["count"] > 0
        ],
        properties=list(prop_index),
        category_bits=category_bits,
        script_bits=script_bits,
        property_bits=property_bits,
        category_shift=category_shift,
        script_shift=script_shift,
        invalid=invalid,
        error=error,
    )
    logger.info(
        "Built index: %d codepoints, %d/%d scripts, %d categories, "
        "%d properties, %d table entries skipped",
        len(codes), len(meta.scripts), len(scripts), len(categories),
        len(prop_index), skipped,
    )
    return trie.freeze(), meta


# -- Reference data readers --

def read_unicode_data(path: Path | str) -> dict[int, str]:
    """Map codepoint -> general category from ``UnicodeData.txt``."""
    result: dict[int, str] = {}
    range_start: int | None = None
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            fields = line.split(";")
            if len(fields) < 3:
                raise IndexBuildError(f"Malformed UnicodeData line: {line!r}")
            code, name, category = int(fields[0], 16), fields[1], fields[2]
            if name.endswith(", First>"):
                range_start = code
                continue
            if name.endswith(", Last>") and range_start is not None:
                for c in range(range_start, code + 1):
                    result[c] = category
                range_start = None
                continue
            result[code] = category
    return result


def read_scripts(path: Path | str) -> dict[int, str]:
    """Map codepoint -> script name from ``Scripts.txt``."""
    result: dict[int, str] = {}
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.split("#", 1)[0].strip()
            if not line:
                continue
            m = _SCRIPTS_RE.match(line)
            if not m:
                raise IndexBuildError(f"Malformed Scripts line: {line!r}")
            start = int(m.group(1), 16)
            end = int(m.group(2), 16) if m.group(2) else start
            for c in range(start, end + 1):
                result[c] = m.group(3)
    return result


def read_codepoint_database(ucd_dir: Path | str) -> list[tuple[int, str, str]]:
    """Join UnicodeData and Scripts into ``(code, category, script)`` rows."""
    ucd_dir = Path(ucd_dir)
    categories = read_unicode_data(ucd_dir / "UnicodeData.txt")
    scripts = read_scripts(ucd_dir / "Scripts.txt")
    return [
        (code, categories[code], script)
        for code, script in sorted(scripts.items())
        if code in categories
    ]


def read_property_table(path: Path | str) -> list[tuple[str, str]]:
    """Read ``(Codepoint, Property)`` rows from the IANA IDNA CSV."""
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        if not reader.fieldnames or not {
            "Codepoint", "Property",
        } <= set(reader.fieldnames):
            raise IndexBuildError(
                f"{path}: expected Codepoint and Property columns"
            )
        return [(row["Codepoint"], row["Property"]) for row in reader]


def build_from_files(
    ucd_dir: Path | str,
    idna_csv: Path | str,
    out_dir: Path | str,
) -> Path:
    """Build from reference files and write a loadable data directory."""
    trie, meta = build_index(
        read_codepoint_database(ucd_dir), read_property_table(idna_csv),
    )
    return write_index(trie, meta, out_dir)


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="python -m basura._builder",
        description="Build the codepoint classification index.",
    )
    parser.add_argument("--ucd", required=True, type=Path,
                        help="directory with UnicodeData.txt and Scripts.txt")
    parser.add_argument("--idna", required=True, type=Path,
                        help="path to idna-tables-properties.csv")
    parser.add_argument("--out", type=Path, default=None,
                        help="output directory (default: bundled data)")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    out = build_from_files(args.ucd, args.idna, args.out or _default_data_dir())
    logger.info("Wrote index to %s", out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
