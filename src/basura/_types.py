"""Data structures for basura."""

from __future__ import annotations

from dataclasses import dataclass, field

PVALID = "PVALID"
UNASSIGNED = "UNASSIGNED"
NONSPACING_MARK = "Mn"


@dataclass(slots=True, frozen=True)
class CodepointInfo:
    code: int       # u32 Unicode scalar value
    category: str   # general category, e.g. "Ll"
    script: str     # e.g. "Latin"
    property: str   # IDNA2008: PVALID, CONTEXTO, CONTEXTJ or DISALLOWED


@dataclass(slots=True, frozen=True)
class ScriptRecord:
    name: str
    index: int       # value stored in the trie's script field
    first_code: int  # lowest codepoint seen with this script
    last_code: int   # highest; [first, last] is a superset, not a run
    # codepoints that survived the property table; None when not recorded
    count: int | None = None


@dataclass(slots=True, frozen=True)
class IndexMeta:
    """Sidecar record describing how trie values are packed."""

    categories: list[str]
    scripts: list[ScriptRecord]
    properties: list[str]
    category_bits: int
    script_bits: int
    property_bits: int
    category_shift: int
    script_shift: int
    invalid: int
    error: int
    property_shift: int = 0
    script_names: dict[int, str] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "script_names", {s.index: s.name for s in self.scripts}
        )

    def to_dict(self) -> dict:
        return {
            "categories": list(self.categories),
            "scripts": [
                [s.name, s.index, s.first_code, s.last_code, s.count]
                for s in self.scripts
            ],
            "properties": list(self.properties),
            "category_bits": self.category_bits,
            "script_bits": self.script_bits,
            "property_bits": self.property_bits,
            "category_shift": self.category_shift,
            "script_shift": self.script_shift,
            "property_shift": self.property_shift,
            "invalid": self.invalid,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, raw: dict) -> IndexMeta:
        return cls(
            categories=list(raw["categories"]),
            scripts=[
                ScriptRecord(
                    name=s[0], index=s[1], first_code=s[2],
                    last_code=s[3], count=s[4] if len(s) > 4 else None,
                )
                for s in raw["scripts"]
            ],
            properties=list(raw["properties"]),
            category_bits=raw["category_bits"],
            script_bits=raw["script_bits"],
            property_bits=raw["property_bits"],
            category_shift=raw["category_shift"],
            script_shift=raw["script_shift"],
            property_shift=raw.get("property_shift", 0),
            invalid=raw["invalid"],
            error=raw["error"],
        )


@dataclass(slots=True, frozen=True)
class TraceEntry:
    data: bytes
    reason: str
