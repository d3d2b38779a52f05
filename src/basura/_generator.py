"""ValueGenerator: recursive value construction driven by a RandomSource."""

from __future__ import annotations

import logging
import math
import struct
import unicodedata
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any
from urllib.parse import SplitResult, quote

from ._config import GenerationConfig
from ._errors import GenerationError, UnknownScriptError
from ._random import CryptoSource
from ._types import NONSPACING_MARK

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ._config import KindFn
    from ._random import RandomSource
    from ._scripts import ScriptCatalog
    from ._types import CodepointInfo

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
DATE_STD_DEV_MS = 315569520000  # 10 Julian years

INT32_OFFSET = 0x7FFFFFFF

FUN_FLOATS: tuple[float, ...] = (
    math.nan, 0.0, -0.0, math.inf, -math.inf,
)
JSON_FUN_FLOATS: tuple[float, ...] = (0.0,)

JSON_SAFE_KINDS = frozenset({
    "none", "boolean", "integer", "float", "string", "list", "dict",
})

URL_SCHEMES = ("http:", "https:", "ftp:")
LABEL_FIRST_CATEGORIES = frozenset({"Ll", "Lm", "Lo"})
LABEL_REST_CATEGORIES = frozenset({"Ll", "Lm", "Lo", "Nd", "Mn", "Mc"})


@dataclass(slots=True, frozen=True)
class Kind:
    name: str
    fn: KindFn
    hashable: bool = False  # values can be set elements


class KindRegistry:
    """Immutable mapping of kind name -> generation function.

    Start from ``KindRegistry.default()`` and derive variants with
    ``with_kind``, ``without``, ``only`` and ``apply``; each returns a new
    registry.
    """

    __slots__ = ("_kinds",)

    def __init__(self, kinds: Iterable[Kind] = ()) -> None:
        self._kinds: dict[str, Kind] = {k.name: k for k in kinds}

    @classmethod
    def default(cls) -> KindRegistry:
        g = ValueGenerator
        return cls([
            Kind("bigint", g.generate_bigint, hashable=True),
            Kind("boolean", g.generate_boolean, hashable=True),
            Kind("bytes", g.generate_bytes, hashable=True),
            Kind("datetime", g.generate_datetime, hashable=True),
            Kind("dict", g.generate_dict),
            Kind("float", g.generate_float, hashable=True),
            Kind("integer", g.generate_integer, hashable=True),
            Kind("list", g.generate_list),
            Kind("none", g.generate_none, hashable=True),
            Kind("set", g.generate_set),
            Kind("string", g.generate_string, hashable=True),
            Kind("tuple", g.generate_tuple),
            Kind("url", g.generate_url, hashable=True),
        ])

    def __contains__(self, name: object) -> bool:
        return name in self._kinds

    def __getitem__(self, name: str) -> Kind:
        return self._kinds[name]

    def __len__(self) -> int:
        return len(self._kinds)

    def names(self, *, hashable: bool = False) -> tuple[str, ...]:
        """Sorted kind names; the sort order is the pick order."""
        return tuple(sorted(
            k.name for k in self._kinds.values() if k.hashable or not hashable
        ))

    def with_kind(
        self, name: str, fn: KindFn, *, hashable: bool = False
    ) -> KindRegistry:
        kinds = dict(self._kinds)
        kinds[name] = Kind(name, fn, hashable)
        return KindRegistry(kinds.values())

    def without(self, *names: str) -> KindRegistry:
        return KindRegistry(
            k for k in self._kinds.values() if k.name not in names
        )

    def only(self, names: Iterable[str]) -> KindRegistry:
        keep = frozenset(names)
        return KindRegistry(k for k in self._kinds.values() if k.name in keep)

    def apply(
        self, overrides: Iterable[tuple[str, KindFn | None]]
    ) -> KindRegistry:
        """Apply ``(name, fn)`` overrides in order; ``fn=None`` removes."""
        reg = self
        for name, fn in overrides:
            reg = reg.without(name) if fn is None else reg.with_kind(name, fn)
        return reg

    @classmethod
    def from_config(cls, config: GenerationConfig) -> KindRegistry:
        reg = cls.default()
        if config.json_safe:
            reg = reg.only(JSON_SAFE_KINDS)
        return reg.apply(config.overrides).without(*config.excluded_kinds)


def resolve_scripts(
    config: GenerationConfig, catalog: ScriptCatalog
) -> tuple[str, ...]:
    """Scripts available to text generation, in pick order."""
    if config.allowed_scripts is None:
        scripts = catalog.script_names
    else:
        scripts = config.allowed_scripts
        for name in scripts:
            if name not in catalog:
                raise UnknownScriptError(f"Unknown script: {name!r}")
    if not scripts:
        raise GenerationError("No usable scripts in the index")
    return scripts


class ValueGenerator:
    """Builds random values; every decision is drawn from ``source``.

    Depth is passed explicitly. ``generate(depth)`` returns None past
    ``config.max_depth``, and container kinds called past it return an empty
    container without drawing.
    """

    __slots__ = (
        "_config", "_source", "_catalog", "_registry", "_kind_names",
        "_hashable_names", "_scripts", "_fun_floats", "_date_center_ms",
        "_label_points",
    )

    def __init__(
        self,
        catalog: ScriptCatalog,
        config: GenerationConfig | None = None,
        source: RandomSource | None = None,
    ) -> None:
        self._config = config if config is not None else GenerationConfig()
        self._source = source if source is not None else CryptoSource()
        self._catalog = catalog
        self._registry = KindRegistry.from_config(self._config)
        if not len(self._registry):
            raise GenerationError("No kinds enabled")
        self._kind_names = self._registry.names()
        self._hashable_names = self._registry.names(hashable=True)
        self._scripts = resolve_scripts(self._config, catalog)
        self._fun_floats = (
            JSON_FUN_FLOATS if self._config.json_safe else FUN_FLOATS
        )
        self._date_center_ms = (
            (self._config.date_center - EPOCH) / timedelta(milliseconds=1)
        )
        self._label_points: dict[
            str, tuple[tuple[CodepointInfo, ...], tuple[CodepointInfo, ...]]
        ] = {}
        logger.debug(
            "ValueGenerator: kinds=%s, %d scripts",
            ",".join(self._kind_names), len(self._scripts),
        )

    # -- Collaborator surface --

    @property
    def config(self) -> GenerationConfig:
        return self._config

    @property
    def catalog(self) -> ScriptCatalog:
        return self._catalog

    @property
    def source(self) -> RandomSource:
        return self._source

    @source.setter
    def source(self, source: RandomSource) -> None:
        self._source = source

    @property
    def kinds(self) -> tuple[str, ...]:
        return self._kind_names

    @property
    def scripts(self) -> tuple[str, ...]:
        return self._scripts

    def draw_bytes(self, length: int, reason: str = "bytes") -> bytes:
        return self._source.draw(length, reason)

    def draw_codepoint(
        self,
        script: str,
        category_filter: bool | Iterable[str] | None = None,
        reason: str = "codepoint",
    ) -> CodepointInfo:
        points = self._catalog.get(script, category_filter)
        if not points:
            raise GenerationError(
                f"No codepoints in {script!r} match {category_filter!r}"
            )
        return self._source.pick_from(points, f"{reason},{script}")

    def pick_script(self, reason: str = "string") -> str:
        return self._source.pick_from(self._scripts, f"script,{reason}")

    # -- Dispatch --

    def generate(self, depth: int = 0, *, hashable: bool = False) -> Any:
        """Value of a randomly picked enabled kind, or None past max depth."""
        if depth > self._config.max_depth:
            return None
        if hashable:
            if not self._hashable_names:
                raise GenerationError("No hashable kinds enabled")
            name = self._source.pick_from(self._hashable_names, "hashable type")
        else:
            name = self._source.pick_from(self._kind_names, "type")
        return self._registry[name].fn(self, depth + 1)

    def generate_kind(self, kind: str, depth: int = 0) -> Any:
        if kind not in self._registry:
            raise GenerationError(f"Kind {kind!r} is not enabled")
        return self._registry[kind].fn(self, depth)

    # -- Scalars --

    def generate_none(self, depth: int = 0) -> None:
        return None

    def generate_boolean(self, depth: int = 0, reason: str = "boolean") -> bool:
        return bool(self._source.uniform_index(2, reason))

    def generate_integer(self, depth: int = 0) -> int:
        """Signed 32-bit integer."""
        return self._source.uint32("integer") - INT32_OFFSET

    def generate_float(self, depth: int = 0) -> float:
        """Finite double, or one time in ten a "fun" value (NaN, -0.0, ...)."""
        src = self._source
        if src.unit_interval("float") < 0.1:
            return src.pick_from(self._fun_floats, "fun float")
        while True:
            n = struct.unpack(">d", src.draw(8, "float"))[0]
            if math.isfinite(n):
                return n

    def generate_bigint(self, depth: int = 0) -> int:
        """Arbitrary-precision signed integer of 1 to max_string_length-1 bytes."""
        src = self._source
        n = src.uniform_index(
            self._config.max_string_length - 1, "_randUBigInt len,signed"
        ) + 1
        value = int.from_bytes(src.draw(n, "_randUBigInt,signed"), "big")
        if self.generate_boolean(depth, "bigint sign"):
            value = -value
        return value

    def generate_bytes(self, depth: int = 0) -> bytes:
        if depth > self._config.max_depth:
            return b""
        n = self._source.uniform_index(
            self._config.max_string_length, "bytes length"
        )
        return self._source.draw(n, "bytes")

    def generate_string(self, depth: int = 0, reason: str = "string") -> str:
        """Text from a single script; never starts with a combining mark."""
        src = self._source
        script = self.pick_script(reason)
        points = self._catalog.get(script)
        length = src.uniform_index(
            self._config.max_string_length, f"stringLength,{reason}"
        )
        if length and not any(c.category != NONSPACING_MARK for c in points):
            raise GenerationError(f"Script {script!r} has only combining marks")
        chars: list[str] = []
        while len(chars) < length:
            point = src.pick_from(points, f"codepoint,{reason}")
            if not chars and point.category == NONSPACING_MARK:
                continue
            chars.append(chr(point.code))
        return "".join(chars)

    def generate_datetime(self, depth: int = 0) -> datetime:
        """UTC datetime, normal around ``date_center`` with a 10-year sigma."""
        ms = self._source.gaussian(
            self._date_center_ms, DATE_STD_DEV_MS, "datetime"
        )
        return EPOCH + timedelta(milliseconds=ms)

    # -- Containers --

    def _elements(self, depth: int, reason: str) -> list[Any]:
        n = self._source.uniform_index(self._config.max_container_size, reason)
        return [self.generate(depth + 1) for _ in range(n)]

    def generate_list(self, depth: int = 0) -> list[Any]:
        if depth > self._config.max_depth:
            return []
        return self._elements(depth, "list length")

    def generate_tuple(self, depth: int = 0) -> tuple[Any, ...]:
        if depth > self._config.max_depth:
            return ()
        return tuple(self._elements(depth, "tuple length"))

    def generate_dict(self, depth: int = 0) -> dict[str, Any]:
        """String keys to arbitrary values; duplicate keys collapse."""
        if depth > self._config.max_depth:
            return {}
        n = self._source.uniform_index(
            self._config.max_container_size, "dict length"
        )
        result: dict[str, Any] = {}
        for _ in range(n):
            key = self.generate_string(depth + 1, "key")
            result[key] = self.generate(depth + 1)
        return result

    def generate_set(self, depth: int = 0) -> set[Any]:
        """Elements come from hashable kinds only; duplicates collapse."""
        if depth > self._config.max_depth:
            return set()
        n = self._source.uniform_index(
            self._config.max_container_size, "set length"
        )
        return {self.generate(depth + 1, hashable=True) for _ in range(n)}

    # -- Structured text --

    def _label_candidates(
        self, script: str
    ) -> tuple[tuple[CodepointInfo, ...], tuple[CodepointInfo, ...]]:
        cached = self._label_points.get(script)
        if cached is None:
            points = self._catalog.get(script, True)
            first = tuple(
                c for c in points if c.category in LABEL_FIRST_CATEGORIES
            )
            rest = tuple(
                c for c in points if c.category in LABEL_REST_CATEGORIES
            )
            if not first:
                raise GenerationError(
                    f"Script {script!r} has no valid lowercase-like codepoints"
                )
            cached = self._label_points[script] = (first, rest)
        return cached

    def generate_host_label(self, tld: str) -> str:
        """Domain label in the script of ``tld``'s first codepoint."""
        src = self._source
        info = self._catalog.index.lookup(ord(tld[0]))
        if info is None:
            raise GenerationError(f"TLD {tld!r} has no classified script")
        first, rest = self._label_candidates(info.script)
        chars = [chr(src.pick_from(first, "codepoint1,URL").code)]
        n = src.uniform_index(
            self._config.max_string_length - 1, "stringLength,URL"
        )
        for _ in range(n):
            chars.append(chr(src.pick_from(rest, "codepoint,URL").code))
        return unicodedata.normalize("NFC", "".join(chars))

    def generate_url(self, depth: int = 0) -> SplitResult:
        """URL with a valid TLD and a host label in the TLD's script.

        Port, path, query and fragment each appear one time in ten.
        """
        src = self._source
        scheme = src.pick_from(URL_SCHEMES, "URL proto")
        tld = src.pick_from(self._config.tlds, "URL tld")

        port = ""
        if scheme.startswith("http") and src.unit_interval("URL port?") < 0.1:
            port = f":{src.uniform_index(65536, 'URL port')}"

        path = ""
        if src.unit_interval("URL pathname?") < 0.1:
            path = quote(self.generate_string(depth + 1, "URL pathname"), safe="")

        params: list[str] = []
        if src.unit_interval("URL search?") < 0.1:
            for _ in range(src.uniform_index(3, "num search params")):
                name = self.generate_string(depth + 1, "URL search name")
                value = self.generate_string(depth + 1, "URL search value")
                params.append(f"{quote(name, safe='')}={quote(value, safe='')}")

        fragment = ""
        if src.unit_interval("URL hash?") < 0.1:
            fragment = quote(self.generate_string(depth + 1, "URL hash"), safe="")

        label = self.generate_host_label(tld)
        return SplitResult(
            scheme=scheme[:-1],
            netloc=f"{label}.{tld}{port}",
            path=f"/{path}",
            query="&".join(params),
            fragment=fragment,
        )
