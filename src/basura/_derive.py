"""Inverse walk: the draw trace that makes ValueGenerator produce a value.

Replaying a derived trace through a generator with the same config must
rebuild the value exactly, so this module mirrors every draw the generator
makes, in the same order and with the same reasons.
"""

from __future__ import annotations

import math
import struct
from typing import TYPE_CHECKING, Any

from ._config import GenerationConfig
from ._errors import GenerationError
from ._generator import (
    FUN_FLOATS,
    INT32_OFFSET,
    JSON_FUN_FLOATS,
    KindRegistry,
    resolve_scripts,
)
from ._types import NONSPACING_MARK, TraceEntry

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ._scripts import ScriptCatalog

# unit_interval() of these is 0.0 and 0.5
_UNIT_LOW = bytes(8)
_UNIT_HIGH = bytes(6) + b"\x08\x3f"


class TraceDeriver:
    """Derives traces for values of the built-in kinds.

    ``datetime`` and ``url`` values cannot be derived, nor can kinds the
    config overrides with custom functions.
    """

    __slots__ = (
        "_config", "_catalog", "_registry", "_defaults", "_kind_names",
        "_hashable_names", "_scripts", "_fun_floats", "_positions", "_trace",
    )

    def __init__(
        self, catalog: ScriptCatalog, config: GenerationConfig | None = None
    ) -> None:
        self._config = config if config is not None else GenerationConfig()
        self._catalog = catalog
        self._registry = KindRegistry.from_config(self._config)
        self._defaults = KindRegistry.default()
        self._kind_names = self._registry.names()
        self._hashable_names = self._registry.names(hashable=True)
        self._scripts = resolve_scripts(self._config, catalog)
        self._fun_floats = (
            JSON_FUN_FLOATS if self._config.json_safe else FUN_FLOATS
        )
        self._positions: dict[str, dict[int, int]] = {}
        self._trace: list[TraceEntry] = []

    def derive(self, value: Any, depth: int = 0) -> list[TraceEntry]:
        """Trace for ``ValueGenerator.generate(depth)`` returning ``value``."""
        self._trace = []
        self._value(value, depth)
        return self._trace

    def derive_kind(self, kind: str, value: Any, depth: int = 0) -> list[TraceEntry]:
        """Trace for ``ValueGenerator.generate_kind(kind, depth)``."""
        self._trace = []
        self._check_kind(kind)
        self._handler(kind)(value, depth)
        return self._trace

    # -- RandomSource mirror --

    def _emit(self, data: bytes, reason: str) -> None:
        self._trace.append(TraceEntry(bytes(data), reason))

    def _uint32(self, n: int, reason: str) -> None:
        self._emit(n.to_bytes(4, "big"), f"_randUInt32,{reason}")

    def _upto(self, bound: int, i: int, reason: str) -> None:
        if bound == 0:
            if i != 0:
                raise GenerationError(f"{reason}: {i} with a zero bound")
            return
        if not 0 <= i < bound:
            raise GenerationError(f"{reason}: {i} outside [0, {bound})")
        self._uint32(i, f"_upto({bound}),{reason}")

    def _pick(self, seq: Sequence[Any], i: int, reason: str) -> None:
        n = len(seq)
        self._upto(n, i, f"_pick({n}),{reason}")

    # -- Kinds --

    def _kind_of(self, value: Any) -> str:
        if value is None:
            return "none"
        t = type(value)
        if t is int:
            in_range = -INT32_OFFSET <= value < (1 << 32) - INT32_OFFSET
            if in_range and "integer" in self._registry:
                return "integer"
            return "bigint"
        kind = {
            bool: "boolean", float: "float", bytes: "bytes", str: "string",
            list: "list", tuple: "tuple", dict: "dict", set: "set",
        }.get(t)
        if kind is None:
            raise GenerationError(f"Cannot derive draws for {t.__name__}")
        return kind

    def _check_kind(self, kind: str) -> None:
        if kind not in self._registry:
            raise GenerationError(f"Kind {kind!r} is not enabled")
        if kind not in self._defaults or (
            self._registry[kind].fn is not self._defaults[kind].fn
        ):
            raise GenerationError(f"Kind {kind!r} has a custom generator")

    def _handler(self, kind: str):
        handlers = {
            "none": self._none,
            "boolean": self._boolean,
            "integer": self._integer,
            "bigint": self._bigint,
            "float": self._float,
            "bytes": self._bytes,
            "string": self._string_kind,
            "list": self._list,
            "tuple": self._tuple,
            "dict": self._dict,
            "set": self._set,
        }
        handler = handlers.get(kind)
        if handler is None:
            raise GenerationError(f"Cannot derive draws for kind {kind!r}")
        return handler

    def _value(self, value: Any, depth: int, hashable: bool = False) -> None:
        if depth > self._config.max_depth:
            if value is not None:
                raise GenerationError(
                    f"Value {value!r} nested deeper than max_depth"
                )
            return
        kind = self._kind_of(value)
        names = self._hashable_names if hashable else self._kind_names
        if kind not in names:
            raise GenerationError(f"Kind {kind!r} is not enabled here")
        self._check_kind(kind)
        self._pick(
            names, names.index(kind), "hashable type" if hashable else "type"
        )
        self._handler(kind)(value, depth + 1)

    def _none(self, value: None, depth: int) -> None:
        pass

    def _boolean(self, value: bool, depth: int, reason: str = "boolean") -> None:
        self._upto(2, int(value), reason)

    def _integer(self, value: int, depth: int) -> None:
        self._uint32(value + INT32_OFFSET, "integer")

    def _bigint(self, value: int, depth: int) -> None:
        magnitude = abs(value)
        n = max(1, (magnitude.bit_length() + 7) // 8)
        self._upto(
            self._config.max_string_length - 1, n - 1, "_randUBigInt len,signed"
        )
        self._emit(magnitude.to_bytes(n, "big"), "_randUBigInt,signed")
        self._boolean(value < 0, depth, "bigint sign")

    def _float(self, value: float, depth: int) -> None:
        for i, fun in enumerate(self._fun_floats):
            if (math.isnan(fun) and math.isnan(value)) or (
                fun == value
                and math.copysign(1.0, fun) == math.copysign(1.0, value)
            ):
                self._emit(_UNIT_LOW, "_random01,float")
                self._pick(self._fun_floats, i, "fun float")
                return
        if not math.isfinite(value):
            raise GenerationError(f"Float {value!r} cannot be generated")
        self._emit(_UNIT_HIGH, "_random01,float")
        self._emit(struct.pack(">d", value), "float")

    def _bytes(self, value: bytes, depth: int) -> None:
        if depth > self._config.max_depth:
            if value:
                raise GenerationError("Non-empty bytes deeper than max_depth")
            return
        self._upto(self._config.max_string_length, len(value), "bytes length")
        self._emit(value, "bytes")

    def _code_positions(self, script: str) -> dict[int, int]:
        positions = self._positions.get(script)
        if positions is None:
            positions = self._positions[script] = {
                c.code: i for i, c in enumerate(self._catalog.get(script))
            }
        return positions

    def _string_kind(self, value: str, depth: int) -> None:
        self._string(value, "string")

    def _string(self, text: str, reason: str) -> None:
        if not isinstance(text, str):
            raise GenerationError(f"Expected str for {reason}, got {text!r}")
        codes = [ord(ch) for ch in text]
        if codes:
            info = self._catalog.index.lookup(codes[0])
            if info is None:
                raise GenerationError(f"No script for U+{codes[0]:04X}")
            if info.category == NONSPACING_MARK:
                raise GenerationError(f"{text!r} starts with a combining mark")
            script = info.script
        else:
            script = self._scripts[0]
        if script not in self._scripts:
            raise GenerationError(f"Script {script!r} is not allowed")
        self._pick(self._scripts, self._scripts.index(script), f"script,{reason}")
        self._upto(
            self._config.max_string_length, len(codes), f"stringLength,{reason}"
        )
        points = self._catalog.get(script)
        positions = self._code_positions(script)
        for code in codes:
            i = positions.get(code)
            if i is None:
                raise GenerationError(f"U+{code:04X} is not in script {script!r}")
            self._pick(points, i, f"codepoint,{reason}")

    def _sequence(self, items: Sequence[Any], depth: int, reason: str) -> None:
        if depth > self._config.max_depth:
            if items:
                raise GenerationError("Non-empty container deeper than max_depth")
            return
        self._upto(self._config.max_container_size, len(items), reason)
        for item in items:
            self._value(item, depth + 1)

    def _list(self, value: list[Any], depth: int) -> None:
        self._sequence(value, depth, "list length")

    def _tuple(self, value: tuple[Any, ...], depth: int) -> None:
        self._sequence(value, depth, "tuple length")

    def _dict(self, value: dict[str, Any], depth: int) -> None:
        if depth > self._config.max_depth:
            if value:
                raise GenerationError("Non-empty dict deeper than max_depth")
            return
        self._upto(self._config.max_container_size, len(value), "dict length")
        for key, item in value.items():
            self._string(key, "key")
            self._value(item, depth + 1)

    def _set(self, value: set[Any], depth: int) -> None:
        if depth > self._config.max_depth:
            if value:
                raise GenerationError("Non-empty set deeper than max_depth")
            return
        self._upto(self._config.max_container_size, len(value), "set length")
        for item in value:
            self._value(item, depth + 1, hashable=True)


def derive_trace(
    value: Any,
    catalog: ScriptCatalog,
    config: GenerationConfig | None = None,
    depth: int = 0,
) -> list[TraceEntry]:
    """Shorthand for ``TraceDeriver(catalog, config).derive(value, depth)``."""
    return TraceDeriver(catalog, config).derive(value, depth)
