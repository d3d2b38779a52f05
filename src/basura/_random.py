"""Random draw sources: generative, recording and replaying.

Every random decision goes through ``RandomSource.draw(length, reason)``.
The derived helpers prefix the caller's reason the same way on every
source, so a recorded trace names each decision and a replay fails on the
first draw whose length or reason differs.
"""

from __future__ import annotations

import json
import math
import secrets
import struct
from abc import ABC, abstractmethod
from collections import deque
from pathlib import Path
from typing import TYPE_CHECKING, Any

import msgpack

from ._errors import BasuraError, TraceExhaustedError, TraceMismatchError
from ._types import TraceEntry

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

UNSPECIFIED = "unspecified"


class RandomSource(ABC):
    """Contract: ``draw(length, reason) -> bytes`` plus derived helpers."""

    __slots__ = ("_spare_gauss",)

    def __init__(self) -> None:
        # polar method yields deviates in pairs
        self._spare_gauss: float | None = None

    @abstractmethod
    def _draw(self, length: int, reason: str) -> bytes:
        ...

    def draw(self, length: int, reason: str = UNSPECIFIED) -> bytes:
        if length < 0:
            raise ValueError(f"length must be >= 0, got {length}")
        return self._draw(length, reason)

    def uint32(self, reason: str = UNSPECIFIED) -> int:
        """Big-endian unsigned 32-bit integer."""
        return int.from_bytes(self.draw(4, f"_randUInt32,{reason}"), "big")

    def uniform_index(self, bound: int, reason: str = UNSPECIFIED) -> int:
        """Integer in [0, bound).

        ``uint32 % bound``: slightly biased toward low values when ``bound``
        does not divide 2**32. Kept that way so existing traces replay.
        A zero bound returns 0 without drawing.
        """
        if bound == 0:
            return 0
        return self.uint32(f"_upto({bound}),{reason}") % bound

    def pick_from(self, seq: Sequence[Any], reason: str = UNSPECIFIED) -> Any:
        if not seq:
            raise ValueError(f"cannot pick from an empty sequence ({reason})")
        n = len(seq)
        return seq[self.uniform_index(n, f"_pick({n}),{reason}")]

    def unit_interval(self, reason: str = UNSPECIFIED) -> float:
        """Float in [0, 1) from 52 random mantissa bits."""
        buf = bytearray(self.draw(8, f"_random01,{reason}"))
        # little-endian float64: sign 0, exponent 0x3FF, i.e. 1.mantissa
        buf[6] |= 0xF0
        buf[7] = 0x3F
        return struct.unpack("<d", bytes(buf))[0] - 1.0

    def gaussian(
        self, mean: float, std_dev: float, reason: str = UNSPECIFIED
    ) -> float:
        """Normal deviate via the polar Box-Muller method.

        The second deviate of each accepted pair is kept for the next call,
        whatever ``mean`` and ``std_dev`` that call uses.
        """
        if self._spare_gauss is not None:
            ret = mean + std_dev * self._spare_gauss
            self._spare_gauss = None
            return ret
        while True:
            v1 = 2.0 * self.unit_interval(reason) - 1.0
            v2 = 2.0 * self.unit_interval(reason) - 1.0
            s = v1 * v1 + v2 * v2
            if 0.0 < s < 1.0:
                break
        s = math.sqrt(-2.0 * math.log(s) / s)
        self._spare_gauss = v2 * s
        return mean + std_dev * v1 * s


class CryptoSource(RandomSource):
    """Bytes from the operating system's CSPRNG; ``reason`` is ignored."""

    __slots__ = ()

    def _draw(self, length: int, reason: str) -> bytes:
        return secrets.token_bytes(length)


class RecordingSource(RandomSource):
    """Draws from ``inner`` and appends every draw to ``trace``."""

    __slots__ = ("_inner", "_trace")

    def __init__(self, inner: RandomSource | None = None) -> None:
        super().__init__()
        self._inner = inner if inner is not None else CryptoSource()
        self._trace: list[TraceEntry] = []

    @property
    def trace(self) -> list[TraceEntry]:
        return self._trace

    def _draw(self, length: int, reason: str) -> bytes:
        data = self._inner.draw(length, reason)
        self._trace.append(TraceEntry(data, reason))
        return data


class ReplayingSource(RandomSource):
    """Consumes a recorded trace front to back.

    Raises:
        TraceExhaustedError: On a draw after the last entry.
        TraceMismatchError: When length or reason differs from the entry.
    """

    __slots__ = ("_entries",)

    def __init__(self, trace: Iterable[TraceEntry | tuple[bytes, str]]) -> None:
        super().__init__()
        self._entries: deque[TraceEntry] = deque(
            e if isinstance(e, TraceEntry) else TraceEntry(bytes(e[0]), e[1])
            for e in trace
        )

    @property
    def remaining(self) -> int:
        return len(self._entries)

    def _draw(self, length: int, reason: str) -> bytes:
        if not self._entries:
            raise TraceExhaustedError(
                f"Out of playback data ({length}): {reason!r}"
            )
        entry = self._entries.popleft()
        if len(entry.data) != length or entry.reason != reason:
            raise TraceMismatchError(
                f"Expected {length} bytes for {reason!r}, "
                f"trace has {len(entry.data)} bytes for {entry.reason!r}"
            )
        return entry.data


# -- Trace persistence --

def dump_trace(trace: Iterable[TraceEntry], path: Path | str) -> None:
    Path(path).write_bytes(msgpack.packb(
        [[e.data, e.reason] for e in trace], use_bin_type=True,
    ))


def load_trace(path: Path | str) -> list[TraceEntry]:
    data = Path(path).read_bytes()
    try:
        raw = msgpack.unpackb(data, raw=False)
        return [TraceEntry(bytes(d), reason) for d, reason in raw]
    except (msgpack.exceptions.UnpackException, TypeError, ValueError) as e:
        raise BasuraError(f"Malformed trace file {path}: {e}") from e


def trace_to_json(trace: Iterable[TraceEntry]) -> str:
    """JSON array of ``[hex, reason]`` pairs."""
    return json.dumps([[e.data.hex(), e.reason] for e in trace], indent=2)


def trace_from_json(text: str) -> list[TraceEntry]:
    try:
        return [
            TraceEntry(bytes.fromhex(data), reason)
            for data, reason in json.loads(text)
        ]
    except (TypeError, ValueError) as e:
        raise BasuraError(f"Malformed JSON trace: {e}") from e
