"""Two-stage codepoint trie: a block index over deduplicated value blocks."""

from __future__ import annotations

import logging
import sys
from array import array

import msgpack

from ._errors import BasuraError

logger = logging.getLogger(__name__)

MAX_CODEPOINT = 0x10FFFF
BLOCK_SHIFT = 5


def _le_bytes(arr: array) -> bytes:
    if sys.byteorder == "big":
        arr = array(arr.typecode, arr)
        arr.byteswap()
    return arr.tobytes()


def _from_le_bytes(typecode: str, raw: bytes) -> array:
    arr = array(typecode)
    arr.frombytes(raw)
    if sys.byteorder == "big":
        arr.byteswap()
    return arr


def _uint32_typecode() -> str:
    return "I" if array("I").itemsize == 4 else "L"


class CodepointTrie:
    """Read-only lookup from codepoint to packed integer."""

    __slots__ = ("_index", "_data", "_shift", "_mask", "initial", "error")

    def __init__(
        self,
        index: array,
        data: array,
        initial: int,
        error: int,
        shift: int = BLOCK_SHIFT,
    ) -> None:
        self._index = index
        self._data = data
        self._shift = shift
        self._mask = (1 << shift) - 1
        self.initial = initial
        self.error = error

    def get(self, code: int) -> int:
        """Packed value for ``code``; the error value when out of range."""
        if code < 0 or code > MAX_CODEPOINT:
            return self.error
        block = self._index[code >> self._shift]
        return self._data[(block << self._shift) | (code & self._mask)]

    @property
    def n_blocks(self) -> int:
        return len(self._data) >> self._shift

    def to_bytes(self) -> bytes:
        return msgpack.packb({
            "shift": self._shift,
            "initial": self.initial,
            "error": self.error,
            "index": _le_bytes(self._index),
            "data": _le_bytes(self._data),
        }, use_bin_type=True)

    @classmethod
    def from_bytes(cls, raw: bytes) -> CodepointTrie:
        try:
            obj = msgpack.unpackb(raw, raw=False)
            shift = obj["shift"]
            index = _from_le_bytes("H", obj["index"])
            data = _from_le_bytes(_uint32_typecode(), obj["data"])
            initial, error = obj["initial"], obj["error"]
        except (
            msgpack.exceptions.UnpackException, ValueError, KeyError, TypeError,
        ) as e:
            raise BasuraError(f"Unreadable trie blob: {e}") from e
        if len(index) != (MAX_CODEPOINT >> shift) + 1:
            raise BasuraError(
                f"Trie index has {len(index)} blocks, "
                f"expected {(MAX_CODEPOINT >> shift) + 1}"
            )
        return cls(index, data, initial, error, shift)


class TrieBuilder:
    """Mutable trie under construction. Unset codepoints hold ``initial``."""

    __slots__ = ("_blocks", "_shift", "initial", "error")

    def __init__(self, initial: int, error: int, shift: int = BLOCK_SHIFT) -> None:
        self._blocks: dict[int, list[int]] = {}
        self._shift = shift
        self.initial = initial
        self.error = error

    def set(self, code: int, value: int) -> None:
        if code < 0 or code > MAX_CODEPOINT:
            raise ValueError(f"codepoint 0x{code:X} out of range")
        if value < 0 or value >= 1 << 32:
            raise ValueError(f"value {value} does not fit in 32 bits")
        n = code >> self._shift
        block = self._blocks.get(n)
        if block is None:
            block = self._blocks[n] = [self.initial] * (1 << self._shift)
        block[code & ((1 << self._shift) - 1)] = value

    def get(self, code: int) -> int:
        if code < 0 or code > MAX_CODEPOINT:
            return self.error
        block = self._blocks.get(code >> self._shift)
        if block is None:
            return self.initial
        return block[code & ((1 << self._shift) - 1)]

    def freeze(self) -> CodepointTrie:
        """Collapse identical blocks and return the read-only trie."""
        empty = tuple([self.initial] * (1 << self._shift))
        seen: dict[tuple[int, ...], int] = {empty: 0}
        data = array(_uint32_typecode(), empty)
        index = array("H")
        for n in range((MAX_CODEPOINT >> self._shift) + 1):
            block = self._blocks.get(n)
            key = empty if block is None else tuple(block)
            block_no = seen.get(key)
            if block_no is None:
                block_no = seen[key] = len(seen)
                data.extend(key)
            index.append(block_no)
        logger.debug(
            "Froze trie: %d populated blocks, %d unique",
            len(self._blocks), len(seen),
        )
        return CodepointTrie(index, data, self.initial, self.error, self._shift)
