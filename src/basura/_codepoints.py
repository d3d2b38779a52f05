"""Runtime reader over the packed codepoint trie."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ._errors import IndexCorruptError
from ._types import CodepointInfo

if TYPE_CHECKING:
    from ._trie import CodepointTrie
    from ._types import IndexMeta, ScriptRecord


class CodepointIndex:
    """Codepoint -> (category, script, IDNA property). Read-only, shareable."""

    __slots__ = (
        "_trie", "_meta", "_property_mask", "_script_mask", "_category_mask",
    )

    def __init__(self, trie: CodepointTrie, meta: IndexMeta) -> None:
        self._trie = trie
        self._meta = meta
        self._property_mask = (1 << meta.property_bits) - 1
        self._script_mask = (1 << meta.script_bits) - 1
        self._category_mask = (1 << meta.category_bits) - 1

    @property
    def meta(self) -> IndexMeta:
        return self._meta

    @property
    def scripts(self) -> list[ScriptRecord]:
        """Scripts with at least one classified codepoint, in index order."""
        return self._meta.scripts

    def lookup(self, code: int) -> CodepointInfo | None:
        """Classify ``code``.

        Returns None for codepoints with no classification.

        Raises:
            IndexCorruptError: If the trie yields its error sentinel, or a
                field that the metadata cannot resolve.
        """
        meta = self._meta
        x = self._trie.get(code)
        if x == meta.invalid:
            return None
        if x == meta.error:
            raise IndexCorruptError(f"Trie error at 0x{code:X}")
        try:
            return CodepointInfo(
                code=code,
                category=meta.categories[
                    (x >> meta.category_shift) & self._category_mask
                ],
                script=meta.script_names[
                    (x >> meta.script_shift) & self._script_mask
                ],
                property=meta.properties[
                    (x >> meta.property_shift) & self._property_mask
                ],
            )
        except (IndexError, KeyError) as e:
            raise IndexCorruptError(
                f"Trie value {x} at 0x{code:X} does not match metadata"
            ) from e
