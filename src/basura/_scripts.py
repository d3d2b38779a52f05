"""Per-script codepoint lists, populated lazily from the index."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from ._errors import UnknownScriptError
from ._types import PVALID

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ._codepoints import CodepointIndex
    from ._types import CodepointInfo, ScriptRecord

logger = logging.getLogger(__name__)


class ScriptCatalog:
    """Codepoints of each script, in codepoint order.

    Shareable across threads: population of a script's list happens at most
    once, under a lock.
    """

    __slots__ = ("_index", "_records", "_points", "_lock")

    def __init__(self, index: CodepointIndex) -> None:
        self._index = index
        self._records: dict[str, ScriptRecord] = {
            s.name: s for s in index.scripts
            if s.count is None or s.count > 0
        }
        self._points: dict[str, tuple[CodepointInfo, ...]] = {}
        self._lock = threading.Lock()

    @property
    def index(self) -> CodepointIndex:
        return self._index

    @property
    def script_names(self) -> tuple[str, ...]:
        """Usable scripts in index order."""
        return tuple(self._records)

    def __contains__(self, script: object) -> bool:
        return script in self._records

    def get(
        self,
        script: str,
        filter: bool | Iterable[str] | None = None,
    ) -> tuple[CodepointInfo, ...]:
        """Codepoints belonging to ``script``.

        Args:
            script: Script name, e.g. "Latin".
            filter: True keeps only PVALID codepoints; a collection of
                general category names keeps codepoints in those categories;
                None or False returns everything.

        Raises:
            UnknownScriptError: If ``script`` has no indexed codepoints.
            ValueError: If ``filter`` is a single string.
        """
        if isinstance(filter, str):
            raise ValueError("filter must be a collection of category names")
        points = self._points.get(script)
        if points is None:
            points = self._populate(script)
        if filter is None or filter is False:
            return points
        if filter is True:
            return tuple(c for c in points if c.property == PVALID)
        wanted = frozenset(filter)
        return tuple(c for c in points if c.category in wanted)

    def _populate(self, script: str) -> tuple[CodepointInfo, ...]:
        record = self._records.get(script)
        if record is None:
            raise UnknownScriptError(f"Unknown script: {script!r}")
        with self._lock:
            points = self._points.get(script)
            if points is not None:
                return points
            # [first, last] interleaves with other scripts
            found = []
            for code in range(record.first_code, record.last_code + 1):
                info = self._index.lookup(code)
                if info is not None and info.script == script:
                    found.append(info)
            points = self._points[script] = tuple(found)
        logger.debug("Populated script %s: %d codepoints", script, len(points))
        return points
