"""Generation session settings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable

from ._tlds import TLDS

if TYPE_CHECKING:
    from ._generator import ValueGenerator

KindFn = Callable[["ValueGenerator", int], Any]


DEFAULT_DATE_CENTER = datetime(2020, 1, 1, tzinfo=timezone.utc)


@dataclass(slots=True, frozen=True)
class GenerationConfig:
    """Bounds and kind selection for one generation session.

    A replay must use a config equal to the recording's: every field here
    changes which draws are made.

    Args:
        max_depth: Containers deeper than this are empty.
        max_container_size: Exclusive upper bound on container sizes.
        max_string_length: Exclusive upper bound on string length in
            codepoints; also bounds byte strings and bigint byte length.
        allowed_scripts: Scripts for text, in pick order. None means every
            usable script in index order.
        excluded_kinds: Kind names removed after overrides are applied.
        overrides: Ordered ``(kind, fn)`` pairs applied to the default kind
            registry; ``fn=None`` removes the kind.
        json_safe: Only generate JSON-representable kinds.
        tlds: Reference top-level labels for URL hosts.
        date_center: Mean of generated datetimes; 2020-01-01 UTC by default.
    """

    max_depth: int = 5
    max_container_size: int = 10
    max_string_length: int = 20
    allowed_scripts: tuple[str, ...] | None = None
    excluded_kinds: frozenset[str] = frozenset()
    overrides: tuple[tuple[str, KindFn | None], ...] = ()
    json_safe: bool = False
    tlds: tuple[str, ...] = TLDS
    date_center: datetime = DEFAULT_DATE_CENTER

    def __post_init__(self) -> None:
        if self.max_container_size < 0:
            raise ValueError(
                f"max_container_size must be >= 0, got {self.max_container_size}"
            )
        if self.max_string_length < 1:
            raise ValueError(
                f"max_string_length must be >= 1, got {self.max_string_length}"
            )
        if self.allowed_scripts is not None:
            if isinstance(self.allowed_scripts, str):
                raise ValueError("allowed_scripts must be a sequence of names")
            object.__setattr__(
                self, "allowed_scripts", tuple(self.allowed_scripts)
            )
            if not self.allowed_scripts:
                raise ValueError("allowed_scripts must not be empty")
        object.__setattr__(self, "excluded_kinds", frozenset(self.excluded_kinds))
        object.__setattr__(self, "overrides", tuple(self.overrides))
        object.__setattr__(self, "tlds", tuple(self.tlds))
        if self.date_center.tzinfo is None:
            raise ValueError("date_center must be timezone-aware")
