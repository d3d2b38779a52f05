"""Basura error types."""


class BasuraError(Exception):
    """Base error for all basura failures."""


class BasuraVersionError(BasuraError):
    """Manifest version mismatch."""


class BasuraChecksumError(BasuraError):
    """File checksum verification failed."""


class IndexBuildError(BasuraError):
    """Reference data could not be turned into a codepoint index."""


class IndexCorruptError(BasuraError):
    """The trie returned its error sentinel."""


class UnknownScriptError(BasuraError):
    """Script name is not among the indexed, non-empty scripts."""


class TraceError(BasuraError):
    """Replay could not continue."""


class TraceExhaustedError(TraceError):
    """Replay asked for more draws than the trace holds."""


class TraceMismatchError(TraceError):
    """Replay draw length or reason differs from the recorded entry."""


class GenerationError(BasuraError):
    """A value could not be generated or derived."""
