"""Exception hierarchy.

Every error raised on purpose by depwatch derives from `DepwatchError`, so the
top level can tell a known fatal condition from an unexpected crash.
"""

from __future__ import annotations


class DepwatchError(Exception):
    """Base class for all depwatch errors."""


class ConfigError(DepwatchError):
    """Missing or invalid endpoint / target."""


class EngineStartError(DepwatchError):
    """The tracking engine could not start (usually the node is unreachable)."""


class FilterCreateError(DepwatchError):
    """The tracking engine refused the log filter."""


class SyncError(DepwatchError):
    """The historical backfill failed."""


class DecodeError(DepwatchError):
    """A log matched the event shape but its payload could not be decoded."""


class RpcError(DepwatchError):
    """The node answered with a JSON-RPC error or a malformed response."""


class CursorStoreError(DepwatchError):
    """The cursor file exists but cannot be read."""


class ReorgResolutionError(DepwatchError):
    """Could not find a common ancestor within the tracked block window."""
