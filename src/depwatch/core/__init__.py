"""Core data models, configuration, errors and collaborator interfaces.

This package provides:
- Data models (LogRecord, LogDelta, BlockRef, DecodedDeposit, FilterConfig)
- Configuration classes (WatcherConfig, TrackerConfig)
- The cancellation token shared by every task (CancelContext)
- The exception hierarchy (DepwatchError and subclasses)
"""

from depwatch.core.config import TrackerConfig, WatcherConfig
from depwatch.core.context import CancelContext
from depwatch.core.errors import (
    ConfigError,
    CursorStoreError,
    DecodeError,
    DepwatchError,
    EngineStartError,
    FilterCreateError,
    ReorgResolutionError,
    RpcError,
    SyncError,
)
from depwatch.core.models import BlockRef, DecodedDeposit, FilterConfig, LogDelta, LogRecord

__all__ = [
    "TrackerConfig",
    "WatcherConfig",
    "CancelContext",
    "ConfigError",
    "CursorStoreError",
    "DecodeError",
    "DepwatchError",
    "EngineStartError",
    "FilterCreateError",
    "ReorgResolutionError",
    "RpcError",
    "SyncError",
    "BlockRef",
    "DecodedDeposit",
    "FilterConfig",
    "LogDelta",
    "LogRecord",
]
