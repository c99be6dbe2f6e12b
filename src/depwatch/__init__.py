from __future__ import annotations

from .app import build_engine, run_watcher, watch
from .core.config import TrackerConfig, WatcherConfig
from .core.context import CancelContext
from .core.models import DecodedDeposit, LogDelta, LogRecord
from .decoding.decoder import DEPOSIT_EVENT, EventDecoder, make_deposit_decoder
from .orchestration import IngestionLoop, ShutdownCoordinator, SyncOrchestrator
from .reporting import DepositReporter

__all__ = [
    "build_engine",
    "run_watcher",
    "watch",
    "TrackerConfig",
    "WatcherConfig",
    "CancelContext",
    "DecodedDeposit",
    "LogDelta",
    "LogRecord",
    "DEPOSIT_EVENT",
    "EventDecoder",
    "make_deposit_decoder",
    "IngestionLoop",
    "ShutdownCoordinator",
    "SyncOrchestrator",
    "DepositReporter",
]
