"""Startup sequencing, live ingestion and shutdown.

This package provides:
- `IngestionLoop`: delta queue → decoder → reporter
- `SyncOrchestrator`: engine start, filter, cursor, backfill + live ingestion
- `ShutdownCoordinator`: termination signals → cancellation → exit code
"""

from depwatch.orchestration.ingestion import IngestionLoop, IngestionState
from depwatch.orchestration.orchestrator import SyncOrchestrator
from depwatch.orchestration.shutdown import (
    EXIT_FORCED,
    EXIT_GRACEFUL,
    TERMINATION_SIGNALS,
    ShutdownCoordinator,
    ShutdownState,
)

__all__ = [
    "IngestionLoop",
    "IngestionState",
    "SyncOrchestrator",
    "EXIT_FORCED",
    "EXIT_GRACEFUL",
    "TERMINATION_SIGNALS",
    "ShutdownCoordinator",
    "ShutdownState",
]
