"""Chain tracking engine.

This package provides:
- `Tracker`: head polling, reorg detection, filter management
- `Filter`: per-address backfill and live delta delivery
- Range helpers (iter_chunks, filter_key)
"""

from depwatch.tracking.filter import Filter
from depwatch.tracking.tracker import Tracker
from depwatch.tracking.utils import filter_key, iter_chunks

__all__ = ["Filter", "Tracker", "filter_key", "iter_chunks"]
