from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from urllib.parse import urlparse

from eth_utils import is_hex_address, to_checksum_address

from depwatch.core.errors import ConfigError

SUPPORTED_SCHEMES = ("http", "https")


@dataclass(frozen=True)
class TrackerConfig:
    """Configuration for the tracking engine."""

    batch_size: int = 2_000
    poll_interval_s: float = 2.0
    max_reorg_depth: int = 64


@dataclass(frozen=True)
class WatcherConfig:
    """Configuration for one watcher process (CLI)."""

    endpoint: str
    target: str
    batch_size: int = 2_000
    store_path: Path = Path("deposit.json")
    poll_interval_s: float = 2.0
    max_reorg_depth: int = 64
    rpc_timeout_s: int = 20

    def validate(self) -> WatcherConfig:
        """Return a normalized copy (checksummed target) or raise `ConfigError`."""
        endpoint = (self.endpoint or "").strip()
        if not endpoint:
            raise ConfigError("endpoint is required")
        scheme = urlparse(endpoint).scheme.lower()
        if scheme not in SUPPORTED_SCHEMES:
            raise ConfigError(f"unsupported endpoint scheme: {endpoint!r}")

        target = (self.target or "").strip()
        if not target:
            raise ConfigError("target is required")
        if not is_hex_address(target):
            raise ConfigError(f"invalid target address: {target!r}")

        if self.batch_size <= 0:
            raise ConfigError("batch_size must be positive")

        return replace(self, endpoint=endpoint, target=to_checksum_address(target))

    def tracker_config(self) -> TrackerConfig:
        return TrackerConfig(
            batch_size=self.batch_size,
            poll_interval_s=self.poll_interval_s,
            max_reorg_depth=self.max_reorg_depth,
        )
