#!/usr/bin/env python3
"""
Memory Helper - Memory Snapshots for Heartbeat Logging

Samples all MemoryProbe metrics at once:
- snapshot(): MemorySnapshot, unsupported host metrics become None
- log_snapshot(): snapshot + "memory_snapshot" event on the health log
"""

import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional

from core.logger_factory import HEALTH_LOG, log_event
from .errors import UnsupportedOperation
from .memory_probe import MemoryProbe, get_memory_probe

logger = logging.getLogger(__name__)

_MB = 1024 * 1024


@dataclass
class MemorySnapshot:
    """Memory metrics sampled back-to-back"""
    timestamp: float
    max_memory_bytes: int
    committed_memory_bytes: int
    collection_time_ms: int
    total_physical_bytes: Optional[int] = None  # None = unsupported here
    free_physical_bytes: Optional[int] = None

    @property
    def committed_mb(self) -> float:
        return self.committed_memory_bytes / _MB

    @property
    def host_supported(self) -> bool:
        return self.total_physical_bytes is not None and self.free_physical_bytes is not None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _optional(query: Callable[[], int]) -> Optional[int]:
    try:
        return query()
    except UnsupportedOperation as e:
        logger.debug(f"{e} ({e.cause!r})")
        return None


def snapshot(probe: Optional[MemoryProbe] = None) -> MemorySnapshot:
    """
    Sample every memory metric once.

    Args:
        probe: Probe to sample (default: process-wide probe)

    Returns:
        MemorySnapshot with host fields set to None where unsupported
    """
    probe = probe or get_memory_probe()
    return MemorySnapshot(
        timestamp=time.time(),
        max_memory_bytes=probe.max_memory(),
        committed_memory_bytes=probe.committed_memory(),
        collection_time_ms=probe.collection_time(),
        total_physical_bytes=_optional(probe.total_physical_memory),
        free_physical_bytes=_optional(probe.free_physical_memory),
    )


def log_snapshot(probe: Optional[MemoryProbe] = None,
                 health_logger: Optional[logging.Logger] = None) -> MemorySnapshot:
    """Sample memory metrics and write them to the health log."""
    snap = snapshot(probe)
    message = f"Memory: committed={snap.committed_mb:.1f} MB, gc={snap.collection_time_ms} ms"
    if snap.host_supported:
        message += f", host free={snap.free_physical_bytes / _MB:.1f} MB"
    else:
        message += ", host memory unsupported"
    log_event(
        health_logger or HEALTH_LOG(),
        "memory_snapshot",
        message=message,
        **snap.to_dict(),
    )
    return snap
