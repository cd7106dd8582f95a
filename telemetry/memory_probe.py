#!/usr/bin/env python3
"""
Memory Probe - Runtime and Host Memory Metrics

Point-in-time memory metrics for the current process and host, consumed by
health checks deciding what to do under memory pressure:

- max_memory(): ceiling the process may commit (captured once)
- committed_memory(): resident memory of the process (live)
- collection_time(): cumulative gc time in ms (live)
- total_physical_memory() / free_physical_memory(): host RAM (live), raise
  UnsupportedOperation where the platform does not expose it

Usage:
    probe = get_memory_probe()
    if probe.committed_memory() > 0.9 * probe.max_memory():
        ...
"""

import logging
import sys
import threading
from typing import Iterable, Optional, Tuple

import psutil

import config
from .errors import UnsupportedOperation
from .gc_timer import get_gc_timer
from .management import (
    FREE_PHYSICAL_MEMORY_SIZE,
    OPERATING_SYSTEM,
    TOTAL_PHYSICAL_MEMORY_SIZE,
    ManagementError,
    ManagementServer,
    platform_management_server,
)

try:
    import resource
except ImportError:  # not available on Windows
    resource = None

logger = logging.getLogger(__name__)

# Reported when no ceiling can be determined
MAX_MEMORY_UNBOUNDED = 2**63 - 1


def resolve_max_memory() -> Tuple[int, str]:
    """
    Determine the maximum memory the process may commit.

    Returns:
        (bytes, origin) where origin is one of "config", "rlimit_as",
        "physical" or "unbounded"
    """
    override = config.get_config("MAX_MEMORY_BYTES")
    if override is not None:
        if (isinstance(override, int) and not isinstance(override, bool)
                and 1 <= override <= MAX_MEMORY_UNBOUNDED):
            return override, "config"
        logger.warning(f"Ignoring invalid MAX_MEMORY_BYTES={override!r}, falling back to runtime limits")

    if resource is not None:
        try:
            soft, _hard = resource.getrlimit(resource.RLIMIT_AS)
        except (ValueError, OSError) as e:
            logger.debug(f"RLIMIT_AS unavailable: {e}")
        else:
            if soft != resource.RLIM_INFINITY and soft > 0:
                return min(int(soft), MAX_MEMORY_UNBOUNDED), "rlimit_as"

    try:
        return int(psutil.virtual_memory().total), "physical"
    except (psutil.Error, OSError, NotImplementedError, RuntimeError) as e:
        logger.debug(f"Physical memory unavailable for max memory: {e}")

    return MAX_MEMORY_UNBOUNDED, "unbounded"


class MemoryProbe:
    """
    Read-only memory metrics facade.

    Safe to share across threads: the only state is the maximum memory
    captured at construction, every other value is queried on each call.
    """

    def __init__(self, collectors: Optional[Iterable] = None,
                 management: Optional[ManagementServer] = None,
                 max_memory: Optional[int] = None):
        """
        Initialize memory probe.

        Args:
            collectors: Collector-info sources exposing collection_time() in ms
                (default: the process-wide GC timer's generations)
            management: Host management server (default: platform server)
            max_memory: Maximum memory in bytes (default: resolve_max_memory())
        """
        self._collectors = tuple(collectors) if collectors is not None else get_gc_timer().collectors
        self._management = management if management is not None else platform_management_server()

        if max_memory is None:
            max_memory, origin = resolve_max_memory()
        else:
            origin = "argument"
        self._max_memory = int(max_memory)

        logger.debug(
            f"Memory probe initialized (max_memory={self._max_memory} bytes from {origin}, "
            f"collectors={len(self._collectors)}, "
            f"host_introspection={self._management.is_registered(OPERATING_SYSTEM)})"
        )

    def max_memory(self) -> int:
        """
        Max memory this process can commit in bytes. Always returns the same
        value because it is determined when the probe is created.
        """
        return self._max_memory

    def committed_memory(self) -> int:
        """
        Currently committed (resident) memory of this process in bytes.
        Queried on every call; normally <= max_memory().
        """
        try:
            return psutil.Process().memory_info().rss
        except (psutil.Error, OSError) as e:
            logger.debug(f"Process memory info unavailable, using peak RSS: {e}")
        return _peak_rss()

    def collection_time(self) -> int:
        """Approx. time spent in gc across all collectors, in ms"""
        total = 0
        for collector in self._collectors:
            elapsed = collector.collection_time()
            # negative = collector does not support the metric
            if elapsed >= 0:
                total += elapsed
        return total

    def total_physical_memory(self) -> int:
        """
        Total physical memory of the host in bytes, independent of
        max_memory().

        Raises:
            UnsupportedOperation: If the platform does not expose it
        """
        return self._host_attribute(OPERATING_SYSTEM, TOTAL_PHYSICAL_MEMORY_SIZE, int)

    def free_physical_memory(self) -> int:
        """
        Free physical memory of the host in bytes, independent of
        committed_memory().

        Raises:
            UnsupportedOperation: If the platform does not expose it
        """
        return self._host_attribute(OPERATING_SYSTEM, FREE_PHYSICAL_MEMORY_SIZE, int)

    def _host_attribute(self, object_name: str, attribute: str, expected_type: type) -> int:
        """
        Read an attribute from the host management interface.

        Raises:
            UnsupportedOperation: On any lookup, read or validation failure
        """
        try:
            value = self._management.get_attribute(object_name, attribute)
        except ManagementError as e:
            cause = e
        else:
            if not isinstance(value, expected_type) or isinstance(value, bool):
                cause = TypeError(
                    f"Expected {expected_type.__name__}, got {type(value).__name__}"
                )
            elif value < 0:
                cause = ValueError(f"Negative value {value}")
            else:
                return value
        raise UnsupportedOperation(object_name, attribute) from cause


def _peak_rss() -> int:
    """Peak resident memory of this process from getrusage(), 0 if unknown"""
    if resource is None:
        return 0
    try:
        peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    except (ValueError, OSError):
        return 0
    # ru_maxrss is bytes on macOS, KiB elsewhere
    return peak if sys.platform == "darwin" else peak * 1024


# Global memory probe instance
_global_memory_probe: Optional[MemoryProbe] = None
_global_lock = threading.Lock()


def get_memory_probe() -> MemoryProbe:
    """Get or create the process-wide memory probe"""
    global _global_memory_probe
    with _global_lock:
        if _global_memory_probe is None:
            try:
                config.validate_config()
            except ValueError as e:
                logger.error(str(e))
                raise
            _global_memory_probe = MemoryProbe()
        return _global_memory_probe


def reset_memory_probe() -> None:
    """Drop the process-wide probe so the next access creates a new one"""
    global _global_memory_probe
    with _global_lock:
        _global_memory_probe = None
