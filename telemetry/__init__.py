"""
Telemetry Module

Runtime and host memory metrics for health monitoring.
"""

from .errors import UnsupportedOperation
from .gc_timer import GcTimer, GenerationCollector, get_gc_timer
from .management import (
    FREE_PHYSICAL_MEMORY_SIZE,
    OPERATING_SYSTEM,
    TOTAL_PHYSICAL_MEMORY_SIZE,
    ManagementServer,
    platform_management_server,
)
from .mem import MemorySnapshot, log_snapshot, snapshot
from .memory_probe import MemoryProbe, get_memory_probe

__all__ = [
    'UnsupportedOperation',
    'MemoryProbe',
    'get_memory_probe',
    'GcTimer',
    'GenerationCollector',
    'get_gc_timer',
    'ManagementServer',
    'platform_management_server',
    'OPERATING_SYSTEM',
    'TOTAL_PHYSICAL_MEMORY_SIZE',
    'FREE_PHYSICAL_MEMORY_SIZE',
    'MemorySnapshot',
    'snapshot',
    'log_snapshot',
]
