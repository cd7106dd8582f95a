#!/usr/bin/env python3
"""
Garbage Collection Timer

CPython does not account for time spent in the cyclic garbage collector, so
this module measures it through gc.callbacks: one GenerationCollector per
generation accumulates the wall-clock time between the "start" and "stop"
phases of its collections.

Collectors report -1 from collection_time() until their timer has been
installed, i.e. the metric is undefined rather than zero.
"""

import gc
import logging
import threading
import time
from typing import Any, Dict, Optional, Tuple

import config

logger = logging.getLogger(__name__)

UNDEFINED_COLLECTION_TIME = -1


class GenerationCollector:
    """Cumulative collection statistics of one gc generation"""

    def __init__(self, generation: int):
        self.generation = generation
        self.name = f"gen{generation}"
        self._elapsed_ns = 0
        self._count = 0
        self._started_ns: Optional[int] = None
        self._defined = False

    def collection_time(self) -> int:
        """Cumulative collection time in ms, or -1 if never measured"""
        if not self._defined:
            return UNDEFINED_COLLECTION_TIME
        return self._elapsed_ns // 1_000_000

    def collection_count(self) -> int:
        """Number of completed collections observed, or -1 if never measured"""
        if not self._defined:
            return UNDEFINED_COLLECTION_TIME
        return self._count

    def _start(self, now_ns: int) -> None:
        self._started_ns = now_ns

    def _stop(self, now_ns: int) -> None:
        # A "stop" without a matching "start" happens when the timer was
        # installed mid-collection; nothing to add in that case
        if self._started_ns is None:
            return
        self._elapsed_ns += max(0, now_ns - self._started_ns)
        self._count += 1
        self._started_ns = None

    def __repr__(self) -> str:
        return f"GenerationCollector({self.name}, time_ms={self.collection_time()})"


class GcTimer:
    """
    Times garbage collections via gc.callbacks.

    The callback runs inside the collector with the GIL held and takes no
    locks; counters are plain ints updated from that single context.
    """

    def __init__(self, generations: Optional[int] = None):
        if generations is None:
            generations = len(gc.get_count())
        self.collectors: Tuple[GenerationCollector, ...] = tuple(
            GenerationCollector(g) for g in range(generations)
        )
        self._installed = False
        self._lock = threading.Lock()

    @property
    def installed(self) -> bool:
        return self._installed

    def install(self) -> None:
        """Register the callback (idempotent)"""
        with self._lock:
            if self._installed:
                return
            for collector in self.collectors:
                collector._defined = True
            gc.callbacks.append(self._on_gc)
            self._installed = True
        logger.debug(f"GC timer installed for {len(self.collectors)} generations")

    def uninstall(self) -> None:
        """Remove the callback; accumulated times are kept"""
        with self._lock:
            if not self._installed:
                return
            try:
                gc.callbacks.remove(self._on_gc)
            except ValueError:
                pass
            for collector in self.collectors:
                collector._started_ns = None
            self._installed = False
        logger.debug("GC timer uninstalled")

    def _on_gc(self, phase: str, info: Dict[str, Any]) -> None:
        generation = info.get("generation", -1)
        if not 0 <= generation < len(self.collectors):
            return
        collector = self.collectors[generation]
        now_ns = time.perf_counter_ns()
        if phase == "start":
            collector._start(now_ns)
        elif phase == "stop":
            collector._stop(now_ns)

    def total_collection_time(self) -> int:
        return sum(max(0, c.collection_time()) for c in self.collectors)


# Global GC timer instance
_global_gc_timer: Optional[GcTimer] = None
_global_lock = threading.Lock()


def get_gc_timer() -> GcTimer:
    """Get or create the process-wide GC timer (installed when enabled)"""
    global _global_gc_timer
    with _global_lock:
        if _global_gc_timer is None:
            _global_gc_timer = GcTimer()
            if config.get_config("GC_TIMER_ENABLED", True):
                _global_gc_timer.install()
            else:
                logger.info("GC timer disabled by configuration")
        return _global_gc_timer


def shutdown_gc_timer() -> None:
    """Uninstall and drop the process-wide GC timer"""
    global _global_gc_timer
    with _global_lock:
        if _global_gc_timer is not None:
            _global_gc_timer.uninstall()
            counts = ", ".join(
                f"{c.name}={c.collection_count()}" for c in _global_gc_timer.collectors
            )
            logger.info(
                f"GC timer stopped ({counts}, total {_global_gc_timer.total_collection_time()} ms)"
            )
            _global_gc_timer = None
