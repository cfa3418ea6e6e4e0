#!/usr/bin/env python3

"""
Performance monitoring for the principal isoform pipeline.

Each pipeline phase (identifier classification, annotation scan, window
expansion, sequence extraction) is timed together with the number of items
it handled and the resident memory of the process. Memory sampling is done
with psutil and is skipped entirely when monitoring is disabled.
"""

import time
import logging
import psutil
from dataclasses import dataclass
from typing import Optional, Dict, Any
from contextlib import contextmanager

from ..core.exceptions import MemoryLimitError


@dataclass
class PhaseMetrics:
    """Timing, item count and memory of one pipeline phase."""
    name: str
    start_time: float
    end_time: Optional[float] = None
    peak_memory_mb: float = 0.0
    items: int = 0

    @property
    def elapsed_time(self) -> float:
        end = self.end_time if self.end_time is not None else time.time()
        return end - self.start_time

    @property
    def items_per_second(self) -> float:
        elapsed = self.elapsed_time
        return self.items / elapsed if elapsed > 0 else 0.0


class PerformanceMonitor:
    """Per-phase timing and memory monitoring."""

    def __init__(self, memory_limit_mb: int = 4096, enabled: bool = True):
        self.memory_limit_mb = memory_limit_mb
        self.enabled = enabled
        self.start_time = time.time()
        self.phases: Dict[str, PhaseMetrics] = {}
        self._current: Optional[PhaseMetrics] = None
        self._process = psutil.Process() if enabled else None

    def memory_usage(self) -> float:
        """Get the resident memory of this process in MB, 0 when disabled."""
        if self._process is None:
            return 0.0

        try:
            memory_mb = self._process.memory_info().rss / 1024 / 1024
        except psutil.Error as e:
            logging.warning(f"Error getting memory usage: {e}")
            return 0.0

        if self._current is not None:
            self._current.peak_memory_mb = max(self._current.peak_memory_mb, memory_mb)
        return memory_mb

    def check_memory_limit(self) -> None:
        """Raise MemoryLimitError when memory usage exceeds the configured limit."""
        if not self.enabled:
            return

        current_memory = self.memory_usage()
        if current_memory > self.memory_limit_mb:
            logging.error(f"Memory usage exceeded limit: "
                          f"{current_memory:.1f}MB > {self.memory_limit_mb}MB")
            raise MemoryLimitError("Memory usage exceeded limit", current_memory,
                                   self.memory_limit_mb)

    @contextmanager
    def phase(self, name: str):
        """Monitor a pipeline phase; the caller sets ``items`` on the yielded metrics."""
        metrics = PhaseMetrics(name=name, start_time=time.time())
        self.phases[name] = metrics
        self._current = metrics
        self.memory_usage()
        logging.info(f"Started phase: {name}")
        try:
            yield metrics
        finally:
            self.memory_usage()
            metrics.end_time = time.time()
            self._current = None
            logging.info(f"Completed phase {name} in {metrics.elapsed_time:.2f}s "
                         f"({metrics.items} items)")

    def peak_memory(self) -> float:
        """Get peak memory across all phases."""
        return max((m.peak_memory_mb for m in self.phases.values()), default=0.0)

    def summary(self) -> Dict[str, Any]:
        return {
            "total_elapsed_time": time.time() - self.start_time,
            "peak_memory_mb": self.peak_memory(),
            "memory_limit_mb": self.memory_limit_mb,
            "phases": {
                name: {
                    "elapsed_time": m.elapsed_time,
                    "items": m.items,
                    "items_per_second": m.items_per_second,
                    "peak_memory_mb": m.peak_memory_mb,
                }
                for name, m in self.phases.items()
            },
        }

    def log_report(self) -> None:
        """Log one line per phase."""
        summary = self.summary()
        logging.info(f"Total time: {summary['total_elapsed_time']:.2f}s, "
                     f"peak memory: {summary['peak_memory_mb']:.1f}MB")
        for name, phase in summary['phases'].items():
            logging.info(f"  {name}: {phase['elapsed_time']:.2f}s "
                         f"({phase['items']} items, {phase['items_per_second']:.1f}/s, "
                         f"{phase['peak_memory_mb']:.1f}MB)")
