"""Per-phase wall-clock timing for generation loops.

Usage:
    perf = PerfMonitor(enabled=True)
    with perf.track("fitness"):
        subpop.update_fitness()
    logger.info(perf.report())

A disabled monitor's track() yields straight away and records nothing.
"""

import time
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict


@dataclass
class PhaseStats:
    """Accumulated time for one phase (fitness, reproduction, swap, ...)."""
    total_time: float = 0.0
    call_count: int = 0
    max_time: float = 0.0

    @property
    def mean_time(self) -> float:
        if not self.call_count:
            return 0.0
        return self.total_time / self.call_count

    def add(self, elapsed: float) -> None:
        self.call_count += 1
        self.total_time += elapsed
        if elapsed > self.max_time:
            self.max_time = elapsed

    def row(self, run_total: float) -> dict:
        share = 100.0 * self.total_time / run_total if run_total > 0 else 0.0
        return {
            'total_s': round(self.total_time, 4),
            'calls': self.call_count,
            'mean_ms': round(1000.0 * self.mean_time, 3),
            'pct': round(share, 1),
        }


class PerfMonitor:
    """Times named phases of a run; a no-op unless ``enabled``."""

    def __init__(self, enabled: bool = False):
        self.enabled = enabled
        self._stats: Dict[str, PhaseStats] = defaultdict(PhaseStats)

    @contextmanager
    def track(self, phase: str):
        if not self.enabled:
            yield
            return
        started = time.perf_counter()
        try:
            yield
        finally:
            self._stats[phase].add(time.perf_counter() - started)

    def get_stats(self) -> Dict[str, PhaseStats]:
        return dict(self._stats)

    def total_time(self) -> float:
        return sum(stats.total_time for stats in self._stats.values())

    def _slowest_first(self):
        return sorted(self._stats.items(), key=lambda item: item[1].total_time, reverse=True)

    def summary(self) -> dict:
        """Phase → {total_s, calls, mean_ms, pct}, slowest first, plus '_total_s'."""
        run_total = self.total_time()
        result = {name: stats.row(run_total) for name, stats in self._slowest_first()}
        result['_total_s'] = round(run_total, 4)
        return result

    def report(self, title: str = "Generation timing") -> str:
        """Plain-text table of summary()."""
        run_total = self.total_time()
        lines = [title, f"{'Phase':<16} {'Total (s)':>10} {'Calls':>8} {'Mean (ms)':>10} {'%':>6}"]
        for name, stats in self._slowest_first():
            row = stats.row(run_total)
            lines.append(f"{name:<16} {row['total_s']:>10.4f} {row['calls']:>8} "
                         f"{row['mean_ms']:>10.3f} {row['pct']:>5.1f}%")
        lines.append(f"{'TOTAL':<16} {run_total:>10.4f}")
        return '\n'.join(lines)

    def reset(self) -> None:
        self._stats.clear()
