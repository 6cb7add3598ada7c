"""Wall-clock timers for the phases of the row-modification kernel."""

from __future__ import annotations

import contextlib
import time
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Tuple


@dataclass
class TimerRecord:
    """Accumulates elapsed wall-clock time for a named section."""

    total: float = 0.0
    calls: int = 0

    def update(self, dt: float) -> None:
        self.total += dt
        self.calls += 1

    @property
    def mean(self) -> float:
        return self.total / self.calls if self.calls else 0.0


@dataclass
class TimerRegistry:
    """Registry of timers keyed by phase label."""

    records: Dict[str, TimerRecord] = field(default_factory=dict)

    @contextlib.contextmanager
    def time(self, label: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            dt = time.perf_counter() - start
            self.records.setdefault(label, TimerRecord()).update(dt)

    def summary(self) -> List[Tuple[str, int, float]]:
        """Return ``(label, calls, total seconds)`` rows, slowest first."""

        rows = [(label, rec.calls, rec.total) for label, rec in self.records.items()]
        return sorted(rows, key=lambda row: row[2], reverse=True)


__all__ = ["TimerRecord", "TimerRegistry"]
