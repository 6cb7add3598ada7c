"""Logging, timing and dense reference helpers for :mod:`ldlmod`."""

from .logging import WorkUnitLogger, setup_logging
from .timers import TimerRecord, TimerRegistry

__all__ = ["WorkUnitLogger", "setup_logging", "TimerRecord", "TimerRegistry"]
