"""Tests for work counters, timers and the kernel workspace."""

from __future__ import annotations

import logging

import numpy as np
import pytest

from ldlmod.errors import ShapeError
from ldlmod.rowmodify import RowModifyWorkspace, scratch
from ldlmod.utils.logging import WorkUnitLogger, setup_logging
from ldlmod.utils.timers import TimerRegistry


def test_work_unit_logger_counts_known_and_extra_keys():
    work = WorkUnitLogger()
    work.incr(kernel_calls=1, update_rotations=3)
    work.incr(kernel_calls=1, refactorizations=2)

    assert work.kernel_calls == 2
    assert work.update_rotations == 3
    assert work.extras == {"refactorizations": 2}
    counts = work.as_dict()
    assert counts["refactorizations"] == 2
    assert "extras" not in counts


def test_timer_registry_accumulates_and_sorts():
    timers = TimerRegistry()
    for _ in range(3):
        with timers.time("fast"):
            pass
    with timers.time("slow"):
        sum(range(100000))

    assert timers.records["fast"].calls == 3
    assert timers.records["fast"].mean >= 0.0
    labels = [row[0] for row in timers.summary()]
    assert set(labels) == {"fast", "slow"}


def test_timer_records_even_when_body_raises():
    timers = TimerRegistry()
    with pytest.raises(RuntimeError):
        with timers.time("boom"):
            raise RuntimeError("fail")
    assert timers.records["boom"].calls == 1


def test_owned_scratch_is_released_on_error():
    captured = {}
    with pytest.raises(RuntimeError):
        with scratch(4) as ws:
            captured["ws"] = ws
            ws.w[:] = 1.0
            raise RuntimeError("fail")
    assert captured["ws"].released


def test_caller_workspace_is_zeroed_after_use():
    workspace = RowModifyWorkspace(3)
    with scratch(3, workspace) as ws:
        assert ws is workspace
        ws.delta[:] = 2.0
    assert not workspace.delta.any()
    assert not workspace.released


def test_released_workspace_is_reallocated_on_reset():
    workspace = RowModifyWorkspace(3)
    workspace.release()
    assert workspace.released
    workspace.reset()
    assert workspace.wd.shape == (3,)
    np.testing.assert_array_equal(workspace.wd, 0.0)


def test_negative_workspace_size_is_rejected():
    with pytest.raises(ShapeError):
        RowModifyWorkspace(-1)


def test_setup_logging_installs_rich_handler():
    from rich.logging import RichHandler

    setup_logging(level="debug", rich_tracebacks=False)
    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert any(isinstance(h, RichHandler) for h in root.handlers)
    setup_logging(level="WARNING")
