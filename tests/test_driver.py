"""Smoke test for the synthetic-problem driver."""

from __future__ import annotations

from ldlmod.config import app_config_from_mapping
from ldlmod.driver import print_report, run_problem


def test_driver_runs_update_and_round_trip(capsys):
    cfg = app_config_from_mapping(
        {
            "run": {"seed": 3},
            "problem": {"n": 12, "bandwidth": 2, "k": 4, "scale": 0.4, "round_trip": True},
            "kernel": {"one_based": True, "reuse_workspace": True},
        }
    )

    report = run_problem(cfg)

    assert report.residual < 1e-10
    assert report.refactor_gap < 1e-9
    assert report.round_trip_gap is not None and report.round_trip_gap < 1e-9
    assert report.work["kernel_calls"] == 2

    print_report(report)
    out = capsys.readouterr().out
    assert "relative residual" in out


def test_driver_without_round_trip_or_workspace():
    cfg = app_config_from_mapping(
        {"problem": {"n": 6, "bandwidth": 1, "k": 5, "round_trip": False}, "kernel": {"reuse_workspace": False}}
    )

    report = run_problem(cfg)

    assert report.round_trip_gap is None
    assert report.work["kernel_calls"] == 1
    assert report.residual < 1e-10
