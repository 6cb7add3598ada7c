"""Configuration for the row-modification driver."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml


@dataclass
class RunConfig:
    """Seed for the synthetic problem."""

    seed: int = 0


@dataclass
class ProblemConfig:
    """Size and shape of the synthetic banded test problem."""

    n: int = 50
    bandwidth: int = 2
    k: int = 10
    scale: float = 0.5
    round_trip: bool = True


@dataclass
class KernelConfig:
    """Options forwarded to the kernel."""

    one_based: bool = False
    reuse_workspace: bool = True


@dataclass
class LoggingConfig:
    """Logging verbosity and formatting options."""

    level: str = "INFO"
    rich_tracebacks: bool = True


@dataclass
class AppConfig:
    """Top-level configuration object composed of sub-configurations."""

    run: RunConfig
    problem: ProblemConfig
    kernel: KernelConfig
    logging: LoggingConfig


def load_yaml(path: Path) -> Mapping[str, Any]:
    """Load a YAML document and return a mapping (empty for an empty file)."""

    with path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle)
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return raw


def app_config_from_mapping(raw: Mapping[str, Any]) -> AppConfig:
    run = raw.get("run") or {}
    problem = raw.get("problem") or {}
    kernel = raw.get("kernel") or {}
    logging_cfg = raw.get("logging") or {}

    defaults = ProblemConfig()
    app_config = AppConfig(
        run=RunConfig(seed=int(run.get("seed", 0))),
        problem=ProblemConfig(
            n=int(problem.get("n", defaults.n)),
            bandwidth=int(problem.get("bandwidth", defaults.bandwidth)),
            k=int(problem.get("k", defaults.k)),
            scale=float(problem.get("scale", defaults.scale)),
            round_trip=bool(problem.get("round_trip", defaults.round_trip)),
        ),
        kernel=KernelConfig(
            one_based=bool(kernel.get("one_based", False)),
            reuse_workspace=bool(kernel.get("reuse_workspace", True)),
        ),
        logging=LoggingConfig(
            level=str(logging_cfg.get("level", "INFO")),
            rich_tracebacks=bool(logging_cfg.get("rich_tracebacks", True)),
        ),
    )
    if app_config.problem.n < 1:
        raise ValueError("problem.n must be at least 1")
    if app_config.problem.bandwidth < 0:
        raise ValueError("problem.bandwidth must be non-negative")
    return app_config


def load_app_config(path: Path) -> AppConfig:
    """Load :class:`AppConfig` from ``path``."""

    return app_config_from_mapping(load_yaml(path))


__all__ = [
    "RunConfig",
    "ProblemConfig",
    "KernelConfig",
    "LoggingConfig",
    "AppConfig",
    "load_yaml",
    "app_config_from_mapping",
    "load_app_config",
]
