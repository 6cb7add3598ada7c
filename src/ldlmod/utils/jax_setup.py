"""JAX configuration shared by the dense reference routines."""

from __future__ import annotations

import os

os.environ.setdefault("JAX_PLATFORMS", "cpu")

import jax
import jax.numpy as jnp

Array = jax.Array

jax.config.update("jax_enable_x64", True)


def nan_guard(name: str, *arrays: Array) -> None:
    """Raise with diagnostics if any array contains NaNs or infs."""

    for arr in arrays:
        tensor = jnp.asarray(arr)
        if jnp.any(~jnp.isfinite(tensor)):
            stats = {
                "min": float(jnp.nanmin(tensor)),
                "max": float(jnp.nanmax(tensor)),
                "mean": float(jnp.nanmean(tensor)),
            }
            raise RuntimeError(f"{name}: detected non-finite values with stats {stats}")


__all__ = ["Array", "nan_guard"]
