# src/ljmc_sim/utils.py
from __future__ import annotations

import json
import os
import tomllib
from pathlib import Path
from typing import Any, Dict

import numpy as np

from .mc_system import KernelParams


def cubic_lattice(n: int) -> np.ndarray:
    """
    First n sites of a simple cubic lattice filling the unit box.

    Sites sit at cell centres, so coordinates lie in [-0.5, 0.5) and the
    spacing is 1 / ceil(n^(1/3)) in box units.
    """
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    if n == 0:
        return np.zeros((0, 3), dtype=np.float64)

    nc = int(round(n ** (1.0 / 3.0)))
    if nc**3 < n:
        nc += 1

    idx = np.arange(nc, dtype=np.float64)
    ix, iy, iz = np.meshgrid(idx, idx, idx, indexing="ij")
    sites = np.column_stack((ix.ravel(), iy.ravel(), iz.ravel()))
    return (sites[:n] + 0.5) / nc - 0.5


def box_for_density(n: int, density: float) -> float:
    """Box length giving number density n / box^3."""
    if density <= 0.0:
        raise ValueError(f"density must be positive, got {density}")
    return (n / density) ** (1.0 / 3.0)


def load_params(path: str | os.PathLike[str]) -> Dict[str, Any]:
    """
    Load kernel parameters from a JSON or TOML file.

    Keys must be ``KernelParams`` fields (box, r_cut, capacity, n). A TOML
    file may hold them at top level or under a ``[kernel]`` table. Values are
    checked by building a ``KernelParams``; the validated mapping is returned
    so callers can still merge overrides before constructing a system.
    """
    path = str(path)
    with open(path, "rb") as fh:
        data = fh.read()
    suffix = Path(path).suffix.lower()
    if suffix in {".json", ""}:
        config = json.loads(data.decode("utf-8"))
    elif suffix in {".toml", ".tml"}:
        config = tomllib.loads(data.decode("utf-8"))
        config = config.get("kernel", config)
    else:
        raise ValueError(f"Unsupported parameter file format: {suffix}")

    if not isinstance(config, dict):
        raise ValueError(f"Parameter file {path} must hold a mapping of parameters")
    for key in ("box", "r_cut"):
        if key in config and not isinstance(config[key], (int, float)):
            raise ValueError(f"Parameter {key} must be a number, got {config[key]!r}")
    for key in ("capacity", "n"):
        if key in config and not isinstance(config[key], int):
            raise ValueError(f"Parameter {key} must be an integer, got {config[key]!r}")

    KernelParams.from_dict(config)
    return config
