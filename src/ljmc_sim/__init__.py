"""
Lennard-Jones Monte Carlo kernel with link-cell lists.

This package provides the energy and move routines a Monte Carlo driver
needs on every trial step:
- LJMonteCarloSystem: particle store, single-particle and total energies,
  move/create/destroy keeping the cell list in step
- CellList: link-cell spatial index for a periodic cubic box
- energy_lrc: long-range (tail) corrections
"""

from .link_list import CellList
from .lj_energy import EnergyResult, SearchMode, energy_lrc
from .mc_system import KernelParams, LJMonteCarloSystem, make_system
from . import utils

__all__ = [
    # Simulation context
    "LJMonteCarloSystem",
    "make_system",
    # Configuration classes
    "KernelParams",
    # Energy
    "EnergyResult",
    "SearchMode",
    "energy_lrc",
    # Spatial index
    "CellList",
    # Utilities
    "utils",
]
