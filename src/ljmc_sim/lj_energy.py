"""
Lennard-Jones energy kernels for Monte Carlo with link-cell lists.

All quantities are in LJ reduced units (sigma = 1, epsilon = 1). Positions
handed to the kernels are in box units (box length = 1); the box length is
only used to convert squared separations back to sigma units.

Pair potential, truncated (not shifted) at r_cut:

    v(r) = 4 [ (1/r)^12 - (1/r)^6 ]

and the virial contribution w(r) = -r dv/dr / 3 = 8 [ 2 (1/r)^12 - (1/r)^6 ].
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Tuple

import numpy as np
from numba import njit

###############################################################################
# Constants
###############################################################################

# (sigma/r)^2 above this is treated as a hard-core overlap, r < ~0.745 sigma
SR2_OVERLAP = 1.8

NK = 13

# 3x3x3 stencil. Row NK is the home cell, rows NK+1..2*NK are a half-shell
# and row NK-k is the negation of row NK+k.
STENCIL = np.array(
    [
        [-1, -1, -1], [0, -1, -1], [1, -1, -1],
        [-1, 1, -1], [0, 1, -1], [1, 1, -1],
        [-1, 0, -1], [1, 0, -1], [0, 0, -1],
        [0, -1, 0], [1, -1, 0], [-1, -1, 0],
        [-1, 0, 0], [0, 0, 0], [1, 0, 0],
        [1, 1, 0], [-1, 1, 0], [0, 1, 0],
        [0, 0, 1], [-1, 0, 1], [1, 0, 1],
        [-1, -1, 1], [0, -1, 1], [1, -1, 1],
        [-1, 1, 1], [0, 1, 1], [1, 1, 1],
    ],
    dtype=np.int32,
)


class SearchMode(IntEnum):
    """Range of partners searched by the neighbour enumerator."""

    FULL = 0  # every other particle in the 27 surrounding cells
    HALF = 1  # half-shell plus down-list: each pair seen once per sweep


###############################################################################
# Result composite
###############################################################################


@dataclass(frozen=True)
class EnergyResult:
    """
    Potential energy, virial and overlap flag.

    When ``overlap`` is set the configuration is unphysical and ``pot``/``vir``
    must not be used. Adding results ORs the flags.
    """

    pot: float = 0.0
    vir: float = 0.0
    overlap: bool = False

    def __add__(self, other: "EnergyResult") -> "EnergyResult":
        if not isinstance(other, EnergyResult):
            return NotImplemented
        return EnergyResult(
            pot=self.pot + other.pot,
            vir=self.vir + other.vir,
            overlap=self.overlap or other.overlap,
        )


###############################################################################
# Kernels
###############################################################################


@njit(cache=True)
def _anint(x: float) -> float:
    """Nearest integer, halves rounded away from zero."""
    if x >= 0.0:
        return float(math.floor(x + 0.5))
    return float(math.ceil(x - 0.5))


@njit(cache=True)
def wrap_positions(positions: np.ndarray, n: int) -> None:
    """Map rows 0..n-1 into the central box [-0.5, 0.5] in place."""
    for i in range(n):
        for k in range(3):
            positions[i, k] -= _anint(positions[i, k])


@njit(cache=True)
def wrap_position(ri: np.ndarray) -> np.ndarray:
    """Periodic image of one position inside the central box, as a new array."""
    out = np.empty(3, dtype=np.float64)
    for k in range(3):
        out[k] = ri[k] - _anint(ri[k])
    return out


@njit(cache=True)
def get_neighbours(
    i: int,
    ci: np.ndarray,
    half: bool,
    spatial_head: np.ndarray,
    spatial_next: np.ndarray,
    sc: int,
    j_list: np.ndarray,
) -> int:
    """
    Collect partner candidates of particle i into j_list.

    The stencil is centred on cell ci. In half mode only the forward
    half-shell is scanned and, in the home cell, only the chain after i.
    Returns the number of candidates written.
    """
    if half:
        k1 = NK
    else:
        k1 = 0
    k2 = 2 * NK

    nj = 0
    for k in range(k1, k2 + 1):
        if k == NK and half:
            j = spatial_next[i]
        else:
            cx = (ci[0] + STENCIL[k, 0]) % sc
            cy = (ci[1] + STENCIL[k, 1]) % sc
            cz = (ci[2] + STENCIL[k, 2]) % sc
            j = spatial_head[cx, cy, cz]

        while j >= 0:
            if j != i:
                j_list[nj] = j
                nj += 1
            j = spatial_next[j]

    return nj


@njit(cache=True)
def energy_1_kernel(
    ri: np.ndarray,
    i: int,
    positions: np.ndarray,
    j_list: np.ndarray,
    nj: int,
    box: float,
    r_cut: float,
) -> Tuple[float, float, bool]:
    """
    LJ energy and virial of position ri against candidates j_list[:nj].

    Returns (pot, vir, overlap). On overlap the loop stops at once and the
    partial sums are returned unscaled.
    """
    r_cut_box = r_cut / box
    r_cut_box_sq = r_cut_box * r_cut_box
    box_sq = box * box

    pot = 0.0
    vir = 0.0

    for jj in range(nj):
        j = j_list[jj]
        if j == i:
            continue

        dx = ri[0] - positions[j, 0]
        dy = ri[1] - positions[j, 1]
        dz = ri[2] - positions[j, 2]
        dx -= _anint(dx)
        dy -= _anint(dy)
        dz -= _anint(dz)
        rij_sq = dx * dx + dy * dy + dz * dz

        if rij_sq < r_cut_box_sq:
            rij_sq = rij_sq * box_sq  # sigma units
            sr2 = 1.0 / rij_sq

            if sr2 > SR2_OVERLAP:
                return pot, vir, True

            sr6 = sr2 * sr2 * sr2
            pot += sr6 * sr6 - sr6
            vir += 2.0 * sr6 * sr6 - sr6

    pot = 4.0 * pot
    vir = 24.0 * vir / 3.0
    return pot, vir, False


###############################################################################
# Long-range correction
###############################################################################


def energy_lrc(n: int, box: float, r_cut: float) -> Tuple[float, float]:
    """
    Tail corrections to the total potential energy and virial.

    Assumes g(r) = 1 beyond r_cut. Inputs and results in LJ units.
    """
    sr3 = (1.0 / r_cut) ** 3
    density = n / box**3

    pot = (8.0 / 9.0) * sr3**3 - (8.0 / 3.0) * sr3
    vir = (32.0 / 9.0) * sr3**3 - (32.0 / 6.0) * sr3

    pot *= math.pi * density * n
    vir *= math.pi * density * n
    return pot, vir


__all__ = [
    "EnergyResult",
    "SearchMode",
    "SR2_OVERLAP",
    "STENCIL",
    "energy_1_kernel",
    "energy_lrc",
    "get_neighbours",
    "wrap_position",
    "wrap_positions",
]
