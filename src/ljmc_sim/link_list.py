"""
Link-cell list for a periodic cubic box in box units (box length = 1).

The box is split into ``sc x sc x sc`` cells of side ``1 / sc >= r_cut_box``.
Each cell holds a singly linked chain of particle indices stored in arrays:

- ``spatial_head[cx, cy, cz]``: first particle in the cell (-1 if empty)
- ``spatial_next[i]``: next particle in the same cell (-1 at end of chain)
- ``cell_coords[i]``: cell the particle is currently filed under

New particles are pushed at the head of their chain, so a freshly built cell
lists its particles in descending index order.
"""

from __future__ import annotations

import math

import numpy as np
from numba import njit

MIN_CELLS_PER_SIDE = 3

###############################################################################
# Kernels
###############################################################################


@njit(cache=True)
def cell_index(ri: np.ndarray, sc: int) -> np.ndarray:
    """Cell coordinates of a wrapped position, clamped against round-off."""
    ci = np.empty(3, dtype=np.int32)
    for k in range(3):
        c = math.floor((ri[k] + 0.5) * sc)
        if c < 0:
            c = 0
        elif c > sc - 1:
            c = sc - 1
        ci[k] = c
    return ci


@njit(cache=True)
def create_in_list(
    i: int,
    ci: np.ndarray,
    spatial_head: np.ndarray,
    spatial_next: np.ndarray,
    cell_coords: np.ndarray,
) -> None:
    """Push particle i at the head of the chain for cell ci."""
    spatial_next[i] = spatial_head[ci[0], ci[1], ci[2]]
    spatial_head[ci[0], ci[1], ci[2]] = i
    cell_coords[i, 0] = ci[0]
    cell_coords[i, 1] = ci[1]
    cell_coords[i, 2] = ci[2]


@njit(cache=True)
def destroy_in_list(
    i: int,
    ci: np.ndarray,
    spatial_head: np.ndarray,
    spatial_next: np.ndarray,
) -> bool:
    """
    Unlink particle i from the chain of cell ci.

    Returns False if i is not found in that chain (the list is then untouched).
    """
    j = spatial_head[ci[0], ci[1], ci[2]]
    if j == i:
        spatial_head[ci[0], ci[1], ci[2]] = spatial_next[i]
        return True

    while j >= 0:
        k = j
        j = spatial_next[j]
        if j == i:
            spatial_next[k] = spatial_next[i]
            return True

    return False


@njit(cache=True)
def move_in_list(
    i: int,
    ci: np.ndarray,
    spatial_head: np.ndarray,
    spatial_next: np.ndarray,
    cell_coords: np.ndarray,
) -> bool:
    """Refile particle i under cell ci. No-op if it is already there."""
    if (
        cell_coords[i, 0] == ci[0]
        and cell_coords[i, 1] == ci[1]
        and cell_coords[i, 2] == ci[2]
    ):
        return True

    if not destroy_in_list(i, cell_coords[i], spatial_head, spatial_next):
        return False
    create_in_list(i, ci, spatial_head, spatial_next, cell_coords)
    return True


@njit(cache=True)
def make_list(
    n: int,
    positions: np.ndarray,
    sc: int,
    spatial_head: np.ndarray,
    spatial_next: np.ndarray,
    cell_coords: np.ndarray,
) -> None:
    """Rebuild every chain from scratch for particles 0..n-1."""
    spatial_head[:, :, :] = -1
    for i in range(n):
        ci = cell_index(positions[i], sc)
        create_in_list(i, ci, spatial_head, spatial_next, cell_coords)


###############################################################################
# Python interface
###############################################################################


class CellList:
    """
    Owner of the link-cell arrays.

    Capacity is the number of particle slots (``spatial_next`` and
    ``cell_coords`` rows), not the number of live particles.
    """

    def __init__(self, capacity: int, r_cut_box: float) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        if r_cut_box <= 0.0:
            raise ValueError(f"r_cut/box must be positive, got {r_cut_box}")

        sc = int(math.floor(1.0 / r_cut_box))
        if sc < MIN_CELLS_PER_SIDE:
            raise ValueError(
                f"System is too small to use link cells: {sc} cells per side "
                f"(need at least {MIN_CELLS_PER_SIDE}, r_cut/box={r_cut_box:.5f})"
            )

        self.sc = sc
        self.r_cut_box = r_cut_box
        self.spatial_head = np.full((sc, sc, sc), -1, dtype=np.int32)
        self.spatial_next = np.full(capacity, -1, dtype=np.int32)
        self.cell_coords = np.zeros((capacity, 3), dtype=np.int32)

    @property
    def capacity(self) -> int:
        return self.spatial_next.shape[0]

    def finalize(self) -> None:
        self.spatial_head = None
        self.spatial_next = None
        self.cell_coords = None

    def build(self, n: int, positions: np.ndarray) -> None:
        if n > self.capacity:
            raise RuntimeError(
                f"Array bounds error for cell list: {n} particles, capacity {self.capacity}"
            )
        make_list(
            n,
            positions,
            self.sc,
            self.spatial_head,
            self.spatial_next,
            self.cell_coords,
        )

    def cell_of(self, ri) -> np.ndarray:
        return cell_index(np.asarray(ri, dtype=np.float64), self.sc)

    def insert(self, i: int, ci) -> None:
        create_in_list(
            i,
            np.asarray(ci, dtype=np.int32),
            self.spatial_head,
            self.spatial_next,
            self.cell_coords,
        )

    def remove(self, i: int, ci) -> None:
        found = destroy_in_list(
            i, np.asarray(ci, dtype=np.int32), self.spatial_head, self.spatial_next
        )
        if not found:
            raise RuntimeError(f"Could not find particle {i} in cell {tuple(ci)}")

    def relocate(self, i: int, ci) -> None:
        moved = move_in_list(
            i,
            np.asarray(ci, dtype=np.int32),
            self.spatial_head,
            self.spatial_next,
            self.cell_coords,
        )
        if not moved:
            raise RuntimeError(
                f"Could not find particle {i} in cell {tuple(self.cell_coords[i])}"
            )

    def resize(self, capacity: int) -> None:
        """Enlarge the per-particle arrays, keeping every existing chain."""
        old = self.capacity
        if capacity < old:
            raise ValueError(f"Cannot shrink cell list from {old} to {capacity}")

        spatial_next = np.full(capacity, -1, dtype=np.int32)
        spatial_next[:old] = self.spatial_next
        cell_coords = np.zeros((capacity, 3), dtype=np.int32)
        cell_coords[:old] = self.cell_coords
        self.spatial_next = spatial_next
        self.cell_coords = cell_coords

    def members(self, ci) -> list[int]:
        """Particle indices in the chain of cell ci, in chain order."""
        cx, cy, cz = (int(c) for c in ci)
        out = []
        j = int(self.spatial_head[cx, cy, cz])
        while j >= 0:
            out.append(j)
            j = int(self.spatial_next[j])
        return out


__all__ = ["CellList", "cell_index", "MIN_CELLS_PER_SIDE"]
