"""
Particle store and move routines for Lennard-Jones Monte Carlo.

``LJMonteCarloSystem`` owns the positions (box units), the live particle
count and the link-cell list, and keeps the two in step as particles are
moved, created or destroyed. It does not accept or reject moves: a driver
evaluates ``energy_1`` before and after a trial change and calls the
matching mutation only on acceptance.

Typical use::

    system = make_system({"box": 10.0, "r_cut": 2.5, "capacity": 256})
    system.load_positions(r / box)
    system.build_index()
    total = system.energy()
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Optional

import numpy as np

from .link_list import CellList
from .lj_energy import (
    EnergyResult,
    SearchMode,
    energy_1_kernel,
    energy_lrc,
    get_neighbours,
    wrap_position,
    wrap_positions,
)

DEFAULT_BOX = 10.0
DEFAULT_R_CUT = 2.5
DEFAULT_CAPACITY = 1000


@dataclass
class KernelParams:
    box: float = DEFAULT_BOX  # box length, sigma units
    r_cut: float = DEFAULT_R_CUT  # potential cutoff, sigma units
    capacity: int = DEFAULT_CAPACITY  # initial particle slots
    n: int = 0  # lattice sites placed by the report script

    @classmethod
    def from_dict(cls, config: dict) -> "KernelParams":
        """Build from a plain mapping, rejecting keys that are not fields."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(config) - known)
        if unknown:
            raise ValueError(
                f"Unknown parameter(s): {', '.join(unknown)}; "
                f"expected a subset of {', '.join(sorted(known))}"
            )
        return cls(**config)


class LJMonteCarloSystem:
    """
    Simulation context for one LJ system in a periodic cubic box.

    Particles are indexed 0..n-1. ``destroy`` compacts by moving the last
    particle into the freed slot, so indices are not stable identities: any
    per-particle data held by the caller must be permuted the same way.
    """

    def __init__(self, params: KernelParams) -> None:
        self.params = params
        if params.box <= 0.0:
            raise ValueError(f"box must be positive, got {params.box}")
        if params.capacity <= 0:
            raise ValueError(f"capacity must be positive, got {params.capacity}")

        r_cut_box = params.r_cut / params.box
        if r_cut_box > 0.5:
            raise ValueError(f"r_cut/box too large: {r_cut_box:.5f} > 0.5")

        self.box = float(params.box)
        self.r_cut = float(params.r_cut)
        self.n = 0

        self.positions = np.zeros((params.capacity, 3), dtype=np.float64)
        self.j_list = np.zeros(params.capacity, dtype=np.int32)
        self.cell_list = CellList(params.capacity, r_cut_box)
        self._index_built = False

    # ------------------------------------------------------------------ store
    @property
    def capacity(self) -> int:
        if self.positions is None:
            return 0
        return self.positions.shape[0]

    @property
    def allocated(self) -> bool:
        return self.positions is not None

    @property
    def index_built(self) -> bool:
        return self._index_built

    def deallocate(self) -> None:
        """Release the buffers and the cell list."""
        self.positions = None
        self.j_list = None
        self.cell_list.finalize()
        self._index_built = False

    def grow(self) -> None:
        """
        Double the particle capacity.

        Rows 0..capacity-1 are copied into the new buffers. The cell list's
        per-particle arrays are enlarged in the same step so that every chain
        survives and ``create`` can use the new slots straight away.
        """
        self._check_allocated()
        n_old = self.capacity
        n_new = 2 * n_old
        print(f"Reallocating positions from old {n_old} to {n_new}")

        positions = np.zeros((n_new, 3), dtype=np.float64)
        positions[:n_old] = self.positions
        self.positions = positions
        self.j_list = np.zeros(n_new, dtype=np.int32)
        self.cell_list.resize(n_new)

    def load_positions(self, positions) -> None:
        """
        Replace the configuration with ``positions`` (box units, shape (m, 3)).

        The cell list is marked stale; call ``build_index`` before evaluating
        energies.
        """
        self._check_allocated()
        positions = np.asarray(positions, dtype=np.float64)
        if positions.ndim != 2 or positions.shape[1] != 3:
            raise ValueError(f"positions must have shape (m, 3), got {positions.shape}")

        m = positions.shape[0]
        while m > self.capacity:
            self.grow()
        self.positions[:m] = positions
        self.n = m
        self._index_built = False

    def build_index(self) -> None:
        """Wrap every live position into the central box and rebuild the cell list."""
        self._check_allocated()
        self._check_bounds()
        wrap_positions(self.positions, self.n)
        self.cell_list.build(self.n, self.positions)
        self._index_built = True

    # ------------------------------------------------------------- neighbours
    def neighbours(
        self, i: int, mode: SearchMode = SearchMode.FULL, ri=None
    ) -> np.ndarray:
        """
        Candidate partner indices of particle i.

        FULL mode is centred on the cell of ``ri`` (defaults to the stored
        position of i), so it also serves trial positions and trial
        insertions. HALF mode is centred on the cell i is filed under.
        """
        self._check_ready()
        nj = self._gather(i, mode, ri)
        return self.j_list[:nj].copy()

    def _gather(self, i: int, mode: SearchMode, ri) -> int:
        cells = self.cell_list
        if mode == SearchMode.HALF:
            ci = cells.cell_coords[i]
        else:
            if ri is None:
                ri = self.positions[i]
            ci = cells.cell_of(wrap_position(np.asarray(ri, dtype=np.float64)))
        return get_neighbours(
            i,
            ci,
            mode == SearchMode.HALF,
            cells.spatial_head,
            cells.spatial_next,
            cells.sc,
            self.j_list,
        )

    # ----------------------------------------------------------------- energy
    def energy_1(
        self,
        ri,
        i: int,
        mode: SearchMode = SearchMode.FULL,
        box: Optional[float] = None,
        r_cut: Optional[float] = None,
    ) -> EnergyResult:
        """
        Energy and virial of position ``ri`` (box units) as particle ``i``.

        ``ri`` need not equal the stored position of i. Results are in LJ
        units; check ``overlap`` before using ``pot`` or ``vir``.
        Overriding ``box`` or ``r_cut`` is allowed only while the cutoff still
        fits inside one cell; otherwise a ValueError is raised.
        """
        self._check_ready()
        box = self.box if box is None else box
        r_cut = self.r_cut if r_cut is None else r_cut
        self._check_cutoff(box, r_cut)

        ri = np.asarray(ri, dtype=np.float64)
        nj = self._gather(i, mode, ri)
        pot, vir, overlap = energy_1_kernel(
            ri, i, self.positions, self.j_list, nj, box, r_cut
        )
        return EnergyResult(pot=float(pot), vir=float(vir), overlap=bool(overlap))

    def energy(
        self, box: Optional[float] = None, r_cut: Optional[float] = None
    ) -> EnergyResult:
        """
        Total potential energy and virial of the system.

        Each pair is counted once via the half-shell sweep. The sweep stops at
        the first overlapping particle and returns an overlapping result.
        """
        self._check_ready()
        total = EnergyResult()

        for i in range(self.n):
            partial = self.energy_1(self.positions[i], i, SearchMode.HALF, box, r_cut)
            if partial.overlap:
                return EnergyResult(overlap=True)
            total = total + partial

        return total

    def energy_lrc(self, n: Optional[int] = None) -> tuple[float, float]:
        """Long-range corrections for ``n`` particles (defaults to the live count)."""
        return energy_lrc(self.n if n is None else n, self.box, self.r_cut)

    # -------------------------------------------------------------- mutations
    def move(self, i: int, ri) -> None:
        """Accept a displacement of particle i to ``ri`` (box units, any image)."""
        self._check_ready()
        self._check_index(i)
        ri = wrap_position(np.asarray(ri, dtype=np.float64))
        self.positions[i] = ri
        self.cell_list.relocate(i, self.cell_list.cell_of(ri))

    def create(self, ri) -> int:
        """Append a particle at ``ri`` (box units, any image). Returns its index."""
        self._check_ready()
        if self.n >= self.capacity:
            raise RuntimeError(
                f"Particle capacity {self.capacity} exceeded; call grow() before create()"
            )
        ri = wrap_position(np.asarray(ri, dtype=np.float64))
        i = self.n
        self.positions[i] = ri
        self.cell_list.insert(i, self.cell_list.cell_of(ri))
        self.n += 1
        return i

    def destroy(self, i: int) -> None:
        """
        Remove particle i.

        The last particle is renumbered to i: its coordinates are copied into
        row i and the cell list entry for i is moved to the last particle's
        cell, then the count shrinks by one.
        """
        self._check_ready()
        self._check_index(i)
        last = self.n - 1
        cells = self.cell_list

        self.positions[i] = self.positions[last]
        c_last = cells.cell_coords[last].copy()
        cells.remove(last, c_last)
        cells.relocate(i, c_last)
        self.n -= 1

    # ----------------------------------------------------------------- checks
    def _check_allocated(self) -> None:
        if not self.allocated:
            raise RuntimeError("System has been deallocated.")

    def _check_bounds(self) -> None:
        if self.n > self.capacity:
            raise RuntimeError(
                f"Array bounds error for positions: {self.n} > {self.capacity}"
            )

    def _check_ready(self) -> None:
        self._check_allocated()
        self._check_bounds()
        if not self._index_built:
            raise RuntimeError("Cell list has not been built. Call build_index() first.")

    def _check_cutoff(self, box: float, r_cut: float) -> None:
        cells = self.cell_list
        cell_side = max(cells.r_cut_box, 1.0 / cells.sc)
        if r_cut / box > cell_side:
            raise ValueError(
                f"r_cut/box {r_cut / box:.5f} exceeds the cell side {cell_side:.5f}; "
                "rebuild the system for this cutoff"
            )

    def _check_index(self, i: int) -> None:
        if not 0 <= i < self.n:
            raise IndexError(f"particle index {i} out of range for {self.n} particles")


def make_system(params: KernelParams | dict | None = None) -> LJMonteCarloSystem:
    """
    Create an empty system from a KernelParams, a plain dict, or defaults.
    """
    if params is None:
        params = KernelParams()
    elif isinstance(params, dict):
        params = KernelParams.from_dict(params)
    return LJMonteCarloSystem(params)


__all__ = ["KernelParams", "LJMonteCarloSystem", "make_system"]
