"""
Tests for the link-cell list.
"""

import numpy as np
import pytest

from ljmc_sim.link_list import CellList, cell_index


def _all_members(cells: CellList) -> list:
    members = []
    sc = cells.sc
    for cx in range(sc):
        for cy in range(sc):
            for cz in range(sc):
                members.extend(cells.members((cx, cy, cz)))
    return members


def test_cells_per_side():
    """Cells are at least as wide as the cutoff."""
    cells = CellList(capacity=10, r_cut_box=0.25)
    assert cells.sc == 4
    assert cells.spatial_head.shape == (4, 4, 4)
    assert cells.capacity == 10

    cells = CellList(capacity=10, r_cut_box=0.3)
    assert cells.sc == 3


def test_too_few_cells_rejected():
    """Fewer than three cells per side cannot give a non-overlapping stencil."""
    with pytest.raises(ValueError, match="too small"):
        CellList(capacity=10, r_cut_box=0.4)


def test_cell_index_clamps_roundoff():
    """Positions on the box faces map to the first and last cells."""
    sc = 4
    ci = cell_index(np.array([-0.5, 0.0, 0.49]), sc)
    assert list(ci) == [0, 2, 3]

    ci = cell_index(np.array([0.5, -0.5000001, 0.2499]), sc)
    assert list(ci) == [3, 0, 2]


def test_insert_is_lifo():
    """New particles are pushed at the head of their chain."""
    cells = CellList(capacity=8, r_cut_box=0.25)
    for idx in (0, 1, 2, 3):
        cells.insert(idx, (1, 1, 1))

    assert cells.spatial_head[1, 1, 1] == 3
    assert cells.members((1, 1, 1)) == [3, 2, 1, 0]
    assert list(cells.cell_coords[2]) == [1, 1, 1]


def test_remove_from_head_middle_and_tail():
    """Unlinking keeps the rest of the chain in order."""
    cells = CellList(capacity=8, r_cut_box=0.25)
    for idx in range(5):
        cells.insert(idx, (0, 2, 3))

    cells.remove(4, (0, 2, 3))  # head
    assert cells.members((0, 2, 3)) == [3, 2, 1, 0]
    cells.remove(2, (0, 2, 3))  # middle
    assert cells.members((0, 2, 3)) == [3, 1, 0]
    cells.remove(0, (0, 2, 3))  # tail
    assert cells.members((0, 2, 3)) == [3, 1]


def test_remove_missing_particle_raises():
    cells = CellList(capacity=8, r_cut_box=0.25)
    cells.insert(0, (0, 0, 0))
    cells.insert(1, (1, 0, 0))

    with pytest.raises(RuntimeError, match="Could not find particle 1"):
        cells.remove(1, (0, 0, 0))
    assert cells.members((0, 0, 0)) == [0]
    assert cells.members((1, 0, 0)) == [1]


def test_relocate():
    """Relocation moves the particle between chains and is a no-op within a cell."""
    cells = CellList(capacity=8, r_cut_box=0.25)
    cells.insert(0, (0, 0, 0))
    cells.insert(1, (0, 0, 0))

    cells.relocate(0, (2, 3, 1))
    assert cells.members((0, 0, 0)) == [1]
    assert cells.members((2, 3, 1)) == [0]
    assert list(cells.cell_coords[0]) == [2, 3, 1]

    cells.relocate(1, (0, 0, 0))
    assert cells.members((0, 0, 0)) == [1]


def test_build_files_every_particle_once():
    """After a build the chains partition exactly {0..n-1}."""
    np.random.seed(7)
    n = 200
    positions = np.random.random((n, 3)) - 0.5
    cells = CellList(capacity=300, r_cut_box=0.2)
    cells.build(n, positions)

    members = _all_members(cells)
    assert sorted(members) == list(range(n))

    for i in range(n):
        expected = cell_index(positions[i], cells.sc)
        assert list(cells.cell_coords[i]) == list(expected)
        assert i in cells.members(expected)


def test_build_replaces_previous_chains():
    np.random.seed(3)
    positions = np.random.random((50, 3)) - 0.5
    cells = CellList(capacity=50, r_cut_box=0.25)
    cells.build(50, positions)
    cells.build(20, positions)

    assert sorted(_all_members(cells)) == list(range(20))


def test_build_beyond_capacity_raises():
    cells = CellList(capacity=4, r_cut_box=0.25)
    with pytest.raises(RuntimeError, match="Array bounds error"):
        cells.build(5, np.zeros((5, 3)))


def test_resize_keeps_chains():
    """Growing the per-particle arrays keeps chains and frees new slots."""
    np.random.seed(11)
    n = 16
    positions = np.random.random((n, 3)) - 0.5
    cells = CellList(capacity=n, r_cut_box=0.25)
    cells.build(n, positions)
    before = {i: cells.members(cells.cell_coords[i]) for i in range(n)}

    cells.resize(2 * n)
    assert cells.capacity == 2 * n
    for i in range(n):
        assert cells.members(cells.cell_coords[i]) == before[i]

    cells.insert(n + 3, (0, 0, 0))
    assert cells.spatial_head[0, 0, 0] == n + 3

    with pytest.raises(ValueError):
        cells.resize(n)


def test_finalize_releases_arrays():
    cells = CellList(capacity=4, r_cut_box=0.25)
    cells.finalize()
    assert cells.spatial_head is None
    assert cells.spatial_next is None
    assert cells.cell_coords is None
