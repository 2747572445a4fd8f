import numpy as np
import pytest

from allpairs.errors import LaunchError
from allpairs.work_grid import WorkGrid, grid_stride


@pytest.mark.parametrize("n", [0, 1, 7, 64, 101])
@pytest.mark.parametrize("gx", [1, 3, 8, 128])
def test_grid_stride_covers_every_index_once(n, gx):
	grid = WorkGrid(gx, 1)
	covered = np.concatenate([grid.targets(u, n) for u in range(gx)])
	assert np.array_equal(np.sort(covered), np.arange(n))


def test_grid_stride_pattern():
	assert grid_stride(2, 5, 20).tolist() == [2, 7, 12, 17]
	assert grid_stride(9, 4, 5).size == 0


def test_units_enumerate_full_grid():
	grid = WorkGrid(3, 2)
	assert list(grid.units()) == [(0, 0), (0, 1), (1, 0), (1, 1), (2, 0), (2, 1)]
	assert grid.size == 6


@pytest.mark.parametrize("shape", [(0, 1), (1, 0), (-2, 1), (2.5, 1), (True, 1)])
def test_check_launch_rejects_bad_dimensions(shape):
	with pytest.raises(LaunchError) as info:
		WorkGrid(*shape).check_launch("force_accumulation")
	assert info.value.phase == "force_accumulation"


def test_check_launch_rejects_too_many_source_columns():
	with pytest.raises(LaunchError):
		WorkGrid(4, 2).check_launch("force_accumulation", max_gy=1)
	WorkGrid(4, 1).check_launch("force_accumulation", max_gy=1)


def test_from_shape():
	assert WorkGrid.from_shape((4,)).shape == (4, 1)
	assert WorkGrid.from_shape([2, 3]).shape == (2, 3)
	with pytest.raises(LaunchError):
		WorkGrid.from_shape((1, 2, 3)).check_launch("force_accumulation")
