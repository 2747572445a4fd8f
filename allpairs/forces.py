"""
This module implements the Force Accumulator, the O(N^2) phase of a simulation step.

ForceAccumulator.launch issues the force phase for a resident Body Store and returns a
PhaseHandle; the velocity update v_i += dt * a_i is complete once the pool's barrier has
returned for that handle. Two decompositions of the N x N interaction space are
supported. The "row" strategy uses a (gx, 1) grid: each work unit owns a grid-stride
stripe of targets, loops over every source, and writes the velocities of its own targets
only. The "tiled" strategy uses a (gx, gy) grid: unit (u, w) evaluates targets stripe u
against sources stripe w into a private partial buffer for column w, and the barrier's
finalize step combines the gy partial buffers with a pairwise tree reduction before
applying one velocity update per body. Positions are only read during this phase. The
reciprocal square root is resolved once through get_rsqrt so the accumulation code is
independent of the chosen method. Non-host residencies (an accelerator device) provide
their own launch_forces and are delegated to.
"""

from __future__ import annotations
from typing import Callable, List, Union
import numpy as np

from .body_store import HostResidency
from .constants import FORCE_PHASE, SOFTENING
from .kernels import partial_accelerations, pair_count
from .rsqrt import get_rsqrt
from .work_grid import WorkGrid, grid_stride
from .worker_pool import PhaseHandle, WorkerPool




def tree_reduce(parts: List[np.ndarray]) -> np.ndarray | None:
	level = list(parts)
	if not level:
		return None
	while len(level) > 1:
		nxt = []
		k = 0
		while k + 1 < len(level):
			nxt.append(level[k] + level[k + 1])
			k += 2
		if len(level) % 2 == 1:
			nxt.append(level[-1])
		level = nxt
	return level[0]


class ForceAccumulator:
	def __init__(
		self,
		pool: WorkerPool,
		grid=(8, 1),
		strategy: str = "row",
		softening: float = SOFTENING,
		rsqrt: Union[str, Callable[[np.ndarray], np.ndarray]] = "fast",
		tile_size: int = 256,
	) -> None:
		self.pool = pool
		self.grid = WorkGrid.from_shape(grid)
		self.strategy = strategy
		self.softening = float(softening)
		self.rsqrt_name = rsqrt if isinstance(rsqrt, str) else getattr(rsqrt, "__name__", "custom")
		self._rsqrt = get_rsqrt(rsqrt) if isinstance(rsqrt, str) else rsqrt
		self.tile_size = int(tile_size)

	def launch(self, resident, dt: float) -> PhaseHandle:
		if self.strategy == "row":
			self.grid.check_launch(FORCE_PHASE, max_gy=1)
		else:
			self.grid.check_launch(FORCE_PHASE)

		if not isinstance(resident, HostResidency):
			return resident.launch_forces(self, dt)

		if self.strategy == "row":
			return self._launch_rows(resident.pos, resident.vel, dt)
		return self._launch_tiles(resident.pos, resident.vel, dt)

	def _launch_rows(self, pos: np.ndarray, vel: np.ndarray, dt: float) -> PhaseHandle:
		n = pos.shape[0]
		grid = self.grid
		sources = grid_stride(0, 1, n)
		h = vel.dtype.type(dt)

		def unit(u: int) -> int:
			targets = grid.targets(u, n)
			if targets.size == 0:
				return 0
			acc = partial_accelerations(
				pos, targets, sources, self.softening, self._rsqrt, self.tile_size
			)
			vel[targets] += h * acc
			return pair_count(targets, sources)

		units = [(u,) for u in range(grid.gx)]
		return self.pool.launch(FORCE_PHASE, unit, units)

	def _launch_tiles(self, pos: np.ndarray, vel: np.ndarray, dt: float) -> PhaseHandle:
		n = pos.shape[0]
		grid = self.grid
		h = vel.dtype.type(dt)
		partials = np.zeros((grid.gy, n, 3), dtype=vel.dtype)

		def unit(u: int, w: int) -> int:
			targets = grid.targets(u, n)
			sources = grid.sources(w, n)
			if targets.size == 0 or sources.size == 0:
				return 0
			partials[w, targets] = partial_accelerations(
				pos, targets, sources, self.softening, self._rsqrt, self.tile_size
			)
			return pair_count(targets, sources)

		def finalize() -> None:
			acc = tree_reduce([partials[w] for w in range(grid.gy)])
			if acc is not None and n > 0:
				vel[...] += h * acc

		return self.pool.launch(FORCE_PHASE, unit, grid.units(), finalize=finalize)

	def __repr__(self) -> str:
		return (f"ForceAccumulator(strategy={self.strategy!r}, grid={self.grid.shape}, "
				f"rsqrt={self.rsqrt_name!r}, softening={self.softening})")
