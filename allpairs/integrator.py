"""
This module implements the Position Integrator, the O(N) phase of a simulation step.

PositionIntegrator.launch issues the explicit forward-Euler drift pos_i += v_i * dt for
every body, using the velocities finalized by the force phase of the same step. Work is
split over a one-dimensional grid of gx units, each owning a grid-stride stripe of bodies,
so no two units ever touch the same record and no reduction or locking is needed.
Velocities are only read. Non-host residencies provide their own launch_drift and are
delegated to.
"""

from __future__ import annotations
import numpy as np

from .body_store import HostResidency
from .constants import INTEGRATION_PHASE
from .kernels import drift
from .work_grid import WorkGrid
from .worker_pool import PhaseHandle, WorkerPool




class PositionIntegrator:
	def __init__(self, pool: WorkerPool, units: int = 8) -> None:
		self.pool = pool
		self.grid = WorkGrid(units, 1)

	def launch(self, resident, dt: float) -> PhaseHandle:
		self.grid.check_launch(INTEGRATION_PHASE, max_gy=1)

		if not isinstance(resident, HostResidency):
			return resident.launch_drift(self, dt)

		pos, vel = resident.pos, resident.vel
		n = pos.shape[0]
		grid = self.grid

		def unit(u: int) -> int:
			targets = grid.targets(u, n)
			drift(pos, vel, targets, dt)
			return 0

		return self.pool.launch(INTEGRATION_PHASE, unit, [(u,) for u in range(grid.gx)])

	def __repr__(self) -> str:
		return f"PositionIntegrator(units={self.grid.gx})"


def euler_drift(pos: np.ndarray, vel: np.ndarray, dt: float) -> np.ndarray:
	return pos + vel * pos.dtype.type(dt)
