"""
This module sequences the two phases of every simulation step and times the run.

StepOrchestrator owns the Body Store for the lifetime of a run (allocating and seeding it
from the SimConfig unless one is handed in), the worker pool, the Force Accumulator and
the Position Integrator. run acquires the store on the configured device once, then for
each of n_iters iterations starts the timer, issues the force phase and waits on its
barrier, issues the integration phase and waits on its barrier, and records the elapsed
time and the number of pair interactions evaluated. The two phases never overlap: each
launch happens only after the previous barrier returned, and the state machine
(StepState) records every transition. A phase failure is reported through Diagnostics
with the phase name; with abort_on_failure the run stops at the first one, otherwise it
is reported and the loop continues. With trap_non_finite a non-finite velocity or
position after a phase counts as an execution failure of that phase. Allocation failures
are raised before the first iteration. RunResult holds the per-iteration timings and
derives the average iteration time and the throughput in billions of interactions per
second, 1e-9 * N^2 / average seconds.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List
import numpy as np
import pandas as pd

from .body_store import BodyStore
from .constants import FORCE_PHASE, INTEGRATION_PHASE
from .diagnostics import Diagnostics
from .errors import ExecutionError, PhaseError
from .forces import ForceAccumulator
from .initializer import initialize_store
from .integrator import PositionIntegrator
from .sim_config import SimConfig
from .timer import Timer
from .work_grid import WorkGrid
from .worker_pool import WorkerPool




class StepState(Enum):
	IDLE = "idle"
	FORCES_IN_FLIGHT = "forces_in_flight"
	FORCES_DONE = "forces_done"
	INTEGRATION_IN_FLIGHT = "integration_in_flight"
	STEP_COMPLETE = "step_complete"
	FINISHED = "finished"


def interactions_per_second(n_bodies: int, avg_seconds: float) -> float:
	if n_bodies <= 0 or not avg_seconds > 0.0:
		return 0.0
	return 1e-9 * float(n_bodies) * float(n_bodies) / float(avg_seconds)


@dataclass
class RunResult:
	n_bodies: int
	n_iters: int
	iterations_run: int = 0
	iteration_ms: List[float] = field(default_factory=list)
	pairs: List[int] = field(default_factory=list)
	failures: List[Dict[str, object]] = field(default_factory=list)
	aborted: bool = False

	@property
	def total_ms(self) -> float:
		return float(sum(self.iteration_ms))

	@property
	def avg_iteration_ms(self) -> float:
		if not self.iteration_ms:
			return 0.0
		return self.total_ms / len(self.iteration_ms)

	@property
	def throughput(self) -> float:
		return interactions_per_second(self.n_bodies, self.avg_iteration_ms * 1e-3)

	@property
	def ok(self) -> bool:
		return not self.failures and not self.aborted

	def iterations_frame(self) -> pd.DataFrame:
		return pd.DataFrame({
			"iteration": np.arange(len(self.iteration_ms), dtype=np.int64),
			"elapsed_ms": np.asarray(self.iteration_ms, dtype=float),
			"pairs": np.asarray(self.pairs, dtype=np.int64),
		})


class StepOrchestrator:
	def __init__(
		self,
		cfg: SimConfig | None = None,
		store: BodyStore | None = None,
		pool: WorkerPool | None = None,
		diagnostics: Diagnostics | None = None,
		timer: Timer | None = None,
	) -> None:
		self.cfg = cfg if cfg is not None else SimConfig()
		cfg = self.cfg

		if store is None:
			store = BodyStore(cfg.body_count)
			initialize_store(store, cfg.seed)
		self.store = store

		self._owns_pool = pool is None
		self.pool = pool if pool is not None else WorkerPool(cfg.workers)
		self.diagnostics = diagnostics if diagnostics is not None else Diagnostics(cfg)
		self.timer = timer if timer is not None else Timer()

		self.forces = ForceAccumulator(
			self.pool,
			grid=cfg.grid,
			strategy=cfg.strategy,
			softening=cfg.softening,
			rsqrt=cfg.rsqrt,
			tile_size=cfg.tile_size,
		)
		self.integrator = PositionIntegrator(self.pool, units=WorkGrid.from_shape(cfg.grid).gx)

		self.device = None
		if cfg.backend == "torch":
			from .torch_backend import TorchDevice
			self.device = TorchDevice(cfg.device)

		self.state = StepState.IDLE
		self.history: List[StepState] = [StepState.IDLE]

	def _enter(self, state: StepState) -> None:
		self.state = state
		self.history.append(state)

	def _run_phase(
		self,
		iteration: int,
		kernel,
		resident,
		phase: str,
		is_finite: Callable[[], bool],
	) -> int:
		try:
			handle = kernel.launch(resident, self.cfg.dt)
			self.pool.barrier(handle)
			if self.cfg.trap_non_finite and not is_finite():
				raise ExecutionError(phase, "non-finite body state after phase")
		except PhaseError as exc:
			fatal = bool(self.cfg.abort_on_failure)
			self.diagnostics.report_phase_failure(iteration, exc, fatal)
			if fatal:
				raise
			return 0
		return handle.pairs

	def step(self, resident, iteration: int = 0) -> int:
		self._enter(StepState.FORCES_IN_FLIGHT)
		pairs = self._run_phase(
			iteration, self.forces, resident, FORCE_PHASE, resident.velocities_finite
		)
		self._enter(StepState.FORCES_DONE)

		self._enter(StepState.INTEGRATION_IN_FLIGHT)
		self._run_phase(
			iteration, self.integrator, resident, INTEGRATION_PHASE, resident.positions_finite
		)
		self._enter(StepState.STEP_COMPLETE)
		return pairs

	def run(self) -> RunResult:
		cfg = self.cfg
		result = RunResult(n_bodies=self.store.n_bodies, n_iters=int(cfg.n_iters))

		with self.store.acquire(self.device) as resident:
			for k in range(int(cfg.n_iters)):
				self.timer.start()
				try:
					pairs = self.step(resident, k)
				except PhaseError:
					result.iterations_run += 1
					result.aborted = True
					skipped = int(cfg.n_iters) - result.iterations_run
					self.diagnostics.warn(
						"aborted",
						f"run stopped during iteration {k}; {skipped} of {int(cfg.n_iters)} iterations skipped",
					)
					break
				result.iteration_ms.append(self.timer.elapsed_ms())
				result.pairs.append(pairs)
				result.iterations_run += 1
			resident.synchronize()

		self._enter(StepState.FINISHED)
		result.failures = list(self.diagnostics.failures)
		return result

	def close(self) -> None:
		if self._owns_pool:
			self.pool.shutdown()
		self.store.release()

	def __enter__(self) -> "StepOrchestrator":
		return self

	def __exit__(self, *exc) -> None:
		self.close()
