import numpy as np
import pytest

from allpairs.body_store import BodyStore
from allpairs.diagnostics import Diagnostics
from allpairs.errors import AllocationError, LaunchError
from allpairs.orchestrator import StepOrchestrator, StepState, interactions_per_second
from allpairs.sim_config import SimConfig


class FixedTimer:
	def __init__(self, ms):
		self.ms = ms
		self.starts = 0

	def start(self):
		self.starts += 1

	def elapsed_ms(self):
		return self.ms


def _cfg(**kwargs):
	base = dict(n_bodies=48, n_iters=3, workers=4, grid=(4, 1), diag_prints=False)
	base.update(kwargs)
	return SimConfig(**base)


def test_state_machine_alternates_phases():
	with StepOrchestrator(_cfg(n_iters=2)) as orch:
		orch.run()
		step = [
			StepState.FORCES_IN_FLIGHT,
			StepState.FORCES_DONE,
			StepState.INTEGRATION_IN_FLIGHT,
			StepState.STEP_COMPLETE,
		]
		assert orch.history == [StepState.IDLE] + step + step + [StepState.FINISHED]
		assert orch.state is StepState.FINISHED


def test_run_counts_n_squared_pairs_per_iteration():
	with StepOrchestrator(_cfg(strategy="tiled", grid=(3, 2))) as orch:
		result = orch.run()
	assert result.ok
	assert result.iterations_run == 3
	assert result.pairs == [48 * 48] * 3


def test_throughput_from_average_iteration_time():
	timer = FixedTimer(10.0)
	with StepOrchestrator(_cfg(n_iters=4), timer=timer) as orch:
		result = orch.run()
	assert timer.starts == 4
	assert result.avg_iteration_ms == pytest.approx(10.0)
	assert result.throughput == pytest.approx(1e-9 * 48 * 48 / 0.01)


def test_interactions_per_second():
	assert interactions_per_second(4096, 0.5) == pytest.approx(1e-9 * 4096 ** 2 / 0.5)
	assert interactions_per_second(0, 0.5) == 0.0
	assert interactions_per_second(10, 0.0) == 0.0


def test_empty_system_completes_all_iterations():
	with StepOrchestrator(_cfg(n_bodies=0, n_iters=5)) as orch:
		result = orch.run()
	assert result.ok
	assert result.iterations_run == 5
	assert result.pairs == [0] * 5
	assert result.throughput == 0.0


def test_single_body_at_rest_stays_put():
	store = BodyStore(1)
	store.load([0.3, -0.2, 0.1, 0.0, 0.0, 0.0])
	before = store.snapshot()
	with StepOrchestrator(_cfg(n_iters=7), store=store) as orch:
		result = orch.run()
		assert result.ok
		assert np.array_equal(orch.store.buffer, before)


def test_same_seed_is_bit_identical():
	finals = []
	for _ in range(2):
		with StepOrchestrator(_cfg(seed=123)) as orch:
			orch.run()
			finals.append(orch.store.snapshot())
	assert np.array_equal(finals[0], finals[1])


def test_strategies_agree_within_rounding():
	finals = []
	for strategy, grid in (("row", (4, 1)), ("tiled", (2, 3))):
		with StepOrchestrator(_cfg(strategy=strategy, grid=grid, rsqrt="exact")) as orch:
			orch.run()
			finals.append(orch.store.snapshot().astype(np.float64))
	a, b = finals
	assert np.linalg.norm(a - b) / np.linalg.norm(a) < 1e-4


def test_allocation_failure_is_fatal_before_any_iteration():
	with pytest.raises(AllocationError):
		StepOrchestrator(_cfg(n_bodies=-5))


def _failing_launch(resident, dt):
	raise LaunchError("force_accumulation", "invalid grid dimensions")


def test_phase_failure_aborts_by_default(capsys):
	cfg = _cfg(diag_prints=True)
	with StepOrchestrator(cfg) as orch:
		orch.forces.launch = _failing_launch
		result = orch.run()
	assert result.aborted
	assert not result.ok
	assert result.iterations_run == 1
	assert result.failures[0]["phase"] == "force_accumulation"
	assert result.failures[0]["fatal"] is True
	out = capsys.readouterr().out
	assert "[error]" in out
	assert "force_accumulation" in out
	assert "invalid grid dimensions" in out


def test_phase_failure_reported_and_run_continues():
	with StepOrchestrator(_cfg(abort_on_failure=False, n_iters=4)) as orch:
		before = orch.store.snapshot().reshape(-1, 6)
		orch.forces.launch = _failing_launch
		result = orch.run()
		after = orch.store.records
		assert not result.aborted
		assert result.iterations_run == 4
		assert len(result.failures) == 4
		assert all(not f["fatal"] for f in result.failures)
		# integration still ran with the unchanged velocities
		assert np.array_equal(after[:, 3:], before[:, 3:])
		assert not np.array_equal(after[:, :3], before[:, :3])


def test_failure_prints_are_rate_limited(capsys):
	cfg = _cfg(abort_on_failure=False, n_iters=6, diag_prints=True, diag_print_limit=2)
	with StepOrchestrator(cfg) as orch:
		orch.forces.launch = _failing_launch
		result = orch.run()
	assert len(result.failures) == 6
	assert capsys.readouterr().out.count("[error]") == 2


def test_non_finite_state_is_trapped():
	store = BodyStore(4)
	values = np.zeros(24, dtype=np.float32)
	values[0] = np.nan
	values[6:12] = [0.5, 0.5, 0.5, 0.0, 0.0, 0.0]
	store.load(values)
	with StepOrchestrator(_cfg(rsqrt="exact"), store=store) as orch:
		result = orch.run()
	assert result.aborted
	assert result.failures[0]["phase"] == "force_accumulation"
	assert result.failures[0]["kind"] == "ExecutionError"


def test_non_finite_passes_when_trap_disabled():
	store = BodyStore(2)
	store.load([np.nan, 0, 0, 0, 0, 0, 1, 1, 1, 0, 0, 0])
	with StepOrchestrator(_cfg(trap_non_finite=False, rsqrt="exact"), store=store) as orch:
		result = orch.run()
	assert result.ok
	assert result.iterations_run == 3


def test_shared_diagnostics_records_failures():
	diag = Diagnostics()
	with StepOrchestrator(_cfg(diag_prints=False), diagnostics=diag) as orch:
		orch.forces.launch = _failing_launch
		orch.run()
	assert len(diag.failures) == 1


def test_iterations_frame():
	with StepOrchestrator(_cfg(n_iters=2)) as orch:
		frame = orch.run().iterations_frame()
	assert list(frame.columns) == ["iteration", "elapsed_ms", "pairs"]
	assert frame["pairs"].tolist() == [48 * 48, 48 * 48]


def test_end_to_end_4096_bodies():
	cfg = SimConfig(log2_bodies=12, n_iters=10, workers=8, grid=(8, 1), diag_prints=False)
	assert cfg.dt == 0.01
	assert cfg.softening == 1e-9
	with StepOrchestrator(cfg) as orch:
		result = orch.run()
		assert result.ok
		assert result.iterations_run == 10
		assert result.pairs == [4096 * 4096] * 10
		assert result.throughput > 0.0

		records = orch.store.records
		assert np.all(np.isfinite(records))
		assert orch.store.n_bodies == 4096


def test_integration_delta_matches_post_kick_velocity():
	with StepOrchestrator(_cfg(n_bodies=200, n_iters=2)) as orch:
		orch.run()
		pool = orch.pool
		with orch.store.acquire() as resident:
			pool.barrier(orch.forces.launch(resident, orch.cfg.dt))
			kicked = orch.store.snapshot().reshape(-1, 6)
			pool.barrier(orch.integrator.launch(resident, orch.cfg.dt))
		after = orch.store.records
		expected = kicked[:, :3] + kicked[:, 3:] * np.float32(orch.cfg.dt)
		assert np.array_equal(after[:, :3], expected)


def test_abort_warns_about_skipped_iterations(capsys):
	cfg = _cfg(diag_prints=True, n_iters=5)
	with StepOrchestrator(cfg) as orch:
		orch.forces.launch = _failing_launch
		result = orch.run()
	assert result.aborted
	out = capsys.readouterr().out
	assert "[warning] run stopped during iteration 0; 4 of 5 iterations skipped" in out


def test_continue_mode_does_not_warn_about_abort(capsys):
	cfg = _cfg(diag_prints=True, abort_on_failure=False, n_iters=2)
	with StepOrchestrator(cfg) as orch:
		orch.forces.launch = _failing_launch
		orch.run()
	assert "iterations skipped" not in capsys.readouterr().out
