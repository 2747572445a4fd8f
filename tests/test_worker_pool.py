import threading

import pytest

from allpairs.errors import ExecutionError, LaunchError
from allpairs.worker_pool import WorkerPool


def test_barrier_sums_unit_pair_counts():
	with WorkerPool(4) as pool:
		handle = pool.launch("phase", lambda k: k, [(k,) for k in range(10)])
		pool.barrier(handle)
		assert handle.completed
		assert handle.pairs == 45


def test_finalize_runs_after_every_unit():
	done = []
	lock = threading.Lock()

	def unit(k):
		with lock:
			done.append(k)
		return 0

	seen = {}

	def finalize():
		seen["count"] = len(done)

	with WorkerPool(3) as pool:
		handle = pool.launch("phase", unit, [(k,) for k in range(25)], finalize=finalize)
		pool.barrier(handle)
	assert seen["count"] == 25


def test_unit_failure_becomes_execution_error():
	def unit(k):
		if k == 3:
			raise FloatingPointError("trap")
		return 1

	with WorkerPool(2) as pool:
		handle = pool.launch("force_accumulation", unit, [(k,) for k in range(6)])
		with pytest.raises(ExecutionError) as info:
			pool.barrier(handle)
	assert info.value.phase == "force_accumulation"
	assert isinstance(info.value.cause, FloatingPointError)
	assert "1 of 6" in info.value.reason


def test_finalize_failure_becomes_execution_error():
	def finalize():
		raise ValueError("bad reduction")

	with WorkerPool(2) as pool:
		handle = pool.launch("force_accumulation", lambda: 0, [()], finalize=finalize)
		with pytest.raises(ExecutionError) as info:
			pool.barrier(handle)
	assert "bad reduction" in info.value.reason


def test_launch_after_shutdown_is_rejected():
	pool = WorkerPool(1)
	pool.shutdown()
	with pytest.raises(LaunchError):
		pool.launch("position_integration", lambda: 0, [()])
