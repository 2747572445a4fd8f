"""
This module runs the work units of a phase in parallel and provides the phase barrier.

WorkerPool wraps a concurrent.futures.ThreadPoolExecutor. launch submits one task per
work unit and returns a PhaseHandle without waiting; barrier blocks until every unit of
the handle has finished, collects unit failures into a single ExecutionError naming the
phase, adds up the pair counts returned by the units, and then runs the handle's finalize step (used for reductions that must only
happen after every unit has completed). Work units within a phase never wait on each
other; the barrier is the only blocking point. The numpy kernels release the GIL inside
their vectorized loops, so units overlap in practice. A pool with no executor (shut
down) rejects launches with a LaunchError.
"""

from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor, Future, wait
from typing import Callable, Iterable, List, Tuple

from .errors import ExecutionError, LaunchError




class PhaseHandle:
	__slots__ = ("phase", "futures", "finalize", "pairs", "completed")

	def __init__(
		self,
		phase: str,
		futures: List[Future] | None = None,
		finalize: Callable[[], None] | None = None,
		pairs: int = 0,
	) -> None:
		self.phase = phase
		self.futures = list(futures or [])
		self.finalize = finalize
		self.pairs = int(pairs)
		self.completed = False


class WorkerPool:
	def __init__(self, workers: int = 8, name: str = "allpairs") -> None:
		self.workers = int(workers)
		self._executor: ThreadPoolExecutor | None = ThreadPoolExecutor(
			max_workers=max(1, self.workers), thread_name_prefix=name
		)

	def launch(
		self,
		phase: str,
		unit_fn: Callable[..., None],
		units: Iterable[Tuple],
		finalize: Callable[[], None] | None = None,
		pairs: int = 0,
	) -> PhaseHandle:
		if self._executor is None:
			raise LaunchError(phase, "worker pool has been shut down")
		futures = []
		try:
			for args in units:
				futures.append(self._executor.submit(unit_fn, *args))
		except RuntimeError as exc:
			for fut in futures:
				fut.cancel()
			wait(futures)
			raise LaunchError(phase, f"could not submit work unit: {exc}", exc) from exc
		return PhaseHandle(phase, futures, finalize, pairs)

	def barrier(self, handle: PhaseHandle) -> PhaseHandle:
		if handle.completed:
			return handle
		wait(handle.futures)

		failures = []
		pairs = 0
		for fut in handle.futures:
			if fut.cancelled():
				failures.append(RuntimeError("work unit cancelled"))
				continue
			exc = fut.exception()
			if exc is not None:
				failures.append(exc)
				continue
			result = fut.result()
			if result:
				pairs += int(result)
		if failures:
			first = failures[0]
			reason = f"{len(failures)} of {len(handle.futures)} work units failed; first: {type(first).__name__}: {first}"
			raise ExecutionError(handle.phase, reason, first)
		handle.pairs += pairs

		if handle.finalize is not None:
			try:
				handle.finalize()
			except ExecutionError:
				raise
			except Exception as exc:
				raise ExecutionError(
					handle.phase, f"finalize failed: {type(exc).__name__}: {exc}", exc
				) from exc
		handle.completed = True
		return handle

	def shutdown(self) -> None:
		if self._executor is not None:
			self._executor.shutdown(wait=True)
			self._executor = None

	def __enter__(self) -> "WorkerPool":
		return self

	def __exit__(self, *exc) -> None:
		self.shutdown()
