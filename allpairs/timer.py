"""
Wall-clock timer used by the orchestrator to time one iteration.
"""

from __future__ import annotations
import time


class Timer:
	__slots__ = ("_t0",)

	def __init__(self) -> None:
		self._t0: float | None = None

	def start(self) -> None:
		self._t0 = time.perf_counter()

	def elapsed_ms(self) -> float:
		if self._t0 is None:
			return 0.0
		return (time.perf_counter() - self._t0) * 1000.0
