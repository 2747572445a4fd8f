"""
This module provides console diagnostics for simulation runs.

The Diagnostics class prints tagged lines the way the rest of the package does ([error],
[warning], [diag]) and keeps a record of every phase failure it was asked to report.
report_phase_failure prints the iteration, the phase name and the human-readable failure
description; warn and diag print free-form [warning] and [diag] lines through the same
limiter; repeated messages of the same kind are rate limited (the first
diag_print_limit occurrences are printed, then every diag_print_interval-th one with its
occurrence number) so a run that keeps failing does not flood the console. Failures are
always recorded, whether or not they were printed. print_summary writes the end-of-run
report. The class reads its switches from a SimConfig when one is given and falls back
to defaults otherwise.
"""

from __future__ import annotations
from typing import Dict, List, TYPE_CHECKING

from .errors import PhaseError

if TYPE_CHECKING:
	from .sim_config import SimConfig
	from .orchestrator import RunResult




class Diagnostics:

	def __init__(self, cfg: "SimConfig | None" = None) -> None:
		self.cfg = cfg
		self.failures: List[Dict[str, object]] = []
		self._counts: Dict[str, int] = {}

	def _rate_limited_diag_print(self, key: str, msg: str) -> None:
		cfg = self.cfg

		if cfg is None:
			enabled = True
		else:
			enabled = bool(getattr(cfg, "diag_prints", True))
		if not enabled:
			return

		if cfg is None:
			limit = 3
		else:
			limit = int(getattr(cfg, "diag_print_limit", 3))
		if cfg is None:
			interval = 1000
		else:
			interval = int(getattr(cfg, "diag_print_interval", 1000))
		if limit < 0:
			limit = 0
		if interval < 1:
			interval = 1

		c = self._counts.get(key, 0) + 1
		self._counts[key] = c

		if (c <= limit) or (c % interval == 0):
			if c <= limit:
				suffix = ""
			else:
				suffix = f" (occurrence #{c})"
			print(msg + suffix)

	def report_phase_failure(self, iteration: int, error: PhaseError, fatal: bool) -> None:
		kind = type(error).__name__
		self.failures.append({
			"iteration": int(iteration),
			"phase": error.phase,
			"kind": kind,
			"reason": error.reason,
			"fatal": bool(fatal),
		})
		action = "stopping run" if fatal else "continuing"
		self._rate_limited_diag_print(
			f"{error.phase}:{kind}",
			f"[error] iteration {iteration}: phase '{error.phase}' failed ({kind}): {error.reason}; {action}",
		)

	def warn(self, key: str, msg: str) -> None:
		self._rate_limited_diag_print(key, f"[warning] {msg}")

	def diag(self, key: str, msg: str) -> None:
		self._rate_limited_diag_print(key, f"[diag] {msg}")

	def print_summary(self, result: "RunResult") -> None:
		print(f"bodies: {result.n_bodies}, iterations: {result.iterations_run}/{result.n_iters}")
		print(f"average iteration: {result.avg_iteration_ms:.3f} ms")
		print(f"{result.throughput:.3f} Billion Interactions / second")
		if result.failures:
			print(f"[warning] {len(result.failures)} phase failure(s) reported during the run")
