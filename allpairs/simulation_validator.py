"""
This module provides the post-run accuracy and performance checks for a simulation.

The SimulationValidator class offers static methods to check that a final Body Store is
well formed (expected size, every field finite), to recompute the same run serially on
a single work unit (reference_run), and to compare a final state with that reference
using a norm-wise relative error (check_accuracy). reference_run works at the dtype and
with the reciprocal square root method it is given, and can split the sources into the
same stripes the tiled strategy reduces over, so a float32 run is checked against a
float32 reference with its own rsqrt method. Under a tiny softening close encounters
amplify rounding differences, so the float64 exact reference is only used for a drift
report. For performance runs it builds score records that pair the measured
throughput with a SHA-256 digest over the body count, the throughput and the
verification salt, verifies such records, and exports or loads them as CSV through
pandas. report_invalid_state prints a diagnostic summary of a rejected state. The
reference run assumes the same initial values, time step, iteration count and softening
as the run being checked.
"""

from __future__ import annotations
import hashlib
import math
from typing import Dict, List, Sequence
import numpy as np
import pandas as pd

from .constants import FIELDS_PER_BODY, POSITION_SLICE, VELOCITY_SLICE
from .forces import tree_reduce
from .integrator import euler_drift
from .kernels import partial_accelerations
from .rsqrt import get_rsqrt
from .work_grid import grid_stride





class SimulationValidator:
	@staticmethod
	def state_is_valid(values, n_bodies: int) -> bool:
		if values is None:
			return False
		arr = np.asarray(values)
		if arr.size != int(n_bodies) * FIELDS_PER_BODY:
			return False
		if not np.all(np.isfinite(arr)):
			return False
		return True

	@staticmethod
	def report_invalid_state(label: str, values=None, n_bodies: int | None = None) -> None:
		print(f"[invalid] {label}")
		if values is None:
			print("values None")
			return
		arr = np.asarray(values, dtype=float).ravel()
		if n_bodies is not None and arr.size != int(n_bodies) * FIELDS_PER_BODY:
			print(f"  expected {int(n_bodies) * FIELDS_PER_BODY} values, got {arr.size}")
		bad = np.flatnonzero(~np.isfinite(arr))
		if bad.size:
			bodies = np.unique(bad // FIELDS_PER_BODY)
			print(f"  {bad.size} non-finite values in {bodies.size} bodies; first body {int(bodies[0])}")

	@staticmethod
	def reference_run(
		initial_values,
		dt: float,
		n_iters: int,
		softening: float,
		tile_size: int = 256,
		rsqrt: str = "exact",
		dtype=np.float64,
		source_stripes: int = 1,
	) -> np.ndarray:
		records = np.asarray(initial_values, dtype=dtype).reshape(-1, FIELDS_PER_BODY).copy()
		pos = records[:, POSITION_SLICE].copy()
		vel = records[:, VELOCITY_SLICE].copy()
		n = pos.shape[0]
		everyone = np.arange(n, dtype=np.int64)
		columns = max(1, int(source_stripes))
		stripes = [grid_stride(w, columns, n) for w in range(columns)]
		inv_sqrt = get_rsqrt(rsqrt)
		h = vel.dtype.type(dt)

		for _ in range(int(n_iters)):
			acc = tree_reduce([
				partial_accelerations(pos, everyone, sources, softening, inv_sqrt, tile_size)
				for sources in stripes
			])
			vel += h * acc
			pos = euler_drift(pos, vel, dt)

		records[:, POSITION_SLICE] = pos
		records[:, VELOCITY_SLICE] = vel
		return records.ravel()

	@staticmethod
	def check_accuracy(final_values, reference_values, tolerance: float = 1e-2) -> Dict[str, float]:
		a = np.asarray(final_values, dtype=np.float64).ravel()
		b = np.asarray(reference_values, dtype=np.float64).ravel()
		if a.shape != b.shape:
			print(f"[error] state size mismatch: {a.size} vs reference {b.size}")
			return {"rel_error": math.inf, "max_abs_error": math.inf, "passed": False}
		if a.size == 0:
			return {"rel_error": 0.0, "max_abs_error": 0.0, "passed": True}

		diff = a - b
		ref_norm = float(np.linalg.norm(b))
		if ref_norm > 0.0:
			rel_error = float(np.linalg.norm(diff)) / ref_norm
		else:
			rel_error = float(np.linalg.norm(diff))
		max_abs = float(np.max(np.abs(diff)))
		passed = bool(np.isfinite(rel_error) and rel_error <= tolerance)
		return {"rel_error": rel_error, "max_abs_error": max_abs, "passed": passed}

	@staticmethod
	def _digest(n_bodies: int, throughput: float, salt: int) -> str:
		payload = f"{int(n_bodies)}:{float(throughput):.6f}:{int(salt)}".encode("utf-8")
		return hashlib.sha256(payload).hexdigest()

	@staticmethod
	def score_record(result, salt: int) -> Dict[str, object]:
		return {
			"n_bodies": int(result.n_bodies),
			"iterations": int(result.iterations_run),
			"avg_iteration_ms": float(result.avg_iteration_ms),
			"throughput": float(result.throughput),
			"ok": bool(result.ok),
			"digest": SimulationValidator._digest(result.n_bodies, result.throughput, salt),
		}

	@staticmethod
	def verify_score(record: Dict[str, object], salt: int) -> bool:
		expected = SimulationValidator._digest(
			int(record["n_bodies"]), float(record["throughput"]), salt
		)
		return expected == record.get("digest")

	@staticmethod
	def write_scores(records: Sequence[Dict[str, object]], path: str) -> pd.DataFrame:
		df = pd.DataFrame(list(records))
		if df.empty:
			print("[error] No score records to save.")
			return df
		df.to_csv(path, index=False)
		print(f"Saved {len(df)} score records to {path}")
		return df

	@staticmethod
	def load_scores(path: str) -> List[Dict[str, object]]:
		df = pd.read_csv(path)
		return df.to_dict(orient="records")
