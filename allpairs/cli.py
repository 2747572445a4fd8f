"""
This module implements the command-line entry point for a benchmark run. The main function parses the run parameters (body count as a power-of-two exponent or an explicit count, verification salt, backend, force strategy, reciprocal square root method, work grid, worker count), validates the resulting SimConfig, runs the Step Orchestrator, prints the throughput summary, and optionally checks the final state against a serial reference run at the same precision and rsqrt method (with an optional drift report against a float64 exact one), appends a salted score record to a CSV file, and exports per-iteration timings. It returns 0 on success, 1 when the run or a requested check failed, and 2 for an invalid configuration.

"""

from __future__ import annotations
import argparse
from typing import List, Sequence
import pandas as pd

from .constants import DEFAULT_DT, DEFAULT_ITERS, DEFAULT_LOG2_BODIES, DEFAULT_SEED, SOFTENING
from .errors import AllocationError
from .orchestrator import StepOrchestrator
from .sim_config import SimConfig
from .simulation_validator import SimulationValidator


def build_parser() -> argparse.ArgumentParser:
	p = argparse.ArgumentParser(
		prog="allpairs",
		description="Brute-force all-pairs gravitational N-body benchmark.",
	)
	p.add_argument("-n", "--log2-bodies", type=int, default=DEFAULT_LOG2_BODIES,
				   help="body count as a power of two exponent (default: %(default)s -> 4096 bodies)")
	p.add_argument("--bodies", type=int, default=None,
				   help="explicit body count; overrides --log2-bodies")
	p.add_argument("--salt", type=int, default=0, help="verification salt for the score record")
	p.add_argument("--iters", type=int, default=DEFAULT_ITERS,
				   help="override the fixed iteration count of the benchmark (default: %(default)s)")
	p.add_argument("--dt", type=float, default=DEFAULT_DT,
				   help="override the fixed time step of the benchmark (default: %(default)s)")
	p.add_argument("--softening", type=float, default=SOFTENING,
				   help="override the fixed softening of the benchmark (default: %(default)s)")
	p.add_argument("--seed", type=int, default=DEFAULT_SEED)
	p.add_argument("--backend", choices=["numpy", "torch"], default="numpy")
	p.add_argument("--device", default="cpu", help="torch device for --backend torch")
	p.add_argument("--strategy", choices=["row", "tiled"], default="row")
	p.add_argument("--rsqrt", choices=["exact", "fast"], default="fast")
	p.add_argument("--grid", type=int, nargs=2, metavar=("GX", "GY"), default=None,
				   help="work grid shape (default: WORKERS x 1)")
	p.add_argument("--workers", type=int, default=8)
	p.add_argument("--tile-size", type=int, default=256)
	p.add_argument("--continue-on-failure", action="store_true",
				   help="report phase failures and keep iterating instead of stopping")
	p.add_argument("--no-trap", action="store_true",
				   help="do not treat non-finite body state as a phase failure")
	p.add_argument("--check", action="store_true",
				   help="compare the final state with a serial reference run at the same precision and rsqrt method")
	p.add_argument("--drift-report", action="store_true",
				   help="with --check, also report the drift from a float64 exact-rsqrt reference")
	p.add_argument("--tolerance", type=float, default=1e-2)
	p.add_argument("--scores", default=None, help="CSV file to append the score record to")
	p.add_argument("--timings", default=None, help="CSV file for per-iteration timings")
	p.add_argument("--quiet", action="store_true", help="suppress [diag], [warning] and [error] run lines")
	return p


def config_from_args(args: argparse.Namespace) -> SimConfig:
	grid = tuple(args.grid) if args.grid is not None else (args.workers, 1)
	return SimConfig(
		log2_bodies=args.log2_bodies,
		n_bodies=args.bodies,
		dt=args.dt,
		n_iters=args.iters,
		softening=args.softening,
		seed=args.seed,
		salt=args.salt,
		backend=args.backend,
		strategy=args.strategy,
		rsqrt=args.rsqrt,
		grid=grid,
		workers=args.workers,
		tile_size=args.tile_size,
		device=args.device,
		abort_on_failure=not args.continue_on_failure,
		trap_non_finite=not args.no_trap,
		diag_prints=not args.quiet,
	)


def _append_scores(record, path: str) -> None:
	records: List[dict] = []
	try:
		records = SimulationValidator.load_scores(path)
	except (FileNotFoundError, pd.errors.EmptyDataError):
		records = []
	records.append(record)
	SimulationValidator.write_scores(records, path)


def main(argv: Sequence[str] | None = None) -> int:
	args = build_parser().parse_args(argv)
	cfg = config_from_args(args)
	if not cfg.validate():
		return 2

	try:
		orch = StepOrchestrator(cfg)
	except AllocationError as exc:
		print(f"[error] allocation failed: {exc}")
		return 1

	ok = True
	with orch:
		initial = orch.store.snapshot()
		try:
			result = orch.run()
		except AllocationError as exc:
			print(f"[error] allocation failed: {exc}")
			return 1
		orch.diagnostics.print_summary(result)
		ok = result.ok

		final = orch.store.snapshot()
		if not SimulationValidator.state_is_valid(final, cfg.body_count):
			SimulationValidator.report_invalid_state("final body state", final, cfg.body_count)
			ok = False

		if args.check:
			reference = SimulationValidator.reference_run(
				initial, cfg.dt, result.iterations_run, cfg.softening, cfg.tile_size,
				rsqrt=cfg.rsqrt,
				dtype=orch.store.dtype,
				source_stripes=orch.forces.grid.gy if cfg.strategy == "tiled" else 1,
			)
			report = SimulationValidator.check_accuracy(final, reference, args.tolerance)
			status = "PASSED" if report["passed"] else "FAILED"
			print(f"accuracy {status}: relative error {report['rel_error']:.3e} "
				  f"(max abs {report['max_abs_error']:.3e}, tolerance {args.tolerance:.1e})")
			ok = ok and bool(report["passed"])

			if args.drift_report:
				exact64 = SimulationValidator.reference_run(
					initial, cfg.dt, result.iterations_run, cfg.softening, cfg.tile_size
				)
				drift = SimulationValidator.check_accuracy(final, exact64, args.tolerance)
				orch.diagnostics.diag(
					"drift",
					f"drift from float64 exact reference: relative error {drift['rel_error']:.3e} "
					f"(max abs {drift['max_abs_error']:.3e})",
				)

		if args.scores:
			_append_scores(SimulationValidator.score_record(result, cfg.salt), args.scores)

		if args.timings:
			result.iterations_frame().to_csv(args.timings, index=False)
			print(f"Saved {result.iterations_run} iteration timings to {args.timings}")

	return 0 if ok else 1
