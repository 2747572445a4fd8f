from __future__ import annotations
from dataclasses import dataclass
import copy

from .constants import (
	DEFAULT_DT,
	DEFAULT_ITERS,
	SOFTENING,
	DEFAULT_LOG2_BODIES,
	DEFAULT_SEED,
)

"""
This central configuration module defines all run parameters through the SimConfig dataclass. Key parameters include the body count (as a power-of-two exponent or an explicit count), the time step, the iteration count, the softening offset, the execution backend, the force decomposition strategy, the reciprocal square root method and the work grid shape. The class validates its choices against the allowed options, reports every problem it finds, and provides a copy method so callers can derive variants of a base configuration. It is the single source of truth for a run; the orchestrator and both kernels read their parameters from it.

"""
_ALLOWED_BACKENDS = {
	"numpy",
	"torch",
}

_ALLOWED_STRATEGIES = {
	"row",
	"tiled",
}

_ALLOWED_RSQRT = {
	"exact",
	"fast",
}


@dataclass
class SimConfig:
	log2_bodies: int = DEFAULT_LOG2_BODIES
	n_bodies: int | None = None
	dt: float = DEFAULT_DT
	n_iters: int = DEFAULT_ITERS
	softening: float = SOFTENING
	seed: int = DEFAULT_SEED
	salt: int = 0
	backend: str = "numpy"
	strategy: str = "row"
	rsqrt: str = "fast"
	grid: tuple = (8, 1)
	workers: int = 8
	tile_size: int = 256
	device: str = "cpu"
	abort_on_failure: bool = True
	trap_non_finite: bool = True
	diag_prints: bool = True
	diag_print_limit: int = 3
	diag_print_interval: int = 1000

	@property
	def body_count(self) -> int:
		if self.n_bodies is not None:
			return int(self.n_bodies)
		return 1 << int(self.log2_bodies)

	def validate(self) -> bool:
		ok = True
		if self.n_bodies is None and not (0 <= int(self.log2_bodies) < 31):
			print(f"[error] log2_bodies must be in [0, 31); got {self.log2_bodies}")
			ok = False
		if self.n_bodies is not None and int(self.n_bodies) < 0:
			print(f"[error] n_bodies must be non-negative; got {self.n_bodies}")
			ok = False
		if not self.dt > 0.0:
			print(f"[error] dt must be positive; got {self.dt}")
			ok = False
		if int(self.n_iters) < 0:
			print(f"[error] n_iters must be non-negative; got {self.n_iters}")
			ok = False
		if not self.softening > 0.0:
			print(f"[error] softening must be positive; got {self.softening}")
			ok = False
		if self.backend not in _ALLOWED_BACKENDS:
			print(f"[error] backend must be one of {sorted(_ALLOWED_BACKENDS)}; got {self.backend!r}")
			ok = False
		if self.strategy not in _ALLOWED_STRATEGIES:
			print(f"[error] strategy must be one of {sorted(_ALLOWED_STRATEGIES)}; got {self.strategy!r}")
			ok = False
		if self.rsqrt not in _ALLOWED_RSQRT:
			print(f"[error] rsqrt must be one of {sorted(_ALLOWED_RSQRT)}; got {self.rsqrt!r}")
			ok = False
		if int(self.workers) < 1:
			print(f"[error] workers must be at least 1; got {self.workers}")
			ok = False
		if int(self.tile_size) < 1:
			print(f"[error] tile_size must be at least 1; got {self.tile_size}")
			ok = False
		return ok

	def copy(self) -> "SimConfig":
		return copy.deepcopy(self)
