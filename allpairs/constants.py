from __future__ import annotations

import math
import os
from typing import Final

"""
This module defines the fixed numerical constants of a brute-force run. It includes the default time step, the iteration count, the softening offset added to squared distances, and the default body-count exponent, each with an environment variable override (ALLPAIRS_DT, ALLPAIRS_ITERS, ALLPAIRS_SOFTENING, ALLPAIRS_LOG2_BODIES). It also fixes the interleaved record layout of the Body Store. The module assumes every component reads its defaults from here rather than hard-coding them.


"""


def _parse_positive(name: str, default: float) -> float:
	env_val = os.getenv(name, "")
	if env_val.strip() != "":
		try:
			val = float(env_val)
		except ValueError:
			val = 0.0
		if val > 0.0 and math.isfinite(val):
			return val
		print(f"[warning] ignoring {name}={env_val!r}; using {default}")
	return default


DEFAULT_DT: Final[float] = _parse_positive("ALLPAIRS_DT", 0.01)
DEFAULT_ITERS: Final[int] = int(_parse_positive("ALLPAIRS_ITERS", 10))
SOFTENING: Final[float] = _parse_positive("ALLPAIRS_SOFTENING", 1e-9)
DEFAULT_LOG2_BODIES: Final[int] = int(_parse_positive("ALLPAIRS_LOG2_BODIES", 12))
DEFAULT_SEED: Final[int] = 42

# x, y, z, vx, vy, vz per body
FIELDS_PER_BODY: Final[int] = 6
POSITION_SLICE: Final[slice] = slice(0, 3)
VELOCITY_SLICE: Final[slice] = slice(3, 6)

FORCE_PHASE: Final[str] = "force_accumulation"
INTEGRATION_PHASE: Final[str] = "position_integration"


__all__ = [
	"DEFAULT_DT",
	"DEFAULT_ITERS",
	"SOFTENING",
	"DEFAULT_LOG2_BODIES",
	"DEFAULT_SEED",
	"FIELDS_PER_BODY",
	"POSITION_SLICE",
	"VELOCITY_SLICE",
	"FORCE_PHASE",
	"INTEGRATION_PHASE",
]
