"""
This module describes how a phase's index space is cut into independent work units.

WorkGrid holds a two-dimensional grid shape: gx units along the target (i) axis and gy
units along the source (j) axis. Each unit processes a grid-stride subset of indices
(start, start + stride, start + 2 * stride, ...) along each axis, so any grid shape
covers any N exactly once, including grids larger than N (surplus units receive empty
stripes). check_launch rejects malformed shapes with a LaunchError before anything is
issued, which is how an invalid launch configuration surfaces to the orchestrator.
"""

from __future__ import annotations
from typing import Iterator, Tuple
import numpy as np

from .errors import LaunchError


MAX_UNITS_PER_AXIS = 1 << 16


def grid_stride(start: int, stride: int, n: int) -> np.ndarray:
	return np.arange(int(start), int(n), int(stride), dtype=np.int64)


class WorkGrid:
	__slots__ = ("gx", "gy")

	def __init__(self, gx: int, gy: int = 1) -> None:
		self.gx = gx
		self.gy = gy

	@classmethod
	def from_shape(cls, shape) -> "WorkGrid":
		if isinstance(shape, WorkGrid):
			return shape
		dims = tuple(shape)
		if len(dims) == 1:
			return cls(dims[0], 1)
		if len(dims) != 2:
			return cls(0, 0)
		return cls(dims[0], dims[1])

	@property
	def shape(self) -> Tuple[int, int]:
		return (self.gx, self.gy)

	@property
	def size(self) -> int:
		return self.gx * self.gy

	def check_launch(self, phase: str, max_gy: int | None = None) -> None:
		for axis, dim in (("x", self.gx), ("y", self.gy)):
			if isinstance(dim, bool) or not isinstance(dim, (int, np.integer)):
				raise LaunchError(phase, f"grid {axis}-dimension must be an integer; got {dim!r}")
			if dim < 1:
				raise LaunchError(phase, f"grid {axis}-dimension must be at least 1; got {dim}")
			if dim > MAX_UNITS_PER_AXIS:
				raise LaunchError(
					phase, f"grid {axis}-dimension {dim} exceeds limit {MAX_UNITS_PER_AXIS}"
				)
		if max_gy is not None and self.gy > max_gy:
			raise LaunchError(
				phase, f"grid {self.shape} has {self.gy} source columns; at most {max_gy} allowed"
			)

	def targets(self, u: int, n: int) -> np.ndarray:
		return grid_stride(u, self.gx, n)

	def sources(self, w: int, n: int) -> np.ndarray:
		return grid_stride(w, self.gy, n)

	def units(self) -> Iterator[Tuple[int, int]]:
		for u in range(self.gx):
			for w in range(self.gy):
				yield u, w

	def __repr__(self) -> str:
		return f"WorkGrid(gx={self.gx}, gy={self.gy})"
