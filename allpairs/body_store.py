"""
This module manages the Body Store, the single shared mutable state of a run.

The BodyStore class owns one flat, densely packed float32 buffer of 6 * N values laid
out per body as x, y, z, vx, vy, vz. It exposes (N, 6) records plus strided (N, 3)
position and velocity views over the same memory, index-addressed BodyView proxies, and
load/snapshot helpers for the external initializer and checker. N is fixed at
allocation; the buffer is never resized, only overwritten in place, and release drops it
at shutdown. acquire is the scoped residency hook: on the host it simply yields the
views, while an accelerator device stages the buffer into device memory for the scope and
flushes it back into the host buffer on exit, so host-side reads after the scope always
see the final state. Allocation problems raise AllocationError before any phase runs.
"""

from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator
import numpy as np

from .body_view import BodyView
from .constants import FIELDS_PER_BODY, POSITION_SLICE, VELOCITY_SLICE
from .errors import AllocationError




class HostResidency:
	__slots__ = ("pos", "vel")

	def __init__(self, pos: np.ndarray, vel: np.ndarray) -> None:
		self.pos = pos
		self.vel = vel

	def synchronize(self) -> None:
		return None

	def positions_finite(self) -> bool:
		return bool(np.all(np.isfinite(self.pos)))

	def velocities_finite(self) -> bool:
		return bool(np.all(np.isfinite(self.vel)))


class BodyStore:

	def __init__(
		self,
		n_bodies: int,
		dtype: np.dtype | str = np.float32,
		max_bytes: int | None = None,
	) -> None:
		self.n_bodies: int = 0
		self._buf: np.ndarray | None = None
		self._allocate(n_bodies, np.dtype(dtype), max_bytes)

	def _allocate(self, n_bodies, dtype: np.dtype, max_bytes: int | None) -> None:
		if isinstance(n_bodies, bool) or not isinstance(n_bodies, (int, np.integer)):
			raise AllocationError(f"body count must be an integer; got {n_bodies!r}")
		n = int(n_bodies)
		if n < 0:
			raise AllocationError(f"body count must be non-negative; got {n}")
		n_bytes = n * FIELDS_PER_BODY * dtype.itemsize
		if max_bytes is not None and n_bytes > int(max_bytes):
			raise AllocationError(
				f"Body Store needs {n_bytes} bytes for {n} bodies; limit is {int(max_bytes)}"
			)
		try:
			self._buf = np.zeros(n * FIELDS_PER_BODY, dtype=dtype)
		except (MemoryError, ValueError) as exc:
			raise AllocationError(f"cannot allocate Body Store for {n} bodies: {exc}") from exc
		self.n_bodies = n

	def _live(self) -> np.ndarray:
		if self._buf is None:
			raise AllocationError("Body Store has been released")
		return self._buf

	@property
	def buffer(self) -> np.ndarray:
		return self._live()

	@property
	def dtype(self) -> np.dtype:
		return self._live().dtype

	@property
	def released(self) -> bool:
		return self._buf is None

	@property
	def records(self) -> np.ndarray:
		return self._live().reshape(self.n_bodies, FIELDS_PER_BODY)

	@property
	def positions(self) -> np.ndarray:
		return self.records[:, POSITION_SLICE]

	@property
	def velocities(self) -> np.ndarray:
		return self.records[:, VELOCITY_SLICE]

	def __len__(self) -> int:
		return self.n_bodies

	def __getitem__(self, idx: int) -> BodyView:
		i = int(idx)
		if i < 0:
			i += self.n_bodies
		if not 0 <= i < self.n_bodies:
			raise IndexError(f"body index {idx} out of range for {self.n_bodies} bodies")
		return BodyView(self, i)

	def __iter__(self) -> Iterator[BodyView]:
		for i in range(self.n_bodies):
			yield BodyView(self, i)

	def load(self, values) -> None:
		buf = self._live()
		arr = np.asarray(values, dtype=buf.dtype).ravel()
		if arr.size != buf.size:
			raise ValueError(
				f"expected {buf.size} values ({self.n_bodies} bodies x {FIELDS_PER_BODY}), got {arr.size}"
			)
		buf[...] = arr

	def snapshot(self) -> np.ndarray:
		return self._live().copy()

	def all_finite(self) -> bool:
		return bool(np.all(np.isfinite(self._live())))

	@contextmanager
	def acquire(self, device=None):
		self._live()
		if device is None:
			yield HostResidency(self.positions, self.velocities)
			return
		resident = device.stage(self)
		try:
			yield resident
		finally:
			device.flush(self, resident)

	def release(self) -> None:
		self._buf = None

	def __repr__(self) -> str:
		state = "released" if self._buf is None else str(self._buf.dtype)
		return f"BodyStore(n_bodies={self.n_bodies}, {state})"
