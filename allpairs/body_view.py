"""
This module implements BodyView, a proxy class providing Body-like access to one record
of the Body Store.

The class uses properties with getters and setters to map attribute access (x, y, z,
vx, vy, vz) directly onto the interleaved float32 record of the parent store, so reads
and writes go straight to the shared buffer without copying. detach returns an
independent Body snapshot. The view assumes the parent store is still allocated and that
the index stays within bounds.
"""

from __future__ import annotations
from typing import TYPE_CHECKING

from .body import Body

if TYPE_CHECKING:
	from .body_store import BodyStore




def _field(col: int, name: str) -> property:
	def getter(self) -> float:
		return float(self._store.records[self._i, col])

	def setter(self, v: float) -> None:
		self._store.records[self._i, col] = float(v)

	return property(getter, setter, doc=f"{name} of the viewed body")


class BodyView:
	__slots__ = ("_store", "_i")

	def __init__(self, store: "BodyStore", idx: int) -> None:
		self._store = store
		self._i = int(idx)

	@property
	def index(self) -> int:
		return self._i

	x = _field(0, "x")
	y = _field(1, "y")
	z = _field(2, "z")
	vx = _field(3, "vx")
	vy = _field(4, "vy")
	vz = _field(5, "vz")

	def detach(self) -> Body:
		return Body(*(float(v) for v in self._store.records[self._i]))

	def __repr__(self) -> str:
		return (f"BodyView({self._i}: x={self.x}, y={self.y}, z={self.z}, "
				f"vx={self.vx}, vy={self.vy}, vz={self.vz})")
