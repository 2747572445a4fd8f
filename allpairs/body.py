"""
This module defines the Body class, a simple data container for one point mass.

The class stores a 3D position (x, y, z) and velocity (vx, vy, vz) as floating-point
attributes and provides a clean string representation for debugging. Mass is uniform
across a run and folded into the force constant, so it is not a field. Body is the
detached, user-facing form of a record; inside a run bodies live only as rows of the
Body Store and are addressed by index.
"""
from typing import Tuple


class Body:
	__slots__ = ("x", "y", "z", "vx", "vy", "vz")

	def __init__(self, x: float, y: float, z: float, vx: float = 0.0, vy: float = 0.0, vz: float = 0.0):
		self.x = float(x)
		self.y = float(y)
		self.z = float(z)
		self.vx = float(vx)
		self.vy = float(vy)
		self.vz = float(vz)

	def as_record(self) -> Tuple[float, float, float, float, float, float]:
		return (self.x, self.y, self.z, self.vx, self.vy, self.vz)

	def __repr__(self) -> str:
		return (f"Body(x={self.x}, y={self.y}, z={self.z}, "
				f"vx={self.vx}, vy={self.vy}, vz={self.vz})")
