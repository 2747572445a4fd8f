"""
This module defines the failure taxonomy of a simulation run.

LaunchError is raised when a phase's work grid is rejected before any work is issued,
ExecutionError when a phase aborts while running (a worker raised, the device faulted, or
a non-finite value was trapped), and AllocationError when the Body Store cannot be sized
or placed. All three derive from SimulationError so callers can catch the family at once.
Launch and execution failures carry the name of the phase they belong to.
"""

from __future__ import annotations


class SimulationError(Exception):
	pass


class PhaseError(SimulationError):
	def __init__(self, phase: str, reason: str, cause: BaseException | None = None) -> None:
		self.phase = phase
		self.reason = reason
		self.cause = cause
		super().__init__(f"{phase}: {reason}")


class LaunchError(PhaseError):
	pass


class ExecutionError(PhaseError):
	pass


class AllocationError(SimulationError):
	pass


__all__ = [
	"SimulationError",
	"PhaseError",
	"LaunchError",
	"ExecutionError",
	"AllocationError",
]
