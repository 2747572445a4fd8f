"""
This initialization file serves as the main entry point for the all-pairs N-body
benchmark package, exposing the public API through a clean namespace.

It re-exports the run configuration (SimConfig), the Body Store and its record types
(BodyStore, Body, BodyView), the two phase kernels (ForceAccumulator,
PositionIntegrator) with their execution plumbing (WorkGrid, WorkerPool, PhaseHandle),
the reciprocal square root methods, the Step Orchestrator and its result type, the
external collaborators (Timer, initializer, SimulationValidator) and the error taxonomy.
The torch backend is imported on demand by the orchestrator and is not re-exported here.
"""

from .sim_config import SimConfig
from .errors import (
    SimulationError,
    PhaseError,
    LaunchError,
    ExecutionError,
    AllocationError,
)

from .body import Body
from .body_view import BodyView
from .body_store import BodyStore, HostResidency
from .rsqrt import rsqrt_exact, rsqrt_fast, get_rsqrt
from .work_grid import WorkGrid, grid_stride
from .worker_pool import WorkerPool, PhaseHandle
from .kernels import partial_accelerations, pair_acceleration, drift
from .forces import ForceAccumulator, tree_reduce
from .integrator import PositionIntegrator

from .timer import Timer
from .initializer import random_body_values, initialize_store
from .diagnostics import Diagnostics
from .orchestrator import StepOrchestrator, StepState, RunResult, interactions_per_second
from .simulation_validator import SimulationValidator




__all__ = [
    "SimConfig",
    "SimulationError",
    "PhaseError",
    "LaunchError",
    "ExecutionError",
    "AllocationError",
    "Body",
    "BodyView",
    "BodyStore",
    "HostResidency",
    "rsqrt_exact",
    "rsqrt_fast",
    "get_rsqrt",
    "WorkGrid",
    "grid_stride",
    "WorkerPool",
    "PhaseHandle",
    "partial_accelerations",
    "pair_acceleration",
    "drift",
    "ForceAccumulator",
    "tree_reduce",
    "PositionIntegrator",
    "Timer",
    "random_body_values",
    "initialize_store",
    "Diagnostics",
    "StepOrchestrator",
    "StepState",
    "RunResult",
    "interactions_per_second",
    "SimulationValidator",
]
