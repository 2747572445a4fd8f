"""
This module implements the per-work-unit numerical kernels for all-pairs gravity.

partial_accelerations computes, for a set of target bodies, the softened acceleration
contributed by a set of source bodies: for every ordered pair it forms the displacement
d = pos_j - pos_i, the softened squared distance r2 = d.d + eps2, and accumulates
d * r2^(-3/2), using Einstein summation over temporary (targets x sources x 3) blocks
whose row count is capped by tile_size to bound memory. The self pair contributes
exactly zero because its displacement is zero, so it is not special-cased. drift applies
the forward-Euler position update to a set of bodies. pair_acceleration gives the
analytic (optionally softened) acceleration of one body due to another in float64, used
to reason about pair symmetry. All kernels assume (N, 3) position and velocity arrays
that may be strided views into the interleaved Body Store.
"""

from __future__ import annotations
from typing import Callable
import numpy as np
from numpy.typing import NDArray

from .rsqrt import rsqrt_exact



def partial_accelerations(
    pos: NDArray[np.floating],
    targets: np.ndarray,
    sources: np.ndarray,
    softening: float,
    rsqrt: Callable[[np.ndarray], np.ndarray] = rsqrt_exact,
    tile_size: int = 256,
) -> NDArray[np.floating]:
    acc = np.zeros((targets.size, 3), dtype=pos.dtype)
    if targets.size == 0 or sources.size == 0:
        return acc

    src = pos[sources]
    eps2 = pos.dtype.type(softening)
    tile = max(1, int(tile_size))

    for start in range(0, targets.size, tile):
        stop = min(start + tile, targets.size)
        dst = pos[targets[start:stop]]
        d = src[None, :, :] - dst[:, None, :]
        r2 = np.einsum("ijk,ijk->ij", d, d) + eps2
        inv_r = np.asarray(rsqrt(r2), dtype=pos.dtype)
        inv_r3 = inv_r * inv_r * inv_r
        acc[start:stop] = np.einsum("ij,ijk->ik", inv_r3, d)
    return acc


def pair_count(targets: np.ndarray, sources: np.ndarray) -> int:
    return int(targets.size) * int(sources.size)


def drift(
    pos: NDArray[np.floating],
    vel: NDArray[np.floating],
    targets: np.ndarray,
    dt: float,
) -> None:
    if targets.size == 0:
        return
    pos[targets] += vel[targets] * pos.dtype.type(dt)


def pair_acceleration(pos_i, pos_j, softening: float = 0.0) -> np.ndarray:
    d = np.asarray(pos_j, dtype=np.float64) - np.asarray(pos_i, dtype=np.float64)
    r2 = float(np.dot(d, d)) + float(softening)
    if r2 == 0.0:
        return np.zeros(3, dtype=np.float64)
    return d * r2 ** -1.5


__all__ = ["partial_accelerations", "pair_count", "drift", "pair_acceleration"]
