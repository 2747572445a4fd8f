from __future__ import annotations
import numpy as np

from .body_store import BodyStore

"""
This module seeds the Body Store before the first iteration. random_body_values fills a flat buffer of 6 * N float32 values with uniform draws in [-1, 1) from a seeded numpy Generator, interleaved per body as x, y, z, vx, vy, vz, and initialize_store loads those values into a store. Using an explicit Generator instead of the global numpy state keeps two runs with the same seed and body count bit-identical. It assumes the store has already been allocated with the intended body count.


"""


def random_body_values(n_bodies: int, seed: int | None = 42) -> np.ndarray:
	rng = np.random.default_rng(seed)
	values = rng.random(6 * int(n_bodies), dtype=np.float32)
	return np.float32(2.0) * values - np.float32(1.0)


def initialize_store(store: BodyStore, seed: int | None = 42) -> np.ndarray:
	values = random_body_values(store.n_bodies, seed)
	store.load(values)
	return values
