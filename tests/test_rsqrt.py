import numpy as np
import pytest

from allpairs.rsqrt import get_rsqrt, rsqrt_exact, rsqrt_fast


def _samples():
	return np.logspace(-9, 6, 2001, dtype=np.float64).astype(np.float32)


def test_exact_matches_numpy():
	x = _samples()
	np.testing.assert_allclose(rsqrt_exact(x), 1.0 / np.sqrt(x), rtol=1e-6)


def test_fast_relative_error_one_newton_step():
	x = _samples()
	ref = 1.0 / np.sqrt(x.astype(np.float64))
	rel = np.abs(rsqrt_fast(x).astype(np.float64) - ref) / ref
	assert rel.max() < 2e-3


def test_fast_more_newton_steps_is_tighter():
	x = _samples()
	ref = 1.0 / np.sqrt(x.astype(np.float64))
	rel = np.abs(rsqrt_fast(x, newton_steps=2).astype(np.float64) - ref) / ref
	assert rel.max() < 1e-5


def test_fast_keeps_shape_and_float32():
	x = np.full((4, 5), 4.0, dtype=np.float32)
	y = rsqrt_fast(x)
	assert y.shape == (4, 5)
	assert y.dtype == np.float32
	np.testing.assert_allclose(y, 0.5, rtol=2e-3)


def test_get_rsqrt_resolves_names():
	assert get_rsqrt("exact") is rsqrt_exact
	assert get_rsqrt("fast") is rsqrt_fast
	with pytest.raises(KeyError):
		get_rsqrt("approximate")
