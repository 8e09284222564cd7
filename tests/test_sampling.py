"""Tests for fwdpop.sampling — fitness-weighted DiscreteSampler."""

import numpy as np
import pytest
from scipy import stats

from fwdpop.sampling import DiscreteSampler, ExtinctionError


class TestConstruction:
    def test_rejects_negative(self):
        with pytest.raises(ValueError, match=">= 0"):
            DiscreteSampler([1.0, -0.1, 2.0])

    def test_rejects_non_finite(self):
        with pytest.raises(ValueError, match="finite"):
            DiscreteSampler([1.0, np.nan])
        with pytest.raises(ValueError, match="finite"):
            DiscreteSampler([np.inf, 1.0])

    def test_rejects_empty(self):
        with pytest.raises(ValueError):
            DiscreteSampler([])

    def test_rejects_2d(self):
        with pytest.raises(ValueError):
            DiscreteSampler(np.ones((2, 2)))

    def test_copies_weights(self):
        w = np.array([1.0, 2.0])
        sampler = DiscreteSampler(w)
        w[0] = 100.0
        assert sampler.weights[0] == 1.0

    def test_probabilities_normalized(self):
        sampler = DiscreteSampler([1.0, 3.0, 0.0])
        np.testing.assert_allclose(sampler.probabilities, [0.25, 0.75, 0.0])
        assert sampler.total == pytest.approx(4.0)
        assert len(sampler) == 3

    def test_uniform(self):
        sampler = DiscreteSampler.uniform(4, offset=2)
        np.testing.assert_allclose(sampler.probabilities, 0.25)
        assert sampler.offset == 2


class TestDraws:
    def test_zero_weight_never_drawn(self):
        rng = np.random.default_rng(1)
        sampler = DiscreteSampler([1.0, 0.0, 1.0, 0.0])
        draws = sampler.draw_many(rng, 5000)
        assert set(np.unique(draws)) <= {0, 2}

    def test_offset_applied(self):
        rng = np.random.default_rng(2)
        sampler = DiscreteSampler([1.0, 1.0, 1.0], offset=7)
        draws = sampler.draw_many(rng, 300)
        assert draws.min() >= 7 and draws.max() <= 9
        assert 7 <= sampler.draw(rng) <= 9

    def test_single_draw_is_int(self):
        sampler = DiscreteSampler([0.0, 5.0])
        value = sampler.draw(np.random.default_rng(3))
        assert isinstance(value, int)
        assert value == 1

    def test_all_zero_raises_on_draw(self):
        sampler = DiscreteSampler([0.0, 0.0])
        np.testing.assert_array_equal(sampler.probabilities, [0.0, 0.0])
        with pytest.raises(ExtinctionError):
            sampler.draw(np.random.default_rng(0))
        with pytest.raises(ExtinctionError):
            sampler.draw_many(np.random.default_rng(0), 3)

    def test_reproducible(self):
        sampler = DiscreteSampler([0.5, 1.0, 2.0, 4.0])
        d1 = sampler.draw_many(np.random.default_rng(99), 100)
        d2 = sampler.draw_many(np.random.default_rng(99), 100)
        np.testing.assert_array_equal(d1, d2)

    def test_proportional(self):
        rng = np.random.default_rng(4)
        weights = np.array([1.0, 2.0, 3.0, 4.0])
        draws = DiscreteSampler(weights).draw_many(rng, 40000)
        freqs = np.bincount(draws, minlength=4) / 40000
        np.testing.assert_allclose(freqs, weights / weights.sum(), atol=0.015)

    def test_equal_weights_uniform_over_ten(self):
        """Ten equal weights → chi-square consistent with uniform."""
        rng = np.random.default_rng(12345)
        draws = DiscreteSampler(np.ones(10)).draw_many(rng, 20000)
        counts = np.bincount(draws, minlength=10)
        assert counts.size == 10
        _, p_value = stats.chisquare(counts)
        assert p_value > 0.001
        np.testing.assert_allclose(counts / 20000, 0.1, atol=0.01)
