"""Tests for Gaussian kernel construction and caching."""
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from ssimkit.kernels import KernelCache, create_gaussian_kernel, default_kernel_cache


class TestCreateGaussianKernel:

    @pytest.mark.parametrize("window_size", [1, 3, 7, 8, 11])
    def test_weights_sum_to_one(self, window_size):
        kernel = create_gaussian_kernel(window_size, 1.5)
        assert kernel.shape == (window_size, window_size)
        assert kernel.sum() == pytest.approx(1.0, abs=1e-12)
        assert np.all(kernel >= 0)

    def test_peak_at_center_and_symmetric(self):
        kernel = create_gaussian_kernel(11, 1.5)
        assert np.unravel_index(np.argmax(kernel), kernel.shape) == (5, 5)
        np.testing.assert_allclose(kernel, kernel.T)
        np.testing.assert_allclose(kernel, kernel[::-1, ::-1])

    def test_matches_separable_gaussian(self):
        coords = np.arange(11) - 5
        g = np.exp(-(coords ** 2) / (2 * 1.5 ** 2))
        g /= g.sum()
        np.testing.assert_allclose(create_gaussian_kernel(11, 1.5), np.outer(g, g), rtol=1e-12)

    def test_even_size_centered_on_floor_half(self):
        kernel = create_gaussian_kernel(8, 1.5)
        assert np.unravel_index(np.argmax(kernel), kernel.shape) == (4, 4)


class TestKernelCache:

    def test_returns_same_object_for_same_key(self):
        cache = KernelCache()
        first = cache.get_kernel(11, 1.5)
        second = cache.get_kernel(11, 1.5)
        assert first is second
        assert len(cache) == 1
        assert (11, 1.5) in cache

    def test_distinct_keys(self):
        cache = KernelCache()
        a = cache.get_kernel(7, 1.5)
        b = cache.get_kernel(7, 2.0)
        c = cache.get_kernel(9, 1.5)
        assert len(cache) == 3
        assert not np.array_equal(a, b)
        assert c.shape == (9, 9)

    def test_kernels_are_read_only(self):
        kernel = KernelCache().get_kernel(5)
        with pytest.raises(ValueError):
            kernel[0, 0] = 1.0

    def test_injected_store_is_used(self):
        store = {}
        cache = KernelCache(store=store)
        kernel = cache.get_kernel(5, 1.5)
        assert store[(5, 1.5)] is kernel

    def test_prepopulated_store_is_not_rebuilt(self):
        sentinel = np.full((3, 3), 1.0 / 9.0)
        cache = KernelCache(store={(3, 1.5): sentinel})
        assert cache.get_kernel(3, 1.5) is sentinel

    def test_concurrent_first_access_publishes_one_kernel(self):
        cache = KernelCache()
        with ThreadPoolExecutor(max_workers=8) as pool:
            kernels = list(pool.map(lambda _: cache.get_kernel(11, 1.5), range(64)))
        assert all(k is kernels[0] for k in kernels)
        assert len(cache) == 1

    def test_default_cache_is_shared(self):
        from ssimkit import default_kernel_cache as exported
        assert exported is default_kernel_cache
