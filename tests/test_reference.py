"""Tests for the Gaussian-window reference SSIM engine."""
import tracemalloc
from array import array
from types import SimpleNamespace

import numpy as np
import pytest

from ssimkit import (
    DimensionMismatchError,
    ImageBuffer,
    KernelCache,
    ReferenceSSIM,
    SSIMOptions,
    WindowedStatistics,
    calculate_ssim,
    ssim,
)
from ssimkit import reference
from ssimkit.kernels import create_gaussian_kernel


def _brute_force_map(img1, img2, window_size, c1, c2, sigma=1.5):
    kernel = create_gaussian_kernel(window_size, sigma)
    half = window_size // 2
    height, width = img1.shape
    out = []
    for y in range(half, height - half):
        for x in range(half, width - half):
            w1 = img1[y - half:y - half + window_size, x - half:x - half + window_size]
            w2 = img2[y - half:y - half + window_size, x - half:x - half + window_size]
            mu1 = np.sum(w1 * kernel) / kernel.sum()
            mu2 = np.sum(w2 * kernel) / kernel.sum()
            s1 = np.sum(kernel * (w1 - mu1) ** 2) / kernel.sum()
            s2 = np.sum(kernel * (w2 - mu2) ** 2) / kernel.sum()
            s12 = np.sum(kernel * (w1 - mu1) * (w2 - mu2)) / kernel.sum()
            out.append(((2 * mu1 * mu2 + c1) * (2 * s12 + c2))
                       / ((mu1 ** 2 + mu2 ** 2 + c1) * (s1 + s2 + c2)))
    return np.array(out)


class TestCalculateSSIM:

    def test_default_parameters(self, constant_image):
        img = constant_image(32, 32, 128)
        result = calculate_ssim(img, img.copy())
        assert result.mssim == 1.0

    def test_custom_parameters(self, constant_image):
        img1 = constant_image(32, 32, 0.5)
        img2 = constant_image(32, 32, 0.5)
        result = calculate_ssim(img1, img2, {'k1': 0.02, 'k2': 0.04, 'window_size': 7, 'L': 1})
        assert result.mssim == 1.0

    def test_identical_constant_images(self, constant_image):
        result = calculate_ssim(constant_image(64, 64, 128), constant_image(64, 64, 128))
        assert result.mssim == 1.0

    def test_identical_gradient_images(self, gradient_image):
        img = gradient_image(64, 64)
        assert ssim(img, img.copy()) == 1.0

    def test_identical_random_images_any_options(self, rng):
        img = rng.random((40, 40)) * 255
        for options in (None, {'window_size': 5}, {'window_size': 8, 'k1': 0.05}, {'L': 1.0}):
            assert ssim(img, img.copy(), options) == 1.0

    def test_black_versus_white(self, constant_image):
        result = calculate_ssim(constant_image(64, 64, 0), constant_image(64, 64, 255))
        assert -1 < result.mssim < 0.1

    def test_structural_difference(self, gradient_image, constant_image):
        value = ssim(gradient_image(64, 64), constant_image(64, 64, 128))
        assert 0 < value < 1

    def test_sensitive_to_noise(self, constant_image, noise_image):
        value = ssim(constant_image(64, 64, 128), noise_image(64, 64, 128, 10))
        assert 0.8 < value < 1

    def test_map_size(self, constant_image):
        img = constant_image(32, 32, 128)
        result = calculate_ssim(img, img, SSIMOptions(window_size=11))
        assert len(result.ssim_map) == (32 - 10) * (32 - 10) == 484
        assert (result.map_width, result.map_height) == (22, 22)
        assert result.as_image().shape == (22, 22)

    @pytest.mark.parametrize("width,height,window_size", [(40, 25, 11), (20, 30, 8), (9, 9, 3), (16, 16, 1)])
    def test_map_size_rectangular(self, rng, width, height, window_size):
        img1 = rng.random((height, width)) * 255
        img2 = rng.random((height, width)) * 255
        result = calculate_ssim(img1, img2, {'window_size': window_size})
        half = window_size // 2
        assert result.ssim_map.size == (width - 2 * half) * (height - 2 * half)
        assert np.all(np.isfinite(result.ssim_map))

    def test_matches_brute_force(self, rng):
        img1 = rng.random((16, 19)) * 255
        img2 = np.clip(img1 + rng.normal(0, 20, img1.shape), 0, 255)
        c1, c2 = (0.01 * 255) ** 2, (0.03 * 255) ** 2
        for window_size in (5, 8, 11):
            result = calculate_ssim(img1, img2, {'window_size': window_size})
            expected = _brute_force_map(img1, img2, window_size, c1, c2)
            np.testing.assert_allclose(result.ssim_map, expected, rtol=1e-10, atol=1e-12)

    def test_matches_scikit_image_interior(self, rng):
        skimage_metrics = pytest.importorskip("skimage.metrics")
        img1 = rng.random((48, 56)) * 255
        img2 = np.clip(img1 + rng.normal(0, 25, img1.shape), 0, 255)

        expected_mean, expected_map = skimage_metrics.structural_similarity(
            img1, img2,
            data_range=255,
            gaussian_weights=True,
            sigma=1.5,
            use_sample_covariance=False,
            full=True,
        )
        result = calculate_ssim(img1, img2)

        np.testing.assert_allclose(result.as_image(), expected_map[5:-5, 5:-5], atol=1e-8)
        assert result.mssim == pytest.approx(expected_mean, abs=1e-8)

    def test_symmetry(self, rng):
        img1 = rng.random((30, 30)) * 255
        img2 = rng.random((30, 30)) * 255
        assert ssim(img1, img2) == ssim(img2, img1)
        assert ssim(img1, img2, {'window_size': 8}) == ssim(img2, img1, {'window_size': 8})

    def test_monotonic_degradation(self, constant_image, rng):
        base = constant_image(64, 64, 128, dtype=np.float64)
        pattern = rng.random((64, 64)) - 0.5
        scores = [ssim(base, base + amplitude * pattern) for amplitude in (2, 5, 10, 20, 40)]
        assert all(a > b for a, b in zip(scores, scores[1:]))

    def test_mixed_sample_types(self):
        img1 = np.full((32, 32), 128, dtype=np.uint8)
        img2 = np.full((32, 32), 128, dtype=np.float32)
        img3 = np.full((32, 32), 128, dtype=np.int64)
        assert ssim(img1, img2) == 1.0
        assert ssim(img3, img1) == 1.0

    def test_accepts_buffers_and_plain_objects(self):
        samples = [128] * (20 * 16)
        buffer = ImageBuffer(20, 16, samples)
        plain = SimpleNamespace(width=20, height=16, data=array("B", [128] * (20 * 16)))
        mapping = {'width': 20, 'height': 16, 'samples': samples}
        assert ssim(buffer, plain, {'window_size': 5}) == 1.0
        assert ssim(mapping, buffer, {'window_size': 5}) == 1.0

    def test_window_larger_than_image(self, constant_image, loguru_warnings):
        img = constant_image(8, 8, 128)
        result = calculate_ssim(img, img)
        assert result.ssim_map.size == 0
        assert np.isnan(result.mssim)
        assert any("empty" in message for message in loguru_warnings)

    def test_zero_dynamic_range_propagates_nan(self, constant_image, loguru_warnings):
        img = constant_image(16, 16, 10)
        result = calculate_ssim(img, img, {'L': 0, 'window_size': 5})
        assert np.all(np.isnan(result.ssim_map))
        assert any("Stabilization constants are zero" in message for message in loguru_warnings)


class TestDimensionMismatch:

    def test_raises(self, constant_image):
        with pytest.raises(DimensionMismatchError, match="Images must have the same dimensions"):
            calculate_ssim(constant_image(64, 64, 128), constant_image(32, 32, 128))

    def test_raises_on_width_only(self, constant_image):
        with pytest.raises(DimensionMismatchError):
            ssim(constant_image(33, 32, 128), constant_image(32, 32, 128))

    def test_is_value_error(self, constant_image):
        with pytest.raises(ValueError):
            ssim(constant_image(10, 12, 1), constant_image(12, 10, 1))

    def test_raised_before_samples_are_read(self):
        class Unreadable:
            width = 16
            height = 16

            @property
            def samples(self):
                raise AssertionError("samples must not be accessed")

        with pytest.raises(DimensionMismatchError):
            ssim(Unreadable(), np.zeros((8, 16)))


class TestWindowedStatistics:

    def test_bands_concatenate_to_full_region(self, rng):
        img1 = rng.random((30, 25)) * 255
        img2 = rng.random((30, 25)) * 255
        stats = WindowedStatistics(img1, img2, create_gaussian_kernel(7, 1.5))
        full = stats.rows(0, stats.map_height)
        top = stats.rows(0, 10)
        bottom = stats.rows(10, stats.map_height)
        for whole, a, b in zip(full, top, bottom):
            np.testing.assert_allclose(whole, np.vstack([a, b]), rtol=1e-13)

    def test_constant_window_statistics(self):
        img = np.full((12, 12), 42.0)
        stats = WindowedStatistics(img, img, create_gaussian_kernel(5, 1.5))
        mu1, mu2, s1, s2, s12 = stats.rows(0, stats.map_height)
        assert mu1.shape == (8, 8)
        np.testing.assert_allclose(mu1, 42.0, rtol=1e-14)
        np.testing.assert_allclose(s1, 0.0, atol=1e-20)
        np.testing.assert_allclose(s12, 0.0, atol=1e-20)

    def test_iter_bands_cover_region(self, rng):
        img = rng.random((50, 40))
        stats = WindowedStatistics(img, img, create_gaussian_kernel(11, 1.5))
        bands = list(stats.iter_bands())
        assert bands[0][0] == 0
        assert bands[-1][1] == stats.map_height
        assert all(a[1] == b[0] for a, b in zip(bands, bands[1:]))


class TestReferenceEngine:

    def test_uses_injected_kernel_cache(self, constant_image):
        cache = KernelCache()
        engine = ReferenceSSIM(kernel_cache=cache)
        img = constant_image(20, 20, 50)
        engine.compute(img, img, {'window_size': 9})
        assert (9, 1.5) in cache
        assert len(cache) == 1

    def test_wide_image_memory_stays_bounded(self, rng):
        img1 = rng.random((60, 3000)) * 255
        img2 = rng.random((60, 3000)) * 255
        tracemalloc.start()
        try:
            result = calculate_ssim(img1, img2, {'window_size': 41})
            _, peak = tracemalloc.get_traced_memory()
        finally:
            tracemalloc.stop()
        assert result.map_width == 2960
        assert result.map_height == 20
        # Private input copies plus a handful of (20, 2960) band arrays
        assert peak < 24 * 1024 * 1024

    def test_small_bands_match_single_band(self, rng, monkeypatch):
        img1 = rng.random((40, 36)) * 255
        img2 = rng.random((40, 36)) * 255
        expected = calculate_ssim(img1, img2, {'window_size': 9})

        monkeypatch.setattr(reference, "_BAND_ELEMENTS", 50)
        stats = WindowedStatistics(img1, img2, create_gaussian_kernel(9, 1.5))
        assert stats.band_rows == 1
        banded = calculate_ssim(img1, img2, {'window_size': 9})

        np.testing.assert_allclose(banded.ssim_map, expected.ssim_map, rtol=1e-12)
