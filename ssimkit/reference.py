#!/usr/bin/env python3
"""
Reference SSIM Engine

Gaussian-weighted SSIM following Wang et al. (2004). Local statistics are
computed per window in two passes (weighted mean first, then central moments
around that mean), which keeps variance and covariance accurate for large
sample values where E[x^2] - E[x]^2 would cancel badly.

Only interior pixels whose window lies fully inside the image are emitted;
no padding or clamping is applied to the map.
"""

import numpy as np
from typing import Any, Optional, Tuple

from .formula import SSIMResult, mean_ssim, ssim_from_moments, valid_extent
from .image import prepare_pair
from .kernels import KernelCache, default_kernel_cache
from .options import DEFAULT_SIGMA, DEFAULT_WINDOW_SIZE, OptionsLike, resolve_options

# Upper bound on map pixels per band; each per-band array stays near 2 MB of float64
_BAND_ELEMENTS = 1 << 18

Moments = Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray]


class WindowedStatistics:
    """
    Per-pixel weighted mean, variance and covariance of two images.

    The kernel cell (c, c), c = window_size // 2, sits on the pixel, so the
    window covers rows and columns [p - c, p - c + window_size). Results are
    produced for row bands of the valid region; bands are independent and can
    be computed in any order or on different workers.

    Statistics accumulate one kernel tap at a time over a shifted view of the
    band, so working memory is proportional to the band, not to the band
    times the window area.
    """

    def __init__(self, image1: np.ndarray, image2: np.ndarray, kernel: np.ndarray):
        """
        Args:
            image1: float64 array (height, width)
            image2: float64 array of the same shape
            kernel: Square non-negative weighting kernel
        """
        self.image1 = image1
        self.image2 = image2
        self.kernel = kernel
        self.window_size = kernel.shape[0]
        self.half_size = self.window_size // 2

        height, width = image1.shape
        self.map_width, self.map_height = valid_extent(width, height, self.half_size)
        # Every emitted window is complete, so the weights used always sum to this
        self.weight_sum = float(kernel.sum())

    @property
    def band_rows(self) -> int:
        return max(1, _BAND_ELEMENTS // max(1, self.map_width))

    def _taps(self, start: int, stop: int):
        """Yield (weight, view1, view2) per kernel tap for map rows [start, stop)."""
        map_width = self.map_width
        for ky in range(self.window_size):
            for kx in range(self.window_size):
                yield (self.kernel[ky, kx],
                       self.image1[ky + start:ky + stop, kx:kx + map_width],
                       self.image2[ky + start:ky + stop, kx:kx + map_width])

    def rows(self, start: int, stop: int) -> Moments:
        """
        Compute statistics for map rows [start, stop).

        Returns:
            Tuple (mu1, mu2, sigma1_sq, sigma2_sq, sigma12), each of shape
            (stop - start, map_width)
        """
        start = max(0, start)
        stop = min(self.map_height, stop)
        shape = (max(0, stop - start), self.map_width)
        if stop <= start or self.map_width == 0:
            empty = np.empty(shape, dtype=np.float64)
            return empty, empty.copy(), empty.copy(), empty.copy(), empty.copy()

        weight_sum = self.weight_sum

        # First pass: weighted means
        mu1 = np.zeros(shape, dtype=np.float64)
        mu2 = np.zeros(shape, dtype=np.float64)
        for weight, view1, view2 in self._taps(start, stop):
            mu1 += view1 * weight
            mu2 += view2 * weight
        mu1 /= weight_sum
        mu2 /= weight_sum

        # Second pass: central moments around those means
        sigma1_sq = np.zeros(shape, dtype=np.float64)
        sigma2_sq = np.zeros(shape, dtype=np.float64)
        sigma12 = np.zeros(shape, dtype=np.float64)
        for weight, view1, view2 in self._taps(start, stop):
            d1 = view1 - mu1
            d2 = view2 - mu2
            sigma1_sq += d1 * d1 * weight
            sigma2_sq += d2 * d2 * weight
            sigma12 += d1 * d2 * weight
        sigma1_sq /= weight_sum
        sigma2_sq /= weight_sum
        sigma12 /= weight_sum

        return mu1, mu2, sigma1_sq, sigma2_sq, sigma12

    def iter_bands(self):
        """Yield (start, stop) row ranges covering the valid region."""
        step = self.band_rows
        for start in range(0, self.map_height, step):
            yield start, min(self.map_height, start + step)


class ReferenceSSIM:
    """Gaussian-window SSIM engine."""

    default_window_size = DEFAULT_WINDOW_SIZE
    sigma = DEFAULT_SIGMA

    def __init__(self, kernel_cache: Optional[KernelCache] = None):
        self.kernel_cache = default_kernel_cache if kernel_cache is None else kernel_cache

    def compute(self, image1: Any, image2: Any, options: OptionsLike = None) -> SSIMResult:
        """
        Compute the SSIM map and its mean.

        Args:
            image1: First image (ImageBuffer, 2-D array, or width/height/samples object)
            image2: Second image with the same dimensions
            options: SSIMOptions or dict; window size defaults to 11

        Returns:
            SSIMResult over the valid interior

        Raises:
            DimensionMismatchError: If the images differ in width or height
        """
        buffer1, buffer2 = prepare_pair(image1, image2)
        resolved = resolve_options(options, self.default_window_size)

        kernel = self.kernel_cache.get_kernel(resolved.window_size, self.sigma)
        stats = WindowedStatistics(buffer1.samples, buffer2.samples, kernel)

        ssim_map = np.empty((stats.map_height, stats.map_width), dtype=np.float64)
        for start, stop in stats.iter_bands():
            ssim_map[start:stop] = ssim_from_moments(*stats.rows(start, stop),
                                                     c1=resolved.c1, c2=resolved.c2)

        flat = ssim_map.ravel()
        return SSIMResult(
            mssim=mean_ssim(flat),
            ssim_map=flat,
            map_width=stats.map_width,
            map_height=stats.map_height,
        )


_default_engine = ReferenceSSIM()


def calculate_ssim(image1: Any, image2: Any, options: OptionsLike = None) -> SSIMResult:
    """Gaussian-window SSIM returning the mean and the full map."""
    return _default_engine.compute(image1, image2, options)


def ssim(image1: Any, image2: Any, options: OptionsLike = None) -> float:
    """Gaussian-window mean SSIM."""
    return calculate_ssim(image1, image2, options).mssim
