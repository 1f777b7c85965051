#!/usr/bin/env python3
"""
SSIM Library - Gaussian and integral-image SSIM behind one configurable object

This module bundles both SSIM engines with a shared configuration:
1. SSIM: Gaussian-weighted reference SSIM (Wang et al., 2004)
2. Fast SSIM: Box-window SSIM computed from summed-area tables

Stabilization constants follow the usual C1 = (K1 * L)^2, C2 = (K2 * L)^2.
"""

import numpy as np
from typing import Any, Dict, Optional
from loguru import logger

from .fast import FastSSIM
from .formula import SSIMResult
from .image import prepare_pair
from .kernels import KernelCache
from .options import (
    DEFAULT_FAST_WINDOW_SIZE,
    DEFAULT_K1,
    DEFAULT_K2,
    DEFAULT_L,
    DEFAULT_WINDOW_SIZE,
    SSIMOptions,
)
from .reference import ReferenceSSIM


class SSIMLibrary:
    """
    Configurable front end for both SSIM engines.

    - SSIM: Gaussian window (sigma 1.5), default window size 11
    - Fast SSIM: Box window from integral images, default window size 8
    """

    def __init__(self,
                 k1: float = DEFAULT_K1,
                 k2: float = DEFAULT_K2,
                 dynamic_range: float = DEFAULT_L,
                 window_size: Optional[int] = None,
                 fast_window_size: Optional[int] = None,
                 kernel_cache: Optional[KernelCache] = None):
        """
        Initialize the SSIM library.

        Args:
            k1: Luminance stabilization factor (default: 0.01)
            k2: Contrast stabilization factor (default: 0.03)
            dynamic_range: Maximum sample value L (default: 255)
            window_size: Gaussian window size (default: 11)
            fast_window_size: Box window size for the fast engine (default: 8)
            kernel_cache: Kernel store to use instead of the process-wide cache
        """
        self.k1 = k1
        self.k2 = k2
        self.dynamic_range = dynamic_range
        self.window_size = DEFAULT_WINDOW_SIZE if window_size is None else window_size
        self.fast_window_size = DEFAULT_FAST_WINDOW_SIZE if fast_window_size is None else fast_window_size

        self._reference = ReferenceSSIM(kernel_cache=kernel_cache)
        self._fast = FastSSIM()

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'SSIMLibrary':
        """
        Build a library from a configuration dictionary.

        Recognized keys: k1, k2, dynamic_range, window_size, fast_window_size.
        Missing keys use the defaults.
        """
        return cls(
            k1=config.get('k1', DEFAULT_K1),
            k2=config.get('k2', DEFAULT_K2),
            dynamic_range=config.get('dynamic_range', DEFAULT_L),
            window_size=config.get('window_size'),
            fast_window_size=config.get('fast_window_size'),
        )

    def _options(self, window_size: int) -> SSIMOptions:
        return SSIMOptions(k1=self.k1, k2=self.k2, window_size=window_size, L=self.dynamic_range)

    def calculate_ssim_map(self, original: Any, reconstructed: Any) -> SSIMResult:
        """
        Calculate Gaussian-window SSIM with the full similarity map.

        Args:
            original: Original image
            reconstructed: Reconstructed image

        Returns:
            SSIMResult with mean and row-major map
        """
        return self._reference.compute(original, reconstructed, self._options(self.window_size))

    def calculate_ssim_fast_map(self, original: Any, reconstructed: Any) -> SSIMResult:
        """
        Calculate box-window SSIM with the full similarity map.

        Args:
            original: Original image
            reconstructed: Reconstructed image

        Returns:
            SSIMResult with mean and row-major map
        """
        return self._fast.compute(original, reconstructed, self._options(self.fast_window_size))

    def calculate_ssim(self, original: Any, reconstructed: Any) -> float:
        """Calculate Gaussian-window mean SSIM."""
        return self.calculate_ssim_map(original, reconstructed).mssim

    def calculate_ssim_fast(self, original: Any, reconstructed: Any) -> float:
        """Calculate box-window mean SSIM."""
        return self.calculate_ssim_fast_map(original, reconstructed).mssim

    def calculate_all_metrics(self, original: Any, reconstructed: Any) -> Dict[str, float]:
        """
        Calculate both SSIM variants for comparison.

        Args:
            original: Original image
            reconstructed: Reconstructed image

        Returns:
            Dictionary with 'ssim', 'ssim_fast' and their 'abs_difference'

        Raises:
            DimensionMismatchError: If the images differ in width or height
        """
        # Normalize once so both engines reuse the same buffers
        original, reconstructed = prepare_pair(original, reconstructed)

        results = {}

        # Gaussian SSIM
        results['ssim'] = self.calculate_ssim(original, reconstructed)

        # Integral-image SSIM
        results['ssim_fast'] = self.calculate_ssim_fast(original, reconstructed)

        results['abs_difference'] = float(abs(results['ssim'] - results['ssim_fast']))
        if np.isnan(results['abs_difference']):
            logger.warning("SSIM comparison produced NaN; check window sizes against image dimensions")

        return results


# Convenience functions for direct usage
def calculate_ssim_score(original: Any, reconstructed: Any,
                         k1: float = DEFAULT_K1, k2: float = DEFAULT_K2,
                         dynamic_range: float = DEFAULT_L, window_size: Optional[int] = None) -> float:
    """Convenience function to calculate Gaussian-window SSIM."""
    ssim_lib = SSIMLibrary(k1=k1, k2=k2, dynamic_range=dynamic_range, window_size=window_size)
    return ssim_lib.calculate_ssim(original, reconstructed)


def calculate_ssim_fast_score(original: Any, reconstructed: Any,
                              k1: float = DEFAULT_K1, k2: float = DEFAULT_K2,
                              dynamic_range: float = DEFAULT_L, window_size: Optional[int] = None) -> float:
    """Convenience function to calculate box-window SSIM."""
    ssim_lib = SSIMLibrary(k1=k1, k2=k2, dynamic_range=dynamic_range, fast_window_size=window_size)
    return ssim_lib.calculate_ssim_fast(original, reconstructed)


def calculate_all_ssim_metrics(original: Any, reconstructed: Any,
                               k1: float = DEFAULT_K1, k2: float = DEFAULT_K2,
                               dynamic_range: float = DEFAULT_L,
                               window_size: Optional[int] = None,
                               fast_window_size: Optional[int] = None) -> Dict[str, float]:
    """
    Convenience function to calculate both SSIM metrics.

    Args:
        original: Original image
        reconstructed: Reconstructed image
        k1: Luminance stabilization factor
        k2: Contrast stabilization factor
        dynamic_range: Maximum sample value L
        window_size: Gaussian window size
        fast_window_size: Box window size for the fast engine

    Returns:
        Dictionary containing both SSIM values and their absolute difference
    """
    ssim_lib = SSIMLibrary(k1=k1, k2=k2, dynamic_range=dynamic_range,
                           window_size=window_size, fast_window_size=fast_window_size)
    return ssim_lib.calculate_all_metrics(original, reconstructed)
