#!/usr/bin/env python3
"""SSIM formula and map aggregation shared by both engines."""

import numpy as np
from typing import NamedTuple
from loguru import logger


class SSIMResult(NamedTuple):
    """
    Result of a detailed SSIM computation.

    Attributes:
        mssim: Mean of the SSIM map (NaN when the map is empty)
        ssim_map: Flat row-major float64 map over the valid region
        map_width: Columns of the valid region
        map_height: Rows of the valid region
    """
    mssim: float
    ssim_map: np.ndarray
    map_width: int
    map_height: int

    def as_image(self) -> np.ndarray:
        """Return the map reshaped to (map_height, map_width)."""
        return self.ssim_map.reshape(self.map_height, self.map_width)


def ssim_from_moments(mu1: np.ndarray, mu2: np.ndarray,
                      sigma1_sq: np.ndarray, sigma2_sq: np.ndarray, sigma12: np.ndarray,
                      c1: float, c2: float) -> np.ndarray:
    """
    Evaluate ((2*mu1*mu2 + C1)(2*sigma12 + C2)) / ((mu1^2 + mu2^2 + C1)(sigma1^2 + sigma2^2 + C2)).

    Division follows plain floating-point semantics: zero constants on flat
    regions yield NaN or inf rather than an error.
    """
    mu1_sq = mu1 * mu1
    mu2_sq = mu2 * mu2
    mu1_mu2 = mu1 * mu2

    numerator = (2.0 * mu1_mu2 + c1) * (2.0 * sigma12 + c2)
    denominator = (mu1_sq + mu2_sq + c1) * (sigma1_sq + sigma2_sq + c2)
    with np.errstate(divide='ignore', invalid='ignore'):
        return numerator / denominator


def mean_ssim(ssim_map: np.ndarray) -> float:
    """
    Reduce an SSIM map to its arithmetic mean (MSSIM).

    An empty map (window larger than the image) has no mean; NaN is returned
    and a warning logged.
    """
    if ssim_map.size == 0:
        logger.warning("SSIM map is empty (window larger than image); mean SSIM is NaN")
        return float('nan')
    return float(np.mean(ssim_map, dtype=np.float64))


def valid_extent(width: int, height: int, half_size: int):
    """Return (map_width, map_height) of the interior scanned by the engines."""
    return max(0, width - 2 * half_size), max(0, height - 2 * half_size)
