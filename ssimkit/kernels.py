#!/usr/bin/env python3
"""
Gaussian Kernel Cache

Builds normalized 2-D Gaussian weighting kernels and memoizes them by
(window_size, sigma). Published kernels are read-only and never evicted.
"""

import threading
import numpy as np
from typing import MutableMapping, Optional, Tuple
from loguru import logger

from .options import DEFAULT_SIGMA

KernelKey = Tuple[int, float]


def create_gaussian_kernel(window_size: int, sigma: float = DEFAULT_SIGMA) -> np.ndarray:
    """
    Create a normalized 2-D Gaussian kernel.

    weight(x, y) = exp(-((x - c)^2 + (y - c)^2) / (2 * sigma^2)), c = window_size // 2,
    divided by the grid sum so the weights total 1.

    Args:
        window_size: Kernel side length
        sigma: Standard deviation of the Gaussian

    Returns:
        float64 array of shape (window_size, window_size)
    """
    center = window_size // 2
    coords = np.arange(window_size, dtype=np.float64) - center
    dy, dx = np.meshgrid(coords, coords, indexing='ij')
    kernel = np.exp(-(dx * dx + dy * dy) / (2.0 * sigma * sigma))
    kernel /= kernel.sum()
    return kernel


class KernelCache:
    """
    Memoizing store of Gaussian kernels.

    Lookups of an already published kernel take no lock. The first construction
    for a key runs under a lock and is published only once fully built, so
    concurrent first callers all receive the same kernel object.
    """

    def __init__(self, store: Optional[MutableMapping[KernelKey, np.ndarray]] = None):
        """
        Initialize the cache.

        Args:
            store: Mapping used to hold kernels; a private dict if omitted
        """
        self._store = {} if store is None else store
        self._lock = threading.Lock()

    def get_kernel(self, window_size: int, sigma: float = DEFAULT_SIGMA) -> np.ndarray:
        key = (int(window_size), float(sigma))
        kernel = self._store.get(key)
        if kernel is not None:
            return kernel

        with self._lock:
            kernel = self._store.get(key)
            if kernel is None:
                kernel = create_gaussian_kernel(key[0], key[1])
                kernel.flags.writeable = False
                self._store[key] = kernel
                logger.debug(f"Created Gaussian kernel: window_size={key[0]}, sigma={key[1]}")
        return kernel

    def __contains__(self, key: KernelKey) -> bool:
        return (int(key[0]), float(key[1])) in self._store

    def __len__(self) -> int:
        return len(self._store)


# Process-wide cache used when callers do not supply their own
default_kernel_cache = KernelCache()
