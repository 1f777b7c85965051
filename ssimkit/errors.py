#!/usr/bin/env python3
"""Exceptions raised by the SSIM engines."""

from typing import Tuple


class DimensionMismatchError(ValueError):
    """Raised when the two images being compared do not share width and height."""

    def __init__(self, size1: Tuple[int, int], size2: Tuple[int, int]):
        self.size1 = size1
        self.size2 = size2
        super().__init__(
            f"Images must have the same dimensions, "
            f"got {size1[0]}x{size1[1]} and {size2[0]}x{size2[1]}."
        )
