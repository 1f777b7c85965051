#!/usr/bin/env python3
"""
Summed-Area Tables

Integral images with a leading row and column of zeros:
table[y, x] = sum of source[0:y, 0:x]. Any rectangle sum is then four lookups,
independent of the rectangle size.
"""

import numpy as np
from typing import Union

from loguru import logger

Index = Union[int, np.ndarray]


def _build_table(values: np.ndarray) -> np.ndarray:
    height, width = values.shape
    table = np.zeros((height + 1, width + 1), dtype=np.float64)
    # Running sum along each row, then add the table row above:
    # table[y, x] = row_sum[y, x] + table[y - 1, x]
    np.cumsum(values, axis=1, out=table[1:, 1:])
    np.cumsum(table, axis=0, out=table)
    table.flags.writeable = False
    return table


def _region_sum(table: np.ndarray, x1: Index, y1: Index, x2: Index, y2: Index):
    a = table[y1, x1]
    b = table[y1, x2 + 1]
    c = table[y2 + 1, x1]
    d = table[y2 + 1, x2 + 1]
    return d - b - c + a


def _area(x1: Index, y1: Index, x2: Index, y2: Index):
    return (x2 - x1 + 1) * (y2 - y1 + 1)


class SummedAreaTable:
    """
    Integral image of one source plus the integral image of its squares.

    Rectangle bounds are inclusive 0-based source coordinates. They may be
    scalars or integer arrays that broadcast against each other, in which case
    every query is answered elementwise.
    """

    def __init__(self, samples: np.ndarray):
        samples = np.asarray(samples, dtype=np.float64)
        self.height, self.width = samples.shape
        self.stride = self.width + 1
        self.table = _build_table(samples)
        self.table_sq = _build_table(samples * samples)
        logger.debug(f"Built summed-area tables for {self.width}x{self.height} image")

    def sum(self, x1: Index, y1: Index, x2: Index, y2: Index):
        return _region_sum(self.table, x1, y1, x2, y2)

    def sum_sq(self, x1: Index, y1: Index, x2: Index, y2: Index):
        return _region_sum(self.table_sq, x1, y1, x2, y2)

    def mean(self, x1: Index, y1: Index, x2: Index, y2: Index):
        """Mean of the source over [x1, x2] x [y1, y2]."""
        with np.errstate(divide='ignore', invalid='ignore'):
            return self.sum(x1, y1, x2, y2) / _area(x1, y1, x2, y2)

    def mean_sq(self, x1: Index, y1: Index, x2: Index, y2: Index):
        """Mean of the squared source over [x1, x2] x [y1, y2]."""
        with np.errstate(divide='ignore', invalid='ignore'):
            return self.sum_sq(x1, y1, x2, y2) / _area(x1, y1, x2, y2)


class ProductSummedAreaTable:
    """Integral image of the elementwise product of two equally sized sources."""

    def __init__(self, samples1: np.ndarray, samples2: np.ndarray):
        samples1 = np.asarray(samples1, dtype=np.float64)
        samples2 = np.asarray(samples2, dtype=np.float64)
        if samples1.shape != samples2.shape:
            raise ValueError(
                f"Sources must have the same shape, got {samples1.shape} and {samples2.shape}."
            )
        self.height, self.width = samples1.shape
        self.stride = self.width + 1
        self.table = _build_table(samples1 * samples2)

    def sum(self, x1: Index, y1: Index, x2: Index, y2: Index):
        return _region_sum(self.table, x1, y1, x2, y2)

    def mean(self, x1: Index, y1: Index, x2: Index, y2: Index):
        """Mean of source1 * source2 over [x1, x2] x [y1, y2]."""
        with np.errstate(divide='ignore', invalid='ignore'):
            return self.sum(x1, y1, x2, y2) / _area(x1, y1, x2, y2)
