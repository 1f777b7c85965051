"""Structural similarity (SSIM) for single-channel images."""

from .errors import DimensionMismatchError
from .fast import FastSSIM, calculate_ssim_fast, ssim_fast
from .formula import SSIMResult, mean_ssim
from .image import ImageBuffer
from .integral import ProductSummedAreaTable, SummedAreaTable
from .kernels import KernelCache, default_kernel_cache
from .options import SSIMOptions
from .reference import ReferenceSSIM, WindowedStatistics, calculate_ssim, ssim
from .ssimlib import SSIMLibrary, calculate_all_ssim_metrics, calculate_ssim_fast_score, calculate_ssim_score

__version__ = "0.1.0"

__all__ = [
    'DimensionMismatchError',
    'FastSSIM',
    'ImageBuffer',
    'KernelCache',
    'ProductSummedAreaTable',
    'ReferenceSSIM',
    'SSIMLibrary',
    'SSIMOptions',
    'SSIMResult',
    'SummedAreaTable',
    'WindowedStatistics',
    'calculate_all_ssim_metrics',
    'calculate_ssim',
    'calculate_ssim_fast',
    'calculate_ssim_fast_score',
    'calculate_ssim_score',
    'default_kernel_cache',
    'mean_ssim',
    'ssim',
    'ssim_fast',
]
