#!/usr/bin/env python3
"""
SSIM Benchmark Module

Times the Gaussian and integral-image engines on synthetic image pairs
(a generated pattern against a noisy copy of itself) and collects the
results in a DataFrame.

Run with ``python -m ssimkit.benchmark``.
"""

import time
import numpy as np
import pandas as pd
from typing import Callable, Dict, List, Optional, Sequence
from loguru import logger
from tqdm import tqdm

from .fast import ssim_fast
from .reference import ssim

PATTERNS = ('random', 'gradient', 'checkerboard')

ENGINES: Dict[str, Callable] = {
    'ssim': ssim,
    'ssim_fast': ssim_fast,
}


def generate_test_image(width: int, height: int, pattern: str,
                        rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """
    Generate a synthetic 8-bit range image.

    Args:
        width: Image width
        height: Image height
        pattern: 'random' (uniform [0, 255)), 'gradient' (diagonal ramp) or
            'checkerboard' (8x8 cells of 0 and 255)
        rng: Random generator for the 'random' pattern

    Returns:
        float32 array of shape (height, width)
    """
    if pattern == 'random':
        rng = np.random.default_rng() if rng is None else rng
        return (rng.random((height, width)) * 255).astype(np.float32)

    y, x = np.mgrid[0:height, 0:width]
    if pattern == 'gradient':
        return ((x / width + y / height) * 127.5).astype(np.float32)
    if pattern == 'checkerboard':
        return np.where(((x >> 3) + (y >> 3)) % 2 == 1, 255.0, 0.0).astype(np.float32)

    raise ValueError(f"Unknown pattern '{pattern}', expected one of {PATTERNS}")


def add_noise(image: np.ndarray, noise_level: float,
              rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Add uniform noise in [-noise_level, noise_level) and clamp to [0, 255]."""
    rng = np.random.default_rng() if rng is None else rng
    noise = (rng.random(image.shape) - 0.5) * 2 * noise_level
    return np.clip(image + noise, 0, 255).astype(image.dtype)


def benchmark_pair(image1: np.ndarray, image2: np.ndarray, repeats: int = 3) -> Dict[str, Dict[str, float]]:
    """
    Time every engine on one image pair.

    Returns:
        {engine: {'seconds': best wall time over repeats, 'mssim': score}}
    """
    results = {}
    for name, engine in ENGINES.items():
        best = float('inf')
        score = float('nan')
        for _ in range(max(1, repeats)):
            start = time.perf_counter()
            score = engine(image1, image2)
            best = min(best, time.perf_counter() - start)
        results[name] = {'seconds': best, 'mssim': score}
    return results


def run_benchmarks(sizes: Sequence[int] = (64, 256, 512),
                   patterns: Sequence[str] = PATTERNS,
                   noise_level: float = 10.0,
                   repeats: int = 3,
                   seed: int = 0,
                   show_progress: bool = True) -> pd.DataFrame:
    """
    Benchmark both engines over square images of several sizes and patterns.

    Args:
        sizes: Square image side lengths
        patterns: Pattern names passed to generate_test_image
        noise_level: Amplitude of the noise added to the second image
        repeats: Timing repetitions per engine (best time is kept)
        seed: Seed for image generation
        show_progress: Display a tqdm progress bar

    Returns:
        DataFrame with columns size, pattern, engine, seconds, mssim
    """
    rng = np.random.default_rng(seed)
    cases = [(size, pattern) for size in sizes for pattern in patterns]
    rows: List[Dict] = []

    for size, pattern in tqdm(cases, desc="SSIM benchmark", disable=not show_progress):
        image1 = generate_test_image(size, size, pattern, rng=rng)
        image2 = add_noise(image1, noise_level, rng=rng)
        for engine, stats in benchmark_pair(image1, image2, repeats=repeats).items():
            rows.append({
                'size': size,
                'pattern': pattern,
                'engine': engine,
                'seconds': stats['seconds'],
                'mssim': stats['mssim'],
            })

    df = pd.DataFrame(rows, columns=['size', 'pattern', 'engine', 'seconds', 'mssim'])
    logger.info(f"Benchmarked {len(cases)} image pairs across {len(ENGINES)} engines")
    return df


def summarize(df: pd.DataFrame) -> pd.DataFrame:
    """Mean time per size and engine, with the speedup of the fast engine."""
    summary = df.pivot_table(index='size', columns='engine', values='seconds', aggfunc='mean')
    if 'ssim' in summary.columns and 'ssim_fast' in summary.columns:
        summary['speedup'] = summary['ssim'] / summary['ssim_fast']
    return summary


if __name__ == "__main__":
    results = run_benchmarks()
    logger.info(f"Results:\n{results.to_string(index=False)}")
    logger.info(f"Summary:\n{summarize(results).to_string()}")
