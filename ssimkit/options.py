#!/usr/bin/env python3
"""
SSIM Options Module

Holds the tunable SSIM parameters and derives the stabilization constants.
Every field is optional; unset fields fall back to their defaults one by one,
so partial option objects and partial dicts are both valid.
"""

from dataclasses import dataclass
from typing import Any, Mapping, NamedTuple, Optional, Union

from loguru import logger

DEFAULT_K1 = 0.01
DEFAULT_K2 = 0.03
DEFAULT_L = 255.0
DEFAULT_SIGMA = 1.5
DEFAULT_WINDOW_SIZE = 11
DEFAULT_FAST_WINDOW_SIZE = 8


@dataclass(frozen=True)
class SSIMOptions:
    """
    User-facing SSIM parameters.

    Args:
        k1: Luminance stabilization factor
        k2: Contrast stabilization factor
        window_size: Window side length; None selects the engine default
            (11 for the Gaussian engine, 8 for the integral-image engine)
        L: Dynamic range of the samples (255 for 8-bit data)
    """
    k1: Optional[float] = None
    k2: Optional[float] = None
    window_size: Optional[int] = None
    L: Optional[float] = None


class ResolvedOptions(NamedTuple):
    k1: float
    k2: float
    window_size: int
    L: float
    c1: float
    c2: float
    half_size: int


OptionsLike = Union[SSIMOptions, Mapping[str, Any], None]


def _lookup(options: OptionsLike, *names: str) -> Any:
    if options is None:
        return None
    if isinstance(options, SSIMOptions):
        return getattr(options, names[0])
    for name in names:
        value = options.get(name)
        if value is not None:
            return value
    return None


def resolve_options(options: OptionsLike, default_window_size: int) -> ResolvedOptions:
    """
    Merge user options with defaults and derive C1, C2 and the half window.

    Args:
        options: SSIMOptions, a plain dict (``window_size`` or ``windowSize``,
            ``L`` or ``dynamic_range``), or None
        default_window_size: Window size used when none is given

    Returns:
        ResolvedOptions with every field populated

    Raises:
        ValueError: If the window size is not a positive integer
    """
    k1 = _lookup(options, 'k1')
    k2 = _lookup(options, 'k2')
    window_size = _lookup(options, 'window_size', 'windowSize')
    L = _lookup(options, 'L', 'dynamic_range')

    k1 = DEFAULT_K1 if k1 is None else float(k1)
    k2 = DEFAULT_K2 if k2 is None else float(k2)
    L = DEFAULT_L if L is None else float(L)
    if window_size is None:
        window_size = default_window_size

    if isinstance(window_size, bool) or int(window_size) != window_size or window_size < 1:
        raise ValueError(f"window_size must be a positive integer, got {window_size!r}.")
    window_size = int(window_size)

    c1 = (k1 * L) ** 2
    c2 = (k2 * L) ** 2
    if c1 == 0.0 or c2 == 0.0:
        logger.warning(
            f"Stabilization constants are zero (C1={c1}, C2={c2}); "
            f"flat regions will produce NaN or infinite SSIM values"
        )

    return ResolvedOptions(
        k1=k1,
        k2=k2,
        window_size=window_size,
        L=L,
        c1=c1,
        c2=c2,
        half_size=window_size // 2,
    )
