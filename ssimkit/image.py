#!/usr/bin/env python3
"""
Image Buffer Module

Single-channel image buffers as consumed by the SSIM engines. Samples may be
stored in any numeric encoding (uint8, wide integers, float32, plain Python
sequences); they are converted once to a read-only float64 array so that the
engines never branch on the sample type.
"""

import numpy as np
from typing import Any, Sequence, Tuple, Union

from .errors import DimensionMismatchError


class ImageBuffer:
    """
    Immutable row-major single-channel image.

    Attributes:
        width: Number of columns
        height: Number of rows
        samples: float64 array of shape (height, width), read-only
    """

    __slots__ = ('width', 'height', 'samples')

    def __init__(self, width: int, height: int, samples: Union[Sequence[float], np.ndarray]):
        """
        Initialize the buffer.

        Args:
            width: Image width in pixels
            height: Image height in pixels
            samples: Row-major samples, flat (width*height) or already 2-D

        Raises:
            ValueError: If the number of samples does not equal width*height,
                or 2-D samples are not shaped (height, width)
        """
        width = int(width)
        height = int(height)
        if width < 0 or height < 0:
            raise ValueError(f"Image dimensions must be non-negative, got {width}x{height}.")

        # Always a private copy, so later writes by the caller cannot leak in
        data = np.array(samples, dtype=np.float64)
        if data.ndim > 2:
            raise ValueError(f"Only single-channel 2-D images are supported, got dim={data.ndim}.")
        if data.ndim == 2 and data.shape != (height, width):
            raise ValueError(
                f"Samples of shape {data.shape} do not match a {width}x{height} image; "
                f"expected (height, width) = ({height}, {width})."
            )
        if data.size != width * height:
            raise ValueError(
                f"Expected {width * height} samples for a {width}x{height} image, "
                f"got {data.size}."
            )

        data = data.reshape(height, width)
        data.flags.writeable = False

        self.width = width
        self.height = height
        self.samples = data

    @classmethod
    def from_array(cls, array: np.ndarray) -> 'ImageBuffer':
        """Build a buffer from a 2-D (height, width) array."""
        array = np.asarray(array)
        if array.ndim != 2:
            raise ValueError(f"Only single-channel 2-D images are supported, got dim={array.ndim}.")
        height, width = array.shape
        return cls(width, height, array)

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def __repr__(self) -> str:
        return f"ImageBuffer(width={self.width}, height={self.height})"


def as_image_buffer(image: Any) -> ImageBuffer:
    """
    Normalize any supported image representation to an ImageBuffer.

    Accepts an ImageBuffer, a 2-D numpy array (or nested sequence), or any
    object exposing ``width``, ``height`` and ``samples`` (or ``data``).
    """
    if isinstance(image, ImageBuffer):
        return image

    if hasattr(image, 'width') and hasattr(image, 'height'):
        samples = getattr(image, 'samples', None)
        if samples is None:
            samples = getattr(image, 'data')
        return ImageBuffer(image.width, image.height, samples)

    if isinstance(image, dict):
        samples = image.get('samples', image.get('data'))
        return ImageBuffer(image['width'], image['height'], samples)

    return ImageBuffer.from_array(image)


def _image_size(image: Any) -> Tuple[int, int]:
    if isinstance(image, ImageBuffer) or (hasattr(image, 'width') and hasattr(image, 'height')):
        return int(image.width), int(image.height)
    if isinstance(image, dict):
        return int(image['width']), int(image['height'])
    shape = np.shape(image)
    if len(shape) != 2:
        raise ValueError(f"Only single-channel 2-D images are supported, got dim={len(shape)}.")
    return int(shape[1]), int(shape[0])


def prepare_pair(image1: Any, image2: Any) -> Tuple[ImageBuffer, ImageBuffer]:
    """
    Validate that two images share dimensions and normalize both.

    The size check runs before either image's samples are read.

    Raises:
        DimensionMismatchError: If width or height differ
    """
    size1 = _image_size(image1)
    size2 = _image_size(image2)
    if size1 != size2:
        raise DimensionMismatchError(size1, size2)
    return as_image_buffer(image1), as_image_buffer(image2)
