"""
Pixel storage for the two-phase render.

A PixelBuffer owns the per-pixel results of the compute phase and the raw
color raster filled by the paint phase. The raster is only written through an
exclusive lock scope that works on a private copy and flushes it back to the
backing store when the scope ends successfully.
"""

from contextlib import contextmanager
from enum import IntEnum
from typing import Iterator, Optional, Tuple
import logging

import numpy as np

from ..core.math_functions import PixelResult
from .coloring import Color

logger = logging.getLogger(__name__)


class ColorDepth(IntEnum):
    """Bytes per pixel of the raster."""
    GRAYSCALE = 1
    RGB = 3
    RGBA = 4


def luma(color: Color) -> int:
    """ITU-R 601-2 luma, as used by Pillow for RGB to L conversion."""
    return (color.r * 299 + color.g * 587 + color.b * 114) // 1000


class PixelBuffer:
    """Per-pixel result grid plus raw color raster of the same size."""

    def __init__(self, width: int, height: int, depth: int = ColorDepth.RGB):
        """
        Initialize an empty buffer.

        Args:
            width, height: Image resolution in pixels
            depth: Bytes per pixel (1 grayscale, 3 BGR, 4 BGRA)
        """
        if width <= 0 or height <= 0:
            raise ValueError("Width and height must be positive")
        try:
            self.depth = ColorDepth(depth)
        except ValueError:
            raise ValueError(f"Unsupported color depth: {depth}. Use 1, 3 or 4 bytes per pixel") from None

        self.width = width
        self.height = height
        self.bytes_per_pixel = int(self.depth)

        pixel_count = width * height

        # Result grid, flat and indexed y * width + x
        self._iterations = np.zeros(pixel_count, dtype=np.uint64)
        self._last_z = np.zeros(pixel_count, dtype=np.complex128)
        self._root_distances = np.zeros((pixel_count, 3), dtype=np.float64)
        self._computed = np.zeros(pixel_count, dtype=bool)

        self._backing = np.zeros(pixel_count * self.bytes_per_pixel, dtype=np.uint8)
        self._working: Optional[np.ndarray] = None

    def _index(self, x: int, y: int) -> int:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) is outside the {self.width}x{self.height} buffer")
        return y * self.width + x

    def offset(self, x: int, y: int) -> int:
        """Byte offset of a pixel in the raster."""
        return self._index(x, y) * self.bytes_per_pixel

    # Result grid

    def store_result(self, x: int, y: int, result: PixelResult) -> None:
        """Store the compute-phase result of a pixel."""
        i = self._index(x, y)
        self._iterations[i] = result.iterations
        self._last_z[i] = result.last_z
        self._root_distances[i] = result.root_distances
        self._computed[i] = True

    def result_at(self, x: int, y: int) -> PixelResult:
        """Read back the result of a computed pixel."""
        i = self._index(x, y)
        if not self._computed[i]:
            raise RuntimeError(f"Pixel ({x}, {y}) has not been computed")
        d1, d2, d3 = self._root_distances[i]
        return PixelResult(int(self._iterations[i]), complex(self._last_z[i]),
                           (float(d1), float(d2), float(d3)))

    @property
    def fully_computed(self) -> bool:
        return bool(self._computed.all())

    def largest_iteration(self) -> int:
        """Largest iteration count stored in the grid."""
        return int(self._iterations.max())

    def clear_results(self) -> None:
        self._computed[:] = False

    # Raster

    @property
    def is_locked(self) -> bool:
        return self._working is not None

    def lock(self) -> np.ndarray:
        """Begin exclusive access: copy the backing raster into a working buffer."""
        if self._working is not None:
            raise RuntimeError("Pixel buffer is already locked")
        self._working = self._backing.copy()
        return self._working

    def unlock(self) -> None:
        """End exclusive access: flush the working buffer to the backing raster."""
        if self._working is None:
            raise RuntimeError("Pixel buffer is not locked")
        self._backing[:] = self._working
        self._working = None

    def discard(self) -> None:
        """End exclusive access without flushing."""
        self._working = None

    @contextmanager
    def locked(self) -> Iterator[np.ndarray]:
        """
        Scoped exclusive access to the raster.

        The working buffer is flushed only if the block completes; on an
        exception it is discarded and the backing raster is left untouched.
        """
        working = self.lock()
        try:
            yield working
        except BaseException:
            self.discard()
            raise
        self.unlock()

    def set_pixel(self, x: int, y: int, color: Color) -> None:
        """Write a color into the working buffer. The buffer must be locked."""
        i = self.offset(x, y)
        if self._working is None:
            raise RuntimeError("Pixel buffer must be locked before writing pixels")
        self._working[i:i + self.bytes_per_pixel] = self.encode(color)

    def get_pixel(self, x: int, y: int) -> Color:
        """Read a color from the working buffer if locked, else from the backing raster."""
        i = self.offset(x, y)
        raster = self._working if self._working is not None else self._backing
        return self.decode(raster[i:i + self.bytes_per_pixel])

    def encode(self, color: Color) -> Tuple[int, ...]:
        """Raw byte values of a color at this buffer's depth."""
        if self.depth == ColorDepth.RGBA:
            return (color.b, color.g, color.r, color.a)
        elif self.depth == ColorDepth.RGB:
            return (color.b, color.g, color.r)
        return (luma(color),)

    def decode(self, raw) -> Color:
        """Color of raw pixel bytes at this buffer's depth."""
        if self.depth == ColorDepth.RGBA:
            b, g, r, a = (int(v) for v in raw)
            return Color(r, g, b, a)
        elif self.depth == ColorDepth.RGB:
            b, g, r = (int(v) for v in raw)
            return Color(r, g, b)
        c = int(raw[0])
        return Color(c, c, c)

    def to_bytes(self) -> bytes:
        """Raw backing raster, row-major with a stride of bytes_per_pixel."""
        return self._backing.tobytes()

    def to_array(self) -> np.ndarray:
        """
        Backing raster as an image array in RGB channel order.

        Returns:
            (height, width) for grayscale, (height, width, 3|4) otherwise
        """
        if self.depth == ColorDepth.GRAYSCALE:
            return self._backing.reshape(self.height, self.width).copy()

        pixels = self._backing.reshape(self.height, self.width, self.bytes_per_pixel)
        order = [2, 1, 0] if self.depth == ColorDepth.RGB else [2, 1, 0, 3]
        return pixels[:, :, order].copy()
