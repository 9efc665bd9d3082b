"""
Core mathematical functions for fractal iteration.

This module provides the complex-plane viewport with its pixel/plane
coordinate mapping, the per-pixel result record, and the per-point
iteration algorithms shared by the fractal types.
"""

import math
from dataclasses import dataclass, field
from typing import Tuple
import logging

logger = logging.getLogger(__name__)

# Width of the plane region shown at zoom 1.0
BASE_PLANE_WIDTH = 8.0

NEWTON_TOLERANCE = 1e-4

NEWTON_ROOTS: Tuple[complex, complex, complex] = (
    complex(1.0, 0.0),
    complex(-0.5, math.sin(2 * math.pi / 3.0)),
    complex(-0.5, -math.sin(2 * math.pi / 3.0)),
)


@dataclass(frozen=True)
class ComplexPlane:
    """
    Viewport onto the complex plane with coordinate mapping utilities.

    The plane region is 8 / zoom units wide; its height follows the image
    aspect ratio. Pixel (0, 0) maps to (xmin, ymin).
    """

    x_center: float
    y_center: float
    zoom: float
    width: int
    height: int

    plane_width: float = field(init=False, repr=False)
    plane_height: float = field(init=False, repr=False)
    xmin: float = field(init=False, repr=False)
    ymin: float = field(init=False, repr=False)

    def __post_init__(self):
        if self.zoom == 0:
            raise ValueError("Zoom cannot be zero")
        if self.width <= 0 or self.height <= 0:
            raise ValueError("Width and height must be positive")

        plane_width = BASE_PLANE_WIDTH / self.zoom
        plane_height = self.height * plane_width / self.width
        object.__setattr__(self, 'plane_width', plane_width)
        object.__setattr__(self, 'plane_height', plane_height)
        object.__setattr__(self, 'xmin', self.x_center - plane_width / 2.0)
        object.__setattr__(self, 'ymin', self.y_center - plane_height / 2.0)

    @property
    def xmax(self) -> float:
        return self.xmin + self.plane_width

    @property
    def ymax(self) -> float:
        return self.ymin + self.plane_height

    def pixel_to_horizontal(self, x: int) -> float:
        """Map a pixel column to its real coordinate."""
        return x * self.plane_width / self.width + self.xmin

    def pixel_to_vertical(self, y: int) -> float:
        """Map a pixel row to its imaginary coordinate."""
        return y * self.plane_height / self.height + self.ymin

    def horizontal_to_pixel(self, h: float) -> int:
        """Map a real coordinate to its pixel column, truncating toward zero."""
        return int((h - self.xmin) * self.width / self.plane_width)

    def vertical_to_pixel(self, v: float) -> int:
        """Map an imaginary coordinate to its pixel row, truncating toward zero."""
        return int((v - self.ymin) * self.height / self.plane_height)

    def pixel_to_complex(self, px: int, py: int) -> complex:
        """Convert pixel coordinates to complex number."""
        return complex(self.pixel_to_horizontal(px), self.pixel_to_vertical(py))

    def complex_to_pixel(self, c: complex) -> Tuple[int, int]:
        """Convert complex number to pixel coordinates."""
        return self.horizontal_to_pixel(c.real), self.vertical_to_pixel(c.imag)


@dataclass(frozen=True)
class PixelResult:
    """
    Outcome of iterating a single pixel.

    Attributes:
        iterations: Number of iterations performed (never negative)
        last_z: Last value of z reached by the iteration
        root_distances: Distances from last_z to the three cube roots of
            unity (Newton only, zeros for the escape-time fractals)
    """

    iterations: int
    last_z: complex
    root_distances: Tuple[float, float, float] = (0.0, 0.0, 0.0)

    def __post_init__(self):
        if self.iterations < 0:
            raise ValueError("iterations cannot be negative")


class FractalIterator:
    """Per-point iteration algorithms."""

    def __init__(self, max_iter: int = 256, escape_radius: float = 10e19):
        """
        Initialize fractal iterator.

        Args:
            max_iter: Maximum number of iterations
            escape_radius: Radius for escape condition
        """
        if max_iter <= 0:
            raise ValueError("max_iter must be positive")
        if escape_radius <= 0:
            raise ValueError("escape_radius must be positive")

        self.max_iter = max_iter
        self.escape_radius = escape_radius

    def escape_time(self, z: complex, c: complex) -> PixelResult:
        """
        Iterate z = z^2 + c until |z| reaches the escape radius.

        The iteration always runs at least once, so the result counts lie in
        [1, max_iter].

        Args:
            z: Initial z value
            c: Additive constant

        Returns:
            PixelResult with the iteration count and final z
        """
        iterations = 0
        while True:
            z = z * z + c
            iterations += 1
            if self.has_escaped(z) or iterations >= self.max_iter:
                break

        return PixelResult(iterations, z)

    def has_escaped(self, z: complex) -> bool:
        """Whether |z| has reached the escape radius."""
        try:
            return abs(z) >= self.escape_radius
        except OverflowError:
            # Both parts are finite but |z| exceeds the largest float
            return True

    def newton(self, z: complex, tolerance: float = NEWTON_TOLERANCE,
               strict_root_check: bool = True) -> PixelResult:
        """
        Run Newton's method on z^3 - 1 starting from z.

        Args:
            z: Starting point
            tolerance: Distance below which z counts as having reached a root
            strict_root_check: Stop near any of the three roots. When False
                only the first two roots are tested, so orbits converging to
                the third root run until max_iter.

        Returns:
            PixelResult with the iteration count, final z and root distances
        """
        r1, r2, r3 = NEWTON_ROOTS
        iterations = 0

        while True:
            # Derivative vanishes at z = 0; leave z in place there
            derivative = z * z * 3.0
            if derivative != 0:
                z -= (z * z * z - 1.0) / derivative
            iterations += 1

            d1 = abs(z - r1)
            d2 = abs(z - r2)
            d3 = abs(z - r3)

            if iterations >= self.max_iter:
                break
            if d1 < tolerance or d2 < tolerance:
                break
            if strict_root_check and d3 < tolerance:
                break

        return PixelResult(iterations, z, (d1, d2, d3))
