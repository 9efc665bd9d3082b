"""
Escape-time fractal image generation library.

This library renders Mandelbrot sets, Julia sets and Newton fractals over a
viewport of the complex plane, colors them from 256-entry palettes and writes
the result as BMP, PNG or TIFF images.

Key Features:
- Two-phase rendering (compute, then paint) with global iteration statistics
- Sequential, thread-parallel and process-parallel backends with identical output
- Matlab colormap text palettes and matplotlib colormaps, mixing and lightening
- Grayscale, RGB and RGBA raster depths

Example usage:
    >>> from fractalgen import FractalRenderer, RenderConfig
    >>> config = RenderConfig(fractal='julia', width=640, height=400)
    >>> FractalRenderer(config).render_to_file('julia.png')
"""

__version__ = "1.0.0"
__author__ = "fractalgen Team"

from fractalgen.core.fractal_types import (FractalRegistry, FractalVariation, MandelbrotSet,
                                           JuliaSet, NewtonFractal, Spiderweb)
from fractalgen.core.math_functions import ComplexPlane, FractalIterator, PixelResult
from fractalgen.core.engine import FractalEngine, GlobalStats
from fractalgen.rendering.coloring import Color, Palette
from fractalgen.rendering.pixel_buffer import PixelBuffer, ColorDepth
from fractalgen.rendering.image_output import ImageExporter, RenderMetadata
from fractalgen.acceleration.parallel import ParallelAccelerator

# Main API classes
from fractalgen.api import FractalRenderer, RenderConfig

__all__ = [
    "FractalRenderer",
    "RenderConfig",
    "FractalRegistry",
    "FractalVariation",
    "MandelbrotSet",
    "JuliaSet",
    "NewtonFractal",
    "Spiderweb",
    "ComplexPlane",
    "FractalIterator",
    "PixelResult",
    "FractalEngine",
    "GlobalStats",
    "Color",
    "Palette",
    "PixelBuffer",
    "ColorDepth",
    "ImageExporter",
    "RenderMetadata",
    "ParallelAccelerator",
]
