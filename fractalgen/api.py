"""
Main API classes for fractal generation.

This module provides the high-level interface for fractal generation,
combining configuration, palettes, the rendering engine and image export
into easy-to-use classes.
"""

from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Optional, Dict, Any, Union
import json
import logging
import time

from .core.engine import FractalEngine, GlobalStats
from .core.fractal_types import FractalRegistry, FractalType, FractalVariation
from .core.math_functions import ComplexPlane
from .acceleration.parallel import ParallelAccelerator, BACKENDS
from .rendering.coloring import Palette, resolve_palette, build_palette
from .rendering.image_output import ImageExporter, RenderMetadata, open_image
from .rendering.pixel_buffer import PixelBuffer, ColorDepth

logger = logging.getLogger(__name__)


@dataclass
class RenderConfig:
    """Configuration for fractal rendering."""

    # Fractal
    fractal: str = 'mandelbrot'
    max_iterations: int = 256
    escape_radius: float = 10e19
    c_real: float = -0.2
    c_imag: float = 0.75
    newton_strict_root_check: bool = True

    # Viewport
    width: int = 320
    height: int = 200
    x_center: float = -0.5
    y_center: float = 0.0
    zoom: float = 1.0

    # Coloring
    depth: int = 3
    palette: str = 'hsv'
    mix_palette: Optional[str] = None
    light: float = 0.0

    # Performance
    parallel: bool = True
    backend: str = 'thread'
    num_workers: Optional[int] = None
    split_rows: bool = False
    rows_per_tile: int = 64

    # Output
    output_file: str = 'output.bmp'
    save_metadata: bool = False
    open_when_done: bool = False

    def validate(self):
        """Validate configuration parameters."""
        FractalRegistry.parse(self.fractal)

        integer_fields = {'width': self.width, 'height': self.height,
                          'max_iterations': self.max_iterations, 'depth': self.depth,
                          'rows_per_tile': self.rows_per_tile}
        if self.num_workers is not None:
            integer_fields['num_workers'] = self.num_workers
        for name, value in integer_fields.items():
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"{name} must be an integer, got {value!r}")

        if self.width <= 0 or self.height <= 0:
            raise ValueError("Width and height must be positive")

        if self.zoom == 0:
            raise ValueError("Cannot set zoom to zero")

        if self.max_iterations <= 0:
            raise ValueError("max_iterations must be positive")

        if self.escape_radius <= 0:
            raise ValueError("escape_radius must be positive")

        if not 0.0 <= self.light <= 1.0:
            raise ValueError("light must be between 0 and 1")

        if self.depth not in {d.value for d in ColorDepth}:
            raise ValueError(f"depth must be 1, 3 or 4 bytes per pixel, got {self.depth}")

        if not self.palette:
            raise ValueError("palette cannot be empty")

        if self.mix_palette is not None and self.mix_palette == self.palette:
            raise ValueError(f"The mix palette ({self.mix_palette}) cannot be the same as the palette")

        if self.backend not in BACKENDS:
            raise ValueError(f"backend must be one of {', '.join(BACKENDS)}")

        if self.num_workers is not None and self.num_workers <= 0:
            raise ValueError("num_workers must be positive")

        if self.rows_per_tile <= 0:
            raise ValueError("rows_per_tile must be positive")

        if not str(self.output_file).strip():
            raise ValueError("The output file name cannot be empty")

    @property
    def variation(self) -> FractalVariation:
        return FractalRegistry.parse(self.fractal)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RenderConfig':
        """Create a configuration from a dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration parameter(s): {', '.join(sorted(unknown))}")
        return cls(**data)

    @classmethod
    def from_file(cls, filepath: Union[str, Path]) -> 'RenderConfig':
        """Load a configuration from a JSON file."""
        with open(filepath, 'r') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {filepath} must contain a JSON object")
        return cls.from_dict(data)


class FractalRenderer:
    """Main fractal rendering entry point."""

    def __init__(self, config: Optional[RenderConfig] = None):
        """
        Initialize fractal renderer.

        Args:
            config: Rendering configuration (uses defaults if None)
        """
        self.config = config or RenderConfig()
        self.config.validate()

        self.image_exporter = ImageExporter()
        self.last_stats: Optional[GlobalStats] = None

        logger.info(f"FractalRenderer initialized: {self.config.fractal} "
                    f"{self.config.width}x{self.config.height}")

    def create_plane(self) -> ComplexPlane:
        c = self.config
        return ComplexPlane(c.x_center, c.y_center, c.zoom, c.width, c.height)

    def create_palette(self) -> Palette:
        """Load the primary and mix palettes and apply the light factor."""
        primary = resolve_palette(self.config.palette)
        mix = resolve_palette(self.config.mix_palette) if self.config.mix_palette else None
        return build_palette(primary, mix, self.config.light)

    def create_fractal(self, palette: Optional[Palette] = None) -> FractalType:
        c = self.config
        return FractalRegistry.create_fractal(
            c.variation,
            palette=palette,
            max_iterations=c.max_iterations,
            escape_radius=c.escape_radius,
            c_real=c.c_real,
            c_imag=c.c_imag,
            strict_root_check=c.newton_strict_root_check,
        )

    def create_accelerator(self) -> Optional[ParallelAccelerator]:
        c = self.config
        if not c.parallel:
            return None
        return ParallelAccelerator(c.backend, c.num_workers, c.split_rows, c.rows_per_tile)

    def render(self) -> PixelBuffer:
        """
        Compute and paint the configured fractal.

        Returns:
            Fully painted pixel buffer
        """
        logger.info(f"Generating a '{self.config.variation.value}' fractal")

        plane = self.create_plane()
        fractal = self.create_fractal(self.create_palette())
        buffer = PixelBuffer(plane.width, plane.height, self.config.depth)

        engine = FractalEngine(fractal, plane, buffer, self.create_accelerator())
        engine.render()
        self.last_stats = engine.stats

        return buffer

    def render_to_file(self, output_path: Optional[Union[str, Path]] = None) -> Path:
        """
        Render, save the image and optionally open it.

        Args:
            output_path: Output file (defaults to config.output_file)

        Returns:
            Path of the saved image
        """
        start_time = time.time()
        output_path = Path(output_path or self.config.output_file)

        buffer = self.render()

        metadata = None
        if self.config.save_metadata:
            metadata = self._create_metadata(time.time() - start_time)

        saved = self.image_exporter.save_raster(buffer, output_path, metadata)
        logger.info(f"Render complete: {time.time() - start_time:.2f}s")

        if self.config.open_when_done:
            open_image(saved)

        return saved

    def _create_metadata(self, render_time: float) -> RenderMetadata:
        c = self.config
        fractal_parameters = {}
        if c.variation == FractalVariation.JULIA:
            fractal_parameters = {'c_real': c.c_real, 'c_imag': c.c_imag}
        elif c.variation == FractalVariation.NEWTON:
            fractal_parameters = {'strict_root_check': c.newton_strict_root_check}

        return RenderMetadata(
            fractal_type=c.variation.value,
            center=(c.x_center, c.y_center),
            zoom=c.zoom,
            resolution=(c.width, c.height),
            max_iterations=c.max_iterations,
            escape_radius=c.escape_radius,
            color_depth=c.depth,
            palette=c.palette,
            light=c.light,
            mix_palette=c.mix_palette,
            render_time_seconds=render_time,
            largest_iteration=self.last_stats.largest_iteration if self.last_stats else 1,
            parallel_backend=c.backend if c.parallel else None,
            fractal_parameters=fractal_parameters,
        )
