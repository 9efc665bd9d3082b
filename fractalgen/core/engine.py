"""
Two-phase fractal rendering engine.

The engine first computes a PixelResult for every pixel while tracking the
largest iteration count, then paints every pixel from the stored results and
the frozen statistics. Both phases run sequentially in row-major order or in
parallel over column tiles; the output raster is identical either way.
"""

from functools import partial
from typing import Optional
import logging
import threading
import time

from .fractal_types import FractalType
from .math_functions import ComplexPlane
from ..acceleration.parallel import (ParallelAccelerator, TileSpec, TileResult, TileColors,
                                     compute_tile, paint_tile)
from ..rendering.pixel_buffer import PixelBuffer, ColorDepth

logger = logging.getLogger(__name__)


class GlobalStats:
    """Largest iteration count observed during the compute phase."""

    def __init__(self, largest_iteration: int = 1):
        self._largest_iteration = largest_iteration
        self._frozen = False
        self._lock = threading.Lock()

    @property
    def largest_iteration(self) -> int:
        return self._largest_iteration

    @property
    def frozen(self) -> bool:
        return self._frozen

    def update(self, iterations: int) -> bool:
        """
        Raise the stored maximum to iterations if strictly greater.

        Returns:
            True if the stored value changed
        """
        with self._lock:
            if self._frozen:
                raise RuntimeError("GlobalStats cannot be updated once frozen")
            if iterations > self._largest_iteration:
                self._largest_iteration = iterations
                return True
            return False

    def freeze(self) -> None:
        with self._lock:
            self._frozen = True

    def __getstate__(self):
        return {'largest_iteration': self._largest_iteration, 'frozen': self._frozen}

    def __setstate__(self, state):
        self.__init__(state['largest_iteration'])
        self._frozen = state['frozen']

    def __repr__(self) -> str:
        return f"GlobalStats(largest_iteration={self._largest_iteration}, frozen={self._frozen})"


class FractalEngine:
    """Runs the compute and paint phases of a render."""

    def __init__(self, fractal: FractalType, plane: ComplexPlane,
                 buffer: Optional[PixelBuffer] = None,
                 accelerator: Optional[ParallelAccelerator] = None):
        """
        Initialize the engine.

        Args:
            fractal: Fractal algorithm to render
            plane: Viewport; its resolution must match the buffer
            buffer: Target buffer (a new RGB buffer if None)
            accelerator: Parallel backend; None renders sequentially
        """
        if buffer is None:
            buffer = PixelBuffer(plane.width, plane.height, ColorDepth.RGB)
        if (buffer.width, buffer.height) != (plane.width, plane.height):
            raise ValueError(f"Buffer size {buffer.width}x{buffer.height} does not match "
                             f"viewport size {plane.width}x{plane.height}")

        self.fractal = fractal
        self.plane = plane
        self.buffer = buffer
        self.accelerator = accelerator
        self._stats: Optional[GlobalStats] = None

    @property
    def stats(self) -> Optional[GlobalStats]:
        """Frozen statistics of the last completed compute phase."""
        return self._stats

    @property
    def computed(self) -> bool:
        return self._stats is not None

    def compute(self) -> GlobalStats:
        """Compute and store the result of every pixel."""
        logger.info(f"Calculating {self.fractal.name} fractal ({self.plane.width}x{self.plane.height})")
        start_time = time.time()

        self._stats = None
        self.buffer.clear_results()
        stats = GlobalStats()

        if self.accelerator is None:
            for y in range(self.plane.height):
                for x in range(self.plane.width):
                    self._compute_pixel(x, y, stats)
        else:
            tiles = self.accelerator.create_tiles(self.plane.width, self.plane.height)
            if self.accelerator.uses_processes:
                work = partial(compute_tile, self.fractal, self.plane)
                processing_time = 0.0
                for tile_result in self.accelerator.map(work, tiles, "columns"):
                    self._store_tile(tile_result, stats)
                    processing_time += tile_result.processing_time
                logger.info(f"Worker processing time: {processing_time:.2f}s over {len(tiles)} tiles")
            else:
                work = partial(self._compute_tile_in_place, stats)
                for _ in self.accelerator.map(work, tiles, "columns"):
                    pass

        stats.freeze()
        self._stats = stats

        logger.info(f"Calculation finished in {time.time() - start_time:.2f}s "
                    f"(largest iteration {stats.largest_iteration})")
        return stats

    def paint(self) -> PixelBuffer:
        """Color every pixel from its stored result into the raster."""
        if self._stats is None:
            raise RuntimeError("Invalid operation: paint() called before compute() completed")

        logger.info("Painting fractal")
        start_time = time.time()
        stats = self._stats

        with self.buffer.locked():
            if self.accelerator is None:
                for y in range(self.plane.height):
                    for x in range(self.plane.width):
                        color = self.fractal.color_for(self.buffer.result_at(x, y), stats)
                        self.buffer.set_pixel(x, y, color)
            else:
                tiles = self.accelerator.create_tiles(self.plane.width, self.plane.height)
                if self.accelerator.uses_processes:
                    jobs = [(tile, [self.buffer.result_at(x, y) for x, y in tile.pixels()])
                            for tile in tiles]
                    work = partial(paint_tile, self.fractal, stats)
                    for tile_colors in self.accelerator.map(work, jobs, "columns"):
                        self._write_tile(tile_colors)
                else:
                    for _ in self.accelerator.map(self._paint_tile_in_place, tiles, "columns"):
                        pass

        logger.info(f"Painting finished in {time.time() - start_time:.2f}s")
        return self.buffer

    def render(self) -> PixelBuffer:
        """Run compute() then paint()."""
        self.compute()
        return self.paint()

    def _compute_pixel(self, x: int, y: int, stats: GlobalStats) -> None:
        result = self.fractal.compute(self.plane.pixel_to_complex(x, y))
        self.buffer.store_result(x, y, result)
        stats.update(result.iterations)

    def _compute_tile_in_place(self, stats: GlobalStats, tile: TileSpec) -> None:
        for x, y in tile.pixels():
            self._compute_pixel(x, y, stats)

    def _store_tile(self, tile_result: TileResult, stats: GlobalStats) -> None:
        for (x, y), result in zip(tile_result.tile.pixels(), tile_result.results):
            self.buffer.store_result(x, y, result)
        stats.update(tile_result.largest_iteration)

    def _paint_tile_in_place(self, tile: TileSpec) -> None:
        for x, y in tile.pixels():
            color = self.fractal.color_for(self.buffer.result_at(x, y), self._stats)
            self.buffer.set_pixel(x, y, color)

    def _write_tile(self, tile_colors: TileColors) -> None:
        for (x, y), color in zip(tile_colors.tile.pixels(), tile_colors.colors):
            self.buffer.set_pixel(x, y, color)
