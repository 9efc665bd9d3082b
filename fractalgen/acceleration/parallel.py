"""
Parallel backend for the compute and paint phases.

This module splits the image into column tiles (optionally cut into row
chunks) and fans them out over a thread or process pool from
concurrent.futures.
"""

from concurrent.futures import ThreadPoolExecutor, ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Sequence, Tuple, TypeVar
import logging
import os
import time

from ..core.math_functions import ComplexPlane, PixelResult
from ..rendering.coloring import Color

logger = logging.getLogger(__name__)

BACKENDS = ('thread', 'process')

T = TypeVar('T')
R = TypeVar('R')


@dataclass(frozen=True)
class TileSpec:
    """Rectangular block of pixels processed by one task."""
    tile_id: int
    x_start: int
    x_end: int
    y_start: int
    y_end: int

    @property
    def width(self) -> int:
        return self.x_end - self.x_start

    @property
    def height(self) -> int:
        return self.y_end - self.y_start

    def pixels(self) -> Iterator[Tuple[int, int]]:
        """Pixel coordinates of the tile, column by column."""
        for x in range(self.x_start, self.x_end):
            for y in range(self.y_start, self.y_end):
                yield x, y


@dataclass
class TileResult:
    """Compute-phase output of a single tile."""
    tile: TileSpec
    results: List[PixelResult]
    largest_iteration: int
    processing_time: float


@dataclass
class TileColors:
    """Paint-phase output of a single tile."""
    tile: TileSpec
    colors: List[Color]


def create_tile_grid(width: int, height: int, split_rows: bool = False,
                     rows_per_tile: int = 64) -> List[TileSpec]:
    """
    Create one tile per image column, optionally cut into row chunks.

    Args:
        width: Total image width
        height: Total image height
        split_rows: Also split each column into chunks of rows
        rows_per_tile: Rows per chunk when split_rows is set

    Returns:
        List of TileSpec objects
    """
    if rows_per_tile <= 0:
        raise ValueError("rows_per_tile must be positive")

    step = rows_per_tile if split_rows else height
    tiles = []
    tile_id = 0

    for x in range(width):
        for y in range(0, height, step):
            tiles.append(TileSpec(tile_id, x, x + 1, y, min(y + step, height)))
            tile_id += 1

    logger.debug(f"Created {len(tiles)} tiles for {width}x{height} image")
    return tiles


def compute_tile(fractal, plane: ComplexPlane, tile: TileSpec) -> TileResult:
    """
    Compute every pixel of a tile, usually in a worker process.

    Args:
        fractal: FractalType instance
        plane: Viewport used to map pixels to plane points
        tile: Tile to compute

    Returns:
        TileResult with results in tile.pixels() order
    """
    start_time = time.time()

    results = []
    largest = 0
    for x, y in tile.pixels():
        result = fractal.compute(plane.pixel_to_complex(x, y))
        results.append(result)
        largest = max(largest, result.iterations)

    return TileResult(tile, results, largest, time.time() - start_time)


def paint_tile(fractal, stats, job: Tuple[TileSpec, List[PixelResult]]) -> TileColors:
    """Color the stored results of a tile, usually in a worker process."""
    tile, results = job
    return TileColors(tile, [fractal.color_for(result, stats) for result in results])


def get_optimal_process_count() -> int:
    """Get optimal number of workers for fractal computation."""
    # Leave one core for system
    return max(1, (os.cpu_count() or 1) - 1)


class ParallelAccelerator:
    """Tile-based parallel execution over a thread or process pool."""

    def __init__(self, backend: str = 'thread', num_workers: Optional[int] = None,
                 split_rows: bool = False, rows_per_tile: int = 64):
        """
        Initialize parallel accelerator.

        Args:
            backend: 'thread' or 'process'
            num_workers: Number of workers (None for the optimal count)
            split_rows: Split columns into row chunks
            rows_per_tile: Rows per chunk when split_rows is set
        """
        if backend not in BACKENDS:
            raise ValueError(f"Unknown parallel backend '{backend}'. Available: {', '.join(BACKENDS)}")
        if num_workers is not None and num_workers <= 0:
            raise ValueError("num_workers must be positive")
        if rows_per_tile <= 0:
            raise ValueError("rows_per_tile must be positive")

        self.backend = backend
        self.num_workers = num_workers or get_optimal_process_count()
        self.split_rows = split_rows
        self.rows_per_tile = rows_per_tile

        logger.info(f"Parallel accelerator: {self.num_workers} {backend} workers"
                    f"{', rows split' if split_rows else ''}")

    @property
    def uses_processes(self) -> bool:
        return self.backend == 'process'

    def create_tiles(self, width: int, height: int) -> List[TileSpec]:
        return create_tile_grid(width, height, self.split_rows, self.rows_per_tile)

    def _executor(self):
        if self.uses_processes:
            return ProcessPoolExecutor(max_workers=self.num_workers)
        return ThreadPoolExecutor(max_workers=self.num_workers)

    def map(self, func: Callable[[T], R], items: Sequence[T], label: str = "tiles") -> Iterator[R]:
        """
        Run func over items in parallel, yielding results as they complete.

        The first failing task cancels the pending ones and its exception is
        re-raised to the caller.

        Args:
            func: Picklable callable when the process backend is used
            items: Work items
            label: Name used in progress messages

        Yields:
            Task results in completion order
        """
        total = len(items)
        if total == 0:
            return

        report_every = max(1, total // 10)

        with self._executor() as executor:
            futures = {executor.submit(func, item): i for i, item in enumerate(items)}
            completed = 0

            for future in as_completed(futures):
                try:
                    result = future.result()
                except Exception as e:
                    logger.error(f"Task {futures[future]} of {total} {label} failed: {e}")
                    for pending in futures:
                        pending.cancel()
                    raise

                completed += 1
                if completed % report_every == 0:
                    logger.info(f"Completed {completed}/{total} {label} ({completed / total * 100:.1f}%)")

                yield result
