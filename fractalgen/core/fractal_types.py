"""
Fractal type definitions and parameter management.

This module defines the supported fractal variants as configurable classes
sharing one capability set: computing a per-pixel result from a plane point
and turning a stored result into a color.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional
import logging

from .math_functions import FractalIterator, PixelResult, NEWTON_TOLERANCE
from ..rendering.coloring import Color, Palette, BLACK

logger = logging.getLogger(__name__)

COLOR_BIT_DEPTH = 255


class FractalVariation(str, Enum):
    """Supported fractal variants."""
    MANDELBROT = 'mandelbrot'
    JULIA = 'julia'
    NEWTON = 'newton'
    SPIDERWEB = 'spiderweb'


@dataclass
class FractalParameters:
    """Base class for fractal parameters with validation."""

    max_iterations: int = 256
    escape_radius: float = 10e19

    def validate(self) -> None:
        """Validate parameter values."""
        if not isinstance(self.max_iterations, int) or isinstance(self.max_iterations, bool):
            raise ValueError("max_iterations must be an integer")
        if self.max_iterations <= 0:
            raise ValueError("max_iterations must be positive")
        if self.escape_radius <= 0:
            raise ValueError("escape_radius must be positive")


class FractalType(ABC):
    """Abstract base class for fractal types."""

    variation: FractalVariation

    def __init__(self, name: str, parameters: FractalParameters,
                 palette: Optional[Palette] = None):
        """
        Initialize fractal type.

        Args:
            name: Human-readable name for the fractal
            parameters: Fractal-specific parameters
            palette: Palette used for index-based coloring (grayscale if None)
        """
        self.name = name
        self.parameters = parameters
        self.parameters.validate()
        self.palette = palette if palette is not None else Palette.grayscale()
        self.iterator = FractalIterator(parameters.max_iterations, parameters.escape_radius)

    @abstractmethod
    def compute(self, point: complex) -> PixelResult:
        """
        Iterate a single plane point.

        Must depend only on the point and the fixed configuration, so
        distinct pixels can be computed concurrently.

        Args:
            point: Plane point of the pixel

        Returns:
            PixelResult for the pixel
        """
        pass

    @abstractmethod
    def color_for(self, result: PixelResult, stats) -> Color:
        """
        Turn a stored pixel result into a color.

        Args:
            result: Result produced by compute()
            stats: Frozen GlobalStats of the completed compute phase

        Returns:
            Pixel color
        """
        pass

    def get_description(self) -> str:
        """Get a description of this fractal type."""
        return f"{self.name} fractal"


@dataclass
class MandelbrotParameters(FractalParameters):
    """Parameters for Mandelbrot set generation."""


class MandelbrotSet(FractalType):
    """Mandelbrot set fractal implementation."""

    variation = FractalVariation.MANDELBROT

    def __init__(self, parameters: Optional[MandelbrotParameters] = None,
                 palette: Optional[Palette] = None):
        if parameters is None:
            parameters = MandelbrotParameters()
        super().__init__("Mandelbrot", parameters, palette)

    def compute(self, point: complex) -> PixelResult:
        """Compute Mandelbrot iterations with z0 = 0 and c = point."""
        return self.iterator.escape_time(0j, point)

    def color_for(self, result: PixelResult, stats) -> Color:
        """
        Palette color at index 255 * r^r, with r = iterations / max_iterations.

        Points that never escape get index 0.
        """
        max_iter = self.parameters.max_iterations
        if result.iterations >= max_iter:
            return self.palette[0]

        ratio = result.iterations / max_iter
        color_index = int(COLOR_BIT_DEPTH * ratio ** ratio)
        return self.palette[min(max(color_index, 0), COLOR_BIT_DEPTH)]

    def get_description(self) -> str:
        return "Mandelbrot set: z_{n+1} = z_n^2 + c, where c is the complex coordinate and z_0 = 0"


@dataclass
class JuliaParameters(FractalParameters):
    """Parameters for Julia set generation."""

    c_real: float = -0.2
    c_imag: float = 0.75

    def validate(self) -> None:
        """Validate Julia parameters."""
        super().validate()
        if not isinstance(self.c_real, (int, float)):
            raise ValueError("c_real must be numeric")
        if not isinstance(self.c_imag, (int, float)):
            raise ValueError("c_imag must be numeric")

    @property
    def c(self) -> complex:
        """Get the Julia constant as a complex number."""
        return complex(self.c_real, self.c_imag)


class JuliaSet(FractalType):
    """Julia set fractal implementation."""

    variation = FractalVariation.JULIA

    def __init__(self, parameters: Optional[JuliaParameters] = None,
                 palette: Optional[Palette] = None):
        if parameters is None:
            parameters = JuliaParameters()
        super().__init__("Julia", parameters, palette)

    def compute(self, point: complex) -> PixelResult:
        """Compute Julia set iterations with z0 = point."""
        return self.iterator.escape_time(point, self.parameters.c)

    def color_for(self, result: PixelResult, stats) -> Color:
        """Palette color at index floor(255 * iterations / max_iterations)."""
        color_index = result.iterations * COLOR_BIT_DEPTH // self.parameters.max_iterations
        return self.palette[min(max(color_index, 0), COLOR_BIT_DEPTH)]

    def get_description(self) -> str:
        return f"Julia set: z_{{n+1}} = z_n^2 + c, where c = {self.parameters.c} and z_0 is the complex coordinate"


@dataclass
class NewtonParameters(FractalParameters):
    """Parameters for the Newton fractal."""

    tolerance: float = NEWTON_TOLERANCE
    # False keeps the historical stopping test that checks the second root twice
    strict_root_check: bool = True

    def validate(self) -> None:
        super().validate()
        if self.tolerance <= 0:
            raise ValueError("tolerance must be positive")


class NewtonFractal(FractalType):
    """Newton's method on z^3 - 1, colored by the root each point reaches."""

    variation = FractalVariation.NEWTON

    def __init__(self, parameters: Optional[NewtonParameters] = None,
                 palette: Optional[Palette] = None):
        if parameters is None:
            parameters = NewtonParameters()
        super().__init__("Newton", parameters, palette)

    def compute(self, point: complex) -> PixelResult:
        return self.iterator.newton(point, self.parameters.tolerance,
                                    self.parameters.strict_root_check)

    def color_for(self, result: PixelResult, stats) -> Color:
        """
        Light the channel of the root the point converged to.

        Red, green and blue stand for the first, second and third root; the
        intensity fades with the iteration count relative to the largest
        count of the render. Points that reach no root are black.
        """
        tolerance = self.parameters.tolerance
        color_index = result.iterations * COLOR_BIT_DEPTH // stats.largest_iteration
        intensity = max(0, COLOR_BIT_DEPTH - color_index)

        d1, d2, d3 = result.root_distances
        if d1 < tolerance:
            return Color(intensity, 0, 0)
        elif d2 < tolerance:
            return Color(0, intensity, 0)
        elif d3 < tolerance:
            return Color(0, 0, intensity)
        return BLACK

    def get_description(self) -> str:
        return "Newton fractal: z_{n+1} = z_n - (z_n^3 - 1) / (3 z_n^2), colored by the reached root"


@dataclass
class SpiderwebParameters(FractalParameters):
    """Parameters for the Spiderweb fractal."""


class Spiderweb(FractalType):
    """Spiderweb fractal. Declared for completeness; not supported."""

    variation = FractalVariation.SPIDERWEB

    def __init__(self, parameters: Optional[SpiderwebParameters] = None,
                 palette: Optional[Palette] = None):
        if parameters is None:
            parameters = SpiderwebParameters()
        super().__init__("Spiderweb", parameters, palette)

    def compute(self, point: complex) -> PixelResult:
        raise NotImplementedError("The Spiderweb fractal is not supported")

    def color_for(self, result: PixelResult, stats) -> Color:
        raise NotImplementedError("The Spiderweb fractal is not supported")

    def get_description(self) -> str:
        return "Spiderweb fractal (not supported)"


class FractalRegistry:
    """Maps fractal variations to their implementations."""

    _fractals: Dict[FractalVariation, type] = {
        FractalVariation.MANDELBROT: MandelbrotSet,
        FractalVariation.JULIA: JuliaSet,
        FractalVariation.NEWTON: NewtonFractal,
        FractalVariation.SPIDERWEB: Spiderweb,
    }

    _parameters: Dict[FractalVariation, type] = {
        FractalVariation.MANDELBROT: MandelbrotParameters,
        FractalVariation.JULIA: JuliaParameters,
        FractalVariation.NEWTON: NewtonParameters,
        FractalVariation.SPIDERWEB: SpiderwebParameters,
    }

    @staticmethod
    def parse(name) -> FractalVariation:
        """Parse a variation from its name (case-insensitive)."""
        if isinstance(name, FractalVariation):
            return name
        try:
            return FractalVariation(str(name).lower())
        except ValueError:
            available = ', '.join(v.value for v in FractalVariation)
            raise ValueError(f"Unknown fractal type '{name}'. Available: {available}") from None

    @classmethod
    def get(cls, name) -> type:
        """
        Get a fractal class by name.

        Args:
            name: Fractal identifier or FractalVariation

        Returns:
            Fractal class
        """
        return cls._fractals[cls.parse(name)]

    @classmethod
    def list_fractals(cls) -> Dict[str, str]:
        """Get a dictionary of available fractals and their descriptions."""
        return {variation.value: fractal_class().get_description()
                for variation, fractal_class in cls._fractals.items()}

    @classmethod
    def create_fractal(cls, name, palette: Optional[Palette] = None, **kwargs) -> FractalType:
        """
        Create a fractal instance with the given parameters.

        Args:
            name: Fractal type name
            palette: Palette for index-based coloring
            **kwargs: Parameters for the fractal; keys the variation does not
                use are ignored

        Returns:
            Configured fractal instance
        """
        variation = cls.parse(name)
        param_class = cls._parameters[variation]
        accepted = param_class.__dataclass_fields__
        parameters = param_class(**{k: v for k, v in kwargs.items() if k in accepted})

        logger.debug(f"Creating {variation.value} fractal with {parameters}")
        return cls._fractals[variation](parameters, palette)
