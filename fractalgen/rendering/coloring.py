"""
Colors and palette management for fractal rendering.

This module provides the 8-bit color value written into the raster and the
fixed-size 256-entry palettes used for index-based color lookup, including
loading from Matlab colormap text files and matplotlib colormaps, mixing two
palettes and lightening a palette.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union
import logging

from matplotlib import colormaps

logger = logging.getLogger(__name__)

PALETTE_LENGTH = 256

# Directory searched for palette files given by name only
PALETTES_DIRECTORY = "palettes"

_MATLAB_LINE = re.compile(
    r"^\s*(?P<r>\d+(?:\.\d+)?)\s+(?P<g>\d+(?:\.\d+)?)\s+(?P<b>\d+(?:\.\d+)?)\s*$"
)


@dataclass(frozen=True)
class Color:
    """8-bit RGBA color."""
    r: int
    g: int
    b: int
    a: int = 255

    def __post_init__(self):
        """Validate color components."""
        for component in (self.r, self.g, self.b, self.a):
            if not 0 <= component <= 255:
                raise ValueError("Color components must be between 0 and 255")

    def to_tuple(self) -> Tuple[int, int, int]:
        """Convert to RGB tuple."""
        return (self.r, self.g, self.b)

    def to_rgba_tuple(self) -> Tuple[int, int, int, int]:
        return (self.r, self.g, self.b, self.a)

    @classmethod
    def from_unit_floats(cls, r: float, g: float, b: float) -> 'Color':
        """Create a color from components in 0-1, truncating to 8 bits."""
        return cls(int(r * 255), int(g * 255), int(b * 255))


BLACK = Color(0, 0, 0)


class Palette:
    """Fixed-length ordered sequence of colors indexed 0-255."""

    def __init__(self, colors: Sequence[Union[Color, Tuple[int, int, int]]], name: str = "Custom"):
        """
        Initialize color palette.

        Args:
            colors: Exactly 256 colors
            name: Human-readable name for the palette
        """
        self.name = name
        self._colors: Tuple[Color, ...] = tuple(
            c if isinstance(c, Color) else Color(*c) for c in colors
        )

        if len(self._colors) != PALETTE_LENGTH:
            raise ValueError(f"Palette must contain exactly {PALETTE_LENGTH} colors, "
                             f"got {len(self._colors)}")

    def __getitem__(self, index: int) -> Color:
        return self._colors[index]

    def __len__(self) -> int:
        return PALETTE_LENGTH

    def __iter__(self):
        return iter(self._colors)

    def __eq__(self, other) -> bool:
        return isinstance(other, Palette) and self._colors == other._colors

    def __repr__(self) -> str:
        return f"Palette({self.name!r})"

    def mix(self, other: 'Palette') -> 'Palette':
        """Average this palette entry-wise with another one."""
        colors = [
            Color((a.r + b.r) // 2, (a.g + b.g) // 2, (a.b + b.b) // 2)
            for a, b in zip(self._colors, other._colors)
        ]
        return Palette(colors, name=f"{self.name}+{other.name}")

    def lighten(self, light: float) -> 'Palette':
        """
        Move every entry toward white.

        Args:
            light: Fraction of the remaining distance to white (0-1)

        Returns:
            New palette; the same palette when light is 0
        """
        if not 0.0 <= light <= 1.0:
            raise ValueError("light must be between 0 and 1")
        if light == 0.0:
            return self

        def up(component: int) -> int:
            return component + int((255 - component) * light)

        colors = [Color(up(c.r), up(c.g), up(c.b)) for c in self._colors]
        return Palette(colors, name=f"{self.name}(light={light})")

    @classmethod
    def grayscale(cls) -> 'Palette':
        """Linear black-to-white palette."""
        return cls([Color(i, i, i) for i in range(PALETTE_LENGTH)], name="Grayscale")

    @classmethod
    def from_matplotlib(cls, cmap_name: str) -> 'Palette':
        """Create palette by sampling a matplotlib colormap at 256 points."""
        try:
            cmap = colormaps[cmap_name]
        except KeyError:
            raise ValueError(f"Unknown matplotlib colormap '{cmap_name}'") from None

        colors = []
        for i in range(PALETTE_LENGTH):
            r, g, b, _ = cmap(i / (PALETTE_LENGTH - 1))
            colors.append(Color.from_unit_floats(r, g, b))

        return cls(colors, name=cmap_name)

    @classmethod
    def load_from_file(cls, filepath: Union[str, Path]) -> 'Palette':
        """
        Load palette from a Matlab colormap text file.

        Each line holds "r g b" with components in 0-1. Lines past the 256th
        are ignored and missing entries are black.
        """
        filepath = Path(filepath)
        logger.info(f"Opening palette file '{filepath}'")

        colors: List[Color] = []
        with open(filepath, 'r') as f:
            for line in f:
                if len(colors) >= PALETTE_LENGTH:
                    break
                match = _MATLAB_LINE.match(line)
                if match is None:
                    continue
                r, g, b = (float(match.group(k)) for k in ('r', 'g', 'b'))
                if max(r, g, b) > 1.0:
                    raise ValueError(f"Color components must be between 0 and 1 in {filepath}: {line.strip()}")
                colors.append(Color.from_unit_floats(r, g, b))

        if not colors:
            raise ValueError(f"No valid colors found in {filepath}")

        if len(colors) < PALETTE_LENGTH:
            logger.warning(f"Palette {filepath.name} has {len(colors)} colors, "
                           f"padding with black to {PALETTE_LENGTH}")
            colors.extend([BLACK] * (PALETTE_LENGTH - len(colors)))

        return cls(colors, name=filepath.stem)

    def save_to_file(self, filepath: Union[str, Path]) -> None:
        """
        Save palette as a Matlab colormap text file.

        Components are written at the middle of their 8-bit bin, so
        load_from_file() truncates them back to the same colors.
        """
        def unit(component: int) -> float:
            return min(component + 0.5, 255) / 255

        with open(filepath, 'w') as f:
            for color in self._colors:
                f.write(f"   {unit(color.r):.7f}   {unit(color.g):.7f}   {unit(color.b):.7f}\n")


def resolve_palette(name: str, base_dir: Optional[Path] = None) -> Palette:
    """
    Resolve a palette given by file path, by file name inside the palettes
    directory, or by matplotlib colormap name.

    Args:
        name: Path, file name or colormap name
        base_dir: Directory holding the palettes directory (defaults to cwd)

    Returns:
        Loaded palette
    """
    path = Path(name)
    if path.is_file():
        return Palette.load_from_file(path)

    candidate = (base_dir or Path.cwd()) / PALETTES_DIRECTORY / name
    if candidate.is_file():
        return Palette.load_from_file(candidate)

    if name in colormaps:
        return Palette.from_matplotlib(name)

    raise ValueError(f"Palette '{name}' is neither a palette file nor a matplotlib colormap")


def build_palette(primary: Palette, mix: Optional[Palette] = None, light: float = 0.0) -> Palette:
    """Combine the primary palette with an optional mix palette and light factor."""
    palette = primary if mix is None else primary.mix(mix)
    return palette.lighten(light)
