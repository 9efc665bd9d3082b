"""
Image export and viewer launch for fractal rendering.

This module writes a painted PixelBuffer to disk through Pillow (BMP, PNG,
TIFF) with optional render metadata, and opens finished images with the
platform's default viewer.
"""

from dataclasses import dataclass, asdict, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional, Tuple, Union
import json
import logging
import os
import subprocess
import sys

from PIL import Image, PngImagePlugin

from .. import __version__
from .pixel_buffer import PixelBuffer

logger = logging.getLogger(__name__)


@dataclass
class RenderMetadata:
    """Metadata for fractal renders."""

    # Fractal parameters
    fractal_type: str
    center: Tuple[float, float]
    zoom: float
    resolution: Tuple[int, int]  # width, height
    max_iterations: int
    escape_radius: float

    # Rendering parameters
    color_depth: int
    palette: str
    light: float = 0.0
    mix_palette: Optional[str] = None

    # Timing and statistics
    render_time_seconds: float = 0.0
    largest_iteration: int = 1
    parallel_backend: Optional[str] = None

    # Generation info
    timestamp: str = ""
    software_version: str = __version__

    fractal_parameters: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Set default timestamp if not provided."""
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        """Convert metadata to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RenderMetadata':
        """Create metadata from dictionary."""
        data = dict(data)
        for key in ('center', 'resolution'):
            if key in data and data[key] is not None:
                data[key] = tuple(data[key])
        return cls(**data)

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> 'RenderMetadata':
        """Create metadata from JSON string."""
        return cls.from_dict(json.loads(json_str))


class ImageExporter:
    """Writes painted rasters to image files."""

    def __init__(self):
        self.supported_formats = {
            '.bmp': self._save_bmp,
            '.png': self._save_png,
            '.tiff': self._save_tiff,
            '.tif': self._save_tiff,
        }

    def to_image(self, buffer: PixelBuffer) -> Image.Image:
        """Convert a painted buffer into a Pillow image (L, RGB or RGBA)."""
        return Image.fromarray(buffer.to_array())

    def save_raster(self, buffer: PixelBuffer, filepath: Union[str, Path],
                    metadata: Optional[RenderMetadata] = None) -> Path:
        """
        Save a painted buffer to file.

        Args:
            buffer: Fully painted pixel buffer
            filepath: Output file path; the suffix selects the format
            metadata: Render metadata to embed or write alongside

        Returns:
            The written path
        """
        filepath = Path(filepath)
        suffix = filepath.suffix.lower()

        if suffix not in self.supported_formats:
            supported = ', '.join(self.supported_formats.keys())
            raise ValueError(f"Unsupported format '{suffix}'. Supported: {supported}")
        if buffer.is_locked:
            raise RuntimeError("Cannot save a pixel buffer while it is locked")

        logger.info(f"Saving file {filepath}")
        pil_image = self.to_image(buffer)

        save_method = self.supported_formats[suffix]
        save_method(pil_image, filepath, metadata)

        logger.info(f"Saved image: {filepath} ({pil_image.size[0]}x{pil_image.size[1]}, {pil_image.mode})")
        return filepath

    def _save_bmp(self, pil_image: Image.Image, filepath: Path,
                  metadata: Optional[RenderMetadata]) -> None:
        """Save as BMP; metadata goes to a companion JSON file."""
        pil_image.save(filepath, "BMP")
        if metadata:
            self._save_metadata_sidecar(filepath, metadata)

    def _save_png(self, pil_image: Image.Image, filepath: Path,
                  metadata: Optional[RenderMetadata]) -> None:
        """Save as PNG with metadata."""
        pnginfo = PngImagePlugin.PngInfo()

        if metadata:
            pnginfo.add_text("Title", f"Fractal: {metadata.fractal_type}")
            pnginfo.add_text("Software", f"fractalgen v{metadata.software_version}")
            pnginfo.add_text("Creation Time", metadata.timestamp)
            pnginfo.add_text("FractalMetadata", metadata.to_json())

        pil_image.save(filepath, "PNG", pnginfo=pnginfo)

    def _save_tiff(self, pil_image: Image.Image, filepath: Path,
                   metadata: Optional[RenderMetadata]) -> None:
        """Save as LZW-compressed TIFF; metadata goes to a companion JSON file."""
        pil_image.save(filepath, "TIFF", compression='tiff_lzw')
        if metadata:
            self._save_metadata_sidecar(filepath, metadata)

    def _save_metadata_sidecar(self, filepath: Path, metadata: RenderMetadata) -> None:
        json_path = filepath.with_suffix('.json')
        with open(json_path, 'w') as f:
            f.write(metadata.to_json())
        logger.info(f"Saved metadata: {json_path}")

    def extract_metadata_from_image(self, filepath: Union[str, Path]) -> Optional[RenderMetadata]:
        """
        Extract fractal metadata from a saved image or its companion JSON file.

        Args:
            filepath: Path to image file

        Returns:
            Extracted metadata or None
        """
        filepath = Path(filepath)

        with Image.open(filepath) as img:
            text = getattr(img, 'text', None) or {}
            if 'FractalMetadata' in text:
                return RenderMetadata.from_json(text['FractalMetadata'])

        json_path = filepath.with_suffix('.json')
        if json_path.exists():
            with open(json_path, 'r') as f:
                return RenderMetadata.from_json(f.read())

        return None


def open_image(filepath: Union[str, Path]) -> None:
    """Open an image with the platform's default viewer."""
    filepath = Path(filepath).resolve()
    if not filepath.exists():
        raise FileNotFoundError(f"File does not exist: {filepath}")

    logger.info(f"Opening: {filepath}")

    if sys.platform.startswith('win'):
        os.startfile(str(filepath))
    elif sys.platform == 'darwin':
        subprocess.Popen(['open', str(filepath)])
    else:
        subprocess.Popen(['xdg-open', str(filepath)])
