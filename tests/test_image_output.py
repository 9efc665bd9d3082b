"""
  Tests of image export, render metadata and the viewer launch.
"""

import tempfile
import unittest
from pathlib import Path
from unittest import mock

from PIL import Image

from fractalgen.rendering.coloring import Color
from fractalgen.rendering.image_output import ImageExporter, RenderMetadata, open_image
from fractalgen.rendering.pixel_buffer import PixelBuffer, ColorDepth


def painted_buffer(depth):
    buffer = PixelBuffer(4, 3, depth)
    with buffer.locked():
        for y in range(3):
            for x in range(4):
                buffer.set_pixel(x, y, Color(x * 60, y * 100, 7))
    return buffer


def sample_metadata():
    return RenderMetadata(fractal_type='julia', center=(-0.5, 0.0), zoom=1.0,
                          resolution=(4, 3), max_iterations=256, escape_radius=10e19,
                          color_depth=3, palette='hsv',
                          fractal_parameters={'c_real': -0.2, 'c_imag': 0.75})


class TestImageExporter(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmpdir.name)
        self.exporter = ImageExporter()

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_bmp_pixels(self):
        path = self.exporter.save_raster(painted_buffer(ColorDepth.RGB), self.dir / "out.bmp")
        with Image.open(path) as img:
            self.assertEqual(img.mode, "RGB")
            self.assertEqual(img.size, (4, 3))
            self.assertEqual(img.getpixel((3, 2)), (180, 200, 7))

    def test_grayscale_png(self):
        path = self.exporter.save_raster(painted_buffer(ColorDepth.GRAYSCALE), self.dir / "out.png")
        with Image.open(path) as img:
            self.assertEqual(img.mode, "L")

    def test_rgba_tiff(self):
        path = self.exporter.save_raster(painted_buffer(ColorDepth.RGBA), self.dir / "out.tif")
        with Image.open(path) as img:
            self.assertEqual(img.mode, "RGBA")
            self.assertEqual(img.getpixel((1, 1)), (60, 100, 7, 255))

    def test_unsupported_format(self):
        with self.assertRaises(ValueError):
            self.exporter.save_raster(painted_buffer(ColorDepth.RGB), self.dir / "out.gif")

    def test_locked_buffer(self):
        buffer = painted_buffer(ColorDepth.RGB)
        buffer.lock()
        with self.assertRaises(RuntimeError):
            self.exporter.save_raster(buffer, self.dir / "out.bmp")

    def test_png_metadata(self):
        path = self.exporter.save_raster(painted_buffer(ColorDepth.RGB), self.dir / "out.png",
                                         sample_metadata())
        metadata = self.exporter.extract_metadata_from_image(path)
        self.assertEqual(metadata.fractal_type, 'julia')
        self.assertEqual(metadata.center, (-0.5, 0.0))
        self.assertEqual(metadata.fractal_parameters['c_imag'], 0.75)

    def test_bmp_metadata_sidecar(self):
        path = self.exporter.save_raster(painted_buffer(ColorDepth.RGB), self.dir / "out.bmp",
                                         sample_metadata())
        self.assertTrue((self.dir / "out.json").exists())
        metadata = self.exporter.extract_metadata_from_image(path)
        self.assertEqual(metadata.resolution, (4, 3))

    def test_no_metadata(self):
        path = self.exporter.save_raster(painted_buffer(ColorDepth.RGB), self.dir / "out.png")
        self.assertIsNone(self.exporter.extract_metadata_from_image(path))


class TestRenderMetadata(unittest.TestCase):

    def test_json(self):
        metadata = sample_metadata()
        self.assertTrue(metadata.timestamp)
        self.assertEqual(RenderMetadata.from_json(metadata.to_json()), metadata)


class TestOpenImage(unittest.TestCase):

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            open_image("/nonexistent/fractal.bmp")

    def test_uses_platform_opener(self):
        with tempfile.NamedTemporaryFile(suffix=".bmp") as f:
            with mock.patch("fractalgen.rendering.image_output.sys.platform", "linux"), \
                    mock.patch("fractalgen.rendering.image_output.subprocess.Popen") as popen:
                open_image(f.name)
            popen.assert_called_once_with(['xdg-open', str(Path(f.name).resolve())])


if __name__ == "__main__":
    unittest.main()
