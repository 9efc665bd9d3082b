"""
  Tests of pixel storage: depths, byte layout, bounds and lock scopes.
"""

import unittest

import numpy as np

from fractalgen.core.math_functions import PixelResult
from fractalgen.rendering.coloring import Color
from fractalgen.rendering.pixel_buffer import PixelBuffer, ColorDepth, luma


class TestDepthRoundTrip(unittest.TestCase):

    def test_rgb(self):
        buffer = PixelBuffer(4, 3, ColorDepth.RGB)
        with buffer.locked():
            buffer.set_pixel(2, 1, Color(10, 20, 30))
        self.assertEqual(buffer.get_pixel(2, 1), Color(10, 20, 30))

    def test_rgba(self):
        buffer = PixelBuffer(4, 3, ColorDepth.RGBA)
        with buffer.locked():
            buffer.set_pixel(3, 2, Color(10, 20, 30, 128))
        self.assertEqual(buffer.get_pixel(3, 2), Color(10, 20, 30, 128))

    def test_grayscale_is_lossy(self):
        buffer = PixelBuffer(4, 3, ColorDepth.GRAYSCALE)
        with buffer.locked():
            buffer.set_pixel(0, 0, Color(10, 20, 30))
            buffer.set_pixel(1, 0, Color(200, 200, 200))
        # (10 * 299 + 20 * 587 + 30 * 114) // 1000 = 18
        self.assertEqual(buffer.get_pixel(0, 0), Color(18, 18, 18))
        self.assertEqual(buffer.get_pixel(1, 0), Color(200, 200, 200))

    def test_luma(self):
        self.assertEqual(luma(Color(255, 255, 255)), 255)
        self.assertEqual(luma(Color(255, 0, 0)), 76)

    def test_unsupported_depth(self):
        with self.assertRaises(ValueError):
            PixelBuffer(4, 3, 2)


class TestByteLayout(unittest.TestCase):

    def test_rgb_stored_as_bgr(self):
        buffer = PixelBuffer(2, 2, ColorDepth.RGB)
        with buffer.locked():
            buffer.set_pixel(1, 1, Color(1, 2, 3))
        offset = buffer.offset(1, 1)
        self.assertEqual(offset, (1 * 2 + 1) * 3)
        self.assertEqual(buffer.to_bytes()[offset:offset + 3], bytes([3, 2, 1]))

    def test_rgba_stored_as_bgra(self):
        buffer = PixelBuffer(2, 2, ColorDepth.RGBA)
        with buffer.locked():
            buffer.set_pixel(0, 1, Color(1, 2, 3, 4))
        offset = buffer.offset(0, 1)
        self.assertEqual(buffer.to_bytes()[offset:offset + 4], bytes([3, 2, 1, 4]))

    def test_to_array_rgb_order(self):
        buffer = PixelBuffer(3, 2, ColorDepth.RGB)
        with buffer.locked():
            buffer.set_pixel(2, 1, Color(1, 2, 3))
        array = buffer.to_array()
        self.assertEqual(array.shape, (2, 3, 3))
        self.assertEqual(array.dtype, np.uint8)
        self.assertEqual(tuple(array[1, 2]), (1, 2, 3))

    def test_to_array_shapes(self):
        self.assertEqual(PixelBuffer(3, 2, ColorDepth.GRAYSCALE).to_array().shape, (2, 3))
        self.assertEqual(PixelBuffer(3, 2, ColorDepth.RGBA).to_array().shape, (2, 3, 4))


class TestBounds(unittest.TestCase):

    def setUp(self):
        self.buffer = PixelBuffer(5, 4)

    def test_set_pixel_out_of_range(self):
        with self.buffer.locked():
            for x, y in [(5, 0), (0, 4), (-1, 0), (0, -1)]:
                with self.assertRaises(IndexError):
                    self.buffer.set_pixel(x, y, Color(1, 1, 1))

    def test_get_pixel_out_of_range(self):
        with self.assertRaises(IndexError):
            self.buffer.get_pixel(5, 0)
        with self.assertRaises(IndexError):
            self.buffer.get_pixel(0, 4)

    def test_result_out_of_range(self):
        with self.assertRaises(IndexError):
            self.buffer.store_result(5, 0, PixelResult(1, 0j))


class TestLocking(unittest.TestCase):

    def setUp(self):
        self.buffer = PixelBuffer(2, 2)

    def test_write_requires_lock(self):
        with self.assertRaises(RuntimeError):
            self.buffer.set_pixel(0, 0, Color(1, 1, 1))

    def test_double_lock(self):
        self.buffer.lock()
        with self.assertRaises(RuntimeError):
            self.buffer.lock()

    def test_unlock_without_lock(self):
        with self.assertRaises(RuntimeError):
            self.buffer.unlock()

    def test_writes_visible_only_after_unlock(self):
        self.buffer.lock()
        self.buffer.set_pixel(0, 0, Color(9, 9, 9))
        self.assertEqual(self.buffer.to_bytes()[:3], bytes([0, 0, 0]))
        self.assertEqual(self.buffer.get_pixel(0, 0), Color(9, 9, 9))
        self.buffer.unlock()
        self.assertFalse(self.buffer.is_locked)
        self.assertEqual(self.buffer.to_bytes()[:3], bytes([9, 9, 9]))

    def test_failed_scope_discards_writes(self):
        with self.assertRaises(ZeroDivisionError):
            with self.buffer.locked():
                self.buffer.set_pixel(0, 0, Color(9, 9, 9))
                1 / 0
        self.assertFalse(self.buffer.is_locked)
        self.assertEqual(self.buffer.get_pixel(0, 0), Color(0, 0, 0))


class TestResults(unittest.TestCase):

    def test_store_and_read(self):
        buffer = PixelBuffer(3, 3)
        result = PixelResult(7, 1 + 2j, (0.5, 1.0, 1.5))
        buffer.store_result(1, 2, result)
        self.assertEqual(buffer.result_at(1, 2), result)
        self.assertEqual(buffer.largest_iteration(), 7)
        self.assertFalse(buffer.fully_computed)

    def test_uncomputed_pixel(self):
        with self.assertRaises(RuntimeError):
            PixelBuffer(3, 3).result_at(0, 0)

    def test_clear_results(self):
        buffer = PixelBuffer(1, 1)
        buffer.store_result(0, 0, PixelResult(1, 0j))
        self.assertTrue(buffer.fully_computed)
        buffer.clear_results()
        with self.assertRaises(RuntimeError):
            buffer.result_at(0, 0)


if __name__ == "__main__":
    unittest.main()
