"""
  Tests of the viewport mapping and the per-point iteration kernels.
"""

import unittest

from fractalgen.core.engine import FractalEngine
from fractalgen.core.fractal_types import FractalRegistry
from fractalgen.core.math_functions import (ComplexPlane, FractalIterator, PixelResult,
                                            NEWTON_ROOTS, NEWTON_TOLERANCE)


class TestComplexPlane(unittest.TestCase):

    def setUp(self):
        self.plane = ComplexPlane(-0.5, 0.0, 1.0, 320, 200)

    def test_derived_extent(self):
        plane = self.plane
        self.assertAlmostEqual(plane.plane_width, 8.0)
        self.assertAlmostEqual(plane.plane_height, 5.0)
        self.assertAlmostEqual(plane.xmin, -4.5)
        self.assertAlmostEqual(plane.ymin, -2.5)
        self.assertAlmostEqual(plane.xmax, 3.5)
        self.assertAlmostEqual(plane.ymax, 2.5)

    def test_zoom_shrinks_extent(self):
        plane = ComplexPlane(0.0, 0.0, 4.0, 100, 50)
        self.assertAlmostEqual(plane.plane_width, 2.0)
        self.assertAlmostEqual(plane.plane_height, 1.0)

    def test_first_pixel_maps_to_corner(self):
        self.assertEqual(self.plane.pixel_to_complex(0, 0), complex(-4.5, -2.5))

    def test_round_trip_within_one_pixel(self):
        for plane in [self.plane,
                      ComplexPlane(0.3, -0.7, 37.5, 123, 77),
                      ComplexPlane(-1.25, 0.1, -2.0, 64, 64)]:
            for x in range(plane.width):
                h = plane.pixel_to_horizontal(x)
                assert abs(plane.horizontal_to_pixel(h) - x) <= 1
            for y in range(plane.height):
                v = plane.pixel_to_vertical(y)
                assert abs(plane.vertical_to_pixel(v) - y) <= 1

    def test_complex_round_trip(self):
        px, py = self.plane.complex_to_pixel(self.plane.pixel_to_complex(100, 50))
        self.assertLessEqual(abs(px - 100), 1)
        self.assertLessEqual(abs(py - 50), 1)

    def test_zero_zoom_rejected(self):
        with self.assertRaises(ValueError):
            ComplexPlane(0.0, 0.0, 0.0, 320, 200)

    def test_non_positive_size_rejected(self):
        with self.assertRaises(ValueError):
            ComplexPlane(0.0, 0.0, 1.0, 0, 200)
        with self.assertRaises(ValueError):
            ComplexPlane(0.0, 0.0, 1.0, 320, -1)


class TestPixelResult(unittest.TestCase):

    def test_defaults(self):
        result = PixelResult(3, 1 + 1j)
        self.assertEqual(result.root_distances, (0.0, 0.0, 0.0))

    def test_negative_iterations_rejected(self):
        with self.assertRaises(ValueError):
            PixelResult(-1, 0j)


class TestEscapeTime(unittest.TestCase):

    def test_origin_never_escapes(self):
        """Test that c == 0 always runs to max_iter"""
        for kmax in [1, 2, 3, 4, 10, 20, 33, 45, 100, 256]:
            result = FractalIterator(kmax).escape_time(0j, 0j)
            assert result.iterations == kmax

    def test_points_clearly_outside_set(self):
        for kmax in [1, 2, 3, 5, 10, 20, 100]:
            iterator = FractalIterator(kmax, escape_radius=2.0)
            for c in [complex(5, 4), complex(2, 1), complex(-2, 1),
                      complex(2, -1), complex(-2, -1)]:
                assert iterator.escape_time(0j, c).iterations == 1

    def test_known_point(self):
        iterator = FractalIterator(256, escape_radius=2.0)
        # 1, 2: |z| reaches the radius on the second iteration
        result = iterator.escape_time(0j, complex(1, 0))
        self.assertEqual(result.iterations, 2)
        self.assertEqual(result.last_z, complex(2, 0))

    def test_runs_at_least_once(self):
        result = FractalIterator(10, escape_radius=1.0).escape_time(complex(100, 0), 0j)
        self.assertEqual(result.iterations, 1)

    def test_magnitude_beyond_largest_float_escapes(self):
        iterator = FractalIterator(10, escape_radius=1e308)
        result = iterator.escape_time(0j, complex(1.5e308, 1.5e308))
        self.assertEqual(result.iterations, 1)

    def test_huge_escape_radius_render(self):
        plane = ComplexPlane(-0.5, 0.0, 1.0, 32, 20)
        for name in ('mandelbrot', 'julia'):
            fractal = FractalRegistry.create_fractal(name, escape_radius=1e200)
            buffer = FractalEngine(fractal, plane).render()
            self.assertTrue(buffer.fully_computed)

    def test_escape_radius_still_exact_when_huge(self):
        # 2, 6, 38, 1446, ... first passes 1e200 at about 2e202
        iterator = FractalIterator(256, escape_radius=1e200)
        result = iterator.escape_time(0j, complex(2, 0))
        self.assertGreaterEqual(abs(result.last_z), 1e200)
        self.assertLess(abs(result.last_z), 1e300)

    def test_invalid_settings(self):
        with self.assertRaises(ValueError):
            FractalIterator(0)
        with self.assertRaises(ValueError):
            FractalIterator(10, escape_radius=0.0)


class TestNewton(unittest.TestCase):

    def setUp(self):
        self.iterator = FractalIterator(50)

    def test_root_converges_in_one_iteration(self):
        result = self.iterator.newton(complex(1, 0))
        self.assertEqual(result.iterations, 1)
        self.assertLess(result.root_distances[0], NEWTON_TOLERANCE)

    def test_converges_to_real_root(self):
        result = self.iterator.newton(complex(2, 0))
        self.assertLess(result.iterations, 50)
        self.assertLess(abs(result.last_z - 1), NEWTON_TOLERANCE)

    def test_origin_stays_in_place(self):
        result = self.iterator.newton(0j)
        self.assertEqual(result.iterations, 50)
        self.assertEqual(result.last_z, 0j)

    def test_third_root_strict(self):
        result = self.iterator.newton(NEWTON_ROOTS[2], strict_root_check=True)
        self.assertEqual(result.iterations, 1)
        self.assertLess(result.root_distances[2], NEWTON_TOLERANCE)

    def test_third_root_legacy_check_runs_to_max(self):
        result = self.iterator.newton(NEWTON_ROOTS[2], strict_root_check=False)
        self.assertEqual(result.iterations, 50)
        self.assertLess(result.root_distances[2], NEWTON_TOLERANCE)

    def test_second_root_either_check(self):
        for strict in (True, False):
            result = self.iterator.newton(NEWTON_ROOTS[1], strict_root_check=strict)
            self.assertEqual(result.iterations, 1)


if __name__ == "__main__":
    unittest.main()
