"""Palettes, pixel buffers and image export."""
