"""Core fractal mathematics, fractal types and the rendering engine."""
