"""Parallel execution backends."""
