"""Boundary components that convert between raw input data and typed scenarios."""

from . import inputs  # noqa: F401

__all__ = ["inputs"]
