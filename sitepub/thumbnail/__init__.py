"""Thumbnail rendering."""

from .renderer import SIZE, ThumbnailRenderer

__all__ = ["SIZE", "ThumbnailRenderer"]
