"""Static site build."""

from .binary import HugoBinaryCache
from .hugo import SiteBuilder

__all__ = ["HugoBinaryCache", "SiteBuilder"]
