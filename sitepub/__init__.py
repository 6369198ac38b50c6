"""sitepub - multi-language static site publishing pipeline."""

__version__ = "0.1.0"
