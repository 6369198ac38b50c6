"""CDN cache invalidation."""

from .invalidator import (
    ALL_PATHS,
    CacheInvalidator,
    CloudFrontInvalidator,
    NullInvalidator,
    create_invalidator,
)

__all__ = [
    "ALL_PATHS",
    "CacheInvalidator",
    "CloudFrontInvalidator",
    "NullInvalidator",
    "create_invalidator",
]
