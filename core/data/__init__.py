"""
core/data - Data Services Layer

Modules:
    - images: AMI metadata collection, caching and querying

Usage:
    from core.data.images import CacheManager, ImageCache, ImageCollector
"""

from .images import CacheManager, ImageCache, ImageCollector

__all__ = [
    "CacheManager",
    "ImageCache",
    "ImageCollector",
]
