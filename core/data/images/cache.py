"""
core/data/images/cache.py - Image cache store

Holds the current Snapshot behind a reader/writer lock. Readers hold the
shared lock only long enough to grab the snapshot reference; the refresh
path builds its replacement with no lock held and takes the exclusive lock
only for the reference swap.

Example:
    cache = ImageCache(regions=["us-east-1", "us-west-2"])
    cache.swap(new_snapshot)

    images = cache.filtered_images("us-east-1", Filter(filter_by_owner_id("111122223333")))
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from core.exceptions import UnsupportedRegionError
from core.parallel.rwlock import ReadWriteLock
from core.region.data import ALL_REGIONS

from .filters import Filter
from .snapshot import EMPTY_SNAPSHOT, Snapshot
from .types import Image

logger = logging.getLogger(__name__)


class ImageCache:
    """Thread-safe holder of the current image snapshot"""

    def __init__(self, regions: Iterable[str] | None = None):
        """Initialize cache

        Args:
            regions: Regions that may be queried (all supported regions if empty)
        """
        self._regions: list[str] = list(regions or ALL_REGIONS)
        self._region_set = frozenset(self._regions)
        self._snapshot: Snapshot = EMPTY_SNAPSHOT
        self._lock = ReadWriteLock()
        self._swaps = 0

    def supported_regions(self) -> list[str]:
        """Configured regions, in configuration order"""
        return list(self._regions)

    def is_supported(self, region: str) -> bool:
        return region in self._region_set

    @property
    def snapshot(self) -> Snapshot:
        """Currently served snapshot"""
        with self._lock.read_locked():
            return self._snapshot

    def swap(self, snapshot: Snapshot) -> Snapshot:
        """Publish snapshot, returns the one it replaced"""
        with self._lock.write_locked():
            previous = self._snapshot
            self._snapshot = snapshot
            self._swaps += 1
        logger.info(f"Snapshot swapped: {previous.image_count} -> {snapshot.image_count} images")
        return previous

    def clear(self) -> None:
        """Drop all cached images"""
        self.swap(EMPTY_SNAPSHOT)

    def images_in_region(self, region: str) -> list[Image]:
        """Cached images of region

        Raises:
            UnsupportedRegionError: region is not configured
        """
        if region not in self._region_set:
            raise UnsupportedRegionError(region)
        return self.snapshot.images_in_region(region)

    def filtered_images(self, region: str, image_filter: Filter | None = None) -> list[Image]:
        """Cached images of region narrowed by image_filter

        Raises:
            UnsupportedRegionError: region is not configured
        """
        images = self.images_in_region(region)
        if image_filter is None:
            return images
        return image_filter.apply(images)

    @property
    def stats(self) -> dict[str, Any]:
        """Cache statistics"""
        snapshot = self.snapshot
        return {
            "images": snapshot.image_count,
            "regions": len(self._regions),
            "swaps": self._swaps,
            "snapshot_age_seconds": round(snapshot.age_seconds, 1),
        }

    def __repr__(self) -> str:
        stats = self.stats
        return f"ImageCache(images={stats['images']}, regions={stats['regions']}, swaps={stats['swaps']})"
