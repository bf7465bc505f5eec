"""
core/data/images - AMI metadata cache

Classes:
    - Image: Immutable image record
    - Filter: Composable filter pipeline
    - Snapshot / SnapshotBuilder: Consistent published image set
    - ImageCache: Reader/writer locked snapshot holder
    - ImageCollector: Account -> region -> image refresh engine
    - CacheManager: Periodic refresh lifecycle

Usage:
    from core.data.images import CacheManager, ImageCache, ImageCollector

    cache = ImageCache(config.regions)
    manager = CacheManager(ImageCollector(config), cache, config.ttl_seconds)
    manager.start()
    manager.wait_warmed()

    images = cache.filtered_images("us-east-1", Filter(filter_by_tags({"state": ["available"]})))
"""

from .cache import ImageCache
from .collector import ImageCollector, RefreshResult
from .filters import (
    Filter,
    Filterer,
    FilterFunc,
    filter_by_image_id,
    filter_by_launch_permission,
    filter_by_owner_id,
    filter_by_state,
    filter_by_tags,
)
from .manager import CacheManager, RunOutcome
from .snapshot import EMPTY_SNAPSHOT, Snapshot, SnapshotBuilder
from .types import STATE_WEIGHTS, Image, rank, sort_by_state, state_score, state_weight

__all__ = [
    # Record
    "Image",
    "STATE_WEIGHTS",
    "state_weight",
    "state_score",
    "rank",
    "sort_by_state",
    # Filters
    "Filter",
    "Filterer",
    "FilterFunc",
    "filter_by_image_id",
    "filter_by_tags",
    "filter_by_owner_id",
    "filter_by_launch_permission",
    "filter_by_state",
    # Snapshot
    "Snapshot",
    "SnapshotBuilder",
    "EMPTY_SNAPSHOT",
    # Cache / refresh
    "ImageCache",
    "ImageCollector",
    "RefreshResult",
    "CacheManager",
    "RunOutcome",
]
