"""
core/data/images/snapshot.py - Consistent image snapshot

A Snapshot is the id -> Image map plus the region -> ids index built by one
refresh cycle. The id map is last-writer-wins across regions; the region
index resolves through a (region, id) map so a region never yields a record
collected in another region. All of it is built off to the side by a
SnapshotBuilder and published as a single immutable object, so a reader
never sees an index entry without its record.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType

from .types import Image


@dataclass(frozen=True)
class Snapshot:
    """Immutable set of cached images and their region index"""

    by_id: Mapping[str, Image] = field(default_factory=dict)
    ids_by_region: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    by_region_id: Mapping[tuple[str, str], Image] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        object.__setattr__(self, "by_id", MappingProxyType(dict(self.by_id)))
        object.__setattr__(
            self,
            "ids_by_region",
            MappingProxyType({region: tuple(ids) for region, ids in self.ids_by_region.items()}),
        )
        object.__setattr__(self, "by_region_id", MappingProxyType(dict(self.by_region_id)))

    def images_in_region(self, region: str) -> list[Image]:
        """Images indexed under region, in index order"""
        images = []
        for image_id in self.ids_by_region.get(region, ()):
            image = self.by_region_id.get((region, image_id))
            if image is None:
                image = self.by_id.get(image_id)
            if image is not None:
                images.append(image)
        return images

    def get(self, image_id: str) -> Image | None:
        return self.by_id.get(image_id)

    @property
    def image_count(self) -> int:
        return len(self.by_id)

    @property
    def regions(self) -> list[str]:
        return list(self.ids_by_region)

    @property
    def age_seconds(self) -> float:
        return (datetime.now() - self.created_at).total_seconds()

    def __len__(self) -> int:
        return len(self.by_id)


EMPTY_SNAPSHOT = Snapshot()


class SnapshotBuilder:
    """Per-cycle accumulator shared by all branches of one refresh cycle

    Branches add a whole region's worth of images at once, so the lock is
    taken once per branch completion.
    """

    def __init__(self) -> None:
        self._by_id: dict[str, Image] = {}
        self._ids_by_region: dict[str, list[str]] = {}
        self._by_region_id: dict[tuple[str, str], Image] = {}
        self._seen: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    def add(self, region: str, images: Iterable[Image]) -> int:
        """Add images found in region, returns how many were added"""
        batch = list(images)
        with self._lock:
            ids = self._ids_by_region.setdefault(region, [])
            seen = self._seen.setdefault(region, set())
            for image in batch:
                self._by_id[image.id] = image
                self._by_region_id[(region, image.id)] = image
                if image.id not in seen:
                    seen.add(image.id)
                    ids.append(image.id)
        return len(batch)

    def build(self) -> Snapshot:
        with self._lock:
            return Snapshot(
                by_id=self._by_id,
                ids_by_region=self._ids_by_region,
                by_region_id=self._by_region_id,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_id)
