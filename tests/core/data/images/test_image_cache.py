"""
tests/core/data/images/test_image_cache.py - ImageCache 테스트
"""

import threading

import pytest

from conftest import make_image
from core.data.images import Filter, filter_by_owner_id
from core.data.images.cache import ImageCache
from core.data.images.snapshot import EMPTY_SNAPSHOT, SnapshotBuilder
from core.exceptions import UnsupportedRegionError
from core.region.data import ALL_REGIONS


def _snapshot(*images):
    builder = SnapshotBuilder()
    for image in images:
        builder.add(image.region, [image])
    return builder.build()


class TestRegions:
    """리전 설정 테스트"""

    def test_default_all_regions(self):
        """리전 미지정 시 전체 리전"""
        assert ImageCache().supported_regions() == ALL_REGIONS

    def test_configured_regions(self):
        """설정 순서 유지"""
        cache = ImageCache(["us-west-2", "us-east-1"])
        assert cache.supported_regions() == ["us-west-2", "us-east-1"]
        assert cache.is_supported("us-east-1")
        assert not cache.is_supported("eu-west-1")


class TestImagesInRegion:
    """images_in_region 테스트"""

    def test_before_first_swap(self):
        """첫 교체 전에는 빈 결과"""
        cache = ImageCache(["us-east-1"])
        assert cache.snapshot is EMPTY_SNAPSHOT
        assert cache.images_in_region("us-east-1") == []

    def test_configured_region_without_images(self):
        """이미지 없는 설정 리전은 빈 리스트 (에러 아님)"""
        cache = ImageCache(["us-east-1", "us-west-2"])
        cache.swap(_snapshot(make_image("ami-1")))
        assert cache.images_in_region("us-west-2") == []

    def test_unconfigured_region(self):
        """설정되지 않은 리전은 UnsupportedRegionError"""
        cache = ImageCache(["us-east-1"])
        with pytest.raises(UnsupportedRegionError) as exc_info:
            cache.images_in_region("eu-west-1")
        assert str(exc_info.value) == "unknown or unsupported region: eu-west-1"

    def test_filtered_images(self):
        """필터 적용"""
        cache = ImageCache(["us-east-1"])
        cache.swap(_snapshot(make_image("ami-1", owner_id="111"), make_image("ami-2", owner_id="222")))

        images = cache.filtered_images("us-east-1", Filter(filter_by_owner_id("222")))

        assert [i.id for i in images] == ["ami-2"]
        assert len(cache.filtered_images("us-east-1")) == 2

    def test_filtered_images_unconfigured_region(self):
        """필터 조회도 리전 검증"""
        cache = ImageCache(["us-east-1"])
        with pytest.raises(UnsupportedRegionError):
            cache.filtered_images("mars-east-1", Filter())


class TestSwap:
    """스냅샷 교체 테스트"""

    def test_swap_returns_previous(self):
        """이전 스냅샷 반환"""
        cache = ImageCache(["us-east-1"])
        first = _snapshot(make_image("ami-1"))
        second = _snapshot(make_image("ami-2"))

        assert cache.swap(first) is EMPTY_SNAPSHOT
        assert cache.swap(second) is first
        assert [i.id for i in cache.images_in_region("us-east-1")] == ["ami-2"]

    def test_clear(self):
        """비우기"""
        cache = ImageCache(["us-east-1"])
        cache.swap(_snapshot(make_image("ami-1")))
        cache.clear()
        assert cache.images_in_region("us-east-1") == []

    def test_stats(self):
        """통계"""
        cache = ImageCache(["us-east-1"])
        cache.swap(_snapshot(make_image("ami-1"), make_image("ami-2")))
        stats = cache.stats
        assert stats["images"] == 2
        assert stats["regions"] == 1
        assert stats["swaps"] == 1
        assert "images=2" in repr(cache)

    def test_readers_see_whole_snapshots(self):
        """읽기는 교체 전 또는 후의 완전한 스냅샷만 봄"""
        cache = ImageCache(["us-east-1"])
        small = _snapshot(*[make_image(f"ami-a{i}") for i in range(10)])
        large = _snapshot(*[make_image(f"ami-b{i}") for i in range(20)])
        seen = set()
        stop = threading.Event()

        def reader():
            while not stop.is_set():
                images = cache.images_in_region("us-east-1")
                seen.add(len(images))

        readers = [threading.Thread(target=reader) for _ in range(4)]
        for t in readers:
            t.start()
        for _ in range(200):
            cache.swap(small)
            cache.swap(large)
        stop.set()
        for t in readers:
            t.join(timeout=5)

        assert seen <= {0, 10, 20}
