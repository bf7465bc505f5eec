"""
tests/core/data/images/test_image_types.py - Image 레코드 및 상태 정렬 테스트
"""

import dataclasses

import pytest

from conftest import make_image, make_raw_image
from core.data.images.types import (
    STATE_WEIGHTS,
    Image,
    parse_creation_date,
    rank,
    sort_by_state,
    state_score,
    state_weight,
)


class TestImage:
    """Image 레코드 테스트"""

    def test_from_describe(self):
        """DescribeImages 항목에서 생성"""
        data = make_raw_image("ami-1", name="base", tags={"state": "available", "team": "core"})

        image = Image.from_describe(data, "111111111111", "us-east-1", launch_permissions=["222", "333"])

        assert image.id == "ami-1"
        assert image.owner_id == "111111111111"
        assert image.region == "us-east-1"
        assert image.name == "base"
        assert image.virtualization_type == "hvm"
        assert image.tag("team") == "core"
        assert image.tag("missing") == ""
        assert image.launch_permissions == frozenset({"222", "333"})

    def test_missing_tags(self):
        """태그 없는 이미지"""
        image = Image.from_describe({"ImageId": "ami-1"}, "1", "us-east-1")
        assert image.tag_dict() == {}
        assert image.state() == ""

    def test_immutable(self):
        """레코드와 태그는 불변"""
        image = make_image("ami-1", tags={"state": "available"})
        with pytest.raises(dataclasses.FrozenInstanceError):
            image.name = "x"
        with pytest.raises(TypeError):
            image.tags["state"] = "deprecated"

    def test_hashable(self):
        """해시 가능 (집합에 담을 수 있음)"""
        image = make_image("ami-1", tags={"state": "available"})
        assert len({image, image}) == 1

    def test_state_falls_back_to_aliases(self):
        """상태 태그가 없으면 state/status 순으로 확인"""
        image = make_image("ami-1", tags={"status": "deprecated"})
        assert image.state("lifecycle") == "deprecated"
        assert image.state() == "deprecated"

    def test_with_launch_permissions(self):
        """launchPermission만 바꾼 새 레코드"""
        image = make_image("ami-1")
        updated = image.with_launch_permissions(["999"])
        assert updated.launch_permissions == frozenset({"999"})
        assert image.launch_permissions == frozenset()
        assert updated.id == image.id

    def test_to_dict(self):
        """조회 API 표현"""
        image = make_image("ami-1", tags={"state": "available"})
        assert image.to_dict() == {
            "id": "ami-1",
            "region": "us-east-1",
            "name": "ami-1",
            "description": "ami-1 description",
            "virtualizationType": "hvm",
            "creationDate": "2024-01-01T00:00:00.000Z",
            "tags": {"state": "available"},
        }


class TestCreationDate:
    """parse_creation_date 테스트"""

    def test_epoch(self):
        """UTC epoch 초"""
        assert parse_creation_date("1970-01-01T00:00:10.000Z") == 10

    @pytest.mark.parametrize("value", ["", "yesterday", "2013-10-25"])
    def test_unparsable_is_zero(self, value):
        """해석 불가 값은 0"""
        assert parse_creation_date(value) == 0


class TestStateRanking:
    """상태 가중치 및 정렬 테스트"""

    def test_weight_order(self):
        """가중치 순서"""
        order = ["deregistered", "development", "pre-release", "unavailable", "exception", "deprecated", "available"]
        weights = [STATE_WEIGHTS[s] for s in order]
        assert weights == sorted(weights)
        assert len(set(weights)) == len(weights)

    def test_unknown_state_is_zero(self):
        """알 수 없는 상태와 빈 상태는 0"""
        assert state_weight("") == 0
        assert state_weight("retired") == 0
        assert state_weight("AVAILABLE") == STATE_WEIGHTS["available"]

    def test_available_outranks_newer_deprecated(self):
        """더 오래된 available이 더 최신인 deprecated보다 앞"""
        available = make_image("ami-a", creation_date="2013-10-25T00:00:00.000Z", tags={"state": "available"})
        deprecated = make_image("ami-d", creation_date="2013-10-29T00:00:00.000Z", tags={"state": "deprecated"})

        assert rank(available, deprecated)
        assert not rank(deprecated, available)
        assert sort_by_state([deprecated, available]) == [available, deprecated]

    def test_same_state_newest_first(self):
        """같은 상태는 최신순"""
        old = make_image("ami-old", creation_date="2020-01-01T00:00:00.000Z", tags={"state": "available"})
        new = make_image("ami-new", creation_date="2021-01-01T00:00:00.000Z", tags={"state": "available"})
        assert sort_by_state([old, new]) == [new, old]

    def test_score(self):
        """점수 = 생성 시각 + 상태 가중치"""
        image = make_image("ami-1", creation_date="1970-01-01T00:00:10.000Z", tags={"state": "development"})
        assert state_score(image) == 10 + STATE_WEIGHTS["development"]

    def test_stable_for_equal_scores(self):
        """점수가 같으면 입력 순서 유지"""
        a = make_image("ami-a", tags={"state": "available"})
        b = make_image("ami-b", tags={"state": "available"})
        c = make_image("ami-c", tags={"state": "available"})
        assert sort_by_state([b, c, a]) == [b, c, a]

    def test_custom_state_tag(self):
        """설정된 상태 태그 키 사용"""
        a = make_image("ami-a", tags={"lifecycle": "available"})
        b = make_image("ami-b", tags={"lifecycle": "deprecated"})
        assert sort_by_state([b, a], state_tag="lifecycle") == [a, b]
