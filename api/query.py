"""
api/query.py - 쿼리 문자열 해석 및 결과 인코딩

/amis 요청의 쿼리 문자열을 QueryParams로 해석하고, 캐시에서 필터링/정렬한
이미지를 JSON(또는 JSON-P)으로 인코딩합니다.

쿼리 키:
    tag=key:value       태그 필터 (첫 번째 콜론만 키/값 구분)
    state=, status=     상태 태그 필터 (설정된 상태 태그 키에 추가)
    ami=                이미지 ID
    region=             리전 (없으면 설정된 전체 리전)
    owner_id=           소유 계정 ID
    account_id=         launchPermission으로 공유된 계정 ID
    callback=           JSON-P 콜백 이름
    pretty=             들여쓰기 출력 ("0" 외 모든 값)

Example:
    params = QueryParams.decode("region=us-west-2&tag=state:available")
    images = find_images(cache, params)
    body, content_type = encode_results(images, params.pretty, params.callback)
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from urllib.parse import parse_qsl

from core.config import settings
from core.data.images import (
    Filter,
    Image,
    ImageCache,
    filter_by_image_id,
    filter_by_launch_permission,
    filter_by_owner_id,
    filter_by_state,
    filter_by_tags,
    sort_by_state,
)
from core.exceptions import BadRequestError

JSON_CONTENT_TYPE = "application/json; charset=utf-8"
JSONP_CONTENT_TYPE = "application/javascript"


def dedup(values: Iterable[str]) -> list[str]:
    """중복 제거 (처음 등장한 순서 유지)"""
    return list(dict.fromkeys(values))


@dataclass
class QueryParams:
    """/amis 쿼리 조건"""

    regions: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)
    tags: dict[str, list[str]] = field(default_factory=dict)
    owner_id: str = ""
    account_id: str = ""
    callback: str = ""
    pretty: bool = False
    state_tag: str = settings.DEFAULT_STATE_TAG

    @classmethod
    def decode(cls, query_string: str, state_tag: str = settings.DEFAULT_STATE_TAG) -> QueryParams:
        """쿼리 문자열 해석

        Args:
            query_string: URL의 쿼리 부분 (앞의 '?' 제외)
            state_tag: state/status 키가 매핑될 태그 키

        Raises:
            BadRequestError: 알 수 없는 키 또는 잘못된 tag 값
        """
        grouped: dict[str, list[str]] = {}
        for key, value in parse_qsl(query_string, keep_blank_values=True):
            grouped.setdefault(key, []).append(value)

        params = cls(state_tag=state_tag)
        for key, raw_values in grouped.items():
            values = dedup(raw_values)
            if key == "tag":
                for value in values:
                    tag_key, sep, tag_value = value.partition(":")
                    if not sep or not tag_key:
                        raise BadRequestError(f"invalid query tag value: {value}")
                    params._add_tag(tag_key, [tag_value])
            elif key in settings.STATE_TAG_ALIASES:
                params._add_tag(state_tag, values)
            elif key == "ami":
                params.images = dedup(params.images + values)
            elif key == "region":
                params.regions = dedup(params.regions + values)
            elif key == "owner_id":
                params.owner_id = values[0]
            elif key == "account_id":
                params.account_id = values[0]
            elif key == "callback":
                params.callback = values[0]
            elif key == "pretty":
                params.pretty = params.pretty or values[0] != "0"
            else:
                raise BadRequestError(f"unknown query key: {key}")

        return params

    def _add_tag(self, key: str, values: list[str]) -> None:
        self.tags[key] = dedup(self.tags.get(key, []) + values)

    def build_filter(self) -> Filter:
        """ID → 소유 계정 → 공유 계정 → 상태 → 태그 순서의 필터 파이프라인

        상태 태그 조건은 Image.state로 비교하므로 레거시 status 태그만 있는
        이미지도 정렬과 같은 기준으로 걸러집니다.
        """
        tags = dict(self.tags)
        states = tags.pop(self.state_tag, [])
        return Filter(
            filter_by_image_id(*self.images),
            filter_by_owner_id(self.owner_id),
            filter_by_launch_permission(self.account_id),
            filter_by_state(self.state_tag, states),
            filter_by_tags(tags),
        )


def find_images(
    cache: ImageCache,
    params: QueryParams,
    state_tag: str = settings.DEFAULT_STATE_TAG,
) -> list[Image]:
    """쿼리 조건에 맞는 이미지를 상태 순으로 반환

    Raises:
        UnsupportedRegionError: 설정되지 않은 리전 요청
    """
    image_filter = params.build_filter()
    regions = params.regions or cache.supported_regions()

    images: list[Image] = []
    for region in regions:
        images.extend(cache.filtered_images(region, image_filter))

    return sort_by_state(images, state_tag)


def encode_results(images: Iterable[Image], pretty: bool = False, callback: str = "") -> tuple[str, str]:
    """결과 직렬화

    Returns:
        (body, content_type) - callback이 있으면 "callback(<json>);" JSON-P
    """
    results = [image.to_dict() for image in images]

    if callback:
        return f"{callback}({json.dumps(results, ensure_ascii=False)});", JSONP_CONTENT_TYPE

    indent = 1 if pretty else None
    return json.dumps(results, ensure_ascii=False, indent=indent) + "\n", JSON_CONTENT_TYPE
