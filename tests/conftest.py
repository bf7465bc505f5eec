"""
tests/conftest.py - pytest 공통 픽스처

AWS API 모킹과 테스트 헬퍼를 제공합니다.

Usage:
    def test_something(make_ec2, mock_sts_client, cache_config):
        # make_ec2: 가짜 EC2 client 생성 헬퍼
        # mock_sts_client: assume_role 응답이 설정된 STS client
        pass
"""

import os
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from core.config import CacheConfig
from core.data.images import Image

# =============================================================================
# 환경 설정
# =============================================================================


@pytest.fixture(autouse=True)
def setup_test_environment():
    """테스트 환경 설정"""
    # 테스트용 환경 변수 설정
    os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

    yield


# =============================================================================
# 헬퍼
# =============================================================================


def make_client_error(code: str, message: str = "error", operation: str = "DescribeImages") -> ClientError:
    """botocore ClientError 생성"""
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def make_raw_image(
    image_id: str,
    name: str = "",
    creation_date: str = "2024-01-01T00:00:00.000Z",
    tags: Optional[Dict[str, str]] = None,
    virtualization_type: str = "hvm",
) -> Dict[str, Any]:
    """ec2:DescribeImages 응답 항목 생성"""
    data: Dict[str, Any] = {
        "ImageId": image_id,
        "Name": name or image_id,
        "Description": f"{image_id} description",
        "VirtualizationType": virtualization_type,
        "CreationDate": creation_date,
    }
    if tags:
        data["Tags"] = [{"Key": k, "Value": v} for k, v in tags.items()]
    return data


def make_image(
    image_id: str,
    owner_id: str = "111111111111",
    region: str = "us-east-1",
    creation_date: str = "2024-01-01T00:00:00.000Z",
    tags: Optional[Dict[str, str]] = None,
    launch_permissions: Optional[List[str]] = None,
) -> Image:
    """Image 레코드 생성"""
    return Image.from_describe(
        make_raw_image(image_id, creation_date=creation_date, tags=tags),
        owner_id,
        region,
        launch_permissions=launch_permissions or (),
    )


def make_ec2(
    images: Optional[List[Dict[str, Any]]] = None,
    permissions: Optional[Dict[str, List[str]]] = None,
    describe_error: Optional[Exception] = None,
    attribute_error: Optional[Exception] = None,
) -> MagicMock:
    """가짜 EC2 client 생성

    Args:
        images: describe_images 페이지 내용
        permissions: image_id → launchPermission UserId 목록
        describe_error: describe_images 페이지네이션 중 발생시킬 예외
        attribute_error: describe_image_attribute에서 발생시킬 예외
    """
    client = MagicMock()
    paginator = MagicMock()
    if describe_error is not None:
        paginator.paginate.side_effect = describe_error
    else:
        paginator.paginate.return_value = [{"Images": list(images or [])}]
    client.get_paginator.return_value = paginator

    perms = permissions or {}

    def describe_image_attribute(ImageId: str, Attribute: str) -> Dict[str, Any]:
        if attribute_error is not None:
            raise attribute_error
        return {
            "ImageId": ImageId,
            "LaunchPermissions": [{"UserId": user_id} for user_id in perms.get(ImageId, [])],
        }

    client.describe_image_attribute.side_effect = describe_image_attribute
    return client


# =============================================================================
# AWS 모킹 픽스처
# =============================================================================


@pytest.fixture
def mock_sts_client():
    """STS 클라이언트 모킹"""
    mock_client = MagicMock()

    mock_client.assume_role.return_value = {
        "Credentials": {
            "AccessKeyId": "ASIATEST123",
            "SecretAccessKey": "test-secret",
            "SessionToken": "test-token",
            "Expiration": "2024-12-31T23:59:59Z",
        }
    }

    yield mock_client


@pytest.fixture
def cache_config():
    """두 계정, 한 리전 캐시 설정"""
    return CacheConfig(
        owner_ids=["111111111111", "222222222222"],
        role_name="ami-query",
        regions=["us-east-1"],
    )
