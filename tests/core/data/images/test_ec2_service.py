"""
tests/core/data/images/test_ec2_service.py - EC2 이미지 조회 호출 테스트
"""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import EndpointConnectionError

from conftest import make_client_error, make_ec2, make_raw_image
from core.data.images.services.ec2 import describe_launch_permissions, list_images
from core.exceptions import UpstreamError


class TestListImages:
    """list_images 테스트"""

    def test_pages_concatenated(self):
        """여러 페이지 결과를 합침"""
        ec2 = MagicMock()
        ec2.get_paginator.return_value.paginate.return_value = [
            {"Images": [make_raw_image("ami-1")]},
            {"Images": [make_raw_image("ami-2")]},
            {},
        ]

        images = list_images(ec2, "111111111111")

        assert [i["ImageId"] for i in images] == ["ami-1", "ami-2"]
        ec2.get_paginator.return_value.paginate.assert_called_once_with(Owners=["111111111111"])

    def test_tag_filter(self):
        """tag-key 필터"""
        ec2 = make_ec2([])
        list_images(ec2, "111111111111", tag_filter="team")
        ec2.get_paginator.return_value.paginate.assert_called_once_with(
            Owners=["111111111111"], Filters=[{"Name": "tag-key", "Values": ["team"]}]
        )

    def test_client_error(self):
        """ClientError는 UpstreamError"""
        ec2 = make_ec2(describe_error=make_client_error("UnauthorizedOperation"))
        with pytest.raises(UpstreamError) as exc_info:
            list_images(ec2, "111111111111")
        assert exc_info.value.operation == "describe_images"
        assert exc_info.value.error_code == "UnauthorizedOperation"

    def test_connection_error(self):
        """연결 오류도 UpstreamError"""
        ec2 = make_ec2(describe_error=EndpointConnectionError(endpoint_url="https://ec2.example.com"))
        with pytest.raises(UpstreamError):
            list_images(ec2, "111111111111")


class TestDescribeLaunchPermissions:
    """describe_launch_permissions 테스트"""

    def test_user_ids_only(self):
        """UserId만 수집 (그룹 권한 제외)"""
        ec2 = MagicMock()
        ec2.describe_image_attribute.return_value = {
            "LaunchPermissions": [{"UserId": "333333333333"}, {"Group": "all"}, {"UserId": "444444444444"}]
        }

        assert describe_launch_permissions(ec2, "ami-1") == ["333333333333", "444444444444"]
        ec2.describe_image_attribute.assert_called_once_with(ImageId="ami-1", Attribute="launchPermission")

    def test_no_permissions(self):
        """권한 없음"""
        assert describe_launch_permissions(make_ec2(), "ami-1") == []

    def test_error(self):
        """조회 실패는 UpstreamError"""
        ec2 = make_ec2(attribute_error=make_client_error("InvalidAMIID.NotFound"))
        with pytest.raises(UpstreamError) as exc_info:
            describe_launch_permissions(ec2, "ami-1")
        assert exc_info.value.operation == "describe_image_attribute"
