"""
core/data/images/services/ec2.py - EC2 image inventory calls

Lists the AMIs owned by an account in one region and fetches the account
ids an AMI is shared with. botocore handles retries; any remaining failure
is raised as UpstreamError for the caller to log and skip.
"""

from __future__ import annotations

from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from core.exceptions import UpstreamError


def list_images(ec2: Any, owner_id: str, tag_filter: str = "") -> list[dict[str, Any]]:
    """Raw ec2:DescribeImages entries owned by owner_id

    Args:
        ec2: EC2 client for the target region
        owner_id: Owning account id
        tag_filter: If set, only images that carry this tag key (any value)

    Returns:
        List of image descriptors

    Raises:
        UpstreamError: DescribeImages failed
    """
    kwargs: dict[str, Any] = {"Owners": [owner_id]}
    if tag_filter:
        kwargs["Filters"] = [{"Name": "tag-key", "Values": [tag_filter]}]

    images: list[dict[str, Any]] = []
    try:
        paginator = ec2.get_paginator("describe_images")
        for page in paginator.paginate(**kwargs):
            images.extend(page.get("Images", []))
    except (ClientError, BotoCoreError) as e:
        raise UpstreamError.from_client_error("ec2", "describe_images", e) from e

    return images


def describe_launch_permissions(ec2: Any, image_id: str) -> list[str]:
    """Account ids in the launchPermission attribute of image_id

    Group grants (e.g. public "all") carry no UserId and are skipped.

    Raises:
        UpstreamError: DescribeImageAttribute failed
    """
    try:
        rsp = ec2.describe_image_attribute(ImageId=image_id, Attribute="launchPermission")
    except (ClientError, BotoCoreError) as e:
        raise UpstreamError.from_client_error("ec2", "describe_image_attribute", e) from e

    return [perm["UserId"] for perm in rsp.get("LaunchPermissions", []) if perm.get("UserId")]
