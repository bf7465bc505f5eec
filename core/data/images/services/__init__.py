"""
core/data/images/services - Upstream calls used by the refresh engine
"""

from .ec2 import describe_launch_permissions, list_images

__all__ = [
    "list_images",
    "describe_launch_permissions",
]
