"""
core/data/images/types.py - Image record and state ranking

An Image is one cached AMI: identity, descriptive metadata, tags, owning
account, region and the account ids it is shared with (launch permissions).
Records are immutable once built.

Ranking combines the creation date (UNIX epoch) with a weight for the
lifecycle state tag. Weights are multiples of 10^10 so the state always
dominates the date, and the date orders images within the same state.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any

from core.config import settings

CREATION_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

_WEIGHT_UNIT = 10_000_000_000

# Lifecycle state weights, lowest to highest
STATE_WEIGHTS: Mapping[str, int] = MappingProxyType(
    {
        "deregistered": 1 * _WEIGHT_UNIT,
        "development": 2 * _WEIGHT_UNIT,
        "pre-release": 3 * _WEIGHT_UNIT,
        "unavailable": 4 * _WEIGHT_UNIT,
        "exception": 5 * _WEIGHT_UNIT,
        "deprecated": 6 * _WEIGHT_UNIT,
        "available": 7 * _WEIGHT_UNIT,
    }
)

DEFAULT_STATE_TAG = settings.DEFAULT_STATE_TAG
STATE_TAG_ALIASES = settings.STATE_TAG_ALIASES


def parse_creation_date(value: str) -> int:
    """Convert an AMI CreationDate to UNIX epoch seconds, 0 if unparsable"""
    try:
        date = datetime.strptime(value, CREATION_DATE_FORMAT)
    except (TypeError, ValueError):
        return 0
    return int(date.replace(tzinfo=timezone.utc).timestamp())


@dataclass(frozen=True)
class Image:
    """Amazon Machine Image record"""

    id: str
    owner_id: str
    region: str
    name: str = ""
    description: str = ""
    virtualization_type: str = ""
    creation_date: str = ""
    tags: Mapping[str, str] = field(default_factory=dict, hash=False)
    launch_permissions: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        # Freeze the containers so the record can be shared between snapshots
        object.__setattr__(self, "tags", MappingProxyType(dict(self.tags)))
        object.__setattr__(self, "launch_permissions", frozenset(self.launch_permissions))

    @classmethod
    def from_describe(
        cls,
        data: Mapping[str, Any],
        owner_id: str,
        region: str,
        launch_permissions: Iterable[str] = (),
    ) -> Image:
        """Build an Image from an ec2:DescribeImages entry"""
        tags = {}
        for tag in data.get("Tags", []) or []:
            key = tag.get("Key")
            if key is not None:
                tags[key] = tag.get("Value", "")

        return cls(
            id=data.get("ImageId", ""),
            owner_id=owner_id,
            region=region,
            name=data.get("Name", ""),
            description=data.get("Description", ""),
            virtualization_type=data.get("VirtualizationType", ""),
            creation_date=data.get("CreationDate", ""),
            tags=tags,
            launch_permissions=frozenset(launch_permissions),
        )

    def tag(self, key: str) -> str:
        """Value of the tag key, empty string if not present"""
        return self.tags.get(key, "")

    def tag_dict(self) -> dict[str, str]:
        """Copy of the tags as a plain dict"""
        return dict(self.tags)

    def state(self, state_tag: str = DEFAULT_STATE_TAG) -> str:
        """Lifecycle state, falling back to the legacy tag keys"""
        value = self.tag(state_tag)
        if value:
            return value
        for alias in STATE_TAG_ALIASES:
            value = self.tag(alias)
            if value:
                return value
        return ""

    def with_launch_permissions(self, launch_permissions: Iterable[str]) -> Image:
        """New record with the given launch permissions"""
        return replace(self, launch_permissions=frozenset(launch_permissions))

    @property
    def creation_epoch(self) -> int:
        return parse_creation_date(self.creation_date)

    def to_dict(self) -> dict[str, Any]:
        """Query API representation"""
        return {
            "id": self.id,
            "region": self.region,
            "name": self.name,
            "description": self.description,
            "virtualizationType": self.virtualization_type,
            "creationDate": self.creation_date,
            "tags": self.tag_dict(),
        }


def state_weight(state: str) -> int:
    """Weight of a lifecycle state, 0 if unknown"""
    if not state:
        return 0
    return STATE_WEIGHTS.get(state.lower(), 0)


def state_score(image: Image, state_tag: str = DEFAULT_STATE_TAG) -> int:
    """Creation epoch plus the state weight"""
    return image.creation_epoch + state_weight(image.state(state_tag))


def rank(a: Image, b: Image, state_tag: str = DEFAULT_STATE_TAG) -> bool:
    """Whether a sorts before b (higher score first)"""
    return state_score(a, state_tag) > state_score(b, state_tag)


def sort_by_state(images: Iterable[Image], state_tag: str = DEFAULT_STATE_TAG) -> list[Image]:
    """Sort newest and most available first

    Stable: images with equal scores keep their relative order.
    """
    return sorted(images, key=lambda image: state_score(image, state_tag), reverse=True)
