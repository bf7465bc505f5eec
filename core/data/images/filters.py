"""
core/data/images/filters.py - Composable image filters

A Filter is an ordered chain of stages applied left to right, each stage
narrowing the output of the previous one (logical AND between stages).
Every stage treats "no constraint" as a pass-through so stages can be
chained unconditionally. Output order is not part of the contract; ranking
is applied separately.

Example:
    f = Filter(
        filter_by_image_id(*params.images),
        filter_by_owner_id(params.owner_id),
        filter_by_tags({"state": ["available"]}),
    )
    images = f.apply(cache.images_in_region("us-east-1"))
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Protocol

from .types import Image


class Filterer(Protocol):
    """Anything that narrows a list of images"""

    def filter(self, images: list[Image]) -> list[Image]: ...


class FilterFunc:
    """Adapter that lets a plain function act as a Filterer"""

    def __init__(self, func: Callable[[list[Image]], list[Image]], name: str = ""):
        self._func = func
        self.name = name or getattr(func, "__name__", "filter")

    def filter(self, images: list[Image]) -> list[Image]:
        return self._func(images)

    def __repr__(self) -> str:
        return f"FilterFunc({self.name})"


class Filter:
    """Ordered pipeline of Filterers"""

    def __init__(self, *filters: Filterer):
        self._filters: list[Filterer] = list(filters)

    def then(self, *filters: Filterer) -> Filter:
        """New pipeline with extra stages appended"""
        return Filter(*self._filters, *filters)

    def apply(self, images: Iterable[Image]) -> list[Image]:
        """Run every stage in order"""
        result = list(images)
        for stage in self._filters:
            result = stage.filter(result)
        return result

    def __len__(self) -> int:
        return len(self._filters)

    def __repr__(self) -> str:
        return f"Filter({', '.join(repr(f) for f in self._filters)})"


def filter_by_image_id(*ids: str) -> FilterFunc:
    """Keep images whose id is one of ids"""
    wanted = frozenset(ids)

    def by_image_id(images: list[Image]) -> list[Image]:
        if not wanted:
            return images
        return [image for image in images if image.id in wanted]

    return FilterFunc(by_image_id)


def filter_by_tags(tags: Mapping[str, Sequence[str]]) -> FilterFunc:
    """Keep images that match every tag key with one of its values"""
    wanted = {key: frozenset(values) for key, values in tags.items()}

    def by_tags(images: list[Image]) -> list[Image]:
        if not wanted:
            return images
        return [
            image
            for image in images
            if all(key in image.tags and image.tags[key] in values for key, values in wanted.items())
        ]

    return FilterFunc(by_tags)


def filter_by_state(state_tag: str, values: Sequence[str]) -> FilterFunc:
    """Keep images whose lifecycle state is one of values

    The state is resolved with Image.state, so images carrying only a
    legacy alias tag (e.g. "status") match the same way they rank.
    """
    wanted = frozenset(values)

    def by_state(images: list[Image]) -> list[Image]:
        if not wanted:
            return images
        return [image for image in images if image.state(state_tag) in wanted]

    return FilterFunc(by_state)


def filter_by_owner_id(owner_id: str) -> FilterFunc:
    """Keep images owned by owner_id"""

    def by_owner_id(images: list[Image]) -> list[Image]:
        if not owner_id:
            return images
        return [image for image in images if image.owner_id == owner_id]

    return FilterFunc(by_owner_id)


def filter_by_launch_permission(account_id: str) -> FilterFunc:
    """Keep images shared with account_id"""

    def by_launch_permission(images: list[Image]) -> list[Image]:
        if not account_id:
            return images
        return [image for image in images if account_id in image.launch_permissions]

    return FilterFunc(by_launch_permission)
