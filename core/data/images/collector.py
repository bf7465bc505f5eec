"""
core/data/images/collector.py - Image refresh engine

One refresh cycle fans out across three levels:

    owner account  -> assume the delegated role (15 minute credentials)
      region       -> ec2:DescribeImages owned by that account
        image      -> ec2:DescribeImageAttribute launchPermission, through a
                      fixed-size worker pool sized by pool_size()

Every branch writes into a per-cycle SnapshotBuilder. Failures are collected
and logged with their owner/region/image context and only shrink that
branch's contribution. The finished Snapshot is returned to the caller, who
swaps it into the ImageCache.

Cancellation propagates: every branch checks the abort event before each
upstream call, the cycle stops submitting work, waits for the calls already
in flight (bounded by the botocore timeouts and retry attempts) and returns
a cancelled result with no snapshot.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any

import boto3

from core.auth.sts import assume_role_session
from core.config import CacheConfig, settings
from core.exceptions import AuthError, UpstreamError
from core.parallel.client import get_client, make_ec2_factory
from core.parallel.errors import CollectedError, ErrorCollector, ErrorSeverity
from core.parallel.pool import bounded_map, pool_size

from .services.ec2 import describe_launch_permissions, list_images
from .snapshot import Snapshot, SnapshotBuilder
from .types import Image

logger = logging.getLogger(__name__)

# (session, region, max_attempts) -> EC2 client
Ec2Factory = Callable[[Any, str, int], Any]
# (sts_client, account_id, role_name) -> boto3.Session
AssumeRole = Callable[[Any, str, str], Any]


@dataclass
class RefreshResult:
    """Outcome of one refresh cycle"""

    snapshot: Snapshot | None = None
    errors: list[CollectedError] = field(default_factory=list)
    duration_ms: float = 0.0
    cancelled: bool = False

    @property
    def image_count(self) -> int:
        return self.snapshot.image_count if self.snapshot is not None else 0

    @property
    def error_count(self) -> int:
        return len(self.errors)


class ImageCollector:
    """Builds a fresh Snapshot from every configured owner and region

    Example:
        collector = ImageCollector(config)
        result = collector.refresh()
        if not result.cancelled:
            cache.swap(result.snapshot)
    """

    def __init__(
        self,
        config: CacheConfig,
        sts_client: Any = None,
        ec2_factory: Ec2Factory | None = None,
        assume_role: AssumeRole | None = None,
    ):
        """Initialize collector

        Args:
            config: Validated cache configuration
            sts_client: STS client used to assume roles (created lazily if None)
            ec2_factory: Builds an EC2 client for a session and region
            assume_role: Returns a delegated session for an owner account
        """
        self._config = config
        self._sts = sts_client
        self._sts_lock = threading.Lock()
        self._ec2_factory = ec2_factory or make_ec2_factory(config.max_concurrent_requests)
        self._assume_role = assume_role or assume_role_session

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def sts(self) -> Any:
        with self._sts_lock:
            if self._sts is None:
                self._sts = get_client(boto3.Session(), "sts", max_attempts=self._config.max_request_retries)
            return self._sts

    def refresh(self, abort: threading.Event | None = None) -> RefreshResult:
        """Run one refresh cycle

        Never raises for upstream failures; they are returned in
        RefreshResult.errors.

        Args:
            abort: Set to cancel the cycle

        Returns:
            RefreshResult with the new snapshot, or cancelled=True and no snapshot
        """
        abort = abort or threading.Event()
        builder = SnapshotBuilder()
        errors = ErrorCollector("ec2")
        owners = self._config.owner_ids
        start_time = time.monotonic()

        logger.info(f"Cache update started: {len(owners)} owners, {len(self._config.regions)} regions")

        with ThreadPoolExecutor(max_workers=len(owners), thread_name_prefix="aq-owner") as executor:
            futures = {
                executor.submit(self._collect_owner, owner, builder, errors, abort): owner for owner in owners
            }
            for future in as_completed(futures):
                owner = futures[future]
                try:
                    future.result()
                except Exception as e:
                    errors.collect(e, owner, "", "collect_owner", severity=ErrorSeverity.CRITICAL)

        duration_ms = (time.monotonic() - start_time) * 1000

        if abort.is_set():
            logger.info(f"Cache update cancelled after {duration_ms:.0f}ms, snapshot discarded")
            return RefreshResult(errors=errors.errors, duration_ms=duration_ms, cancelled=True)

        snapshot = builder.build()
        if errors.has_errors:
            logger.warning(f"Cache update partial: {errors.get_summary()}")
        logger.info(f"Cache update completed: {snapshot.image_count} images in {duration_ms:.0f}ms")

        return RefreshResult(snapshot=snapshot, errors=errors.errors, duration_ms=duration_ms)

    # =========================================================================
    # Owner / region branches
    # =========================================================================

    def _collect_owner(
        self,
        owner: str,
        builder: SnapshotBuilder,
        errors: ErrorCollector,
        abort: threading.Event,
    ) -> None:
        if abort.is_set():
            return

        try:
            session = self._assume_role(self.sts, owner, self._config.role_name)
        except AuthError as e:
            errors.collect(e, owner, "", "assume_role", severity=ErrorSeverity.CRITICAL)
            return

        regions = self._config.regions
        with ThreadPoolExecutor(max_workers=len(regions), thread_name_prefix=f"aq-{owner}") as executor:
            futures = {
                executor.submit(self._collect_region, owner, session, region, builder, errors, abort): region
                for region in regions
            }
            for future in as_completed(futures):
                region = futures[future]
                try:
                    future.result()
                except Exception as e:
                    errors.collect(e, owner, region, "collect_region")

    def _collect_region(
        self,
        owner: str,
        session: Any,
        region: str,
        builder: SnapshotBuilder,
        errors: ErrorCollector,
        abort: threading.Event,
    ) -> None:
        if abort.is_set():
            return

        ec2 = self._ec2_factory(session, region, self._config.max_request_retries)

        try:
            raw_images = list_images(ec2, owner, self._config.tag_filter)
        except UpstreamError as e:
            errors.collect(e, owner, region, "describe_images")
            return

        if self._config.collect_launch_permissions and raw_images:
            workers = pool_size(self._config.max_concurrent_requests, len(raw_images), settings.POOL_SIZE_PERCENT)
            logger.debug(f"[{owner}/{region}] {len(raw_images)} images, {workers} permission workers")
            images = bounded_map(
                lambda data: self._build_image(ec2, data, owner, region, errors, abort),
                raw_images,
                workers,
                abort=abort,
                thread_name_prefix=f"aq-{owner}-{region}",
            )
        else:
            images = [Image.from_describe(data, owner, region) for data in raw_images]

        if abort.is_set():
            return

        count = builder.add(region, images)
        logger.info(f"[{owner}/{region}] cached {count} images")

    def _build_image(
        self,
        ec2: Any,
        data: dict[str, Any],
        owner: str,
        region: str,
        errors: ErrorCollector,
        abort: threading.Event,
    ) -> Image:
        image_id = data.get("ImageId", "")
        perms: list[str] = []

        if not abort.is_set():
            try:
                perms = describe_launch_permissions(ec2, image_id)
            except UpstreamError as e:
                errors.collect(e, owner, region, "describe_image_attribute", resource_id=image_id)
            else:
                logger.debug(f"[{owner}/{region}/{image_id}] {len(perms)} launch permissions")

        return Image.from_describe(data, owner, region, launch_permissions=perms)
