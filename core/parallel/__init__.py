"""
core/parallel - 병렬 처리 모듈

갱신 주기의 계정 → 리전 → 이미지 팬아웃에 쓰이는 동시성 도구입니다.

주요 구성 요소:
- get_client / make_ec2_factory: 재시도/타임아웃이 설정된 boto3 client
- pool_size / bounded_map: 이미지 단위 조회용 고정 크기 워커 풀
- ReadWriteLock: 스냅샷 교체용 읽기 우선 락
- ErrorCollector: 스레드 세이프 에러 수집

Example:
    from core.parallel import bounded_map, pool_size

    workers = pool_size(15, len(images), 0.05)
    results = bounded_map(fetch_perms, images, workers, abort=abort_event)
"""

from .client import get_client, make_ec2_factory
from .errors import (
    CollectedError,
    ErrorCollector,
    ErrorSeverity,
    categorize_error,
    categorize_error_code,
    get_error_code,
)
from .pool import bounded_map, pool_size
from .rwlock import ReadWriteLock
from .types import ErrorCategory

__all__: list[str] = [
    # Client (retry 적용)
    "get_client",
    "make_ec2_factory",
    # Worker pool
    "pool_size",
    "bounded_map",
    # Lock
    "ReadWriteLock",
    # Error handling
    "ErrorCollector",
    "ErrorSeverity",
    "CollectedError",
    "categorize_error",
    "categorize_error_code",
    "get_error_code",
    # Types
    "ErrorCategory",
]
