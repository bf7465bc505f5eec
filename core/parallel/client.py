"""
core/parallel/client.py - boto3 client 생성 헬퍼

재시도 + 타임아웃 + 연결 풀이 설정된 boto3 client를 생성합니다.
갱신 주기의 모든 EC2/STS 호출은 이 헬퍼를 거치므로, 재시도는 botocore에
위임되고 코어는 실패 시 "건너뛰고 계속" 정책만 가집니다.

타임아웃과 재시도 횟수는 취소 시 진행 중 호출이 끝나기까지의 최대 대기 시간도
결정합니다: 대략 (connect_timeout + read_timeout) x max_attempts.

Example:
    from core.parallel.client import get_client

    ec2 = get_client(session, "ec2", region_name="ap-northeast-2", max_attempts=5)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal, cast

if TYPE_CHECKING:
    import boto3

# Retry mode 타입 (botocore TypedDict와 호환)
RetryMode = Literal["legacy", "standard", "adaptive"]

# 기본 retry 설정
DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_RETRY_MODE: RetryMode = "standard"
DEFAULT_CONNECT_TIMEOUT = 10  # 초
DEFAULT_READ_TIMEOUT = 30  # 초
DEFAULT_MAX_POOL_CONNECTIONS = 25  # launchPermission 워커 상한 이상 권장


def get_client(
    session: boto3.Session,
    service_name: str,
    region_name: str | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    retry_mode: RetryMode = DEFAULT_RETRY_MODE,
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT,
    read_timeout: int = DEFAULT_READ_TIMEOUT,
    max_pool_connections: int = DEFAULT_MAX_POOL_CONNECTIONS,
    **kwargs: Any,
) -> Any:
    """Retry가 적용된 boto3 client 생성

    Args:
        session: boto3 Session (위임 자격 증명 세션 포함)
        service_name: AWS 서비스 이름 (ec2, sts)
        region_name: 리전 (None이면 세션 기본값)
        max_attempts: 최대 시도 횟수
        retry_mode: 재시도 모드 ('standard' 또는 'adaptive')
        connect_timeout: 연결 타임아웃 (초)
        read_timeout: 읽기 타임아웃 (초)
        max_pool_connections: HTTP 연결 풀 크기
        **kwargs: session.client()에 전달할 추가 인자

    Returns:
        boto3 client
    """
    from botocore.config import Config

    config = Config(
        retries={"max_attempts": max_attempts, "mode": retry_mode},  # pyright: ignore[reportArgumentType]
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        max_pool_connections=max_pool_connections,
    )

    # 기존 config가 있으면 병합
    if "config" in kwargs:
        existing = kwargs.pop("config")
        config = config.merge(existing)

    # cast to Any to bypass boto3-stubs Literal type requirements
    return session.client(  # pyright: ignore[reportCallIssue]
        cast(Any, service_name),
        region_name=region_name,
        config=config,
        **kwargs,
    )


def make_ec2_factory(max_pool_connections: int = DEFAULT_MAX_POOL_CONNECTIONS):
    """(session, region, max_attempts) -> EC2 client 팩토리 생성

    ImageCollector는 이 시그니처의 팩토리로 EC2 client를 만들며,
    테스트에서는 가짜 client를 반환하는 팩토리로 대체합니다.
    """

    def factory(session: boto3.Session, region: str, max_attempts: int) -> Any:
        return get_client(
            session,
            "ec2",
            region_name=region,
            max_attempts=max_attempts,
            max_pool_connections=max(max_pool_connections, DEFAULT_MAX_POOL_CONNECTIONS),
        )

    return factory
