"""
core/parallel/errors.py - 에러 수집 및 관리

갱신 주기 동안 여러 스레드에서 발생하는 계정/리전/이미지 단위 에러를
일관되게 수집하고 로깅하는 유틸리티입니다. 수집된 에러는 주기를 중단시키지
않으며, 주기 종료 시 요약만 보고됩니다.

주요 구성 요소:
- ErrorSeverity: 에러 심각도 분류
- CollectedError: 수집된 에러 상세 정보
- ErrorCollector: 스레드 세이프 에러 수집기
- categorize_error / get_error_code: 예외 분류 헬퍼

Example:
    collector = ErrorCollector("ec2")

    try:
        images = list_images(ec2, owner_id, tag_filter)
    except UpstreamError as e:
        collector.collect(e, owner_id, region, "describe_images")

    if collector.has_errors:
        print(collector.get_summary())
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from core.exceptions import AuthError, UpstreamError, is_access_denied, is_expired_token, is_not_found, is_throttling

from .types import ErrorCategory

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """에러 심각도 분류

    수집된 에러의 심각도를 나타내며, 로깅 레벨을 결정합니다.
    """

    CRITICAL = "critical"  # 계정 전체 실패 (인증 등)
    WARNING = "warning"  # 부분 실패 - 보고하되 계속 진행
    INFO = "info"  # 정보성 - 로그만 남김 (권한 없음 등)
    DEBUG = "debug"


@dataclass
class CollectedError:
    """수집된 에러 상세 정보

    Attributes:
        timestamp: 에러 발생 시각
        account_id: 이미지 소유 계정 ID
        region: AWS 리전 (계정 단위 에러는 빈 문자열)
        service: AWS 서비스 이름 (예: "ec2", "sts")
        operation: API 작업 이름 (예: "describe_images")
        error_code: AWS 에러 코드 (예: "RequestLimitExceeded")
        error_message: 에러 메시지
        severity: 에러 심각도
        category: 에러 카테고리
        resource_id: 관련 이미지 ID (선택사항)
    """

    timestamp: datetime
    account_id: str
    region: str
    service: str
    operation: str
    error_code: str
    error_message: str
    severity: ErrorSeverity
    category: ErrorCategory
    resource_id: str | None = None

    @property
    def location(self) -> str:
        parts = [p for p in (self.account_id, self.region, self.resource_id) if p]
        return "/".join(parts)

    def __str__(self) -> str:
        return (
            f"[{self.severity.value.upper()}] {self.location} - "
            f"{self.service}.{self.operation}: {self.error_code}"
        )

    def to_dict(self) -> dict[str, str | None]:
        """딕셔너리로 변환 (로깅/직렬화용)"""
        return {
            "timestamp": self.timestamp.isoformat(),
            "account_id": self.account_id,
            "region": self.region,
            "service": self.service,
            "operation": self.operation,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "severity": self.severity.value,
            "category": self.category.value,
            "resource_id": self.resource_id,
        }


def categorize_error_code(error_code: str) -> ErrorCategory:
    """에러 코드 문자열을 기반으로 ErrorCategory 분류

    Args:
        error_code: AWS 에러 코드 문자열 (예: "AccessDenied", "RequestLimitExceeded")

    Returns:
        분류된 에러 카테고리. 매칭되는 키워드가 없으면 UNKNOWN 반환.
    """
    code = error_code.lower()

    if any(x in code for x in ["accessdenied", "unauthorized", "forbidden"]):
        return ErrorCategory.ACCESS_DENIED
    if any(x in code for x in ["expiredtoken", "requestexpired"]):
        return ErrorCategory.EXPIRED_TOKEN
    if any(x in code for x in ["notfound", "nosuch", "doesnotexist"]):
        return ErrorCategory.NOT_FOUND
    if any(x in code for x in ["throttl", "ratelimit", "limitexceeded", "toomanyrequests"]):
        return ErrorCategory.THROTTLING
    if any(x in code for x in ["timeout", "timedout"]):
        return ErrorCategory.TIMEOUT
    if any(x in code for x in ["invalid", "validation", "malformed"]):
        return ErrorCategory.INVALID_REQUEST
    if any(x in code for x in ["internal", "serviceunavailable", "serviceerror"]):
        return ErrorCategory.SERVICE_ERROR

    return ErrorCategory.UNKNOWN


def categorize_error(error: Exception) -> ErrorCategory:
    """예외 객체를 분석하여 ErrorCategory로 분류"""
    if is_throttling(error):
        return ErrorCategory.THROTTLING
    if is_access_denied(error):
        return ErrorCategory.ACCESS_DENIED
    if is_expired_token(error):
        return ErrorCategory.EXPIRED_TOKEN
    if is_not_found(error):
        return ErrorCategory.NOT_FOUND

    code = get_error_code(error)
    category = categorize_error_code(code)
    if category != ErrorCategory.UNKNOWN:
        return category

    if isinstance(error, (ConnectionError, TimeoutError, OSError)):
        return ErrorCategory.NETWORK

    return ErrorCategory.UNKNOWN


def get_error_code(error: Exception) -> str:
    """예외 객체에서 에러 코드 문자열 추출

    UpstreamError/ClientError는 AWS 에러 코드를, 그 외에는 예외 클래스명을 반환합니다.
    """
    if isinstance(error, UpstreamError) and error.error_code:
        return error.error_code
    if isinstance(error, AuthError) and error.cause is not None:
        return get_error_code(error.cause)
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        code: str = response.get("Error", {}).get("Code", "Unknown")
        return code
    return error.__class__.__name__


def _error_message(error: Exception) -> str:
    if isinstance(error, UpstreamError) and error.error_message:
        return error.error_message
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        return response.get("Error", {}).get("Message", str(error))
    return str(error)


class ErrorCollector:
    """스레드 세이프 에러 수집기

    갱신 주기의 모든 브랜치(계정/리전/이미지)에서 발생하는 에러를 안전하게
    수집하고, 컨텍스트와 함께 로깅합니다.

    Example:
        collector = ErrorCollector("ec2")
        collector.collect(e, owner_id, region, "describe_image_attribute", resource_id=image_id)

        if collector.has_errors:
            logger.warning(collector.get_summary())
    """

    def __init__(self, service: str):
        """초기화

        Args:
            service: 기본 AWS 서비스 이름 (UpstreamError가 아닌 에러에 적용)
        """
        self.service = service
        self._errors: list[CollectedError] = []
        self._lock = threading.Lock()

    def collect(
        self,
        error: Exception,
        account_id: str,
        region: str,
        operation: str,
        severity: ErrorSeverity = ErrorSeverity.WARNING,
        resource_id: str | None = None,
    ) -> CollectedError:
        """에러를 수집하고 로깅

        ACCESS_DENIED는 구성 문제이므로 심각도를 그대로 유지하고,
        권한 외 원인은 카테고리로 분류합니다.

        Args:
            error: 발생한 예외 (UpstreamError, AuthError, ClientError 등)
            account_id: 이미지 소유 계정 ID
            region: AWS 리전 (계정 단위 에러는 빈 문자열)
            operation: API 작업 이름
            severity: 에러 심각도 (기본: WARNING)
            resource_id: 관련 이미지 ID (선택사항)

        Returns:
            수집된 CollectedError
        """
        service = error.service if isinstance(error, UpstreamError) else self.service

        collected = CollectedError(
            timestamp=datetime.now(),
            account_id=account_id,
            region=region,
            service=service,
            operation=operation,
            error_code=get_error_code(error),
            error_message=_error_message(error),
            severity=severity,
            category=categorize_error(error),
            resource_id=resource_id,
        )

        with self._lock:
            self._errors.append(collected)

        log_msg = f"{collected} - {collected.error_message}"
        if severity == ErrorSeverity.CRITICAL:
            logger.error(log_msg)
        elif severity == ErrorSeverity.WARNING:
            logger.warning(log_msg)
        elif severity == ErrorSeverity.INFO:
            logger.info(log_msg)
        else:
            logger.debug(log_msg)

        return collected

    @property
    def errors(self) -> list[CollectedError]:
        """수집된 모든 에러의 복사본 반환"""
        with self._lock:
            return list(self._errors)

    @property
    def has_errors(self) -> bool:
        """에러 존재 여부"""
        with self._lock:
            return len(self._errors) > 0

    @property
    def error_count(self) -> int:
        with self._lock:
            return len(self._errors)

    def get_summary(self) -> str:
        """심각도별 에러 건수를 포함한 요약 문자열 반환

        Returns:
            포맷팅된 요약 문자열 (예: "에러 3건 (critical: 1건, warning: 2건)")
        """
        with self._lock:
            if not self._errors:
                return "에러 없음"

            by_severity: dict[str, int] = {}
            for e in self._errors:
                by_severity[e.severity.value] = by_severity.get(e.severity.value, 0) + 1

            parts = [f"{k}: {v}건" for k, v in sorted(by_severity.items())]
            return f"에러 {len(self._errors)}건 ({', '.join(parts)})"

    def get_by_account(self) -> dict[str, list[CollectedError]]:
        """계정별로 에러를 그룹핑하여 반환"""
        with self._lock:
            result: dict[str, list[CollectedError]] = {}
            for e in self._errors:
                result.setdefault(e.account_id, []).append(e)
            return result
