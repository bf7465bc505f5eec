"""
core/parallel/types.py - 병렬 처리 공통 타입

에러 분류 카테고리를 정의합니다.
"""

from enum import Enum


class ErrorCategory(Enum):
    """AWS API 에러 카테고리"""

    ACCESS_DENIED = "access_denied"
    NOT_FOUND = "not_found"
    THROTTLING = "throttling"
    TIMEOUT = "timeout"
    EXPIRED_TOKEN = "expired_token"
    INVALID_REQUEST = "invalid_request"
    SERVICE_ERROR = "service_error"
    NETWORK = "network"
    UNKNOWN = "unknown"
