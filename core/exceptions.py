"""
core/exceptions.py - 통합 예외 계층 구조

ami-query 전체에서 사용되는 예외 클래스들을 정의합니다.
갱신 경로(refresh)의 에러는 로깅 후 해당 브랜치만 축소하고,
조회 경로(query)의 에러는 호출자에게 그대로 전달됩니다.

예외 계층 구조:
    AQError (베이스)
    ├── AuthError (위임 역할 획득 실패, 계정 단위)
    ├── UpstreamError (EC2 API 호출 실패, 리전/이미지 단위)
    ├── UnsupportedRegionError (설정되지 않은 리전 조회)
    ├── BadRequestError (잘못된 쿼리 파라미터)
    ├── LifecycleError (캐시 매니저 오용)
    │   ├── AlreadyRunningError
    │   └── NotRunningError
    └── ConfigError (설정 관련)

Usage:
    from core.exceptions import UpstreamError

    try:
        rsp = ec2.describe_images(Owners=[owner_id])
    except ClientError as e:
        raise UpstreamError.from_client_error("ec2", "describe_images", e) from e
"""

from typing import Any, Dict, Optional

# =============================================================================
# 베이스 예외
# =============================================================================


class AQError(Exception):
    """ami-query 기본 예외 클래스

    모든 커스텀 예외의 베이스 클래스입니다.

    Attributes:
        message: 에러 메시지
        cause: 원인 예외 (체이닝용)
        details: 추가 상세 정보
    """

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.details = details or {}

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """예외 정보를 딕셔너리로 반환"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "cause": str(self.cause) if self.cause else None,
            "details": self.details,
        }


# =============================================================================
# 갱신 경로 예외 (로깅 후 부분 결과로 축소)
# =============================================================================


class AuthError(AQError):
    """위임 역할(assume role) 획득 실패

    해당 계정의 이번 갱신 주기 기여분만 비워지고, 다른 계정은 계속 진행됩니다.
    """

    def __init__(
        self,
        account_id: str,
        message: str,
        cause: Optional[Exception] = None,
    ):
        full_message = f"인증 오류 [{account_id}]: {message}"
        super().__init__(full_message, cause)
        self.account_id = account_id
        self.details["account_id"] = account_id


class UpstreamError(AQError):
    """EC2 API 호출 실패

    boto3/botocore의 ClientError를 래핑하여 일관된 예외 처리를 제공합니다.
    """

    def __init__(
        self,
        service: str,
        operation: str,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        message = f"{service}.{operation}"
        if error_code:
            message = f"{message} 실패 ({error_code})"
        if error_message:
            message = f"{message}: {error_message}"

        super().__init__(message, cause)
        self.service = service
        self.operation = operation
        self.error_code = error_code
        self.error_message = error_message
        self.details.update(
            {
                "service": service,
                "operation": operation,
                "error_code": error_code,
            }
        )

    def __str__(self) -> str:
        # 메시지에 이미 원인 코드/메시지가 포함되어 있음
        return self.message

    @classmethod
    def from_client_error(
        cls,
        service: str,
        operation: str,
        client_error: Exception,
    ) -> "UpstreamError":
        """botocore.exceptions.ClientError로부터 생성

        Args:
            service: AWS 서비스 이름
            operation: API 작업 이름
            client_error: ClientError 예외 (BotoCoreError도 허용)

        Returns:
            UpstreamError 인스턴스
        """
        error_code = None
        error_message = None

        # ClientError 형식 파싱
        response = getattr(client_error, "response", None)
        if isinstance(response, dict):
            error_info = response.get("Error", {})
            error_code = error_info.get("Code")
            error_message = error_info.get("Message")
        else:
            error_code = client_error.__class__.__name__
            error_message = str(client_error)

        return cls(
            service=service,
            operation=operation,
            error_code=error_code,
            error_message=error_message,
            cause=client_error,
        )


# =============================================================================
# 조회 경로 예외 (호출자에게 클라이언트 에러로 전달)
# =============================================================================


class UnsupportedRegionError(AQError):
    """설정/지원되지 않는 리전 조회"""

    def __init__(self, region: str):
        super().__init__(f"unknown or unsupported region: {region}")
        self.region = region
        self.details["region"] = region


class BadRequestError(AQError):
    """쿼리 파라미터 형식 오류"""

    pass


# =============================================================================
# 라이프사이클 예외
# =============================================================================


class LifecycleError(AQError):
    """캐시 매니저 상태 전이 오류"""

    pass


class AlreadyRunningError(LifecycleError):
    """이미 실행 중인 캐시를 다시 시작하려는 경우"""

    def __init__(self, message: str = "cache running"):
        super().__init__(message)


class NotRunningError(LifecycleError):
    """실행 중이 아닌 캐시를 중지하려는 경우"""

    def __init__(self, message: str = "cache not running"):
        super().__init__(message)


# =============================================================================
# 설정 관련 예외
# =============================================================================


class ConfigError(AQError):
    """설정 관련 예외"""

    def __init__(
        self,
        key: str,
        message: str,
        cause: Optional[Exception] = None,
    ):
        full_message = f"설정 오류 [{key}]: {message}"
        super().__init__(full_message, cause)
        self.config_key = key
        self.details["config_key"] = key


# =============================================================================
# 예외 유틸리티 함수
# =============================================================================


def _error_code(error: Exception) -> str:
    if isinstance(error, UpstreamError):
        return error.error_code or ""
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        return response.get("Error", {}).get("Code", "")
    return ""


def is_access_denied(error: Exception) -> bool:
    """액세스 거부 오류인지 확인

    Args:
        error: 확인할 예외

    Returns:
        액세스 거부 오류이면 True
    """
    return _error_code(error) in (
        "AccessDenied",
        "AccessDeniedException",
        "UnauthorizedOperation",
        "UnauthorizedAccess",
    )


def is_throttling(error: Exception) -> bool:
    """스로틀링 오류인지 확인

    Args:
        error: 확인할 예외

    Returns:
        스로틀링 오류이면 True
    """
    return _error_code(error) in {
        "Throttling",
        "ThrottlingException",
        "RequestLimitExceeded",
        "TooManyRequestsException",
        "RateExceeded",
    }


def is_expired_token(error: Exception) -> bool:
    """위임 자격 증명 만료 오류인지 확인

    15분짜리 위임 자격 증명이 긴 갱신 주기 도중 만료되면 발생합니다.
    """
    return _error_code(error) in ("ExpiredToken", "ExpiredTokenException", "RequestExpired")


def is_not_found(error: Exception) -> bool:
    """리소스를 찾을 수 없는 오류인지 확인"""
    return _error_code(error) in {
        "InvalidAMIID.NotFound",
        "InvalidAMIID.Unavailable",
        "InvalidAMIID.Malformed",
    }
