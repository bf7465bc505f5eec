# core/auth/__init__.py
"""
AWS 위임 인증 모듈 (core/auth)

각 이미지 소유 계정에 대해 STS AssumeRole로 15분짜리 최소 권한 세션을
생성합니다. 자격 증명 확인(credential chain)과 재시도/백오프는 boto3/botocore에
위임합니다.

사용 예시:
    import boto3
    from core.auth import assume_role_session

    session = assume_role_session(boto3.client("sts"), "111122223333", "ami-query")

Note:
    이 모듈은 Lazy Import 패턴을 사용합니다.
    실제 사용 시점에만 하위 모듈(boto3 포함)이 로드됩니다.
"""

__all__ = [
    "AuthError",
    "POLICY",
    "POLICY_DOCUMENT",
    "assume_role_session",
    "role_arn",
]

# Lazy import 매핑 테이블
_IMPORT_MAPPING = {
    "AuthError": ("core.exceptions", "AuthError"),
    "POLICY": (".sts", "POLICY"),
    "POLICY_DOCUMENT": (".sts", "POLICY_DOCUMENT"),
    "assume_role_session": (".sts", "assume_role_session"),
    "role_arn": (".sts", "role_arn"),
}


def __getattr__(name: str):
    """Lazy import - 실제 사용 시점에만 모듈 로드"""
    if name in _IMPORT_MAPPING:
        module_name, attr_name = _IMPORT_MAPPING[name]
        import importlib

        module = importlib.import_module(module_name, __name__)
        return getattr(module, attr_name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
