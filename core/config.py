"""
core/config.py - 중앙 설정 관리

프로세스 상수(Settings), 환경변수 헬퍼, 그리고 캐시/서버 설정 데이터클래스를
제공합니다. 설정은 생성 시점에 검증되며(TTL 하한, 풀 크기 등),
잘못된 값은 ConfigError로 거부하거나 하한으로 보정합니다.

환경변수:
    AMIQUERY_ROLE_NAME                      각 계정에서 assume할 역할 이름 (필수)
    AMIQUERY_OWNER_IDS                      이미지 소유 계정 ID 목록, 콤마 구분 (필수)
    AMIQUERY_REGIONS                        폴링할 리전 목록 (기본: 전체)
    AMIQUERY_TAG_FILTER                     describe_images tag-key 필터
    AMIQUERY_STATE_TAG                      상태 태그 키 (기본: state)
    AMIQUERY_CACHE_TTL                      갱신 주기 (예: 15m, 1h, 900)
    AMIQUERY_CACHE_MAX_CONCURRENT_REQUESTS  launchPermission 조회 동시 요청 상한
    AMIQUERY_CACHE_MAX_REQUEST_RETRIES      EC2 API 재시도 횟수
    AMIQUERY_COLLECT_LAUNCH_PERMISSIONS     launchPermission 수집 여부
    AMIQUERY_LISTEN_ADDRESS                 HTTP 리슨 주소 (기본: :8080)
    AMIQUERY_APP_LOGFILE / AMIQUERY_HTTP_LOGFILE
    AMIQUERY_CORS_ALLOWED_ORIGINS
    SSL_CERTIFICATE_FILE / SSL_KEY_FILE

Usage:
    from core.config import load_config

    config = load_config()
    print(config.cache.ttl_seconds)
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from core.exceptions import ConfigError
from core.region.data import ALL_REGIONS, is_supported_region

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """프로세스 전역 상수 (불변)"""

    # 캐시 갱신
    MIN_CACHE_TTL_SECONDS: int = 300
    DEFAULT_CACHE_TTL_SECONDS: int = 900
    DEFAULT_MAX_CONCURRENT_REQUESTS: int = 15
    DEFAULT_MAX_REQUEST_RETRIES: int = 5
    POOL_SIZE_PERCENT: float = 0.05

    # 위임 자격 증명
    ROLE_SESSION_NAME: str = "ami-query"
    ROLE_SESSION_DURATION_SECONDS: int = 900

    # 상태 태그
    DEFAULT_STATE_TAG: str = "state"
    STATE_TAG_ALIASES: tuple[str, ...] = ("state", "status")

    # HTTP
    DEFAULT_LISTEN_ADDRESS: str = ":8080"


settings = Settings()


# =============================================================================
# 환경변수 헬퍼
# =============================================================================


def get_project_root() -> Path:
    """프로젝트 루트 경로"""
    return Path(__file__).resolve().parent.parent


def get_version() -> str:
    """version.txt에서 버전 문자열 읽기"""
    version_file = get_project_root() / "version.txt"
    try:
        return version_file.read_text(encoding="utf-8").strip()
    except OSError:
        return "0.0.0"


def get_env(key: str, default: str = "", environ: Mapping[str, str] | None = None) -> str:
    """환경변수 문자열 (공백 제거)"""
    env = os.environ if environ is None else environ
    return env.get(key, default).strip()


def get_env_bool(key: str, default: bool = False, environ: Mapping[str, str] | None = None) -> bool:
    """환경변수 불리언 변환

    Raises:
        ConfigError: 인식할 수 없는 값
    """
    value = get_env(key, environ=environ).lower()
    if not value:
        return default
    if value in ("1", "t", "true", "yes", "y", "on"):
        return True
    if value in ("0", "f", "false", "no", "n", "off"):
        return False
    raise ConfigError(key, f"불리언 값이 아닙니다: {value!r}")


def get_env_int(key: str, default: int = 0, environ: Mapping[str, str] | None = None) -> int:
    """환경변수 정수 변환

    Raises:
        ConfigError: 정수가 아닌 값
    """
    value = get_env(key, environ=environ)
    if not value:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigError(key, f"정수 값이 아닙니다: {value!r}", cause=e) from e


def get_env_list(key: str, environ: Mapping[str, str] | None = None) -> list[str]:
    """콤마 구분 환경변수를 리스트로 변환 (빈 항목 제외)"""
    value = get_env(key, environ=environ)
    return [item.strip() for item in value.split(",") if item.strip()]


_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1, "m": 60, "h": 3600}


def parse_duration(value: str) -> float:
    """기간 문자열을 초 단위로 변환

    "15m", "1h30m", "90s", "500ms" 형식과 단위 없는 초 값을 허용합니다.

    Raises:
        ValueError: 형식 오류
    """
    text = value.strip().lower()
    if not text:
        raise ValueError("empty duration")
    try:
        return float(text)
    except ValueError:
        pass

    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            raise ValueError(f"invalid duration: {value}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ValueError(f"invalid duration: {value}")
    return total


# =============================================================================
# 설정 데이터클래스
# =============================================================================


@dataclass
class CacheConfig:
    """이미지 캐시 설정

    Attributes:
        owner_ids: 이미지를 소유한 계정 ID 목록
        role_name: 각 계정에서 assume할 역할 이름
        regions: 폴링할 리전 (비어있으면 ALL_REGIONS)
        tag_filter: describe_images에 적용할 tag-key 필터 (존재 여부만 확인)
        state_tag: 상태 태그 키 (정렬과 state/status 쿼리에 사용)
        ttl_seconds: 갱신 주기 (하한 300초)
        max_concurrent_requests: launchPermission 조회 워커 상한
        max_request_retries: EC2 API 재시도 횟수
        collect_launch_permissions: launchPermission 수집 여부
    """

    owner_ids: list[str]
    role_name: str
    regions: list[str] = field(default_factory=list)
    tag_filter: str = ""
    state_tag: str = settings.DEFAULT_STATE_TAG
    ttl_seconds: float = settings.DEFAULT_CACHE_TTL_SECONDS
    max_concurrent_requests: int = settings.DEFAULT_MAX_CONCURRENT_REQUESTS
    max_request_retries: int = settings.DEFAULT_MAX_REQUEST_RETRIES
    collect_launch_permissions: bool = True

    def __post_init__(self) -> None:
        if not self.role_name:
            raise ConfigError("role_name", "역할 이름이 필요합니다")
        if not self.owner_ids:
            raise ConfigError("owner_ids", "소유 계정 ID가 하나 이상 필요합니다")

        # 중복 제거 (순서 유지)
        self.owner_ids = list(dict.fromkeys(self.owner_ids))

        if self.regions:
            for region in self.regions:
                if not is_supported_region(region):
                    raise ConfigError("regions", f"unknown or unsupported region: {region}")
            self.regions = list(dict.fromkeys(self.regions))
        else:
            self.regions = list(ALL_REGIONS)

        if not self.state_tag:
            self.state_tag = settings.DEFAULT_STATE_TAG

        if self.ttl_seconds < settings.MIN_CACHE_TTL_SECONDS:
            logger.info(
                f"TTL {self.ttl_seconds}s is too low, adjusting to {settings.MIN_CACHE_TTL_SECONDS}s"
            )
            self.ttl_seconds = settings.MIN_CACHE_TTL_SECONDS

        if self.max_concurrent_requests < 1:
            self.max_concurrent_requests = settings.DEFAULT_MAX_CONCURRENT_REQUESTS
        if self.max_request_retries < 1:
            self.max_request_retries = settings.DEFAULT_MAX_REQUEST_RETRIES


@dataclass
class ServerConfig:
    """HTTP 서버 설정"""

    listen_address: str = settings.DEFAULT_LISTEN_ADDRESS
    app_log_file: str = ""
    http_log_file: str = ""
    cors_allowed_origins: list[str] = field(default_factory=list)
    ssl_cert_file: str = ""
    ssl_key_file: str = ""

    @property
    def host(self) -> str:
        host, _, _ = self.listen_address.rpartition(":")
        return host or "0.0.0.0"

    @property
    def port(self) -> int:
        _, _, port = self.listen_address.rpartition(":")
        try:
            return int(port)
        except ValueError as e:
            raise ConfigError("AMIQUERY_LISTEN_ADDRESS", f"잘못된 주소: {self.listen_address}", cause=e) from e

    @property
    def tls_enabled(self) -> bool:
        return bool(self.ssl_cert_file and self.ssl_key_file)


@dataclass
class AppConfig:
    """전체 애플리케이션 설정"""

    cache: CacheConfig
    server: ServerConfig


def load_config(environ: Mapping[str, str] | None = None) -> AppConfig:
    """환경변수에서 설정 로드

    Args:
        environ: 환경변수 매핑 (None이면 os.environ)

    Returns:
        AppConfig

    Raises:
        ConfigError: 필수 값 누락 또는 형식 오류
    """
    role_name = get_env("AMIQUERY_ROLE_NAME", environ=environ)
    if not role_name:
        raise ConfigError("AMIQUERY_ROLE_NAME", "is undefined")

    owner_ids = get_env_list("AMIQUERY_OWNER_IDS", environ=environ)
    if not owner_ids:
        raise ConfigError("AMIQUERY_OWNER_IDS", "is undefined")

    ttl_seconds: float = settings.DEFAULT_CACHE_TTL_SECONDS
    ttl = get_env("AMIQUERY_CACHE_TTL", environ=environ)
    if ttl:
        try:
            ttl_seconds = parse_duration(ttl)
        except ValueError as e:
            raise ConfigError("AMIQUERY_CACHE_TTL", f"failed to read: {ttl!r}", cause=e) from e

    cache = CacheConfig(
        owner_ids=owner_ids,
        role_name=role_name,
        regions=get_env_list("AMIQUERY_REGIONS", environ=environ),
        tag_filter=get_env("AMIQUERY_TAG_FILTER", environ=environ),
        state_tag=get_env("AMIQUERY_STATE_TAG", environ=environ),
        ttl_seconds=ttl_seconds,
        max_concurrent_requests=get_env_int("AMIQUERY_CACHE_MAX_CONCURRENT_REQUESTS", 0, environ),
        max_request_retries=get_env_int("AMIQUERY_CACHE_MAX_REQUEST_RETRIES", 0, environ),
        collect_launch_permissions=get_env_bool("AMIQUERY_COLLECT_LAUNCH_PERMISSIONS", True, environ),
    )

    server = ServerConfig(
        listen_address=get_env("AMIQUERY_LISTEN_ADDRESS", settings.DEFAULT_LISTEN_ADDRESS, environ)
        or settings.DEFAULT_LISTEN_ADDRESS,
        app_log_file=get_env("AMIQUERY_APP_LOGFILE", environ=environ),
        http_log_file=get_env("AMIQUERY_HTTP_LOGFILE", environ=environ),
        cors_allowed_origins=get_env_list("AMIQUERY_CORS_ALLOWED_ORIGINS", environ=environ),
        ssl_cert_file=get_env("SSL_CERTIFICATE_FILE", environ=environ),
        ssl_key_file=get_env("SSL_KEY_FILE", environ=environ),
    )

    return AppConfig(cache=cache, server=server)
