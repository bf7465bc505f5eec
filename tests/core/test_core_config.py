"""
tests/test_core_config.py - core/config.py 테스트
"""

import logging

import pytest

from core.config import (
    CacheConfig,
    ServerConfig,
    get_env_bool,
    get_env_int,
    get_env_list,
    get_project_root,
    get_version,
    load_config,
    parse_duration,
    settings,
)
from core.exceptions import ConfigError
from core.region.data import ALL_REGIONS


class TestSettings:
    """Settings 데이터클래스 테스트"""

    def test_settings_is_frozen(self):
        """설정이 불변인지 확인"""
        with pytest.raises(Exception):  # FrozenInstanceError
            settings.MIN_CACHE_TTL_SECONDS = 1

    def test_default_values(self):
        """기본값 확인"""
        assert settings.MIN_CACHE_TTL_SECONDS == 300
        assert settings.ROLE_SESSION_NAME == "ami-query"
        assert settings.ROLE_SESSION_DURATION_SECONDS == 900
        assert settings.POOL_SIZE_PERCENT == 0.05
        assert settings.STATE_TAG_ALIASES == ("state", "status")


class TestEnvHelpers:
    """환경변수 헬퍼 테스트"""

    def test_get_env_bool(self):
        """불리언 변환"""
        assert get_env_bool("X", environ={"X": "true"}) is True
        assert get_env_bool("X", environ={"X": "0"}) is False
        assert get_env_bool("X", default=True, environ={}) is True

    def test_get_env_bool_invalid(self):
        """잘못된 불리언 값"""
        with pytest.raises(ConfigError):
            get_env_bool("X", environ={"X": "maybe"})

    def test_get_env_int(self):
        """정수 변환"""
        assert get_env_int("X", environ={"X": " 42 "}) == 42
        assert get_env_int("X", 7, environ={}) == 7
        with pytest.raises(ConfigError):
            get_env_int("X", environ={"X": "abc"})

    def test_get_env_list(self):
        """콤마 구분 리스트 (빈 항목 제외)"""
        assert get_env_list("X", environ={"X": "a, b,,c "}) == ["a", "b", "c"]
        assert get_env_list("X", environ={}) == []

    def test_project_root_and_version(self):
        """프로젝트 루트와 버전"""
        assert (get_project_root() / "core").is_dir()
        assert isinstance(get_version(), str)


class TestParseDuration:
    """parse_duration 테스트"""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("15m", 900),
            ("1h30m", 5400),
            ("90s", 90),
            ("500ms", 0.5),
            ("300", 300),
        ],
    )
    def test_valid(self, value, expected):
        """유효한 기간 문자열"""
        assert parse_duration(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", ["", "15x", "m15", "1h 30m"])
    def test_invalid(self, value):
        """잘못된 기간 문자열"""
        with pytest.raises(ValueError):
            parse_duration(value)


class TestCacheConfig:
    """CacheConfig 검증 테스트"""

    def test_requires_role_and_owners(self):
        """역할 이름과 소유 계정은 필수"""
        with pytest.raises(ConfigError):
            CacheConfig(owner_ids=["111111111111"], role_name="")
        with pytest.raises(ConfigError):
            CacheConfig(owner_ids=[], role_name="ami-query")

    def test_empty_regions_means_all(self):
        """리전이 없으면 전체 리전"""
        config = CacheConfig(owner_ids=["111111111111"], role_name="ami-query")
        assert config.regions == ALL_REGIONS

    def test_unsupported_region_rejected(self):
        """지원하지 않는 리전은 거부"""
        with pytest.raises(ConfigError) as exc_info:
            CacheConfig(owner_ids=["111111111111"], role_name="r", regions=["mars-east-1"])
        assert "mars-east-1" in str(exc_info.value)

    def test_dedup(self):
        """계정/리전 중복 제거 (순서 유지)"""
        config = CacheConfig(
            owner_ids=["2", "1", "2"],
            role_name="r",
            regions=["us-west-2", "us-east-1", "us-west-2"],
        )
        assert config.owner_ids == ["2", "1"]
        assert config.regions == ["us-west-2", "us-east-1"]

    def test_ttl_floor(self, caplog):
        """TTL 하한 300초로 보정 및 로깅"""
        with caplog.at_level(logging.INFO, logger="core.config"):
            config = CacheConfig(owner_ids=["1"], role_name="r", ttl_seconds=60)
        assert config.ttl_seconds == 300
        assert "too low" in caplog.text

    def test_ttl_above_floor_kept(self):
        """하한 이상 TTL은 그대로"""
        config = CacheConfig(owner_ids=["1"], role_name="r", ttl_seconds=1800)
        assert config.ttl_seconds == 1800

    def test_non_positive_limits_use_defaults(self):
        """0 이하 동시성/재시도는 기본값"""
        config = CacheConfig(owner_ids=["1"], role_name="r", max_concurrent_requests=0, max_request_retries=-1)
        assert config.max_concurrent_requests == settings.DEFAULT_MAX_CONCURRENT_REQUESTS
        assert config.max_request_retries == settings.DEFAULT_MAX_REQUEST_RETRIES


class TestServerConfig:
    """ServerConfig 테스트"""

    def test_listen_address(self):
        """주소 파싱"""
        assert ServerConfig(":8080").host == "0.0.0.0"
        assert ServerConfig(":8080").port == 8080
        assert ServerConfig("127.0.0.1:9000").host == "127.0.0.1"

    def test_invalid_port(self):
        """잘못된 포트"""
        with pytest.raises(ConfigError):
            _ = ServerConfig("localhost:http").port

    def test_tls_requires_both_files(self):
        """인증서와 키가 모두 있어야 TLS"""
        assert not ServerConfig(ssl_cert_file="cert.pem").tls_enabled
        assert ServerConfig(ssl_cert_file="cert.pem", ssl_key_file="key.pem").tls_enabled


class TestLoadConfig:
    """load_config 테스트"""

    def test_minimal(self):
        """필수 값만 설정"""
        config = load_config({"AMIQUERY_ROLE_NAME": "ami-query", "AMIQUERY_OWNER_IDS": "111111111111,222222222222"})
        assert config.cache.role_name == "ami-query"
        assert config.cache.owner_ids == ["111111111111", "222222222222"]
        assert config.cache.ttl_seconds == settings.DEFAULT_CACHE_TTL_SECONDS
        assert config.cache.state_tag == "state"
        assert config.cache.collect_launch_permissions is True
        assert config.server.listen_address == ":8080"

    def test_full(self):
        """모든 값 설정"""
        config = load_config(
            {
                "AMIQUERY_ROLE_NAME": "ami-query",
                "AMIQUERY_OWNER_IDS": "111111111111",
                "AMIQUERY_REGIONS": "us-east-1,us-west-2",
                "AMIQUERY_TAG_FILTER": "team",
                "AMIQUERY_STATE_TAG": "status",
                "AMIQUERY_CACHE_TTL": "1h",
                "AMIQUERY_CACHE_MAX_CONCURRENT_REQUESTS": "4",
                "AMIQUERY_CACHE_MAX_REQUEST_RETRIES": "2",
                "AMIQUERY_COLLECT_LAUNCH_PERMISSIONS": "false",
                "AMIQUERY_LISTEN_ADDRESS": "127.0.0.1:9000",
                "AMIQUERY_CORS_ALLOWED_ORIGINS": "https://a.example.com",
                "SSL_CERTIFICATE_FILE": "cert.pem",
                "SSL_KEY_FILE": "key.pem",
            }
        )
        assert config.cache.regions == ["us-east-1", "us-west-2"]
        assert config.cache.tag_filter == "team"
        assert config.cache.state_tag == "status"
        assert config.cache.ttl_seconds == 3600
        assert config.cache.max_concurrent_requests == 4
        assert config.cache.max_request_retries == 2
        assert config.cache.collect_launch_permissions is False
        assert config.server.port == 9000
        assert config.server.cors_allowed_origins == ["https://a.example.com"]
        assert config.server.tls_enabled

    @pytest.mark.parametrize("missing", ["AMIQUERY_ROLE_NAME", "AMIQUERY_OWNER_IDS"])
    def test_missing_required(self, missing):
        """필수 값 누락"""
        environ = {"AMIQUERY_ROLE_NAME": "ami-query", "AMIQUERY_OWNER_IDS": "111111111111"}
        del environ[missing]
        with pytest.raises(ConfigError) as exc_info:
            load_config(environ)
        assert missing in str(exc_info.value)

    def test_bad_ttl(self):
        """잘못된 TTL 형식"""
        with pytest.raises(ConfigError):
            load_config({"AMIQUERY_ROLE_NAME": "r", "AMIQUERY_OWNER_IDS": "1", "AMIQUERY_CACHE_TTL": "soon"})

    def test_ttl_below_floor(self):
        """TTL 하한 보정"""
        config = load_config({"AMIQUERY_ROLE_NAME": "r", "AMIQUERY_OWNER_IDS": "1", "AMIQUERY_CACHE_TTL": "1m"})
        assert config.cache.ttl_seconds == 300
