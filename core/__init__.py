# core/__init__.py
"""
core - ami-query 인프라

AMI 메타데이터 캐시의 인증, 병렬 처리, 리전 데이터, 이미지 캐시를 포함하는
최상위 패키지입니다.

아키텍처:
    core/
    ├── auth/           # 위임 역할(AssumeRole) 세션
    ├── parallel/       # 병렬 처리 (client, worker pool, RW lock, 에러 수집)
    ├── region/         # 리전 데이터
    ├── data/images/    # 이미지 레코드, 필터, 스냅샷, 캐시, 갱신 엔진, 라이프사이클
    ├── config.py       # 중앙 설정 관리
    └── exceptions.py   # 통합 예외 계층

Usage:
    # 설정 로드
    from core.config import load_config
    config = load_config()

    # 예외 처리
    from core.exceptions import UnsupportedRegionError
    try:
        images = cache.images_in_region("mars-east-1")
    except UnsupportedRegionError as e:
        print(e)
"""

from core import auth, config, exceptions, parallel, region

__all__: list[str] = [
    # 서브패키지
    "auth",
    "region",
    "parallel",
    # 모듈
    "config",
    "exceptions",
]
