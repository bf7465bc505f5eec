"""
api/server.py - FastAPI 애플리케이션 팩토리

GET /amis   이미지 조회 (Accept: */* 또는 application/vnd.ami-query-v1+json)
GET /health 헬스 체크 ("Health Check Ok", text/plain)

에러는 {"id": ..., "message": ...} JSON으로 응답합니다:
    400 bad_request     잘못된 쿼리 또는 지원되지 않는 리전
    500 internal_error  그 외 예외

Example:
    app = create_app(cache, config.server, manager)
    uvicorn.run(app, host=config.server.host, port=config.server.port)
"""

from __future__ import annotations

import logging
import re
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.config import ServerConfig, get_version, settings
from core.data.images import CacheManager, ImageCache
from core.exceptions import BadRequestError, UnsupportedRegionError

from .query import QueryParams, encode_results, find_images

logger = logging.getLogger(__name__)
http_logger = logging.getLogger("ami_query.http")

API_PATH_QUERY = "/amis"
API_PATH_HEALTH = "/health"
V1_MEDIA_TYPE = "application/vnd.ami-query-v1+json"

_ACCEPT_V1 = re.compile(r"(application/vnd\.ami-query-v1\+json|\*/\*)")


def error_response(status_code: int, message: str) -> JSONResponse:
    """{"id", "message"} 형식의 에러 응답"""
    if status_code == 400:
        error_id = "bad_request"
    elif status_code == 500:
        error_id = "internal_error"
    else:
        error_id = "unknown_error"
        status_code = 500
    return JSONResponse(status_code=status_code, content={"id": error_id, "message": message})


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Combined Log Format 접근 로그 미들웨어"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start_time) * 1000

        client_ip = request.client.host if request.client else "-"
        timestamp = datetime.now(timezone.utc).strftime("%d/%b/%Y:%H:%M:%S %z")
        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"
        size = response.headers.get("content-length", "-")
        referer = request.headers.get("referer", "-")
        user_agent = request.headers.get("user-agent", "-")

        http_logger.info(
            f'{client_ip} - - [{timestamp}] "{request.method} {target} HTTP/{request.scope.get("http_version", "1.1")}" '
            f'{response.status_code} {size} "{referer}" "{user_agent}" {duration_ms:.1f}ms'
        )
        return response


def create_app(
    cache: ImageCache,
    server_config: ServerConfig | None = None,
    manager: CacheManager | None = None,
    state_tag: str = settings.DEFAULT_STATE_TAG,
) -> FastAPI:
    """FastAPI 애플리케이션 생성

    Args:
        cache: 조회 대상 이미지 캐시
        server_config: 서버 설정 (CORS 등)
        manager: 캐시 매니저 (헬스 체크 상세 정보용, 선택)
        state_tag: 상태 정렬 및 state/status 쿼리에 쓰이는 태그 키

    Returns:
        설정된 FastAPI 애플리케이션
    """
    server_config = server_config or ServerConfig()

    app = FastAPI(
        title="ami-query",
        description="Cached Amazon Machine Image metadata query API",
        version=get_version(),
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.cache = cache
    app.state.manager = manager

    if server_config.cors_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=server_config.cors_allowed_origins,
            allow_methods=["GET"],
            allow_headers=["*"],
        )
        logger.info(f"CORS enabled: {', '.join(server_config.cors_allowed_origins)}")

    app.add_middleware(AccessLogMiddleware)

    @app.exception_handler(BadRequestError)
    async def bad_request_handler(request: Request, exc: BadRequestError):
        return error_response(400, str(exc))

    @app.exception_handler(UnsupportedRegionError)
    async def unsupported_region_handler(request: Request, exc: UnsupportedRegionError):
        return error_response(400, str(exc))

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception):
        logger.error(f"{request.method} {request.url.path} 처리 실패: {exc}")
        return error_response(500, str(exc))

    @app.get(API_PATH_QUERY)
    def query_amis(request: Request) -> Response:
        """이미지 조회"""
        accept = request.headers.get("accept", "*/*")
        if not _ACCEPT_V1.search(accept):
            return PlainTextResponse("404 page not found", status_code=404)

        params = QueryParams.decode(request.url.query, state_tag=state_tag)
        images = find_images(cache, params, state_tag=state_tag)
        body, content_type = encode_results(images, params.pretty, params.callback)
        return Response(content=body, media_type=content_type)

    @app.get(API_PATH_HEALTH)
    def health_check() -> Response:
        """헬스 체크"""
        return PlainTextResponse("Health Check Ok")

    logger.info(f"FastAPI application created with {len(app.routes)} routes")
    return app


def cache_status(cache: ImageCache, manager: CacheManager | None = None) -> dict[str, Any]:
    """캐시 상태 요약 (CLI 출력용)"""
    status: dict[str, Any] = dict(cache.stats)
    if manager is not None:
        status["running"] = manager.is_running
        status["warmed"] = manager.warmed
        result = manager.last_result
        if result is not None:
            status["last_refresh_ms"] = round(result.duration_ms)
            status["last_refresh_errors"] = result.error_count
    return status
