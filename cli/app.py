"""
cli/app.py - 메인 CLI 엔트리포인트

Click 기반의 CLI 애플리케이션 진입점입니다.

명령어 구조:
    aq --version            # 버전 표시
    aq --log-level DEBUG ...  # 로그 레벨 지정
    aq serve                # 캐시 갱신 루프 + HTTP API 서버 실행
    aq regions              # 지원 리전 목록
    aq query [QUERY]        # 갱신 1회 후 쿼리 결과 출력

    예시:
    aq serve
    aq query "region=us-west-2&tag=state:available" --pretty

설정은 AMIQUERY_* 환경변수에서 읽습니다 (core.config 참고).

Usage:
    $ aq serve
    $ python main.py serve
"""

from __future__ import annotations

import logging
import sys
import threading

import click
from rich.console import Console
from rich.table import Table

from core.config import AppConfig, get_version, load_config
from core.data.images import CacheManager, ImageCache, ImageCollector
from core.exceptions import AQError, ConfigError
from core.region.data import ALL_REGIONS, get_region_name

logger = logging.getLogger(__name__)

VERSION = get_version()

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 첫 갱신 완료 대기 상한 (초)
WARM_TIMEOUT = 3600.0
# 종료 시 진행 중 갱신 drain 대기 상한 (초)
STOP_TIMEOUT = 300.0

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def setup_logging(app_log_file: str = "", http_log_file: str = "", level: int = logging.INFO) -> None:
    """애플리케이션/HTTP 접근 로그 출력 설정

    파일 경로가 비어 있으면 stderr로 출력합니다.
    """
    app_handler: logging.Handler = logging.FileHandler(app_log_file) if app_log_file else logging.StreamHandler()
    app_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logging.basicConfig(level=level, handlers=[app_handler], force=True)

    http_handler: logging.Handler = logging.FileHandler(http_log_file) if http_log_file else logging.StreamHandler()
    http_handler.setFormatter(logging.Formatter("%(message)s"))
    http_logger = logging.getLogger("ami_query.http")
    http_logger.handlers = [http_handler]
    http_logger.setLevel(logging.INFO)
    http_logger.propagate = False

    # botocore 노이즈 로그 제한
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _load_config() -> AppConfig:
    try:
        return load_config()
    except ConfigError as e:
        click.echo(f"ERROR: {e}", err=True)
        raise SystemExit(1) from e


@click.group()
@click.version_option(VERSION, prog_name="aq")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="로그 레벨 (기본: serve INFO, query WARNING)",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """ami-query - AMI 메타데이터 캐시 및 조회 API"""
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level


def _log_level(ctx: click.Context, default: int) -> int:
    """--log-level 값 (지정하지 않으면 명령별 기본값)"""
    name = (ctx.obj or {}).get("log_level")
    if not name:
        return default
    return logging.getLevelName(name.upper())


@cli.command("serve")
@click.option("--no-wait", is_flag=True, help="첫 갱신 완료를 기다리지 않고 바로 서버 시작")
@click.pass_context
def serve_command(ctx: click.Context, no_wait: bool) -> None:
    """캐시 갱신 루프와 HTTP API 서버 실행

    \b
    Examples:
        aq serve
        AMIQUERY_LISTEN_ADDRESS=127.0.0.1:9000 aq serve
    """
    import uvicorn

    from api.server import cache_status, create_app

    config = _load_config()
    setup_logging(config.server.app_log_file, config.server.http_log_file, level=_log_level(ctx, logging.INFO))
    logger.info(f"Loaded configuration (version {VERSION})")

    cache = ImageCache(config.cache.regions)
    manager = CacheManager(ImageCollector(config.cache), cache, config.cache.ttl_seconds)
    warmed = threading.Event()
    manager.start(warmed=warmed)

    try:
        if not no_wait:
            logger.info("Waiting for the first cache update")
            if warmed.wait(WARM_TIMEOUT):
                logger.info(f"Cache warmed: {cache_status(cache, manager)}")
            else:
                logger.warning(f"Cache not warmed after {WARM_TIMEOUT:.0f}s, serving anyway")

        app = create_app(cache, config.server, manager, state_tag=config.cache.state_tag)
        server = config.server
        ssl_options = {}
        if server.tls_enabled:
            ssl_options = {"ssl_certfile": server.ssl_cert_file, "ssl_keyfile": server.ssl_key_file}

        logger.info(f"Listening on {server.host}:{server.port} ({'https' if server.tls_enabled else 'http'})")
        uvicorn.run(
            app,
            host=server.host,
            port=server.port,
            log_config=None,
            access_log=False,
            **ssl_options,
        )
    finally:
        if manager.is_running:
            manager.stop(timeout=STOP_TIMEOUT)


@cli.command("regions")
def regions_command() -> None:
    """지원 리전 목록"""
    console = Console()

    table = Table(title="지원 리전", show_header=True, header_style="bold magenta")
    table.add_column("리전", style="cyan")
    table.add_column("이름", style="white")

    for region in ALL_REGIONS:
        table.add_row(region, get_region_name(region))

    console.print(table)
    console.print(f"[dim]총 {len(ALL_REGIONS)}개 리전[/dim]")


@cli.command("query")
@click.argument("query", default="")
@click.option("--pretty", is_flag=True, help="들여쓰기 JSON 출력")
@click.pass_context
def query_command(ctx: click.Context, query: str, pretty: bool) -> None:
    """캐시를 1회 갱신한 뒤 쿼리 결과를 JSON으로 출력

    \b
    Examples:
        aq query "region=us-east-1&state=available"
        aq query "tag=team:platform" --pretty
    """
    from api.query import QueryParams, encode_results, find_images

    config = _load_config()
    setup_logging(level=_log_level(ctx, logging.WARNING))

    try:
        params = QueryParams.decode(query, state_tag=config.cache.state_tag)
    except AQError as e:
        click.echo(f"ERROR: {e}", err=True)
        raise SystemExit(2) from e

    cache = ImageCache(config.cache.regions)
    result = ImageCollector(config.cache).refresh()
    if result.snapshot is not None:
        cache.swap(result.snapshot)

    err_console = Console(stderr=True)
    err_console.print(
        f"[dim]{result.image_count}개 이미지, 에러 {result.error_count}건, {result.duration_ms:.0f}ms[/dim]"
    )

    try:
        images = find_images(cache, params, state_tag=config.cache.state_tag)
    except AQError as e:
        click.echo(f"ERROR: {e}", err=True)
        raise SystemExit(2) from e

    body, _ = encode_results(images, pretty or params.pretty, params.callback)
    click.echo(body.rstrip("\n"))


def main() -> None:
    cli()


if __name__ == "__main__":
    sys.exit(main())
