"""
core/parallel/pool.py - 제한된 워커 풀 팬아웃

계정 → 리전 → 이미지 3단계 팬아웃의 가장 안쪽(이미지 단위 launchPermission 조회)
동시성을 제한합니다. 워커 수는 결과 크기에 비례하되 1 이상, 설정 상한 이하로
고정되어 계정별 EC2 API 요청률 급증을 막습니다.

주요 구성 요소:
- pool_size: 큐 크기 기반 워커 수 계산
- bounded_map: 고정 크기 워커 풀 + 제한된 작업 큐로 항목 처리

Example:
    workers = pool_size(max_workers=15, queue=len(images), percent=0.05)
    results = bounded_map(fetch_perms, images, workers, abort=abort_event)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from queue import Queue
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# 워커 종료 신호
_SENTINEL = object()


def pool_size(max_workers: int, queue: int, percent: float) -> int:
    """큐 크기의 일정 비율을 워커 수로 사용

    Args:
        max_workers: 워커 상한
        queue: 처리할 항목 수
        percent: 항목 수 대비 워커 비율

    Returns:
        1 <= size <= max_workers
    """
    size = int(queue * percent)
    if size < 1:
        return 1
    if size > max_workers:
        return max_workers
    return size


def bounded_map(
    func: Callable[[T], R],
    items: Iterable[T],
    workers: int,
    abort: threading.Event | None = None,
    thread_name_prefix: str = "aq-worker",
) -> list[R]:
    """고정 크기 워커 풀로 항목을 처리

    워커는 크기가 제한된 큐에서 작업을 가져오며, 생산자는 큐가 가득 차면 대기합니다.
    abort가 설정되면 새 작업 투입을 멈추고, 워커는 다음 항목을 가져오기 전에
    중단하며, 진행 중인 호출이 끝날 때까지 기다린 뒤 반환합니다(drain).

    func에서 발생한 예외는 전파되지 않으므로 func 내부에서 처리해야 합니다.
    처리되지 않은 예외는 로깅 후 해당 항목만 결과에서 제외됩니다.

    Args:
        func: 항목 처리 함수
        items: 처리할 항목
        workers: 워커 스레드 수 (1 이상)
        abort: 중단 신호
        thread_name_prefix: 워커 스레드 이름 접두사

    Returns:
        처리 결과 리스트 (완료 순서, 입력 순서 보장 안 함)
    """
    workers = max(1, workers)
    work: Queue = Queue(maxsize=workers * 2)
    results: list[R] = []
    results_lock = threading.Lock()

    def aborted() -> bool:
        return abort is not None and abort.is_set()

    def worker() -> None:
        while True:
            item = work.get()
            try:
                if item is _SENTINEL:
                    return
                if aborted():
                    continue
                try:
                    result = func(item)
                except Exception as e:
                    logger.error(f"워커 처리 중 예외: {e}")
                    continue
                with results_lock:
                    results.append(result)
            finally:
                work.task_done()

    threads = [
        threading.Thread(target=worker, name=f"{thread_name_prefix}-{i}", daemon=True) for i in range(workers)
    ]
    for t in threads:
        t.start()

    try:
        for item in items:
            if aborted():
                break
            work.put(item)
    finally:
        for _ in threads:
            work.put(_SENTINEL)
        for t in threads:
            t.join()

    return results
