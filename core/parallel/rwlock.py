"""
core/parallel/rwlock.py - 읽기 우선 Reader/Writer 락

여러 조회 스레드가 동시에 스냅샷을 읽고, 갱신 주기는 스냅샷 교체 순간에만
배타 락을 잡습니다. 읽기가 우선이므로 읽기 중인 스레드가 있으면 쓰기는
모든 읽기가 끝날 때까지 대기합니다.

Example:
    lock = ReadWriteLock()

    with lock.read_locked():
        snapshot = self._snapshot

    with lock.write_locked():
        self._snapshot = new_snapshot
"""

from __future__ import annotations

import threading
from collections.abc import Generator
from contextlib import contextmanager


class ReadWriteLock:
    """읽기 우선 Reader/Writer 락"""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    def acquire_read(self) -> None:
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            while self._writing or self._readers > 0:
                self._cond.wait()
            self._writing = True

    def release_write(self) -> None:
        with self._cond:
            self._writing = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Generator[None, None, None]:
        """공유(읽기) 락 컨텍스트"""
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Generator[None, None, None]:
        """배타(쓰기) 락 컨텍스트"""
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    @property
    def readers(self) -> int:
        with self._cond:
            return self._readers
