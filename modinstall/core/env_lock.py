"""环境锁注册表

同一个 python 环境（按二进制目录区分）同时只允许一个安装过程执行，
不同环境之间互不等待。只在当前进程内生效。
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)


class LockRegistry:
    """按环境路径管理互斥锁

    锁在第一次使用时创建，之后一直保留（环境路径数量有限）。
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def acquire(self, key: str) -> Iterator[None]:
        """阻塞直到拿到 key 对应的锁；任何退出路径都会释放"""
        lock = self.lock_for(key)
        if lock.locked():
            logger.info("等待环境锁: %s", key)
        with lock:
            logger.debug("已获取环境锁: %s", key)
            yield
        logger.debug("已释放环境锁: %s", key)
