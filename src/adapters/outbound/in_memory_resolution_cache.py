import logging
import threading
from typing import Callable

from src.domain.template_store import CacheSlot

logger = logging.getLogger(__name__)


class InMemoryResolutionCache:
    """프로세스 단위 사이트/폴더 ID 캐시 (만료 없음, 슬롯 2개 고정)"""

    def __init__(self):
        self._values: dict[CacheSlot, str] = {}
        self._lock = threading.Lock()
        self._creation_locks = {slot: threading.Lock() for slot in CacheSlot}

    def get(self, slot: CacheSlot) -> str | None:
        with self._lock:
            return self._values.get(slot)

    def put(self, slot: CacheSlot, value: str) -> None:
        with self._lock:
            self._values[slot] = value
        logger.debug("캐시 저장: %s=%s", slot.value, value)

    def remove(self, slot: CacheSlot) -> None:
        with self._lock:
            self._values.pop(slot, None)

    def get_or_create(self, slot: CacheSlot, factory: Callable[[], str | None]) -> str | None:
        value = self.get(slot)
        if value is not None:
            return value

        with self._creation_locks[slot]:
            # 대기하는 동안 다른 스레드가 채웠을 수 있음
            value = self.get(slot)
            if value is not None:
                return value
            value = factory()
            if value is not None:
                self.put(slot, value)
            return value
