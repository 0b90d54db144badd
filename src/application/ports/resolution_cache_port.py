from typing import Callable, Protocol

from src.domain.template_store import CacheSlot


class ResolutionCachePort(Protocol):
    """사이트 ID / 템플릿 폴더 ID 캐시 계약"""

    def get(self, slot: CacheSlot) -> str | None:
        ...

    def put(self, slot: CacheSlot, value: str) -> None:
        ...

    def remove(self, slot: CacheSlot) -> None:
        ...

    def get_or_create(self, slot: CacheSlot, factory: Callable[[], str | None]) -> str | None:
        """캐시에 값이 없으면 factory 로 생성합니다. 동시 호출 시 factory 는 한 번만 실행됩니다."""
        ...
