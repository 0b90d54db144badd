import logging
from typing import Callable

from src.application.ports.template_store_port import TemplateStorePort
from src.domain.template_store import StoreObject

logger = logging.getLogger(__name__)


class PathResolver:
    """폴더 경로를 세그먼트 단위로 따라가며 마지막 폴더를 찾습니다 (필요 시 생성)"""

    def __init__(self, store: TemplateStorePort):
        self._store = store

    def resolve(
        self,
        root: StoreObject,
        segments: list[str],
        create_missing: bool,
        on_missing_leaf: Callable[[StoreObject], None] | None = None,
    ) -> StoreObject | None:
        """
        root 부터 segments 순서대로 폴더를 탐색합니다.

        Args:
            create_missing: True 이면 없는 폴더를 생성합니다
            on_missing_leaf: 마지막 세그먼트 폴더를 새로 생성했을 때만 호출됩니다

        Returns:
            마지막 폴더. 폴더가 없고 create_missing=False 이면 None
        """
        current = root
        last_index = len(segments) - 1

        for index, segment in enumerate(segments):
            child = self._store.find_child(current, segment)
            if child is not None and child.is_folder:
                current = child
                continue

            if child is not None:
                logger.warning(
                    "폴더 위치에 문서가 있습니다: %s (parent=%s)", segment, current.id
                )
                return None

            if not create_missing:
                logger.info(
                    "폴더가 없습니다: %s (parent=%s). 폴더를 직접 만들거나 "
                    "CREATE_FOLDER=true 로 자동 생성을 켜세요.",
                    segment, current.id,
                )
                return None

            logger.info("폴더 자동 생성: %s (parent=%s)", segment, current.id)
            current = self._store.create_folder(segment, current)

            if index == last_index and on_missing_leaf is not None:
                on_missing_leaf(current)

        return current
