import codecs
import io
import logging
import mimetypes
from contextlib import contextmanager
from pathlib import PurePosixPath
from typing import Iterator, TextIO

from src.application.ports.resolution_cache_port import ResolutionCachePort
from src.application.ports.template_store_port import TemplateStorePort
from src.application.services.path_resolver import PathResolver
from src.domain.template_store import CacheSlot, StoreObject, TemplateLoaderConfig

logger = logging.getLogger(__name__)

# mimetypes 가 모르는 템플릿 확장자
_TEMPLATE_MIME_TYPES = {
    ".ftl": "text/plain",
    ".j2": "text/plain",
    ".jinja": "text/plain",
    ".jinja2": "text/plain",
}


def guess_mime_type(file_name: str) -> str:
    suffix = PurePosixPath(file_name).suffix.lower()
    if suffix in _TEMPLATE_MIME_TYPES:
        return _TEMPLATE_MIME_TYPES[suffix]
    mime_type, _ = mimetypes.guess_type(file_name)
    return mime_type or "application/octet-stream"


class TemplateLoaderService:
    """
    문서 저장소 기반 템플릿 로더.

    find_template_source / get_last_modified / get_reader / close_template_source
    네 가지 로더 계약을 제공합니다. 사이트 ID 는 프로세스 동안 캐시되고,
    템플릿 폴더 ID 슬롯은 매 조회가 끝날 때 항상 제거됩니다.
    """

    def __init__(
        self,
        store: TemplateStorePort,
        cache: ResolutionCachePort,
        config: TemplateLoaderConfig,
    ):
        self._store = store
        self._cache = cache
        self._config = config
        self._resolver = PathResolver(store)

    @property
    def config(self) -> TemplateLoaderConfig:
        return self._config

    # ------------------------------------------------------------------
    # Loader contract
    # ------------------------------------------------------------------

    def find_template_source(self, name: str) -> StoreObject | None:
        """템플릿 문서를 찾습니다. 사이트/폴더/문서 중 하나라도 없으면 None."""
        try:
            folder = self._resolve_template_folder(create_missing=self._config.create_folder)
            if folder is None:
                return None

            template = self._store.find_child(folder, name)
            if template is None or not template.is_document:
                logger.debug("템플릿 없음: %s, 다음 로더 시도", name)
                return None

            logger.info("템플릿 발견: [%s] %s", template.id, template.name)
            return template
        finally:
            self._cache.remove(CacheSlot.TEMPLATE_FOLDER_ID)

    def get_last_modified(self, handle: StoreObject) -> int:
        return handle.last_modified

    @contextmanager
    def get_reader(self, handle: StoreObject, encoding: str = "utf-8") -> Iterator[TextIO]:
        """문서 본문을 encoding 으로 디코딩한 텍스트 스트림을 제공합니다."""
        with self._store.open_content(handle) as chunks:
            decoder = codecs.getincrementaldecoder(encoding)()
            parts = [decoder.decode(chunk) for chunk in chunks]
            parts.append(decoder.decode(b"", final=True))
            yield io.StringIO("".join(parts))

    def close_template_source(self, handle: StoreObject) -> None:
        # 핸들에는 해제할 자원이 없음
        pass

    # ------------------------------------------------------------------
    # Extra operations
    # ------------------------------------------------------------------

    def refresh(self, handle: StoreObject) -> StoreObject | None:
        """핸들을 ID 로 다시 조회합니다."""
        return self._store.get_by_id(handle.id)

    def list_templates(self) -> list[StoreObject]:
        """템플릿 폴더의 문서 목록을 반환합니다."""
        try:
            folder = self._resolve_template_folder(create_missing=self._config.create_folder)
            if folder is None:
                return []
            return [child for child in self._store.list_children(folder) if child.is_document]
        finally:
            self._cache.remove(CacheSlot.TEMPLATE_FOLDER_ID)

    def reset_template_folder(self) -> bool:
        """템플릿 폴더를 하위 객체와 함께 삭제합니다. 폴더가 없으면 False."""
        try:
            folder = self._resolve_template_folder(create_missing=False)
            if folder is None:
                return False
            logger.info("템플릿 폴더 삭제: [%s] %s", folder.id, folder.name)
            self._store.delete_subtree(folder)
            return True
        finally:
            self._cache.remove(CacheSlot.TEMPLATE_FOLDER_ID)
            self._cache.remove(CacheSlot.SITE_ID)

    def forget_site(self) -> None:
        self._cache.remove(CacheSlot.SITE_ID)

    # ------------------------------------------------------------------
    # Resolution helpers
    # ------------------------------------------------------------------

    def _resolve_template_folder(self, create_missing: bool) -> StoreObject | None:
        site_id = self._cache.get_or_create(CacheSlot.SITE_ID, self._lookup_site_id)
        if site_id is None:
            return None

        resolved: list[StoreObject] = []

        def lookup_folder_id() -> str | None:
            folder = self._resolver.resolve(
                root=self._store.get_root(site_id),
                segments=self._config.folder_segments,
                create_missing=create_missing,
                on_missing_leaf=self._seed_default_template,
            )
            if folder is None:
                return None
            resolved.append(folder)
            return folder.id

        folder_id = self._cache.get_or_create(CacheSlot.TEMPLATE_FOLDER_ID, lookup_folder_id)
        if folder_id is None:
            return None
        if resolved:
            return resolved[0]
        return self._store.get_by_id(folder_id)

    def _lookup_site_id(self) -> str | None:
        site_name = self._config.site_name
        site_id = self._store.find_site(site_name)
        if site_id is not None:
            return site_id

        if not self._config.create_site:
            logger.info(
                "사이트가 없습니다: %s. 사이트를 직접 만들거나 CREATE_SITE=true 로 자동 생성을 켜세요.",
                site_name,
            )
            return None

        logger.info("사이트 자동 생성: %s", site_name)
        return self._store.create_site(site_name)

    def _seed_default_template(self, folder: StoreObject) -> None:
        name = self._config.default_template_name
        if self._config.default_template is None:
            logger.warning("기본 템플릿이 설정되지 않아 생성하지 않습니다: %s", folder.name)
            return
        # create_folder 는 이름 충돌 시 기존 폴더를 돌려주므로 다른 프로세스가 이미 넣었을 수 있음
        if self._store.find_child(folder, name) is not None:
            logger.info("기본 템플릿이 이미 있습니다: %s → [%s] %s", name, folder.id, folder.name)
            return
        logger.info("기본 템플릿 생성: %s → [%s] %s", name, folder.id, folder.name)
        self._store.create_document(
            parent=folder,
            content=self._config.default_template,
            mime_type=guess_mime_type(name),
            name=name,
        )
