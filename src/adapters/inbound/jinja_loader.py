import logging

from jinja2 import BaseLoader, Environment, TemplateNotFound

from src.application.services.template_loader_service import TemplateLoaderService
from src.domain.template_store import StoreError

logger = logging.getLogger(__name__)


class DocumentStoreLoader(BaseLoader):
    """TemplateLoaderService 를 Jinja2 로더 계약에 연결합니다."""

    def __init__(self, templates: TemplateLoaderService, encoding: str = "utf-8"):
        self._templates = templates
        self._encoding = encoding

    def get_source(self, environment: Environment, template: str):
        handle = self._templates.find_template_source(template)
        if handle is None:
            raise TemplateNotFound(template)

        try:
            with self._templates.get_reader(handle, self._encoding) as reader:
                source = reader.read()
            last_modified = self._templates.get_last_modified(handle)
        finally:
            self._templates.close_template_source(handle)

        def uptodate() -> bool:
            # 확인 실패 시 다시 로드해 get_source 에서 오류가 드러나게 함
            try:
                current = self._templates.refresh(handle)
            except StoreError as e:
                logger.warning("템플릿 변경 확인 실패, 다시 로드합니다: %s (%s)", template, e)
                return False
            return current is not None and current.last_modified == last_modified

        logger.debug("템플릿 로드: %s (%d자)", template, len(source))
        return source, handle.path, uptodate

    def list_templates(self) -> list[str]:
        return sorted(obj.name for obj in self._templates.list_templates())
