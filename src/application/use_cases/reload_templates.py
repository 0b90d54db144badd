import logging

from jinja2 import Environment

from src.application.services.template_loader_service import TemplateLoaderService

logger = logging.getLogger(__name__)


class ReloadTemplatesUseCase:
    """Jinja2 템플릿 캐시와 사이트 ID 캐시를 비우는 Use Case"""

    def __init__(self, environment: Environment, templates: TemplateLoaderService):
        self._env = environment
        self._templates = templates

    def execute(self) -> dict:
        logger.info("템플릿 리로드 실행")
        cached = len(self._env.cache) if self._env.cache is not None else 0
        if self._env.cache is not None:
            self._env.cache.clear()
        self._templates.forget_site()

        return {
            "status": "success",
            "cleared_templates": cached,
            "template_folder_path": self._templates.config.template_folder_path,
        }
