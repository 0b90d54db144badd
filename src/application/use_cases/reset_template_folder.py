import asyncio
import logging

from jinja2 import Environment

from src.application.services.template_loader_service import TemplateLoaderService

logger = logging.getLogger(__name__)


class ResetTemplateFolderUseCase:
    """템플릿 폴더를 삭제해 다음 조회 시 기본 템플릿으로 다시 생성되게 하는 Use Case"""

    def __init__(self, environment: Environment, templates: TemplateLoaderService):
        self._env = environment
        self._templates = templates

    async def execute(self) -> bool:
        logger.info("ResetTemplateFolderUseCase 실행: %s", self._templates.config.template_folder_path)
        deleted = await asyncio.to_thread(self._templates.reset_template_folder)
        if self._env.cache is not None:
            self._env.cache.clear()
        return deleted
