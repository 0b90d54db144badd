import asyncio
import logging

from src.application.services.template_loader_service import TemplateLoaderService

logger = logging.getLogger(__name__)


class ListTemplatesUseCase:
    """템플릿 폴더의 문서 목록을 조회하는 Use Case"""

    def __init__(self, templates: TemplateLoaderService):
        self._templates = templates

    async def execute(self) -> list[dict]:
        logger.info("ListTemplatesUseCase 실행")
        documents = await asyncio.to_thread(self._templates.list_templates)
        logger.info("템플릿 목록 조회 완료: %d건", len(documents))

        return [
            {
                "id": doc.id,
                "name": doc.name,
                "mime_type": doc.mime_type or "",
                "last_modified": doc.last_modified,
            }
            for doc in sorted(documents, key=lambda d: d.name)
        ]
