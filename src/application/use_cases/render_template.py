import asyncio
import logging

from jinja2 import Environment, TemplateNotFound

logger = logging.getLogger(__name__)


class RenderTemplateUseCase:
    """문서 저장소의 템플릿을 렌더링하는 Use Case"""

    def __init__(self, environment: Environment):
        self._env = environment

    async def execute(self, name: str, variables: dict | None = None) -> str | None:
        """
        템플릿을 렌더링합니다.

        Args:
            name: 템플릿 문서 이름 (예: "view.ftl")
            variables: 템플릿 변수

        Returns:
            렌더링 결과 또는 None (템플릿이 없을 경우)
        """
        logger.info("RenderTemplateUseCase 실행: name=%s", name)
        return await asyncio.to_thread(self._render, name, variables or {})

    def _render(self, name: str, variables: dict) -> str | None:
        try:
            template = self._env.get_template(name)
        except TemplateNotFound:
            logger.info("템플릿을 찾을 수 없음: %s", name)
            return None

        rendered = template.render(**variables)
        logger.info("✅ 템플릿 렌더링 완료: name=%s, 길이=%d", name, len(rendered))
        return rendered
