import logging
import sys
import traceback
from datetime import datetime

from mcp.server import Server
from mcp.types import TextContent

from src.configuration.container import build_container

logger = logging.getLogger(__name__)


def _format_timestamp(epoch_millis: int) -> str:
    if not epoch_millis:
        return "-"
    return datetime.fromtimestamp(epoch_millis / 1000).strftime("%Y-%m-%d %H:%M:%S")


def _format_error(name: str, e: Exception) -> str:
    return f"""# ❌ 오류 발생

**Tool:** {name}
**오류 타입:** {type(e).__name__}
**오류 메시지:** {str(e)}

자세한 내용은 서버 로그를 확인하세요.
"""


def register_tools(app: Server) -> None:
    """MCP Tool 핸들러를 서버에 등록합니다."""

    # 로그에서 마스킹할 필드 (템플릿 변수에 개인정보가 포함될 수 있음)
    _SENSITIVE_FIELDS = {"variables"}

    def _mask_arguments(arguments: dict) -> dict:
        """로깅용으로 민감 필드를 마스킹합니다."""
        masked = {}
        for key, value in arguments.items():
            if key in _SENSITIVE_FIELDS:
                masked[key] = f"*** ({len(value)}개)" if isinstance(value, dict) else "***"
            else:
                masked[key] = value
        return masked

    @app.call_tool()
    async def call_tool(name: str, arguments: dict):
        try:
            container = build_container()
            logger.info("=" * 60)
            logger.info("🔧 Tool 호출: %s", name)
            logger.info("인자: %s", _mask_arguments(arguments))
            logger.info("환경: %s", container.settings.app_env)
            logger.info("=" * 60)

            if name == "render_template":
                template_name = arguments.get("name", "").strip()
                if not template_name:
                    raise ValueError("name 파라미터가 필요합니다")
                variables = arguments.get("variables") or {}
                if not isinstance(variables, dict):
                    raise ValueError("variables 는 object 형식이어야 합니다")

                rendered = await container.render_template_use_case.execute(
                    name=template_name,
                    variables=variables,
                )

                if rendered is None:
                    return [TextContent(
                        type="text",
                        text=f"# ⚠️ 템플릿을 찾을 수 없습니다\n\n"
                             f"**템플릿:** {template_name}\n"
                             f"**폴더:** {container.settings.template_folder_path}\n\n"
                             f"사이트/폴더가 없거나 해당 이름의 문서가 없습니다."
                    )]

                logger.info("✅ Tool 실행 완료: %s 렌더링 (%d자)", template_name, len(rendered))
                return [TextContent(type="text", text=rendered)]

            if name == "list_templates":
                result = await container.list_templates_use_case.execute()
                logger.info("✅ Tool 실행 완료: 템플릿 %d건 조회됨", len(result))

                if not result:
                    return [TextContent(
                        type="text",
                        text="템플릿 폴더에 문서가 없거나 폴더가 존재하지 않습니다."
                    )]

                formatted_text = "# 📄 템플릿 목록\n\n"
                formatted_text += f"**폴더:** `{container.settings.template_folder_path}`\n\n"
                formatted_text += "| 이름 | ID | MIME | 수정일 |\n"
                formatted_text += "|------|----|------|--------|\n"
                for doc in result:
                    formatted_text += (
                        f"| {doc['name']} | {doc['id']} | {doc['mime_type'] or '-'} "
                        f"| {_format_timestamp(doc['last_modified'])} |\n"
                    )
                return [TextContent(type="text", text=formatted_text)]

            if name == "reload_templates":
                result = container.reload_templates_use_case.execute()
                logger.info("Tool 실행 완료: 템플릿 캐시 초기화 (%d건)", result["cleared_templates"])

                formatted_text = "# 템플릿 리로드 완료\n\n"
                formatted_text += "| 항목 | 내용 |\n"
                formatted_text += "|------|------|\n"
                formatted_text += f"| **비운 템플릿 캐시** | {result['cleared_templates']}건 |\n"
                formatted_text += f"| **템플릿 폴더** | {result['template_folder_path']} |\n"
                return [TextContent(type="text", text=formatted_text)]

            if name == "reset_template_folder":
                if arguments.get("confirm") is not True:
                    raise ValueError("confirm=true 로 호출해야 템플릿 폴더가 삭제됩니다")

                deleted = await container.reset_template_folder_use_case.execute()
                folder_path = container.settings.template_folder_path
                if not deleted:
                    return [TextContent(
                        type="text",
                        text=f"# 삭제할 템플릿 폴더가 없습니다\n\n**폴더:** {folder_path}"
                    )]

                logger.info("✅ Tool 실행 완료: 템플릿 폴더 삭제 %s", folder_path)
                return [TextContent(
                    type="text",
                    text=f"# 템플릿 폴더 삭제 완료\n\n**폴더:** {folder_path}\n\n"
                         f"CREATE_FOLDER=true 이면 다음 조회 시 기본 템플릿과 함께 다시 생성됩니다."
                )]

            raise ValueError(f"알 수 없는 tool: {name}")

        except Exception as e:
            logger.error("=" * 60)
            logger.error("❌ Tool 실행 실패!")
            logger.error("Tool: %s", name)
            logger.error("오류 타입: %s", type(e).__name__)
            logger.error("오류 메시지: %s", str(e))
            logger.error("=" * 60)
            traceback.print_exc(file=sys.stderr)

            return [TextContent(type="text", text=_format_error(name, e))]

    @app.list_tools()
    async def list_tools():
        from mcp.types import Tool

        return [
            Tool(
                name="render_template",
                description="""문서 저장소(CMIS 또는 Liferay Document Library)에 있는 템플릿을 Jinja2로 렌더링합니다.

폴더가 없고 CREATE_FOLDER=true 이면 폴더를 생성하고 기본 템플릿을 넣은 뒤 조회합니다.""",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "name": {
                            "type": "string",
                            "description": "템플릿 문서 이름 (예: 'view.ftl')",
                        },
                        "variables": {
                            "type": "object",
                            "description": "템플릿 변수",
                        },
                    },
                    "required": ["name"],
                },
            ),
            Tool(
                name="list_templates",
                description="""템플릿 폴더의 문서 목록을 조회합니다.""",
                inputSchema={
                    "type": "object",
                    "properties": {},
                },
            ),
            Tool(
                name="reload_templates",
                description="""Jinja2 템플릿 캐시와 사이트 ID 캐시를 비웁니다. 저장소에서 템플릿을 수정한 뒤 사용하세요.""",
                inputSchema={
                    "type": "object",
                    "properties": {},
                },
            ),
            Tool(
                name="reset_template_folder",
                description="""템플릿 폴더를 하위 문서와 함께 삭제합니다. 되돌릴 수 없습니다.""",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "confirm": {
                            "type": "boolean",
                            "description": "삭제 확인 (true 여야 실행)",
                        },
                    },
                    "required": ["confirm"],
                },
            ),
        ]
