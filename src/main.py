import asyncio
import logging
import os
import sys
import traceback
from logging.handlers import RotatingFileHandler
from pathlib import Path

from mcp.server import Server
from mcp.server.stdio import stdio_server

from src.adapters.inbound.mcp.tools import register_tools
from src.configuration.container import build_container, clear_container

_LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
_LOG_MAX_BYTES = 10 * 1024 * 1024
_LOG_BACKUP_COUNT = 5


def setup_logging() -> logging.Logger:
    """
    stderr 와 logs/template-loader.log 에 로그를 남깁니다.

    stdout 은 MCP stdio 프로토콜이 사용하므로 로그를 쓰지 않습니다.
    LOG_LEVEL 환경 변수로 레벨을 바꿀 수 있습니다 (기본 INFO).
    """
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    formatter = logging.Formatter(_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    log_dir = Path(__file__).parent.parent / "logs"
    log_dir.mkdir(exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    # 재호출 시 핸들러가 중복 등록되지 않도록 정리
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    root_logger.addHandler(stderr_handler)

    file_handler = RotatingFileHandler(
        log_dir / "template-loader.log",
        maxBytes=_LOG_MAX_BYTES,
        backupCount=_LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # httpx 는 요청마다 INFO 로그를 남기므로 저장소 호출 로그는 어댑터에서만 출력
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return logging.getLogger(__name__)


logger = setup_logging()


async def main() -> None:
    try:
        logger.info("=" * 60)
        logger.info("MCP 서버 초기화 시작")

        container = build_container()
        logger.info("✅ Container 빌드 완료")
        logger.info("서버 이름: %s", container.settings.server_name)
        logger.info("환경: %s", container.settings.app_env)
        logger.info("저장소: %s", container.settings.template_backend)
        logger.info("저장소 User: %s", container.settings.user_id)
        logger.info(
            "템플릿 폴더: %s (자동 생성=%s)",
            container.settings.template_folder_path, container.settings.create_folder,
        )

        app = Server(container.settings.server_name)
        register_tools(app)
        logger.info("✅ MCP Tools 등록 완료")

        logger.info("MCP 서버 시작 중...")
        logger.info("=" * 60)

        try:
            async with stdio_server() as (read_stream, write_stream):
                await app.run(read_stream, write_stream, app.create_initialization_options())
        finally:
            clear_container()
            logger.info("MCP 서버 종료")

    except Exception as e:
        logger.error("=" * 60)
        logger.error("MCP 서버 시작 실패!")
        logger.error("오류 타입: %s", type(e).__name__)
        logger.error("오류 메시지: %s", str(e))
        logger.error("=" * 60)
        traceback.print_exc(file=sys.stderr)
        raise


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
