import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

_TRUE_VALUES = {"true", "1", "yes", "on"}

_BACKEND_REQUIRED_VARS = {
    "cmis": ("CMIS_BROWSER_URL", "CMIS_REPOSITORY_ID"),
    "liferay": ("LIFERAY_BASE_URL", "LIFERAY_COMPANY_ID", "SITE_NAME"),
}


def _load_env() -> None:
    app_env = os.getenv("APP_ENV", "local")
    # 프로젝트 루트 디렉토리 찾기 (src/configuration/settings.py -> ../../)
    project_root = Path(__file__).parent.parent.parent
    env_file = project_root / f".env.{app_env}"
    load_dotenv(env_file)


def _get_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass(frozen=True)
class Settings:
    app_env: str
    server_name: str
    template_backend: str  # "cmis" | "liferay"
    user_id: str
    user_password: str
    cmis_browser_url: str
    cmis_repository_id: str
    cmis_locale: str
    liferay_base_url: str
    liferay_company_id: str
    site_name: str
    create_site: bool
    template_folder_path: str
    create_folder: bool
    default_template_path: str
    template_encoding: str
    request_timeout: float  # 저장소 요청 타임아웃 (초)


def build_settings() -> Settings:
    _load_env()

    required_vars = ("APP_ENV", "SERVER_NAME", "USER_ID", "USER_PASSWORD", "TEMPLATE_FOLDER_PATH")
    missing = [k for k in required_vars if not os.getenv(k)]

    template_backend = os.getenv("TEMPLATE_BACKEND", "cmis").strip().lower()
    if template_backend not in _BACKEND_REQUIRED_VARS:
        raise RuntimeError(
            f"지원하지 않는 TEMPLATE_BACKEND: '{template_backend}'. "
            f"사용 가능: {sorted(_BACKEND_REQUIRED_VARS)}"
        )
    missing += [k for k in _BACKEND_REQUIRED_VARS[template_backend] if not os.getenv(k)]

    create_site = _get_bool("CREATE_SITE")
    create_folder = _get_bool("CREATE_FOLDER")
    if (create_site or create_folder) and not os.getenv("DEFAULT_TEMPLATE_PATH"):
        missing.append("DEFAULT_TEMPLATE_PATH")

    if missing:
        raise RuntimeError(f"필수 환경 변수 누락: {', '.join(missing)}")

    return Settings(
        app_env=os.environ["APP_ENV"],
        server_name=os.environ["SERVER_NAME"],
        template_backend=template_backend,
        user_id=os.environ["USER_ID"],
        user_password=os.environ["USER_PASSWORD"],
        cmis_browser_url=os.getenv("CMIS_BROWSER_URL", ""),
        cmis_repository_id=os.getenv("CMIS_REPOSITORY_ID", ""),
        cmis_locale=os.getenv("CMIS_LOCALE", "sv-SE"),
        liferay_base_url=os.getenv("LIFERAY_BASE_URL", ""),
        liferay_company_id=os.getenv("LIFERAY_COMPANY_ID", ""),
        site_name=os.getenv("SITE_NAME", ""),
        create_site=create_site,
        template_folder_path=os.environ["TEMPLATE_FOLDER_PATH"],
        create_folder=create_folder,
        default_template_path=os.getenv("DEFAULT_TEMPLATE_PATH", ""),
        template_encoding=os.getenv("TEMPLATE_ENCODING", "utf-8"),
        request_timeout=float(os.getenv("REQUEST_TIMEOUT", "30")),
    )
