from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from jinja2 import Environment

from src.adapters.inbound.jinja_loader import DocumentStoreLoader
from src.adapters.outbound.cmis_browser_adapter import CmisBrowserAdapter
from src.adapters.outbound.in_memory_resolution_cache import InMemoryResolutionCache
from src.adapters.outbound.liferay_jsonws_adapter import LiferayJsonWsAdapter
from src.application.ports.template_store_port import TemplateStorePort
from src.application.services.template_loader_service import TemplateLoaderService
from src.application.use_cases.list_templates import ListTemplatesUseCase
from src.application.use_cases.reload_templates import ReloadTemplatesUseCase
from src.application.use_cases.render_template import RenderTemplateUseCase
from src.application.use_cases.reset_template_folder import ResetTemplateFolderUseCase
from src.configuration.settings import Settings, build_settings
from src.domain.template_store import TemplateLoaderConfig


@dataclass(frozen=True)
class Container:
    settings: Settings
    template_store: TemplateStorePort
    template_loader: TemplateLoaderService
    environment: Environment
    render_template_use_case: RenderTemplateUseCase
    list_templates_use_case: ListTemplatesUseCase
    reload_templates_use_case: ReloadTemplatesUseCase
    reset_template_folder_use_case: ResetTemplateFolderUseCase


def build_template_store(settings: Settings) -> TemplateStorePort:
    """설정된 백엔드에 맞는 문서 저장소 어댑터를 생성합니다."""
    if settings.template_backend == "liferay":
        return LiferayJsonWsAdapter(
            base_url=settings.liferay_base_url,
            company_id=settings.liferay_company_id,
            user=settings.user_id,
            password=settings.user_password,
            timeout=settings.request_timeout,
        )
    return CmisBrowserAdapter(
        browser_url=settings.cmis_browser_url,
        repository_id=settings.cmis_repository_id,
        user=settings.user_id,
        password=settings.user_password,
        locale=settings.cmis_locale,
        timeout=settings.request_timeout,
    )


def build_loader_config(settings: Settings) -> TemplateLoaderConfig:
    default_template = None
    default_template_name = "view.ftl"
    if settings.default_template_path:
        path = Path(settings.default_template_path)
        default_template = path.read_bytes()
        default_template_name = path.name

    return TemplateLoaderConfig(
        site_name=settings.site_name,
        create_site=settings.create_site,
        template_folder_path=settings.template_folder_path,
        create_folder=settings.create_folder,
        default_template=default_template,
        default_template_name=default_template_name,
    )


@lru_cache(maxsize=1)
def build_container() -> Container:
    settings = build_settings()

    template_store = build_template_store(settings)

    # 프로세스 단위로 공유되는 사이트/폴더 ID 캐시
    resolution_cache = InMemoryResolutionCache()

    template_loader = TemplateLoaderService(
        store=template_store,
        cache=resolution_cache,
        config=build_loader_config(settings),
    )

    environment = Environment(
        loader=DocumentStoreLoader(template_loader, encoding=settings.template_encoding),
        autoescape=True,
        keep_trailing_newline=True,
        auto_reload=True,
    )

    return Container(
        settings=settings,
        template_store=template_store,
        template_loader=template_loader,
        environment=environment,
        render_template_use_case=RenderTemplateUseCase(environment=environment),
        list_templates_use_case=ListTemplatesUseCase(templates=template_loader),
        reload_templates_use_case=ReloadTemplatesUseCase(
            environment=environment,
            templates=template_loader,
        ),
        reset_template_folder_use_case=ResetTemplateFolderUseCase(
            environment=environment,
            templates=template_loader,
        ),
    )


def clear_container() -> None:
    if build_container.cache_info().currsize:
        store = build_container().template_store
        close = getattr(store, "close", None)
        if close is not None:
            close()
    build_container.cache_clear()
