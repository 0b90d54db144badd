from dataclasses import dataclass
from enum import Enum


class StoreError(RuntimeError):
    """문서 저장소 호출 실패 (연결/인증/런타임 오류)"""


class TemplateLoaderConfigError(ValueError):
    """템플릿 로더 설정 오류"""


class ObjectKind(Enum):
    FOLDER = "folder"
    DOCUMENT = "document"


class CacheSlot(Enum):
    SITE_ID = "site_id"
    TEMPLATE_FOLDER_ID = "template_folder_id"


@dataclass(frozen=True)
class StoreObject:
    """저장소 객체 핸들 (폴더 또는 문서)"""
    id: str
    name: str
    kind: ObjectKind
    last_modified: int          # epoch millis
    site_id: str                # CMIS repository id 또는 Liferay group id
    parent_id: str | None = None
    path: str | None = None
    mime_type: str | None = None
    content_url: str | None = None

    @property
    def is_folder(self) -> bool:
        return self.kind is ObjectKind.FOLDER

    @property
    def is_document(self) -> bool:
        return self.kind is ObjectKind.DOCUMENT


def split_folder_path(folder_path: str) -> list[str]:
    """'/' 구분 폴더 경로를 세그먼트 목록으로 분리합니다. 빈 세그먼트는 제외됩니다."""
    segments = [segment for segment in folder_path.split("/") if segment]
    if not segments:
        raise TemplateLoaderConfigError(f"템플릿 폴더 경로가 비어 있습니다: '{folder_path}'")
    return segments


@dataclass(frozen=True)
class TemplateLoaderConfig:
    """템플릿 로더 설정 (생성 시 고정)"""
    template_folder_path: str
    site_name: str = ""
    create_site: bool = False
    create_folder: bool = False
    default_template: bytes | None = None
    default_template_name: str = "view.ftl"

    def __post_init__(self) -> None:
        split_folder_path(self.template_folder_path)
        if (self.create_site or self.create_folder) and self.default_template is None:
            raise TemplateLoaderConfigError(
                "create_site/create_folder 가 true 이면 default_template 이 필요합니다"
            )
        if self.create_site and not self.site_name:
            raise TemplateLoaderConfigError("create_site=true 이면 site_name 이 필요합니다")
        if not self.default_template_name:
            raise TemplateLoaderConfigError("default_template_name 이 비어 있습니다")

    @property
    def folder_segments(self) -> list[str]:
        return split_folder_path(self.template_folder_path)
