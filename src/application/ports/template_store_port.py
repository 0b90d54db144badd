from contextlib import AbstractContextManager
from typing import Iterator, Protocol

from src.domain.template_store import StoreObject


class TemplateStorePort(Protocol):
    """템플릿 문서 저장소 계약 (CMIS / Liferay 공통)

    조회 결과가 없으면 None 을 반환하고, 그 외 저장소 오류는 StoreError 로 전달합니다.
    """

    def find_site(self, name: str) -> str | None:
        """사이트(그룹) ID 를 조회합니다."""
        ...

    def create_site(self, name: str) -> str:
        """사이트(그룹)를 생성하고 ID 를 반환합니다."""
        ...

    def get_root(self, site_id: str) -> StoreObject:
        """사이트의 루트 폴더를 반환합니다."""
        ...

    def get_by_path(self, site_id: str, path: str) -> StoreObject | None:
        ...

    def get_by_id(self, object_id: str) -> StoreObject | None:
        ...

    def find_child(self, parent: StoreObject, name: str) -> StoreObject | None:
        """부모 폴더 바로 아래에서 이름으로 객체를 찾습니다."""
        ...

    def create_folder(self, name: str, parent: StoreObject) -> StoreObject:
        """폴더를 생성합니다. 같은 이름의 폴더가 이미 있으면 기존 폴더를 반환합니다."""
        ...

    def create_document(
        self,
        parent: StoreObject,
        content: bytes,
        mime_type: str,
        name: str,
    ) -> StoreObject:
        ...

    def delete_subtree(self, obj: StoreObject) -> None:
        ...

    def list_children(self, parent: StoreObject) -> list[StoreObject]:
        ...

    def open_content(self, obj: StoreObject) -> AbstractContextManager[Iterator[bytes]]:
        """문서 본문 스트림을 엽니다. with 블록을 벗어나면 스트림이 해제됩니다."""
        ...
