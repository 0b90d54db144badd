import json
import logging
from contextlib import contextmanager
from typing import Iterator
from urllib.parse import quote

import httpx

from src.domain.template_store import ObjectKind, StoreError, StoreObject

logger = logging.getLogger(__name__)

ROOT_FOLDER_ID = "0"

# GroupConstants.TYPE_SITE_OPEN
_SITE_TYPE_OPEN = 1


class LiferayJsonWsAdapter:
    """Liferay JSON Web Services(Document Library)와 통신하는 Outbound Adapter"""

    def __init__(
        self,
        base_url: str,
        company_id: str,
        user: str,
        password: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.company_id = company_id
        self._client = httpx.Client(
            auth=(user, password),
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # Sites (Liferay Group)
    # ------------------------------------------------------------------

    def find_site(self, name: str) -> str | None:
        logger.info("🌐 Liferay 사이트 조회: %s", name)
        data = self._invoke(
            "group/get-group",
            {"companyId": self.company_id, "groupKey": name},
            tolerate=("NoSuchGroupException",),
        )
        if data is None:
            logger.info("사이트 없음: %s", name)
            return None
        return str(data["groupId"])

    def create_site(self, name: str) -> str:
        logger.info("🌐 Liferay 사이트 생성: %s", name)
        data = self._invoke(
            "group/add-group",
            {
                "parentGroupId": 0,
                "liveGroupId": 0,
                "name": name,
                "description": "",
                "type": _SITE_TYPE_OPEN,
                "manualMembership": "true",
                "membershipRestriction": 0,
                "friendlyURL": f"/{name.lower()}",
                "site": "true",
                "active": "true",
            },
        )
        group_id = str(data["groupId"])
        logger.info("✅ 사이트 생성 완료: id=%s, name=%s", group_id, name)
        return group_id

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_root(self, site_id: str) -> StoreObject:
        return StoreObject(
            id=ROOT_FOLDER_ID,
            name="",
            kind=ObjectKind.FOLDER,
            last_modified=0,
            site_id=site_id,
        )

    def get_by_path(self, site_id: str, path: str) -> StoreObject | None:
        current = self.get_root(site_id)
        for segment in [s for s in path.split("/") if s]:
            if not current.is_folder:
                return None
            child = self.find_child(current, segment)
            if child is None:
                return None
            current = child
        return current

    def get_by_id(self, object_id: str) -> StoreObject | None:
        data = self._invoke(
            "dlapp/get-folder",
            {"folderId": object_id},
            tolerate=("NoSuchFolderException",),
        )
        if data is not None:
            return self._to_folder(data)

        data = self._invoke(
            "dlapp/get-file-entry",
            {"fileEntryId": object_id},
            tolerate=("NoSuchFileEntryException",),
        )
        if data is not None:
            return self._to_file_entry(data)

        logger.debug("객체 없음: id=%s", object_id)
        return None

    def find_child(self, parent: StoreObject, name: str) -> StoreObject | None:
        data = self._invoke(
            "dlapp/get-folder",
            {"repositoryId": parent.site_id, "parentFolderId": parent.id, "name": name},
            tolerate=("NoSuchFolderException",),
        )
        if data is not None:
            return self._to_folder(data)

        data = self._invoke(
            "dlapp/get-file-entry",
            {"groupId": parent.site_id, "folderId": parent.id, "title": name},
            tolerate=("NoSuchFileEntryException",),
        )
        if data is not None:
            return self._to_file_entry(data)

        logger.debug("하위 객체 없음: name=%s (parent=%s)", name, parent.id)
        return None

    def list_children(self, parent: StoreObject) -> list[StoreObject]:
        params = {"repositoryId": parent.site_id, "parentFolderId": parent.id}
        folders = self._invoke("dlapp/get-folders", params) or []
        entries = self._invoke(
            "dlapp/get-file-entries",
            {"repositoryId": parent.site_id, "folderId": parent.id},
        ) or []
        children = [self._to_folder(f) for f in folders] + [self._to_file_entry(e) for e in entries]
        logger.debug("하위 객체 조회 완료: parent=%s, %d건", parent.id, len(children))
        return children

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_folder(self, name: str, parent: StoreObject) -> StoreObject:
        logger.info("🌐 Liferay 폴더 생성: name=%s, parent=%s", name, parent.id)
        data = self._invoke(
            "dlapp/add-folder",
            {
                "repositoryId": parent.site_id,
                "parentFolderId": parent.id,
                "name": name,
                "description": "",
                "serviceContext": self._service_context(parent.site_id),
            },
            tolerate=("DuplicateFolderNameException",),
        )
        if data is None:
            logger.info("이미 존재하는 폴더 사용: name=%s, parent=%s", name, parent.id)
            existing = self.find_child(parent, name)
            if existing is None or not existing.is_folder:
                raise StoreError(f"폴더 생성 충돌 후 기존 폴더를 찾을 수 없습니다: '{name}'")
            return existing

        folder = self._to_folder(data)
        logger.info("✅ 폴더 생성 완료: id=%s, name=%s", folder.id, folder.name)
        return folder

    def create_document(
        self,
        parent: StoreObject,
        content: bytes,
        mime_type: str,
        name: str,
    ) -> StoreObject:
        logger.info("🌐 Liferay 문서 생성: name=%s, mime=%s, parent=%s", name, mime_type, parent.id)
        data = self._invoke(
            "dlapp/add-file-entry",
            {
                "repositoryId": parent.site_id,
                "folderId": parent.id,
                "sourceFileName": name,
                "mimeType": mime_type,
                "title": name,
                "description": "",
                "changeLog": "",
                "serviceContext": self._service_context(parent.site_id),
            },
            files={"file": (name, content, mime_type)},
        )
        document = self._to_file_entry(data)
        logger.info("✅ 문서 생성 완료: id=%s, name=%s", document.id, document.name)
        return document

    def delete_subtree(self, obj: StoreObject) -> None:
        logger.info("🌐 Liferay 삭제: id=%s, kind=%s", obj.id, obj.kind.value)
        if obj.is_folder:
            self._invoke("dlapp/delete-folder", {"folderId": obj.id})
        else:
            self._invoke("dlapp/delete-file-entry", {"fileEntryId": obj.id})

    @contextmanager
    def open_content(self, obj: StoreObject) -> Iterator[Iterator[bytes]]:
        url = obj.content_url or self._content_url(obj.site_id, obj.parent_id or ROOT_FOLDER_ID, obj.name)
        try:
            with self._client.stream("GET", url) as response:
                response.raise_for_status()
                yield response.iter_bytes()
        except httpx.HTTPStatusError as e:
            logger.error("❌ 본문 조회 실패: id=%s, status=%d", obj.id, e.response.status_code)
            raise StoreError(f"Liferay 문서 본문을 읽을 수 없습니다: {obj.name}") from e
        except httpx.RequestError as e:
            logger.error("❌ 네트워크 오류: %s", str(e))
            raise StoreError(f"Liferay 서버 연결 실패: {self.base_url}") from e

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _invoke(
        self,
        service: str,
        params: dict,
        *,
        tolerate: tuple[str, ...] = (),
        files: dict | None = None,
    ):
        """JSON Web Service 를 호출합니다. tolerate 에 해당하는 예외는 None 으로 반환합니다."""
        url = f"{self.base_url}/api/jsonws/{service}"
        try:
            response = self._client.post(url, data=params, files=files)
            logger.debug("HTTP Status: %d (%s)", response.status_code, service)
        except httpx.RequestError as e:
            logger.error("❌ 네트워크 오류: %s", str(e))
            raise StoreError(f"Liferay 서버 연결 실패: {self.base_url}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        exception = _liferay_exception(payload)
        if exception:
            if any(name in exception for name in tolerate):
                return None
            logger.error("❌ Liferay 예외: %s - %s", service, exception[:200])
            raise StoreError(f"Liferay API 오류 ({service}): {exception[:200]}")

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("❌ HTTP 오류: %d - %s", e.response.status_code, e.response.text[:200])
            self._raise_http_error(e)

        if payload is None and response.content:
            raise StoreError(f"Liferay 응답을 해석할 수 없습니다: {service}")
        return payload

    def _raise_http_error(self, e: httpx.HTTPStatusError) -> None:
        status = e.response.status_code
        if status == 401:
            raise StoreError("Liferay 인증 실패: USER_ID 또는 USER_PASSWORD를 확인하세요") from e
        elif status == 403:
            raise StoreError("Liferay 접근 권한이 없습니다") from e
        else:
            raise StoreError(f"Liferay API 오류: {status}") from e

    def _service_context(self, group_id: str) -> str:
        return json.dumps({
            "scopeGroupId": group_id,
            "addGroupPermissions": True,
            "addGuestPermissions": True,
        })

    def _content_url(self, group_id: str, folder_id: str, title: str) -> str:
        return f"{self.base_url}/documents/{group_id}/{folder_id}/{quote(title)}"

    def _to_folder(self, data: dict) -> StoreObject:
        return StoreObject(
            id=str(data.get("folderId", "")),
            name=data.get("name", ""),
            kind=ObjectKind.FOLDER,
            last_modified=int(data.get("modifiedDate") or 0),
            site_id=str(data.get("groupId", data.get("repositoryId", ""))),
            parent_id=str(data.get("parentFolderId", ROOT_FOLDER_ID)),
        )

    def _to_file_entry(self, data: dict) -> StoreObject:
        group_id = str(data.get("groupId", data.get("repositoryId", "")))
        folder_id = str(data.get("folderId", ROOT_FOLDER_ID))
        title = data.get("title", "")
        return StoreObject(
            id=str(data.get("fileEntryId", "")),
            name=title,
            kind=ObjectKind.DOCUMENT,
            last_modified=int(data.get("modifiedDate") or 0),
            site_id=group_id,
            parent_id=folder_id,
            mime_type=data.get("mimeType"),
            content_url=self._content_url(group_id, folder_id, title),
        )


def _liferay_exception(payload) -> str:
    """JSON WS 응답에서 예외 메시지를 추출합니다 (6.x: exception, 7.x: error)."""
    if not isinstance(payload, dict):
        return ""
    if payload.get("exception"):
        return str(payload["exception"])
    error = payload.get("error")
    if isinstance(error, dict):
        return f"{error.get('type', '')} {error.get('message', '')}".strip()
    return ""
