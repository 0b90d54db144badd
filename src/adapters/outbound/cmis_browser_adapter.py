import logging
from contextlib import contextmanager
from typing import Iterator
from urllib.parse import quote

import httpx

from src.domain.template_store import ObjectKind, StoreError, StoreObject

logger = logging.getLogger(__name__)

_NOT_FOUND = {"objectNotFound", "invalidArgument"}
_ALREADY_EXISTS = {"contentAlreadyExists", "nameConstraintViolation"}
_PAGE_SIZE = 100


class CmisBrowserAdapter:
    """CMIS 1.1 Browser binding 과 통신하는 Outbound Adapter"""

    def __init__(
        self,
        browser_url: str,
        repository_id: str,
        user: str,
        password: str,
        locale: str = "sv-SE",
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.browser_url = browser_url.rstrip("/")
        self.repository_id = repository_id
        self._root_url = f"{self.browser_url}/{quote(repository_id, safe='')}/root"
        self._client = httpx.Client(
            auth=(user, password),
            timeout=timeout,
            headers={"Accept-Language": locale},
            transport=transport,
        )
        logger.info("CMIS 연결 준비: url=%s, repository=%s", self.browser_url, repository_id)

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # Sites (CMIS 에는 사이트 개념이 없으므로 저장소 ID 를 사용)
    # ------------------------------------------------------------------

    def find_site(self, name: str) -> str | None:
        return self.repository_id

    def create_site(self, name: str) -> str:
        raise StoreError(f"CMIS 저장소는 사이트 생성을 지원하지 않습니다: '{name}'")

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_root(self, site_id: str) -> StoreObject:
        data = self._request(
            "GET",
            self._root_url,
            params={"cmisselector": "object", "succinct": "true"},
        )
        return self._to_store_object(data)

    def get_by_path(self, site_id: str, path: str) -> StoreObject | None:
        segments = [quote(segment, safe="") for segment in path.split("/") if segment]
        url = self._root_url + "/" + "/".join(segments) if segments else self._root_url
        data = self._request(
            "GET",
            url,
            params={"cmisselector": "object", "succinct": "true"},
            tolerate=_NOT_FOUND,
        )
        if data is None:
            logger.debug("객체 없음: path=%s", path)
            return None
        return self._to_store_object(data, path="/" + "/".join(s for s in path.split("/") if s))

    def get_by_id(self, object_id: str) -> StoreObject | None:
        data = self._request(
            "GET",
            self._root_url,
            params={"objectId": object_id, "cmisselector": "object", "succinct": "true"},
            tolerate=_NOT_FOUND,
        )
        if data is None:
            logger.debug("객체 없음: id=%s", object_id)
            return None
        return self._to_store_object(data)

    def find_child(self, parent: StoreObject, name: str) -> StoreObject | None:
        if parent.path is not None:
            return self.get_by_path(parent.site_id, f"{parent.path.rstrip('/')}/{name}")
        for child in self.list_children(parent):
            if child.name == name:
                return child
        return None

    def list_children(self, parent: StoreObject) -> list[StoreObject]:
        children: list[StoreObject] = []
        skip_count = 0
        while True:
            data = self._request(
                "GET",
                self._root_url,
                params={
                    "objectId": parent.id,
                    "cmisselector": "children",
                    "succinct": "true",
                    "maxItems": _PAGE_SIZE,
                    "skipCount": skip_count,
                },
            )
            objects = data.get("objects", [])
            for entry in objects:
                children.append(self._to_store_object(entry.get("object", entry), parent))
            if not data.get("hasMoreItems") or not objects:
                break
            skip_count += len(objects)

        logger.debug("하위 객체 조회 완료: parent=%s, %d건", parent.id, len(children))
        return children

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_folder(self, name: str, parent: StoreObject) -> StoreObject:
        logger.info("CMIS 폴더 생성: name=%s, parent=%s", name, parent.id)
        data = self._request(
            "POST",
            self._root_url,
            data={
                "cmisaction": "createFolder",
                "objectId": parent.id,
                "propertyId[0]": "cmis:name",
                "propertyValue[0]": name,
                "propertyId[1]": "cmis:objectTypeId",
                "propertyValue[1]": "cmis:folder",
                "succinct": "true",
            },
            tolerate=_ALREADY_EXISTS,
        )
        if data is not None:
            folder = self._to_store_object(data, parent)
            logger.info("✅ 폴더 생성 완료: id=%s, name=%s", folder.id, folder.name)
            return folder

        # 동시에 같은 이름의 폴더가 만들어진 경우 기존 폴더를 사용
        logger.info("이미 존재하는 폴더 사용: name=%s, parent=%s", name, parent.id)
        for child in self.list_children(parent):
            if child.name == name and child.is_folder:
                return child
        raise StoreError(f"폴더 생성 충돌 후 기존 폴더를 찾을 수 없습니다: '{name}'")

    def create_document(
        self,
        parent: StoreObject,
        content: bytes,
        mime_type: str,
        name: str,
    ) -> StoreObject:
        logger.info("CMIS 문서 생성: name=%s, mime=%s, parent=%s", name, mime_type, parent.id)
        data = self._request(
            "POST",
            self._root_url,
            data={
                "cmisaction": "createDocument",
                "objectId": parent.id,
                "propertyId[0]": "cmis:name",
                "propertyValue[0]": name,
                "propertyId[1]": "cmis:objectTypeId",
                "propertyValue[1]": "cmis:document",
                "versioningState": "major",
                "succinct": "true",
            },
            files={"content": (name, content, mime_type)},
        )
        document = self._to_store_object(data, parent)
        logger.info("✅ 문서 생성 완료: id=%s, name=%s", document.id, document.name)
        return document

    def delete_subtree(self, obj: StoreObject) -> None:
        if obj.is_folder:
            payload = {
                "cmisaction": "deleteTree",
                "objectId": obj.id,
                "allVersions": "true",
                "continueOnFailure": "true",
            }
        else:
            payload = {"cmisaction": "delete", "objectId": obj.id, "allVersions": "true"}

        logger.info("CMIS 삭제: id=%s, kind=%s", obj.id, obj.kind.value)
        self._request("POST", self._root_url, data=payload, expect_json=False)

    @contextmanager
    def open_content(self, obj: StoreObject) -> Iterator[Iterator[bytes]]:
        params = {"objectId": obj.id, "cmisselector": "content"}
        try:
            with self._client.stream("GET", self._root_url, params=params) as response:
                response.raise_for_status()
                yield response.iter_bytes()
        except httpx.HTTPStatusError as e:
            logger.error("❌ 본문 조회 실패: id=%s, status=%d", obj.id, e.response.status_code)
            raise StoreError(f"CMIS 문서 본문을 읽을 수 없습니다: {obj.name}") from e
        except httpx.RequestError as e:
            logger.error("❌ 네트워크 오류: %s", str(e))
            raise StoreError(f"CMIS 저장소 연결 실패: {self.browser_url}") from e

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        url: str,
        *,
        tolerate: set[str] | None = None,
        expect_json: bool = True,
        **kwargs,
    ) -> dict | None:
        """공통 HTTP 요청. tolerate 에 포함된 CMIS 예외는 None 으로 반환합니다."""
        try:
            response = self._client.request(method, url, **kwargs)
            logger.debug("HTTP Status: %d", response.status_code)
            if tolerate and response.is_error and _cmis_exception(response) in tolerate:
                return None
            if tolerate and "objectNotFound" in tolerate and response.status_code == 404:
                return None
            response.raise_for_status()
            if not expect_json or not response.content:
                return {}
            return response.json()

        except httpx.HTTPStatusError as e:
            logger.error("❌ HTTP 오류: %d - %s", e.response.status_code, e.response.text[:200])
            self._raise_http_error(e)
        except httpx.RequestError as e:
            logger.error("❌ 네트워크 오류: %s", str(e))
            raise StoreError(f"CMIS 저장소 연결 실패: {self.browser_url}") from e
        except ValueError as e:
            raise StoreError(f"CMIS 응답을 해석할 수 없습니다: {url}") from e

    def _raise_http_error(self, e: httpx.HTTPStatusError) -> None:
        status = e.response.status_code
        if status == 401:
            raise StoreError("CMIS 인증 실패: USER_ID 또는 USER_PASSWORD를 확인하세요") from e
        elif status == 403:
            raise StoreError("CMIS 저장소 접근 권한이 없습니다") from e
        else:
            exception = _cmis_exception(e.response) or "unknown"
            raise StoreError(f"CMIS API 오류: {status} ({exception})") from e

    def _to_store_object(
        self,
        data: dict,
        parent: StoreObject | None = None,
        path: str | None = None,
    ) -> StoreObject:
        props = data.get("succinctProperties") or _flatten_properties(data.get("properties", {}))
        base_type = props.get("cmis:baseTypeId", "")
        kind = ObjectKind.FOLDER if base_type == "cmis:folder" else ObjectKind.DOCUMENT
        # 문서에는 cmis:path 가 없으므로 조회 경로나 부모 경로로 채움
        path = props.get("cmis:path") or path
        if path is None and parent is not None and parent.path is not None:
            path = f"{parent.path.rstrip('/')}/{props.get('cmis:name', '')}"

        return StoreObject(
            id=str(props.get("cmis:objectId", "")),
            name=props.get("cmis:name", ""),
            kind=kind,
            last_modified=int(props.get("cmis:lastModificationDate") or 0),
            site_id=self.repository_id,
            parent_id=props.get("cmis:parentId") or (parent.id if parent else None),
            path=path,
            mime_type=props.get("cmis:contentStreamMimeType"),
        )


def _cmis_exception(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return ""
    return data.get("exception", "") if isinstance(data, dict) else ""


def _flatten_properties(properties: dict) -> dict:
    """비 succinct 응답의 properties 를 {id: value} 형태로 변환합니다."""
    return {key: prop.get("value") for key, prop in properties.items()}
