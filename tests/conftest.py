"""Shared test fixtures and protocol-conforming fakes."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

import pytest

from src.adapters.outbound.in_memory_resolution_cache import InMemoryResolutionCache
from src.application.services.template_loader_service import TemplateLoaderService
from src.domain.template_store import ObjectKind, StoreError, StoreObject, TemplateLoaderConfig

DEFAULT_TEMPLATE = b'<p>{{ greeting | default("hello") }}</p>\n'


# --- Protocol-conforming Fakes ---


class FakeTemplateStore:
    """In-memory TemplateStorePort with idempotent folder creation and call recording."""

    def __init__(self, chunk_size: int = 4):
        self._lock = threading.Lock()
        self._next_id = 1
        self._chunk_size = chunk_size
        self.sites: dict[str, str] = {}
        self.objects: dict[str, StoreObject] = {}
        self.contents: dict[str, bytes] = {}
        self.lookups: list[tuple[str, str]] = []
        self.created_sites: list[str] = []
        self.created_folders: list[tuple[str, str]] = []
        self.created_documents: list[tuple[str, str, str]] = []
        self.deleted: list[str] = []
        self.open_streams = 0
        self.closed_streams = 0
        self.fail_on_lookup: str | None = None

    # --- test setup helpers ---

    def add_site(self, name: str) -> str:
        site_id = f"site-{len(self.sites) + 1}"
        self.sites[name] = site_id
        return site_id

    def add_folders(self, site_id: str, path: str) -> StoreObject:
        current = self.get_root(site_id)
        for segment in [s for s in path.split("/") if s]:
            existing = self._child(current.id, segment)
            current = existing or self._new(segment, ObjectKind.FOLDER, current)
        return current

    def add_document(self, folder: StoreObject, name: str, content: bytes, last_modified: int = 1000) -> StoreObject:
        doc = self._new(name, ObjectKind.DOCUMENT, folder, last_modified=last_modified, mime_type="text/plain")
        self.contents[doc.id] = content
        return doc

    def touch(self, obj: StoreObject, last_modified: int) -> StoreObject:
        updated = StoreObject(
            id=obj.id, name=obj.name, kind=obj.kind, last_modified=last_modified,
            site_id=obj.site_id, parent_id=obj.parent_id, path=obj.path, mime_type=obj.mime_type,
        )
        self.objects[obj.id] = updated
        return updated

    def children_named(self, parent_id: str, name: str) -> list[StoreObject]:
        return [o for o in self.objects.values() if o.parent_id == parent_id and o.name == name]

    # --- TemplateStorePort ---

    def find_site(self, name: str) -> str | None:
        return self.sites.get(name)

    def create_site(self, name: str) -> str:
        self.created_sites.append(name)
        return self.add_site(name)

    def get_root(self, site_id: str) -> StoreObject:
        root_id = f"root-{site_id}"
        if root_id not in self.objects:
            self.objects[root_id] = StoreObject(
                id=root_id, name="", kind=ObjectKind.FOLDER, last_modified=0, site_id=site_id, path="/",
            )
        return self.objects[root_id]

    def get_by_path(self, site_id: str, path: str) -> StoreObject | None:
        current = self.get_root(site_id)
        for segment in [s for s in path.split("/") if s]:
            child = self._child(current.id, segment)
            if child is None:
                return None
            current = child
        return current

    def get_by_id(self, object_id: str) -> StoreObject | None:
        return self.objects.get(object_id)

    def find_child(self, parent: StoreObject, name: str) -> StoreObject | None:
        self.lookups.append((parent.id, name))
        if self.fail_on_lookup == name:
            raise StoreError(f"backend down while looking up {name}")
        return self._child(parent.id, name)

    def create_folder(self, name: str, parent: StoreObject) -> StoreObject:
        with self._lock:
            existing = self._child(parent.id, name)
            if existing is not None:
                return existing
            self.created_folders.append((parent.id, name))
            return self._new(name, ObjectKind.FOLDER, parent)

    def create_document(self, parent: StoreObject, content: bytes, mime_type: str, name: str) -> StoreObject:
        with self._lock:
            self.created_documents.append((parent.id, name, mime_type))
            doc = self._new(name, ObjectKind.DOCUMENT, parent, mime_type=mime_type)
            self.contents[doc.id] = content
            return doc

    def delete_subtree(self, obj: StoreObject) -> None:
        self.deleted.append(obj.id)
        doomed = [obj.id]
        while doomed:
            current = doomed.pop()
            self.objects.pop(current, None)
            self.contents.pop(current, None)
            doomed.extend(o.id for o in list(self.objects.values()) if o.parent_id == current)

    def list_children(self, parent: StoreObject) -> list[StoreObject]:
        return [o for o in self.objects.values() if o.parent_id == parent.id]

    @contextmanager
    def open_content(self, obj: StoreObject) -> Iterator[Iterator[bytes]]:
        data = self.contents[obj.id]
        self.open_streams += 1
        try:
            yield iter([data[i:i + self._chunk_size] for i in range(0, len(data), self._chunk_size)])
        finally:
            self.closed_streams += 1

    # --- internals ---

    def _child(self, parent_id: str, name: str) -> StoreObject | None:
        for obj in list(self.objects.values()):
            if obj.parent_id == parent_id and obj.name == name:
                return obj
        return None

    def _new(
        self,
        name: str,
        kind: ObjectKind,
        parent: StoreObject,
        last_modified: int = 1000,
        mime_type: str | None = None,
    ) -> StoreObject:
        object_id = f"obj-{self._next_id}"
        self._next_id += 1
        obj = StoreObject(
            id=object_id,
            name=name,
            kind=kind,
            last_modified=last_modified,
            site_id=parent.site_id,
            parent_id=parent.id,
            path=f"{(parent.path or '').rstrip('/')}/{name}",
            mime_type=mime_type,
        )
        self.objects[object_id] = obj
        return obj


def make_service(
    store: FakeTemplateStore,
    cache: InMemoryResolutionCache | None = None,
    **config_kwargs,
) -> TemplateLoaderService:
    config_kwargs.setdefault("template_folder_path", "templates/email")
    config_kwargs.setdefault("site_name", "Templates")
    if config_kwargs.get("create_folder") or config_kwargs.get("create_site"):
        config_kwargs.setdefault("default_template", DEFAULT_TEMPLATE)
    return TemplateLoaderService(
        store=store,
        cache=cache or InMemoryResolutionCache(),
        config=TemplateLoaderConfig(**config_kwargs),
    )


# --- Fixtures ---


@pytest.fixture
def store() -> FakeTemplateStore:
    return FakeTemplateStore()


@pytest.fixture
def cache() -> InMemoryResolutionCache:
    return InMemoryResolutionCache()


@pytest.fixture
def site_id(store: FakeTemplateStore) -> str:
    return store.add_site("Templates")
