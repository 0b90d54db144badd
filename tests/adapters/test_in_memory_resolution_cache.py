"""Tests for InMemoryResolutionCache."""

from __future__ import annotations

import threading
import time

from src.adapters.outbound.in_memory_resolution_cache import InMemoryResolutionCache
from src.domain.template_store import CacheSlot


class TestSlots:
    def test_get_empty(self, cache: InMemoryResolutionCache):
        assert cache.get(CacheSlot.SITE_ID) is None
        assert cache.get(CacheSlot.TEMPLATE_FOLDER_ID) is None

    def test_put_get_remove(self, cache: InMemoryResolutionCache):
        cache.put(CacheSlot.SITE_ID, '20143')
        cache.put(CacheSlot.TEMPLATE_FOLDER_ID, '30501')

        cache.remove(CacheSlot.TEMPLATE_FOLDER_ID)

        assert cache.get(CacheSlot.SITE_ID) == '20143'
        assert cache.get(CacheSlot.TEMPLATE_FOLDER_ID) is None

    def test_remove_missing_is_noop(self, cache: InMemoryResolutionCache):
        cache.remove(CacheSlot.SITE_ID)
        assert cache.get(CacheSlot.SITE_ID) is None


class TestGetOrCreate:
    def test_returns_cached_without_calling_factory(self, cache: InMemoryResolutionCache):
        cache.put(CacheSlot.SITE_ID, 'cached')
        calls = []

        assert cache.get_or_create(CacheSlot.SITE_ID, lambda: calls.append(1) or 'new') == 'cached'
        assert calls == []

    def test_stores_factory_result(self, cache: InMemoryResolutionCache):
        assert cache.get_or_create(CacheSlot.SITE_ID, lambda: 'fresh') == 'fresh'
        assert cache.get(CacheSlot.SITE_ID) == 'fresh'

    def test_none_result_is_not_stored(self, cache: InMemoryResolutionCache):
        assert cache.get_or_create(CacheSlot.SITE_ID, lambda: None) is None
        assert cache.get_or_create(CacheSlot.SITE_ID, lambda: 'later') == 'later'

    def test_concurrent_misses_run_factory_once(self, cache: InMemoryResolutionCache):
        calls = []
        barrier = threading.Barrier(5)
        results = []

        def factory():
            calls.append(1)
            time.sleep(0.05)
            return 'group-1'

        def worker():
            barrier.wait()
            results.append(cache.get_or_create(CacheSlot.SITE_ID, factory))

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(calls) == 1
        assert results == ['group-1'] * 5

    def test_slots_do_not_block_each_other(self, cache: InMemoryResolutionCache):
        def folder_factory():
            # 폴더 생성 중에도 사이트 슬롯은 사용할 수 있어야 함
            return cache.get_or_create(CacheSlot.SITE_ID, lambda: 'site')

        assert cache.get_or_create(CacheSlot.TEMPLATE_FOLDER_ID, folder_factory) == 'site'
