"""Tests for ListCache on top of MemoryStorage."""
from tabshield.engine.compiled import preprocess
from tabshield.store.list_cache import ListCache, cache_key
from tabshield.store.memory_storage import MemoryStorage

from tests.conftest import LIST_A, LIST_A_URL, LIST_B_URL


def test_cache_key_format():
    assert cache_key(0) == "processedFilter_0"
    assert cache_key(12) == "processedFilter_12"


def test_miss_on_empty_storage():
    cache = ListCache(MemoryStorage())
    assert cache.get(0) is None
    assert cache.misses == 1


def test_put_then_get():
    storage = MemoryStorage()
    cache = ListCache(storage)
    compiled = preprocess(0, LIST_A_URL, LIST_A)
    cache.put(0, compiled)
    assert cache.get(0, LIST_A_URL) == compiled
    assert cache.hits == 1
    assert storage.keys() == ["processedFilter_0"]


def test_entry_survives_new_cache_instance():
    storage = MemoryStorage()
    ListCache(storage).put(0, preprocess(0, LIST_A_URL, LIST_A))
    assert ListCache(storage).get(0, LIST_A_URL) is not None


def test_url_change_at_same_index_is_a_miss():
    cache = ListCache(MemoryStorage())
    cache.put(0, preprocess(0, LIST_A_URL, LIST_A))
    assert cache.get(0, LIST_B_URL) is None
    assert cache.misses == 1


def test_corrupt_entry_is_a_miss():
    storage = MemoryStorage({"processedFilter_0": {"filterList": "x"}})
    cache = ListCache(storage)
    assert cache.get(0) is None


def test_put_overwrites():
    cache = ListCache(MemoryStorage())
    cache.put(0, preprocess(0, LIST_A_URL, LIST_A))
    cache.put(0, preprocess(0, LIST_B_URL, "||x.test^"))
    assert cache.get(0).source_url == LIST_B_URL


def test_indices_ignores_other_keys():
    storage = MemoryStorage({"config": {"protectionEnabled": True}})
    cache = ListCache(storage)
    cache.put(2, preprocess(2, LIST_A_URL, LIST_A))
    cache.put(0, preprocess(0, LIST_A_URL, LIST_A))
    assert cache.indices() == [0, 2]
