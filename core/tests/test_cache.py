import json

import pytest

from core.exceptions import StoreUnavailable
from core.gateway import CacheStatus, GatewayContext
from core.gateway.cache import ResponseCache, entry_key
from core.gateway.stores import NullStore


class Producer:
    def __init__(self, value):
        self.value = value
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.value


def test_miss_then_hit(store):
    cache = ResponseCache(store)
    produce = Producer({'data': [1, 2, 3]})

    first = cache.cached_json('patients', 'page=1', 30, produce)
    second = cache.cached_json('patients', 'page=1', 30, produce)

    assert first.cache == CacheStatus.MISS
    assert second.cache == CacheStatus.HIT
    assert second.value == {'data': [1, 2, 3]}
    assert produce.calls == 1
    assert store.data['cachever:patients'] == '1'
    assert store.expiry['cache:patients:v1:page=1'] == 30_000
    assert first.headers() == {'x-cache': 'MISS'}


def test_bump_version_isolates_namespace(store):
    cache = ResponseCache(store)
    patients = Producer(['p'])
    visits = Producer(['v'])
    cache.cached_json('patients', 'k', 30, patients)
    cache.cached_json('visits', 'k', 30, visits)

    cache.bump_version('patients')

    assert cache.cached_json('patients', 'k', 30, patients).cache == CacheStatus.MISS
    assert cache.cached_json('visits', 'k', 30, visits).cache == CacheStatus.HIT
    assert patients.calls == 2
    assert visits.calls == 1
    assert cache.current_version('patients') == 2


def test_bump_before_first_read_creates_counter(store):
    cache = ResponseCache(store)
    cache.bump_version('dashboard')
    cache.cached_json('dashboard', 'k', 15, Producer({'x': 1}))
    assert entry_key('dashboard', 1, 'k') in store.data
    cache.bump_version('dashboard')
    assert cache.cached_json('dashboard', 'k', 15, Producer({'x': 2})).value == {'x': 2}


@pytest.mark.parametrize('raw', ['abc', '0', '-4'])
def test_invalid_version_counts_as_one(store, raw):
    store.data['cachever:visits'] = raw
    assert ResponseCache(store).current_version('visits') == 1


def test_corrupt_entry_is_deleted_and_recomputed(store):
    cache = ResponseCache(store)
    store.data['cachever:visits'] = '1'
    store.data['cache:visits:v1:id=5'] = '{not json'
    produce = Producer({'id': 5})

    result = cache.cached_json('visits', 'id=5', 60, produce)

    assert result.cache == CacheStatus.MISS
    assert result.value == {'id': 5}
    assert json.loads(store.data['cache:visits:v1:id=5']) == {'id': 5}


def test_producer_error_propagates_and_nothing_is_stored(store):
    cache = ResponseCache(store)

    def boom():
        raise RuntimeError('db down')

    with pytest.raises(RuntimeError):
        cache.cached_json('patients', 'k', 30, boom)
    assert not any(key.startswith('cache:patients:') for key in store.data)


def test_null_store_bypasses():
    cache = ResponseCache(NullStore())
    produce = Producer([1])
    assert cache.cached_json('patients', 'k', 30, produce).cache == CacheStatus.BYPASS
    assert cache.cached_json('patients', 'k', 30, produce).cache == CacheStatus.BYPASS
    assert produce.calls == 2
    cache.bump_version('patients')


@pytest.mark.parametrize('namespace, key, ttl', [('', 'k', 30), ('ns', '', 30), ('ns', 'k', 0)])
def test_rejects_invalid_arguments(store, namespace, key, ttl):
    with pytest.raises(ValueError):
        ResponseCache(store).cached_json(namespace, key, ttl, Producer(1))


def test_raise_policy_surfaces_store_errors(store):
    gateway = GatewayContext(store, failure_policy='raise')
    store.broken = True
    produce = Producer([1])

    with pytest.raises(StoreUnavailable):
        gateway.cached_json('patients', 'k', 30, produce)
    with pytest.raises(StoreUnavailable):
        gateway.bump_cache_version('patients')
    assert produce.calls == 0


def test_bypass_policy_computes_directly(store):
    gateway = GatewayContext(store, failure_policy='bypass')
    store.broken = True
    produce = Producer([1])

    result = gateway.cached_json('patients', 'k', 30, produce)
    gateway.bump_cache_version('patients', 'dashboard')

    assert result.cache == CacheStatus.BYPASS
    assert result.value == [1]
    assert produce.calls == 1


def test_unknown_failure_policy_is_rejected(store):
    with pytest.raises(ValueError):
        GatewayContext(store, failure_policy='ignore')


def test_bump_cache_version_accepts_many_namespaces(store):
    gateway = GatewayContext(store)
    gateway.bump_cache_version('patients', 'visits')
    assert store.data['cachever:patients'] == '1'
    assert store.data['cachever:visits'] == '1'


@pytest.mark.django_db
def test_bump_on_commit_waits_for_the_transaction(store, django_capture_on_commit_callbacks):
    gateway = GatewayContext(store)
    with django_capture_on_commit_callbacks() as callbacks:
        gateway.bump_on_commit('patients', 'dashboard')
        assert store.data == {}
    assert len(callbacks) == 1

    callbacks[0]()
    assert store.data == {'cachever:patients': '1', 'cachever:dashboard': '1'}
