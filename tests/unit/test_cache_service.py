"""
Unit tests for the report summary cache.
"""

from flask import Flask
from redis.exceptions import ConnectionError

from pos_billing.services.cache_service import ReportCache


class FakeRedis:
    """Dict-backed subset of the redis client used by ReportCache."""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    def get(self, key):
        return self.data.get(key)

    def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl

    def scan_iter(self, match=None, count=None):
        prefix = match.rstrip('*')
        return [key for key in self.data if key.startswith(prefix)]

    def delete(self, *keys):
        for key in keys:
            self.data.pop(key, None)


class DownRedis:
    def get(self, key):
        raise ConnectionError('down')

    def setex(self, key, ttl, value):
        raise ConnectionError('down')

    def scan_iter(self, match=None, count=None):
        raise ConnectionError('down')


def connected_cache(client=None):
    cache = ReportCache()
    cache.client = client or FakeRedis()
    return cache


class TestReportCache:
    """Tests for keys, memoization and invalidation."""

    def test_disabled_by_config(self):
        app = Flask(__name__)
        app.config.update(CACHE_ENABLED=False, CACHE_KEY_PREFIX='shop')
        cache = ReportCache(app)
        calls = []

        for _ in range(2):
            cache.memoize(1, 'summary', lambda: calls.append(1) or {'n': 1}, ttl=60)

        assert len(calls) == 2
        assert cache.enabled is False
        assert cache.key(1, 'summary') == 'shop:store:1:reports:summary'
        assert cache.invalidate(1) == 0

    def test_unreachable_redis_disables_cache(self, monkeypatch):
        class Unreachable:
            def ping(self):
                raise ConnectionError('refused')

        monkeypatch.setattr('redis.from_url', lambda url, **kwargs: Unreachable())
        app = Flask(__name__)
        app.config.update(CACHE_ENABLED=True, REDIS_URL='redis://nowhere:6379/0')

        cache = ReportCache(app)

        assert cache.enabled is False
        assert cache.memoize(1, 'summary', lambda: {'n': 1}, ttl=60) == {'n': 1}

    def test_memoize_caches_json(self):
        cache = connected_cache()
        calls = []

        def load():
            calls.append(1)
            return {'dailySales': 1, 'dailyRevenue': '236.00'}

        first = cache.memoize(7, 'summary', load, ttl=30)
        second = cache.memoize(7, 'summary', load, ttl=30)

        assert calls == [1]
        assert first == second == {'dailySales': 1, 'dailyRevenue': '236.00'}
        assert cache.client.ttls == {'pos:store:7:reports:summary': 30}

    def test_invalidate_is_store_scoped(self):
        cache = connected_cache()
        cache.memoize(1, 'summary', lambda: {'a': 1}, ttl=60)
        cache.memoize(12, 'summary', lambda: {'a': 12}, ttl=60)

        assert cache.invalidate(1) == 1
        assert list(cache.client.data) == ['pos:store:12:reports:summary']

    def test_redis_errors_fall_back_to_loader(self):
        cache = connected_cache(DownRedis())

        assert cache.memoize(1, 'summary', lambda: {'a': 1}, ttl=60) == {'a': 1}
        assert cache.invalidate(1) == 0
