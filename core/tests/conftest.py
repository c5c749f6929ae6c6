import pytest
from django.apps import apps
from django.core.cache import cache
from rest_framework.test import APIClient

from core.exceptions import StoreUnavailable
from core.gateway.context import GatewayContext
from core.models import User


class FakeStore:
    """In-memory store; ``broken`` makes every command fail like a lost connection."""

    name = 'memory'
    enabled = True

    def __init__(self):
        self.data = {}
        self.expiry = {}
        self.broken = False

    def _check(self, operation):
        if self.broken:
            raise StoreUnavailable(operation, ConnectionError('connection refused'))

    def get(self, key):
        self._check('get')
        return self.data.get(key)

    def set(self, key, value, ex=None):
        self._check('set')
        self.data[key] = value
        if ex is not None:
            self.expiry[key] = ex * 1000

    def delete(self, key):
        self._check('delete')
        self.data.pop(key, None)

    def incr(self, key):
        self._check('incr')
        value = int(self.data.get(key, 0)) + 1
        self.data[key] = str(value)
        return value

    def pexpire(self, key, millis):
        self._check('pexpire')
        self.expiry[key] = millis

    def ping(self):
        return not self.broken


class Clock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture(autouse=True)
def _clear_django_cache():
    # DRF login throttling keeps its history in the Django cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def clock():
    # start at a window boundary so sliding-window math is exact
    return Clock(now=600.0)


@pytest.fixture
def use_gateway(store, clock):
    """Swap the process gateway for one over ``store``; restored afterwards."""
    config = apps.get_app_config('core')
    original = config.gateway

    def install(*, rate_limit_enabled=True, failure_policy='raise', store_override=None):
        config.gateway = GatewayContext(
            store_override if store_override is not None else store,
            rate_limit_enabled=rate_limit_enabled,
            failure_policy=failure_policy,
            clock=clock,
        )
        return config.gateway

    yield install
    config.gateway = original


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(username='admin1', password='P@ssw0rd1', role='admin', first_name='Admin')


@pytest.fixture
def kader_user(db):
    return User.objects.create_user(username='kader1', password='P@ssw0rd1', role='kader', first_name='Siti')


@pytest.fixture
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture
def kader_client(kader_user):
    client = APIClient()
    client.force_authenticate(user=kader_user)
    return client
