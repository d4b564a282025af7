import pytest

from rate_fetcher.cache import JsonCacheStore

from fakes import FakeProvider


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def store(tmp_path):
    return JsonCacheStore(tmp_path / "cache")
