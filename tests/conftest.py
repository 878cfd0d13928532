import threading

import pytest

import aggregator
import config
from models import make_artwork
from museum_apis import FAST, Source


@pytest.fixture(autouse=True)
def clean_background(monkeypatch):
    """Start every test with an empty late-result stash that stays empty."""
    monkeypatch.setattr(config, "KEEP_BACKGROUND_RESULTS", False)
    aggregator.clear_background_results()
    yield
    aggregator.clear_background_results()


@pytest.fixture
def release():
    """Event blocked fake sources wait on. Set at teardown so no worker
    thread outlives the test by more than a moment."""
    event = threading.Event()
    yield event
    event.set()


@pytest.fixture
def make_artworks():
    def factory(source, *native_ids):
        return [
            make_artwork(source, native_id, f"https://images.test/{source}/{native_id}.jpg",
                         title=f"Work {native_id}")
            for native_id in native_ids
        ]
    return factory


@pytest.fixture
def make_source():
    def factory(tag, items=(), tier=FAST, deadline_ms=2000, fetch=None,
                search=None, credential=None):
        def fetch_items(quota):
            return list(items)
        return Source(tag, tag.title(), fetch or fetch_items, search=search,
                      credential=credential, tier=tier, deadline_ms=deadline_ms)
    return factory


@pytest.fixture
def blocked(release):
    """A fetch function that hangs until teardown and then finds nothing."""
    def fetch(*args):
        release.wait(10)
        return []
    return fetch
