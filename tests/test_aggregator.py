import time
from unittest.mock import patch

import pytest

import aggregator
import config
import museum_apis
from errors import SourceUnavailable
from museum_apis import FAST, SLOW


def ids(artworks):
    return sorted(artwork.id for artwork in artworks)


def test_quota_is_ceiling_share_of_configured_sources(make_source, monkeypatch):
    monkeypatch.delenv("HARVARD_API_KEY", raising=False)
    sources = [
        make_source("artic"),
        make_source("cleveland"),
        make_source("vam"),
        make_source("harvard", credential="HARVARD_API_KEY"),
    ]

    assert aggregator.quota_for(10, sources) == 4

    monkeypatch.setenv("HARVARD_API_KEY", "secret")
    assert aggregator.quota_for(10, sources) == 3


def test_quota_is_passed_to_every_source(make_source):
    asked = []

    def fetch(quota):
        asked.append(quota)
        return []

    sources = [make_source(tag, fetch=fetch) for tag in ("a", "b", "c")]
    aggregator.fetch_more_artworks(set(), 7, sources=sources)

    assert asked == [3, 3, 3]


def test_success_timeout_and_malformed_response(make_source, make_artworks, blocked):
    good = make_source("artic", make_artworks("artic", 1, 2, 3, 4, 5))
    slow = make_source("vam", fetch=blocked, deadline_ms=100)
    malformed = make_source("cleveland", fetch=museum_apis.cleveland_fetch, deadline_ms=1000)

    started = time.monotonic()
    with patch.object(museum_apis, "_make_request", return_value={"unexpected": []}):
        result = aggregator.fetch_artworks(10, sources=[good, slow, malformed])

    assert time.monotonic() - started < 1.0
    assert ids(result) == ["artic-1", "artic-2", "artic-3", "artic-4", "artic-5"]


def test_fetch_more_drops_seen_ids(make_source, make_artworks):
    sources = [
        make_source("met", make_artworks("met", 101, 102), tier=SLOW),
        make_source("artic", make_artworks("artic", 55, 56, 57)),
    ]

    result = aggregator.fetch_more_artworks({"met-101", "artic-55"}, 5, sources=sources)

    assert ids(result) == ["artic-56", "artic-57", "met-102"]


def test_fetch_more_never_returns_seen_ids(make_source, make_artworks):
    items = make_artworks("artic", *range(40))
    seen = {artwork.id for artwork in items[::2]}

    for _ in range(5):
        result = aggregator.fetch_more_artworks(seen, 10, sources=[make_source("artic", items)])
        assert not seen & set(ids(result))


@pytest.mark.parametrize("count", [1, 3, 10])
def test_results_never_exceed_count(make_source, make_artworks, count):
    sources = [
        make_source("artic", make_artworks("artic", *range(10))),
        make_source("met", make_artworks("met", *range(10)), tier=SLOW),
    ]

    assert len(aggregator.fetch_artworks(count, sources=sources)) <= count
    assert len(aggregator.fetch_more_artworks(set(), count, sources=sources)) <= count


def test_fewer_survivors_than_count_is_fine(make_source, make_artworks):
    sources = [make_source("artic", make_artworks("artic", 1, 2))]
    assert len(aggregator.fetch_more_artworks({"artic-1"}, 10, sources=sources)) == 1


def test_zero_count_returns_nothing(make_source, make_artworks):
    sources = [make_source("artic", make_artworks("artic", 1))]
    assert aggregator.fetch_artworks(0, sources=sources) == []
    assert aggregator.fetch_more_artworks(set(), 0, sources=sources) == []


def test_every_source_failing_gives_empty_list_in_time(make_source, blocked):
    def broken(quota):
        raise RuntimeError("boom")

    def unavailable(quota):
        raise SourceUnavailable("europeana", "503")

    sources = [
        make_source("artic", fetch=blocked, deadline_ms=100),
        make_source("vam", fetch=broken),
        make_source("met", fetch=blocked, tier=SLOW, deadline_ms=200),
        make_source("europeana", fetch=unavailable, tier=SLOW),
    ]

    started = time.monotonic()
    assert aggregator.fetch_artworks(10, sources=sources) == []
    assert aggregator.fetch_more_artworks({"x-1"}, 10, sources=sources) == []
    # Two rounds, each bounded by the longest deadline
    assert time.monotonic() - started < 2 * 0.2 + 1.0


def test_one_working_source_is_enough(make_source, make_artworks, blocked):
    def broken(quota):
        raise ValueError("bad payload")

    items = make_artworks("harvard", 1, 2, 3)
    sources = [
        make_source("artic", fetch=broken),
        make_source("vam", fetch=blocked, deadline_ms=100),
        make_source("harvard", items, tier=SLOW),
        make_source("met", fetch=broken, tier=SLOW),
    ]

    assert ids(aggregator.fetch_more_artworks(set(), 20, sources=sources)) == ids(items)
    assert ids(aggregator.fetch_artworks(20, sources=sources)) == ids(items)


def test_non_artwork_items_are_ignored(make_source, make_artworks):
    items = make_artworks("artic", 1) + [{"id": "artic-2"}, None]
    result = aggregator.fetch_artworks(10, sources=[make_source("artic", items)])
    assert ids(result) == ["artic-1"]


def test_every_result_has_an_image(make_source, make_artworks):
    sources = [
        make_source("artic", make_artworks("artic", *range(8))),
        make_source("met", make_artworks("met", *range(8)), tier=SLOW),
    ]
    for artwork in aggregator.fetch_artworks(30, sources=sources):
        assert artwork.image_url


def test_duplicates_within_one_response_are_merged(make_source, make_artworks):
    sources = [
        make_source("artic", make_artworks("artic", 1, 2)),
        make_source("artic-mirror", make_artworks("artic", 2, 3)),
    ]
    assert ids(aggregator.fetch_artworks(10, sources=sources)) == ["artic-1", "artic-2", "artic-3"]


def test_order_is_shuffled(make_source, make_artworks):
    items = make_artworks("artic", *range(20))
    sources = [make_source("artic", items)]

    orders = {tuple(a.id for a in aggregator.fetch_artworks(20, sources=sources))
              for _ in range(10)}

    assert len(orders) > 1


def test_enough_fast_results_skip_the_slow_tier(make_source, make_artworks, blocked, monkeypatch):
    monkeypatch.setattr(config, "MIN_FAST_RESULTS", 10)
    fast = make_source("artic", make_artworks("artic", *range(12)))
    slow = make_source("harvard", fetch=blocked, tier=SLOW, deadline_ms=5000)

    started = time.monotonic()
    result = aggregator.fetch_artworks(30, sources=[fast, slow])

    assert time.monotonic() - started < 1.0
    assert len(result) == 12
    assert all(artwork.source == "artic" for artwork in result)


def test_too_few_fast_results_wait_for_the_slow_tier(make_source, make_artworks, monkeypatch):
    monkeypatch.setattr(config, "MIN_FAST_RESULTS", 10)

    def slow_fetch(quota):
        time.sleep(0.05)
        return make_artworks("harvard", 1, 2, 3)

    sources = [
        make_source("artic", make_artworks("artic", 1, 2)),
        make_source("harvard", fetch=slow_fetch, tier=SLOW),
    ]

    result = aggregator.fetch_artworks(30, sources=sources)

    assert ids(result) == ["artic-1", "artic-2", "harvard-1", "harvard-2", "harvard-3"]


def test_detached_slow_failures_are_swallowed(make_source, make_artworks, release, monkeypatch):
    monkeypatch.setattr(config, "MIN_FAST_RESULTS", 1)
    failed = []

    def failing_later(quota):
        release.wait(5)
        failed.append(True)
        raise RuntimeError("late failure")

    sources = [
        make_source("artic", make_artworks("artic", 1, 2)),
        make_source("harvard", fetch=failing_later, tier=SLOW),
    ]

    assert ids(aggregator.fetch_artworks(10, sources=sources)) == ["artic-1", "artic-2"]
    release.set()
    deadline = time.monotonic() + 2
    while not failed and time.monotonic() < deadline:
        time.sleep(0.01)
    assert failed
    assert aggregator.take_background_results() == []


def test_late_slow_results_feed_the_next_fetch_more(make_source, make_artworks, release, monkeypatch):
    monkeypatch.setattr(config, "MIN_FAST_RESULTS", 1)
    monkeypatch.setattr(config, "KEEP_BACKGROUND_RESULTS", True)

    def late(quota):
        release.wait(5)
        return make_artworks("harvard", 1, 2)

    sources = [
        make_source("artic", make_artworks("artic", 1)),
        make_source("harvard", fetch=late, tier=SLOW),
    ]

    assert ids(aggregator.fetch_artworks(10, sources=sources)) == ["artic-1"]

    release.set()
    deadline = time.monotonic() + 2
    while not aggregator._background_results and time.monotonic() < deadline:
        time.sleep(0.01)

    result = aggregator.fetch_more_artworks({"harvard-1"}, 10, sources=[])
    assert ids(result) == ["harvard-2"]
    # The stash is drained once used
    assert aggregator.fetch_more_artworks(set(), 10, sources=[]) == []


def test_search_all_interleaves_sources(make_source, make_artworks):
    def searcher(tag, *native_ids):
        def search(query, limit):
            return make_artworks(tag, *native_ids)[:limit]
        return search

    sources = [
        make_source("artic", search=searcher("artic", 1, 2, 3)),
        make_source("vam", search=searcher("vam", 1, 2, 3)),
        make_source("nypl"),
    ]

    result = aggregator.search_all("monet", limit=4, sources=sources)

    assert [a.id for a in result] == ["artic-1", "vam-1", "artic-2", "vam-2"]


def test_search_all_single_source(make_source, make_artworks):
    calls = []

    def search(query, limit):
        calls.append((query, limit))
        return make_artworks("vam", 1)

    sources = [
        make_source("artic", search=lambda query, limit: make_artworks("artic", 1)),
        make_source("vam", search=search),
    ]

    result = aggregator.search_all("teapot", source="vam", limit=5, sources=sources)

    assert ids(result) == ["vam-1"]
    assert calls == [("teapot", 5)]


def test_registry_tiers():
    tiers = {source.tag: source.tier for source in museum_apis.SOURCES}
    assert len(tiers) == 9
    assert {tag for tag, tier in tiers.items() if tier == FAST} == {"artic", "cleveland", "vam"}


def test_late_result_stash_is_capped(make_source, make_artworks, monkeypatch):
    monkeypatch.setattr(config, "MIN_FAST_RESULTS", 1)
    monkeypatch.setattr(config, "KEEP_BACKGROUND_RESULTS", True)
    monkeypatch.setattr(config, "MAX_BACKGROUND_RESULTS", 30)
    batch = iter(range(50))

    def slow_fetch(quota):
        start = next(batch) * 10
        return make_artworks("harvard", *range(start, start + 10))

    sources = [
        make_source("artic", make_artworks("artic", *range(12))),
        make_source("harvard", fetch=slow_fetch, tier=SLOW),
    ]

    for calls in range(1, 51):
        aggregator.fetch_artworks(5, sources=sources)
        expected = min(10 * calls, 30)
        deadline = time.monotonic() + 2
        while len(aggregator._background_results) < expected and time.monotonic() < deadline:
            time.sleep(0.005)
        assert len(aggregator._background_results) == expected

    # Oldest entries are the ones dropped
    assert ids(aggregator.take_background_results()) == ids(
        make_artworks("harvard", *range(470, 500)))
