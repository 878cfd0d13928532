"""
Fetch artworks from every museum source at once and merge the results.

Each source call runs on the shared pool with its own deadline. A source
that fails, times out or finds nothing contributes an empty list, so the
functions here always return a (possibly empty) list and never raise.
"""
import logging
import math
import random
import threading
from functools import partial
from itertools import chain, zip_longest

import config
import museum_apis
from errors import SourceTimeout
from models import Artwork
from timeouts import start_call

logger = logging.getLogger(__name__)

# Artworks from slow calls that finished after their response was sent,
# oldest first, at most config.MAX_BACKGROUND_RESULTS of them
_background_results = []
_background_lock = threading.Lock()


def _resolve_sources(sources):
    return list(museum_apis.SOURCES if sources is None else sources)


def quota_for(total, sources):
    """Even share of `total` per configured source, rounded up."""
    active = sum(1 for source in sources if source.configured) or 1
    return max(1, math.ceil(total / active))


def _start_fetches(sources, quota):
    return [start_call(source.tag, source.fetch, source.timeout_ms, quota)
            for source in sources]


def _settle(call, keep_late=True):
    """Result of one call, or [] if it failed or ran out of time."""
    try:
        return [a for a in call.result() or [] if isinstance(a, Artwork)]
    except SourceTimeout as e:
        logger.warning("Timed out: %s", e)
        if keep_late:
            _detach(call)
    except Exception as e:
        # Adapters swallow their own errors; this catches anything they missed
        logger.warning("Fetch failed for %s: %r", call.name, e)
    return []


def settle_all(calls, keep_late=True):
    """Wait for every call, one list of artworks per call.

    Never short-circuits: a failed call becomes an empty list and the
    others are still collected.
    """
    return [_settle(call, keep_late) for call in calls]


def _merge(batches, exclude=()):
    """Flatten batches, dropping excluded ids, repeats and imageless records."""
    seen = set(exclude)
    merged = []
    for artwork in chain.from_iterable(batches):
        if artwork.id in seen or not artwork.image_url:
            continue
        seen.add(artwork.id)
        merged.append(artwork)
    return merged


def _shuffle_and_trim(artworks, count):
    shuffled = list(artworks)
    random.shuffle(shuffled)
    return shuffled[:count]


def _background_done(name, future):
    """Done-callback for calls nobody waits on any more."""
    try:
        artworks = [a for a in future.result() or [] if isinstance(a, Artwork)]
    except Exception as e:
        logger.warning("Background fetch from %s failed: %r", name, e)
        return
    if not artworks:
        return
    if not config.KEEP_BACKGROUND_RESULTS:
        logger.debug("Discarding %d late artworks from %s", len(artworks), name)
        return
    with _background_lock:
        _background_results.extend(artworks)
        overflow = len(_background_results) - max(0, config.MAX_BACKGROUND_RESULTS)
        if overflow > 0:
            del _background_results[:overflow]
    logger.debug("Kept %d late artworks from %s", len(artworks), name)


def _detach(call):
    call.future.add_done_callback(partial(_background_done, call.name))


def take_background_results():
    """Remove and return artworks collected from detached calls."""
    with _background_lock:
        results = list(_background_results)
        del _background_results[:]
    return results


def clear_background_results():
    with _background_lock:
        del _background_results[:]


def fetch_artworks(count=30, sources=None):
    """Initial load: up to `count` shuffled artworks.

    Fast and slow tiers start together. If the fast tier alone returns at
    least MIN_FAST_RESULTS artworks we answer with those and leave the slow
    calls running in the background; otherwise we wait for the slow tier
    too and merge both.
    """
    sources = _resolve_sources(sources)
    if count <= 0 or not sources:
        return []

    quota = quota_for(count, sources)
    fast = [s for s in sources if s.tier == museum_apis.FAST]
    slow = [s for s in sources if s.tier != museum_apis.FAST]

    fast_calls = _start_fetches(fast, quota)
    slow_calls = _start_fetches(slow, quota)

    fast_batches = settle_all(fast_calls)
    fast_results = _merge(fast_batches)

    if not slow_calls:
        return _shuffle_and_trim(fast_results, count)

    if len(fast_results) >= config.MIN_FAST_RESULTS:
        logger.info("Fast tier returned %d artworks, not waiting for %d slow sources",
                    len(fast_results), len(slow_calls))
        for call in slow_calls:
            _detach(call)
        return _shuffle_and_trim(fast_results, count)

    logger.info("Fast tier returned %d artworks, waiting for slow tier", len(fast_results))
    slow_batches = settle_all(slow_calls)
    return _shuffle_and_trim(_merge(fast_batches + slow_batches), count)


def fetch_more_artworks(existing_ids, count=20, sources=None):
    """Up to `count` shuffled artworks whose ids are not in `existing_ids`.

    Waits for every source (each bounded by its own deadline). Artworks
    kept from earlier detached calls are merged in as well.
    """
    sources = _resolve_sources(sources)
    if count <= 0:
        return []

    batches = []
    if sources:
        batches = settle_all(_start_fetches(sources, quota_for(count, sources)))
    batches.append(take_background_results())

    fresh = _merge(batches, exclude=existing_ids)
    return _shuffle_and_trim(fresh, count)


def search_all(query, source=None, limit=20, sources=None):
    """Search one source, or every searchable source in parallel.

    Results from different sources are interleaved so one museum does not
    crowd out the others, then cut to `limit`.
    """
    sources = [s for s in _resolve_sources(sources) if s.search]
    if source:
        sources = [s for s in sources if s.tag == source]
    if not sources or limit <= 0:
        return []

    per_source = quota_for(limit, sources)
    calls = [start_call(s.tag, s.search, s.timeout_ms, query, per_source)
             for s in sources]
    batches = settle_all(calls, keep_late=False)

    interleaved = (a for row in zip_longest(*batches) for a in row if a is not None)
    return _merge([interleaved])[:limit]
