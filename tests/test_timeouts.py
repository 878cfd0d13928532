import threading
import time

import pytest

from errors import SourceTimeout
from timeouts import start_call, with_timeout


def test_returns_result_within_deadline():
    assert with_timeout(lambda x: x * 2, 1000, 21) == 42


def test_errors_from_the_operation_propagate():
    def broken():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        with_timeout(broken, 1000)


def test_deadline_raises_source_timeout(release):
    started = time.monotonic()
    with pytest.raises(SourceTimeout) as excinfo:
        with_timeout(release.wait, 100, 5, name="slow-museum")

    assert time.monotonic() - started < 1.0
    assert excinfo.value.source == "slow-museum"
    assert excinfo.value.deadline_ms == 100


def test_timed_out_operation_keeps_running(release):
    finished = threading.Event()

    def operation():
        release.wait(5)
        finished.set()
        return "late"

    call = start_call("museum", operation, 50)
    with pytest.raises(SourceTimeout):
        call.result()

    release.set()
    assert finished.wait(2)
    assert call.future.result() == "late"


def test_deadline_counts_from_submission(release):
    call = start_call("museum", release.wait, 100, 5)
    time.sleep(0.15)
    assert call.remaining() == 0
    with pytest.raises(SourceTimeout):
        call.result()


def test_pool_is_created_once_under_concurrent_first_use(monkeypatch):
    import timeouts

    monkeypatch.setattr(timeouts, "_executor", None)
    barrier = threading.Barrier(8)
    pools = []

    def first_use():
        barrier.wait()
        pools.append(timeouts.get_executor())

    threads = [threading.Thread(target=first_use) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(5)

    assert len(pools) == 8
    assert len({id(pool) for pool in pools}) == 1
    pools[0].shutdown(wait=False)
