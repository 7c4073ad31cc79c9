from __future__ import annotations

import threading

import pytest

from asset_tracker.pmap import p_map, p_map_settled, p_map_skip


def test_p_map_keeps_input_order_and_drops_skips():
    def mapper(n: int):
        return p_map_skip if n % 3 == 0 else n * 10

    assert p_map(range(1, 8), mapper, concurrency=3) == [10, 20, 40, 50, 70]


def test_p_map_limits_calls_in_flight():
    lock = threading.Lock()
    active = 0
    peak = 0

    def mapper(n: int) -> int:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        with lock:
            active -= 1
        return n

    assert p_map(range(20), mapper, concurrency=4) == list(range(20))
    assert peak <= 4


def test_p_map_stops_at_first_failed_batch():
    seen: list[int] = []

    def mapper(n: int) -> int:
        seen.append(n)
        if n == 2:
            raise KeyError(n)
        return n

    with pytest.raises(KeyError):
        p_map([1, 2, 3, 4], mapper, concurrency=1)
    assert seen == [1, 2]


def test_p_map_collects_every_failure_when_not_stopping():
    def mapper(n: int) -> int:
        if n % 2:
            raise ValueError(f"odd {n}")
        return n

    with pytest.raises(ExceptionGroup) as excinfo:
        p_map(range(5), mapper, concurrency=2, stop_on_error=False)
    assert sorted(str(e) for e in excinfo.value.exceptions) == ["odd 1", "odd 3"]


def test_p_map_settled_reports_each_outcome():
    def mapper(name: str) -> str:
        if name == "bad":
            raise RuntimeError("disk full")
        return name.upper()

    outcomes = p_map_settled(["a", "bad", "c"], mapper, concurrency=2)

    assert [o.item for o in outcomes] == ["a", "bad", "c"]
    assert [o.ok for o in outcomes] == [True, False, True]
    assert [o.value for o in outcomes] == ["A", None, "C"]
    assert str(outcomes[1].error) == "disk full"


def test_empty_input():
    assert p_map([], str, concurrency=1) == []
    assert p_map_settled([], str, concurrency=1) == []


@pytest.mark.parametrize("concurrency", [0, -1, True, 1.5])
def test_invalid_concurrency(concurrency):
    with pytest.raises(ValueError):
        p_map([1], str, concurrency=concurrency)
    with pytest.raises(ValueError):
        p_map_settled([1], str, concurrency=concurrency)
