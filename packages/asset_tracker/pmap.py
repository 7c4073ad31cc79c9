"""Bounded thread-pool mapping for store writes, modelled on ``p-map``.

Two entry points share one executor loop:

- ``p_map`` returns mapper results in input order and fails fast on the first
  error (or raises an ``ExceptionGroup`` with ``stop_on_error=False``).
- ``p_map_settled`` never raises for mapper errors; every input yields a
  ``Settled`` outcome carrying either the value or the exception, so one
  failed write cannot block the rest of an import.

Work is submitted in fixed-size batches of ``concurrency`` items: a batch
completes before the next one starts.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from itertools import islice
from typing import Generic, TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")


class _Skip:
    __slots__ = ()

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return "p_map_skip"


# Mappers can `return p_map_skip` to omit the element from ``p_map`` output.
p_map_skip: object = _Skip()


@dataclass(frozen=True, slots=True)
class Settled(Generic[InT, OutT]):
    item: InT
    value: OutT | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _batches(iterable: Iterable[InT], size: int) -> Iterator[list[InT]]:
    it = iter(iterable)
    while batch := list(islice(it, size)):
        yield batch


def _check_concurrency(concurrency: int) -> None:
    if not isinstance(concurrency, int) or isinstance(concurrency, bool) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")


def p_map_settled(
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
) -> list[Settled[InT, OutT]]:
    """Run ``mapper`` over ``iterable`` and report every outcome in input order."""

    _check_concurrency(concurrency)
    outcomes: list[Settled[InT, OutT]] = []
    with ThreadPoolExecutor(max_workers=concurrency) as pool:
        for batch in _batches(iterable, concurrency):
            futures = [(item, pool.submit(mapper, item)) for item in batch]
            for item, fut in futures:
                exc = fut.exception()
                if exc is None:
                    outcomes.append(Settled(item=item, value=fut.result()))
                else:
                    outcomes.append(Settled(item=item, error=exc))
    return outcomes


def p_map(
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT | object],
    *,
    concurrency: int,
    stop_on_error: bool = True,
) -> list[OutT]:
    """Map ``iterable`` through ``mapper`` with at most ``concurrency`` calls in flight.

    Results keep input order minus ``p_map_skip`` values. With
    ``stop_on_error`` the first failing batch re-raises its first error and no
    later batch is started; otherwise all failures are raised together as an
    ``ExceptionGroup`` once every item has run.
    """

    _check_concurrency(concurrency)
    out: list[OutT] = []
    errors: list[Exception] = []
    with ThreadPoolExecutor(max_workers=concurrency) as pool:
        for batch in _batches(iterable, concurrency):
            futures = [pool.submit(mapper, item) for item in batch]
            for fut in futures:
                exc = fut.exception()
                if exc is not None:
                    if stop_on_error:
                        raise exc
                    if not isinstance(exc, Exception):
                        raise exc
                    errors.append(exc)
                    continue
                val = fut.result()
                if val is not p_map_skip:
                    out.append(val)  # type: ignore[arg-type]

    if errors:
        raise ExceptionGroup("p_map: one or more mapper calls failed", errors)
    return out


__all__ = ["Settled", "p_map", "p_map_settled", "p_map_skip"]
