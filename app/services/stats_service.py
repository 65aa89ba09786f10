"""Statistics report orchestration.

:func:`compute_stats_report` is a pure function of the snapshot and the
query. :class:`ReportCoordinator` runs computations off the event loop and
applies results in request order rather than completion order: each request
gets a generation id, and only the newest generation may publish.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import threading
from collections import OrderedDict
from datetime import datetime
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar

from app.config.stats_settings import STATS_MAX_SESSIONS, STATS_TOP_N
from app.schemas import PreviousPeriodTotals, StatsQuery, StatsReport
from app.services.aggregation_service import aggregate_orders
from app.services.comparison_service import compare_periods
from app.services.date_range_service import resolve_date_range
from app.services.order_normalizer import (
    normalize_catalog,
    normalize_categories,
    normalize_orders,
    normalize_waiters,
)
from app.services.order_repository import OrderSnapshot
from app.services.report_assembler import assemble_report

logger = logging.getLogger(__name__)

T = TypeVar("T")


def compute_stats_report(
    raw_orders: Iterable[Any],
    query: StatsQuery,
    *,
    catalog: Iterable[Any] = (),
    categories: Iterable[Any] = (),
    waiters: Iterable[Any] = (),
    now: Optional[datetime] = None,
    top_n: int = STATS_TOP_N,
) -> StatsReport:
    """Build the complete statistics report for one snapshot and one query."""

    reference = now or datetime.now()
    resolved = resolve_date_range(
        query.granularity,
        month=query.month,
        predefined_range=query.predefined_range,
        date_from=query.date_from,
        date_to=query.date_to,
        now=reference,
    )
    orders = normalize_orders(raw_orders, now=reference)
    accumulator = aggregate_orders(
        orders,
        resolved,
        query.filters,
        catalog=normalize_catalog(catalog),
        categories=normalize_categories(categories),
        waiters=normalize_waiters(waiters),
    )
    previous = PreviousPeriodTotals(
        total_orders=accumulator.previous.orders,
        revenue=accumulator.previous.revenue,
        paid_orders=accumulator.previous.paid_orders,
    )
    comparison = compare_periods(
        current_orders=accumulator.totals.count,
        current_revenue=accumulator.totals.revenue,
        current_paid_orders=accumulator.paid_orders,
        previous=previous,
    )
    return assemble_report(accumulator, resolved, comparison, top_n=top_n, generated_at=reference)


def compute_report_from_snapshot(
    snapshot: OrderSnapshot,
    query: StatsQuery,
    *,
    now: Optional[datetime] = None,
) -> StatsReport:
    return compute_stats_report(
        snapshot.orders,
        query,
        catalog=snapshot.menu,
        categories=snapshot.categories,
        waiters=snapshot.waiters,
        now=now,
    )


class ReportCoordinator(Generic[T]):
    """Last-request-wins gate for report computations of one caller."""

    def __init__(self) -> None:
        self._generation = 0
        self._applied_generation = 0
        self._latest: Optional[T] = None
        self._inflight: Optional[asyncio.Future] = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def latest(self) -> Optional[T]:
        return self._latest

    def next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def apply(self, generation: int, result: T) -> bool:
        """Publish ``result`` unless a newer generation has been issued."""

        if generation != self._generation or generation <= self._applied_generation:
            logger.debug(
                "Discarding report generation %s (latest issued %s)", generation, self._generation
            )
            return False
        self._applied_generation = generation
        self._latest = result
        return True

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def submit(self, compute: Callable[[], T], *, generation: Optional[int] = None) -> Optional[T]:
        """Run ``compute`` in a worker thread; return ``None`` if superseded.

        Callers that do I/O before computing should reserve ``generation`` with
        :meth:`next_generation` when the request arrives, so a slow fetch cannot
        overtake a newer request.
        """

        if generation is None:
            generation = self.next_generation()
        if not self.is_current(generation):
            logger.debug("Report generation %s superseded before start", generation)
            return None
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        task = asyncio.ensure_future(asyncio.to_thread(compute))
        self._inflight = task
        try:
            result = await task
        except asyncio.CancelledError:
            if not self.is_current(generation):
                logger.debug("Report generation %s superseded before completion", generation)
                return None
            raise
        if not self.apply(generation, result):
            return None
        return result


_COORDINATORS: OrderedDict[str, ReportCoordinator] = OrderedDict()
_COORDINATORS_LOCK = threading.Lock()


def session_key(access_token: str, session_id: Optional[str] = None) -> str:
    """Registry key scoped to the caller's token, optionally split per client tab."""

    token_digest = hashlib.sha256(access_token.encode("utf-8")).hexdigest()
    session = (session_id or "").strip()
    return f"{token_digest}:{session}" if session else token_digest


def get_report_coordinator(key: str, *, max_sessions: Optional[int] = None) -> ReportCoordinator:
    """Return the coordinator for ``key``, evicting the least recently used ones past the limit."""

    limit = max_sessions or STATS_MAX_SESSIONS
    with _COORDINATORS_LOCK:
        coordinator = _COORDINATORS.get(key)
        if coordinator is None:
            coordinator = ReportCoordinator()
            _COORDINATORS[key] = coordinator
        _COORDINATORS.move_to_end(key)
        while len(_COORDINATORS) > limit:
            evicted, _ = _COORDINATORS.popitem(last=False)
            logger.debug("Evicted report coordinator %s", evicted[:12])
        return coordinator


def coordinator_count() -> int:
    with _COORDINATORS_LOCK:
        return len(_COORDINATORS)


def reset_report_coordinators() -> None:
    with _COORDINATORS_LOCK:
        _COORDINATORS.clear()


__all__ = [
    "ReportCoordinator",
    "compute_report_from_snapshot",
    "compute_stats_report",
    "coordinator_count",
    "get_report_coordinator",
    "reset_report_coordinators",
    "session_key",
]
