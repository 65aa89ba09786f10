"""Single-pass fold of an order snapshot into per-dimension tallies.

Every call to :func:`aggregate_orders` allocates its own :class:`Accumulator`;
nothing is shared between computations, so overlapping requests cannot bleed
into each other.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import DefaultDict, Dict, Iterable, Optional, Sequence

from app.config.stats_settings import UNKNOWN_WAITER_LABEL
from app.schemas import (
    ORDER_STATUSES,
    ORDER_TYPES,
    Category,
    Granularity,
    MenuCatalogEntry,
    Order,
    ResolvedRange,
    StatsFilters,
    Waiter,
)
from app.services.category_resolver import CategoryLookup

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
CUSTOMER_KEY_PREFIX = "customer:"


def _empty_type_revenue() -> Dict[str, float]:
    return {order_type: 0.0 for order_type in ORDER_TYPES}


@dataclass
class Tally:
    count: int = 0
    revenue: float = 0.0
    paid_revenue: float = 0.0
    unpaid_revenue: float = 0.0
    revenue_by_type: Dict[str, float] = field(default_factory=_empty_type_revenue)

    def add_order(self, order: Order, amount: float) -> None:
        self.count += 1
        self.revenue += amount
        if order.is_paid:
            self.paid_revenue += amount
        else:
            self.unpaid_revenue += amount
        self.revenue_by_type[order.order_type] += amount

    def add_units(self, quantity: int, revenue: float) -> None:
        self.count += quantity
        self.revenue += revenue


@dataclass
class PeriodCounters:
    orders: int = 0
    revenue: float = 0.0
    paid_orders: int = 0


@dataclass
class Accumulator:
    granularity: Granularity
    previous: PeriodCounters = field(default_factory=PeriodCounters)
    totals: Tally = field(default_factory=Tally)
    paid_orders: int = 0
    item_quantity: int = 0
    by_type: Dict[str, Tally] = field(default_factory=lambda: {t: Tally() for t in ORDER_TYPES})
    by_status: Dict[str, int] = field(default_factory=lambda: {s: 0 for s in ORDER_STATUSES})
    by_item: DefaultDict[str, Tally] = field(default_factory=lambda: defaultdict(Tally))
    by_category: DefaultDict[str, Tally] = field(default_factory=lambda: defaultdict(Tally))
    by_hour: DefaultDict[str, Tally] = field(default_factory=lambda: defaultdict(Tally))
    by_weekday: Dict[str, int] = field(default_factory=lambda: {day: 0 for day in DAY_NAMES})
    by_month: DefaultDict[str, Tally] = field(default_factory=lambda: defaultdict(Tally))
    by_bucket: DefaultDict[str, Tally] = field(default_factory=lambda: defaultdict(Tally))
    by_waiter: DefaultDict[str, Tally] = field(default_factory=lambda: defaultdict(Tally))
    waiter_names: Dict[str, str] = field(default_factory=dict)


def hour_key(moment: datetime) -> str:
    return f"{moment.hour:02d}:00"


def month_key(moment: datetime) -> str:
    return f"{moment.year:04d}-{moment.month:02d}"


def day_name(moment: datetime) -> str:
    # datetime.weekday() starts the week on Monday.
    return DAY_NAMES[(moment.weekday() + 1) % 7]


def bucket_key(moment: datetime, granularity: Granularity) -> str:
    if granularity == "today":
        return hour_key(moment)
    if granularity == "year":
        return month_key(moment)
    return moment.date().isoformat()


def matches_filters(order: Order, filters: StatsFilters, lookup: CategoryLookup) -> bool:
    if filters.order_types and order.order_type not in filters.order_types:
        return False
    if filters.payment_statuses:
        payment_state = "paid" if order.is_paid else "unpaid"
        if payment_state not in filters.payment_statuses:
            return False
    if filters.waiter_id and filters.waiter_id != "all" and order.waiter_id != filters.waiter_id:
        return False
    if filters.category and filters.category != "all":
        return any(
            lookup.category_name(item) == filters.category for item in order.items if item.name
        )
    return True


def aggregate_orders(
    orders: Iterable[Order],
    resolved: ResolvedRange,
    filters: Optional[StatsFilters] = None,
    *,
    catalog: Sequence[MenuCatalogEntry] = (),
    categories: Sequence[Category] = (),
    waiters: Sequence[Waiter] = (),
) -> Accumulator:
    """Fold ``orders`` into a fresh accumulator for ``resolved``'s two windows."""

    active_filters = filters or StatsFilters()
    lookup = CategoryLookup(catalog, categories)
    waiter_directory = {waiter.id: waiter.name for waiter in waiters}
    accumulator = Accumulator(granularity=resolved.granularity)

    for order in orders:
        moment = order.effective_at
        amount = order.amount

        if resolved.previous.contains(moment):
            accumulator.previous.orders += 1
            accumulator.previous.revenue += amount
            if order.is_paid:
                accumulator.previous.paid_orders += 1
            continue

        if not resolved.current.contains(moment):
            continue
        if not matches_filters(order, active_filters, lookup):
            continue

        _fold_order(accumulator, order, amount, moment, lookup, waiter_directory)

    return accumulator


def _fold_order(
    accumulator: Accumulator,
    order: Order,
    amount: float,
    moment: datetime,
    lookup: CategoryLookup,
    waiter_directory: Dict[str, str],
) -> None:
    accumulator.totals.add_order(order, amount)
    if order.is_paid:
        accumulator.paid_orders += 1
    accumulator.by_type[order.order_type].add_order(order, amount)
    accumulator.by_status[order.status] += 1

    for item in order.items:
        if not item.name:
            continue
        line_revenue = item.line_total
        accumulator.item_quantity += item.quantity
        accumulator.by_item[item.name].add_units(item.quantity, line_revenue)
        accumulator.by_category[lookup.category_name(item)].add_units(item.quantity, line_revenue)

    accumulator.by_hour[hour_key(moment)].add_order(order, amount)
    accumulator.by_weekday[day_name(moment)] += 1
    accumulator.by_month[month_key(moment)].add_order(order, amount)
    accumulator.by_bucket[bucket_key(moment, accumulator.granularity)].add_order(order, amount)

    waiter_key = _waiter_key(order)
    if waiter_key is not None:
        accumulator.by_waiter[waiter_key].add_order(order, amount)
        if waiter_key not in accumulator.waiter_names:
            accumulator.waiter_names[waiter_key] = _waiter_label(order, waiter_directory)


def _waiter_key(order: Order) -> Optional[str]:
    if order.waiter_id:
        return order.waiter_id
    if order.customer_name:
        return f"{CUSTOMER_KEY_PREFIX}{order.customer_name}"
    return None


def _waiter_label(order: Order, waiter_directory: Dict[str, str]) -> str:
    if not order.waiter_id:
        return f"Customer ({order.customer_name})"
    if order.waiter_name:
        return order.waiter_name
    return waiter_directory.get(order.waiter_id, UNKNOWN_WAITER_LABEL)


def is_customer_key(key: str) -> bool:
    return key.startswith(CUSTOMER_KEY_PREFIX)


__all__ = [
    "Accumulator",
    "DAY_NAMES",
    "PeriodCounters",
    "Tally",
    "aggregate_orders",
    "bucket_key",
    "day_name",
    "hour_key",
    "is_customer_key",
    "matches_filters",
    "month_key",
]
