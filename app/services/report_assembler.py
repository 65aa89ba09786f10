"""Shape aggregation tallies into the report consumed by the dashboard."""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from app.config.stats_settings import STATS_TOP_N
from app.schemas import (
    ORDER_STATUSES,
    ORDER_TYPES,
    ComparisonDeltas,
    HeadlineMetrics,
    HistogramEntry,
    HourlyEntry,
    MonthlyEntry,
    PreviousPeriodTotals,
    RankedEntry,
    ResolvedRange,
    StatsReport,
    TimeSeriesPoint,
    WaiterPerformanceRow,
)
from app.services.aggregation_service import DAY_NAMES, Accumulator, Tally, is_customer_key
from app.services.comparison_service import average_order_value, safe_ratio

MONTH_ABBREVIATIONS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def build_time_series(accumulator: Accumulator, resolved: ResolvedRange) -> List[TimeSeriesPoint]:
    """Emit one point per bucket of the window, whether or not it saw orders."""

    return [
        _series_point(key, label, accumulator.by_bucket.get(key))
        for key, label in series_buckets(resolved)
    ]


def series_buckets(resolved: ResolvedRange) -> List[Tuple[str, str]]:
    window = resolved.current
    if resolved.granularity == "today":
        return [(f"{hour:02d}:00", f"{hour:02d}:00") for hour in range(24)]
    if resolved.granularity == "year":
        year = window.start.year
        return [
            (f"{year:04d}-{month:02d}", MONTH_ABBREVIATIONS[month - 1])
            for month in range(1, 13)
        ]
    return [(day.isoformat(), day_label(day)) for day in window.days()]


def day_label(day: date) -> str:
    return f"{day.day:02d} {MONTH_ABBREVIATIONS[day.month - 1]}"


def _series_point(key: str, label: str, tally: Optional[Tally]) -> TimeSeriesPoint:
    if tally is None:
        return TimeSeriesPoint(
            key=key,
            label=label,
            revenue_by_type={order_type: 0.0 for order_type in ORDER_TYPES},
        )
    return TimeSeriesPoint(
        key=key,
        label=label,
        revenue=tally.revenue,
        orders=tally.count,
        paid_revenue=tally.paid_revenue,
        unpaid_revenue=tally.unpaid_revenue,
        revenue_by_type=dict(tally.revenue_by_type),
        average_order_value=average_order_value(tally.revenue, tally.count),
    )


def rank_entries(
    tallies: Dict[str, Tally],
    total_revenue: float,
    limit: Optional[int] = None,
) -> List[RankedEntry]:
    """Sort by revenue, then count, both descending."""

    ordered = sorted(tallies.items(), key=lambda pair: (-pair[1].revenue, -pair[1].count))
    if limit is not None:
        ordered = ordered[:limit]
    return [
        RankedEntry(
            name=name,
            count=tally.count,
            revenue=tally.revenue,
            percentage_of_total=safe_ratio(tally.revenue, total_revenue) * 100,
        )
        for name, tally in ordered
    ]


def build_waiter_rows(accumulator: Accumulator) -> Tuple[List[WaiterPerformanceRow], List[WaiterPerformanceRow]]:
    """Return ``(leaderboard, full_table)``; customer pseudo-entries only appear in the table."""

    total_revenue = accumulator.totals.revenue
    ordered = sorted(
        accumulator.by_waiter.items(),
        key=lambda pair: (-pair[1].revenue, -pair[1].count),
    )
    table = [
        WaiterPerformanceRow(
            id=key,
            name=accumulator.waiter_names.get(key, key),
            order_count=tally.count,
            revenue=tally.revenue,
            average_order_value=average_order_value(tally.revenue, tally.count),
            percentage_of_total=safe_ratio(tally.revenue, total_revenue) * 100,
            is_customer=is_customer_key(key),
        )
        for key, tally in ordered
    ]
    leaderboard = [row for row in table if not row.is_customer]
    return leaderboard, table


def build_headline(accumulator: Accumulator) -> HeadlineMetrics:
    totals = accumulator.totals
    return HeadlineMetrics(
        total_orders=totals.count,
        revenue=totals.revenue,
        paid_revenue=totals.paid_revenue,
        unpaid_revenue=totals.unpaid_revenue,
        paid_orders=accumulator.paid_orders,
        average_order_value=average_order_value(totals.revenue, totals.count),
        average_items_per_order=safe_ratio(accumulator.item_quantity, totals.count),
        revenue_by_type={order_type: accumulator.by_type[order_type].revenue for order_type in ORDER_TYPES},
    )


def build_histograms(accumulator: Accumulator) -> Dict[str, List[HistogramEntry]]:
    return {
        "orders_by_day_of_week": [
            HistogramEntry(name=day, value=accumulator.by_weekday[day]) for day in DAY_NAMES
        ],
        "orders_by_status": [
            HistogramEntry(name=status, value=accumulator.by_status[status])
            for status in ORDER_STATUSES
            if accumulator.by_status[status] > 0
        ],
        "orders_by_type": [
            HistogramEntry(name=order_type, value=accumulator.by_type[order_type].count)
            for order_type in ORDER_TYPES
            if accumulator.by_type[order_type].count > 0
        ],
    }


def most_popular(counts: Dict[str, int], order: List[str]) -> str:
    best_label, best_count = "", 0
    for label in order:
        count = counts.get(label, 0)
        if count > best_count:
            best_label, best_count = label, count
    return best_label


def assemble_report(
    accumulator: Accumulator,
    resolved: ResolvedRange,
    comparison: ComparisonDeltas,
    *,
    top_n: int = STATS_TOP_N,
    generated_at: Optional[datetime] = None,
) -> StatsReport:
    total_revenue = accumulator.totals.revenue
    categories = rank_entries(accumulator.by_category, total_revenue)
    leaderboard, waiter_table = build_waiter_rows(accumulator)
    hour_keys = sorted(accumulator.by_hour)
    hourly_counts = {hour: accumulator.by_hour[hour].count for hour in hour_keys}

    return StatsReport(
        granularity=resolved.granularity,
        window=resolved.current,
        previous_window=resolved.previous,
        generated_at=generated_at or datetime.now(),
        headline=build_headline(accumulator),
        previous=PreviousPeriodTotals(
            total_orders=accumulator.previous.orders,
            revenue=accumulator.previous.revenue,
            paid_orders=accumulator.previous.paid_orders,
        ),
        comparison=comparison,
        time_series=build_time_series(accumulator, resolved),
        top_items=rank_entries(accumulator.by_item, total_revenue, limit=top_n),
        top_categories=categories[:top_n],
        categories=categories,
        waiter_leaderboard=leaderboard,
        waiter_table=waiter_table,
        hourly=[
            HourlyEntry(hour=hour, orders=accumulator.by_hour[hour].count, revenue=accumulator.by_hour[hour].revenue)
            for hour in hour_keys
        ],
        monthly=[
            MonthlyEntry(
                month=month,
                orders=tally.count,
                revenue=tally.revenue,
                revenue_by_type=dict(tally.revenue_by_type),
            )
            for month, tally in sorted(accumulator.by_month.items())
        ],
        most_popular_hour=most_popular(hourly_counts, hour_keys),
        most_popular_day=most_popular(accumulator.by_weekday, list(DAY_NAMES)),
        **build_histograms(accumulator),
    )


__all__ = [
    "assemble_report",
    "build_headline",
    "build_histograms",
    "build_time_series",
    "build_waiter_rows",
    "day_label",
    "rank_entries",
    "series_buckets",
]
