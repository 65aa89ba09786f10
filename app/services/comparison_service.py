"""Period-over-period deltas for the headline metrics."""

from __future__ import annotations

from app.schemas import ComparisonDeltas, PreviousPeriodTotals


def safe_ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def percent_change(current: float, previous: float) -> float:
    """Relative change in percent; a zero or negative baseline yields 0."""

    if previous > 0:
        return (current - previous) / previous * 100
    return 0.0


def average_order_value(revenue: float, order_count: int) -> float:
    return safe_ratio(revenue, order_count)


def compare_periods(
    *,
    current_orders: int,
    current_revenue: float,
    current_paid_orders: int,
    previous: PreviousPeriodTotals,
) -> ComparisonDeltas:
    current_average = average_order_value(current_revenue, current_orders)
    previous_average = average_order_value(previous.revenue, previous.total_orders)
    return ComparisonDeltas(
        orders_change=percent_change(current_orders, previous.total_orders),
        revenue_change=percent_change(current_revenue, previous.revenue),
        average_order_change=percent_change(current_average, previous_average),
        paid_orders_change=percent_change(current_paid_orders, previous.paid_orders),
    )


__all__ = ["average_order_value", "compare_periods", "percent_change", "safe_ratio"]
