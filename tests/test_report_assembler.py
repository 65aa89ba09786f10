from datetime import datetime
from pathlib import Path
import sys

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.schemas import ComparisonDeltas
from app.services.aggregation_service import Tally, aggregate_orders
from app.services.date_range_service import resolve_date_range
from app.services.order_normalizer import normalize_orders
from app.services.report_assembler import assemble_report, build_time_series, rank_entries

NOW = datetime(2024, 5, 15, 14, 30)


def _orders():
    return normalize_orders(
        [
            {"id": "1", "orderType": "table", "status": "paid", "total": 40000, "waiterId": "w1",
             "waiterName": "Aziz", "paidAt": "2024-05-15T12:10:00", "createdAt": "2024-05-15T12:00:00",
             "items": [{"name": "Osh", "price": 20000, "quantity": 2}]},
            {"id": "2", "orderType": "saboy", "status": "ready", "total": 9000,
             "createdAt": "2024-05-15T12:40:00", "customerName": "Kamola",
             "items": [{"name": "Samsa", "price": 3000, "quantity": 3}]},
            {"id": "3", "orderType": "table", "status": "completed", "total": 15000, "waiterId": "w2",
             "createdAt": "2024-05-15T18:05:00",
             "items": [{"name": "Lagman", "price": 15000, "quantity": 1}]},
        ],
        now=NOW,
    )


def test_today_series_has_an_entry_per_hour() -> None:
    resolved = resolve_date_range("today", now=NOW)
    acc = aggregate_orders(_orders(), resolved)

    series = build_time_series(acc, resolved)

    assert len(series) == 24
    assert series[0].key == "00:00"
    assert series[12].orders == 2
    assert series[12].revenue == pytest.approx(49000)
    assert series[3].orders == 0
    assert series[3].revenue_by_type == {"table": 0.0, "saboy": 0.0, "delivery": 0.0}
    assert sum(point.orders for point in series) == acc.totals.count


def test_week_series_has_seven_days_ending_today() -> None:
    resolved = resolve_date_range("week", now=NOW)
    acc = aggregate_orders(_orders(), resolved)

    series = build_time_series(acc, resolved)

    assert len(series) == 7
    assert series[0].key == "2024-05-09"
    assert series[-1].key == "2024-05-15"
    assert series[-1].orders == 3
    assert sum(point.orders for point in series) == acc.totals.count


@pytest.mark.parametrize("month, expected_days", [("2024-02", 29), ("2023-02", 28), ("2024-04", 30)])
def test_month_series_has_an_entry_per_day(month: str, expected_days: int) -> None:
    resolved = resolve_date_range("month", month=month, now=NOW)
    acc = aggregate_orders([], resolved)

    series = build_time_series(acc, resolved)

    assert len(series) == expected_days
    assert series[0].label.startswith("01 ")


def test_year_series_has_twelve_months() -> None:
    resolved = resolve_date_range("year", now=NOW)
    acc = aggregate_orders(_orders(), resolved)

    series = build_time_series(acc, resolved)

    assert [point.label for point in series][:3] == ["Jan", "Feb", "Mar"]
    assert series[4].key == "2024-05"
    assert series[4].orders == 3


def test_rank_entries_orders_by_revenue_then_count() -> None:
    tallies = {
        "Osh": Tally(count=2, revenue=500.0),
        "Choy": Tally(count=9, revenue=100.0),
        "Non": Tally(count=4, revenue=100.0),
        "Samsa": Tally(count=1, revenue=300.0),
    }

    ranked = rank_entries(tallies, total_revenue=1000.0, limit=3)

    assert [entry.name for entry in ranked] == ["Osh", "Samsa", "Choy"]
    assert ranked[0].percentage_of_total == pytest.approx(50.0)
    revenues = [entry.revenue for entry in ranked]
    assert revenues == sorted(revenues, reverse=True)


def test_assemble_report_sections() -> None:
    resolved = resolve_date_range("today", now=NOW)
    acc = aggregate_orders(_orders(), resolved)

    report = assemble_report(acc, resolved, ComparisonDeltas(), top_n=2, generated_at=NOW)

    assert report.headline.total_orders == 3
    assert report.headline.revenue == pytest.approx(64000)
    assert report.headline.average_order_value == pytest.approx(64000 / 3)
    assert report.headline.average_items_per_order == pytest.approx(6 / 3)
    assert [entry.name for entry in report.top_items] == ["Osh", "Lagman"]
    assert [entry.name for entry in report.categories] == ["Other"]
    assert [row.id for row in report.waiter_leaderboard] == ["w1", "w2"]
    assert [row.name for row in report.waiter_table] == ["Aziz", "Unknown", "Customer (Kamola)"]
    assert report.waiter_table[-1].is_customer
    assert {entry.name: entry.value for entry in report.orders_by_status} == {
        "ready": 1,
        "completed": 1,
        "paid": 1,
    }
    assert {entry.name for entry in report.orders_by_type} == {"table", "saboy"}
    assert len(report.orders_by_day_of_week) == 7
    assert report.most_popular_hour == "12:00"
    assert report.most_popular_day == "Wednesday"
    assert [entry.hour for entry in report.hourly] == ["12:00", "18:00"]
    assert report.monthly[0].month == "2024-05"
