from datetime import datetime
from pathlib import Path
import sys

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.schemas import Category, MenuCatalogEntry, StatsFilters, Waiter
from app.services.aggregation_service import (
    aggregate_orders,
    bucket_key,
    day_name,
    is_customer_key,
)
from app.services.date_range_service import resolve_date_range
from app.services.order_normalizer import normalize_orders

NOW = datetime(2024, 5, 15, 14, 30)

CATALOG = [
    MenuCatalogEntry(name="Osh", category_id="c1"),
    MenuCatalogEntry(name="Choy", category_id="c2"),
]
CATEGORIES = [Category(id="c1", name="Main dishes"), Category(id="c2", name="Drinks")]


def _scenario_orders():
    return normalize_orders(
        [
            {
                "id": "A",
                "orderType": "table",
                "status": "paid",
                "total": 50000,
                "createdAt": "2024-05-15T09:00:00",
                "paidAt": "2024-05-15T10:00:00",
                "waiterId": "w1",
                "items": [{"name": "Osh", "price": 25000, "quantity": 2}],
            },
            {
                "id": "B",
                "orderType": "delivery",
                "status": "pending",
                "total": 30000,
                "createdAt": "2024-05-15T11:00:00",
                "customerName": "Dilnoza",
                "items": [
                    {"name": "Osh", "price": 25000, "quantity": 1},
                    {"name": "Choy", "price": 5000, "quantity": 1},
                ],
            },
            {
                "id": "C",
                "orderType": "table",
                "status": "paid",
                "total": 20000,
                "createdAt": "2024-05-15T08:00:00",
                "paidAt": "2024-05-10T12:00:00",
            },
        ],
        now=NOW,
    )


def test_scenario_totals_for_today() -> None:
    resolved = resolve_date_range("today", now=NOW)

    acc = aggregate_orders(_scenario_orders(), resolved, catalog=CATALOG, categories=CATEGORIES)

    assert acc.totals.count == 2
    assert acc.totals.revenue == pytest.approx(80000)
    assert acc.totals.paid_revenue == pytest.approx(50000)
    assert acc.totals.unpaid_revenue == pytest.approx(30000)
    assert acc.by_type["table"].revenue == pytest.approx(50000)
    assert acc.by_type["delivery"].revenue == pytest.approx(30000)
    assert acc.paid_orders == 1
    assert acc.item_quantity == 4


def test_items_categories_and_waiters() -> None:
    resolved = resolve_date_range("today", now=NOW)

    acc = aggregate_orders(
        _scenario_orders(),
        resolved,
        catalog=CATALOG,
        categories=CATEGORIES,
        waiters=[Waiter(id="w1", name="Aziz")],
    )

    assert acc.by_item["Osh"].count == 3
    assert acc.by_item["Osh"].revenue == pytest.approx(75000)
    assert acc.by_category["Drinks"].revenue == pytest.approx(5000)
    assert acc.waiter_names["w1"] == "Aziz"
    assert acc.waiter_names["customer:Dilnoza"] == "Customer (Dilnoza)"
    assert is_customer_key("customer:Dilnoza")
    assert acc.by_hour["10:00"].count == 1
    assert acc.by_weekday["Wednesday"] == 2


def test_bucket_counts_and_type_revenue_add_up() -> None:
    resolved = resolve_date_range("week", now=NOW)
    orders = normalize_orders(
        [
            {"id": str(day), "orderType": order_type, "status": "completed", "total": 1000 * day,
             "createdAt": f"2024-05-{day:02d}T12:00:00"}
            for day, order_type in [(9, "table"), (10, "saboy"), (12, "delivery"), (15, "table"), (15, "saboy")]
        ],
        now=NOW,
    )

    acc = aggregate_orders(orders, resolved)

    assert sum(tally.count for tally in acc.by_bucket.values()) == acc.totals.count == 5
    assert sum(acc.by_type[t].revenue for t in acc.by_type) == pytest.approx(acc.totals.revenue)
    assert acc.by_bucket["2024-05-15"].count == 2


def test_previous_window_is_counted_without_facets() -> None:
    resolved = resolve_date_range("today", now=NOW)
    orders = normalize_orders(
        [
            {"id": "p1", "orderType": "delivery", "status": "paid", "total": 7000,
             "paidAt": "2024-05-14T20:00:00", "createdAt": "2024-05-14T19:00:00"},
            {"id": "p2", "orderType": "table", "status": "pending", "total": 3000,
             "createdAt": "2024-05-14T09:00:00"},
        ],
        now=NOW,
    )

    acc = aggregate_orders(orders, resolved, StatsFilters(order_types=["table"]))

    assert acc.previous.orders == 2
    assert acc.previous.revenue == pytest.approx(10000)
    assert acc.previous.paid_orders == 1
    assert acc.totals.count == 0


def test_facet_filters() -> None:
    resolved = resolve_date_range("today", now=NOW)
    orders = _scenario_orders()

    only_unpaid = aggregate_orders(orders, resolved, StatsFilters(payment_statuses=["unpaid"]))
    only_w1 = aggregate_orders(orders, resolved, StatsFilters(waiter_id="w1"))
    drinks = aggregate_orders(
        orders, resolved, StatsFilters(category="Drinks"), catalog=CATALOG, categories=CATEGORIES
    )
    no_constraint = aggregate_orders(orders, resolved, StatsFilters(order_types=[], payment_statuses=[]))

    assert only_unpaid.totals.count == 1
    assert only_w1.totals.revenue == pytest.approx(50000)
    assert drinks.totals.count == 1
    assert drinks.totals.revenue == pytest.approx(30000)
    assert no_constraint.totals.count == 2


def test_each_call_gets_a_fresh_accumulator() -> None:
    resolved = resolve_date_range("today", now=NOW)
    orders = _scenario_orders()

    first = aggregate_orders(orders, resolved)
    second = aggregate_orders(orders, resolved)

    assert first is not second
    assert first.totals.count == second.totals.count == 2


def test_bucket_keys() -> None:
    moment = datetime(2024, 5, 15, 7, 45)

    assert bucket_key(moment, "today") == "07:00"
    assert bucket_key(moment, "year") == "2024-05"
    assert bucket_key(moment, "month") == "2024-05-15"
    assert day_name(moment) == "Wednesday"
