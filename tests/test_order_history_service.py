from datetime import date, datetime
from pathlib import Path
import sys

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.services.order_history_service import filter_order_history
from app.services.order_normalizer import normalize_orders

NOW = datetime(2024, 5, 15, 14, 30)

ORDERS = normalize_orders(
    [
        {"id": "ord-1", "orderType": "table", "status": "paid", "total": 53000,
         "createdAt": "2024-05-14T12:00:00", "paidAt": "2024-05-14T12:30:00", "waiterName": "Aziz",
         "items": [{"name": "Osh", "price": 25000, "quantity": 2}, {"name": "Choy", "price": 3000, "quantity": 1}]},
        {"id": "ord-2", "orderType": "delivery", "status": "delivered", "total": 40000,
         "createdAt": "2024-05-15T09:00:00", "customerName": "Dilnoza", "customerPhone": "+998 90 111 22 33",
         "items": [{"name": "Lagman", "price": 30000}]},
        {"id": "ord-3", "orderType": "saboy", "status": "pending", "total": 6000,
         "createdAt": "2024-05-13T18:00:00", "items": [{"name": "Samsa", "price": 3000, "quantity": 2}]},
    ],
    now=NOW,
)


def test_rows_are_newest_first_with_item_summary() -> None:
    rows = filter_order_history(ORDERS)

    assert [row.id for row in rows] == ["ord-2", "ord-1", "ord-3"]
    assert rows[1].items_summary == "2x Osh, 1x Choy"
    assert rows[1].item_count == 3
    assert rows[1].is_paid


def test_tab_status_and_payment_filters() -> None:
    assert [row.id for row in filter_order_history(ORDERS, tab="delivery")] == ["ord-2"]
    assert [row.id for row in filter_order_history(ORDERS, status="pending")] == ["ord-3"]
    assert [row.id for row in filter_order_history(ORDERS, payment="paid")] == ["ord-1"]
    assert [row.id for row in filter_order_history(ORDERS, tab="takeaway")] == ["ord-2", "ord-1", "ord-3"]


def test_search_is_case_insensitive_across_fields() -> None:
    assert [row.id for row in filter_order_history(ORDERS, search="dilnoza")] == ["ord-2"]
    assert [row.id for row in filter_order_history(ORDERS, search="111 22")] == ["ord-2"]
    assert [row.id for row in filter_order_history(ORDERS, search="  OSH ")] == ["ord-1"]
    assert [row.id for row in filter_order_history(ORDERS, search="aziz")] == ["ord-1"]
    assert filter_order_history(ORDERS, search="pizza") == []


def test_day_filter_uses_effective_date() -> None:
    rows = filter_order_history(ORDERS, day=date(2024, 5, 14))

    assert [row.id for row in rows] == ["ord-1"]
