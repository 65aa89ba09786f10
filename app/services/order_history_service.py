"""Filtering for the order history table."""

from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional

from app.schemas import ORDER_TYPES, Order, OrderHistoryRow

HISTORY_TABS = ("all",) + ORDER_TYPES


def _search_text(order: Order) -> str:
    parts = [
        order.id,
        order.customer_phone or "",
        order.customer_name or "",
        order.waiter_name or "",
    ]
    parts.extend(item.name for item in order.items)
    return " ".join(parts).lower()


def items_summary(order: Order) -> str:
    return ", ".join(f"{item.quantity}x {item.name}" for item in order.items if item.name)


def _matches(
    order: Order,
    *,
    tab: str,
    needle: str,
    status: str,
    payment: str,
    day: Optional[date],
) -> bool:
    if tab != "all" and order.order_type != tab:
        return False
    if status != "all" and order.status != status:
        return False
    if payment == "paid" and not order.is_paid:
        return False
    if payment == "unpaid" and order.is_paid:
        return False
    if day is not None and order.effective_at.date() != day:
        return False
    if needle and needle not in _search_text(order):
        return False
    return True


def to_history_row(order: Order) -> OrderHistoryRow:
    return OrderHistoryRow(
        id=order.id,
        order_type=order.order_type,
        status=order.status,
        is_paid=order.is_paid,
        total=order.amount,
        effective_at=order.effective_at,
        customer_name=order.customer_name,
        customer_phone=order.customer_phone,
        waiter_name=order.waiter_name,
        item_count=order.item_quantity,
        items_summary=items_summary(order),
    )


def filter_order_history(
    orders: Iterable[Order],
    *,
    tab: str = "all",
    search: Optional[str] = None,
    status: str = "all",
    payment: str = "all",
    day: Optional[date] = None,
) -> List[OrderHistoryRow]:
    """Return history rows matching every active filter, newest first.

    ``search`` is matched case-insensitively against the order id, customer
    name and phone, waiter name and item names. Unknown tabs behave as "all".
    """

    active_tab = tab if tab in HISTORY_TABS else "all"
    needle = (search or "").strip().lower()
    matching = [
        order
        for order in orders
        if _matches(order, tab=active_tab, needle=needle, status=status, payment=payment, day=day)
    ]
    matching.sort(key=lambda order: order.effective_at, reverse=True)
    return [to_history_row(order) for order in matching]


__all__ = ["HISTORY_TABS", "filter_order_history", "items_summary", "to_history_row"]
