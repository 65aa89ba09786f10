"""Tunables for the order statistics engine."""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


STATS_TOP_N = _int_env("STATS_TOP_N", 5)
STATS_ORDER_FETCH_LIMIT = _int_env("STATS_ORDER_FETCH_LIMIT", 5000)
# Per-session report coordinators kept in memory; least recently used are evicted.
STATS_MAX_SESSIONS = _int_env("STATS_MAX_SESSIONS", 256)

# Fixed window behind the "specific" custom range token.
STATS_SPECIFIC_RANGE_START = os.getenv("STATS_SPECIFIC_RANGE_START", "2025-04-19")
STATS_SPECIFIC_RANGE_END = os.getenv("STATS_SPECIFIC_RANGE_END", "2025-04-26")

OTHER_CATEGORY_LABEL = os.getenv("STATS_OTHER_CATEGORY_LABEL", "Other")
UNKNOWN_WAITER_LABEL = os.getenv("STATS_UNKNOWN_WAITER_LABEL", "Unknown")

ORDERS_TABLE = os.getenv("STATS_ORDERS_TABLE", "orders")
MENU_TABLE = os.getenv("STATS_MENU_TABLE", "menu")
CATEGORIES_TABLE = os.getenv("STATS_CATEGORIES_TABLE", "categories")
USERS_TABLE = os.getenv("STATS_USERS_TABLE", "users")


__all__ = [
    "CATEGORIES_TABLE",
    "MENU_TABLE",
    "ORDERS_TABLE",
    "OTHER_CATEGORY_LABEL",
    "STATS_MAX_SESSIONS",
    "STATS_ORDER_FETCH_LIMIT",
    "STATS_SPECIFIC_RANGE_END",
    "STATS_SPECIFIC_RANGE_START",
    "STATS_TOP_N",
    "UNKNOWN_WAITER_LABEL",
    "USERS_TABLE",
]
