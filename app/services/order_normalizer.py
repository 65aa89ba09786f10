"""Turn raw order documents into canonical :class:`~app.schemas.Order` values.

Historical records were written by several generations of the ordering app,
so timestamps arrive as native datetimes, Firestore-style ``{"_seconds": ...}``
maps, objects exposing a conversion method, ISO strings, free-form strings or
bare epoch-millisecond numbers. Each shape is a :class:`RawTimestamp` variant
with its own conversion; :func:`classify_timestamp` picks the variant.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import pandas as pd

from app.schemas import (
    ORDER_STATUSES,
    ORDER_TYPES,
    Category,
    MenuCatalogEntry,
    Order,
    OrderItem,
    Waiter,
)

logger = logging.getLogger(__name__)

CONVERSION_METHODS = ("to_datetime", "ToDatetime", "toDate", "to_pydatetime")


@dataclass(frozen=True)
class NativeTimestamp:
    value: Union[datetime, date]

    def to_datetime(self) -> Optional[datetime]:
        if pd.isna(self.value):
            return None
        if isinstance(self.value, datetime):
            if isinstance(self.value, pd.Timestamp):
                return self.value.to_pydatetime()
            return self.value
        return datetime.combine(self.value, time.min)


@dataclass(frozen=True)
class ConvertibleTimestamp:
    value: Any
    method: str

    def to_datetime(self) -> Optional[datetime]:
        try:
            converted = getattr(self.value, self.method)()
        except Exception:
            return None
        if isinstance(converted, datetime):
            return converted
        if isinstance(converted, date):
            return datetime.combine(converted, time.min)
        return None


@dataclass(frozen=True)
class EpochSecondsTimestamp:
    seconds: float
    nanoseconds: float = 0.0

    def to_datetime(self) -> Optional[datetime]:
        try:
            return datetime.fromtimestamp(self.seconds + self.nanoseconds / 1_000_000_000)
        except (OverflowError, OSError, ValueError):
            return None


@dataclass(frozen=True)
class EpochMillisTimestamp:
    milliseconds: float

    def to_datetime(self) -> Optional[datetime]:
        try:
            return datetime.fromtimestamp(self.milliseconds / 1000)
        except (OverflowError, OSError, ValueError):
            return None


@dataclass(frozen=True)
class IsoStringTimestamp:
    value: str

    def to_datetime(self) -> Optional[datetime]:
        text = self.value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None


@dataclass(frozen=True)
class FreeformStringTimestamp:
    value: str

    def to_datetime(self) -> Optional[datetime]:
        try:
            parsed = pd.to_datetime(self.value, errors="coerce")
        except (TypeError, ValueError, OverflowError):
            return None
        if parsed is None or pd.isna(parsed):
            return None
        return parsed.to_pydatetime()


@dataclass(frozen=True)
class UnknownTimestamp:
    value: Any

    def to_datetime(self) -> Optional[datetime]:
        return None


RawTimestamp = Union[
    NativeTimestamp,
    ConvertibleTimestamp,
    EpochSecondsTimestamp,
    EpochMillisTimestamp,
    IsoStringTimestamp,
    FreeformStringTimestamp,
    UnknownTimestamp,
]


def classify_timestamp(value: Any) -> RawTimestamp:
    """Pick the variant describing ``value``; never raises."""

    if isinstance(value, (datetime, date)):
        return NativeTimestamp(value)
    for method in CONVERSION_METHODS:
        if callable(getattr(value, method, None)):
            return ConvertibleTimestamp(value, method)
    seconds, nanoseconds = _epoch_parts(value)
    if seconds is not None:
        return EpochSecondsTimestamp(seconds, nanoseconds)
    if isinstance(value, str) and value.strip():
        if IsoStringTimestamp(value).to_datetime() is not None:
            return IsoStringTimestamp(value)
        return FreeformStringTimestamp(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return EpochMillisTimestamp(float(value))
    return UnknownTimestamp(value)


def resolve_timestamp(value: Any) -> Optional[datetime]:
    """Convert any supported timestamp shape to a local naive datetime."""

    if value is None:
        return None
    converted = classify_timestamp(value).to_datetime()
    if converted is None:
        return None
    try:
        return _to_local_millis(converted)
    except (OverflowError, OSError, ValueError):
        return None


def resolve_timestamp_or_now(value: Any, now: datetime) -> datetime:
    resolved = resolve_timestamp(value)
    if resolved is not None:
        return resolved
    if value is not None:
        logger.warning("Unreadable timestamp %r, falling back to the current time", value)
    return _to_local_millis(now)


def effective_date(status: str, paid_at: Optional[datetime], created_at: datetime) -> datetime:
    """Paid orders are placed in time by their payment, everything else by creation."""

    if status == "paid" and paid_at is not None:
        return paid_at
    return created_at


def normalize_order(raw: Any, *, now: Optional[datetime] = None) -> Order:
    """Build an :class:`Order` from a raw record, defaulting anything missing."""

    reference = now or datetime.now()
    record = _as_mapping(raw)

    status = _normalize_choice(_pick(record, "status"), ORDER_STATUSES, "pending")
    order_type = _normalize_choice(_pick(record, "orderType", "order_type"), ORDER_TYPES, "table")
    created_at = resolve_timestamp_or_now(_pick(record, "createdAt", "created_at"), reference)
    paid_at = resolve_timestamp(_pick(record, "paidAt", "paid_at"))

    return Order(
        id=_clean_text(_pick(record, "id")) or "",
        order_type=order_type,
        status=status,
        created_at=created_at,
        paid_at=paid_at,
        effective_at=effective_date(status, paid_at, created_at),
        items=_normalize_items(_pick(record, "items")),
        total=_to_float(_pick(record, "total"), default=0.0),
        subtotal=_to_float(_pick(record, "subtotal"), default=0.0),
        delivery_fee=_to_float(_pick(record, "deliveryFee", "delivery_fee"), default=0.0),
        container_cost=_to_float(_pick(record, "containerCost", "container_cost"), default=0.0),
        waiter_id=_clean_text(_pick(record, "waiterId", "waiter_id", "claimedBy", "claimed_by")),
        waiter_name=_clean_text(_pick(record, "waiterName", "waiter_name", "claimedByName", "claimed_by_name")),
        customer_name=_clean_text(_pick(record, "customerName", "customer_name")),
        customer_phone=_clean_text(
            _pick(record, "customerPhone", "customer_phone", "phoneNumber", "phone_number")
        ),
    )


def normalize_orders(records: Iterable[Any], *, now: Optional[datetime] = None) -> List[Order]:
    reference = now or datetime.now()
    return [normalize_order(record, now=reference) for record in records or []]


def normalize_catalog(rows: Iterable[Any]) -> List[MenuCatalogEntry]:
    entries: List[MenuCatalogEntry] = []
    for row in rows or []:
        record = _as_mapping(row)
        name = _clean_text(record.get("name"))
        if not name:
            continue
        category_id = _clean_text(_pick(record, "categoryId", "category_id", "category"))
        entries.append(MenuCatalogEntry(name=name, category_id=category_id))
    return entries


def normalize_categories(rows: Iterable[Any]) -> List[Category]:
    categories: List[Category] = []
    for row in rows or []:
        record = _as_mapping(row)
        category_id = _clean_text(record.get("id"))
        name = _clean_text(record.get("name"))
        if category_id and name:
            categories.append(Category(id=category_id, name=name))
    return categories


def normalize_waiters(rows: Iterable[Any]) -> List[Waiter]:
    waiters: List[Waiter] = []
    for row in rows or []:
        record = _as_mapping(row)
        waiter_id = _clean_text(record.get("id"))
        if not waiter_id:
            continue
        waiters.append(
            Waiter(
                id=waiter_id,
                name=_clean_text(record.get("name")) or waiter_id,
                role=_clean_text(record.get("role")),
            )
        )
    return waiters


def _normalize_items(value: Any) -> List[OrderItem]:
    if not isinstance(value, (list, tuple)):
        return []
    items: List[OrderItem] = []
    for raw_item in value:
        record = _as_mapping(raw_item)
        if not record:
            continue
        items.append(
            OrderItem(
                name=_clean_text(record.get("name")) or "",
                price=_to_float(record.get("price"), default=0.0),
                quantity=_to_quantity(record.get("quantity")),
                category_id=_clean_text(_pick(record, "categoryId", "category_id", "category")),
            )
        )
    return items


def _epoch_parts(value: Any) -> tuple:
    if isinstance(value, Mapping):
        seconds = value.get("_seconds", value.get("seconds"))
        nanoseconds = value.get("_nanoseconds", value.get("nanoseconds"))
    else:
        seconds = getattr(value, "_seconds", None)
        if seconds is None:
            seconds = getattr(value, "seconds", None)
        nanoseconds = getattr(value, "_nanoseconds", getattr(value, "nanoseconds", None))
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
        return None, 0.0
    nanos = nanoseconds if isinstance(nanoseconds, (int, float)) and not isinstance(nanoseconds, bool) else 0.0
    return float(seconds), float(nanos)


def _to_local_millis(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def _as_mapping(value: Any) -> Dict[str, Any]:
    if isinstance(value, Mapping):
        return dict(value)
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        try:
            converted = to_dict()
        except (TypeError, ValueError):
            return {}
        if isinstance(converted, Mapping):
            record = dict(converted)
            document_id = getattr(value, "id", None)
            if document_id is not None:
                record.setdefault("id", document_id)
            return record
    return {}


def _pick(record: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value is not None and value != "":
            return value
    return None


def _normalize_choice(value: Any, choices: tuple, default: str) -> str:
    if isinstance(value, str):
        candidate = value.strip().lower()
        if candidate in choices:
            return candidate
    return default


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _to_float(value: Any, *, default: float) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number or number in (float("inf"), float("-inf")):
        return default
    return number


def _to_quantity(value: Any) -> int:
    if value is None or value == "":
        return 1
    quantity = _to_float(value, default=1.0)
    return max(int(quantity), 0)


__all__ = [
    "ConvertibleTimestamp",
    "EpochMillisTimestamp",
    "EpochSecondsTimestamp",
    "FreeformStringTimestamp",
    "IsoStringTimestamp",
    "NativeTimestamp",
    "RawTimestamp",
    "UnknownTimestamp",
    "classify_timestamp",
    "effective_date",
    "normalize_catalog",
    "normalize_categories",
    "normalize_order",
    "normalize_orders",
    "normalize_waiters",
    "resolve_timestamp",
    "resolve_timestamp_or_now",
]
