from datetime import date, datetime, timedelta
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

OrderType = Literal["table", "saboy", "delivery"]
OrderStatus = Literal["pending", "preparing", "ready", "completed", "delivered", "paid", "cancelled"]
Granularity = Literal["today", "week", "month", "year", "custom"]
PaymentState = Literal["paid", "unpaid"]

ORDER_TYPES = ("table", "saboy", "delivery")
ORDER_STATUSES = ("pending", "preparing", "ready", "completed", "delivered", "paid", "cancelled")
PAYMENT_STATES = ("paid", "unpaid")


class OrderItem(BaseModel):
    name: str = ""
    price: float = 0.0
    quantity: int = Field(default=1, ge=0)
    category_id: Optional[str] = None

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


class Order(BaseModel):
    """Canonical, read-only view of an order record."""

    model_config = ConfigDict(frozen=True)

    id: str
    order_type: OrderType = "table"
    status: OrderStatus = "pending"
    created_at: datetime
    paid_at: Optional[datetime] = None
    effective_at: datetime
    items: List[OrderItem] = Field(default_factory=list)
    total: float = 0.0
    subtotal: float = 0.0
    delivery_fee: float = 0.0
    container_cost: float = 0.0
    waiter_id: Optional[str] = None
    waiter_name: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None

    @property
    def is_paid(self) -> bool:
        return self.status == "paid"

    @property
    def amount(self) -> float:
        """Revenue attributed to the order.

        ``total`` already includes delivery and container fees, so fees are
        only added when the amount has to be rebuilt from subtotal or items.
        """

        if self.total > 0:
            return self.total
        base = self.subtotal if self.subtotal > 0 else sum(item.line_total for item in self.items)
        return base + self.delivery_fee + self.container_cost

    @property
    def item_quantity(self) -> int:
        return sum(item.quantity for item in self.items if item.name)


class Category(BaseModel):
    id: str
    name: str


class MenuCatalogEntry(BaseModel):
    name: str
    category_id: Optional[str] = None


class Waiter(BaseModel):
    id: str
    name: str
    role: Optional[str] = None


class TimeWindow(BaseModel):
    """Inclusive time range, millisecond resolution."""

    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    @property
    def length(self) -> timedelta:
        return self.end - self.start + timedelta(milliseconds=1)

    def days(self) -> List[date]:
        cursor = self.start.date()
        last = self.end.date()
        days: List[date] = []
        while cursor <= last:
            days.append(cursor)
            cursor += timedelta(days=1)
        return days


class ResolvedRange(BaseModel):
    granularity: Granularity
    current: TimeWindow
    previous: TimeWindow


class StatsFilters(BaseModel):
    """Facet filters narrowing the current-period breakdown.

    Empty type/payment sets place no constraint, ``"all"`` disables the
    waiter and category facets.
    """

    order_types: List[OrderType] = Field(default_factory=lambda: list(ORDER_TYPES))
    payment_statuses: List[PaymentState] = Field(default_factory=lambda: list(PAYMENT_STATES))
    waiter_id: str = "all"
    category: str = "all"


class StatsQuery(BaseModel):
    granularity: Granularity = "today"
    month: Optional[str] = Field(default=None, description="Selected month, YYYY-MM")
    predefined_range: str = "last7days"
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    filters: StatsFilters = Field(default_factory=StatsFilters)


class HeadlineMetrics(BaseModel):
    total_orders: int = 0
    revenue: float = 0.0
    paid_revenue: float = 0.0
    unpaid_revenue: float = 0.0
    paid_orders: int = 0
    average_order_value: float = 0.0
    average_items_per_order: float = 0.0
    revenue_by_type: Dict[str, float] = Field(default_factory=dict)


class PreviousPeriodTotals(BaseModel):
    total_orders: int = 0
    revenue: float = 0.0
    paid_orders: int = 0


class ComparisonDeltas(BaseModel):
    orders_change: float = 0.0
    revenue_change: float = 0.0
    average_order_change: float = 0.0
    paid_orders_change: float = 0.0


class TimeSeriesPoint(BaseModel):
    key: str
    label: str
    revenue: float = 0.0
    orders: int = 0
    paid_revenue: float = 0.0
    unpaid_revenue: float = 0.0
    revenue_by_type: Dict[str, float] = Field(default_factory=dict)
    average_order_value: float = 0.0


class RankedEntry(BaseModel):
    name: str
    count: int
    revenue: float
    percentage_of_total: float


class WaiterPerformanceRow(BaseModel):
    id: str
    name: str
    order_count: int
    revenue: float
    average_order_value: float
    percentage_of_total: float
    is_customer: bool = False


class HistogramEntry(BaseModel):
    name: str
    value: int


class HourlyEntry(BaseModel):
    hour: str
    orders: int
    revenue: float


class MonthlyEntry(BaseModel):
    month: str
    orders: int
    revenue: float
    revenue_by_type: Dict[str, float] = Field(default_factory=dict)


class StatsReport(BaseModel):
    granularity: Granularity
    window: TimeWindow
    previous_window: TimeWindow
    generated_at: datetime
    headline: HeadlineMetrics
    previous: PreviousPeriodTotals
    comparison: ComparisonDeltas
    time_series: List[TimeSeriesPoint] = Field(default_factory=list)
    top_items: List[RankedEntry] = Field(default_factory=list)
    top_categories: List[RankedEntry] = Field(default_factory=list)
    categories: List[RankedEntry] = Field(default_factory=list)
    waiter_leaderboard: List[WaiterPerformanceRow] = Field(default_factory=list)
    waiter_table: List[WaiterPerformanceRow] = Field(default_factory=list)
    orders_by_day_of_week: List[HistogramEntry] = Field(default_factory=list)
    orders_by_status: List[HistogramEntry] = Field(default_factory=list)
    orders_by_type: List[HistogramEntry] = Field(default_factory=list)
    hourly: List[HourlyEntry] = Field(default_factory=list)
    monthly: List[MonthlyEntry] = Field(default_factory=list)
    most_popular_hour: str = ""
    most_popular_day: str = ""


class OrderHistoryRow(BaseModel):
    id: str
    order_type: OrderType
    status: OrderStatus
    is_paid: bool
    total: float
    effective_at: datetime
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    waiter_name: Optional[str] = None
    item_count: int = 0
    items_summary: str = ""
