"""Order statistics endpoints backing the admin analytics page."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from app.config.supabase_client import SUPABASE_SERVICE_ROLE_KEY
from app.schemas import (
    Granularity,
    OrderHistoryRow,
    OrderStatus,
    OrderType,
    PaymentState,
    StatsFilters,
    StatsQuery,
    StatsReport,
)
from app.services.order_history_service import filter_order_history
from app.services.order_normalizer import normalize_orders
from app.services.order_repository import SupabaseOrderRepository
from app.services.stats_service import (
    ReportCoordinator,
    compute_report_from_snapshot,
    get_report_coordinator,
    session_key,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stats", tags=["Stats"])


async def get_access_token(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> str:
    """Extract the Supabase bearer token from the Authorization header."""

    scheme, _, token = (authorization or "").strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Bearer token required.")
    return token.strip()


def _resolve_postgrest_credentials(access_token: str) -> tuple[str, Optional[str]]:
    """Return the token/api key pair to use with PostgREST."""

    if SUPABASE_SERVICE_ROLE_KEY:
        return SUPABASE_SERVICE_ROLE_KEY, SUPABASE_SERVICE_ROLE_KEY
    return access_token, None


async def get_order_repository(
    access_token: str = Depends(get_access_token),
) -> SupabaseOrderRepository:
    db_token, api_key = _resolve_postgrest_credentials(access_token)
    return SupabaseOrderRepository(db_token, api_key=api_key)


async def get_session_coordinator(
    access_token: str = Depends(get_access_token),
    x_stats_session: Optional[str] = Header(default=None, alias="X-Stats-Session"),
) -> ReportCoordinator:
    """One coordinator per caller token, optionally split per client tab."""

    return get_report_coordinator(session_key(access_token, x_stats_session))


async def get_stats_query(
    granularity: Granularity = Query(default="today"),
    month: Optional[str] = Query(default=None, description="YYYY-MM"),
    predefined_range: str = Query(default="last7days", alias="range"),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    order_type: Optional[List[OrderType]] = Query(default=None),
    payment_status: Optional[List[PaymentState]] = Query(default=None),
    waiter_id: str = Query(default="all"),
    category: str = Query(default="all"),
) -> StatsQuery:
    filters = StatsFilters(waiter_id=waiter_id, category=category)
    if order_type is not None:
        filters.order_types = list(order_type)
    if payment_status is not None:
        filters.payment_statuses = list(payment_status)
    return StatsQuery(
        granularity=granularity,
        month=month,
        predefined_range=predefined_range,
        date_from=date_from,
        date_to=date_to,
        filters=filters,
    )


@router.get("/report", response_model=StatsReport)
async def stats_report(
    query: StatsQuery = Depends(get_stats_query),
    repository: SupabaseOrderRepository = Depends(get_order_repository),
    coordinator: ReportCoordinator = Depends(get_session_coordinator),
) -> StatsReport:
    """Compute the statistics report; only the newest request of a session publishes."""

    generation = coordinator.next_generation()
    snapshot = await repository.fetch_snapshot()
    report = await coordinator.submit(
        lambda: compute_report_from_snapshot(snapshot, query),
        generation=generation,
    )
    if report is None:
        logger.debug("Statistics request generation %s superseded", generation)
        raise HTTPException(status_code=409, detail="Superseded by a newer statistics request.")
    return report


@router.get("/report/latest", response_model=StatsReport)
async def latest_stats_report(
    coordinator: ReportCoordinator = Depends(get_session_coordinator),
) -> StatsReport:
    if coordinator.latest is None:
        raise HTTPException(status_code=404, detail="No statistics report computed yet.")
    return coordinator.latest


@router.get("/orders", response_model=List[OrderHistoryRow])
async def order_history(
    tab: Literal["all", "table", "saboy", "delivery"] = Query(default="all"),
    search: Optional[str] = Query(default=None, max_length=200),
    status: Optional[OrderStatus] = Query(default=None),
    payment: Literal["all", "paid", "unpaid"] = Query(default="all"),
    day: Optional[date] = Query(default=None),
    repository: SupabaseOrderRepository = Depends(get_order_repository),
) -> List[OrderHistoryRow]:
    orders = normalize_orders(await repository.fetch_orders())
    return filter_order_history(
        orders,
        tab=tab,
        search=search,
        status=status or "all",
        payment=payment,
        day=day,
    )


__all__ = [
    "get_access_token",
    "get_order_repository",
    "get_session_coordinator",
    "get_stats_query",
    "router",
]
