"""Read access to orders, menu, categories and staff stored in Supabase."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, TypeVar

from fastapi import HTTPException
from httpx import HTTPError as HttpxError
from postgrest import APIError as PostgrestAPIError
from postgrest import SyncPostgrestClient

from app.config.stats_settings import (
    CATEGORIES_TABLE,
    MENU_TABLE,
    ORDERS_TABLE,
    STATS_ORDER_FETCH_LIMIT,
    USERS_TABLE,
)
from app.config.supabase_client import SUPABASE_ANON_KEY, SUPABASE_URL

logger = logging.getLogger(__name__)

T = TypeVar("T")

STAFF_ROLES = ("waiter", "admin")


@dataclass(frozen=True)
class OrderSnapshot:
    """Raw rows backing one statistics computation."""

    orders: List[Dict[str, Any]] = field(default_factory=list)
    menu: List[Dict[str, Any]] = field(default_factory=list)
    categories: List[Dict[str, Any]] = field(default_factory=list)
    waiters: List[Dict[str, Any]] = field(default_factory=list)


def upstream_status(exc: PostgrestAPIError) -> int:
    try:
        return int(exc.code) if exc.code else 502
    except (TypeError, ValueError):
        return 502


def upstream_error(exc: PostgrestAPIError, *, context: str) -> HTTPException:
    """Translate a failed read into the HTTP error returned by the stats API.

    Authorization failures pass through; any other upstream error answers 502.
    """

    status_code = upstream_status(exc)
    logger.error("%s failed (%s): %s", context, status_code, exc.message or "no message")
    if status_code == 401:
        return HTTPException(status_code=401, detail="Supabase authentication required.")
    if status_code == 403:
        return HTTPException(status_code=403, detail="Not allowed to read order statistics.")
    return HTTPException(status_code=502, detail=f"Could not {context} from Supabase.")


class SupabaseOrderRepository:
    """Read-only DAO relying on Supabase/PostgREST for order analytics data."""

    def __init__(
        self,
        access_token: str,
        *,
        api_key: Optional[str] = None,
        order_limit: int = STATS_ORDER_FETCH_LIMIT,
    ):
        self.access_token = access_token
        self.api_key = api_key
        self.order_limit = order_limit

    def _client(self) -> SyncPostgrestClient:
        api_key = self.api_key or SUPABASE_ANON_KEY
        if not SUPABASE_URL or not api_key:
            raise HTTPException(status_code=500, detail="Supabase is not configured.")
        client = SyncPostgrestClient(
            f"{SUPABASE_URL.rstrip('/')}/rest/v1",
            headers={"apikey": api_key, "Accept": "application/json"},
        )
        client.auth(self.access_token)
        return client

    async def _run(self, request: Callable[[], T], *, context: str) -> T:
        try:
            return await asyncio.to_thread(request)
        except PostgrestAPIError as exc:  # pragma: no cover - network interaction
            raise upstream_error(exc, context=context) from exc
        except HttpxError as exc:  # pragma: no cover - network interaction
            logger.error("%s failed: %s", context, exc)
            raise HTTPException(status_code=503, detail="Supabase is temporarily unavailable.") from exc

    async def fetch_orders(self) -> List[Dict[str, Any]]:
        """Return the most recent orders, newest first."""

        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table(ORDERS_TABLE)
                    .select("*")
                    .order("created_at", desc=True)
                    .limit(self.order_limit)
                    .execute()
                )
                return response.data or []

        return await self._run(_request, context="fetch orders")

    async def fetch_menu_catalog(self) -> List[Dict[str, Any]]:
        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                response = client.table(MENU_TABLE).select("*").execute()
                return response.data or []

        return await self._run(_request, context="fetch menu catalog")

    async def fetch_categories(self) -> List[Dict[str, Any]]:
        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                response = client.table(CATEGORIES_TABLE).select("*").order("name").execute()
                return response.data or []

        return await self._run(_request, context="fetch categories")

    async def fetch_waiters(self) -> List[Dict[str, Any]]:
        """Return staff members who can claim orders."""

        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table(USERS_TABLE)
                    .select("*")
                    .in_("role", list(STAFF_ROLES))
                    .execute()
                )
                return response.data or []

        return await self._run(_request, context="fetch waiters")

    async def fetch_snapshot(self) -> OrderSnapshot:
        orders, menu, categories, waiters = await asyncio.gather(
            self.fetch_orders(),
            self.fetch_menu_catalog(),
            self.fetch_categories(),
            self.fetch_waiters(),
        )
        logger.debug(
            "Fetched snapshot: %s orders, %s menu entries, %s categories, %s waiters",
            len(orders),
            len(menu),
            len(categories),
            len(waiters),
        )
        return OrderSnapshot(orders=orders, menu=menu, categories=categories, waiters=waiters)


__all__ = ["OrderSnapshot", "STAFF_ROLES", "SupabaseOrderRepository", "upstream_error", "upstream_status"]
