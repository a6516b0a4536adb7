from __future__ import annotations

import logging
from dataclasses import dataclass
from time import sleep
from typing import Any, Iterable

import httpx

from service_scheduling.workload import TERMINAL_STATUSES

from .config import SupabaseConfig

logger = logging.getLogger(__name__)

# Status values the order board treats as in-flight work.
OPEN_ORDER_STATUSES = (
    "pendiente_aprobacion",
    "pendiente",
    "en_camino",
    "en_proceso",
    "pendiente_entrega",
)

ORDER_COLUMNS = (
    "id,order_number,status,assigned_technician,average_service_time,"
    "created_at,estimated_delivery_date,delivery_date,is_home_service"
)
ORDER_ITEM_COLUMNS = "id,order_id,service_type_id,quantity,estimated_hours,shared_time"
SCHEDULE_COLUMNS = "employee_id,work_days,start_time,end_time,break_duration_minutes,is_active"
PROFILE_COLUMNS = "user_id,full_name,role"
SUPPORT_COLUMNS = "order_id,technician_id,reduction_percentage"


@dataclass(frozen=True)
class ReadOperation:
    method: str
    path_template: str


READ_ONLY_OPERATIONS: dict[str, ReadOperation] = {
    "orders": ReadOperation("GET", "/rest/v1/orders"),
    "order_items": ReadOperation("GET", "/rest/v1/order_items"),
    "work_schedules": ReadOperation("GET", "/rest/v1/work_schedules"),
    "profiles": ReadOperation("GET", "/rest/v1/profiles"),
    "order_support_technicians": ReadOperation("GET", "/rest/v1/order_support_technicians"),
}


def _in_filter(values: Iterable[Any]) -> str:
    return "in.(" + ",".join(str(v) for v in values) + ")"


class ReadOnlySupabaseClient:
    """Strict read-only PostgREST client for the order database.

    Only the table names listed in READ_ONLY_OPERATIONS are queryable.
    Any unknown operation is rejected before any network request is sent.
    """

    def __init__(
        self,
        *,
        timeout_s: float = 30.0,
        retries: int = 3,
        transport: httpx.BaseTransport | None = None,
    ):
        self.timeout_s = timeout_s
        self.retries = max(1, retries)
        self._http = httpx.Client(timeout=timeout_s, transport=transport)

    def _headers(self, cfg: SupabaseConfig) -> dict[str, str]:
        return {
            "apikey": cfg.api_key,
            "Authorization": f"Bearer {cfg.api_key}",
            "Accept": "application/json",
        }

    def _request(
        self,
        *,
        operation: str,
        cfg: SupabaseConfig,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        op = READ_ONLY_OPERATIONS.get(operation)
        if op is None:
            raise ValueError(f"Operation '{operation}' is not allowed in read-only mode")

        url = f"{cfg.url.rstrip('/')}{op.path_template}"

        last_exc: Exception | None = None
        for attempt in range(self.retries):
            try:
                resp = self._http.request(
                    op.method,
                    url,
                    headers=self._headers(cfg),
                    params=params,
                )
                if resp.status_code >= 500 and attempt < self.retries - 1:
                    logger.warning(
                        "%s returned %s, retrying (attempt %d/%d)",
                        operation, resp.status_code, attempt + 1, self.retries,
                    )
                    sleep(2**attempt)
                    continue
                resp.raise_for_status()
                return resp
            except (httpx.TimeoutException, httpx.ConnectError) as exc:
                last_exc = exc
                if attempt < self.retries - 1:
                    logger.warning("%s failed with %s, retrying", operation, type(exc).__name__)
                    sleep(2**attempt)
                    continue
                raise
        if last_exc:
            raise last_exc
        raise RuntimeError("request failed without an explicit exception")

    def _rows(self, operation: str, cfg: SupabaseConfig, params: dict[str, Any]) -> list[dict[str, Any]]:
        data = self._request(operation=operation, cfg=cfg, params=params).json()
        return data if isinstance(data, list) else []

    def fetch_open_orders(self, cfg: SupabaseConfig) -> list[dict[str, Any]]:
        params = {
            "select": ORDER_COLUMNS,
            "status": _in_filter(OPEN_ORDER_STATUSES),
            "deleted_at": "is.null",
            "order": "created_at.asc",
        }
        rows = self._rows("orders", cfg, params)
        # Terminal rows are dropped even when the server ignores the status filter.
        return [r for r in rows if str(r.get("status") or "").strip().lower() not in TERMINAL_STATUSES]

    def fetch_order_items(self, cfg: SupabaseConfig, order_ids: Iterable[str]) -> list[dict[str, Any]]:
        ids = [str(i) for i in order_ids if i]
        if not ids:
            return []
        params = {"select": ORDER_ITEM_COLUMNS, "order_id": _in_filter(ids)}
        return self._rows("order_items", cfg, params)

    def fetch_work_schedules(self, cfg: SupabaseConfig) -> list[dict[str, Any]]:
        params = {"select": SCHEDULE_COLUMNS, "is_active": "eq.true"}
        return self._rows("work_schedules", cfg, params)

    def fetch_technicians(self, cfg: SupabaseConfig) -> list[dict[str, Any]]:
        params = {"select": PROFILE_COLUMNS, "role": "eq.tecnico", "order": "full_name.asc"}
        return self._rows("profiles", cfg, params)

    def fetch_support_technicians(self, cfg: SupabaseConfig, order_ids: Iterable[str]) -> list[dict[str, Any]]:
        ids = [str(i) for i in order_ids if i]
        if not ids:
            return []
        params = {"select": SUPPORT_COLUMNS, "order_id": _in_filter(ids)}
        return self._rows("order_support_technicians", cfg, params)

    def fetch_snapshot_payload(self, cfg: SupabaseConfig) -> dict[str, Any]:
        orders = self.fetch_open_orders(cfg)
        order_ids = [str(o.get("id")) for o in orders if o.get("id") is not None]

        try:
            support = self.fetch_support_technicians(cfg, order_ids)
        except httpx.HTTPStatusError:
            # The support assignment table is optional.
            logger.exception("order_support_technicians fetch failed; continuing without support rows")
            support = []

        return {
            "orders": orders,
            "order_items": self.fetch_order_items(cfg, order_ids),
            "work_schedules": self.fetch_work_schedules(cfg),
            "technicians": self.fetch_technicians(cfg),
            "support_technicians": support,
        }
