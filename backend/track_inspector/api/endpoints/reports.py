"""Report endpoints.

The web console uses ``/reports`` and the mobile app uses ``/defects``. Both
families are built by :func:`build_report_router` over the same
:class:`ReportStore` API; they differ only in which operations they expose
and the noun used in messages.
"""

from typing import Annotated, Iterable, List

from fastapi import APIRouter, Depends, status

from track_inspector.core.deps import report_store_dependency
from track_inspector.schemas.shared import (
    CommentCreate,
    DashboardStats,
    MessageResponse,
    ReportCreate,
    ReportResponse,
    ReportStatusUpdate,
    ReportUpdate,
    StatusBreakdown,
)
from track_inspector.services.report_store import ReportStore


def build_report_router(prefix: str, noun: str, operations: Iterable[str]) -> APIRouter:
    """
    Build a router exposing the named Report store operations under ``prefix``.

    Args:
        prefix: Route prefix, e.g. "/reports"
        noun: Entity name used in messages ("Report" / "Defect")
        operations: Subset of list, stats, stats_pie, get, create, update,
            update_status, add_comment, delete
    """
    router = APIRouter(prefix=prefix, tags=[prefix.strip("/")])
    Store = Annotated[ReportStore, Depends(report_store_dependency(noun))]
    enabled = set(operations)

    async def list_reports(store: Store):
        return await store.list_reports()

    async def dashboard_stats(store: Store):
        return await store.dashboard_stats()

    async def status_breakdown(store: Store):
        return await store.status_breakdown()

    async def get_report(report_id: str, store: Store):
        return await store.get_report(report_id)

    async def create_report(payload: ReportCreate, store: Store):
        return await store.create_report(payload)

    async def update_report(report_id: str, payload: ReportUpdate, store: Store):
        return await store.update_report(report_id, payload)

    async def update_status(report_id: str, payload: ReportStatusUpdate, store: Store):
        return await store.update_status(report_id, payload.status)

    async def add_comment(report_id: str, payload: CommentCreate, store: Store):
        return await store.add_comment(report_id, payload)

    async def delete_report(report_id: str, store: Store):
        await store.delete_report(report_id)
        return MessageResponse(message=f"{noun} deleted successfully")

    # Static paths are registered before "/{report_id}" so they are matched first.
    routes = [
        ("list", "", list_reports, "GET", List[ReportResponse], status.HTTP_200_OK),
        ("stats", "/stats", dashboard_stats, "GET", DashboardStats, status.HTTP_200_OK),
        ("stats_pie", "/stats/pie", status_breakdown, "GET", StatusBreakdown, status.HTTP_200_OK),
        ("get", "/{report_id}", get_report, "GET", ReportResponse, status.HTTP_200_OK),
        ("create", "", create_report, "POST", ReportResponse, status.HTTP_201_CREATED),
        ("update", "/{report_id}", update_report, "PUT", ReportResponse, status.HTTP_200_OK),
        ("update_status", "/{report_id}/status", update_status, "PUT", ReportResponse, status.HTTP_200_OK),
        ("add_comment", "/{report_id}/comments", add_comment, "POST", ReportResponse, status.HTTP_200_OK),
        ("delete", "/{report_id}", delete_report, "DELETE", MessageResponse, status.HTTP_200_OK),
    ]
    for name, path, endpoint, method, response_model, status_code in routes:
        if name not in enabled:
            continue
        router.add_api_route(
            path,
            endpoint,
            methods=[method],
            response_model=response_model,
            status_code=status_code,
            name=f"{noun.lower()}_{name}",
        )

    return router


reports_router = build_report_router(
    "/reports",
    "Report",
    ["list", "stats", "stats_pie", "get", "create", "update", "delete"],
)

defects_router = build_report_router(
    "/defects",
    "Defect",
    ["list", "get", "create", "update_status", "add_comment", "delete"],
)
