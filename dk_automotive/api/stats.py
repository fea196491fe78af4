"""
Routes Statistiques / Statistics routes.
Tableaux de bord par rôle, statistiques admin, exports XLSX/CSV/PDF.
"""

import io
from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dk_automotive.api.deps import get_auth_context, require_admin
from dk_automotive.database import get_db
from dk_automotive.models.mission import Mission, MissionStatus
from dk_automotive.models.user import UserRole
from dk_automotive.services.capabilities import AuthContext
from dk_automotive.services.export_service import ExportService
from dk_automotive.services.pdf_service import PdfService
from dk_automotive.services.stats_service import StatsService

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

STATS_FIELDS = ["missions", "completed", "cancelled", "revenue_ht", "revenue_ttc", "driver_cost_ht", "margin_ht", "margin_rate"]

MISSION_EXPORT_FIELDS = [
    "full_number", "status", "created_at", "completion_date", "client", "chauffeur",
    "pickup_city", "delivery_city", "vehicle_category", "distance_km", "price_ht", "price_ttc",
    "chauffeur_price_ht", "chauffeur_paid", "client_paid", "invoiceable",
]


def _download(content: bytes, media_type: str, filename: str) -> StreamingResponse:
    return StreamingResponse(
        io.BytesIO(content),
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _mission_row(mission: Mission) -> dict:
    row = ExportService.model_to_dict(mission, [
        "full_number", "status", "created_at", "completion_date", "vehicle_category", "distance_km",
        "price_ht", "price_ttc", "chauffeur_price_ht", "chauffeur_paid", "client_paid", "invoiceable",
    ])
    row["client"] = mission.client.email if mission.client else mission.client_id
    row["chauffeur"] = mission.chauffeur.email if mission.chauffeur else None
    row["pickup_city"] = (mission.pickup_address or {}).get("city")
    row["delivery_city"] = (mission.delivery_address or {}).get("city")
    return row


@router.get("/dashboard")
async def dashboard(
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    """Tableau de bord selon le rôle / Role-specific dashboard."""
    if ctx.role == UserRole.CLIENT:
        return await StatsService.client_dashboard(db, ctx.user_id)
    if ctx.role == UserRole.CHAUFFEUR:
        return await StatsService.driver_dashboard(db, ctx.user_id)
    return {
        "status_counts": await StatsService.status_counts(db),
        "totals": (await StatsService.admin_statistics(db))["totals"],
        "drivers": (await StatsService.drivers_revenue(db))["global"],
    }


@router.get("/admin")
async def admin_statistics(
    date_from: date | None = None,
    date_to: date | None = None,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
):
    return await StatsService.admin_statistics(db, date_from, date_to)


@router.get("/admin/export")
async def export_statistics(
    format: str = Query("xlsx", pattern="^(xlsx|pdf)$"),
    date_from: date | None = None,
    date_to: date | None = None,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
):
    """Exporter les statistiques en XLSX ou PDF / Export statistics to XLSX or PDF."""
    stats = await StatsService.admin_statistics(db, date_from, date_to)
    if format == "pdf":
        return _download(PdfService.statistics(stats), "application/pdf", "statistiques.pdf")

    sheets = {"Totaux": ([stats["totals"]], STATS_FIELDS)}
    for title, key, label in (
        ("Catégories", "by_category", "vehicle_category"),
        ("Mois", "by_month", "month"),
        ("Clients", "by_client", "client"),
        ("Chauffeurs", "by_driver", "driver"),
    ):
        sheets[title] = (stats[key], [label] + STATS_FIELDS)
    return _download(ExportService.to_xlsx_sheets(sheets), XLSX_MEDIA_TYPE, "statistiques.xlsx")


@router.get("/missions/export")
async def export_missions(
    format: str = Query("xlsx", pattern="^(csv|xlsx)$"),
    status: MissionStatus | None = None,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
):
    """Exporter les missions / Export missions to CSV or XLSX."""
    query = select(Mission).order_by(Mission.created_at)
    if status:
        query = query.where(Mission.status == status)
    missions = (await db.execute(query)).scalars().all()
    rows = [_mission_row(m) for m in missions]

    if format == "csv":
        return _download(ExportService.to_csv(rows, MISSION_EXPORT_FIELDS), "text/csv; charset=utf-8", "missions.csv")
    return _download(
        ExportService.to_xlsx(rows, MISSION_EXPORT_FIELDS, sheet_name="Missions"), XLSX_MEDIA_TYPE, "missions.xlsx"
    )
