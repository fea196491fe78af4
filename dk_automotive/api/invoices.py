"""
Routes Factures chauffeur / Driver invoice routes.
Dépôt PDF, suppression, drapeau payé (admin), synthèse des revenus.
"""

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from dk_automotive.api.deps import get_auth_context, require_admin, require_role
from dk_automotive.database import get_db
from dk_automotive.models.user import UserRole
from dk_automotive.schemas.mission import MissionRead
from dk_automotive.services import invoice_service
from dk_automotive.services.blob_store import BlobStore, get_blob_store
from dk_automotive.services.capabilities import AuthContext
from dk_automotive.services.stats_service import StatsService

router = APIRouter()


class PaidUpdate(BaseModel):
    paid: bool


class InvoiceDeleteResult(BaseModel):
    mission: MissionRead
    warnings: list[str] = []


@router.get("/summary")
async def my_revenue(
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(require_role(UserRole.CHAUFFEUR)),
):
    """Revenus du chauffeur : payé / impayé / sans facture / Driver revenue buckets."""
    return await StatsService.driver_revenue(db, ctx.user_id)


@router.get("/summary/all")
async def all_revenue(
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
):
    """Synthèse globale et par chauffeur (admin) / Global and per-driver summary (admin)."""
    return await StatsService.drivers_revenue(db)


@router.post("/{mission_id}", response_model=MissionRead, status_code=201)
async def upload_invoice(
    mission_id: str,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    ctx: AuthContext = Depends(get_auth_context),
):
    """Déposer la facture (PDF, une par mission) / Upload the invoice (PDF, one per mission)."""
    content = await file.read()
    return await invoice_service.upload_driver_invoice(
        db, store, mission_id, ctx, file.filename, file.content_type, content,
    )


@router.patch("/{mission_id}/paid", response_model=MissionRead)
async def set_paid(
    mission_id: str,
    data: PaidUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    return await invoice_service.set_driver_paid(db, mission_id, data.paid, ctx)


@router.delete("/{mission_id}", response_model=InvoiceDeleteResult)
async def delete_invoice(
    mission_id: str,
    db: AsyncSession = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    ctx: AuthContext = Depends(get_auth_context),
):
    """Supprimer la facture, paiement remis à faux / Delete the invoice, paid reset to false."""
    mission, warnings = await invoice_service.delete_driver_invoice(db, store, mission_id, ctx)
    return InvoiceDeleteResult(mission=MissionRead.model_validate(mission), warnings=warnings)
