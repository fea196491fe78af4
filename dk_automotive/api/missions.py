"""
Routes Missions / Mission routes.
Création, listes par rôle, transitions de statut, édition admin, restitution, PDF, pièces jointes.
"""

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from dk_automotive.api.deps import get_auth_context
from dk_automotive.database import get_db
from dk_automotive.exceptions import ValidationFailed
from dk_automotive.models.document import DocumentType
from dk_automotive.models.mission import Mission, MissionStatus, MissionType
from dk_automotive.schemas.document import DocumentRead
from dk_automotive.schemas.mission import (
    CancelRequest,
    ClientMissionDetail,
    ClientMissionRead,
    MissionBillingUpdate,
    MissionCreate,
    MissionDetail,
    MissionList,
    MissionRead,
    MissionUpdate,
    StatusHistoryRead,
    TransitionRequest,
)
from dk_automotive.services import document_service, mission_service
from dk_automotive.services.blob_store import BlobStore, get_blob_store
from dk_automotive.services.capabilities import AuthContext
from dk_automotive.services.mission_lifecycle import (
    cancel_mission,
    get_status_history,
    get_visible_mission,
    transition_mission,
)
from dk_automotive.services.pdf_service import PdfService
from dk_automotive.services.status_machine import COMPLETED_STATUSES

router = APIRouter()

_PDF_KINDS = {
    "fiche": DocumentType.FICHE_MISSION,
    "devis": DocumentType.DEVIS,
    "facture": DocumentType.FACTURE,
}

# Rémunération et facture chauffeur / Driver pay and invoice
DRIVER_BILLING_FIELDS = {"chauffeur_price_ht", "chauffeur_invoice", "chauffeur_paid"}


def _read(mission: Mission, ctx: AuthContext) -> MissionRead | ClientMissionRead:
    """Le client ne voit pas la rémunération chauffeur / Clients do not see the driver's pay."""
    read = MissionRead.model_validate(mission)
    if ctx.capabilities.can_manage_invoice(mission):
        return read
    return ClientMissionRead.model_validate(read.model_dump(exclude=DRIVER_BILLING_FIELDS))


def _detail(mission: Mission, ctx: AuthContext) -> MissionDetail | ClientMissionDetail:
    """Mission + actions permises pour l'acteur / Mission plus the actor's allowed actions."""
    caps = ctx.capabilities
    actions = {
        "allowed_transitions": caps.allowed_transitions(mission),
        "can_cancel": caps.can_cancel(mission),
        "can_edit": caps.can_edit_mission(mission),
        "can_create_restitution": mission_service.can_create_restitution(mission, ctx),
    }
    if caps.can_manage_invoice(mission):
        return MissionDetail.model_validate(mission).model_copy(update=actions)
    data = MissionRead.model_validate(mission).model_dump(exclude=DRIVER_BILLING_FIELDS)
    return ClientMissionDetail.model_validate({**data, **actions})


@router.get("/", response_model=MissionList)
async def list_missions(
    status: MissionStatus | None = None,
    client_id: str | None = None,
    chauffeur_id: str | None = None,
    mission_type: MissionType | None = None,
    search: str | None = Query(default=None, max_length=50),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    """Missions visibles (admin : toutes, client : les siennes, chauffeur : assignées)."""
    items, total = await mission_service.list_missions(
        db, ctx, status=status, client_id=client_id, chauffeur_id=chauffeur_id,
        mission_type=mission_type, search=search, limit=limit, offset=offset,
    )
    return MissionList(items=[_read(m, ctx) for m in items], total=total)


@router.post("/", response_model=MissionDetail | ClientMissionDetail, status_code=201)
async def create_mission(
    data: MissionCreate,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    """Créer une mission / Create a mission (client: propriétaire auto, admin: client_id requis)."""
    mission = await mission_service.create_mission(db, data, ctx)
    return _detail(mission, ctx)


@router.get("/{mission_id}", response_model=MissionDetail | ClientMissionDetail)
async def get_mission(
    mission_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    mission = await get_visible_mission(db, mission_id, ctx)
    return _detail(mission, ctx)


@router.patch("/{mission_id}", response_model=MissionDetail | ClientMissionDetail)
async def update_mission(
    mission_id: str,
    data: MissionUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    """Édition admin, le statut passe par /transition / Admin edit, status goes through /transition."""
    mission = await mission_service.update_mission(db, mission_id, data, ctx)
    return _detail(mission, ctx)


@router.patch("/{mission_id}/billing", response_model=MissionDetail | ClientMissionDetail)
async def update_billing(
    mission_id: str,
    data: MissionBillingUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    mission = await mission_service.update_billing(db, mission_id, data, ctx)
    return _detail(mission, ctx)


@router.post("/{mission_id}/transition", response_model=MissionDetail | ClientMissionDetail)
async def transition(
    mission_id: str,
    data: TransitionRequest,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    """Changer le statut / Change the status (409 si modifiée entre-temps / if modified concurrently)."""
    mission = await transition_mission(
        db, mission_id, data.status, ctx,
        expected_status=data.expected_status, confirm=data.confirm, notes=data.notes,
    )
    return _detail(mission, ctx)


@router.post("/{mission_id}/cancel", response_model=MissionDetail | ClientMissionDetail)
async def cancel(
    mission_id: str,
    data: CancelRequest | None = None,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    """Annuler (en_acceptation uniquement) / Cancel (en_acceptation only)."""
    mission = await cancel_mission(db, mission_id, ctx, notes=data.notes if data else None)
    return _detail(mission, ctx)


@router.get("/{mission_id}/history", response_model=list[StatusHistoryRead])
async def history(
    mission_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    await get_visible_mission(db, mission_id, ctx)
    return await get_status_history(db, mission_id)


@router.post("/{mission_id}/restitution", response_model=MissionDetail | ClientMissionDetail, status_code=201)
async def create_restitution(
    mission_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    """Créer la mission retour liée / Create the linked return mission."""
    restitution = await mission_service.create_restitution(db, mission_id, ctx)
    return _detail(restitution, ctx)


@router.get("/{mission_id}/pdf/{kind}")
async def mission_pdf(
    mission_id: str,
    kind: str,
    archive: bool = False,
    db: AsyncSession = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    ctx: AuthContext = Depends(get_auth_context),
):
    """PDF fiche / devis / facture, archivable dans les documents / Optionally archived as a document."""
    if kind not in _PDF_KINDS:
        raise ValidationFailed(f"Document inconnu / Unknown document: {kind}", status_code=404)
    mission = await get_visible_mission(db, mission_id, ctx)

    if kind == "fiche":
        content = PdfService.mission_sheet(mission)
    elif kind == "devis":
        content = PdfService.quote(mission)
    else:
        if mission.status not in COMPLETED_STATUSES:
            raise ValidationFailed("Facture disponible après livraison / Invoice available after delivery")
        content = PdfService.invoice(mission)

    if archive:
        await document_service.archive_generated_pdf(db, store, mission, _PDF_KINDS[kind], content, ctx)

    filename = f"{kind}_{mission.full_number}.pdf"
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{mission_id}/documents", response_model=list[DocumentRead])
async def list_documents(
    mission_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    return await document_service.list_mission_documents(db, mission_id, ctx)


@router.post("/{mission_id}/attachments", response_model=DocumentRead, status_code=201)
async def upload_attachment(
    mission_id: str,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    ctx: AuthContext = Depends(get_auth_context),
):
    """Pièce jointe (10 Mo max, PDF/images) / Attachment (10 MB max, PDF/images)."""
    content = await file.read()
    return await document_service.upload_mission_attachment(
        db, store, mission_id, ctx, file.filename, file.content_type, content,
    )
