"""
Factures chauffeur et paiement / Driver invoice and payment bookkeeping.

Une seule facture PDF par mission réalisée (livre, termine). Le drapeau payé
exige une facture ; supprimer la facture remet payé à faux dans la même écriture.
One PDF invoice per completed mission. The paid flag requires an invoice;
deleting the invoice resets paid to false in the same write.
"""

import logging
import time

from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dk_automotive.exceptions import (
    ConcurrentModification,
    NotFound,
    PermissionDenied,
    StorageError,
    ValidationFailed,
)
from dk_automotive.models.document import Document, DocumentType
from dk_automotive.models.mission import Mission
from dk_automotive.services.blob_store import BlobStore
from dk_automotive.services.capabilities import AuthContext
from dk_automotive.services.mission_lifecycle import get_mission, get_visible_mission
from dk_automotive.services.status_machine import COMPLETED_STATUSES
from dk_automotive.services.upload_gate import PDF_ONLY, safe_filename, validate_upload

logger = logging.getLogger(__name__)


def invoice_path(mission_id: str, filename: str | None) -> str:
    """driver_invoices/<mission_id>/<timestamp ms>_<nom>."""
    return f"driver_invoices/{mission_id}/{int(time.time() * 1000)}_{safe_filename(filename, 'facture.pdf')}"


async def upload_driver_invoice(
    db: AsyncSession,
    store: BlobStore,
    mission_id: str,
    ctx: AuthContext,
    filename: str | None,
    content_type: str | None,
    content: bytes,
) -> Mission:
    """Déposer la facture chauffeur / Upload the driver invoice."""
    mission = await get_visible_mission(db, mission_id, ctx)
    if not ctx.capabilities.can_manage_invoice(mission):
        raise PermissionDenied("Seul le chauffeur assigné ou un admin dépose la facture")
    if mission.status not in COMPLETED_STATUSES:
        raise ValidationFailed("Facture possible uniquement après livraison / Invoice only after delivery")
    if mission.chauffeur_invoice:
        raise ValidationFailed(
            "Une facture existe déjà, supprimez-la d'abord / An invoice already exists", status_code=409
        )

    mime = validate_upload(filename, content_type, len(content), allowed=PDF_ONLY)
    path = invoice_path(mission.id, filename)
    store.upload(path, content)

    try:
        result = await db.execute(
            update(Mission)
            .where(Mission.id == mission.id, Mission.chauffeur_invoice.is_(None))
            .values(chauffeur_invoice=path)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            _remove_quietly(store, path)
            raise ConcurrentModification("Une facture a été déposée entre-temps / Invoice uploaded concurrently")
        db.add(Document(
            mission_id=mission.id,
            driver_id=mission.chauffeur_id,
            type=DocumentType.DRIVER_INVOICE,
            storage_path=path,
            file_name=filename or path.rsplit("/", 1)[-1],
            mime_type=mime,
            file_size=len(content),
            created_by=ctx.user_id,
        ))
        await db.flush()
        await db.refresh(mission)
    except SQLAlchemyError as exc:
        logger.error("Invoice reference write failed on mission %s: %s", mission_id, exc)
        _remove_quietly(store, path)
        raise StorageError("Échec d'enregistrement de la facture / Invoice save failed") from exc

    logger.info("Driver invoice uploaded for mission %s by %s", mission.mission_number, ctx.user_id)
    return mission


async def set_driver_paid(db: AsyncSession, mission_id: str, paid: bool, ctx: AuthContext) -> Mission:
    """Basculer le paiement chauffeur (admin) / Toggle driver payment (admin)."""
    if not ctx.capabilities.can_mark_paid():
        raise PermissionDenied("Réservé aux administrateurs / Admin only")
    mission = await get_mission(db, mission_id)

    stmt = update(Mission).where(Mission.id == mission_id)
    if paid:
        stmt = stmt.where(Mission.chauffeur_invoice.is_not(None))
    try:
        result = await db.execute(
            stmt.values(chauffeur_paid=paid).execution_options(synchronize_session=False)
        )
    except SQLAlchemyError as exc:
        logger.error("Payment flag write failed on mission %s: %s", mission_id, exc)
        raise StorageError("Échec de mise à jour du paiement / Payment update failed") from exc
    if result.rowcount == 0:
        raise ValidationFailed("Aucune facture chauffeur : paiement impossible / No invoice, cannot mark paid")

    await db.refresh(mission)
    logger.info("Mission %s driver paid=%s by %s", mission.mission_number, paid, ctx.user_id)
    return mission


async def delete_driver_invoice(
    db: AsyncSession, store: BlobStore, mission_id: str, ctx: AuthContext
) -> tuple[Mission, list[str]]:
    """
    Supprimer la facture / Delete the invoice.
    Fichier d'abord (best-effort), puis référence et paiement remis à zéro.
    Returns (mission, warnings).
    """
    mission = await get_visible_mission(db, mission_id, ctx)
    if not ctx.capabilities.can_manage_invoice(mission):
        raise PermissionDenied("Seul le chauffeur assigné ou un admin supprime la facture")
    path = mission.chauffeur_invoice
    if not path:
        raise NotFound("Aucune facture pour cette mission / No invoice for this mission")

    warnings = []
    try:
        store.remove([path])
    except StorageError:
        warnings.append(f"Fichier non supprimé du stockage / Blob not removed: {path}")
        logger.warning("Invoice blob %s could not be removed, clearing reference anyway", path)

    try:
        await db.execute(
            update(Mission)
            .where(Mission.id == mission.id)
            .values(chauffeur_invoice=None, chauffeur_paid=False)
            .execution_options(synchronize_session=False)
        )
        await db.execute(delete(Document).where(Document.storage_path == path))
        await db.flush()
        await db.refresh(mission)
    except SQLAlchemyError as exc:
        logger.error("Invoice reference removal failed on mission %s: %s", mission_id, exc)
        raise StorageError("Échec de suppression de la facture / Invoice removal failed") from exc

    logger.info("Driver invoice removed for mission %s by %s", mission.mission_number, ctx.user_id)
    return mission, warnings


def _remove_quietly(store: BlobStore, path: str) -> None:
    try:
        store.remove([path])
    except StorageError:
        logger.warning("Orphan blob left behind: %s", path)
