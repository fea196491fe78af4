"""
Service Documents / Document service.
Pièces jointes de mission, justificatifs chauffeur, PDF archivés, suppression best-effort.
Mission attachments, driver documents, archived PDFs, best-effort deletion.
"""

import logging
import time
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dk_automotive.exceptions import NotFound, PermissionDenied, StorageError, ValidationFailed
from dk_automotive.models.document import Document, DocumentType
from dk_automotive.models.mission import Mission
from dk_automotive.models.user import Driver, UserRole
from dk_automotive.services.blob_store import BlobStore
from dk_automotive.services.capabilities import AuthContext
from dk_automotive.services.invoice_service import delete_driver_invoice
from dk_automotive.services.mission_lifecycle import get_visible_mission
from dk_automotive.services.status_machine import TERMINAL_STATUSES
from dk_automotive.services.upload_gate import safe_filename, validate_upload

logger = logging.getLogger(__name__)

# Justificatifs chauffeur → colonne du profil / Driver documents → driver column
DRIVER_DOCUMENT_KINDS = {
    "kbis": "kbis_document_path",
    "vigilance": "vigilance_document_path",
    "license": "license_document_path",
    "id": "id_document_path",
}

# Préfixes des numéros de documents générés / Generated document number prefixes
_NUMBER_PREFIX = {
    DocumentType.DEVIS: "DEV",
    DocumentType.FACTURE: "FAC",
    DocumentType.FICHE_MISSION: "FM",
}


def _timestamp() -> int:
    return int(time.time() * 1000)


async def _save_reference(db: AsyncSession, store: BlobStore, document: Document) -> Document:
    db.add(document)
    try:
        await db.flush()
    except SQLAlchemyError as exc:
        logger.error("Document reference write failed for %s: %s", document.storage_path, exc)
        try:
            store.remove([document.storage_path])
        except StorageError:
            logger.warning("Orphan blob left behind: %s", document.storage_path)
        raise StorageError("Échec d'enregistrement du document / Document save failed") from exc
    return document


async def upload_mission_attachment(
    db: AsyncSession,
    store: BlobStore,
    mission_id: str,
    ctx: AuthContext,
    filename: str | None,
    content_type: str | None,
    content: bytes,
) -> Document:
    """Pièce jointe de mission / Mission attachment (missions/<mission_id>/...)."""
    mission = await get_visible_mission(db, mission_id, ctx)
    if mission.status in TERMINAL_STATUSES:
        raise ValidationFailed(f"Mission {mission.status.value} : ajout impossible / Mission is closed")

    mime = validate_upload(filename, content_type, len(content))
    name = safe_filename(filename)
    path = f"missions/{mission.id}/{_timestamp()}_{name}"
    store.upload(path, content)

    document = await _save_reference(db, store, Document(
        mission_id=mission.id,
        type=DocumentType.ATTACHMENT,
        storage_path=path,
        file_name=filename or name,
        mime_type=mime,
        file_size=len(content),
        created_by=ctx.user_id,
    ))
    logger.info("Attachment %s added to mission %s", path, mission.mission_number)
    return document


async def archive_generated_pdf(
    db: AsyncSession,
    store: BlobStore,
    mission: Mission,
    doc_type: DocumentType,
    content: bytes,
    ctx: AuthContext,
) -> Document:
    """Archiver un PDF généré (devis, facture, fiche) / Archive a generated PDF."""
    number = f"{_NUMBER_PREFIX[doc_type]}-{mission.mission_number}"
    path = f"missions/{mission.id}/{doc_type.value}_{_timestamp()}.pdf"
    store.upload(path, content)
    return await _save_reference(db, store, Document(
        mission_id=mission.id,
        type=doc_type,
        document_number=number,
        storage_path=path,
        file_name=f"{number}.pdf",
        mime_type="application/pdf",
        file_size=len(content),
        created_by=ctx.user_id,
    ))


async def list_mission_documents(db: AsyncSession, mission_id: str, ctx: AuthContext) -> list[Document]:
    mission = await get_visible_mission(db, mission_id, ctx)
    query = select(Document).where(Document.mission_id == mission_id)
    if not ctx.capabilities.can_manage_invoice(mission):
        query = query.where(Document.type != DocumentType.DRIVER_INVOICE)
    result = await db.execute(query.order_by(Document.created_at.desc()))
    return list(result.scalars().all())


async def upload_driver_document(
    db: AsyncSession,
    store: BlobStore,
    ctx: AuthContext,
    kind: str,
    filename: str | None,
    content_type: str | None,
    content: bytes,
    driver_id: str | None = None,
) -> Driver:
    """
    Justificatif chauffeur / Driver supporting document.
    Chemin driver_documents/<user_id>/<type>_<timestamp>.<ext> ; le profil garde le dernier chemin.
    """
    if kind not in DRIVER_DOCUMENT_KINDS:
        raise ValidationFailed(f"Type de justificatif inconnu / Unknown document type: {kind}")

    caps = ctx.capabilities
    if driver_id is None or driver_id == ctx.user_id:
        if ctx.role != UserRole.CHAUFFEUR:
            raise PermissionDenied("Réservé aux chauffeurs / Drivers only")
        driver_id = ctx.user_id
    elif not caps.is_admin:
        raise PermissionDenied("Justificatifs d'un autre chauffeur / Another driver's documents")

    mime = validate_upload(filename, content_type, len(content))
    ext = Path(safe_filename(filename)).suffix.lstrip(".").lower() or mime.split("/")[-1]
    path = f"driver_documents/{driver_id}/{kind}_{_timestamp()}.{ext}"
    store.upload(path, content)

    driver = await db.get(Driver, driver_id)
    if driver is None:
        driver = Driver(id=driver_id)
        db.add(driver)
    setattr(driver, DRIVER_DOCUMENT_KINDS[kind], path)

    await _save_reference(db, store, Document(
        driver_id=driver_id,
        type=DocumentType.DRIVER_DOCUMENT,
        storage_path=path,
        file_name=filename or path.rsplit("/", 1)[-1],
        mime_type=mime,
        file_size=len(content),
        created_by=ctx.user_id,
    ))
    logger.info("Driver document %s stored for %s", kind, driver_id)
    return driver


async def list_driver_documents(db: AsyncSession, driver_id: str, ctx: AuthContext) -> list[Document]:
    if driver_id != ctx.user_id and not ctx.capabilities.is_admin:
        raise PermissionDenied("Justificatifs d'un autre chauffeur / Another driver's documents")
    result = await db.execute(
        select(Document)
        .where(Document.driver_id == driver_id, Document.type == DocumentType.DRIVER_DOCUMENT)
        .order_by(Document.created_at.desc())
    )
    return list(result.scalars().all())


async def _check_document_access(db: AsyncSession, document: Document, ctx: AuthContext) -> None:
    if ctx.capabilities.is_admin:
        return
    if document.mission_id:
        mission = await get_visible_mission(db, document.mission_id, ctx)
        if document.type == DocumentType.DRIVER_INVOICE and not ctx.capabilities.can_manage_invoice(mission):
            raise PermissionDenied("Facture chauffeur réservée / Driver invoice is restricted")
        return
    if document.driver_id != ctx.user_id:
        raise PermissionDenied("Accès refusé à ce document / Access to this document denied")


async def get_document(db: AsyncSession, document_id: int, ctx: AuthContext) -> Document:
    document = await db.get(Document, document_id)
    if document is None:
        raise NotFound("Document introuvable / Document not found")
    await _check_document_access(db, document, ctx)
    return document


async def get_document_by_path(db: AsyncSession, path: str, ctx: AuthContext) -> Document:
    result = await db.execute(select(Document).where(Document.storage_path == path))
    document = result.scalar_one_or_none()
    if document is None:
        raise NotFound("Fichier introuvable / File not found")
    await _check_document_access(db, document, ctx)
    return document


async def delete_document(db: AsyncSession, store: BlobStore, document_id: int, ctx: AuthContext) -> list[str]:
    """
    Supprimer un document / Delete a document.
    Fichier d'abord (best-effort), la référence est toujours supprimée.
    Returns the warnings raised by the blob removal.
    """
    document = await get_document(db, document_id, ctx)

    if document.type == DocumentType.DRIVER_INVOICE and document.mission_id:
        # Garde le couplage facture / paiement / Keeps the invoice-payment coupling
        _, warnings = await delete_driver_invoice(db, store, document.mission_id, ctx)
        return warnings

    if not ctx.capabilities.is_admin and document.created_by != ctx.user_id:
        raise PermissionDenied("Seul l'auteur ou un admin supprime ce document / Uploader or admin only")
    if document.mission_id:
        mission = await db.get(Mission, document.mission_id)
        if mission is not None and mission.status in TERMINAL_STATUSES and not ctx.capabilities.is_admin:
            raise ValidationFailed(f"Mission {mission.status.value} : suppression impossible / Mission is closed")

    warnings = []
    try:
        store.remove([document.storage_path])
    except StorageError:
        warnings.append(f"Fichier non supprimé du stockage / Blob not removed: {document.storage_path}")
        logger.warning("Blob %s could not be removed, deleting reference anyway", document.storage_path)

    if document.type == DocumentType.DRIVER_DOCUMENT and document.driver_id:
        driver = await db.get(Driver, document.driver_id)
        if driver is not None:
            for column in DRIVER_DOCUMENT_KINDS.values():
                if getattr(driver, column) == document.storage_path:
                    setattr(driver, column, None)

    await db.delete(document)
    try:
        await db.flush()
    except SQLAlchemyError as exc:
        logger.error("Document reference removal failed for %s: %s", document.storage_path, exc)
        raise StorageError("Échec de suppression du document / Document removal failed") from exc
    logger.info("Document %s deleted by %s", document.storage_path, ctx.user_id)
    return warnings
