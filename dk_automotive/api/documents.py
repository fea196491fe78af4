"""Routes Documents / Document routes (justificatifs chauffeur, suppression, règles d'upload)."""

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from dk_automotive.api.deps import get_auth_context
from dk_automotive.config import settings
from dk_automotive.database import get_db
from dk_automotive.schemas.document import DeleteResult, DocumentRead, UploadRules
from dk_automotive.schemas.profile import DriverRead
from dk_automotive.services import document_service
from dk_automotive.services.blob_store import BlobStore, get_blob_store
from dk_automotive.services.capabilities import AuthContext

router = APIRouter()


@router.get("/upload-rules", response_model=UploadRules)
async def upload_rules():
    """Limites appliquées côté serveur / Server-side upload limits."""
    return UploadRules(
        max_size_bytes=settings.MAX_UPLOAD_SIZE_BYTES,
        allowed_mime_types=settings.ALLOWED_UPLOAD_MIME_TYPES,
    )


@router.post("/driver", response_model=DriverRead, status_code=201)
async def upload_driver_document(
    kind: str = Form(..., pattern="^(kbis|vigilance|license|id)$"),
    driver_id: str | None = Form(default=None),
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    ctx: AuthContext = Depends(get_auth_context),
):
    """Justificatif chauffeur (Kbis, vigilance URSSAF, permis, pièce d'identité)."""
    content = await file.read()
    return await document_service.upload_driver_document(
        db, store, ctx, kind, file.filename, file.content_type, content, driver_id=driver_id,
    )


@router.get("/driver/{driver_id}", response_model=list[DocumentRead])
async def list_driver_documents(
    driver_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    return await document_service.list_driver_documents(db, driver_id, ctx)


@router.get("/{document_id}", response_model=DocumentRead)
async def get_document(
    document_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    return await document_service.get_document(db, document_id, ctx)


@router.delete("/{document_id}", response_model=DeleteResult)
async def delete_document(
    document_id: int,
    db: AsyncSession = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    ctx: AuthContext = Depends(get_auth_context),
):
    """Suppression : fichier best-effort, référence toujours / Blob best-effort, reference always."""
    warnings = await document_service.delete_document(db, store, document_id, ctx)
    return DeleteResult(warnings=warnings)
