"""Téléchargement des fichiers stockés / Stored file download."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from dk_automotive.api.deps import get_auth_context
from dk_automotive.database import get_db
from dk_automotive.services.blob_store import BlobStore, get_blob_store
from dk_automotive.services.capabilities import AuthContext
from dk_automotive.services.document_service import get_document_by_path

router = APIRouter()


@router.get("/{path:path}")
async def download_file(
    path: str,
    db: AsyncSession = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    ctx: AuthContext = Depends(get_auth_context),
):
    """Télécharger un fichier référencé / Download a referenced file (auth required)."""
    document = await get_document_by_path(db, path, ctx)
    if not store.exists(path):
        raise HTTPException(status_code=404, detail="File not found on disk")
    return FileResponse(store.local_path(path), media_type=document.mime_type, filename=document.file_name)
