"""Schémas Document / Document schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from dk_automotive.models.document import DocumentType


class DocumentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    mission_id: str | None
    driver_id: str | None
    type: DocumentType
    document_number: str | None
    storage_path: str
    file_name: str
    mime_type: str
    file_size: int
    created_at: datetime
    created_by: str


class DeleteResult(BaseModel):
    """Suppression best-effort / Best-effort deletion result."""
    deleted: bool = True
    warnings: list[str] = []


class UploadRules(BaseModel):
    max_size_bytes: int
    allowed_mime_types: list[str]
