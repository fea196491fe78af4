"""Modèle Document / Document reference model (fichier stocké dans le blob store)."""

import enum
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from dk_automotive.database import Base, enum_column, utcnow


class DocumentType(str, enum.Enum):
    """Type de document / Document type."""
    DEVIS = "devis"
    FACTURE = "facture"
    FICHE_MISSION = "fiche_mission"
    ATTACHMENT = "attachment"
    DRIVER_INVOICE = "driver_invoice"
    DRIVER_DOCUMENT = "driver_document"


class Document(Base):
    """Référence vers un fichier rattaché à une mission ou un chauffeur / Reference to a stored file."""

    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    mission_id: Mapped[str | None] = mapped_column(ForeignKey("missions.id", ondelete="CASCADE"), index=True)
    driver_id: Mapped[str | None] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), index=True)
    type: Mapped[DocumentType] = mapped_column(enum_column(DocumentType), nullable=False)
    document_number: Mapped[str | None] = mapped_column(String(50))
    storage_path: Mapped[str] = mapped_column(String(500), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    created_by: Mapped[str] = mapped_column(String(36), nullable=False)

    def __repr__(self) -> str:
        return f"<Document {self.type.value} {self.storage_path}>"
