"""
Modèles Identité / Identity models.
Profile (compte + rôle) et ses extensions 1:1 Client et Driver.
Profile (account + role) and its 1:1 Client and Driver extensions.
"""

import enum
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dk_automotive.database import Base, enum_column, new_uuid, utcnow
from dk_automotive.models.mission import VehicleCategory


class UserRole(str, enum.Enum):
    """Rôle applicatif / Application role."""
    ADMIN = "admin"
    CLIENT = "client"
    CHAUFFEUR = "chauffeur"


class LegalStatus(str, enum.Enum):
    """Statut juridique / Legal status of a company."""
    EI = "EI"
    EURL = "EURL"
    SARL = "SARL"
    SA = "SA"
    SAS = "SAS"
    SASU = "SASU"
    SNC = "SNC"
    SCOP = "Scop"
    ASSOCIATION = "Association"


class Profile(Base):
    """Compte utilisateur / User account."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    email: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(150))
    role: Mapped[UserRole] = mapped_column(enum_column(UserRole), nullable=False)
    profile_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relations
    client: Mapped["Client | None"] = relationship(back_populates="profile", uselist=False, lazy="selectin")
    driver: Mapped["Driver | None"] = relationship(back_populates="profile", uselist=False, lazy="selectin")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self) -> str:
        return f"<Profile {self.email} ({self.role.value})>"


class Client(Base):
    """Données de facturation client / Client billing data."""

    __tablename__ = "clients"

    id: Mapped[str] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    company_name: Mapped[str] = mapped_column(String(200), nullable=False)
    siret: Mapped[str | None] = mapped_column(String(14))
    vat_number: Mapped[str | None] = mapped_column(String(20))
    billing_address: Mapped[dict | None] = mapped_column(JSON)
    phone1: Mapped[str | None] = mapped_column(String(20))
    phone2: Mapped[str | None] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    profile: Mapped["Profile"] = relationship(back_populates="client")

    def __repr__(self) -> str:
        return f"<Client {self.company_name}>"


class Driver(Base):
    """Données chauffeur (légales + documents) / Driver data (legal + documents)."""

    __tablename__ = "drivers"

    id: Mapped[str] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    company_name: Mapped[str | None] = mapped_column(String(200))
    siret: Mapped[str | None] = mapped_column(String(14))
    vat_number: Mapped[str | None] = mapped_column(String(20))
    vat_applicable: Mapped[bool] = mapped_column(Boolean, default=False)
    legal_status: Mapped[LegalStatus | None] = mapped_column(enum_column(LegalStatus))
    license_number: Mapped[str | None] = mapped_column(String(50))
    id_number: Mapped[str | None] = mapped_column(String(50))
    billing_address: Mapped[dict | None] = mapped_column(JSON)
    phone1: Mapped[str | None] = mapped_column(String(20))
    phone2: Mapped[str | None] = mapped_column(String(20))
    vehicle_type: Mapped[VehicleCategory | None] = mapped_column(enum_column(VehicleCategory))

    # Chemins des justificatifs (blob store) / Supporting document paths (blob store)
    kbis_document_path: Mapped[str | None] = mapped_column(String(500))
    vigilance_document_path: Mapped[str | None] = mapped_column(String(500))
    license_document_path: Mapped[str | None] = mapped_column(String(500))
    id_document_path: Mapped[str | None] = mapped_column(String(500))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    profile: Mapped["Profile"] = relationship(back_populates="driver")

    def __repr__(self) -> str:
        return f"<Driver {self.id}>"
