"""Modèle Mission / Mission model (convoyage d'un véhicule / one vehicle-transport job)."""

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dk_automotive.database import Base, enum_column, new_uuid, utcnow


class MissionStatus(str, enum.Enum):
    """Statut de la mission / Mission status."""
    EN_ACCEPTATION = "en_acceptation"
    ACCEPTE = "accepte"
    PRISE_EN_CHARGE = "prise_en_charge"
    LIVRAISON = "livraison"
    LIVRE = "livre"
    TERMINE = "termine"
    ANNULE = "annule"
    INCIDENT = "incident"


class MissionType(str, enum.Enum):
    """Type de mission / Mission type: livraison ou restitution (retour)."""
    LIV = "LIV"
    RES = "RES"


class VehicleCategory(str, enum.Enum):
    """Catégorie de véhicule (grille tarifaire) / Vehicle category (pricing grid)."""
    CITADINE = "citadine"
    BERLINE = "berline"
    SUV_4X4 = "4x4_suv"
    UTILITAIRE_3_5M3 = "utilitaire_3_5m3"
    UTILITAIRE_6_12M3 = "utilitaire_6_12m3"
    UTILITAIRE_12_15M3 = "utilitaire_12_15m3"
    UTILITAIRE_15_20M3 = "utilitaire_15_20m3"
    UTILITAIRE_PLUS_20M3 = "utilitaire_plus_20m3"


class Mission(Base):
    __tablename__ = "missions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    mission_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)  # YYYYMMDD-NNN
    mission_type: Mapped[MissionType] = mapped_column(enum_column(MissionType), default=MissionType.LIV)
    status: Mapped[MissionStatus] = mapped_column(
        enum_column(MissionStatus), nullable=False, default=MissionStatus.EN_ACCEPTATION
    )

    client_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), nullable=False)
    chauffeur_id: Mapped[str | None] = mapped_column(ForeignKey("profiles.id"))
    created_by: Mapped[str] = mapped_column(ForeignKey("profiles.id"), nullable=False)

    # Adresses JSON {street, city, postal_code, country, formatted_address, lat, lng}
    pickup_address: Mapped[dict] = mapped_column(JSON, nullable=False)
    delivery_address: Mapped[dict] = mapped_column(JSON, nullable=False)

    # Tarification figée à la création / Pricing frozen at creation
    distance_km: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    price_ht: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    price_ttc: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    vat_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)

    # Rémunération chauffeur / Driver pay
    chauffeur_price_ht: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    chauffeur_invoice: Mapped[str | None] = mapped_column(String(500))  # chemin blob / blob path
    chauffeur_paid: Mapped[bool] = mapped_column(Boolean, default=False)

    # Facturation client / Client billing
    client_paid: Mapped[bool] = mapped_column(Boolean, default=False)
    invoiceable: Mapped[bool] = mapped_column(Boolean, default=True)

    # Véhicule / Vehicle
    vehicle_category: Mapped[VehicleCategory] = mapped_column(enum_column(VehicleCategory), nullable=False)
    vehicle_make: Mapped[str | None] = mapped_column(String(50))
    vehicle_model: Mapped[str | None] = mapped_column(String(50))
    vehicle_year: Mapped[int | None] = mapped_column(Integer)
    vehicle_registration: Mapped[str | None] = mapped_column(String(20))
    vehicle_vin: Mapped[str | None] = mapped_column(String(17))
    vehicle_fuel: Mapped[str | None] = mapped_column(String(20))

    # Contacts sur place / On-site contacts
    contact_pickup_name: Mapped[str | None] = mapped_column(String(100))
    contact_pickup_phone: Mapped[str | None] = mapped_column(String(20))
    contact_pickup_email: Mapped[str | None] = mapped_column(String(150))
    contact_delivery_name: Mapped[str | None] = mapped_column(String(100))
    contact_delivery_phone: Mapped[str | None] = mapped_column(String(20))
    contact_delivery_email: Mapped[str | None] = mapped_column(String(150))

    # Créneaux : D = date YYYY-MM-DD, H1/H2 = fenêtre HH:MM / Slots: date + HH:MM window
    d1_pec: Mapped[str | None] = mapped_column("D1_PEC", String(10))
    h1_pec: Mapped[str | None] = mapped_column("H1_PEC", String(5))
    h2_pec: Mapped[str | None] = mapped_column("H2_PEC", String(5))
    d2_liv: Mapped[str | None] = mapped_column("D2_LIV", String(10))
    h1_liv: Mapped[str | None] = mapped_column("H1_LIV", String(5))
    h2_liv: Mapped[str | None] = mapped_column("H2_LIV", String(5))

    # Mission liée (aller / restitution) / Linked mission (delivery / return)
    linked_mission_id: Mapped[str | None] = mapped_column(ForeignKey("missions.id"))
    is_linked: Mapped[bool] = mapped_column(Boolean, default=False)

    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    completion_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))  # posé à l'entrée en "livre"

    # Relations
    client: Mapped["Profile"] = relationship(foreign_keys=[client_id], lazy="selectin")
    chauffeur: Mapped["Profile | None"] = relationship(foreign_keys=[chauffeur_id], lazy="selectin")

    @property
    def full_number(self) -> str:
        """Numéro affiché / Displayed number, e.g. LIV-20250301-004."""
        mission_type = self.mission_type.value if self.mission_type else "MIS"
        return f"{mission_type}-{self.mission_number}"

    def __repr__(self) -> str:
        return f"<Mission {self.mission_number} {self.status.value}>"
