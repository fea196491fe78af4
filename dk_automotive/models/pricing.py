"""Modèles Tarification / Pricing models (grille par catégorie + TVA)."""

import enum
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from dk_automotive.database import Base, enum_column, utcnow
from dk_automotive.models.mission import VehicleCategory


class PricingType(str, enum.Enum):
    """Type de tarif / Pricing type."""
    FORFAIT = "forfait"  # prix fixe sur la tranche / flat price for the bracket
    KM = "km"  # prix au km / price per km


class PricingGrid(Base):
    """Tranche de distance tarifée / Priced distance bracket."""

    __tablename__ = "pricing_grids"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    vehicle_category: Mapped[VehicleCategory] = mapped_column(enum_column(VehicleCategory), nullable=False, index=True)
    min_distance: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    max_distance: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    price_ht: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    type_tarif: Mapped[PricingType] = mapped_column(enum_column(PricingType), default=PricingType.FORFAIT)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    updated_by: Mapped[str | None] = mapped_column(String(36))

    def __repr__(self) -> str:
        return f"<PricingGrid {self.vehicle_category.value} {self.min_distance}-{self.max_distance}km>"


class VatSetting(Base):
    """Taux de TVA applicable à partir d'une date / VAT rate effective from a date."""

    __tablename__ = "vat_settings"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    modified_by: Mapped[str | None] = mapped_column(String(36))

    def __repr__(self) -> str:
        return f"<VatSetting {self.rate}% from {self.effective_date}>"
