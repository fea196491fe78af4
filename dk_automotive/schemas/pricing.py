"""Schémas Tarification / Pricing schemas (grille, TVA, devis)."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from dk_automotive.models.mission import VehicleCategory
from dk_automotive.models.pricing import PricingType


class PricingGridCreate(BaseModel):
    vehicle_category: VehicleCategory
    min_distance: Decimal = Field(ge=0, decimal_places=2)
    max_distance: Decimal = Field(gt=0, decimal_places=2)
    price_ht: Decimal = Field(ge=0, decimal_places=2)
    type_tarif: PricingType = PricingType.FORFAIT
    active: bool = True

    @model_validator(mode="after")
    def check_bounds(self):
        if self.max_distance < self.min_distance:
            raise ValueError("max_distance doit être >= min_distance")
        return self


class PricingGridUpdate(BaseModel):
    min_distance: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    max_distance: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    price_ht: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    type_tarif: PricingType | None = None
    active: bool | None = None


class PricingGridRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    vehicle_category: VehicleCategory
    min_distance: Decimal
    max_distance: Decimal
    price_ht: Decimal
    type_tarif: PricingType
    active: bool
    updated_at: datetime


class VatSettingCreate(BaseModel):
    rate: Decimal = Field(ge=0, le=100, decimal_places=2)
    effective_date: date


class VatSettingRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    rate: Decimal
    effective_date: date
    created_at: datetime


class QuoteRequest(BaseModel):
    vehicle_category: VehicleCategory
    distance_km: Decimal | None = Field(default=None, ge=0)
    pickup_lat: float | None = None
    pickup_lng: float | None = None
    delivery_lat: float | None = None
    delivery_lng: float | None = None


class QuoteRead(BaseModel):
    vehicle_category: VehicleCategory
    distance_km: Decimal
    price_ht: Decimal
    price_ttc: Decimal
    vat_rate: Decimal
