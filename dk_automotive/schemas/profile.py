"""
Schémas Profil / Profile schemas.
Compte + extensions client et chauffeur.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from dk_automotive.models.mission import VehicleCategory
from dk_automotive.models.user import LegalStatus, UserRole


class BillingAddress(BaseModel):
    street: str | None = None
    city: str | None = None
    postal_code: str | None = None
    country: str | None = "France"


class ClientRead(BaseModel):
    company_name: str
    siret: str | None
    vat_number: str | None
    billing_address: dict | None
    phone1: str | None
    phone2: str | None
    model_config = {"from_attributes": True}


class DriverRead(BaseModel):
    company_name: str | None
    siret: str | None
    vat_number: str | None
    vat_applicable: bool
    legal_status: LegalStatus | None
    license_number: str | None
    id_number: str | None
    billing_address: dict | None
    phone1: str | None
    phone2: str | None
    vehicle_type: VehicleCategory | None
    kbis_document_path: str | None
    vigilance_document_path: str | None
    license_document_path: str | None
    id_document_path: str | None
    model_config = {"from_attributes": True}


class ProfileRead(BaseModel):
    id: str
    email: str
    full_name: str | None
    role: UserRole
    profile_completed: bool
    active: bool
    last_login: datetime | None
    created_at: datetime
    client: ClientRead | None = None
    driver: DriverRead | None = None
    model_config = {"from_attributes": True}


class ProfileBrief(BaseModel):
    id: str
    email: str
    full_name: str | None
    role: UserRole
    model_config = {"from_attributes": True}


class ProfileUpdate(BaseModel):
    full_name: str | None = Field(default=None, max_length=150)


class ProfileAdminUpdate(BaseModel):
    full_name: str | None = Field(default=None, max_length=150)
    active: bool | None = None


class ClientProfileComplete(BaseModel):
    """Complétion du profil client / Client profile completion."""
    company_name: str = Field(min_length=1, max_length=200)
    siret: str | None = Field(default=None, pattern=r"^\d{14}$")
    vat_number: str | None = Field(default=None, max_length=20)
    billing_address: BillingAddress | None = None
    phone1: str | None = Field(default=None, max_length=20)
    phone2: str | None = Field(default=None, max_length=20)


class DriverProfileComplete(BaseModel):
    """Complétion du profil chauffeur / Driver profile completion."""
    company_name: str | None = Field(default=None, max_length=200)
    siret: str | None = Field(default=None, pattern=r"^\d{14}$")
    vat_number: str | None = Field(default=None, max_length=20)
    vat_applicable: bool = False
    legal_status: LegalStatus | None = None
    license_number: str = Field(min_length=1, max_length=50)
    id_number: str | None = Field(default=None, max_length=50)
    billing_address: BillingAddress | None = None
    phone1: str | None = Field(default=None, max_length=20)
    phone2: str | None = Field(default=None, max_length=20)
    vehicle_type: VehicleCategory | None = None
