"""Schémas Mission / Mission schemas (création, édition admin, transitions, lecture)."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from dk_automotive.models.mission import MissionStatus, MissionType, VehicleCategory

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"  # YYYY-MM-DD
TIME_PATTERN = r"^\d{2}:\d{2}$"  # HH:MM


class Address(BaseModel):
    street: str | None = Field(default=None, max_length=200)
    city: str = Field(min_length=1, max_length=100)
    postal_code: str | None = Field(default=None, max_length=10)
    country: str = "France"
    formatted_address: str | None = None
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)


class _MissionDetails(BaseModel):
    """Étapes 3 et 4 du formulaire / Wizard steps 3 and 4: vehicle, contacts, time windows."""
    vehicle_make: str | None = Field(default=None, max_length=50)
    vehicle_model: str | None = Field(default=None, max_length=50)
    vehicle_year: int | None = Field(default=None, ge=1900, le=2100)
    vehicle_registration: str | None = Field(default=None, max_length=20)
    vehicle_vin: str | None = Field(default=None, max_length=17)
    vehicle_fuel: str | None = Field(default=None, max_length=20)

    contact_pickup_name: str | None = Field(default=None, max_length=100)
    contact_pickup_phone: str | None = Field(default=None, max_length=20)
    contact_pickup_email: EmailStr | None = None
    contact_delivery_name: str | None = Field(default=None, max_length=100)
    contact_delivery_phone: str | None = Field(default=None, max_length=20)
    contact_delivery_email: EmailStr | None = None

    d1_pec: str | None = Field(default=None, pattern=DATE_PATTERN)
    h1_pec: str | None = Field(default=None, pattern=TIME_PATTERN)
    h2_pec: str | None = Field(default=None, pattern=TIME_PATTERN)
    d2_liv: str | None = Field(default=None, pattern=DATE_PATTERN)
    h1_liv: str | None = Field(default=None, pattern=TIME_PATTERN)
    h2_liv: str | None = Field(default=None, pattern=TIME_PATTERN)

    notes: str | None = None


class MissionCreate(_MissionDetails):
    """Soumission du formulaire de création / Creation wizard submission."""
    mission_type: MissionType = MissionType.LIV
    vehicle_category: VehicleCategory
    pickup_address: Address
    delivery_address: Address
    distance_km: Decimal | None = Field(default=None, ge=0, decimal_places=2)

    # Étape 5, admin uniquement / Step 5, admin only
    client_id: str | None = None
    status: MissionStatus | None = None
    chauffeur_id: str | None = None
    chauffeur_price_ht: Decimal | None = Field(default=None, ge=0, decimal_places=2)


class MissionUpdate(BaseModel):
    """Édition admin d'une mission non terminée / Admin edit of a non-terminal mission.
    Le statut n'est pas modifiable ici / Status is not editable here.
    """
    model_config = ConfigDict(extra="forbid")

    pickup_address: Address | None = None
    delivery_address: Address | None = None
    vehicle_category: VehicleCategory | None = None
    distance_km: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    price_ht: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    chauffeur_id: str | None = None
    chauffeur_price_ht: Decimal | None = Field(default=None, ge=0, decimal_places=2)

    vehicle_make: str | None = Field(default=None, max_length=50)
    vehicle_model: str | None = Field(default=None, max_length=50)
    vehicle_year: int | None = Field(default=None, ge=1900, le=2100)
    vehicle_registration: str | None = Field(default=None, max_length=20)
    vehicle_vin: str | None = Field(default=None, max_length=17)
    vehicle_fuel: str | None = Field(default=None, max_length=20)
    contact_pickup_name: str | None = Field(default=None, max_length=100)
    contact_pickup_phone: str | None = Field(default=None, max_length=20)
    contact_pickup_email: EmailStr | None = None
    contact_delivery_name: str | None = Field(default=None, max_length=100)
    contact_delivery_phone: str | None = Field(default=None, max_length=20)
    contact_delivery_email: EmailStr | None = None
    d1_pec: str | None = Field(default=None, pattern=DATE_PATTERN)
    h1_pec: str | None = Field(default=None, pattern=TIME_PATTERN)
    h2_pec: str | None = Field(default=None, pattern=TIME_PATTERN)
    d2_liv: str | None = Field(default=None, pattern=DATE_PATTERN)
    h1_liv: str | None = Field(default=None, pattern=TIME_PATTERN)
    h2_liv: str | None = Field(default=None, pattern=TIME_PATTERN)
    notes: str | None = None


class MissionBillingUpdate(BaseModel):
    """Suivi facturation client / Client billing flags."""
    client_paid: bool | None = None
    invoiceable: bool | None = None


class TransitionRequest(BaseModel):
    status: MissionStatus
    expected_status: MissionStatus | None = None
    confirm: bool = False
    notes: str | None = Field(default=None, max_length=1000)


class CancelRequest(BaseModel):
    notes: str | None = Field(default=None, max_length=1000)


class ProfileSummary(BaseModel):
    id: str
    email: str
    full_name: str | None
    model_config = ConfigDict(from_attributes=True)


class _MissionReadBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    mission_number: str
    full_number: str
    mission_type: MissionType
    status: MissionStatus
    client_id: str
    chauffeur_id: str | None
    created_by: str
    client: ProfileSummary | None = None
    chauffeur: ProfileSummary | None = None

    pickup_address: dict
    delivery_address: dict
    distance_km: Decimal
    price_ht: Decimal
    price_ttc: Decimal
    vat_rate: Decimal

    client_paid: bool
    invoiceable: bool

    vehicle_category: VehicleCategory
    vehicle_make: str | None
    vehicle_model: str | None
    vehicle_year: int | None
    vehicle_registration: str | None
    vehicle_vin: str | None
    vehicle_fuel: str | None

    contact_pickup_name: str | None
    contact_pickup_phone: str | None
    contact_pickup_email: str | None
    contact_delivery_name: str | None
    contact_delivery_phone: str | None
    contact_delivery_email: str | None

    d1_pec: str | None
    h1_pec: str | None
    h2_pec: str | None
    d2_liv: str | None
    h1_liv: str | None
    h2_liv: str | None

    linked_mission_id: str | None
    is_linked: bool
    notes: str | None
    created_at: datetime
    updated_at: datetime
    completion_date: datetime | None


class MissionRead(_MissionReadBase):
    """Vue admin et chauffeur, avec la rémunération chauffeur / Admin and driver view, with the driver's pay."""
    chauffeur_price_ht: Decimal | None
    chauffeur_invoice: str | None
    chauffeur_paid: bool


class ClientMissionRead(_MissionReadBase):
    """Vue client : ni rémunération ni facture chauffeur / Client view: no driver pay or invoice."""
    model_config = ConfigDict(from_attributes=True, extra="forbid")


class _MissionActions(BaseModel):
    """Actions permises pour l'acteur / The actor's allowed actions."""
    allowed_transitions: list[MissionStatus] = []
    can_cancel: bool = False
    can_edit: bool = False
    can_create_restitution: bool = False


class MissionDetail(MissionRead, _MissionActions):
    pass


class ClientMissionDetail(ClientMissionRead, _MissionActions):
    pass


class MissionList(BaseModel):
    items: list[MissionRead | ClientMissionRead]
    total: int


class StatusHistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    mission_id: str
    old_status: MissionStatus | None
    new_status: MissionStatus
    changed_by: str
    changed_at: datetime
    notes: str | None
