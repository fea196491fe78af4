"""
Modèles SQLAlchemy / SQLAlchemy models.
Importer tous les modèles ici pour que create_all les détecte.
Import all models here so create_all can detect them.
"""

from dk_automotive.models.mission import Mission, MissionStatus, MissionType, VehicleCategory
from dk_automotive.models.user import Profile, Client, Driver, UserRole, LegalStatus
from dk_automotive.models.mission_status_history import MissionStatusHistory
from dk_automotive.models.document import Document, DocumentType
from dk_automotive.models.contact import Contact
from dk_automotive.models.pricing import PricingGrid, PricingType, VatSetting
from dk_automotive.models.admin_invitation import AdminInvitationToken

__all__ = [
    "Mission",
    "MissionStatus",
    "MissionType",
    "VehicleCategory",
    "Profile",
    "Client",
    "Driver",
    "UserRole",
    "LegalStatus",
    "MissionStatusHistory",
    "Document",
    "DocumentType",
    "Contact",
    "PricingGrid",
    "PricingType",
    "VatSetting",
    "AdminInvitationToken",
]
