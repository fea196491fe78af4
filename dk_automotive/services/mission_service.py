"""
Service Missions / Mission service.
Création (formulaire en 5 étapes), restitution, édition admin, facturation client, listes par rôle.
Creation (5-step wizard), return missions, admin edit, client billing flags, role-scoped lists.
"""

import logging
from collections import deque
from datetime import date

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dk_automotive.exceptions import PermissionDenied, StorageError, ValidationFailed
from dk_automotive.models.mission import Mission, MissionStatus, MissionType
from dk_automotive.models.user import Profile, UserRole
from dk_automotive.schemas.mission import MissionBillingUpdate, MissionCreate, MissionUpdate
from dk_automotive.services.capabilities import AuthContext
from dk_automotive.services.distance_service import DistanceService
from dk_automotive.services.mission_lifecycle import get_mission, get_visible_mission, transition_mission
from dk_automotive.services.pricing_service import PricingService, Quote
from dk_automotive.services.status_machine import (
    DRIVER_REQUIRED_STATUSES,
    TRANSITIONS,
    ActorKind,
)

logger = logging.getLogger(__name__)

# Champs recopiés à l'identique sur la restitution / Fields copied as-is onto the return mission
_VEHICLE_FIELDS = (
    "vehicle_category", "vehicle_make", "vehicle_model", "vehicle_year",
    "vehicle_registration", "vehicle_vin", "vehicle_fuel",
)


async def next_mission_number(db: AsyncSession, on: date | None = None) -> str:
    """Numéro YYYYMMDD-NNN, séquence par jour / Per-day sequence number."""
    prefix = (on or date.today()).strftime("%Y%m%d")
    result = await db.execute(
        select(func.max(Mission.mission_number)).where(Mission.mission_number.like(f"{prefix}-%"))
    )
    last = result.scalar_one_or_none()
    seq = int(last.rsplit("-", 1)[1]) + 1 if last else 1
    return f"{prefix}-{seq:03d}"


async def get_profile_with_role(db: AsyncSession, profile_id: str, role: UserRole) -> Profile:
    profile = await db.get(Profile, profile_id)
    if profile is None or profile.role != role or not profile.active:
        label = "client" if role == UserRole.CLIENT else "chauffeur"
        raise ValidationFailed(f"{label} introuvable / Unknown {label}: {profile_id}")
    return profile


async def price_mission(db: AsyncSession, vehicle_category, distance_km) -> Quote:
    """Devis obligatoire avant enregistrement / Mandatory quote before persisting."""
    if distance_km is None:
        raise ValidationFailed(
            "Distance inconnue : renseignez distance_km ou les coordonnées / Distance cannot be computed"
        )
    if distance_km <= 0:
        raise ValidationFailed("La distance doit être positive / Distance must be positive")
    quote = await PricingService.quote(db, vehicle_category, distance_km)
    if quote is None:
        raise ValidationFailed(
            f"Aucun tarif pour {vehicle_category.value} à {distance_km} km / No pricing bracket"
        )
    return quote


def _admin_path(source: MissionStatus, target: MissionStatus) -> list[MissionStatus]:
    """Plus court chemin admin dans la table / Shortest admin path through the transition table."""
    queue = deque([(source, [])])
    seen = {source}
    while queue:
        status, path = queue.popleft()
        if status == target:
            return path
        for (src, dst), transition in TRANSITIONS.items():
            if src == status and dst not in seen and ActorKind.ADMIN in transition.actors:
                seen.add(dst)
                queue.append((dst, path + [dst]))
    raise ValidationFailed(f"Statut initial impossible / Unreachable initial status: {target.value}")


async def _flush(db: AsyncSession, what: str) -> None:
    try:
        await db.flush()
    except SQLAlchemyError as exc:
        logger.error("Write failed (%s): %s", what, exc)
        raise StorageError("Échec d'enregistrement, réessayez / Save failed, retry") from exc


async def create_mission(db: AsyncSession, data: MissionCreate, ctx: AuthContext) -> Mission:
    """Créer une mission en_acceptation / Create a mission in en_acceptation."""
    caps = ctx.capabilities
    if not caps.can_create_mission():
        raise PermissionDenied("Seuls les clients et administrateurs créent des missions")

    if caps.is_admin:
        if not data.client_id:
            raise ValidationFailed("client_id requis pour une création admin / client_id required")
        client = await get_profile_with_role(db, data.client_id, UserRole.CLIENT)
        client_id = client.id
        if data.chauffeur_id:
            await get_profile_with_role(db, data.chauffeur_id, UserRole.CHAUFFEUR)
    else:
        # Client : propriétaire automatique, champs admin ignorés / Client: auto-owner, admin fields ignored
        client_id = ctx.user_id

    pickup = data.pickup_address.model_dump()
    delivery = data.delivery_address.model_dump()
    distance = data.distance_km
    if distance is None:
        distance = DistanceService.between_addresses(pickup, delivery)
    quote = await price_mission(db, data.vehicle_category, distance)

    details = data.model_dump(
        exclude={
            "mission_type", "vehicle_category", "pickup_address", "delivery_address", "distance_km",
            "client_id", "status", "chauffeur_id", "chauffeur_price_ht",
        }
    )
    mission = Mission(
        mission_number=await next_mission_number(db),
        mission_type=data.mission_type,
        status=MissionStatus.EN_ACCEPTATION,
        client_id=client_id,
        created_by=ctx.user_id,
        pickup_address=pickup,
        delivery_address=delivery,
        vehicle_category=data.vehicle_category,
        distance_km=quote.distance_km,
        price_ht=quote.price_ht,
        price_ttc=quote.price_ttc,
        vat_rate=quote.vat_rate,
        chauffeur_paid=False,
        client_paid=False,
        invoiceable=True,
        is_linked=False,
        **details,
    )
    if caps.is_admin:
        mission.chauffeur_id = data.chauffeur_id
        mission.chauffeur_price_ht = data.chauffeur_price_ht

    db.add(mission)
    await _flush(db, "create mission")
    await db.refresh(mission)
    logger.info(
        "Mission %s created by %s for client %s (%s HT)",
        mission.mission_number, ctx.user_id, client_id, mission.price_ht,
    )

    if caps.is_admin and data.status and data.status != MissionStatus.EN_ACCEPTATION:
        for step in _admin_path(MissionStatus.EN_ACCEPTATION, data.status):
            mission = await transition_mission(
                db, mission.id, step, ctx, confirm=True,
                notes="Statut fixé à la création / Status set at creation",
            )
    return mission


async def create_restitution(db: AsyncSession, mission_id: str, ctx: AuthContext) -> Mission:
    """
    Créer la mission retour d'une livraison / Create the return mission of a delivery.
    Adresses et contacts inversés, même véhicule et même client, missions liées.
    """
    source = await get_visible_mission(db, mission_id, ctx)
    if not ctx.capabilities.can_create_mission():
        raise PermissionDenied("Création de restitution non autorisée / Not allowed to create a return")
    if source.mission_type != MissionType.LIV or source.linked_mission_id:
        raise ValidationFailed("Restitution déjà créée ou mission non livraison / Return not available")
    if source.status == MissionStatus.ANNULE:
        raise ValidationFailed("Mission annulée / Mission is cancelled")

    quote = await price_mission(db, source.vehicle_category, source.distance_km)
    restitution = Mission(
        mission_number=await next_mission_number(db),
        mission_type=MissionType.RES,
        status=MissionStatus.EN_ACCEPTATION,
        client_id=source.client_id,
        created_by=ctx.user_id,
        pickup_address=dict(source.delivery_address),
        delivery_address=dict(source.pickup_address),
        distance_km=quote.distance_km,
        price_ht=quote.price_ht,
        price_ttc=quote.price_ttc,
        vat_rate=quote.vat_rate,
        contact_pickup_name=source.contact_delivery_name,
        contact_pickup_phone=source.contact_delivery_phone,
        contact_pickup_email=source.contact_delivery_email,
        contact_delivery_name=source.contact_pickup_name,
        contact_delivery_phone=source.contact_pickup_phone,
        contact_delivery_email=source.contact_pickup_email,
        linked_mission_id=source.id,
        is_linked=True,
        chauffeur_paid=False,
        client_paid=False,
        invoiceable=True,
        **{field: getattr(source, field) for field in _VEHICLE_FIELDS},
    )
    db.add(restitution)
    await _flush(db, "create restitution")

    source.linked_mission_id = restitution.id
    source.is_linked = True
    await _flush(db, "link restitution")
    await db.refresh(restitution)
    logger.info("Return mission %s created for %s", restitution.mission_number, source.mission_number)
    return restitution


async def update_mission(db: AsyncSession, mission_id: str, data: MissionUpdate, ctx: AuthContext) -> Mission:
    """Édition admin (hors statut) / Admin edit (status excluded)."""
    mission = await get_mission(db, mission_id)
    caps = ctx.capabilities
    if not caps.is_admin:
        raise PermissionDenied("Édition réservée aux administrateurs / Admin only")
    if not caps.can_edit_mission(mission):
        raise ValidationFailed(f"Mission {mission.status.value} : modification impossible / Mission is closed")

    changes = data.model_dump(exclude_unset=True)

    if "chauffeur_id" in changes:
        new_driver = changes["chauffeur_id"]
        if new_driver is None and mission.status in DRIVER_REQUIRED_STATUSES:
            raise ValidationFailed(
                f"Chauffeur obligatoire en statut {mission.status.value} / Driver required in this status"
            )
        if new_driver is not None:
            await get_profile_with_role(db, new_driver, UserRole.CHAUFFEUR)

    for key in ("pickup_address", "delivery_address"):
        if changes.get(key) is not None:
            changes[key] = getattr(data, key).model_dump()
        elif key in changes:
            raise ValidationFailed(f"{key} ne peut pas être vide / cannot be empty")

    for key in ("vehicle_category", "distance_km"):
        if key in changes and changes[key] is None:
            raise ValidationFailed(f"{key} ne peut pas être vide / cannot be empty")

    if "price_ht" in changes:
        if changes["price_ht"] is None:
            raise ValidationFailed("price_ht ne peut pas être vide / cannot be empty")
        changes["price_ht"] = PricingService.round2(changes["price_ht"])
        changes["price_ttc"] = PricingService.ttc_from_ht(changes["price_ht"], mission.vat_rate)
    elif "vehicle_category" in changes or "distance_km" in changes:
        quote = await price_mission(
            db,
            changes.get("vehicle_category", mission.vehicle_category),
            changes.get("distance_km", mission.distance_km),
        )
        changes.update(
            distance_km=quote.distance_km,
            price_ht=quote.price_ht,
            price_ttc=PricingService.ttc_from_ht(quote.price_ht, mission.vat_rate),
        )

    for key, value in changes.items():
        setattr(mission, key, value)
    await _flush(db, "update mission")
    await db.refresh(mission)
    logger.info("Mission %s updated by %s: %s", mission.mission_number, ctx.user_id, sorted(changes))
    return mission


async def update_billing(
    db: AsyncSession, mission_id: str, data: MissionBillingUpdate, ctx: AuthContext
) -> Mission:
    """Drapeaux de facturation client, tout statut / Client billing flags, any status."""
    if not ctx.capabilities.is_admin:
        raise PermissionDenied("Réservé aux administrateurs / Admin only")
    mission = await get_mission(db, mission_id)
    for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(mission, key, value)
    await _flush(db, "update billing")
    return mission


async def list_missions(
    db: AsyncSession,
    ctx: AuthContext,
    status: MissionStatus | None = None,
    client_id: str | None = None,
    chauffeur_id: str | None = None,
    mission_type: MissionType | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Mission], int]:
    """Missions visibles par l'acteur / Missions visible to the actor."""
    query = select(Mission)
    if ctx.role == UserRole.CLIENT:
        query = query.where(Mission.client_id == ctx.user_id)
    elif ctx.role == UserRole.CHAUFFEUR:
        query = query.where(Mission.chauffeur_id == ctx.user_id)
    else:
        if client_id:
            query = query.where(Mission.client_id == client_id)
        if chauffeur_id:
            query = query.where(Mission.chauffeur_id == chauffeur_id)

    if status:
        query = query.where(Mission.status == status)
    if mission_type:
        query = query.where(Mission.mission_type == mission_type)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(
            Mission.mission_number.ilike(pattern),
            Mission.vehicle_registration.ilike(pattern),
            Mission.vehicle_make.ilike(pattern),
            Mission.vehicle_model.ilike(pattern),
        ))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
    result = await db.execute(query.order_by(Mission.created_at.desc()).limit(limit).offset(offset))
    return list(result.scalars().all()), total


def can_create_restitution(mission: Mission, ctx: AuthContext) -> bool:
    caps = ctx.capabilities
    return (
        caps.can_create_mission()
        and caps.can_view(mission)
        and mission.mission_type == MissionType.LIV
        and not mission.linked_mission_id
        and mission.status != MissionStatus.ANNULE
    )