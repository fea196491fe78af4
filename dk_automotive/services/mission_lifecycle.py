"""
Cycle de vie des missions / Mission lifecycle.

Toute modification de statut passe par transition_mission : table des transitions,
capacités de l'acteur, préconditions, écriture conditionnelle sur le statut attendu,
puis ajout d'une ligne d'historique.
Every status change goes through transition_mission: transition table, actor
capabilities, preconditions, conditional write on the expected status, then one
history row.
"""

import logging
from datetime import date

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dk_automotive.database import utcnow
from dk_automotive.exceptions import (
    ConcurrentModification,
    NotFound,
    PermissionDenied,
    StorageError,
    TransitionRejected,
    ValidationFailed,
)
from dk_automotive.models.mission import Mission, MissionStatus
from dk_automotive.models.mission_status_history import MissionStatusHistory
from dk_automotive.services.capabilities import AuthContext
from dk_automotive.services.status_machine import ActorKind, Transition, get_transition

logger = logging.getLogger(__name__)


def address_is_complete(address: dict | None) -> bool:
    if not address:
        return False
    return bool(address.get("city")) and bool(address.get("street") or address.get("formatted_address"))


def missing_acceptance_fields(mission: Mission) -> list[str]:
    """Champs requis avant acceptation / Fields required before acceptance."""
    missing = []
    if not address_is_complete(mission.pickup_address):
        missing.append("pickup_address")
    if not address_is_complete(mission.delivery_address):
        missing.append("delivery_address")
    if mission.vehicle_category is None:
        missing.append("vehicle_category")
    for field in ("distance_km", "price_ht", "price_ttc"):
        if getattr(mission, field) is None:
            missing.append(field)
    return missing


async def get_mission(db: AsyncSession, mission_id: str) -> Mission:
    mission = await db.get(Mission, mission_id)
    if mission is None:
        raise NotFound("Mission introuvable / Mission not found")
    return mission


async def get_visible_mission(db: AsyncSession, mission_id: str, ctx: AuthContext) -> Mission:
    """Mission lisible par l'acteur / Mission readable by the actor."""
    mission = await get_mission(db, mission_id)
    if not ctx.capabilities.can_view(mission):
        raise PermissionDenied("Accès refusé à cette mission / Access to this mission denied")
    return mission


def check_preconditions(
    mission: Mission,
    transition: Transition,
    actor_kinds: frozenset[ActorKind],
    confirm: bool,
    today: date,
) -> None:
    """Préconditions de la transition / Transition preconditions (ValidationFailed)."""
    if transition.target == MissionStatus.ACCEPTE:
        missing = missing_acceptance_fields(mission)
        if missing:
            raise ValidationFailed(f"Champs requis manquants / Missing required fields: {', '.join(missing)}")

    if transition.requires_driver and not mission.chauffeur_id:
        raise ValidationFailed("Aucun chauffeur assigné / No driver assigned")

    if transition.requires_confirmation and not confirm:
        raise ValidationFailed("Confirmation requise / Explicit confirmation required")

    # Le jour J ne s'applique qu'au chauffeur / The pickup-day gate only binds the driver
    if transition.driver_on_pickup_day and ActorKind.ADMIN not in actor_kinds:
        if mission.d1_pec != today.isoformat():
            raise ValidationFailed(
                f"Prise en charge possible uniquement le {mission.d1_pec or '(date non planifiée)'} "
                "/ Pickup only allowed on the scheduled day"
            )


async def transition_mission(
    db: AsyncSession,
    mission_id: str,
    target: MissionStatus,
    ctx: AuthContext,
    expected_status: MissionStatus | None = None,
    confirm: bool = False,
    notes: str | None = None,
    today: date | None = None,
) -> Mission:
    """Appliquer une transition de statut / Apply one status transition."""
    target = MissionStatus(target)
    today = today or date.today()
    mission = await get_mission(db, mission_id)
    current = mission.status

    if expected_status is not None and MissionStatus(expected_status) != current:
        raise ConcurrentModification(
            f"Le statut a changé ({current.value}) / Status changed since it was read"
        )

    transition = get_transition(current, target)
    if transition is None:
        logger.info("Rejected transition %s -> %s on mission %s", current.value, target.value, mission_id)
        raise TransitionRejected(
            f"Transition {current.value} → {target.value} non autorisée / Transition not allowed"
        )

    actor_kinds = ctx.capabilities.actor_kinds(mission)
    if not actor_kinds & transition.actors:
        logger.warning(
            "Profile %s (%s) denied transition %s -> %s on mission %s",
            ctx.user_id, ctx.role.value, current.value, target.value, mission_id,
        )
        raise PermissionDenied(
            f"Transition {current.value} → {target.value} réservée à: "
            f"{', '.join(sorted(a.value for a in transition.actors))}"
        )

    check_preconditions(mission, transition, actor_kinds, confirm, today)

    now = utcnow()
    values = {"status": target, "updated_at": now}
    if transition.sets_completion_date:
        # Posée une seule fois / Set only once
        values["completion_date"] = func.coalesce(Mission.completion_date, now)

    try:
        result = await db.execute(
            update(Mission)
            .where(Mission.id == mission_id, Mission.status == current)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning("Concurrent status change on mission %s (expected %s)", mission_id, current.value)
            raise ConcurrentModification(
                "La mission a été modifiée entre-temps, rechargez-la / Mission was modified concurrently"
            )

        db.add(MissionStatusHistory(
            mission_id=mission_id,
            old_status=current,
            new_status=target,
            changed_by=ctx.user_id,
            changed_at=now,
            notes=notes,
        ))
        await db.flush()
        await db.refresh(mission)
    except SQLAlchemyError as exc:
        logger.error("Status write failed on mission %s: %s", mission_id, exc)
        raise StorageError("Échec de mise à jour du statut, réessayez / Status update failed, retry") from exc

    logger.info(
        "Mission %s: %s -> %s by %s (%s)",
        mission.mission_number, current.value, target.value, ctx.user_id, ctx.role.value,
    )
    return mission


async def cancel_mission(db: AsyncSession, mission_id: str, ctx: AuthContext, notes: str | None = None) -> Mission:
    """Annulation (en_acceptation uniquement) / Cancellation (en_acceptation only)."""
    return await transition_mission(db, mission_id, MissionStatus.ANNULE, ctx, notes=notes)


async def get_status_history(db: AsyncSession, mission_id: str) -> list[MissionStatusHistory]:
    result = await db.execute(
        select(MissionStatusHistory)
        .where(MissionStatusHistory.mission_id == mission_id)
        .order_by(MissionStatusHistory.changed_at, MissionStatusHistory.id)
    )
    return list(result.scalars().all())
