"""
Table des transitions de statut / Mission status transition table.

Point d'application unique partagé par les routes admin, client et chauffeur.
Single enforcement point shared by the admin, client and driver routes.
"""

import enum
from dataclasses import dataclass

from dk_automotive.models.mission import MissionStatus


class ActorKind(str, enum.Enum):
    """Qualité de l'acteur vis-à-vis d'une mission / Actor standing towards a mission."""
    ADMIN = "admin"
    OWNER = "owner"  # client propriétaire / owning client
    DRIVER = "driver"  # chauffeur assigné / assigned driver


# Plus aucune mutation hors facturation chauffeur / No mutation except driver invoicing
TERMINAL_STATUSES = frozenset({MissionStatus.TERMINE, MissionStatus.ANNULE})

# Statuts exigeant un chauffeur assigné / Statuses requiring an assigned driver
DRIVER_REQUIRED_STATUSES = frozenset({
    MissionStatus.PRISE_EN_CHARGE,
    MissionStatus.LIVRAISON,
    MissionStatus.LIVRE,
})

# Statuts "mission réalisée" (facturation, statistiques) / Completed statuses (billing, stats)
COMPLETED_STATUSES = frozenset({MissionStatus.LIVRE, MissionStatus.TERMINE})


@dataclass(frozen=True)
class Transition:
    source: MissionStatus
    target: MissionStatus
    actors: frozenset[ActorKind]
    requires_driver: bool = False
    requires_confirmation: bool = False
    # Chauffeur : uniquement le jour de prise en charge (D1_PEC) / Driver: only on pickup day
    driver_on_pickup_day: bool = False
    sets_completion_date: bool = False


_ADMIN = frozenset({ActorKind.ADMIN})
_ADMIN_OR_DRIVER = frozenset({ActorKind.ADMIN, ActorKind.DRIVER})

_FORWARD = [
    Transition(MissionStatus.EN_ACCEPTATION, MissionStatus.ACCEPTE, _ADMIN),
    Transition(
        MissionStatus.EN_ACCEPTATION, MissionStatus.ANNULE,
        frozenset({ActorKind.ADMIN, ActorKind.OWNER}),
    ),
    Transition(
        MissionStatus.ACCEPTE, MissionStatus.PRISE_EN_CHARGE, _ADMIN_OR_DRIVER,
        requires_driver=True, driver_on_pickup_day=True,
    ),
    Transition(
        MissionStatus.PRISE_EN_CHARGE, MissionStatus.LIVRAISON, _ADMIN_OR_DRIVER,
        requires_driver=True,
    ),
    Transition(
        MissionStatus.LIVRAISON, MissionStatus.LIVRE, _ADMIN_OR_DRIVER,
        requires_driver=True, requires_confirmation=True, sets_completion_date=True,
    ),
    Transition(MissionStatus.LIVRE, MissionStatus.TERMINE, _ADMIN),
]

# Incident : depuis tout statut non terminal / from any non-terminal status
_INCIDENT = [
    Transition(source, MissionStatus.INCIDENT, _ADMIN)
    for source in MissionStatus
    if source not in TERMINAL_STATUSES and source != MissionStatus.INCIDENT
]

TRANSITIONS: dict[tuple[MissionStatus, MissionStatus], Transition] = {
    (t.source, t.target): t for t in _FORWARD + _INCIDENT
}


def get_transition(source: MissionStatus, target: MissionStatus) -> Transition | None:
    """Transition source → cible, None si absente / Transition or None if not in the table."""
    return TRANSITIONS.get((MissionStatus(source), MissionStatus(target)))


def next_statuses(source: MissionStatus) -> list[MissionStatus]:
    """Statuts atteignables depuis source / Statuses reachable from source."""
    return [t.target for t in TRANSITIONS.values() if t.source == source]


def is_terminal(status: MissionStatus) -> bool:
    return MissionStatus(status) in TERMINAL_STATUSES
