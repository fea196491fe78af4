"""
Contexte d'authentification et capacités / Auth context and capabilities.

Le contexte est créé par requête (init), rafraîchi après un changement de profil
(update) et vidé en fin de requête (teardown). Les capacités sont calculées une
fois à partir du rôle et de l'identité, puis consommées par la machine à états
et les routes au lieu de tests de rôle dispersés.
"""

from dataclasses import dataclass, field

from dk_automotive.models.mission import Mission, MissionStatus
from dk_automotive.models.user import Profile, UserRole
from dk_automotive.services.status_machine import (
    TERMINAL_STATUSES,
    ActorKind,
    get_transition,
    next_statuses,
)


@dataclass(frozen=True)
class Capabilities:
    """Droits d'un acteur / What one actor may do."""

    user_id: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def actor_kinds(self, mission: Mission) -> frozenset[ActorKind]:
        """Qualités de l'acteur pour cette mission / Actor standings for this mission."""
        kinds = set()
        if self.role == UserRole.ADMIN:
            kinds.add(ActorKind.ADMIN)
        elif self.role == UserRole.CLIENT and mission.client_id == self.user_id:
            kinds.add(ActorKind.OWNER)
        elif self.role == UserRole.CHAUFFEUR and mission.chauffeur_id == self.user_id:
            kinds.add(ActorKind.DRIVER)
        return frozenset(kinds)

    def can_view(self, mission: Mission) -> bool:
        return bool(self.actor_kinds(mission))

    def can_create_mission(self) -> bool:
        return self.role in (UserRole.ADMIN, UserRole.CLIENT)

    def can_transition(self, mission: Mission, target: MissionStatus) -> bool:
        transition = get_transition(mission.status, target)
        if transition is None:
            return False
        return bool(self.actor_kinds(mission) & transition.actors)

    def allowed_transitions(self, mission: Mission) -> list[MissionStatus]:
        return [s for s in next_statuses(mission.status) if self.can_transition(mission, s)]

    def can_cancel(self, mission: Mission) -> bool:
        return self.can_transition(mission, MissionStatus.ANNULE)

    def can_edit_pricing(self) -> bool:
        return self.is_admin

    def can_edit_mission(self, mission: Mission) -> bool:
        return self.is_admin and mission.status not in TERMINAL_STATUSES

    def can_manage_invoice(self, mission: Mission) -> bool:
        kinds = self.actor_kinds(mission)
        return ActorKind.ADMIN in kinds or ActorKind.DRIVER in kinds

    def can_mark_paid(self) -> bool:
        return self.is_admin


@dataclass
class AuthContext:
    """Contexte injecté par requête / Per-request injected context."""

    user_id: str | None = None
    role: UserRole | None = None
    email: str | None = None
    profile_completed: bool = False
    _capabilities: Capabilities | None = field(default=None, repr=False)

    @classmethod
    def init(cls, profile: Profile) -> "AuthContext":
        ctx = cls()
        ctx.update(profile)
        return ctx

    def update(self, profile: Profile) -> None:
        """Resynchroniser après connexion ou modification du profil / Resync after login or profile change."""
        self.user_id = profile.id
        self.role = UserRole(profile.role)
        self.email = profile.email
        self.profile_completed = bool(profile.profile_completed)
        self._capabilities = None

    def teardown(self) -> None:
        self.user_id = None
        self.role = None
        self.email = None
        self.profile_completed = False
        self._capabilities = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def capabilities(self) -> Capabilities:
        if not self.is_authenticated:
            raise RuntimeError("AuthContext used after teardown")
        if self._capabilities is None:
            self._capabilities = Capabilities(user_id=self.user_id, role=self.role)
        return self._capabilities
