"""
Service Identité / Identity service.
Recherche de rôle, invitations admin (création, validation, consommation).
Role lookup, admin invitations (creation, validation, redemption).
"""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dk_automotive.config import settings
from dk_automotive.exceptions import ConcurrentModification, PermissionDenied
from dk_automotive.models.admin_invitation import AdminInvitationToken
from dk_automotive.models.user import Profile, UserRole
from dk_automotive.services.capabilities import AuthContext
from dk_automotive.utils.auth import generate_invitation_token

logger = logging.getLogger(__name__)


def _aware(value: datetime) -> datetime:
    # SQLite renvoie des datetimes naïfs / SQLite returns naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


async def get_user_role(db: AsyncSession, profile_id: str) -> UserRole | None:
    """Rôle d'un profil / Role of a profile, None if unknown."""
    result = await db.execute(select(Profile.role).where(Profile.id == profile_id))
    return result.scalar_one_or_none()


async def create_invitation(db: AsyncSession, email: str, ctx: AuthContext) -> AdminInvitationToken:
    if not ctx.capabilities.is_admin:
        raise PermissionDenied("Réservé aux administrateurs / Admin only")
    invitation = AdminInvitationToken(
        token=generate_invitation_token(),
        email=email.lower(),
        expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.ADMIN_INVITE_EXPIRE_HOURS),
        used=False,
        created_by=ctx.user_id,
    )
    db.add(invitation)
    await db.flush()
    logger.info("Admin invitation created for %s by %s", invitation.email, ctx.user_id)
    return invitation


async def validate_admin_token(db: AsyncSession, token: str, email: str | None = None) -> AdminInvitationToken | None:
    """Jeton valide = existant, non utilisé, non expiré (et pour cet email) / Valid token or None."""
    result = await db.execute(select(AdminInvitationToken).where(AdminInvitationToken.token == token))
    invitation = result.scalar_one_or_none()
    if invitation is None or invitation.used:
        return None
    if _aware(invitation.expires_at) <= datetime.now(timezone.utc):
        return None
    if email is not None and invitation.email != email.lower():
        return None
    return invitation


async def redeem_invitation(db: AsyncSession, invitation: AdminInvitationToken, profile_id: str) -> None:
    """Marquer le jeton utilisé, une seule fois / Mark the token used, exactly once."""
    result = await db.execute(
        update(AdminInvitationToken)
        .where(AdminInvitationToken.id == invitation.id, AdminInvitationToken.used.is_(False))
        .values(used=True, used_by=profile_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ConcurrentModification("Invitation déjà utilisée / Invitation already used")
