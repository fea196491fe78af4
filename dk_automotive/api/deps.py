"""
Dépendances d'authentification et d'autorisation / Authentication and authorization dependencies.
Injectées dans les routes via Depends().
"""

from collections.abc import AsyncIterator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from dk_automotive.database import get_db
from dk_automotive.models.user import Profile, UserRole
from dk_automotive.services.capabilities import AuthContext
from dk_automotive.utils.auth import decode_token

security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    """Extraire et valider le profil depuis le JWT / Extract and validate the profile from the JWT."""
    payload = decode_token(credentials.credentials)
    if payload is None or payload.get("type") != "access":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    profile = await db.get(Profile, payload["sub"])
    if profile is None or not profile.active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")

    return profile


async def get_auth_context(user: Profile = Depends(get_current_user)) -> AsyncIterator[AuthContext]:
    """Contexte par requête : init, puis teardown en sortie / Per-request context: init, teardown on exit."""
    ctx = AuthContext.init(user)
    try:
        yield ctx
    finally:
        ctx.teardown()


def require_role(*roles: UserRole):
    """Factory de dépendance qui vérifie le rôle / Dependency factory that checks the role."""

    async def _check(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if ctx.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role required: {' or '.join(r.value for r in roles)}",
            )
        return ctx

    return _check


require_admin = require_role(UserRole.ADMIN)
