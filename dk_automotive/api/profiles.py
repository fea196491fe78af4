"""
Routes Profils / Profile routes.
Complétion du profil client ou chauffeur, gestion des comptes par l'admin.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dk_automotive.api.deps import get_auth_context, get_current_user, require_admin, require_role
from dk_automotive.database import get_db
from dk_automotive.models.user import Client, Driver, Profile, UserRole
from dk_automotive.schemas.profile import (
    ClientProfileComplete,
    DriverProfileComplete,
    ProfileAdminUpdate,
    ProfileRead,
    ProfileUpdate,
)
from dk_automotive.services.capabilities import AuthContext

logger = logging.getLogger(__name__)

router = APIRouter()


async def _reload(db: AsyncSession, profile: Profile, ctx: AuthContext) -> Profile:
    await db.flush()
    await db.refresh(profile)
    ctx.update(profile)
    return profile


@router.get("/me", response_model=ProfileRead)
async def get_me(user: Profile = Depends(get_current_user)):
    return user


@router.patch("/me", response_model=ProfileRead)
async def update_me(
    data: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    user: Profile = Depends(get_current_user),
    ctx: AuthContext = Depends(get_auth_context),
):
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(user, key, value)
    return await _reload(db, user, ctx)


@router.put("/me/client", response_model=ProfileRead)
async def complete_client_profile(
    data: ClientProfileComplete,
    db: AsyncSession = Depends(get_db),
    user: Profile = Depends(get_current_user),
    ctx: AuthContext = Depends(require_role(UserRole.CLIENT)),
):
    """Compléter le profil client / Complete the client profile."""
    values = data.model_dump()
    if data.billing_address:
        values["billing_address"] = data.billing_address.model_dump()
    client = await db.get(Client, user.id)
    if client is None:
        db.add(Client(id=user.id, **values))
    else:
        for key, value in values.items():
            setattr(client, key, value)
    user.profile_completed = True
    logger.info("Client profile completed for %s", user.id)
    return await _reload(db, user, ctx)


@router.put("/me/driver", response_model=ProfileRead)
async def complete_driver_profile(
    data: DriverProfileComplete,
    db: AsyncSession = Depends(get_db),
    user: Profile = Depends(get_current_user),
    ctx: AuthContext = Depends(require_role(UserRole.CHAUFFEUR)),
):
    """Compléter le profil chauffeur / Complete the driver profile."""
    values = data.model_dump()
    if data.billing_address:
        values["billing_address"] = data.billing_address.model_dump()
    driver = await db.get(Driver, user.id)
    if driver is None:
        db.add(Driver(id=user.id, **values))
    else:
        for key, value in values.items():
            setattr(driver, key, value)
    user.profile_completed = True
    logger.info("Driver profile completed for %s", user.id)
    return await _reload(db, user, ctx)


@router.get("/", response_model=list[ProfileRead])
async def list_profiles(
    role: UserRole | None = None,
    active: bool | None = None,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
):
    """Lister les comptes (admin) / List accounts (admin)."""
    query = select(Profile).order_by(Profile.created_at.desc())
    if role:
        query = query.where(Profile.role == role)
    if active is not None:
        query = query.where(Profile.active.is_(active))
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{profile_id}", response_model=ProfileRead)
async def get_profile(
    profile_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
):
    profile = await db.get(Profile, profile_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


@router.patch("/{profile_id}", response_model=ProfileRead)
async def update_profile(
    profile_id: str,
    data: ProfileAdminUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
):
    """Modifier / désactiver un compte (admin) / Edit or deactivate an account (admin)."""
    profile = await db.get(Profile, profile_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    if profile.id == ctx.user_id and data.active is False:
        raise HTTPException(status_code=422, detail="Impossible de désactiver son propre compte")
    for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(profile, key, value)
    await db.flush()
    await db.refresh(profile)
    logger.info("Profile %s updated by %s", profile_id, ctx.user_id)
    return profile
