"""
Routes d'authentification / Authentication routes.
Inscription, login, refresh token, profil courant, inscription admin sur invitation.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dk_automotive.config import settings
from dk_automotive.database import get_db
from dk_automotive.models.user import Profile, UserRole
from dk_automotive.rate_limit import limiter
from dk_automotive.schemas.auth import (
    AdminRegisterRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    TokenValidation,
)
from dk_automotive.schemas.profile import ProfileRead
from dk_automotive.services.identity_service import redeem_invitation, validate_admin_token
from dk_automotive.utils.auth import create_access_token, create_refresh_token, decode_token, hash_password, verify_password
from dk_automotive.api.deps import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()


def _client_ip(request: Request) -> str:
    """Extraire l'IP client / Extract client IP (supports X-Forwarded-For behind proxy)."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _tokens(profile: Profile) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(profile.id, profile.role.value),
        refresh_token=create_refresh_token(profile.id),
    )


async def _ensure_email_free(db: AsyncSession, email: str) -> None:
    result = await db.execute(select(Profile.id).where(Profile.email == email))
    if result.scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail="Email déjà utilisé / Email already registered")


@router.post("/register", response_model=TokenResponse, status_code=201)
@limiter.limit(settings.RATE_LIMIT_REGISTER)
async def register(request: Request, data: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Inscription client ou chauffeur / Client or driver sign-up."""
    email = data.email.lower()
    await _ensure_email_free(db, email)

    profile = Profile(
        email=email,
        hashed_password=hash_password(data.password),
        full_name=data.full_name,
        role=UserRole(data.role),
        profile_completed=False,
        active=True,
    )
    db.add(profile)
    await db.flush()
    logger.info("Profile %s registered as %s from %s", profile.id, profile.role.value, _client_ip(request))
    return _tokens(profile)


@router.post("/register-admin", response_model=TokenResponse, status_code=201)
@limiter.limit(settings.RATE_LIMIT_REGISTER)
async def register_admin(request: Request, data: AdminRegisterRequest, db: AsyncSession = Depends(get_db)):
    """Inscription admin avec jeton d'invitation / Admin sign-up with an invitation token."""
    email = data.email.lower()
    invitation = await validate_admin_token(db, data.token, email)
    if invitation is None:
        logger.warning("Invalid admin invitation attempt for %s from %s", email, _client_ip(request))
        raise HTTPException(status_code=403, detail="Invitation invalide ou expirée / Invalid or expired invitation")
    await _ensure_email_free(db, email)

    profile = Profile(
        email=email,
        hashed_password=hash_password(data.password),
        full_name=data.full_name,
        role=UserRole.ADMIN,
        profile_completed=True,
        active=True,
    )
    db.add(profile)
    await db.flush()
    await redeem_invitation(db, invitation, profile.id)
    logger.info("Admin %s registered with invitation %s", profile.id, invitation.id)
    return _tokens(profile)


@router.get("/invitations/validate", response_model=TokenValidation)
async def validate_invitation(token: str, db: AsyncSession = Depends(get_db)):
    """Vérifier un jeton d'invitation / Check an invitation token."""
    invitation = await validate_admin_token(db, token)
    if invitation is None:
        return TokenValidation(valid=False)
    return TokenValidation(valid=True, email=invitation.email)


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.RATE_LIMIT_LOGIN)
async def login(request: Request, data: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Connexion par identifiants / Login with credentials."""
    result = await db.execute(select(Profile).where(Profile.email == data.email.lower()))
    profile = result.scalar_one_or_none()
    ip = _client_ip(request)

    if profile is None or not verify_password(data.password, profile.hashed_password):
        logger.warning("Failed login for %s from %s", data.email, ip)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    if not profile.active:
        logger.warning("Login attempt on disabled account %s from %s", profile.id, ip)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account disabled")

    profile.last_login = datetime.now(timezone.utc)
    logger.info("Login %s (%s) from %s", profile.id, profile.role.value, ip)
    return _tokens(profile)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(data: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """Rafraîchir les tokens / Refresh tokens."""
    payload = decode_token(data.refresh_token)
    if payload is None or payload.get("type") != "refresh":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    profile = await db.get(Profile, payload["sub"])
    if profile is None or not profile.active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")

    return _tokens(profile)


@router.get("/me", response_model=ProfileRead)
async def me(user: Profile = Depends(get_current_user)):
    """Profil de l'utilisateur connecté / Current user profile."""
    return user
