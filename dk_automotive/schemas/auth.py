"""
Schémas d'authentification / Authentication schemas.
Inscription, login, tokens, refresh, invitations admin.
"""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    """Requête de connexion / Login request."""
    email: EmailStr
    password: str = Field(min_length=1, max_length=200)


class RegisterRequest(BaseModel):
    """Inscription client ou chauffeur / Client or driver sign-up."""
    email: EmailStr
    password: str = Field(min_length=8, max_length=200)
    full_name: str | None = Field(default=None, max_length=150)
    role: str = Field(default="client", pattern="^(client|chauffeur)$")


class AdminRegisterRequest(BaseModel):
    """Inscription admin sur invitation / Admin sign-up with an invitation token."""
    token: str = Field(min_length=10, max_length=64)
    email: EmailStr
    password: str = Field(min_length=8, max_length=200)
    full_name: str | None = Field(default=None, max_length=150)


class TokenResponse(BaseModel):
    """Réponse avec tokens / Token response."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseModel):
    """Requête de rafraîchissement / Refresh request."""
    refresh_token: str


class InvitationCreate(BaseModel):
    email: EmailStr


class InvitationRead(BaseModel):
    id: int
    token: str
    email: str
    expires_at: datetime
    used: bool
    used_by: str | None
    created_at: datetime
    model_config = {"from_attributes": True}


class TokenValidation(BaseModel):
    valid: bool
    email: str | None = None
