"""Routes Administration / Admin routes (invitations administrateur)."""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dk_automotive.api.deps import require_admin
from dk_automotive.database import get_db
from dk_automotive.models.admin_invitation import AdminInvitationToken
from dk_automotive.schemas.auth import InvitationCreate, InvitationRead
from dk_automotive.services.capabilities import AuthContext
from dk_automotive.services.identity_service import create_invitation

router = APIRouter()


@router.post("/invitations", response_model=InvitationRead, status_code=201)
async def invite_admin(
    data: InvitationCreate,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
):
    """Créer une invitation administrateur / Create an admin invitation."""
    return await create_invitation(db, data.email, ctx)


@router.get("/invitations", response_model=list[InvitationRead])
async def list_invitations(
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
):
    result = await db.execute(select(AdminInvitationToken).order_by(AdminInvitationToken.created_at.desc()))
    return result.scalars().all()
