"""Routes Contacts / Client address-book routes (client : les siens, admin : tous)."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dk_automotive.api.deps import require_role
from dk_automotive.database import get_db
from dk_automotive.models.contact import Contact
from dk_automotive.models.user import Profile, UserRole
from dk_automotive.schemas.contact import ContactCreate, ContactRead, ContactUpdate
from dk_automotive.services.capabilities import AuthContext

router = APIRouter()

_client_or_admin = require_role(UserRole.CLIENT, UserRole.ADMIN)


async def _get_owned(db: AsyncSession, contact_id: int, ctx: AuthContext) -> Contact:
    contact = await db.get(Contact, contact_id)
    if not contact or (not ctx.capabilities.is_admin and contact.client_id != ctx.user_id):
        raise HTTPException(status_code=404, detail="Contact not found")
    return contact


async def _clear_primary(db: AsyncSession, client_id: str, keep_id: int | None = None) -> None:
    # Un seul contact principal par client / One primary contact per client
    result = await db.execute(
        select(Contact).where(Contact.client_id == client_id, Contact.is_primary.is_(True))
    )
    for other in result.scalars().all():
        if other.id != keep_id:
            other.is_primary = False


@router.get("/", response_model=list[ContactRead])
async def list_contacts(
    client_id: str | None = None,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(_client_or_admin),
):
    query = select(Contact).order_by(Contact.is_primary.desc(), Contact.last_name, Contact.first_name)
    if not ctx.capabilities.is_admin:
        query = query.where(Contact.client_id == ctx.user_id)
    elif client_id:
        query = query.where(Contact.client_id == client_id)
    result = await db.execute(query)
    return result.scalars().all()


@router.post("/", response_model=ContactRead, status_code=201)
async def create_contact(
    data: ContactCreate,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(_client_or_admin),
):
    client_id = ctx.user_id
    if ctx.capabilities.is_admin:
        if not data.client_id:
            raise HTTPException(status_code=422, detail="client_id requis / client_id required")
        client = await db.get(Profile, data.client_id)
        if not client or client.role != UserRole.CLIENT:
            raise HTTPException(status_code=404, detail="Client not found")
        client_id = client.id

    if data.is_primary:
        await _clear_primary(db, client_id)
    contact = Contact(**data.model_dump(exclude={"client_id"}), client_id=client_id, created_by=ctx.user_id)
    db.add(contact)
    await db.flush()
    await db.refresh(contact)
    return contact


@router.patch("/{contact_id}", response_model=ContactRead)
async def update_contact(
    contact_id: int,
    data: ContactUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(_client_or_admin),
):
    contact = await _get_owned(db, contact_id, ctx)
    changes = data.model_dump(exclude_unset=True)
    for required in ("first_name", "last_name", "is_primary"):
        if changes.get(required, "") is None:
            changes.pop(required)
    if changes.get("is_primary"):
        await _clear_primary(db, contact.client_id, keep_id=contact.id)
    for key, value in changes.items():
        setattr(contact, key, value)
    await db.flush()
    await db.refresh(contact)
    return contact


@router.delete("/{contact_id}", status_code=204)
async def delete_contact(
    contact_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(_client_or_admin),
):
    contact = await _get_owned(db, contact_id, ctx)
    await db.delete(contact)
