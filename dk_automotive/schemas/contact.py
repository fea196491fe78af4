"""Schémas Contact / Client address-book schemas."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class ContactCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=20)
    position: str | None = Field(default=None, max_length=100)
    is_primary: bool = False
    notes: str | None = None
    client_id: str | None = None  # admin uniquement / admin only


class ContactUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=20)
    position: str | None = Field(default=None, max_length=100)
    is_primary: bool | None = None
    notes: str | None = None


class ContactRead(BaseModel):
    id: int
    client_id: str
    first_name: str
    last_name: str
    full_name: str
    email: str | None
    phone: str | None
    position: str | None
    is_primary: bool
    notes: str | None
    created_at: datetime
    model_config = {"from_attributes": True}
