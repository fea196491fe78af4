"""Routes API / API routes."""

from fastapi import APIRouter

from dk_automotive.api import (
    auth,
    profiles,
    missions,
    invoices,
    documents,
    files,
    pricing,
    contacts,
    stats,
    admin,
)

api_router = APIRouter(prefix="/api")

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(profiles.router, prefix="/profiles", tags=["profiles"])
api_router.include_router(missions.router, prefix="/missions", tags=["missions"])
api_router.include_router(invoices.router, prefix="/invoices", tags=["invoices"])
api_router.include_router(documents.router, prefix="/documents", tags=["documents"])
api_router.include_router(files.router, prefix="/files", tags=["files"])
api_router.include_router(pricing.router, prefix="/pricing", tags=["pricing"])
api_router.include_router(contacts.router, prefix="/contacts", tags=["contacts"])
api_router.include_router(stats.router, prefix="/stats", tags=["stats"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
