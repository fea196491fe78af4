"""
Routes Tarification / Pricing routes.
Grille par catégorie et TVA (admin), devis pour tout utilisateur connecté.
"""

import logging
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dk_automotive.api.deps import get_auth_context, require_admin
from dk_automotive.database import get_db
from dk_automotive.exceptions import ValidationFailed
from dk_automotive.models.mission import VehicleCategory
from dk_automotive.models.pricing import PricingGrid, VatSetting
from dk_automotive.schemas.pricing import (
    PricingGridCreate,
    PricingGridRead,
    PricingGridUpdate,
    QuoteRead,
    QuoteRequest,
    VatSettingCreate,
    VatSettingRead,
)
from dk_automotive.services.capabilities import AuthContext
from dk_automotive.services.distance_service import DistanceService
from dk_automotive.services.pricing_service import PricingService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/grids", response_model=list[PricingGridRead])
async def list_grids(
    vehicle_category: VehicleCategory | None = None,
    active_only: bool = False,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    query = select(PricingGrid).order_by(PricingGrid.vehicle_category, PricingGrid.min_distance)
    if vehicle_category:
        query = query.where(PricingGrid.vehicle_category == vehicle_category)
    if active_only:
        query = query.where(PricingGrid.active.is_(True))
    result = await db.execute(query)
    return result.scalars().all()


@router.post("/grids", response_model=PricingGridRead, status_code=201)
async def create_grid(
    data: PricingGridCreate,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
):
    grid = PricingGrid(**data.model_dump(), updated_by=ctx.user_id)
    db.add(grid)
    await db.flush()
    await db.refresh(grid)
    logger.info("Pricing bracket %s created by %s", grid, ctx.user_id)
    return grid


@router.patch("/grids/{grid_id}", response_model=PricingGridRead)
async def update_grid(
    grid_id: int,
    data: PricingGridUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
):
    grid = await db.get(PricingGrid, grid_id)
    if not grid:
        raise HTTPException(status_code=404, detail="Pricing bracket not found")
    for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(grid, key, value)
    if grid.max_distance < grid.min_distance:
        raise ValidationFailed("max_distance doit être >= min_distance")
    grid.updated_by = ctx.user_id
    await db.flush()
    await db.refresh(grid)
    return grid


@router.delete("/grids/{grid_id}", status_code=204)
async def delete_grid(
    grid_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
):
    grid = await db.get(PricingGrid, grid_id)
    if not grid:
        raise HTTPException(status_code=404, detail="Pricing bracket not found")
    await db.delete(grid)


@router.get("/vat", response_model=list[VatSettingRead])
async def list_vat(
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    result = await db.execute(select(VatSetting).order_by(VatSetting.effective_date.desc()))
    return result.scalars().all()


@router.get("/vat/current")
async def current_vat(
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> dict[str, Decimal]:
    return {"rate": await PricingService.current_vat_rate(db)}


@router.post("/vat", response_model=VatSettingRead, status_code=201)
async def create_vat(
    data: VatSettingCreate,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(require_admin),
):
    setting = VatSetting(rate=data.rate, effective_date=data.effective_date, modified_by=ctx.user_id)
    db.add(setting)
    await db.flush()
    await db.refresh(setting)
    logger.info("VAT rate %s%% effective %s set by %s", setting.rate, setting.effective_date, ctx.user_id)
    return setting


@router.post("/quote", response_model=QuoteRead)
async def quote(
    data: QuoteRequest,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    """Devis HT/TTC (étape 2 du formulaire) / HT/TTC quote (wizard step 2)."""
    distance = data.distance_km
    if distance is None:
        distance = DistanceService.between_addresses(
            {"lat": data.pickup_lat, "lng": data.pickup_lng},
            {"lat": data.delivery_lat, "lng": data.delivery_lng},
        )
    if distance is None:
        raise ValidationFailed("Distance inconnue / Distance cannot be computed")
    result = await PricingService.quote(db, data.vehicle_category, distance)
    if result is None:
        raise ValidationFailed(f"Aucun tarif pour {data.vehicle_category.value} / No pricing bracket", status_code=404)
    return QuoteRead(
        vehicle_category=data.vehicle_category,
        distance_km=result.distance_km,
        price_ht=result.price_ht,
        price_ttc=result.price_ttc,
        vat_rate=result.vat_rate,
    )
