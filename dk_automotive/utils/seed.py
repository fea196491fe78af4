"""
Seed initial / Initial seeding.
Compte admin par défaut, taux de TVA et grille tarifaire de départ au premier démarrage.
Default admin account, VAT rate and starter pricing grid on first startup.
"""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dk_automotive.config import settings
from dk_automotive.models.mission import VehicleCategory
from dk_automotive.models.pricing import PricingGrid, PricingType, VatSetting
from dk_automotive.models.user import Profile, UserRole
from dk_automotive.utils.auth import hash_password

logger = logging.getLogger(__name__)

# (min km, max km, prix HT, type) par défaut pour chaque catégorie / default brackets for every category
STARTER_BRACKETS = [
    (Decimal("0"), Decimal("150"), Decimal("50.00"), PricingType.FORFAIT),
    (Decimal("150.01"), Decimal("2000"), Decimal("1.10"), PricingType.KM),
]


async def seed_admin(session: AsyncSession) -> None:
    """Créer l'admin si aucun profil n'existe / Create the admin if no profile exists."""
    count = (await session.execute(select(func.count(Profile.id)))).scalar()
    if count:
        logger.info("%d existing profile(s), admin seed skipped", count)
        return

    session.add(Profile(
        email=settings.DEFAULT_ADMIN_EMAIL,
        hashed_password=hash_password(settings.DEFAULT_ADMIN_PASSWORD),
        full_name="Administrateur",
        role=UserRole.ADMIN,
        profile_completed=True,
        active=True,
    ))
    logger.warning("Default admin created: %s (change the password)", settings.DEFAULT_ADMIN_EMAIL)


async def seed_pricing(session: AsyncSession) -> None:
    """TVA par défaut et grille de départ / Default VAT and starter grid."""
    if not (await session.execute(select(func.count(VatSetting.id)))).scalar():
        session.add(VatSetting(rate=Decimal(str(settings.DEFAULT_VAT_RATE)), effective_date=date(2000, 1, 1)))
        logger.info("Default VAT rate %s%% seeded", settings.DEFAULT_VAT_RATE)

    if not (await session.execute(select(func.count(PricingGrid.id)))).scalar():
        for category in VehicleCategory:
            for min_d, max_d, price, kind in STARTER_BRACKETS:
                session.add(PricingGrid(
                    vehicle_category=category,
                    min_distance=min_d,
                    max_distance=max_d,
                    price_ht=price,
                    type_tarif=kind,
                ))
        logger.info("Starter pricing grid seeded for %d categories", len(VehicleCategory))


async def seed_defaults(session: AsyncSession) -> None:
    await seed_admin(session)
    await seed_pricing(session)
    await session.commit()
