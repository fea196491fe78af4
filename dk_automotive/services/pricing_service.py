"""
Service de tarification / Pricing service.
Recherche de tranche par catégorie de véhicule et distance, puis HT → TTC.
Bracket lookup by vehicle category and distance, then HT → TTC.
"""

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dk_automotive.config import settings
from dk_automotive.models.mission import VehicleCategory
from dk_automotive.models.pricing import PricingGrid, PricingType, VatSetting

CENT = Decimal("0.01")


@dataclass(frozen=True)
class Quote:
    distance_km: Decimal
    price_ht: Decimal
    price_ttc: Decimal
    vat_rate: Decimal


class PricingService:
    """Calcul des prix de mission / Mission price calculation."""

    @staticmethod
    def round2(value) -> Decimal:
        """Arrondi commercial à 2 décimales / Half-up rounding to 2 decimals."""
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)

    @staticmethod
    def ttc_from_ht(price_ht, vat_rate) -> Decimal:
        """TTC = HT * (1 + TVA/100), arrondi à 2 décimales."""
        ht = Decimal(str(price_ht))
        rate = Decimal(str(vat_rate))
        return PricingService.round2(ht * (1 + rate / 100))

    @staticmethod
    def price_for_bracket(bracket: PricingGrid, distance_km) -> Decimal:
        """
        Prix HT pour une tranche / HT price for one bracket.
        forfait → prix de la tranche ; km → prix × distance.
        """
        distance = Decimal(str(distance_km))
        if bracket.type_tarif == PricingType.KM:
            return PricingService.round2(Decimal(bracket.price_ht) * distance)
        return PricingService.round2(bracket.price_ht)

    @staticmethod
    async def current_vat_rate(db: AsyncSession, on: date | None = None) -> Decimal:
        """Dernier taux en vigueur, sinon DEFAULT_VAT_RATE / Latest effective rate, else the default."""
        on = on or date.today()
        result = await db.execute(
            select(VatSetting.rate)
            .where(VatSetting.effective_date <= on)
            .order_by(VatSetting.effective_date.desc(), VatSetting.id.desc())
            .limit(1)
        )
        rate = result.scalar_one_or_none()
        if rate is None:
            return PricingService.round2(settings.DEFAULT_VAT_RATE)
        return Decimal(rate)

    @staticmethod
    async def find_bracket(db: AsyncSession, category: VehicleCategory, distance_km) -> PricingGrid | None:
        """Tranche active avec min <= d <= max / Active bracket with min <= d <= max."""
        distance = Decimal(str(distance_km))
        result = await db.execute(
            select(PricingGrid)
            .where(
                PricingGrid.vehicle_category == VehicleCategory(category),
                PricingGrid.active.is_(True),
                PricingGrid.min_distance <= distance,
                PricingGrid.max_distance >= distance,
            )
            .order_by(PricingGrid.min_distance)
            .limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def quote(db: AsyncSession, category: VehicleCategory, distance_km) -> Quote | None:
        """
        Devis HT/TTC / HT/TTC quote.
        Distance <= 0 → prix nul ; aucune tranche → None.
        """
        distance = PricingService.round2(distance_km)
        vat_rate = await PricingService.current_vat_rate(db)
        if distance <= 0:
            zero = Decimal("0.00")
            return Quote(distance_km=distance, price_ht=zero, price_ttc=zero, vat_rate=vat_rate)

        bracket = await PricingService.find_bracket(db, category, distance)
        if bracket is None:
            return None

        price_ht = PricingService.price_for_bracket(bracket, distance)
        return Quote(
            distance_km=distance,
            price_ht=price_ht,
            price_ttc=PricingService.ttc_from_ht(price_ht, vat_rate),
            vat_rate=vat_rate,
        )
