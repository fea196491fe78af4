"""Tests tarification et distances / Pricing and distance tests."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from dk_automotive.models.mission import VehicleCategory
from dk_automotive.models.pricing import PricingGrid, PricingType, VatSetting
from dk_automotive.services.distance_service import DistanceService
from dk_automotive.services.pricing_service import PricingService


def test_round2_half_up():
    assert PricingService.round2("0.125") == Decimal("0.13")
    assert PricingService.round2("10.004") == Decimal("10.00")


def test_ttc_from_ht():
    assert PricingService.ttc_from_ht(Decimal("50"), Decimal("20")) == Decimal("60.00")
    assert PricingService.ttc_from_ht(Decimal("33.33"), Decimal("20")) == Decimal("40.00")
    assert PricingService.ttc_from_ht(Decimal("100"), Decimal("0")) == Decimal("100.00")


def test_price_for_bracket_types():
    forfait = PricingGrid(price_ht=Decimal("50.00"), type_tarif=PricingType.FORFAIT)
    per_km = PricingGrid(price_ht=Decimal("1.10"), type_tarif=PricingType.KM)
    assert PricingService.price_for_bracket(forfait, 120) == Decimal("50.00")
    assert PricingService.price_for_bracket(per_km, 200) == Decimal("220.00")


def test_haversine_and_road_estimate():
    # Paris → Lyon ~392 km à vol d'oiseau
    d = DistanceService.haversine_km(48.8566, 2.3522, 45.7640, 4.8357)
    assert 385 < d < 400
    assert DistanceService.estimate_road_distance(100, factor=1.3) == 130.0


def test_between_addresses_needs_coordinates():
    assert DistanceService.between_addresses({"city": "Paris"}, {"city": "Lyon"}) is None
    estimate = DistanceService.between_addresses(
        {"lat": 48.8566, "lng": 2.3522}, {"lat": 45.7640, "lng": 4.8357}
    )
    assert estimate > 500


async def test_quote_uses_bracket_and_vat(db, pricing):
    quote = await PricingService.quote(db, VehicleCategory.CITADINE, 100)
    assert quote.price_ht == Decimal("50.00")
    assert quote.price_ttc == Decimal("60.00")
    assert quote.vat_rate == Decimal("20")

    quote = await PricingService.quote(db, VehicleCategory.BERLINE, 200)
    assert quote.price_ht == Decimal("220.00")
    assert quote.price_ttc == Decimal("264.00")


async def test_quote_bounds_are_inclusive(db, pricing):
    assert (await PricingService.quote(db, VehicleCategory.CITADINE, 150)).price_ht == Decimal("50.00")
    assert (await PricingService.quote(db, VehicleCategory.CITADINE, 0.5)).price_ht == Decimal("50.00")


async def test_quote_without_bracket_or_distance(db, pricing):
    assert await PricingService.quote(db, VehicleCategory.CITADINE, 5000) is None
    zero = await PricingService.quote(db, VehicleCategory.CITADINE, 0)
    assert zero.price_ht == Decimal("0.00")
    assert zero.price_ttc == Decimal("0.00")


async def test_inactive_bracket_is_ignored(db, pricing):
    grid = PricingGrid(
        vehicle_category=VehicleCategory.CITADINE,
        min_distance=Decimal("3000"),
        max_distance=Decimal("4000"),
        price_ht=Decimal("900"),
        active=False,
    )
    db.add(grid)
    await db.commit()
    assert await PricingService.find_bracket(db, VehicleCategory.CITADINE, 3500) is None


async def test_vat_rate_follows_effective_date(db, pricing):
    db.add(VatSetting(rate=Decimal("10.00"), effective_date=date.today() - timedelta(days=1)))
    db.add(VatSetting(rate=Decimal("30.00"), effective_date=date.today() + timedelta(days=30)))
    await db.commit()
    assert await PricingService.current_vat_rate(db) == Decimal("10.00")


@pytest.mark.parametrize("category", list(VehicleCategory))
async def test_starter_grid_covers_every_category(db, pricing, category):
    assert await PricingService.find_bracket(db, category, 42) is not None
