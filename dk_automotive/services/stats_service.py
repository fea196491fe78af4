"""
Service de statistiques / Statistics service.
Tableaux de bord client/chauffeur et statistiques admin, calculés sur les missions réalisées.
Client/driver dashboards and admin statistics, computed on completed missions.
"""

from collections import defaultdict
from datetime import date, datetime, time, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dk_automotive.models.mission import Mission, MissionStatus
from dk_automotive.models.user import Profile
from dk_automotive.services.pricing_service import PricingService
from dk_automotive.services.status_machine import COMPLETED_STATUSES

ZERO = Decimal("0.00")


def _amount(value) -> Decimal:
    return Decimal(value) if value is not None else ZERO


class StatsService:
    """Agrégations monétaires / Monetary aggregations."""

    @staticmethod
    def driver_buckets(missions: list[Mission]) -> dict:
        """
        Répartition payé / impayé facturé / sans facture / Paid, unpaid-invoiced, no-invoice buckets.
        Seules les missions livre/termine comptent / Only livre/termine missions count.
        """
        buckets = {name: {"count": 0, "amount": ZERO} for name in ("paid", "unpaid", "no_invoice")}
        for mission in missions:
            if mission.status not in COMPLETED_STATUSES:
                continue
            if mission.chauffeur_invoice is None:
                key = "no_invoice"
            elif mission.chauffeur_paid:
                key = "paid"
            else:
                key = "unpaid"
            buckets[key]["count"] += 1
            buckets[key]["amount"] += _amount(mission.chauffeur_price_ht)

        total = sum((b["amount"] for b in buckets.values()), ZERO)
        return {
            **{k: {"count": v["count"], "amount": PricingService.round2(v["amount"])} for k, v in buckets.items()},
            "total": PricingService.round2(total),
        }

    @staticmethod
    async def _completed_for(db: AsyncSession, chauffeur_id: str | None = None) -> list[Mission]:
        query = select(Mission).where(Mission.status.in_(COMPLETED_STATUSES))
        if chauffeur_id:
            query = query.where(Mission.chauffeur_id == chauffeur_id)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def driver_revenue(db: AsyncSession, chauffeur_id: str) -> dict:
        return StatsService.driver_buckets(await StatsService._completed_for(db, chauffeur_id))

    @staticmethod
    async def drivers_revenue(db: AsyncSession) -> dict:
        """Global + par chauffeur (admin) / Global plus per-driver (admin)."""
        missions = [m for m in await StatsService._completed_for(db) if m.chauffeur_id]
        per_driver = defaultdict(list)
        for mission in missions:
            per_driver[mission.chauffeur_id].append(mission)

        drivers = []
        for chauffeur_id, driver_missions in per_driver.items():
            profile = driver_missions[0].chauffeur
            drivers.append({
                "chauffeur_id": chauffeur_id,
                "name": (profile.full_name or profile.email) if profile else chauffeur_id,
                **StatsService.driver_buckets(driver_missions),
            })
        drivers.sort(key=lambda d: d["total"], reverse=True)
        return {"global": StatsService.driver_buckets(missions), "drivers": drivers}

    @staticmethod
    async def status_counts(db: AsyncSession, client_id: str | None = None, chauffeur_id: str | None = None) -> dict:
        query = select(Mission.status, func.count(Mission.id)).group_by(Mission.status)
        if client_id:
            query = query.where(Mission.client_id == client_id)
        if chauffeur_id:
            query = query.where(Mission.chauffeur_id == chauffeur_id)
        counts = {status.value: 0 for status in MissionStatus}
        for status, count in (await db.execute(query)).all():
            counts[MissionStatus(status).value] = count
        return counts

    @staticmethod
    async def client_dashboard(db: AsyncSession, client_id: str) -> dict:
        counts = await StatsService.status_counts(db, client_id=client_id)
        result = await db.execute(
            select(func.coalesce(func.sum(Mission.price_ttc), 0)).where(
                Mission.client_id == client_id, Mission.status.in_(COMPLETED_STATUSES)
            )
        )
        return {
            "status_counts": counts,
            "total_missions": sum(counts.values()),
            "total_spent_ttc": PricingService.round2(result.scalar_one()),
        }

    @staticmethod
    async def driver_dashboard(db: AsyncSession, chauffeur_id: str) -> dict:
        counts = await StatsService.status_counts(db, chauffeur_id=chauffeur_id)
        return {
            "status_counts": counts,
            "total_missions": sum(counts.values()),
            "revenue": await StatsService.driver_revenue(db, chauffeur_id),
        }

    @staticmethod
    def _totals(missions: list[Mission]) -> dict:
        completed = [m for m in missions if m.status in COMPLETED_STATUSES]
        revenue_ht = sum((_amount(m.price_ht) for m in completed), ZERO)
        revenue_ttc = sum((_amount(m.price_ttc) for m in completed), ZERO)
        driver_cost = sum((_amount(m.chauffeur_price_ht) for m in completed), ZERO)
        margin = revenue_ht - driver_cost
        margin_rate = (margin / revenue_ht * 100) if revenue_ht > 0 else ZERO
        return {
            "missions": len(missions),
            "completed": len(completed),
            "cancelled": sum(1 for m in missions if m.status == MissionStatus.ANNULE),
            "revenue_ht": PricingService.round2(revenue_ht),
            "revenue_ttc": PricingService.round2(revenue_ttc),
            "driver_cost_ht": PricingService.round2(driver_cost),
            "margin_ht": PricingService.round2(margin),
            "margin_rate": PricingService.round2(margin_rate),
            "distance_km": PricingService.round2(sum((_amount(m.distance_km) for m in completed), ZERO)),
        }

    @staticmethod
    def _grouped(missions: list[Mission], key_fn, label: str) -> list[dict]:
        groups = defaultdict(list)
        for mission in missions:
            groups[key_fn(mission)].append(mission)
        return [{label: key, **StatsService._totals(group)} for key, group in sorted(groups.items())]

    @staticmethod
    async def admin_statistics(db: AsyncSession, date_from: date | None = None, date_to: date | None = None) -> dict:
        """Statistiques sur une période (date de création) / Statistics over a creation-date range."""
        query = select(Mission)
        if date_from:
            query = query.where(Mission.created_at >= datetime.combine(date_from, time.min, tzinfo=timezone.utc))
        if date_to:
            query = query.where(Mission.created_at <= datetime.combine(date_to, time.max, tzinfo=timezone.utc))
        missions = list((await db.execute(query)).scalars().all())

        profiles = {}
        ids = {m.client_id for m in missions} | {m.chauffeur_id for m in missions if m.chauffeur_id}
        if ids:
            result = await db.execute(select(Profile).where(Profile.id.in_(ids)))
            profiles = {p.id: p for p in result.scalars().all()}

        def name(profile_id: str | None) -> str:
            profile = profiles.get(profile_id)
            if profile is None:
                return "Non assigné" if profile_id is None else profile_id
            if profile.client and profile.client.company_name:
                return profile.client.company_name
            return profile.full_name or profile.email

        return {
            "date_from": date_from,
            "date_to": date_to,
            "totals": StatsService._totals(missions),
            "by_category": StatsService._grouped(missions, lambda m: m.vehicle_category.value, "vehicle_category"),
            "by_month": StatsService._grouped(missions, lambda m: m.created_at.strftime("%Y-%m"), "month"),
            "by_client": StatsService._grouped(missions, lambda m: name(m.client_id), "client"),
            "by_driver": StatsService._grouped(
                [m for m in missions if m.chauffeur_id], lambda m: name(m.chauffeur_id), "driver"
            ),
        }
