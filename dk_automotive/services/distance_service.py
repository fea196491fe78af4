"""
Service de calcul des distances / Distance calculation service.
Estime la distance routière à partir des coordonnées lat/lng des adresses.
"""

import math

from dk_automotive.config import settings


class DistanceService:
    """Service de distances / Distance service."""

    @staticmethod
    def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """
        Calcul de distance à vol d'oiseau (Haversine) / Haversine distance calculation.
        Retourne la distance en km.
        """
        R = 6371.0  # rayon de la Terre en km / Earth radius in km
        dlat = math.radians(lat2 - lat1)
        dlon = math.radians(lon2 - lon1)
        a = (
            math.sin(dlat / 2) ** 2
            + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(dlon / 2) ** 2
        )
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
        return round(R * c, 2)

    @staticmethod
    def estimate_road_distance(haversine_km: float, factor: float | None = None) -> float:
        """
        Estimation de la distance routière / Estimate road distance.
        Facteur multiplicateur par défaut: ROAD_DISTANCE_FACTOR (routes sinueuses).
        """
        if factor is None:
            factor = settings.ROAD_DISTANCE_FACTOR
        return round(haversine_km * factor, 2)

    @staticmethod
    def between_addresses(pickup: dict, delivery: dict) -> float | None:
        """Distance routière estimée entre deux adresses géocodées / Estimated road distance
        between two geocoded addresses. None si une coordonnée manque / if a coordinate is missing.
        """
        coords = [pickup.get("lat"), pickup.get("lng"), delivery.get("lat"), delivery.get("lng")]
        if any(c is None for c in coords):
            return None
        lat1, lng1, lat2, lng2 = (float(c) for c in coords)
        return DistanceService.estimate_road_distance(DistanceService.haversine_km(lat1, lng1, lat2, lng2))
