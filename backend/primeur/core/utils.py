"""Fonctions utilitaires transverses."""
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Horodatage UTC naïf, format de stockage de toutes les dates en base."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convertit une date éventuellement localisée en UTC naïf."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def total_pages(total: int, limit: int) -> int:
    return (total + limit - 1) // limit if limit else 0
