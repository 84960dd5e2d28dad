"""
Génération des numéros de documents (devis, commandes, retours, avoirs, commandes fournisseurs).

Format: ``PREFIX-YYYYMM-NNNN`` avec un suffixe aléatoire sur 4 chiffres.
La colonne cible porte une contrainte d'unicité: la vérification préalable ne fait
que réduire les collisions, la contrainte reste l'arbitre final.
"""
import logging
import secrets
import uuid
from datetime import datetime
from typing import Awaitable, Callable, Optional

from primeur.config import settings
from primeur.core.utils import utcnow

logger = logging.getLogger(__name__)

ExistsCallback = Callable[[str], Awaitable[bool]]


def build_document_number(prefix: str, now: Optional[datetime] = None, suffix: Optional[int] = None) -> str:
    now = now or utcnow()
    if suffix is None:
        suffix = secrets.randbelow(10000)
    return f"{prefix}-{now:%Y%m}-{suffix:04d}"


def build_fallback_number(prefix: str, now: Optional[datetime] = None) -> str:
    """Numéro à plus forte entropie utilisé quand les suffixes courts sont épuisés."""
    now = now or utcnow()
    return f"{prefix}-{now:%Y%m}-{uuid.uuid4().hex[:8].upper()}"


async def generate_unique_number(
    prefix: str,
    exists: ExistsCallback,
    max_attempts: Optional[int] = None,
) -> str:
    """Tire des numéros jusqu'à en trouver un libre, avec un nombre d'essais borné."""
    attempts = max_attempts or settings.NUMBERING_MAX_ATTEMPTS
    for attempt in range(1, attempts + 1):
        candidate = build_document_number(prefix)
        if not await exists(candidate):
            return candidate
        logger.debug(f"[Numbering] Collision sur {candidate} (essai {attempt}/{attempts})")

    fallback = build_fallback_number(prefix)
    logger.warning(f"[Numbering] {attempts} collisions pour le préfixe {prefix}, repli sur {fallback}")
    return fallback


def next_sequence_number(prefix: str, last_number: Optional[str], width: int = 6) -> str:
    """Numéro séquentiel ``PREFIX000001`` suivant ``last_number`` (commandes fournisseurs)."""
    last = 0
    if last_number and last_number.startswith(prefix) and last_number[len(prefix):].isdigit():
        last = int(last_number[len(prefix):])
    return f"{prefix}{last + 1:0{width}d}"
