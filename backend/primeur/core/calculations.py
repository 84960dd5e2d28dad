"""
Calculs monétaires communs (HT / TVA / TTC).

Tous les montants sont des Decimal arrondis au centime (arrondi commercial).
Chaque total est arrondi indépendamment, comme sur les documents papier.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, NamedTuple, Union

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


class Totals(NamedTuple):
    total_ht: Decimal
    total_tva: Decimal
    total_ttc: Decimal


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # Passer par str évite les artefacts binaires des float
    return Decimal(str(value))


def round_money(value: Number) -> Decimal:
    """Arrondit un montant au centime."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_tva(ht: Number, tva_rate: Number) -> Decimal:
    return to_decimal(ht) * (to_decimal(tva_rate) / HUNDRED)


def calculate_ttc(ht: Number, tva_rate: Number) -> Decimal:
    return to_decimal(ht) * (1 + to_decimal(tva_rate) / HUNDRED)


def calculate_line_totals(quantity: Number, price_ht: Number, tva_rate: Number) -> Totals:
    """Calcule les totaux d'une ligne (quantité x prix unitaire HT)."""
    total_ht = to_decimal(quantity) * to_decimal(price_ht)
    return Totals(
        total_ht=round_money(total_ht),
        total_tva=round_money(calculate_tva(total_ht, tva_rate)),
        total_ttc=round_money(calculate_ttc(total_ht, tva_rate)),
    )


def calculate_document_totals(lines: Iterable[Totals]) -> Totals:
    """Somme les totaux des lignes d'un devis ou d'une commande."""
    total_ht = total_tva = total_ttc = Decimal("0")
    for line in lines:
        total_ht += line.total_ht
        total_tva += line.total_tva
        total_ttc += line.total_ttc
    return Totals(round_money(total_ht), round_money(total_tva), round_money(total_ttc))
