from decimal import Decimal

QUANTITY_STEP = Decimal("0.001")


def format_quantity(value: Decimal) -> str:
    """Affiche une quantité sans zéros superflus (``5.000`` -> ``5``, ``2.500`` -> ``2.5``)."""
    normalized = Decimal(value).quantize(QUANTITY_STEP).normalize()
    return format(normalized, "f")


def format_delta(value: Decimal) -> str:
    sign = "+" if value > 0 else ""
    return f"{sign}{format_quantity(value)}"
