"""
Tests unitaires des calculs monétaires et de la numérotation des documents.
"""
from datetime import datetime
from decimal import Decimal

import pytest

from primeur.core.calculations import Totals, calculate_document_totals, calculate_line_totals, round_money
from primeur.core.numbering import (
    build_document_number,
    build_fallback_number,
    generate_unique_number,
    next_sequence_number,
)
from primeur.core.utils import total_pages


def test_round_money_half_up():
    assert round_money(Decimal("2.345")) == Decimal("2.35")
    assert round_money("1.005") == Decimal("1.01")


def test_line_totals_apply_tva():
    totals = calculate_line_totals(Decimal("2"), Decimal("10.00"), Decimal("5.5"))
    assert totals == Totals(Decimal("20.00"), Decimal("1.10"), Decimal("21.10"))


def test_document_totals_sum_lines():
    lines = [
        calculate_line_totals(Decimal("2"), Decimal("10.00"), Decimal("5.5")),
        calculate_line_totals(Decimal("1.5"), Decimal("4.00"), Decimal("20")),
    ]
    totals = calculate_document_totals(lines)
    assert totals.total_ht == Decimal("26.00")
    assert totals.total_tva == Decimal("2.30")
    assert totals.total_ttc == Decimal("28.30")


def test_total_pages():
    assert total_pages(0, 20) == 0
    assert total_pages(41, 20) == 3


def test_build_document_number_format():
    number = build_document_number("DEV", now=datetime(2024, 3, 9), suffix=42)
    assert number == "DEV-202403-0042"


def test_fallback_number_has_longer_suffix():
    number = build_fallback_number("RET", now=datetime(2024, 3, 9))
    assert number.startswith("RET-202403-")
    assert len(number.split("-")[-1]) == 8


async def test_generate_unique_number_retries_on_collision():
    seen = []

    async def exists(candidate: str) -> bool:
        seen.append(candidate)
        return len(seen) < 3

    number = await generate_unique_number("CMD", exists, max_attempts=5)
    assert number == seen[-1]
    assert len(seen) == 3


async def test_generate_unique_number_falls_back_after_max_attempts():
    async def always_taken(candidate: str) -> bool:
        return True

    number = await generate_unique_number("CMD", always_taken, max_attempts=2)
    assert len(number.split("-")[-1]) == 8


@pytest.mark.parametrize("last, expected", [
    (None, "CF000001"),
    ("CF000041", "CF000042"),
    ("CF999999", "CF1000000"),
    ("garbage", "CF000001"),
])
def test_next_sequence_number(last, expected):
    assert next_sequence_number("CF", last) == expected
