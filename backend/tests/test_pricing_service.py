"""
Test per il motore prezzi.

Ripartizione manodopera / infrastruttura, righe standard,
fascia suggerita, listini e data di fine supporto.
"""

from datetime import date
from decimal import Decimal

import pytest

from koruku.core.exceptions import InvalidArgumentError
from koruku.schemas.pricing import PricingTier
from koruku.services.pricing_service import (
    PRICING_PRESETS,
    calculate_breakdown,
    calculate_support_end_date,
    format_breakdown,
    generate_line_items,
    get_preset,
    suggest_tier,
    to_money,
)

TOTALS = ["0", "0.01", "1", "999.99", "1200", "2800", "5000", "123456.78"]


# ============================================================
# Ripartizione del budget
# ============================================================


class TestCalculateBreakdown:
    """Test per calculate_breakdown."""

    def test_small_tier_2800(self):
        """Budget 2800 in fascia small: 30% manodopera, infrastruttura ripartita."""
        breakdown = calculate_breakdown(2800, PricingTier.SMALL)

        assert breakdown.labour_amount == Decimal("840")
        assert breakdown.infrastructure_total == Decimal("1960")
        items = breakdown.infrastructure_items
        assert items.hosting == Decimal("940.80")
        assert items.ssl == Decimal("431.20")
        assert items.cdn == Decimal("274.40")
        assert items.backups == Decimal("117.60")
        assert items.monitoring == Decimal("196.00")

    def test_percentages_per_tier(self):
        """Ogni fascia ha la sua quota di manodopera."""
        expected = {
            PricingTier.SMALL: Decimal("30"),
            PricingTier.MEDIUM: Decimal("35"),
            PricingTier.LARGE: Decimal("45"),
            PricingTier.CUSTOM: Decimal("50"),
        }
        for tier, labour in expected.items():
            breakdown = calculate_breakdown(10000, tier)
            assert breakdown.labour_percentage == labour
            assert breakdown.infrastructure_percentage == Decimal("100") - labour

    @pytest.mark.parametrize("total", TOTALS)
    @pytest.mark.parametrize("tier", list(PricingTier))
    def test_labour_plus_infrastructure_equals_total(self, total, tier):
        """Manodopera + infrastruttura coincide esattamente con il budget."""
        breakdown = calculate_breakdown(total, tier)
        assert breakdown.labour_amount + breakdown.infrastructure_total == Decimal(total)

    @pytest.mark.parametrize("total", TOTALS)
    @pytest.mark.parametrize("tier", list(PricingTier))
    def test_infrastructure_items_sum(self, total, tier):
        """Le cinque voci coprono l'intera infrastruttura."""
        breakdown = calculate_breakdown(total, tier)
        assert breakdown.infrastructure_items.total == breakdown.infrastructure_total

    def test_default_tier_is_small(self):
        assert calculate_breakdown(1000, None).tier == PricingTier.SMALL
        assert calculate_breakdown(1000).tier == PricingTier.SMALL

    def test_tier_as_string(self):
        assert calculate_breakdown(1000, "large").tier == PricingTier.LARGE

    def test_invalid_tier(self):
        """Una fascia non prevista viene rifiutata."""
        with pytest.raises(InvalidArgumentError) as exc:
            calculate_breakdown(1000, "platinum")
        assert exc.value.extra == {"tier": "platinum"}

    @pytest.mark.parametrize("total", [-1, "-0.01", float("nan"), float("inf"), "abc", True])
    def test_invalid_total(self, total):
        """Totali negativi, non finiti o non numerici sollevano InvalidArgumentError."""
        with pytest.raises(InvalidArgumentError):
            calculate_breakdown(total)

    def test_zero_total(self):
        breakdown = calculate_breakdown(0)
        assert breakdown.labour_amount == 0
        assert breakdown.infrastructure_items.total == 0


class TestToMoney:
    """Test per la normalizzazione degli importi."""

    def test_float_uses_decimal_representation(self):
        assert to_money(0.1) == Decimal("0.1")

    def test_comma_decimal_separator(self):
        assert to_money("12,50") == Decimal("12.50")
        assert to_money("12,5") == Decimal("12.5")

    @pytest.mark.parametrize("value", ["1,200", "1,200,000", "1.200,50", "12,"])
    def test_ambiguous_comma_rejected(self, value):
        """Una virgola delle migliaia non deve diventare un decimale."""
        with pytest.raises(InvalidArgumentError) as exc:
            to_money(value)
        assert exc.value.extra["value"] == value

    def test_decimal_nan(self):
        with pytest.raises(InvalidArgumentError):
            to_money(Decimal("NaN"))

    def test_negative_reports_field(self):
        with pytest.raises(InvalidArgumentError) as exc:
            to_money("-5", field="discount_percentage")
        assert exc.value.extra["field"] == "discount_percentage"


# ============================================================
# Righe standard
# ============================================================


class TestGenerateLineItems:
    """Test per generate_line_items."""

    def test_six_items_in_order(self):
        """Budget 1200: sei righe che sommano esattamente al totale."""
        items = generate_line_items(1200)

        assert len(items) == 6
        assert items[0].description == "Website Development"
        assert items[1].description.startswith("Web Hosting")
        assert items[2].description.startswith("SSL & Security")
        assert items[3].description.startswith("CDN")
        assert items[4].description.startswith("Automated Backups")
        assert items[5].description.startswith("Monitoring & Maintenance")
        assert sum(item.amount for item in items) == Decimal("1200.00")

    def test_amounts_for_1200(self):
        items = generate_line_items(1200)
        assert [item.amount for item in items] == [
            Decimal("360.00"),
            Decimal("403.20"),
            Decimal("184.80"),
            Decimal("117.60"),
            Decimal("50.40"),
            Decimal("84.00"),
        ]

    def test_quantity_is_one(self):
        for item in generate_line_items(2800, "medium"):
            assert item.quantity == 1
            assert item.amount == item.unit_price

    def test_rounding_residual_goes_to_labour(self):
        """Lo scarto di arrotondamento è assorbito dalla riga manodopera."""
        items = generate_line_items("1000.01")

        assert items[0].amount == Decimal("300.01")
        assert sum(item.amount for item in items) == Decimal("1000.01")

    @pytest.mark.parametrize("total", TOTALS)
    @pytest.mark.parametrize("tier", list(PricingTier))
    def test_sum_matches_rounded_total(self, total, tier):
        items = generate_line_items(total, tier)
        assert sum(item.amount for item in items) == Decimal(total).quantize(Decimal("0.01"))

    def test_custom_labour_description(self):
        items = generate_line_items(3000, labour_description="  E-commerce build  ")
        assert items[0].description == "E-commerce build"

    def test_blank_labour_description_uses_default(self):
        items = generate_line_items(3000, labour_description="   ")
        assert items[0].description == "Website Development"


# ============================================================
# Fascia suggerita e listini
# ============================================================


class TestSuggestTier:
    """Test per suggest_tier."""

    @pytest.mark.parametrize(
        "total,tier",
        [
            ("0", PricingTier.SMALL),
            ("3499.99", PricingTier.SMALL),
            ("3500", PricingTier.MEDIUM),
            ("6999.99", PricingTier.MEDIUM),
            ("7000", PricingTier.LARGE),
            ("14999.99", PricingTier.LARGE),
            ("15000", PricingTier.CUSTOM),
            ("55000", PricingTier.CUSTOM),
        ],
    )
    def test_thresholds(self, total, tier):
        assert suggest_tier(total) == tier

    def test_negative_total(self):
        with pytest.raises(InvalidArgumentError):
            suggest_tier(-100)


class TestPresets:
    """Test per i listini preimpostati."""

    def test_keys_are_unique(self):
        keys = [preset.key for preset in PRICING_PRESETS]
        assert len(keys) == len(set(keys))

    def test_get_preset(self):
        preset = get_preset("business_starter")
        assert preset.total == Decimal("6800")
        assert preset.tier == PricingTier.MEDIUM

    def test_unknown_preset(self):
        with pytest.raises(InvalidArgumentError):
            get_preset("unknown")


class TestFormatBreakdown:
    """Test per il riepilogo testuale."""

    def test_summary_lines(self):
        text = format_breakdown(calculate_breakdown(2800))

        assert "Labour (30.0%): R 840.00" in text
        assert "Infrastructure (70.0%): R 1960.00" in text
        assert "  - Web Hosting (48%): R 940.80" in text
        assert text.endswith("Total: R 2800.00")

    def test_custom_currency(self):
        text = format_breakdown(calculate_breakdown(100), currency="€")
        assert "Total: € 100.00" in text


# ============================================================
# Periodo di supporto
# ============================================================


class TestSupportEndDate:
    """Test per calculate_support_end_date."""

    def test_same_day_of_month(self):
        assert calculate_support_end_date(date(2025, 6, 15), 6) == date(2025, 12, 15)

    def test_crosses_year(self):
        assert calculate_support_end_date(date(2025, 11, 30), 3) == date(2026, 2, 28)

    def test_clamps_to_month_end(self):
        assert calculate_support_end_date(date(2025, 1, 31), 1) == date(2025, 2, 28)
        assert calculate_support_end_date(date(2024, 1, 31), 1) == date(2024, 2, 29)

    def test_default_months(self):
        """Senza mesi indicati si usa il default di configurazione (6)."""
        assert calculate_support_end_date(date(2025, 1, 1)) == date(2025, 7, 1)

    def test_zero_months(self):
        assert calculate_support_end_date(date(2025, 3, 10), 0) == date(2025, 3, 10)

    def test_negative_months(self):
        with pytest.raises(InvalidArgumentError):
            calculate_support_end_date(date(2025, 1, 1), -1)
