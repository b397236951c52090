"""
Tests for date, money and type marker normalization.
"""
import pytest
from decimal import Decimal

from statement_parser.core.normalize import (
    extract_date, marker_type, normalize_date, normalize_money, normalize_text,
    signed_amount, strip_suffix_marker, suffix_type, to_strptime_format
)


class TestDates:

    @pytest.mark.parametrize("template_format,expected", [
        ("DD-MM-YYYY", "%d-%m-%Y"),
        ("DD-Mon-YYYY", "%d-%b-%Y"),
        ("MM/DD/YYYY", "%m/%d/%Y"),
        ("DD-MM-YY", "%d-%m-%y"),
        ("%d/%m/%Y", "%d/%m/%Y"),
    ])
    def test_to_strptime_format(self, template_format, expected):
        assert to_strptime_format(template_format) == expected

    def test_normalize_date_iso(self):
        assert normalize_date("12-06-2025", "DD-MM-YYYY") == "2025-06-12"
        assert normalize_date("05-Jan-2024", "DD-Mon-YYYY") == "2024-01-05"

    def test_invalid_calendar_date(self):
        assert normalize_date("31-02-2025", "DD-MM-YYYY") is None
        assert normalize_date("", "DD-MM-YYYY") is None

    def test_extract_date_uses_pattern_group(self):
        assert extract_date("on 07-06-2025 posted", r"(\d{2}-\d{2}-\d{4})", "DD-MM-YYYY") == "2025-06-07"

    def test_date_failing_pattern_is_not_a_date(self):
        assert extract_date("2025/06/12", r"(\d{2}-\d{2}-\d{4})", "DD-MM-YYYY") is None
        assert extract_date("99-99-2025", r"(\d{2}-\d{2}-\d{4})", "DD-MM-YYYY") is None


class TestMoney:

    @pytest.mark.parametrize("raw,expected", [
        ("90000.00", Decimal("90000.00")),
        ("₹1,234.50", Decimal("1234.50")),
        ("-52,683.63", Decimal("52683.63")),
        ("(500.00)", Decimal("500.00")),
        ("$ 12", Decimal("12")),
        (".50", Decimal("0.50")),
    ])
    def test_magnitude(self, raw, expected):
        assert normalize_money(raw) == expected

    def test_non_numeric_is_zero(self):
        assert normalize_money("") == 0
        assert normalize_money("N/A") == 0

    def test_clean_pattern(self):
        assert normalize_money("SGD1,000.10", r"[^\d.-]") == Decimal("1000.10")

    def test_signed_amount(self):
        assert signed_amount(Decimal("10"), "expense") == Decimal("-10")
        assert signed_amount(Decimal("-10"), "income") == Decimal("10")
        assert signed_amount(Decimal("10"), None) == Decimal("10")


class TestMarkers:

    def test_marker_type(self):
        assert marker_type("CR", ["CR"], ["DR"]) == "income"
        assert marker_type("Dr.", ["CR"], ["DR"]) == "expense"
        assert marker_type("", ["CR"], ["DR"]) is None
        assert marker_type("CREDIT", ["CR"], ["DR"]) is None

    def test_suffix_type_and_strip(self):
        description = "UPI/Payment/ DR"
        assert suffix_type(description, ["CR"], ["DR"]) == "expense"
        assert strip_suffix_marker(description, ["CR"], ["DR"]) == "UPI/Payment/"

    def test_lone_marker_is_kept(self):
        assert strip_suffix_marker("CR", ["CR"], ["DR"]) == "CR"

    def test_normalize_text(self):
        assert normalize_text("  NEFT   ACME \n PAYROLL ") == "NEFT ACME PAYROLL"
