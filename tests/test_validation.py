"""Tests for field validation and money formatting."""

from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from crewx.exceptions import InvalidAmountError, ValidationError
from crewx.validation import (
    format_money,
    normalize_email,
    validate_amount,
    validate_email,
    validate_name,
    validate_password,
    validate_phone,
)


class TestEmail:
    def test_normalizes_case_and_whitespace(self):
        assert normalize_email("  Ravi@Example.COM ") == "ravi@example.com"

    def test_accepts_valid_address(self):
        assert validate_email("Asha@crewx.in") == "asha@crewx.in"

    @pytest.mark.parametrize("email", ["", "plainaddress", "a@b", "a b@c.com", "@c.com"])
    def test_rejects_malformed(self, email):
        with pytest.raises(ValidationError) as exc_info:
            validate_email(email)
        assert exc_info.value.field == "email"


class TestPhone:
    def test_accepts_ten_digits(self):
        assert validate_phone(" 9876543210 ") == "9876543210"

    @pytest.mark.parametrize("phone", ["987654321", "98765432100", "98765-4321", "abcdefghij"])
    def test_rejects_wrong_shape(self, phone):
        with pytest.raises(ValidationError) as exc_info:
            validate_phone(phone)
        assert exc_info.value.field == "phone"

    @given(st.text(alphabet="0123456789", min_size=0, max_size=15))
    def test_only_exactly_ten_digits_pass(self, digits):
        if len(digits) == 10:
            assert validate_phone(digits) == digits
        else:
            with pytest.raises(ValidationError):
                validate_phone(digits)


class TestPasswordAndName:
    def test_short_password_rejected(self):
        with pytest.raises(ValidationError):
            validate_password("12345")

    def test_six_characters_accepted(self):
        assert validate_password("123456") == "123456"

    def test_blank_name_rejected_with_field(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_name("   ", "title")
        assert exc_info.value.field == "title"


class TestAmount:
    def test_quantizes_to_cents(self):
        assert validate_amount("500") == Decimal("500.00")
        assert validate_amount(Decimal("12.5")) == Decimal("12.50")

    @pytest.mark.parametrize(
        "amount",
        ["0", "-1", "abc", "NaN", "Infinity", "1.005", "1e30", "1e12", "10000000000"],
    )
    def test_rejects_invalid(self, amount):
        with pytest.raises(InvalidAmountError):
            validate_amount(amount)

    @given(st.decimals(min_value=Decimal("0.01"), max_value=Decimal("1000000"), places=2))
    def test_positive_cent_amounts_round_trip(self, amount):
        assert validate_amount(amount) == amount

    def test_largest_amount_accepted(self):
        assert validate_amount("9999999999.99") == Decimal("9999999999.99")

    def test_invalid_amount_is_a_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_amount("0")
        assert exc_info.value.field == "amount"


class TestFormatMoney:
    def test_whole_amounts(self):
        assert format_money(Decimal("500.00")) == "500 Rs"
        assert format_money(0) == "0 Rs"
        assert format_money(None) == "0 Rs"

    def test_fractional_amounts(self):
        assert format_money(Decimal("99.5")) == "99.50 Rs"
