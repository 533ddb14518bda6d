# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""Tests for read-API parameter validation and response filtering helpers."""

from __future__ import annotations

import pytest

from cocostock.api.options_data_helper import filter_by_type, filter_options_by_bid, is_valid_option_field
from cocostock.api.validators import (
    sanitize_boolean_param,
    validate_date,
    validate_exclude_bid_0,
    validate_field,
    validate_option_type,
    validate_strike,
    validate_symbol,
)
from cocostock.core.errors import InvalidParameterError, InvalidSymbolError


class TestValidators:
    def test_symbol(self):
        assert validate_symbol(" lmt ") == "LMT"
        with pytest.raises(InvalidSymbolError):
            validate_symbol("BRK.B")

    def test_date(self):
        assert validate_date(None) is None
        assert validate_date("") is None
        assert validate_date("250815") == "250815"
        with pytest.raises(InvalidParameterError) as exc:
            validate_date("2025-08-15")
        assert exc.value.code == "invalid_date"

    @pytest.mark.parametrize(
        "value,expected",
        [("4500", "00450000"), ("00004500", "00450000"), ("110", "00011000"), ("182.5", "00018250"), ("0.29", "00000029"), (None, None)],
    )
    def test_strike(self, value, expected):
        assert validate_strike(value) == expected

    @pytest.mark.parametrize("value", ["00000000", "0", "-1", "abc", "1000000"])
    def test_bad_strike(self, value):
        with pytest.raises(InvalidParameterError) as exc:
            validate_strike(value)
        assert exc.value.code == "invalid_strike"
        assert exc.value.http_status == 400

    def test_field(self):
        assert validate_field("bid") == "bid"
        assert validate_field(None) is None
        with pytest.raises(InvalidParameterError):
            validate_field("color")

    @pytest.mark.parametrize("value,expected", [("true", True), ("TRUE", True), ("1", True), ("false", False), ("0", False), (None, False)])
    def test_exclude_bid_0(self, value, expected):
        assert validate_exclude_bid_0(value) is expected

    def test_exclude_bid_0_invalid(self):
        with pytest.raises(InvalidParameterError):
            validate_exclude_bid_0("yes")

    def test_option_type(self):
        assert validate_option_type("Put") == "P"
        assert validate_option_type("call") == "C"
        assert validate_option_type(None) is None
        with pytest.raises(InvalidParameterError) as exc:
            validate_option_type("C")
        assert exc.value.code == "invalid_option_type"

    def test_sanitize_boolean(self):
        assert sanitize_boolean_param("1") is True
        assert sanitize_boolean_param("no") is False
        assert sanitize_boolean_param(True) is True


class TestFilters:
    RECORDS = {
        "LMT250815C": {"00450000": {"bid": 12.5}, "00460000": {"bid": 0.0}},
        "LMT250815P": {"00450000": {"bid": 0}},
        "LMT250919C": {"00460000": {"ask": 1.0}},
    }

    def test_bid_filter(self):
        out = filter_options_by_bid(self.RECORDS)
        assert out == {"LMT250815C": {"00450000": {"bid": 12.5}}, "LMT250919C": {"00460000": {"ask": 1.0}}}

    def test_type_filter(self):
        assert list(filter_by_type(self.RECORDS, "P")) == ["LMT250815P"]
        assert filter_by_type(self.RECORDS, None) == self.RECORDS

    def test_field_names(self):
        assert is_valid_option_field("open_interest") is True
        assert is_valid_option_field("openInterest") is False
