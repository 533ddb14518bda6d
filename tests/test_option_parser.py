# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""Tests for vendor option parsing and record / strike key helpers."""

from __future__ import annotations

import pytest

from cocostock.cboe.option_parser import (
    STRIKE_QUOTE_FIELDS,
    TICK_DEFAULT,
    build_record_key,
    format_strike_key,
    iso_to_yymmdd,
    parse_record_key,
    parse_strike_key,
    yymmdd_to_iso,
)
from cocostock.core.errors import RecordParseError
from tests.fixtures.cboe_payloads import BXMT_ENTRY, SNAPSHOT_TS, option_entry


class TestParse:
    """OptionRecordParser.parse on vendor entries."""

    def test_bxmt_entry(self, parser):
        """BXMT250815C00011000 -> record key BXMT250815C, strike key 00011000, bid/timestamp carried."""
        parsed = parser.parse(BXMT_ENTRY, SNAPSHOT_TS)
        assert parsed.strike_key == "00011000"
        assert parsed.record_key == "BXMT250815C"
        assert parsed.symbol == "BXMT"
        assert parsed.date == "250815"
        assert parsed.option_type == "C"
        assert parsed.quote["bid"] == 0.42
        assert parsed.quote["ask"] == 0.55
        assert parsed.quote["cboe_timestamp"] == SNAPSHOT_TS
        assert parsed.quote["option"] == "BXMT250815C00011000"
        assert parsed.quote["date"] == "2025-08-15"

    def test_quote_has_every_field_in_order(self, parser):
        parsed = parser.parse(BXMT_ENTRY, SNAPSHOT_TS)
        assert tuple(parsed.quote) == STRIKE_QUOTE_FIELDS

    def test_vendor_names_mapped(self, parser):
        parsed = parser.parse(BXMT_ENTRY, SNAPSHOT_TS)
        q = parsed.quote
        assert q["bid_size"] == 10
        assert q["ask_size"] == 12
        assert q["open_interest"] == 150
        assert q["last_trade_price"] == 1.15
        assert q["prev_day_close"] == 1.1
        assert q["tick"] == "up"

    def test_last_update_from_clock(self, parser):
        """Without an explicit last_update the local market time is used."""
        parsed = parser.parse(BXMT_ENTRY, SNAPSHOT_TS)
        assert parsed.quote["last_update"] == "2025-07-02 10:00:00"

    def test_explicit_last_update(self, parser):
        parsed = parser.parse(BXMT_ENTRY, SNAPSHOT_TS, last_update="2025-07-02 09:31:00")
        assert parsed.quote["last_update"] == "2025-07-02 09:31:00"

    def test_missing_numbers_default_to_zero(self, parser):
        parsed = parser.parse({"option": "LMT250815P00450000", "expiration": "2025-08-15"}, SNAPSHOT_TS)
        assert parsed.quote["bid"] == 0.0
        assert parsed.quote["volume"] == 0
        assert parsed.quote["tick"] == TICK_DEFAULT
        assert parsed.quote["last_trade_time"] is None

    def test_date_is_vendor_expiration(self, parser):
        parsed = parser.parse(option_entry("LMT250919C00460000"), SNAPSHOT_TS)
        assert parsed.quote["date"] == "2025-09-19"

    @pytest.mark.parametrize("expiration", [None, "", "  "])
    def test_missing_expiration_rejected(self, parser, expiration):
        entry = option_entry("BXMT250815C00011000", bid=0.42)
        if expiration is None:
            del entry["expiration"]
        else:
            entry["expiration"] = expiration
        with pytest.raises(RecordParseError) as exc:
            parser.parse(entry, SNAPSHOT_TS)
        assert exc.value.option_code == "BXMT250815C00011000"

    def test_infinite_counts_default_to_zero(self, parser):
        parsed = parser.parse(option_entry("LMT250815C00450000", volume=float("inf"), openInterest="-Infinity"), SNAPSHOT_TS)
        assert parsed.quote["volume"] == 0
        assert parsed.quote["open_interest"] == 0

    def test_strike_digits_padded(self, parser):
        parsed = parser.parse(option_entry("LMT250815C450000"), SNAPSHOT_TS)
        assert parsed.strike_key == "00450000"

    @pytest.mark.parametrize(
        "code",
        ["", "LMT", "LMT25081C00450000", "LMT250815X00450000", "lmt250815C00450000", "LMT250815C004500001"],
    )
    def test_malformed_code_rejected(self, parser, code):
        with pytest.raises(RecordParseError):
            parser.parse(option_entry(code), SNAPSHOT_TS)

    def test_foreign_ticker_rejected(self, parser):
        with pytest.raises(RecordParseError) as exc:
            parser.parse(option_entry("BXMT250815C00011000"), SNAPSHOT_TS, expected_symbol="LMT")
        assert exc.value.option_code == "BXMT250815C00011000"

    def test_non_dict_rejected(self, parser):
        with pytest.raises(RecordParseError):
            parser.parse("LMT250815C00450000", SNAPSHOT_TS)


class TestRecordKey:
    """build_record_key / parse_record_key."""

    @pytest.mark.parametrize("ticker", ["A", "LMT", "BXMT", "GOOGL"])
    @pytest.mark.parametrize("date", ["250815", "000101", "991231"])
    @pytest.mark.parametrize("opt_type", ["C", "P"])
    def test_round_trip(self, ticker, date, opt_type):
        parsed = parse_record_key(build_record_key(ticker, date, opt_type))
        assert (parsed.symbol, parsed.date, parsed.option_type) == (ticker, date, opt_type)

    def test_lowercase_inputs_normalized(self):
        assert build_record_key("lmt", "250815", "c") == "LMT250815C"

    @pytest.mark.parametrize(
        "args",
        [("LM1", "250815", "C"), ("LMT", "25081", "C"), ("LMT", "250815", "X"), ("", "250815", "C")],
    )
    def test_build_rejects_bad_parts(self, args):
        with pytest.raises(ValueError):
            build_record_key(*args)

    @pytest.mark.parametrize("key", ["BXMT250815", "250815C", "LMT250815C00450000", ""])
    def test_parse_non_keys(self, key):
        assert parse_record_key(key) is None


class TestStrikeKey:
    """format_strike_key is the single price -> key formatter (x100, 8 digits)."""

    @pytest.mark.parametrize(
        "price,key",
        [(110, "00011000"), ("310.5", "00031050"), (0.29, "00000029"), (11, "00001100"), ("182.55", "00018255")],
    )
    def test_format(self, price, key):
        assert format_strike_key(price) == key

    @pytest.mark.parametrize("price", [0.01, 0.29, 1, 11, 182.5, 310.55, 999999.99])
    def test_round_trip(self, price):
        key = format_strike_key(price)
        assert len(key) == 8
        assert parse_strike_key(key) == pytest.approx(price)

    def test_truncates_beyond_cents(self):
        assert format_strike_key("12.349") == "00001234"

    @pytest.mark.parametrize("price", [0, -1, "abc", "", "nan", 1000000])
    def test_invalid(self, price):
        with pytest.raises(ValueError):
            format_strike_key(price)

    def test_parse_rejects_wrong_width(self):
        with pytest.raises(ValueError):
            parse_strike_key("0001100")


class TestDates:
    def test_yymmdd_iso(self):
        assert yymmdd_to_iso("250815") == "2025-08-15"
        assert iso_to_yymmdd("2025-08-15") == "250815"

    def test_iso_rejects_garbage(self):
        with pytest.raises(ValueError):
            iso_to_yymmdd("08/15/2025")
