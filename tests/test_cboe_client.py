# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""Tests for the CBOE client: transport, status and decode errors; payload inspection."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from cocostock.cboe.cboe_client import CboeClient, normalize_symbol
from cocostock.cboe.endpoints import url_options
from cocostock.core.errors import DecodeError, InvalidSymbolError, TransportError, UpstreamStatusError
from tests.fixtures.cboe_payloads import SNAPSHOT_TS, chain_payload


def _response(status_code=200, json_body=None, text="", json_error=False):
    r = MagicMock()
    r.status_code = status_code
    r.text = text
    if json_error:
        r.json.side_effect = ValueError("Expecting value")
    else:
        r.json.return_value = json_body
    return r


@pytest.fixture
def client(clock):
    return CboeClient(base_url="https://cdn.example.test/options/", timeout_sec=7, user_agent="UA/1", clock=clock)


class TestFetch:
    def test_success(self, client):
        body = chain_payload("LMT")
        with patch("cocostock.cboe.cboe_client.requests.get", return_value=_response(json_body=body)) as get:
            assert client.fetch("lmt") == body
        args, kwargs = get.call_args
        assert args[0] == "https://cdn.example.test/options/LMT.json"
        assert kwargs["timeout"] == 7
        assert kwargs["headers"]["User-Agent"] == "UA/1"

    def test_transport_error(self, client):
        with patch("cocostock.cboe.cboe_client.requests.get", side_effect=requests.ConnectionError("unreachable")):
            with pytest.raises(TransportError) as exc:
                client.fetch("LMT")
        assert exc.value.symbol == "LMT"

    def test_timeout_is_transport_error(self, client):
        with patch("cocostock.cboe.cboe_client.requests.get", side_effect=requests.Timeout("slow")):
            with pytest.raises(TransportError):
                client.fetch("LMT")

    def test_non_200(self, client):
        with patch("cocostock.cboe.cboe_client.requests.get", return_value=_response(403, text="AccessDenied")):
            with pytest.raises(UpstreamStatusError) as exc:
                client.fetch("ZZZZ")
        assert exc.value.status_code == 403
        assert exc.value.response_snippet == "AccessDenied"
        assert exc.value.code == "cboe_api_error"

    def test_bad_json(self, client):
        with patch("cocostock.cboe.cboe_client.requests.get", return_value=_response(json_error=True, text="<html>")):
            with pytest.raises(DecodeError):
                client.fetch("LMT")

    def test_json_not_object(self, client):
        with patch("cocostock.cboe.cboe_client.requests.get", return_value=_response(json_body=[1, 2])):
            with pytest.raises(DecodeError):
                client.fetch("LMT")

    def test_invalid_symbol_never_requested(self, client):
        with patch("cocostock.cboe.cboe_client.requests.get") as get:
            with pytest.raises(InvalidSymbolError):
                client.fetch("LM T")
        get.assert_not_called()


class TestInspection:
    def test_validate(self):
        assert CboeClient.validate(chain_payload("LMT")) is True
        assert CboeClient.validate({"data": {}}) is False
        assert CboeClient.validate({"data": {"options": "x"}}) is False
        assert CboeClient.validate(None) is False

    def test_timestamp(self):
        assert CboeClient.timestamp(chain_payload("LMT")) == SNAPSHOT_TS
        assert CboeClient.timestamp(chain_payload("LMT", timestamp=None)) is None

    def test_options_empty_when_invalid(self):
        assert CboeClient.options({"data": None}) == []

    def test_expiration_dates(self, client):
        assert client.expiration_dates(chain_payload("LMT")) == ["250815", "250919"]

    def test_stock_exists(self, client):
        with patch("cocostock.cboe.cboe_client.requests.get", return_value=_response(json_body=chain_payload("LMT"))):
            assert client.stock_exists("LMT") is True
        with patch("cocostock.cboe.cboe_client.requests.get", return_value=_response(403)):
            assert client.stock_exists("ZZZZ") is False

    def test_connectivity(self, client):
        with patch("cocostock.cboe.cboe_client.requests.get", return_value=_response(json_body=chain_payload("LMT"))):
            assert client.test_connectivity()["status"] == "success"
        with patch("cocostock.cboe.cboe_client.requests.get", side_effect=requests.ConnectionError("down")):
            result = client.test_connectivity()
        assert result["status"] == "error"
        assert "down" in result["message"]
        assert result["timestamp"] == "2025-07-02 10:00:00"


def test_normalize_symbol():
    assert normalize_symbol(" lmt ") == "LMT"
    for bad in ("", "LM1", "BRK.B", None):
        with pytest.raises(InvalidSymbolError):
            normalize_symbol(bad)


def test_url_options():
    assert url_options("lmt", "https://cdn.example.test/options") == "https://cdn.example.test/options/LMT.json"
