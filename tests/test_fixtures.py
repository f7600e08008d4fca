"""Tests for fixture loading and scaled-integer conversion"""

import json

import pytest

from helpers import InMemoryStore
from legacyparity.errors import FixtureError, StorageAccessError
from legacyparity.fixtures import FixtureLoader, cents_to_decimal


class TestCentsToDecimal:

    @pytest.mark.parametrize("raw,expected", [
        ("001000000", "10000.00"),
        ("1000000", "10000.00"),
        ("5", "0.05"),
        ("0", "0.00"),
        ("-1250", "-12.50"),
        (" 1234 ", "12.34"),
        (1000000, "10000.00"),
    ])
    def test_conversion(self, raw, expected):
        assert cents_to_decimal(raw) == expected

    def test_scale(self):
        assert cents_to_decimal("12345", scale=3) == "12.345"

    def test_large_amount_keeps_precision(self):
        assert cents_to_decimal("99999999999999999999") == "999999999999999999.99"

    @pytest.mark.parametrize("raw", ["10000.00", "1e6", "", "abc", True, 12.5, None])
    def test_rejects_non_integers(self, raw):
        with pytest.raises(FixtureError):
            cents_to_decimal(raw)


class TestFixtureLoader:

    def test_loads_loan_amount(self):
        store = InMemoryStore({("bucket", "data/loan_data.json"): b'{"loan_amount": "001000000"}'})

        fixture = FixtureLoader(store).load("bucket")

        assert fixture.value == "10000.00"
        assert fixture.raw_amount == "001000000"
        assert fixture.record_key == "data/loan_data.json"

    def test_numeric_amount(self):
        store = InMemoryStore({("bucket", "data/loan_data.json"): json.dumps({"loan_amount": 250075}).encode()})
        assert FixtureLoader(store).load("bucket").value == "2500.75"

    def test_custom_record_key_and_field(self):
        store = InMemoryStore({("bucket", "fixtures/other.json"): b'{"principal": "100"}'})
        loader = FixtureLoader(store, record_key="fixtures/other.json", amount_field="principal")
        assert loader.load("bucket").value == "1.00"

    def test_missing_field(self):
        store = InMemoryStore({("bucket", "data/loan_data.json"): b'{"amount": "100"}'})
        with pytest.raises(FixtureError, match="loan_amount"):
            FixtureLoader(store).load("bucket")

    def test_not_an_object(self):
        store = InMemoryStore({("bucket", "data/loan_data.json"): b'["001000000"]'})
        with pytest.raises(FixtureError):
            FixtureLoader(store).load("bucket")

    def test_invalid_json(self):
        store = InMemoryStore({("bucket", "data/loan_data.json"): b"loan_amount=100"})
        with pytest.raises(FixtureError, match="not valid JSON"):
            FixtureLoader(store).load("bucket")

    def test_missing_record_is_storage_error(self):
        with pytest.raises(StorageAccessError):
            FixtureLoader(InMemoryStore()).load("bucket")
