"""Fixture input loading

The fixture is a single monetary amount stored as scaled integer cents in a
JSON record. Both program variants read it as a fixed-point decimal string.
"""

import json
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Union
import logging

from legacyparity.config import FIXTURE_CONFIG
from legacyparity.errors import FixtureError

logger = logging.getLogger(__name__)

_SCALED_INT = re.compile(r"^[+-]?\d+$")


@dataclass(frozen=True)
class FixtureInput:
    """Reference input shared read-only by both executions"""
    value: str  # fixed-point decimal, e.g. "10000.00"
    raw_amount: str  # as stored, e.g. "001000000"
    record_key: str = ""


def cents_to_decimal(raw: Union[str, int], scale: int = 2) -> str:
    """
    Convert a scaled-integer amount to a fixed-point decimal string.

    "001000000" -> "10000.00", "5" -> "0.05", -1250 -> "-12.50"

    Raises:
        FixtureError: if the value is not an optionally signed integer
    """
    if isinstance(raw, bool):
        raise FixtureError(f"Fixture amount must be an integer, got {raw!r}")
    text = str(raw).strip()
    if not _SCALED_INT.match(text):
        raise FixtureError(f"Fixture amount is not a scaled integer: {raw!r}")

    amount = Decimal(int(text)).scaleb(-scale)
    return f"{amount:.{scale}f}"


class FixtureLoader:
    """Read the fixture record from object storage"""

    def __init__(self, store, record_key: str = None, amount_field: str = None):
        self.store = store
        self.record_key = record_key or FIXTURE_CONFIG["record_key"]
        self.amount_field = amount_field or FIXTURE_CONFIG["amount_field"]

    def load(self, bucket: str) -> FixtureInput:
        data = self.store.get(bucket, self.record_key)

        try:
            record = json.loads(data)
        except (ValueError, UnicodeDecodeError) as e:
            raise FixtureError(f"Fixture record {self.record_key} is not valid JSON: {e}") from e

        if not isinstance(record, dict) or self.amount_field not in record:
            raise FixtureError(
                f"Fixture record {self.record_key} has no '{self.amount_field}' field"
            )

        raw = record[self.amount_field]
        value = cents_to_decimal(raw, FIXTURE_CONFIG["scale"])
        logger.info(f"Input data: '{value}' (raw {self.amount_field}={raw!r})")
        return FixtureInput(value=value, raw_amount=str(raw), record_key=self.record_key)
