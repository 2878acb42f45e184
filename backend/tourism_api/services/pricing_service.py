"""
Reservation pricing.

Events are priced per ticket, places per adult visitor. The result is a
Decimal rounded half-up to the cent; it is stored on the reservation at
creation and never recomputed.
"""

import json
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from tourism_api.core.config import get_settings
from tourism_api.core.exceptions import InvalidArgumentError
from tourism_api.services.booking_target import EVENT, PLACE

CENT = Decimal("0.01")
ADULT_CATEGORY = "adult"


def round_price(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def _field(entity: Any, name: str, camel_name: str) -> Any:
    # Accepts ORM rows as well as plain attribute bags
    if isinstance(entity, dict):
        return entity.get(name, entity.get(camel_name))
    return getattr(entity, name, None)


def parse_entrance_fee(raw: Any) -> Optional[dict]:
    """Decode a place's fee table. Returns None for anything unusable."""
    if raw is None:
        return None
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if not isinstance(raw, str):
        return None
    try:
        fees = json.loads(raw)
    except ValueError:
        return None
    return fees if isinstance(fees, dict) else None


def adult_entrance_fee(raw: Any) -> Decimal:
    default = _to_decimal(get_settings().DEFAULT_ENTRANCE_FEE)
    fees = parse_entrance_fee(raw)
    if fees is None:
        return default
    fee = _to_decimal(fees.get(ADULT_CATEGORY))
    if fee is None or fee < 0:
        return default
    return fee


def compute_price(entity_type: str, entity: Any, quantity: int) -> Decimal:
    if entity_type == EVENT:
        unit_price = _to_decimal(_field(entity, "ticket_price", "ticketPrice")) or Decimal("0")
        unit_price = max(unit_price, Decimal("0"))
    elif entity_type == PLACE:
        unit_price = adult_entrance_fee(_field(entity, "entrance_fee", "entranceFee"))
    else:
        raise InvalidArgumentError(f"Unknown entity type '{entity_type}'")

    return round_price(unit_price * quantity)
