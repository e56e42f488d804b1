"""Accessors that normalise loosely typed Swiggy order payloads."""
from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional

from dateutil.parser import parse as dateutil_parse

# Upstream aliases, highest priority first.
DELIVERY_FEE_FIELDS = (
    "order_delivery_charge",
    "discounted_total_delivery_fee",
    "delivery_fee",
)
DISCOUNT_FIELDS = (
    "order_discount",
    "order_discount_effective",
    "coupon_discount",
    "discount",
)

UNKNOWN_RESTAURANT = "Unknown"
UNKNOWN_ITEM = "Unknown Item"
DEFAULT_CUISINE = "Other"

_DEFAULT_A = datetime(2000, 1, 1)
_DEFAULT_B = datetime(2001, 2, 2)


def _number(value: Any) -> float:
    """Coerce ``value`` to a finite, non-negative float (``0.0`` otherwise)."""

    if value in (None, "") or isinstance(value, bool):
        return 0.0
    try:
        parsed = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if not math.isfinite(parsed) or parsed < 0:
        return 0.0
    return parsed


def _first_nonzero(order: Mapping[str, Any], fields: Iterable[str]) -> float:
    for field_name in fields:
        value = _number(order.get(field_name))
        if value:
            return value
    return 0.0


def order_amount(order: Mapping[str, Any]) -> float:
    return _number(order.get("order_total"))


def delivery_fee(order: Mapping[str, Any]) -> float:
    return _first_nonzero(order, DELIVERY_FEE_FIELDS)


def discount(order: Mapping[str, Any]) -> float:
    return _first_nonzero(order, DISCOUNT_FIELDS)


def restaurant_name(order: Mapping[str, Any]) -> str:
    name = order.get("restaurant_name")
    return str(name) if name not in (None, "") else UNKNOWN_RESTAURANT


def cuisines(order: Mapping[str, Any]) -> List[str]:
    """Return the cuisine tags of an order.

    The upstream field is either a list or a comma separated string. Blank
    entries are dropped and an order with no usable tag is filed under
    ``"Other"``.
    """

    raw = order.get("restaurant_cuisine")
    if isinstance(raw, (list, tuple)):
        candidates = [str(entry) for entry in raw if entry is not None]
    elif isinstance(raw, str):
        candidates = raw.split(",")
    else:
        candidates = []
    tags = [tag.strip() for tag in candidates if tag.strip()]
    return tags or [DEFAULT_CUISINE]


def order_items(order: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    items = order.get("order_items")
    if not isinstance(items, (list, tuple)):
        return []
    return [item for item in items if isinstance(item, Mapping)]


def item_name(item: Mapping[str, Any]) -> str:
    name = item.get("name")
    return str(name) if name not in (None, "") else UNKNOWN_ITEM


def item_quantity(item: Mapping[str, Any]) -> float:
    return _number(item.get("quantity")) or 1.0


def item_total(item: Mapping[str, Any]) -> float:
    return _number(item.get("total"))


def order_timestamp(order: Mapping[str, Any], tzinfo) -> Optional[datetime]:
    """Parse ``order_time`` into an aware datetime in ``tzinfo``.

    ``tzinfo`` is a pytz zone. Naive timestamps are taken to already be in
    that zone; aware ones are converted. Anything unparseable, lacking a full
    calendar date, or out of range once converted yields ``None``.
    """

    value = order.get("order_time")
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif not isinstance(value, str):
        return None
    else:
        parsed = _parse_full_date(value)
        if parsed is None:
            return None
    try:
        if parsed.tzinfo is None:
            return tzinfo.localize(parsed)
        return parsed.astimezone(tzinfo)
    except (OverflowError, ValueError):
        return None


def _parse_full_date(value: str) -> Optional[datetime]:
    # dateutil fills missing parts from ``default``; two different defaults
    # only agree when year, month and day all come from the string.
    try:
        first = dateutil_parse(value, default=_DEFAULT_A)
        second = dateutil_parse(value, default=_DEFAULT_B)
    except (TypeError, ValueError, OverflowError):
        return None
    if first.date() != second.date():
        return None
    return first
