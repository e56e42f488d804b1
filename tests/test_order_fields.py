import pathlib
import sys
from datetime import datetime

import pytest
import pytz

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from services import order_fields


@pytest.mark.parametrize(
    "raw, expected",
    [
        (250, 250.0),
        ("199.50", 199.5),
        (" 42 ", 42.0),
        (None, 0.0),
        ("", 0.0),
        ("free", 0.0),
        (float("nan"), 0.0),
        (float("inf"), 0.0),
        (-30, 0.0),
        ([], 0.0),
        (10**400, 0.0),
    ],
)
def test_order_amount_coerces_to_finite_non_negative(raw, expected):
    assert order_fields.order_amount({"order_total": raw}) == expected


def test_order_amount_defaults_when_missing():
    assert order_fields.order_amount({}) == 0.0


def test_discount_falls_back_to_coupon_discount():
    assert order_fields.discount({"coupon_discount": 50}) == 50


def test_discount_prefers_order_discount():
    assert order_fields.discount({"order_discount": 20, "coupon_discount": 50}) == 20


def test_discount_skips_zero_and_garbage_aliases():
    order = {"order_discount": 0, "order_discount_effective": "n/a", "discount": "12.5"}
    assert order_fields.discount(order) == 12.5


def test_delivery_fee_alias_priority():
    assert order_fields.delivery_fee({"delivery_fee": 30, "discounted_total_delivery_fee": "25"}) == 25
    assert order_fields.delivery_fee({"order_delivery_charge": 40, "delivery_fee": 30}) == 40
    assert order_fields.delivery_fee({}) == 0.0


@pytest.mark.parametrize(
    "raw, expected",
    [
        (["Pizzas", "Italian"], ["Pizzas", "Italian"]),
        ("North Indian, Chinese ,,Biryani", ["North Indian", "Chinese", "Biryani"]),
        ("Desserts", ["Desserts"]),
        ([], ["Other"]),
        ("", ["Other"]),
        (" , ", ["Other"]),
        (None, ["Other"]),
    ],
)
def test_cuisines_normalise_every_shape(raw, expected):
    assert order_fields.cuisines({"restaurant_cuisine": raw}) == expected


def test_restaurant_name_defaults_to_unknown():
    assert order_fields.restaurant_name({}) == "Unknown"
    assert order_fields.restaurant_name({"restaurant_name": "Meghana Foods"}) == "Meghana Foods"


def test_line_item_accessors():
    order = {
        "order_items": [
            {"name": "Paneer Tikka", "quantity": "2", "total": "340"},
            {"quantity": "", "total": None},
            None,
        ]
    }
    items = order_fields.order_items(order)
    assert len(items) == 2
    assert order_fields.item_name(items[0]) == "Paneer Tikka"
    assert order_fields.item_quantity(items[0]) == 2
    assert order_fields.item_total(items[0]) == 340
    assert order_fields.item_name(items[1]) == "Unknown Item"
    assert order_fields.item_quantity(items[1]) == 1
    assert order_fields.item_total(items[1]) == 0
    assert order_fields.order_items({"order_items": "oops"}) == []


def test_order_timestamp_localises_naive_values():
    kolkata = pytz.timezone("Asia/Kolkata")
    parsed = order_fields.order_timestamp({"order_time": "2024-01-05 10:00:00"}, kolkata)
    assert parsed.hour == 10
    assert parsed.utcoffset().total_seconds() == 5.5 * 3600


def test_order_timestamp_converts_aware_values():
    parsed = order_fields.order_timestamp({"order_time": "2024-01-05T20:00:00+00:00"}, pytz.timezone("Asia/Kolkata"))
    assert (parsed.day, parsed.hour, parsed.minute) == (6, 1, 30)


def test_order_timestamp_accepts_datetime_objects():
    parsed = order_fields.order_timestamp({"order_time": datetime(2024, 1, 5, 10, 0)}, pytz.utc)
    assert parsed == pytz.utc.localize(datetime(2024, 1, 5, 10, 0))


@pytest.mark.parametrize("raw", [None, "", "yesterday-ish", 12])
def test_order_timestamp_returns_none_when_unparseable(raw):
    assert order_fields.order_timestamp({"order_time": raw}, pytz.utc) is None


def test_huge_line_item_values_degrade_to_defaults():
    item = {"quantity": 10**400, "total": 10**400}
    assert order_fields.item_quantity(item) == 1
    assert order_fields.item_total(item) == 0


@pytest.mark.parametrize("raw", ["10:30", "2024", "2024-03", "March 5"])
def test_order_timestamp_requires_a_full_date(raw):
    assert order_fields.order_timestamp({"order_time": raw}, pytz.utc) is None


def test_order_timestamp_date_only_is_midnight():
    parsed = order_fields.order_timestamp({"order_time": "2024-03-05"}, pytz.utc)
    assert parsed == pytz.utc.localize(datetime(2024, 3, 5))


@pytest.mark.parametrize("zone", ["UTC", "America/New_York"])
def test_order_timestamp_out_of_range_after_conversion(zone):
    order = {"order_time": "0001-01-01T00:00:00+05:00"}
    assert order_fields.order_timestamp(order, pytz.timezone(zone)) is None
