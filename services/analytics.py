"""Spending analytics engine powering the order history dashboard."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable as IterableABC
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple

import pytz

from . import order_fields
from .dashboard import (
    CuisineData,
    DashboardData,
    FavoriteRestaurant,
    FunStats,
    ItemData,
    OrderHighlight,
    RestaurantData,
    SummaryStats,
    TimeBucket,
)

LOGGER = logging.getLogger(__name__)

WEEKDAYS = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
CUISINE_LIMIT = 15
ITEM_LIMIT = 20
LATE_NIGHT_START_HOUR = 22
LATE_NIGHT_END_HOUR = 4
NOT_AVAILABLE = "N/A"


# ---------------------------------------------------------------------------
# Helper utilities
# ---------------------------------------------------------------------------


def _round_amount(value: float) -> int:
    """Round half up to the nearest integer, the way the dashboard displays currency."""

    return int(math.floor(value + 0.5))


def _resolve_timezone(tz_name: Optional[str]):
    try:
        return pytz.timezone(tz_name or "UTC")
    except pytz.UnknownTimeZoneError as exc:
        raise ValueError(f"Unknown timezone '{tz_name}'") from exc


def _format_hour(hour: int) -> str:
    return f"{hour:02d}:00"


def _weekday_index(moment: datetime) -> int:
    # Sunday-first, matching WEEKDAYS.
    return (moment.weekday() + 1) % 7


def _raw_timestamp(order: Mapping[str, Any]) -> str:
    value = order.get("order_time")
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


@dataclass(frozen=True)
class _OrderView:
    """One upstream order with every field resolved exactly once."""

    raw: Mapping[str, Any]
    moment: Optional[datetime]
    amount: float
    delivery_fee: float
    discount: float
    restaurant: str
    cuisines: Tuple[str, ...]

    @property
    def timestamp(self) -> str:
        return _raw_timestamp(self.raw)

    @classmethod
    def build(cls, order: Mapping[str, Any], tzinfo) -> "_OrderView":
        return cls(
            raw=order,
            moment=order_fields.order_timestamp(order, tzinfo),
            amount=order_fields.order_amount(order),
            delivery_fee=order_fields.delivery_fee(order),
            discount=order_fields.discount(order),
            restaurant=order_fields.restaurant_name(order),
            cuisines=tuple(order_fields.cuisines(order)),
        )


def _chronological_key(view: _OrderView) -> Tuple[bool, float]:
    # Undated orders sort after every dated one.
    if view.moment is None:
        return (True, 0.0)
    return (False, view.moment.timestamp())


# ---------------------------------------------------------------------------
# Grouping primitives
# ---------------------------------------------------------------------------


class _Tally:
    __slots__ = ("count", "amount", "first", "latest")

    def __init__(self) -> None:
        self.count: float = 0
        self.amount = 0.0
        self.first: Optional[_OrderView] = None
        self.latest: Optional[_OrderView] = None

    def add(self, view: _OrderView, count: float, amount: float) -> None:
        if self.first is None:
            self.first = view
            self.latest = view
        elif view.moment is not None and (
            self.latest.moment is None or view.moment > self.latest.moment
        ):
            self.latest = view
        self.count += count
        self.amount += amount


Contribution = Tuple[Hashable, float, float]


def _accumulate(
    views: Sequence[_OrderView],
    contributions: Callable[[_OrderView], Iterable[Contribution]],
    *,
    seed_keys: Iterable[Hashable] = (),
) -> Dict[Hashable, _Tally]:
    """Fold ``views`` into per-key tallies.

    ``contributions`` yields ``(key, count, amount)`` triples for one order.
    Keys listed in ``seed_keys`` are always present, in that order; other keys
    appear in first-seen order.
    """

    tallies: Dict[Hashable, _Tally] = {key: _Tally() for key in seed_keys}
    for view in views:
        for key, count, amount in contributions(view):
            tally = tallies.get(key)
            if tally is None:
                tally = tallies[key] = _Tally()
            tally.add(view, count, amount)
    return tallies


def _rank(
    tallies: Dict[Hashable, _Tally],
    build_row: Callable[[Hashable, _Tally], Any],
    *,
    sort_key: Optional[Callable[[Any], Any]] = None,
    descending: bool = True,
    limit: Optional[int] = None,
) -> Tuple[Any, ...]:
    rows = [build_row(key, tally) for key, tally in tallies.items()]
    if sort_key is not None:
        # list.sort is stable in both directions, so ties keep first-seen order.
        rows.sort(key=sort_key, reverse=descending)
    if limit is not None:
        rows = rows[:limit]
    return tuple(rows)


def _bucket_row(label: Hashable, tally: _Tally) -> TimeBucket:
    return TimeBucket(label=str(label), orders=int(tally.count), amount=_round_amount(tally.amount))


# ---------------------------------------------------------------------------
# Contribution functions
# ---------------------------------------------------------------------------


def _by_month(view: _OrderView) -> Iterable[Contribution]:
    if view.moment is not None:
        yield f"{view.moment.year:04d}-{view.moment.month:02d}", 1, view.amount


def _by_year(view: _OrderView) -> Iterable[Contribution]:
    if view.moment is not None:
        yield f"{view.moment.year:04d}", 1, view.amount


def _by_weekday(view: _OrderView) -> Iterable[Contribution]:
    if view.moment is not None:
        yield _weekday_index(view.moment), 1, view.amount


def _by_hour(view: _OrderView) -> Iterable[Contribution]:
    if view.moment is not None:
        yield view.moment.hour, 1, view.amount


def _by_restaurant(view: _OrderView) -> Iterable[Contribution]:
    yield view.restaurant, 1, view.amount


def _by_cuisine(view: _OrderView) -> Iterable[Contribution]:
    share = view.amount / len(view.cuisines)
    for cuisine in view.cuisines:
        yield cuisine, 1, share


def _by_item(view: _OrderView) -> Iterable[Contribution]:
    for item in order_fields.order_items(view.raw):
        yield order_fields.item_name(item), order_fields.item_quantity(item), order_fields.item_total(item)


# ---------------------------------------------------------------------------
# Report sections
# ---------------------------------------------------------------------------


def _highlight(view: _OrderView) -> OrderHighlight:
    return OrderHighlight(
        amount=_round_amount(view.amount),
        restaurant=view.restaurant,
        date=view.timestamp,
    )


def build_summary(views: Sequence[_OrderView]) -> SummaryStats:
    if not views:
        return SummaryStats()

    total_spent = sum(view.amount for view in views)
    most_expensive = views[0]
    cheapest: Optional[_OrderView] = None
    for view in views:
        if view.amount > most_expensive.amount:
            most_expensive = view
        if view.amount > 0 and (cheapest is None or view.amount < cheapest.amount):
            cheapest = view

    return SummaryStats(
        total_spent=_round_amount(total_spent),
        total_orders=len(views),
        avg_order_value=_round_amount(total_spent / len(views)),
        total_delivery_fees=_round_amount(sum(view.delivery_fee for view in views)),
        total_savings=_round_amount(sum(view.discount for view in views)),
        most_expensive_order=_highlight(most_expensive),
        cheapest_order=_highlight(cheapest or views[0]),
    )


def build_monthly(views: Sequence[_OrderView]) -> Tuple[TimeBucket, ...]:
    return _rank(
        _accumulate(views, _by_month),
        _bucket_row,
        sort_key=lambda bucket: bucket.label,
        descending=False,
    )


def build_yearly(views: Sequence[_OrderView]) -> Tuple[TimeBucket, ...]:
    return _rank(
        _accumulate(views, _by_year),
        _bucket_row,
        sort_key=lambda bucket: bucket.label,
        descending=False,
    )


def build_weekday(views: Sequence[_OrderView]) -> Tuple[TimeBucket, ...]:
    return _rank(
        _accumulate(views, _by_weekday, seed_keys=range(7)),
        lambda index, tally: _bucket_row(WEEKDAYS[index], tally),
    )


def build_hourly(views: Sequence[_OrderView]) -> Tuple[TimeBucket, ...]:
    return _rank(
        _accumulate(views, _by_hour, seed_keys=range(24)),
        lambda hour, tally: _bucket_row(_format_hour(hour), tally),
    )


def _restaurant_row(name: Hashable, tally: _Tally) -> RestaurantData:
    return RestaurantData(
        name=str(name),
        cuisine=", ".join(tally.first.cuisines),
        orders=int(tally.count),
        total_spent=_round_amount(tally.amount),
        avg_order_value=_round_amount(tally.amount / tally.count),
        last_ordered=tally.latest.timestamp,
    )


def build_restaurants(views: Sequence[_OrderView]) -> Tuple[RestaurantData, ...]:
    return _rank(
        _accumulate(views, _by_restaurant),
        _restaurant_row,
        sort_key=lambda row: row.total_spent,
    )


def build_cuisines(views: Sequence[_OrderView], limit: int = CUISINE_LIMIT) -> Tuple[CuisineData, ...]:
    return _rank(
        _accumulate(views, _by_cuisine),
        lambda name, tally: CuisineData(
            name=str(name), orders=int(tally.count), amount=_round_amount(tally.amount)
        ),
        sort_key=lambda row: row.orders,
        limit=limit,
    )


def build_items(views: Sequence[_OrderView], limit: int = ITEM_LIMIT) -> Tuple[ItemData, ...]:
    return _rank(
        _accumulate(views, _by_item),
        lambda name, tally: ItemData(
            name=str(name), count=tally.count, total_spent=_round_amount(tally.amount)
        ),
        sort_key=lambda row: row.count,
        limit=limit,
    )


def _longest_streak(views: Sequence[_OrderView]) -> int:
    dates = sorted({view.moment.date() for view in views if view.moment is not None})
    if not dates:
        return 0
    longest = current = 1
    for previous, following in zip(dates, dates[1:]):
        if (following - previous).days == 1:
            current += 1
            longest = max(longest, current)
        else:
            current = 1
    return longest


def _busiest_slot(tallies: Dict[Hashable, _Tally]) -> Optional[Hashable]:
    best_key = None
    best_count = 0
    for key, tally in tallies.items():
        if tally.count > best_count:
            best_key, best_count = key, tally.count
    return best_key


def build_fun_stats(views: Sequence[_OrderView]) -> FunStats:
    if not views:
        return FunStats()

    dated = [view for view in views if view.moment is not None]

    restaurant_counts = _accumulate(views, _by_restaurant)
    favorite_name = _busiest_slot(restaurant_counts)
    favorite = FavoriteRestaurant(
        name=str(favorite_name), count=int(restaurant_counts[favorite_name].count)
    )

    busiest_day = _busiest_slot(_accumulate(views, _by_weekday, seed_keys=range(7)))
    peak_hour = _busiest_slot(_accumulate(views, _by_hour, seed_keys=range(24)))

    late_night = sum(
        1
        for view in dated
        if view.moment.hour >= LATE_NIGHT_START_HOUR or view.moment.hour < LATE_NIGHT_END_HOUR
    )
    months = len({(view.moment.year, view.moment.month) for view in dated})

    return FunStats(
        first_order_date=dated[0].timestamp if dated else "",
        longest_streak=_longest_streak(views),
        total_savings=_round_amount(sum(view.discount for view in views)),
        favorite_restaurant=favorite,
        favorite_day=WEEKDAYS[busiest_day] if busiest_day is not None else NOT_AVAILABLE,
        peak_hour=_format_hour(peak_hour) if peak_hour is not None else NOT_AVAILABLE,
        late_night_orders=late_night,
        unique_restaurants=len(restaurant_counts),
        avg_orders_per_month=_round_amount(len(views) / months) if months else len(views),
    )


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


def _prepare(orders: Iterable[Any], tzinfo) -> List[_OrderView]:
    if isinstance(orders, (str, bytes, Mapping)) or not isinstance(orders, IterableABC):
        raise TypeError("orders must be a sequence of order records")
    views: List[_OrderView] = []
    skipped = 0
    for order in orders:
        if not isinstance(order, Mapping):
            skipped += 1
            continue
        views.append(_OrderView.build(order, tzinfo))
    if skipped:
        LOGGER.warning("Ignored %d order entries that were not JSON objects", skipped)
    views.sort(key=_chronological_key)
    return views


def process(orders: Iterable[Mapping[str, Any]], timezone_name: str = "UTC") -> DashboardData:
    """Build the full spending report for a batch of raw Swiggy orders.

    Every calendar-derived field (buckets, streaks, peak hour, late night
    window) is computed in ``timezone_name``. Naive upstream timestamps are
    read as local times in that zone.
    """

    tzinfo = _resolve_timezone(timezone_name)
    views = _prepare(orders, tzinfo)
    dashboard = DashboardData(
        summary=build_summary(views),
        monthly_spending=build_monthly(views),
        yearly_spending=build_yearly(views),
        weekday_distribution=build_weekday(views),
        hourly_distribution=build_hourly(views),
        top_restaurants=build_restaurants(views),
        cuisine_breakdown=build_cuisines(views),
        top_items=build_items(views),
        fun_stats=build_fun_stats(views),
        orders=tuple(view.raw for view in reversed(views)),
    )
    LOGGER.debug("Built dashboard for %d orders in %s", len(views), tzinfo.zone)
    return dashboard


class AnalyticsEngine:
    def __init__(self, timezone_name: str = "UTC") -> None:
        self.timezone_name = _resolve_timezone(timezone_name).zone

    def build_dashboard(
        self,
        orders: Iterable[Mapping[str, Any]],
        *,
        timezone_name: Optional[str] = None,
    ) -> DashboardData:
        return process(orders, timezone_name or self.timezone_name)


_engine_instance: Optional[AnalyticsEngine] = None


def get_analytics_engine() -> AnalyticsEngine:
    global _engine_instance
    if _engine_instance is None:
        _engine_instance = AnalyticsEngine()
    return _engine_instance
