"""Value objects returned by the spending analytics engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple

RESTAURANT_PREVIEW_SIZE = 10


@dataclass(frozen=True)
class OrderHighlight:
    amount: int = 0
    restaurant: str = "Unknown"
    date: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"amount": self.amount, "restaurant": self.restaurant, "date": self.date}


@dataclass(frozen=True)
class SummaryStats:
    total_spent: int = 0
    total_orders: int = 0
    avg_order_value: int = 0
    total_delivery_fees: int = 0
    total_savings: int = 0
    most_expensive_order: OrderHighlight = field(default_factory=OrderHighlight)
    cheapest_order: OrderHighlight = field(default_factory=OrderHighlight)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalSpent": self.total_spent,
            "totalOrders": self.total_orders,
            "avgOrderValue": self.avg_order_value,
            "totalDeliveryFees": self.total_delivery_fees,
            "totalSavings": self.total_savings,
            "mostExpensiveOrder": self.most_expensive_order.to_dict(),
            "cheapestOrder": self.cheapest_order.to_dict(),
        }


@dataclass(frozen=True)
class TimeBucket:
    """Order count and rounded spend for one period or calendar slot."""

    label: str
    orders: int
    amount: int

    def to_dict(self, label_key: str) -> Dict[str, Any]:
        return {label_key: self.label, "orders": self.orders, "amount": self.amount}


@dataclass(frozen=True)
class RestaurantData:
    name: str
    cuisine: str
    orders: int
    total_spent: int
    avg_order_value: int
    last_ordered: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "cuisine": self.cuisine,
            "orders": self.orders,
            "totalSpent": self.total_spent,
            "avgOrderValue": self.avg_order_value,
            "lastOrdered": self.last_ordered,
        }


@dataclass(frozen=True)
class CuisineData:
    name: str
    orders: int
    amount: int

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "orders": self.orders, "amount": self.amount}


@dataclass(frozen=True)
class ItemData:
    name: str
    count: float
    total_spent: int

    def to_dict(self) -> Dict[str, Any]:
        count = self.count
        if isinstance(count, float) and count.is_integer():
            count = int(count)
        return {"name": self.name, "count": count, "totalSpent": self.total_spent}


@dataclass(frozen=True)
class FavoriteRestaurant:
    name: str = "N/A"
    count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "count": self.count}


@dataclass(frozen=True)
class FunStats:
    first_order_date: str = ""
    longest_streak: int = 0
    total_savings: int = 0
    favorite_restaurant: FavoriteRestaurant = field(default_factory=FavoriteRestaurant)
    favorite_day: str = "N/A"
    peak_hour: str = "N/A"
    late_night_orders: int = 0
    unique_restaurants: int = 0
    avg_orders_per_month: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "firstOrderDate": self.first_order_date,
            "longestStreak": self.longest_streak,
            "totalSavings": self.total_savings,
            "favoriteRestaurant": self.favorite_restaurant.to_dict(),
            "favoriteDay": self.favorite_day,
            "peakHour": self.peak_hour,
            "lateNightOrders": self.late_night_orders,
            "uniqueRestaurants": self.unique_restaurants,
            "avgOrdersPerMonth": self.avg_orders_per_month,
        }


@dataclass(frozen=True)
class DashboardData:
    """Complete spending report for one batch of orders.

    Built once per batch and never mutated. ``orders`` holds the raw upstream
    records, most recent first.
    """

    summary: SummaryStats
    monthly_spending: Tuple[TimeBucket, ...]
    yearly_spending: Tuple[TimeBucket, ...]
    weekday_distribution: Tuple[TimeBucket, ...]
    hourly_distribution: Tuple[TimeBucket, ...]
    top_restaurants: Tuple[RestaurantData, ...]
    cuisine_breakdown: Tuple[CuisineData, ...]
    top_items: Tuple[ItemData, ...]
    fun_stats: FunStats
    orders: Tuple[Mapping[str, Any], ...]

    def restaurant_preview(self, limit: int = RESTAURANT_PREVIEW_SIZE) -> List[RestaurantData]:
        return list(self.top_restaurants[: max(0, limit)])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "monthlySpending": [bucket.to_dict("month") for bucket in self.monthly_spending],
            "yearlySpending": [bucket.to_dict("year") for bucket in self.yearly_spending],
            "weekdayDistribution": [bucket.to_dict("day") for bucket in self.weekday_distribution],
            "hourlyDistribution": [bucket.to_dict("hour") for bucket in self.hourly_distribution],
            "topRestaurants": [entry.to_dict() for entry in self.top_restaurants],
            "cuisineBreakdown": [entry.to_dict() for entry in self.cuisine_breakdown],
            "topItems": [entry.to_dict() for entry in self.top_items],
            "funStats": self.fun_stats.to_dict(),
            "orders": [dict(order) for order in self.orders],
        }
