from collections import Counter
from decimal import Decimal
from typing import Iterable, Optional

from . import models

DELIVERED = "delivered"
CANCELLED = "cancelled"
PENDING_STATUSES = {"pending", "confirmed", "preparing", "delivering"}


def _money(value: Optional[Decimal]) -> float:
    return float(value or 0)


def serialize_order(order: models.Order) -> dict:
    return {
        "id": str(order.id),
        "restaurant_name": order.restaurant_name,
        "restaurant_image": order.restaurant_image,
        "order_date": order.order_date.isoformat() if order.order_date else None,
        "total_amount": _money(order.total_amount),
        "status": order.status,
        "delivery_address": order.delivery_address,
        "payment_method": order.payment_method,
        "items": [
            {
                "dish_id": str(item.id) if item.id is not None else None,
                "dish_name": item.dish_name,
                "dish_description": item.dish_description,
                "dish_price": _money(item.dish_price),
                "dish_image": item.dish_image,
                "ingredients": item.ingredients or [],
                "quantity": item.quantity or 1,
            }
            for item in order.items
        ],
    }


def order_stats(orders: Iterable[models.Order]) -> dict:
    orders = list(orders)
    billable = [order for order in orders if order.status != CANCELLED]
    total_spent = sum((Decimal(order.total_amount or 0) for order in billable), Decimal("0"))
    restaurants = Counter(order.restaurant_name for order in billable if order.restaurant_name)
    favorite = restaurants.most_common(1)[0][0] if restaurants else None
    average = total_spent / len(billable) if billable else Decimal("0")
    return {
        "total_orders": len(orders),
        "delivered_orders": sum(1 for order in orders if order.status == DELIVERED),
        "pending_orders": sum(1 for order in orders if order.status in PENDING_STATUSES),
        "total_spent": round(float(total_spent), 2),
        "average_order_value": round(float(average), 2),
        "favorite_restaurant": favorite,
    }
