"""Database models"""

from orderchat.models.tenant import Tenant, RestaurantSettings, BusinessRule
from orderchat.models.menu import MenuItem
from orderchat.models.conversation import Conversation
from orderchat.models.order import Order

__all__ = [
    "Tenant",
    "RestaurantSettings",
    "BusinessRule",
    "MenuItem",
    "Conversation",
    "Order",
]
