"""Collaborators around the conversation engine"""

from orderchat.services.restaurant_context import load_restaurant_context
from orderchat.services.order_finalizer import OrderFinalizer, validate_order_draft

__all__ = ["load_restaurant_context", "OrderFinalizer", "validate_order_draft"]
