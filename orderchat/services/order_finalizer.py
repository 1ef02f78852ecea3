"""Order creation from a confirmed conversation

OrderFinalizer is called by the outside world (an operator, or the channel
adapter once the customer confirms). The conversation engine itself never
finalizes an order.
"""

from typing import List, Optional
import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
import structlog

from orderchat.constants import (
    MAX_ITEM_QUANTITY,
    MAX_ITEMS_PER_ORDER,
    MAX_ORDER_AMOUNT_CENTS,
)
from orderchat.conversation.store import ConversationStore, IdLike
from orderchat.conversation.summary import format_money
from orderchat.database import SessionLocal
from orderchat.errors import DatabaseError, ValidationError
from orderchat.log import mask_phone
from orderchat.models.order import Order
from orderchat.schemas.conversation import OrderDraft
from orderchat.schemas.restaurant import RestaurantContext

logger = structlog.get_logger()

ACTIVE_ORDER_STATUSES = ("confirmed", "preparing")


def validate_order_draft(draft: OrderDraft, restaurant: Optional[RestaurantContext] = None) -> List[str]:
    """Problems that keep a draft from becoming an order; empty when it is valid"""
    errors = []

    if draft.is_empty:
        errors.append("El pedido debe tener al menos un item")
    elif len(draft.items) > MAX_ITEMS_PER_ORDER:
        errors.append(f"Máximo {MAX_ITEMS_PER_ORDER} items por pedido")

    for item in draft.items:
        if not 1 <= item.quantity <= MAX_ITEM_QUANTITY:
            errors.append(f"Cantidad inválida para {item.name} (1 a {MAX_ITEM_QUANTITY})")

    address = draft.delivery_address
    if address is None or not address.is_complete:
        errors.append("Dirección de entrega incompleta")

    if draft.total_cents <= 0:
        errors.append("Total del pedido inválido")
    elif draft.total_cents > MAX_ORDER_AMOUNT_CENTS:
        errors.append(f"El total no puede exceder {format_money(MAX_ORDER_AMOUNT_CENTS)}")

    if restaurant and restaurant.minimum_order_cents and draft.subtotal_cents < restaurant.minimum_order_cents:
        errors.append(f"Pedido mínimo: {format_money(restaurant.minimum_order_cents)}")

    if not draft.reconciles():
        errors.append("Los totales del pedido no cuadran")

    return errors


class OrderFinalizer:
    """Turns a conversation's draft into an Order row and completes the conversation"""

    def __init__(
        self,
        session_factory: async_sessionmaker = SessionLocal,
        store: Optional[ConversationStore] = None,
    ):
        self._session_factory = session_factory
        self.store = store or ConversationStore(session_factory)

    @staticmethod
    def estimate_delivery_minutes(restaurant: RestaurantContext, active_orders: int) -> int:
        """Longer estimates when the kitchen is busy"""
        if active_orders > 5:
            return restaurant.delivery_time_max
        if active_orders > 2:
            return round((restaurant.delivery_time_min + restaurant.delivery_time_max) / 2)
        return restaurant.delivery_time_min

    async def finalize(self, conversation_id: IdLike, restaurant: RestaurantContext) -> str:
        """Create the order and return its reference"""
        state = await self.store.find_by_id(conversation_id)

        if state.restaurant_id != restaurant.id:
            raise ValidationError("Conversation belongs to another restaurant")
        if state.is_terminal:
            raise ValidationError(f"Conversation {state.id} is already {state.status.value}")

        draft = state.order_draft
        errors = validate_order_draft(draft, restaurant)
        if errors:
            raise ValidationError("; ".join(errors), field="order_draft")

        order_id = uuid.uuid4()
        order_reference = str(order_id)

        try:
            async with self._session_factory() as db:
                # Order insert and completion commit together; a conversation
                # abandoned since the read above fails here and nothing is written
                completed = await self.store.complete_in_session(db, state.id, order_reference)
                draft = completed.order_draft
                errors = validate_order_draft(draft, restaurant)
                if errors:
                    raise ValidationError("; ".join(errors), field="order_draft")

                address = draft.delivery_address

                active_result = await db.execute(
                    select(func.count(Order.id)).where(
                        Order.tenant_id == restaurant.id,
                        Order.status.in_(ACTIVE_ORDER_STATUSES),
                    )
                )
                active_orders = active_result.scalar() or 0

                order = Order(
                    id=order_id,
                    tenant_id=restaurant.id,
                    conversation_id=state.id,
                    customer_phone=state.customer_phone,
                    delivery_street=address.street,
                    delivery_number=address.number,
                    delivery_neighborhood=address.neighborhood,
                    delivery_references=address.references,
                    delivery_postal_code=address.postal_code,
                    items_json=[item.model_dump(mode="json") for item in draft.items],
                    subtotal_cents=draft.subtotal_cents,
                    delivery_fee_cents=draft.delivery_fee_cents,
                    total_cents=draft.total_cents,
                    status="confirmed",
                    estimated_delivery_minutes=self.estimate_delivery_minutes(restaurant, active_orders),
                    special_instructions=draft.special_instructions,
                )
                db.add(order)
                await db.commit()
        except IntegrityError as e:
            raise ValidationError(f"Conversation {state.id} already has an order") from e
        except SQLAlchemyError as e:
            logger.error("Order creation failed", conversation_id=str(state.id), error=str(e))
            raise DatabaseError("Order creation failed") from e

        logger.info(
            "Order created from conversation",
            order_id=order_reference,
            conversation_id=str(state.id),
            restaurant_id=str(restaurant.id),
            customer_phone=mask_phone(state.customer_phone),
            total_cents=draft.total_cents,
            items_count=len(draft.items),
        )
        return order_reference
