"""Conversation API endpoints for the channel adapters"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from orderchat.conversation.lifecycle import LifecycleManager
from orderchat.database import get_db
from orderchat.errors import AppError
from orderchat.schemas.conversation import (
    ConversationState,
    ConversationStatusSummary,
    FinalizeResponse,
    RestartRequest,
    TurnRequest,
    TurnResponse,
    TurnResult,
)
from orderchat.schemas.restaurant import RestaurantContext
from orderchat.services.order_finalizer import OrderFinalizer
from orderchat.services.restaurant_context import load_restaurant_context

router = APIRouter()
logger = structlog.get_logger()

_lifecycle: Optional[LifecycleManager] = None
_finalizer: Optional[OrderFinalizer] = None


def get_lifecycle() -> LifecycleManager:
    """Shared lifecycle manager"""
    global _lifecycle
    if _lifecycle is None:
        _lifecycle = LifecycleManager()
    return _lifecycle


def get_finalizer() -> OrderFinalizer:
    global _finalizer
    if _finalizer is None:
        _finalizer = OrderFinalizer()
    return _finalizer


def http_error(error: AppError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)


async def get_restaurant(tenant_id: UUID, db: AsyncSession = Depends(get_db)) -> RestaurantContext:
    """Restaurant context for the tenant in the path"""
    try:
        return await load_restaurant_context(db, tenant_id)
    except AppError as e:
        raise http_error(e)


def to_turn_response(result: TurnResult) -> TurnResponse:
    conversation = result.conversation
    return TurnResponse(
        reply_text=result.reply_text,
        conversation_id=conversation.id if conversation else None,
        current_step=conversation.current_step if conversation else None,
        status=conversation.status if conversation else None,
        actions_applied=result.actions_applied,
        order_draft=conversation.order_draft if conversation else None,
        success=result.success,
        error=result.error,
    )


@router.post("/turn", response_model=TurnResponse)
async def handle_turn(
    request: TurnRequest,
    restaurant: RestaurantContext = Depends(get_restaurant),
    lifecycle: LifecycleManager = Depends(get_lifecycle),
):
    """Process one inbound customer message and return the reply to send"""
    result = await lifecycle.handle_turn(restaurant, request.customer_phone, request.text)
    return to_turn_response(result)


@router.get("", response_model=List[ConversationState])
async def list_customer_conversations(
    tenant_id: UUID,
    customer_phone: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=100),
    lifecycle: LifecycleManager = Depends(get_lifecycle),
):
    """Customer's conversations at this restaurant, newest first, terminated ones included"""
    try:
        return await lifecycle.store.list_for_customer(tenant_id, customer_phone, limit=limit)
    except AppError as e:
        raise http_error(e)


@router.get("/active", response_model=ConversationStatusSummary)
async def get_active_conversation(
    tenant_id: UUID,
    customer_phone: str = Query(..., min_length=1),
    lifecycle: LifecycleManager = Depends(get_lifecycle),
):
    """Status of the customer's active conversation"""
    try:
        status = await lifecycle.conversation_status(tenant_id, customer_phone)
    except AppError as e:
        raise http_error(e)

    if status is None:
        raise HTTPException(status_code=404, detail="No active conversation")
    return status


@router.post("/restart", response_model=TurnResponse)
async def restart_conversation(
    request: RestartRequest,
    restaurant: RestaurantContext = Depends(get_restaurant),
    lifecycle: LifecycleManager = Depends(get_lifecycle),
):
    """Abandon the active conversation and start over with the welcome message"""
    try:
        result = await lifecycle.restart(restaurant, request.customer_phone)
    except AppError as e:
        raise http_error(e)
    return to_turn_response(result)


@router.get("/{conversation_id}", response_model=ConversationState)
async def get_conversation(
    tenant_id: UUID,
    conversation_id: UUID,
    lifecycle: LifecycleManager = Depends(get_lifecycle),
):
    """Get a conversation, active or terminated"""
    try:
        state = await lifecycle.store.find_by_id(conversation_id)
    except AppError as e:
        raise http_error(e)

    if state.restaurant_id != tenant_id:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return state


@router.post("/{conversation_id}/finalize", response_model=FinalizeResponse)
async def finalize_conversation(
    conversation_id: UUID,
    restaurant: RestaurantContext = Depends(get_restaurant),
    finalizer: OrderFinalizer = Depends(get_finalizer),
):
    """Create the order from a confirmed conversation"""
    try:
        order_reference = await finalizer.finalize(conversation_id, restaurant)
        state = await finalizer.store.find_by_id(conversation_id)
    except AppError as e:
        logger.warning(
            "Order finalization rejected",
            conversation_id=str(conversation_id),
            error=e.message,
        )
        raise http_error(e)

    return FinalizeResponse(
        conversation_id=state.id,
        order_reference=order_reference,
        total_cents=state.order_draft.total_cents,
    )
