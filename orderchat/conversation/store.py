"""Conversation persistence

ConversationStore owns the conversations table. Every public operation runs
in its own session and transaction and replaces the order draft or history
as a whole object; nothing outside this module touches the JSON columns.

The partial unique index on (restaurant_id, customer_phone) WHERE
status = 'active' is what keeps a customer to a single active conversation
per restaurant. When two first messages race, the loser of the insert gets
an IntegrityError and re-reads the winner's row instead of failing.
"""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import AsyncIterator, List, Optional, Tuple, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import structlog

from orderchat.config import settings
from orderchat.constants import (
    ConversationStatus,
    ConversationStep,
    MessageRole,
    REORDER_STEPS,
    STEP_ORDER,
)
from orderchat.conversation.summary import summarize_conversation
from orderchat.database import SessionLocal
from orderchat.errors import DatabaseError, NotFoundError, ValidationError
from orderchat.log import mask_phone
from orderchat.models.conversation import Conversation
from orderchat.schemas.conversation import (
    ConversationState,
    HistoryMessage,
    OrderDraft,
    ORDER_DRAFT_SCHEMA_VERSION,
)

logger = structlog.get_logger()

IdLike = Union[uuid.UUID, str]


def _as_uuid(value: IdLike, field: str = "id") -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}: {value!r}", field=field)


def validate_transition(
    state: ConversationState,
    step: Optional[ConversationStep] = None,
    status: Optional[ConversationStatus] = None,
    allow_reorder: bool = False,
) -> Tuple[ConversationStatus, ConversationStep]:
    """Return the (status, step) a transition leads to, or raise ValidationError.

    Steps only move forward, with one exception: a conversation at address or
    confirming may go back to ordering when the caller passes allow_reorder
    (the customer added or removed items). Completed and abandoned are
    reachable from any non-terminal state and are final.
    """
    if state.is_terminal:
        raise ValidationError(
            f"Conversation {state.id} is {state.status.value}; no further transitions allowed"
        )

    if step == ConversationStep.COMPLETED:
        status = ConversationStatus.COMPLETED

    if status == ConversationStatus.COMPLETED:
        return ConversationStatus.COMPLETED, ConversationStep.COMPLETED
    if status == ConversationStatus.ABANDONED:
        return ConversationStatus.ABANDONED, state.current_step

    current = state.current_step
    if step is None or step == current:
        return ConversationStatus.ACTIVE, current

    if STEP_ORDER.index(step) > STEP_ORDER.index(current):
        if step == ConversationStep.CONFIRMING:
            address = state.order_draft.delivery_address
            if address is None or not address.is_complete:
                raise ValidationError(
                    "Street, number and neighborhood are required before confirming",
                    field="delivery_address",
                )
        return ConversationStatus.ACTIVE, step

    if step == ConversationStep.ORDERING and current in REORDER_STEPS and allow_reorder:
        return ConversationStatus.ACTIVE, step

    raise ValidationError(f"Cannot move conversation from {current.value} back to {step.value}")


class ConversationStore:
    """Atomic operations over persisted conversations"""

    def __init__(
        self,
        session_factory: async_sessionmaker = SessionLocal,
        history_limit: Optional[int] = None,
    ):
        self._session_factory = session_factory
        self.history_limit = history_limit or settings.history_limit

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as db:
                yield db
        except SQLAlchemyError as e:
            logger.error("Conversation store operation failed", operation=operation, error=str(e))
            raise DatabaseError(f"Conversation store failed during {operation}") from e

    # Serialization

    def _to_state(self, row: Conversation) -> ConversationState:
        return ConversationState(
            id=row.id,
            restaurant_id=row.restaurant_id,
            customer_phone=row.customer_phone,
            status=ConversationStatus(row.status),
            current_step=ConversationStep(row.current_step),
            order_draft=OrderDraft.model_validate(row.order_draft_json or {}),
            message_history=[
                HistoryMessage.model_validate(entry) for entry in (row.message_history_json or [])
            ],
            summary=row.summary,
            last_interaction_at=row.last_interaction_at,
            created_at=row.created_at,
        )

    @staticmethod
    def _dump_draft(draft: OrderDraft) -> dict:
        return draft.model_dump(mode="json")

    # Row access

    async def _get_row(self, db: AsyncSession, conversation_id: IdLike, lock: bool = False) -> Conversation:
        query = select(Conversation).where(Conversation.id == _as_uuid(conversation_id, "conversation_id"))
        if lock:
            query = query.with_for_update()
        result = await db.execute(query)
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError("Conversation", str(conversation_id))
        return row

    async def _find_active_row(
        self,
        db: AsyncSession,
        restaurant_id: uuid.UUID,
        customer_phone: str,
        lock: bool = False,
    ) -> Optional[Conversation]:
        query = (
            select(Conversation)
            .where(
                Conversation.restaurant_id == restaurant_id,
                Conversation.customer_phone == customer_phone,
                Conversation.status == ConversationStatus.ACTIVE.value,
            )
            .order_by(Conversation.last_interaction_at.desc())
            .limit(1)
        )
        if lock:
            query = query.with_for_update()
        result = await db.execute(query)
        return result.scalar_one_or_none()

    def _apply_transition(
        self,
        row: Conversation,
        step: Optional[ConversationStep] = None,
        status: Optional[ConversationStatus] = None,
        allow_reorder: bool = False,
        summary: Optional[str] = None,
    ) -> ConversationState:
        state = self._to_state(row)
        new_status, new_step = validate_transition(state, step, status, allow_reorder)

        row.status = new_status.value
        row.current_step = new_step.value

        if new_status != ConversationStatus.ACTIVE:
            closed = state.model_copy(update={"status": new_status, "current_step": new_step})
            row.summary = summary or summarize_conversation(closed)

        return state

    # Public operations

    async def get_or_create(
        self,
        restaurant_id: IdLike,
        customer_phone: str,
        *,
        max_conversation_seconds: Optional[int] = None,
        delivery_fee_cents: int = 0,
    ) -> ConversationState:
        """Return the pair's live conversation, creating one when there is none"""
        if not restaurant_id or not customer_phone:
            raise ValidationError("Restaurant id and customer phone are required")

        restaurant_id = _as_uuid(restaurant_id, "restaurant_id")
        threshold = max_conversation_seconds or settings.max_conversation_seconds

        # Same predicate as the periodic sweep
        await self.expire_stale(threshold, restaurant_id=restaurant_id, customer_phone=customer_phone)

        async with self._session("get_or_create") as db:
            row = await self._find_active_row(db, restaurant_id, customer_phone, lock=True)
            if row is not None:
                row.last_interaction_at = datetime.utcnow()
                await db.commit()
                return self._to_state(row)

            now = datetime.utcnow()
            draft = OrderDraft(delivery_fee_cents=delivery_fee_cents).recalculate()
            row = Conversation(
                id=uuid.uuid4(),
                restaurant_id=restaurant_id,
                customer_phone=customer_phone,
                status=ConversationStatus.ACTIVE.value,
                current_step=ConversationStep.GREETING.value,
                order_draft_json=self._dump_draft(draft),
                message_history_json=[],
                last_interaction_at=now,
                created_at=now,
            )
            db.add(row)

            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                logger.info(
                    "Concurrent conversation creation, re-reading active conversation",
                    restaurant_id=str(restaurant_id),
                    customer_phone=mask_phone(customer_phone),
                )
                existing = await self._find_active_row(db, restaurant_id, customer_phone)
                if existing is None:
                    raise DatabaseError("Active conversation vanished after a creation conflict")
                return self._to_state(existing)

            logger.info(
                "Conversation created",
                conversation_id=str(row.id),
                restaurant_id=str(restaurant_id),
                customer_phone=mask_phone(customer_phone),
            )
            return self._to_state(row)

    async def append_message(self, conversation_id: IdLike, role: str, content: str) -> ConversationState:
        """Append to the history, keeping only the most recent entries"""
        if role not in (MessageRole.USER.value, MessageRole.ASSISTANT.value):
            raise ValidationError("Role must be 'user' or 'assistant'", field="role")

        async with self._session("append_message") as db:
            row = await self._get_row(db, conversation_id, lock=True)
            if row.status != ConversationStatus.ACTIVE.value:
                raise ValidationError(f"Conversation {row.id} is {row.status}; history is closed")

            now = datetime.utcnow()
            history = list(row.message_history_json or [])
            history.append(
                HistoryMessage(role=role, content=content, timestamp=now).model_dump(mode="json")
            )
            row.message_history_json = history[-self.history_limit:]
            row.last_interaction_at = now
            await db.commit()
            return self._to_state(row)

    async def replace_order_draft(self, conversation_id: IdLike, draft: OrderDraft) -> ConversationState:
        """Swap in a whole new draft after checking its totals"""
        if not draft.reconciles():
            raise ValidationError(
                "Order draft totals do not reconcile with its items", field="order_draft"
            )

        async with self._session("replace_order_draft") as db:
            row = await self._get_row(db, conversation_id, lock=True)
            if row.status != ConversationStatus.ACTIVE.value:
                raise ValidationError(f"Conversation {row.id} is {row.status}; order draft is closed")

            draft = draft.model_copy(update={"schema_version": ORDER_DRAFT_SCHEMA_VERSION})
            row.order_draft_json = self._dump_draft(draft)
            await db.commit()
            return self._to_state(row)

    async def transition(
        self,
        conversation_id: IdLike,
        *,
        step: Optional[ConversationStep] = None,
        status: Optional[ConversationStatus] = None,
        allow_reorder: bool = False,
        summary: Optional[str] = None,
    ) -> ConversationState:
        """Move the conversation to a new step or terminal status"""
        if step is None and status is None:
            raise ValidationError("A target step or status is required")

        async with self._session("transition") as db:
            row = await self._get_row(db, conversation_id, lock=True)
            previous = self._apply_transition(row, step, status, allow_reorder, summary)
            await db.commit()

            logger.info(
                "Conversation transitioned",
                conversation_id=str(row.id),
                from_step=previous.current_step.value,
                to_step=row.current_step,
                status=row.status,
            )
            return self._to_state(row)

    async def complete(
        self,
        conversation_id: IdLike,
        order_reference: Optional[str] = None,
        summary: Optional[str] = None,
    ) -> ConversationState:
        """Terminal completion; keeps the created order's reference in the draft"""
        async with self._session("complete") as db:
            state = await self.complete_in_session(db, conversation_id, order_reference, summary)
            await db.commit()

            logger.info(
                "Conversation completed",
                conversation_id=str(state.id),
                order_reference=order_reference,
            )
            return state

    async def complete_in_session(
        self,
        db: AsyncSession,
        conversation_id: IdLike,
        order_reference: Optional[str] = None,
        summary: Optional[str] = None,
    ) -> ConversationState:
        """Lock the row and mark it completed inside the caller's transaction.

        The caller commits. Raises ValidationError when the conversation is no
        longer active, so work staged in the same session is rolled back with it.
        """
        row = await self._get_row(db, conversation_id, lock=True)
        if order_reference and row.status == ConversationStatus.ACTIVE.value:
            draft = OrderDraft.model_validate(row.order_draft_json or {})
            draft.order_reference = order_reference
            row.order_draft_json = self._dump_draft(draft)

        self._apply_transition(row, status=ConversationStatus.COMPLETED, summary=summary)
        return self._to_state(row)

    async def abandon(self, conversation_id: IdLike, summary: Optional[str] = None) -> ConversationState:
        return await self.transition(
            conversation_id, status=ConversationStatus.ABANDONED, summary=summary
        )

    async def expire_stale(
        self,
        threshold_seconds: int,
        *,
        restaurant_id: Optional[IdLike] = None,
        customer_phone: Optional[str] = None,
    ) -> int:
        """Abandon active conversations idle for longer than threshold_seconds.

        Idempotent. Scoped to one restaurant and/or customer when given; the
        periodic sweep calls it unscoped per restaurant.
        """
        cutoff = datetime.utcnow() - timedelta(seconds=threshold_seconds)

        async with self._session("expire_stale") as db:
            query = select(Conversation).where(
                Conversation.status == ConversationStatus.ACTIVE.value,
                Conversation.last_interaction_at < cutoff,
            )
            if restaurant_id is not None:
                query = query.where(Conversation.restaurant_id == _as_uuid(restaurant_id, "restaurant_id"))
            if customer_phone is not None:
                query = query.where(Conversation.customer_phone == customer_phone)

            result = await db.execute(query.with_for_update(skip_locked=True))
            rows = result.scalars().all()

            for row in rows:
                self._apply_transition(row, status=ConversationStatus.ABANDONED)

            if rows:
                await db.commit()
                logger.info(
                    "Expired stale conversations",
                    count=len(rows),
                    threshold_seconds=threshold_seconds,
                    restaurant_id=str(restaurant_id) if restaurant_id else None,
                )

            return len(rows)

    async def find_by_id(self, conversation_id: IdLike) -> ConversationState:
        async with self._session("find_by_id") as db:
            row = await self._get_row(db, conversation_id)
            return self._to_state(row)

    async def find_active(self, restaurant_id: IdLike, customer_phone: str) -> Optional[ConversationState]:
        async with self._session("find_active") as db:
            row = await self._find_active_row(db, _as_uuid(restaurant_id, "restaurant_id"), customer_phone)
            return self._to_state(row) if row is not None else None

    async def list_for_customer(
        self,
        restaurant_id: IdLike,
        customer_phone: str,
        limit: int = 20,
    ) -> List[ConversationState]:
        """Most recent conversations of a customer, terminated ones included"""
        async with self._session("list_for_customer") as db:
            result = await db.execute(
                select(Conversation)
                .where(
                    Conversation.restaurant_id == _as_uuid(restaurant_id, "restaurant_id"),
                    Conversation.customer_phone == customer_phone,
                )
                .order_by(Conversation.created_at.desc())
                .limit(limit)
            )
            return [self._to_state(row) for row in result.scalars().all()]
