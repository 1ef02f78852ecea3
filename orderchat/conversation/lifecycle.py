"""Conversation lifecycle

LifecycleManager is the entry point for every inbound customer message. A
turn runs: get or create the conversation, record the message, build the
prompt, ask the completion gateway, interpret the reply, apply the resulting
actions to the order draft, move the step, record the reply.

Store failures and unexpected errors abort the turn. The customer then gets
the restaurant's generic error message and the caller is expected to
redeliver the message.
"""

from typing import List, Optional, Tuple

import structlog

from orderchat.config import settings
from orderchat.constants import (
    ConversationStep,
    DEFAULT_MESSAGES,
    MessageRole,
    REORDER_STEPS,
    STEP_ORDER,
)
from orderchat.conversation.analyzer import Analyzer, KeywordAnalyzer
from orderchat.conversation.context_builder import build_context
from orderchat.conversation.mutator import OrderMutator
from orderchat.conversation.store import ConversationStore, IdLike
from orderchat.errors import AppError, ValidationError
from orderchat.llm.gateway import CompletionGateway
from orderchat.log import mask_phone
from orderchat.schemas.conversation import (
    Analysis,
    ConversationState,
    ConversationStatusSummary,
    OrderDraft,
    TurnResult,
)
from orderchat.schemas.llm import CompletionOptions
from orderchat.schemas.restaurant import CatalogItem, RestaurantContext

logger = structlog.get_logger()

# Actions that change the items of the order
ITEM_ACTIONS = ("add_items", "remove_items", "modify_order")

MALICIOUS_PATTERNS = [
    "<script",
    "javascript:",
    "vbscript:",
    "onload=",
    "onerror=",
    "eval(",
    "document.cookie",
    "document.write",
    "<iframe",
    "<object",
    "<embed",
]


def validate_incoming_message(text: Optional[str], max_length: Optional[int] = None) -> Optional[str]:
    """Return the reason a customer message is rejected, or None if it is usable"""
    max_length = max_length or settings.max_message_length

    if not text or not isinstance(text, str):
        return "Mensaje inválido"

    cleaned = text.strip()
    if not cleaned:
        return "Mensaje vacío"
    if len(cleaned) > max_length:
        return f"Mensaje demasiado largo (máximo {max_length} caracteres)"

    lowered = cleaned.lower()
    if any(pattern in lowered for pattern in MALICIOUS_PATTERNS):
        return "Contenido no permitido"

    return None


def can_advance(draft: OrderDraft, step: ConversationStep) -> bool:
    """Whether the draft holds what the target step needs"""
    if step == ConversationStep.ORDERING:
        return True
    if step == ConversationStep.ADDRESS:
        return not draft.is_empty
    if step == ConversationStep.CONFIRMING:
        address = draft.delivery_address
        return not draft.is_empty and address is not None and address.is_complete
    # Completion only happens through order finalization
    return False


def decide_step(
    current: ConversationStep,
    draft: OrderDraft,
    analysis: Analysis,
) -> Optional[Tuple[ConversationStep, bool]]:
    """Next (step, allow_reorder) for a turn, or None to stay put"""
    if current in REORDER_STEPS and any(action in ITEM_ACTIONS for action in analysis.actions):
        return ConversationStep.ORDERING, True

    hint = analysis.next_step_hint
    if hint is None or hint == current or hint not in STEP_ORDER:
        return None
    if STEP_ORDER.index(hint) < STEP_ORDER.index(current):
        return None
    if not can_advance(draft, hint):
        return None
    return hint, False


class LifecycleManager:
    """Drives conversations from first message to completion or abandonment"""

    def __init__(
        self,
        store: Optional[ConversationStore] = None,
        gateway: Optional[CompletionGateway] = None,
        analyzer: Optional[Analyzer] = None,
        mutator: Optional[OrderMutator] = None,
    ):
        self.store = store or ConversationStore()
        self.gateway = gateway or CompletionGateway()
        self.analyzer = analyzer or KeywordAnalyzer()
        self.mutator = mutator or OrderMutator()

    def _completion_options(self, restaurant: RestaurantContext) -> CompletionOptions:
        return CompletionOptions(
            provider=restaurant.llm_provider,
            model=restaurant.llm_model,
            temperature=settings.completion_temperature,
            max_tokens=settings.completion_max_tokens,
        )

    def _classify(self, state: ConversationState, reply_text: str) -> Analysis:
        """Analysis of the reply; an analyzer failure means no actions this turn"""
        try:
            return self.analyzer.classify(reply_text, state.current_step)
        except Exception as e:
            logger.error(
                "Reply analysis failed, applying no actions",
                conversation_id=str(state.id),
                error=str(e),
                error_type=type(e).__name__,
            )
            return Analysis(next_step_hint=state.current_step)

    def _apply_actions(
        self,
        draft: OrderDraft,
        analysis: Analysis,
        user_text: str,
        catalog: List[CatalogItem],
    ) -> Tuple[OrderDraft, List[str]]:
        applied = []
        for action in analysis.actions:
            result = self.mutator.apply(draft, action, analysis, user_text, catalog)
            if result.changed:
                draft = result.draft
                applied.append(action)
        return draft, applied

    async def _update_step(self, state: ConversationState, analysis: Analysis) -> ConversationState:
        decision = decide_step(state.current_step, state.order_draft, analysis)
        if decision is None:
            return state

        step, allow_reorder = decision
        try:
            return await self.store.transition(state.id, step=step, allow_reorder=allow_reorder)
        except ValidationError as e:
            logger.warning(
                "Step change rejected",
                conversation_id=str(state.id),
                from_step=state.current_step.value,
                to_step=step.value,
                error=e.message,
            )
            return state

    async def handle_turn(
        self,
        restaurant: RestaurantContext,
        customer_phone: str,
        user_text: str,
    ) -> TurnResult:
        """Process one inbound message and return the reply to send"""
        rejection = validate_incoming_message(user_text)
        if rejection:
            logger.info(
                "Inbound message rejected",
                restaurant_id=str(restaurant.id),
                customer_phone=mask_phone(customer_phone),
                reason=rejection,
            )
            return TurnResult(
                reply_text=f"{DEFAULT_MESSAGES['invalid_input']}\n\n{rejection}",
                success=False,
                error="invalid_input",
            )

        text = user_text.strip()

        try:
            state = await self.store.get_or_create(
                restaurant.id,
                customer_phone,
                max_conversation_seconds=restaurant.max_conversation_seconds,
                delivery_fee_cents=restaurant.delivery_fee_cents,
            )
            prior_history = state.message_history

            state = await self.store.append_message(state.id, MessageRole.USER.value, text)

            context_text = build_context(
                restaurant,
                state.order_draft,
                prior_history,
                state.current_step,
            )
            completion = await self.gateway.complete(
                context_text,
                text,
                self._completion_options(restaurant),
            )

            analysis = self._classify(state, completion.text)
            draft, applied = self._apply_actions(state.order_draft, analysis, text, restaurant.catalog)
            if applied:
                state = await self.store.replace_order_draft(state.id, draft)

            state = await self._update_step(state, analysis)
            state = await self.store.append_message(state.id, MessageRole.ASSISTANT.value, completion.text)

        except AppError as e:
            logger.error(
                "Conversation turn failed",
                restaurant_id=str(restaurant.id),
                customer_phone=mask_phone(customer_phone),
                error=e.message,
                error_code=e.code,
            )
            return TurnResult(
                reply_text=restaurant.generic_error_message,
                success=False,
                error=e.code,
            )
        except Exception:
            logger.exception(
                "Conversation turn crashed",
                restaurant_id=str(restaurant.id),
                customer_phone=mask_phone(customer_phone),
            )
            return TurnResult(
                reply_text=restaurant.generic_error_message,
                success=False,
                error="internal_error",
            )

        logger.info(
            "Conversation turn processed",
            conversation_id=str(state.id),
            intent=analysis.intent,
            actions_applied=applied,
            current_step=state.current_step.value,
            model=completion.model,
        )

        return TurnResult(
            reply_text=completion.text,
            conversation=state,
            actions_applied=applied,
            model=completion.model,
        )

    async def restart(self, restaurant: RestaurantContext, customer_phone: str) -> TurnResult:
        """Abandon the active conversation, if any, and greet in a new one"""
        active = await self.store.find_active(restaurant.id, customer_phone)
        if active is not None:
            await self.store.abandon(active.id)
            logger.info(
                "Conversation restarted",
                conversation_id=str(active.id),
                customer_phone=mask_phone(customer_phone),
            )

        state = await self.store.get_or_create(
            restaurant.id,
            customer_phone,
            max_conversation_seconds=restaurant.max_conversation_seconds,
            delivery_fee_cents=restaurant.delivery_fee_cents,
        )
        greeting = restaurant.greeting
        state = await self.store.append_message(state.id, MessageRole.ASSISTANT.value, greeting)

        return TurnResult(reply_text=greeting, conversation=state)

    async def complete(self, conversation_id: IdLike, order_reference: str) -> ConversationState:
        return await self.store.complete(conversation_id, order_reference)

    async def abandon(self, conversation_id: IdLike) -> ConversationState:
        return await self.store.abandon(conversation_id)

    async def conversation_status(
        self,
        restaurant_id: IdLike,
        customer_phone: str,
    ) -> Optional[ConversationStatusSummary]:
        state = await self.store.find_active(restaurant_id, customer_phone)
        if state is None:
            return None

        return ConversationStatusSummary(
            id=state.id,
            status=state.status,
            current_step=state.current_step,
            last_interaction_at=state.last_interaction_at,
            items_count=len(state.order_draft.items),
            total_cents=state.order_draft.total_cents,
            messages_count=len(state.message_history),
            created_at=state.created_at,
        )

    async def expire_stale(self, threshold_seconds: int, restaurant_id: Optional[IdLike] = None) -> int:
        return await self.store.expire_stale(threshold_seconds, restaurant_id=restaurant_id)
