"""Tests for the conversation lifecycle"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import update

from orderchat.constants import ConversationStatus, ConversationStep, DEFAULT_MESSAGES
from orderchat.conversation.lifecycle import (
    LifecycleManager,
    can_advance,
    decide_step,
    validate_incoming_message,
)
from orderchat.errors import DatabaseError
from orderchat.jobs.tasks import sweep_stale_conversations
from orderchat.llm.gateway import CompletionGateway, fallback_response
from orderchat.models.conversation import Conversation
from orderchat.schemas.conversation import Analysis, DeliveryAddress, OrderDraft, OrderItem

PHONE = "+525598765432"


def test_validate_incoming_message():
    assert validate_incoming_message("Hola, quiero 2 alitas") is None
    assert validate_incoming_message("") == "Mensaje inválido"
    assert validate_incoming_message(None) == "Mensaje inválido"
    assert validate_incoming_message("   ") == "Mensaje vacío"
    assert validate_incoming_message("a" * 11, max_length=10) == "Mensaje demasiado largo (máximo 10 caracteres)"
    assert validate_incoming_message("<script>alert(1)</script>") == "Contenido no permitido"


def test_can_advance_requirements():
    empty = OrderDraft()
    with_items = OrderDraft(items=[OrderItem(name="Refresco", unit_price_cents=3500)]).recalculate()
    complete = with_items.model_copy(
        update={"delivery_address": DeliveryAddress(street="Reforma", number="1", neighborhood="Centro")}
    )

    assert can_advance(empty, ConversationStep.ORDERING)
    assert not can_advance(empty, ConversationStep.ADDRESS)
    assert can_advance(with_items, ConversationStep.ADDRESS)
    assert not can_advance(with_items, ConversationStep.CONFIRMING)
    assert can_advance(complete, ConversationStep.CONFIRMING)
    assert not can_advance(complete, ConversationStep.COMPLETED)


def test_decide_step():
    draft = OrderDraft(items=[OrderItem(name="Refresco", unit_price_cents=3500)]).recalculate()

    # Item change while confirming goes back to ordering
    assert decide_step(
        ConversationStep.CONFIRMING, draft, Analysis(actions=["add_items"])
    ) == (ConversationStep.ORDERING, True)

    # Hints never move backwards
    assert decide_step(
        ConversationStep.ADDRESS, draft, Analysis(next_step_hint=ConversationStep.ORDERING)
    ) is None

    assert decide_step(
        ConversationStep.ORDERING, draft, Analysis(next_step_hint=ConversationStep.ADDRESS)
    ) == (ConversationStep.ADDRESS, False)

    # Address needs items
    assert decide_step(
        ConversationStep.GREETING, OrderDraft(), Analysis(next_step_hint=ConversationStep.ADDRESS)
    ) is None


@pytest.mark.asyncio
async def test_full_ordering_flow(lifecycle, restaurant, provider):
    """Greeting to confirming, then back to ordering when an item is removed"""
    provider.replies.extend([
        "Listo: 2 alitas bbq en tu carrito",
        "Anotado: calle Reforma, numero 123, colonia Centro",
        "Perfecto, tu pedido está listo para confirmar. Total $308",
        "Claro, voy a quitar eso de tu pedido",
    ])

    result = await lifecycle.handle_turn(restaurant, PHONE, "Hola, quiero 2 alitas bbq")

    assert result.success
    assert result.reply_text == "Listo: 2 alitas bbq en tu carrito"
    assert result.actions_applied == ["add_items"]
    state = result.conversation
    assert state.current_step == ConversationStep.ORDERING
    assert [(item.name, item.quantity) for item in state.order_draft.items] == [("Alitas BBQ", 2)]
    assert state.order_draft.subtotal_cents == 27800
    assert state.order_draft.total_cents == 30800
    assert [msg.role for msg in state.message_history] == ["user", "assistant"]

    result = await lifecycle.handle_turn(restaurant, PHONE, "Calle Reforma 123, colonia Centro")

    assert result.actions_applied == ["save_address"]
    state = result.conversation
    assert state.current_step == ConversationStep.ADDRESS
    assert state.order_draft.delivery_address.is_complete

    result = await lifecycle.handle_turn(restaurant, PHONE, "Es todo, gracias")

    assert result.actions_applied == []
    assert result.conversation.current_step == ConversationStep.CONFIRMING

    result = await lifecycle.handle_turn(restaurant, PHONE, "Quita el 1")

    assert result.actions_applied == ["modify_order"]
    state = result.conversation
    assert state.current_step == ConversationStep.ORDERING
    assert state.order_draft.items == []
    assert state.order_draft.total_cents == 3000
    assert state.order_draft.reconciles()
    assert len(state.message_history) == 8

    # The prompt of the last turn carried the earlier history
    last_prompt = provider.calls[-1]["system_prompt"]
    assert "PASO ACTUAL: CONFIRMING" in last_prompt
    assert "Cliente: Es todo, gracias" in last_prompt
    assert "Alitas BBQ (2x)" in last_prompt


@pytest.mark.asyncio
async def test_prompt_excludes_current_message_from_history(lifecycle, restaurant, provider):
    await lifecycle.handle_turn(restaurant, PHONE, "Hola")

    call = provider.calls[0]
    assert "HISTORIAL DE CONVERSACIÓN RECIENTE:" not in call["system_prompt"]
    assert call["messages"][0].content == "Hola"
    assert call["temperature"] == 0.7
    assert call["max_tokens"] == 500


@pytest.mark.asyncio
async def test_completion_timeout_still_replies(store, restaurant, provider):
    provider.delay = 1
    gateway = CompletionGateway(providers={"stub": lambda model: provider}, timeout_seconds=0.05)
    lifecycle = LifecycleManager(store=store, gateway=gateway)

    result = await lifecycle.handle_turn(restaurant, PHONE, "Hola, quiero 2 alitas bbq")

    assert result.success
    assert result.model == "fallback"
    assert result.reply_text == fallback_response("Hola, quiero 2 alitas bbq")
    history = result.conversation.message_history
    assert [msg.role for msg in history] == ["user", "assistant"]
    assert history[-1].content == result.reply_text


@pytest.mark.asyncio
async def test_database_error_returns_generic_message(lifecycle, restaurant, monkeypatch):
    async def broken(*args, **kwargs):
        raise DatabaseError("Conversation store failed during get_or_create")

    monkeypatch.setattr(lifecycle.store, "get_or_create", broken)

    result = await lifecycle.handle_turn(restaurant, PHONE, "Hola")

    assert not result.success
    assert result.error == "database_error"
    assert result.reply_text == "Tuvimos un problema, intenta de nuevo por favor."
    assert result.conversation is None


@pytest.mark.asyncio
async def test_invalid_message_does_not_touch_conversation(lifecycle, restaurant, provider, store):
    result = await lifecycle.handle_turn(restaurant, PHONE, "   ")

    assert not result.success
    assert result.error == "invalid_input"
    assert result.reply_text == f"{DEFAULT_MESSAGES['invalid_input']}\n\nMensaje vacío"
    assert provider.calls == []
    assert await store.find_active(restaurant.id, PHONE) is None


@pytest.mark.asyncio
async def test_restart_starts_over_with_greeting(lifecycle, restaurant, provider, store):
    provider.replies.append("Listo: 2 alitas bbq en tu carrito")
    first = await lifecycle.handle_turn(restaurant, PHONE, "Hola, quiero 2 alitas bbq")

    result = await lifecycle.restart(restaurant, PHONE)

    assert result.reply_text == "¡Hola! Bienvenido a Alitas de Prueba 🍗"
    state = result.conversation
    assert state.id != first.conversation.id
    assert state.current_step == ConversationStep.GREETING
    assert state.order_draft.items == []
    assert [(msg.role, msg.content) for msg in state.message_history] == [("assistant", result.reply_text)]

    old = await store.find_by_id(first.conversation.id)
    assert old.status == ConversationStatus.ABANDONED


@pytest.mark.asyncio
async def test_conversation_status(lifecycle, restaurant, provider):
    assert await lifecycle.conversation_status(restaurant.id, PHONE) is None

    provider.replies.append("Listo: 2 alitas bbq en tu carrito")
    await lifecycle.handle_turn(restaurant, PHONE, "Hola, quiero 2 alitas bbq")

    status = await lifecycle.conversation_status(restaurant.id, PHONE)

    assert status.status == ConversationStatus.ACTIVE
    assert status.current_step == ConversationStep.ORDERING
    assert status.items_count == 1
    assert status.total_cents == 30800
    assert status.messages_count == 2


@pytest.mark.asyncio
async def test_sweep_abandons_idle_conversations(lifecycle, restaurant, session_factory, store):
    await lifecycle.handle_turn(restaurant, PHONE, "Hola")
    idle = await store.find_active(restaurant.id, PHONE)
    await lifecycle.handle_turn(restaurant, "+525511111111", "Hola")

    async with session_factory() as db:
        await db.execute(
            update(Conversation)
            .where(Conversation.id == idle.id)
            .values(last_interaction_at=datetime.utcnow() - timedelta(hours=1))
        )
        await db.commit()

    expired = await sweep_stale_conversations(session_factory)

    assert expired == {str(restaurant.id): 1}
    assert (await store.find_by_id(idle.id)).status == ConversationStatus.ABANDONED
    assert await store.find_active(restaurant.id, "+525511111111") is not None

    # Running it again changes nothing
    assert await sweep_stale_conversations(session_factory) == {}


@pytest.mark.asyncio
async def test_reply_with_superscript_digit_is_still_delivered(lifecycle, restaurant, provider):
    provider.replies.append("Claro, quiero ²")

    result = await lifecycle.handle_turn(restaurant, PHONE, "Hola")

    assert result.success
    assert result.reply_text == "Claro, quiero ²"
    assert result.actions_applied == []
    assert [msg.role for msg in result.conversation.message_history] == ["user", "assistant"]


@pytest.mark.asyncio
async def test_analyzer_failure_applies_no_actions(lifecycle, restaurant, provider, monkeypatch):
    provider.replies.append("Listo: 2 alitas bbq en tu carrito")

    def broken(reply_text, current_step):
        raise RuntimeError("analyzer down")

    monkeypatch.setattr(lifecycle.analyzer, "classify", broken)

    result = await lifecycle.handle_turn(restaurant, PHONE, "Hola, quiero 2 alitas bbq")

    assert result.success
    assert result.reply_text == "Listo: 2 alitas bbq en tu carrito"
    assert result.actions_applied == []
    state = result.conversation
    assert state.current_step == ConversationStep.GREETING
    assert state.order_draft.items == []
    assert [msg.role for msg in state.message_history] == ["user", "assistant"]


@pytest.mark.asyncio
async def test_unexpected_error_returns_generic_message(lifecycle, restaurant, monkeypatch):
    def broken(*args, **kwargs):
        raise KeyError("persona")

    monkeypatch.setattr("orderchat.conversation.lifecycle.build_context", broken)

    result = await lifecycle.handle_turn(restaurant, PHONE, "Hola")

    assert not result.success
    assert result.error == "internal_error"
    assert result.reply_text == "Tuvimos un problema, intenta de nuevo por favor."
    assert result.conversation is None
