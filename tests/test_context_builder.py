"""Tests for prompt construction"""

from datetime import datetime
from uuid import uuid4

import pytest

from orderchat.constants import ConversationStep
from orderchat.conversation.context_builder import (
    EMPTY_CART,
    EMPTY_CATALOG,
    build_context,
    format_catalog,
    format_history,
    format_order_draft,
)
from orderchat.schemas.conversation import DeliveryAddress, HistoryMessage, OrderDraft, OrderItem
from orderchat.schemas.restaurant import BusinessRuleContext, CatalogItem, RestaurantContext


@pytest.fixture
def restaurant_context():
    return RestaurantContext(
        id=uuid4(),
        name="Alitas El Güero",
        opens_at="13:00",
        closes_at="23:00",
        delivery_fee_cents=3000,
        delivery_time_min=30,
        delivery_time_max=45,
        catalog=[
            CatalogItem(name="Alitas BBQ", price_cents=13900, description="10 piezas", category="Alitas"),
            CatalogItem(name="Refresco", price_cents=3500, category="Bebidas"),
            CatalogItem(name="Alitas Búfalo", price_cents=13950, category="Alitas"),
            CatalogItem(name="Salsa extra", price_cents=1500),
        ],
        business_rules=[
            BusinessRuleContext(
                rule_name="Límite de salsas",
                ai_message_template="Cada orden de alitas incluye hasta 2 salsas.",
            )
        ],
    )


def history_of(count):
    return [
        HistoryMessage(
            role="user" if index % 2 == 0 else "assistant",
            content=f"mensaje {index}",
            timestamp=datetime(2024, 1, 1, 12, 0, index),
        )
        for index in range(count)
    ]


def test_catalog_groups_by_category_in_first_seen_order(restaurant_context):
    """Categories keep the order they first appear in"""
    text = format_catalog(restaurant_context.catalog)

    assert text.index("ALITAS:") < text.index("BEBIDAS:") < text.index("OTROS:")
    assert "• Alitas BBQ - $139 (10 piezas)" in text
    assert "• Alitas Búfalo - $139.50" in text
    assert "• Salsa extra - $15" in text
    # Búfalo is listed with BBQ, not after the drinks
    assert text.index("Alitas Búfalo") < text.index("BEBIDAS:")


def test_empty_catalog_placeholder():
    assert format_catalog([]) == EMPTY_CATALOG


def test_order_draft_lines_and_totals():
    draft = OrderDraft(
        delivery_fee_cents=3000,
        items=[OrderItem(name="Alitas BBQ", unit_price_cents=13900, quantity=2)],
        delivery_address=DeliveryAddress(street="Reforma", number="123"),
    ).recalculate()

    text = format_order_draft(draft)

    assert "1. Alitas BBQ (2x) - $278" in text
    assert "Subtotal: $278" in text
    assert "Envío: $30" in text
    assert "TOTAL: $308" in text
    assert "Dirección capturada: Reforma, 123" in text


def test_empty_draft_placeholder():
    assert format_order_draft(OrderDraft()) == EMPTY_CART
    assert format_order_draft(None) == EMPTY_CART


def test_history_is_limited_to_recent_messages():
    text = format_history(history_of(10), 6)
    lines = text.split("\n")

    assert len(lines) == 6
    assert lines[0] == "Cliente: mensaje 4"
    assert lines[-1] == "Asistente: mensaje 9"


def test_build_context_section_order(restaurant_context):
    text = build_context(restaurant_context, OrderDraft(), history_of(2), ConversationStep.ORDERING)

    headers = [
        "INFORMACIÓN DEL RESTAURANTE:",
        "MENÚ DISPONIBLE:",
        "REGLAS DEL RESTAURANTE:",
        "ESTADO ACTUAL DEL PEDIDO:",
        "HISTORIAL DE CONVERSACIÓN RECIENTE:",
        "PASO ACTUAL: ORDERING",
        "INSTRUCCIONES FINALES:",
    ]
    positions = [text.index(header) for header in headers]
    assert positions == sorted(positions)

    assert "Horarios: 13:00 - 23:00" in text
    assert "Tiempo de entrega: 30-45 minutos" in text
    assert "Costo de envío: $30" in text
    assert "• Límite de salsas: Cada orden de alitas incluye hasta 2 salsas." in text


def test_build_context_omits_empty_optional_sections(restaurant_context):
    restaurant_context.business_rules = []

    text = build_context(restaurant_context, OrderDraft(), [], ConversationStep.GREETING)

    assert "REGLAS DEL RESTAURANTE:" not in text
    assert "HISTORIAL DE CONVERSACIÓN RECIENTE:" not in text
    assert EMPTY_CART in text
    assert "PASO ACTUAL: GREETING" in text


def test_build_context_is_deterministic(restaurant_context):
    draft = OrderDraft(
        items=[OrderItem(name="Refresco", unit_price_cents=3500, quantity=1)],
    ).recalculate()
    history = history_of(4)

    first = build_context(restaurant_context, draft, history, ConversationStep.ADDRESS)
    second = build_context(restaurant_context, draft, history, ConversationStep.ADDRESS)

    assert first == second


def test_build_context_respects_history_limit(restaurant_context):
    text = build_context(
        restaurant_context, OrderDraft(), history_of(8), ConversationStep.ORDERING, history_limit=2
    )

    assert "mensaje 5" not in text
    assert "Cliente: mensaje 6" in text
    assert "Asistente: mensaje 7" in text
