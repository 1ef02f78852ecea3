"""Prompt construction for the completion service

build_context is a pure function: the same restaurant, draft, history and
step always give the same text. Sections appear in a fixed order and the
optional ones (business rules, history) are left out entirely when empty.
"""

from collections import OrderedDict
from typing import List, Optional

from orderchat.config import settings
from orderchat.constants import ConversationStep
from orderchat.conversation.summary import format_money
from orderchat.schemas.conversation import HistoryMessage, OrderDraft
from orderchat.schemas.restaurant import BusinessRuleContext, CatalogItem, RestaurantContext

BASE_PROMPT = """Eres un asistente virtual profesional y amigable de un restaurante. Tu objetivo es ayudar a los clientes a realizar pedidos de comida de manera eficiente y natural.

CARACTERÍSTICAS DE TU PERSONALIDAD:
- Amigable, paciente y servicial
- Usas emojis moderadamente para hacer la conversación más cálida
- Eres claro y conciso en tus respuestas
- Siempre confirmas los detalles importantes
- Ofreces sugerencias útiles sin ser invasivo

REGLAS IMPORTANTES:
1. SIEMPRE valida las restricciones de productos (aderezos, extras, etc.)
2. Confirma cada modificación al pedido antes de aplicarla
3. Calcula correctamente los totales incluyendo extras
4. Al final, solicita dirección completa: calle, número, colonia, referencias
5. Mantén el contexto de toda la conversación
6. Si no entiendes algo, pide aclaración amablemente
7. Ofrece alternativas cuando algo no esté disponible"""

STEP_PROMPTS = {
    ConversationStep.GREETING: (
        "Saluda al cliente de manera cálida y presenta el menú disponible "
        "de forma organizada por categorías."
    ),
    ConversationStep.ORDERING: (
        "Ayuda al cliente a construir su pedido paso a paso, validando "
        "restricciones y calculando totales correctamente."
    ),
    ConversationStep.ADDRESS: (
        "Solicita la dirección de entrega completa: calle, número, colonia y referencias."
    ),
    ConversationStep.CONFIRMING: (
        "Confirma todos los detalles del pedido y solicita la dirección de entrega completa."
    ),
}

CLOSING_INSTRUCTIONS = """INSTRUCCIONES FINALES:
- Responde en español mexicano
- Máximo 3 párrafos por respuesta
- Usa emojis con moderación (1-2 por mensaje)
- Siempre incluye el total actualizado cuando hay cambios en el pedido
- Si el pedido está completo, solicita: calle, número, colonia y referencias"""

EMPTY_CATALOG = "No hay productos disponibles en este momento."
EMPTY_CART = "Carrito vacío"
DEFAULT_CATEGORY = "Otros"


def format_catalog(catalog: List[CatalogItem]) -> str:
    """Catalog grouped by category, categories in first-seen order"""
    if not catalog:
        return EMPTY_CATALOG

    categories = OrderedDict()
    for item in catalog:
        categories.setdefault(item.category or DEFAULT_CATEGORY, []).append(item)

    blocks = []
    for category, items in categories.items():
        lines = [f"{category.upper()}:"]
        for item in items:
            line = f"• {item.name} - {format_money(item.price_cents)}"
            if item.description:
                line += f" ({item.description})"
            lines.append(line)
        blocks.append("\n".join(lines))

    return "\n\n".join(blocks)


def format_business_rules(rules: List[BusinessRuleContext]) -> str:
    lines = []
    for rule in rules:
        detail = rule.ai_message_template or str(rule.rule_config)
        lines.append(f"• {rule.rule_name}: {detail}")
    return "\n".join(lines)


def format_order_draft(draft: Optional[OrderDraft]) -> str:
    if draft is None or draft.is_empty:
        return EMPTY_CART

    lines = ["Pedido actual:"]
    for index, item in enumerate(draft.items, start=1):
        lines.append(f"{index}. {item.name} ({item.quantity}x) - {format_money(item.item_total_cents)}")
        for custom in item.customizations:
            extra = f" (+{format_money(custom.extra_cost_cents)})" if custom.extra_cost_cents > 0 else ""
            lines.append(f"   - {custom.name}{extra}")
        if item.notes:
            lines.append(f"   Notas: {item.notes}")

    lines.append("")
    lines.append(f"Subtotal: {format_money(draft.subtotal_cents)}")
    if draft.delivery_fee_cents > 0:
        lines.append(f"Envío: {format_money(draft.delivery_fee_cents)}")
    lines.append(f"TOTAL: {format_money(draft.total_cents)}")

    address = draft.delivery_address
    if address is not None:
        parts = [
            value
            for value in (address.street, address.number, address.neighborhood, address.references)
            if value
        ]
        if parts:
            lines.append(f"Dirección capturada: {', '.join(parts)}")

    return "\n".join(lines)


def format_history(history: List[HistoryMessage], limit: int) -> str:
    """Last `limit` messages, oldest first"""
    recent = history[-limit:] if limit > 0 else []
    return "\n".join(
        f"{'Cliente' if message.role == 'user' else 'Asistente'}: {message.content}"
        for message in recent
    )


def format_restaurant_info(restaurant: RestaurantContext) -> str:
    lines = [f"Nombre: {restaurant.name}"]
    if restaurant.opens_at and restaurant.closes_at:
        lines.append(f"Horarios: {restaurant.opens_at} - {restaurant.closes_at}")
    lines.append(
        f"Tiempo de entrega: {restaurant.delivery_time_min}-{restaurant.delivery_time_max} minutos"
    )
    if restaurant.delivery_fee_cents > 0:
        lines.append(f"Costo de envío: {format_money(restaurant.delivery_fee_cents)}")
    else:
        lines.append("Envío gratuito")
    if restaurant.minimum_order_cents > 0:
        lines.append(f"Pedido mínimo: {format_money(restaurant.minimum_order_cents)}")
    return "\n".join(lines)


def build_context(
    restaurant: RestaurantContext,
    order_draft: Optional[OrderDraft],
    history: List[HistoryMessage],
    step: ConversationStep,
    history_limit: Optional[int] = None,
) -> str:
    """Assemble the system prompt for one turn"""
    if history_limit is None:
        history_limit = settings.context_history_messages

    sections = [
        BASE_PROMPT,
        f"INFORMACIÓN DEL RESTAURANTE:\n{format_restaurant_info(restaurant)}",
        f"MENÚ DISPONIBLE:\n{format_catalog(restaurant.catalog)}",
    ]

    if restaurant.business_rules:
        sections.append(f"REGLAS DEL RESTAURANTE:\n{format_business_rules(restaurant.business_rules)}")

    sections.append(f"ESTADO ACTUAL DEL PEDIDO:\n{format_order_draft(order_draft)}")

    if history and history_limit > 0:
        sections.append(f"HISTORIAL DE CONVERSACIÓN RECIENTE:\n{format_history(history, history_limit)}")

    step_prompt = STEP_PROMPTS.get(step, STEP_PROMPTS[ConversationStep.ORDERING])
    sections.append(f"PASO ACTUAL: {step.value.upper()}\n{step_prompt}")
    sections.append(CLOSING_INSTRUCTIONS)

    return "\n\n".join(sections)
