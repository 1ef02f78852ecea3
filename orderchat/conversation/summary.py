"""Closing summaries stored on terminated conversations"""

from orderchat.schemas.conversation import ConversationState


def format_money(cents: int) -> str:
    """Render cents as "$90" or "$90.50" """
    cents = cents or 0
    if cents % 100 == 0:
        return f"${cents // 100}"
    return f"${cents / 100:.2f}"


def summarize_conversation(state: ConversationState) -> str:
    """One-line summary of a conversation, used for logs and the summary column"""
    history = state.message_history
    if not history:
        return "Conversación sin mensajes"

    user_messages = sum(1 for msg in history if msg.role == "user")
    assistant_messages = sum(1 for msg in history if msg.role == "assistant")

    parts = [
        f"Conversación con {len(history)} mensajes "
        f"({user_messages} del cliente, {assistant_messages} del asistente)",
        f"Estado: {state.status.value}",
        f"Paso actual: {state.current_step.value}",
    ]

    draft = state.order_draft
    if draft.items:
        parts.append(f"Pedido: {len(draft.items)} items, total: {format_money(draft.total_cents)}")
    if draft.order_reference:
        parts.append(f"Orden: {draft.order_reference}")

    return " | ".join(parts)
