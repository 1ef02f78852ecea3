"""Conversation enums and default customer-facing messages"""

import enum


class ConversationStatus(str, enum.Enum):
    """Conversation status; completed and abandoned are terminal"""
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class ConversationStep(str, enum.Enum):
    """Conversation steps in forward order"""
    GREETING = "greeting"
    ORDERING = "ordering"
    ADDRESS = "address"
    CONFIRMING = "confirming"
    COMPLETED = "completed"


STEP_ORDER = [
    ConversationStep.GREETING,
    ConversationStep.ORDERING,
    ConversationStep.ADDRESS,
    ConversationStep.CONFIRMING,
    ConversationStep.COMPLETED,
]

TERMINAL_STATUSES = (ConversationStatus.COMPLETED, ConversationStatus.ABANDONED)

# Steps from which an add/remove sends the customer back to ordering
REORDER_STEPS = (ConversationStep.ADDRESS, ConversationStep.CONFIRMING)


class MessageRole(str, enum.Enum):
    USER = "user"
    ASSISTANT = "assistant"


DEFAULT_MESSAGES = {
    "welcome": "¡Hola! 👋 Bienvenido a nuestro restaurante. ¿En qué puedo ayudarte hoy?",
    "error": "Lo siento, tuve un problema técnico. ¿Podrías repetir tu mensaje?",
    "goodbye": "¡Gracias por tu pedido! 🙏 Te esperamos pronto.",
    "invalid_input": "No entendí tu mensaje. ¿Podrías ser más específico?",
}

# Limits applied when an order is finalized
MAX_ITEMS_PER_ORDER = 50
MAX_ITEM_QUANTITY = 20
MAX_ORDER_AMOUNT_CENTS = 1_000_000
