"""Pydantic schemas for request/response validation"""

from orderchat.schemas.llm import (
    CompletionOptions,
    CompletionResult,
    LLMMessage,
    UsageStats,
)
from orderchat.schemas.restaurant import (
    BusinessRuleContext,
    CatalogItem,
    RestaurantContext,
)
from orderchat.schemas.conversation import (
    Analysis,
    ConversationState,
    ConversationStatusSummary,
    DeliveryAddress,
    FinalizeResponse,
    HistoryMessage,
    OrderDraft,
    OrderItem,
    RestartRequest,
    TurnRequest,
    TurnResponse,
    TurnResult,
)

__all__ = [
    "CompletionOptions",
    "CompletionResult",
    "LLMMessage",
    "UsageStats",
    "BusinessRuleContext",
    "CatalogItem",
    "RestaurantContext",
    "Analysis",
    "ConversationState",
    "ConversationStatusSummary",
    "DeliveryAddress",
    "FinalizeResponse",
    "HistoryMessage",
    "OrderDraft",
    "OrderItem",
    "RestartRequest",
    "TurnRequest",
    "TurnResponse",
    "TurnResult",
]
