"""Conversation state records

The order draft and the message history are persisted as JSON on the
conversation row. These models are the only shape that JSON takes:
ConversationStore loads and dumps them, everything else works with the
typed records.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field

from orderchat.constants import ConversationStatus, ConversationStep, TERMINAL_STATUSES

ORDER_DRAFT_SCHEMA_VERSION = 1


class Customization(BaseModel):
    """Extra applied to an order line (sauce, topping)"""
    name: str
    extra_cost_cents: int = 0


class OrderItem(BaseModel):
    """Single line of the order draft"""
    catalog_item_id: Optional[UUID] = None
    name: str
    unit_price_cents: int
    quantity: int = 1
    customizations: List[Customization] = Field(default_factory=list)
    notes: Optional[str] = None
    item_total_cents: int = 0

    def compute_total(self) -> int:
        extras = sum(custom.extra_cost_cents for custom in self.customizations)
        return (self.unit_price_cents + extras) * self.quantity


class DeliveryAddress(BaseModel):
    """Delivery address, filled in over several turns"""
    street: Optional[str] = None
    number: Optional[str] = None
    neighborhood: Optional[str] = None
    references: Optional[str] = None
    postal_code: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.street and self.number and self.neighborhood)

    def merge(self, fragment: "DeliveryAddress") -> "DeliveryAddress":
        """Field-level overwrite: fields absent from the fragment are kept"""
        merged = self.model_dump()
        merged.update(fragment.model_dump(exclude_none=True))
        return DeliveryAddress(**merged)


class OrderDraft(BaseModel):
    """In-progress order carried by a conversation"""
    schema_version: int = ORDER_DRAFT_SCHEMA_VERSION
    items: List[OrderItem] = Field(default_factory=list)
    subtotal_cents: int = 0
    delivery_fee_cents: int = 0
    total_cents: int = 0
    delivery_address: Optional[DeliveryAddress] = None
    special_instructions: Optional[str] = None
    order_reference: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.items

    def recalculate(self) -> "OrderDraft":
        """Recompute every line total, the subtotal and the total from scratch"""
        for item in self.items:
            item.item_total_cents = item.compute_total()
        self.subtotal_cents = sum(item.item_total_cents for item in self.items)
        self.total_cents = self.subtotal_cents + self.delivery_fee_cents
        return self

    def reconciles(self) -> bool:
        if any(item.item_total_cents != item.compute_total() for item in self.items):
            return False
        if self.subtotal_cents != sum(item.item_total_cents for item in self.items):
            return False
        return self.total_cents == self.subtotal_cents + self.delivery_fee_cents


class HistoryMessage(BaseModel):
    """Entry in the bounded message history"""
    role: str  # user, assistant
    content: str
    timestamp: datetime


class ConversationState(BaseModel):
    """Deserialized conversation row"""
    id: UUID
    restaurant_id: UUID
    customer_phone: str
    status: ConversationStatus
    current_step: ConversationStep
    order_draft: OrderDraft
    message_history: List[HistoryMessage] = Field(default_factory=list)
    summary: Optional[str] = None
    last_interaction_at: datetime
    created_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class ExtractedItem(BaseModel):
    """Item mention found in free text, not yet resolved against the catalog"""
    name: str
    quantity: int = 1
    confidence: float = 0.6


class ExtractedData(BaseModel):
    items: List[ExtractedItem] = Field(default_factory=list)
    address: Optional[DeliveryAddress] = None


class Analysis(BaseModel):
    """Intent and structured fragments derived from a completion reply"""
    intent: str = "chat"
    confidence: float = 0.5
    next_step_hint: Optional[ConversationStep] = None
    actions: List[str] = Field(default_factory=list)
    extracted_data: ExtractedData = Field(default_factory=ExtractedData)


class TurnResult(BaseModel):
    """Outcome of one inbound message"""
    reply_text: str
    conversation: Optional[ConversationState] = None
    actions_applied: List[str] = Field(default_factory=list)
    success: bool = True
    error: Optional[str] = None
    model: Optional[str] = None


class ConversationStatusSummary(BaseModel):
    """Compact view of an active conversation"""
    id: UUID
    status: ConversationStatus
    current_step: ConversationStep
    last_interaction_at: datetime
    items_count: int
    total_cents: int
    messages_count: int
    created_at: Optional[datetime] = None


# API request/response models

class TurnRequest(BaseModel):
    """Inbound message from the channel adapter"""
    customer_phone: str
    text: str


class TurnResponse(BaseModel):
    reply_text: str
    conversation_id: Optional[UUID] = None
    current_step: Optional[ConversationStep] = None
    status: Optional[ConversationStatus] = None
    actions_applied: List[str] = Field(default_factory=list)
    order_draft: Optional[OrderDraft] = None
    success: bool = True
    error: Optional[str] = None


class RestartRequest(BaseModel):
    customer_phone: str


class FinalizeResponse(BaseModel):
    conversation_id: UUID
    order_reference: str
    total_cents: int
