"""Read-only restaurant inputs handed to the conversation engine per turn"""

from typing import Any, Dict, List, Optional
from uuid import UUID
from pydantic import BaseModel, Field

from orderchat.config import settings
from orderchat.constants import DEFAULT_MESSAGES


class CatalogItem(BaseModel):
    """Flattened catalog entry"""
    id: Optional[UUID] = None
    name: str
    price_cents: int
    description: Optional[str] = None
    category: Optional[str] = None


class BusinessRuleContext(BaseModel):
    """Active business rule as shown to the completion service"""
    rule_name: str
    ai_message_template: Optional[str] = None
    rule_config: Dict[str, Any] = Field(default_factory=dict)


class RestaurantContext(BaseModel):
    """Restaurant profile, catalog and rules for a single turn"""
    id: UUID
    name: str
    opens_at: Optional[str] = None
    closes_at: Optional[str] = None
    delivery_fee_cents: int = 0
    minimum_order_cents: int = 0
    delivery_time_min: int = 25
    delivery_time_max: int = 35
    max_conversation_seconds: int = Field(default_factory=lambda: settings.max_conversation_seconds)
    welcome_message: Optional[str] = None
    error_message: Optional[str] = None
    llm_provider: Optional[str] = None
    llm_model: Optional[str] = None
    catalog: List[CatalogItem] = Field(default_factory=list)
    business_rules: List[BusinessRuleContext] = Field(default_factory=list)

    @property
    def generic_error_message(self) -> str:
        return self.error_message or DEFAULT_MESSAGES["error"]

    @property
    def greeting(self) -> str:
        return self.welcome_message or DEFAULT_MESSAGES["welcome"]
