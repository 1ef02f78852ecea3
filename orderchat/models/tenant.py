"""Tenant-related models"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, JSON, Text, Integer
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from orderchat.database import Base


class Tenant(Base):
    """Restaurant tenant"""
    __tablename__ = "tenants"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    timezone = Column(String(50), default="America/Mexico_City")
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Completion service configuration
    llm_provider = Column(String(50), default="anthropic")
    llm_model = Column(String(100), default="claude-3-5-sonnet-20241022")

    # Relationships
    settings = relationship("RestaurantSettings", back_populates="tenant", uselist=False)
    menu_items = relationship("MenuItem", back_populates="tenant")
    business_rules = relationship("BusinessRule", back_populates="tenant")
    conversations = relationship("Conversation", back_populates="tenant")
    orders = relationship("Order", back_populates="tenant")


class RestaurantSettings(Base):
    """Restaurant-specific settings read by the conversation engine"""
    __tablename__ = "restaurant_settings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), unique=True, nullable=False)

    # Business information
    address = Column(Text)
    phone = Column(String(20))

    # Operating hours ("12:00", "22:00")
    opens_at = Column(String(5))
    closes_at = Column(String(5))

    # Delivery
    delivery_fee_cents = Column(Integer, default=0)
    minimum_order_cents = Column(Integer, default=0)
    delivery_time_min = Column(Integer, default=25)
    delivery_time_max = Column(Integer, default=35)

    # Conversation behaviour
    max_conversation_seconds = Column(Integer, default=1800)
    welcome_message = Column(Text)
    error_message = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    tenant = relationship("Tenant", back_populates="settings")


class BusinessRule(Base):
    """Free-text business rules injected into the prompt (sauce limits, extras)"""
    __tablename__ = "business_rules"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False)
    rule_name = Column(String(255), nullable=False)
    rule_type = Column(String(50))  # sauce_limit, extra_cost, combo_rule, ...
    rule_config = Column(JSON, default=dict)
    ai_message_template = Column(Text)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    tenant = relationship("Tenant", back_populates="business_rules")
