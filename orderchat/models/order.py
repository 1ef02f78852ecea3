"""Order model"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, Text, Integer
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from orderchat.database import Base


class Order(Base):
    """Delivery orders created from confirmed conversations"""
    __tablename__ = "orders"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False)
    conversation_id = Column(UUID(as_uuid=True), ForeignKey("conversations.id"), unique=True)

    # Customer information
    customer_phone = Column(String(20), nullable=False)

    # Delivery address
    delivery_street = Column(String(255), nullable=False)
    delivery_number = Column(String(20), nullable=False)
    delivery_neighborhood = Column(String(255), nullable=False)
    delivery_references = Column(Text)
    delivery_postal_code = Column(String(10))

    # Order details
    # [{"catalog_item_id": "...", "name": "...", "quantity": 1, "customizations": [...], "item_total_cents": 9000}, ...]
    items_json = Column(JSON, nullable=False)

    # Pricing
    subtotal_cents = Column(Integer, nullable=False, default=0)
    delivery_fee_cents = Column(Integer, nullable=False, default=0)
    total_cents = Column(Integer, nullable=False, default=0)

    # Status
    status = Column(String(50), default="confirmed")  # confirmed, preparing, out_for_delivery, delivered, cancelled
    estimated_delivery_minutes = Column(Integer)

    # Notes
    special_instructions = Column(Text)

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    tenant = relationship("Tenant", back_populates="orders")
    conversation = relationship("Conversation", back_populates="order")
