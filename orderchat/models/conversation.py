"""Conversation model"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, Text, Index, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from orderchat.database import Base


class Conversation(Base):
    """Chat ordering conversations, one active row per restaurant/customer pair"""
    __tablename__ = "conversations"
    __table_args__ = (
        Index(
            "uq_conversations_active_pair",
            "restaurant_id",
            "customer_phone",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        Index("ix_conversations_status_last_interaction", "status", "last_interaction_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False)
    customer_phone = Column(String(20), nullable=False)

    # State machine
    status = Column(String(20), nullable=False, default="active")  # active, completed, abandoned
    current_step = Column(String(20), nullable=False, default="greeting")

    # Serialized OrderDraft / HistoryMessage records, owned by ConversationStore
    order_draft_json = Column(JSON, nullable=False, default=dict)
    message_history_json = Column(JSON, nullable=False, default=list)

    summary = Column(Text)

    # Timing
    last_interaction_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    tenant = relationship("Tenant", back_populates="conversations")
    order = relationship("Order", back_populates="conversation", uselist=False)
