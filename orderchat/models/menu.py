"""Catalog model"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Text, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from orderchat.database import Base


class MenuItem(Base):
    """Catalog entry shown to the customer and resolved by name from the chat"""
    __tablename__ = "menu_items"
    __table_args__ = (
        # Catalog is read per turn in (category, sort_order, name) order
        Index("ix_menu_items_tenant_catalog", "tenant_id", "category", "sort_order"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False)

    name = Column(String(255), nullable=False)
    description = Column(Text)
    price_cents = Column(Integer, nullable=False)
    category = Column(String(100))  # Alitas, Hamburguesas, Bebidas; uncategorized shows as "Otros"
    sort_order = Column(Integer, default=0)

    # Only active and available items reach the prompt
    is_active = Column(Boolean, default=True)
    is_available = Column(Boolean, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    tenant = relationship("Tenant", back_populates="menu_items")
