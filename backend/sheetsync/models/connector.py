"""Connector model for external account configurations."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sheetsync.database import Base


class Connector(Base):
    """Account configuration for a source or target system (Google Sheets, QuickBooks, Bill.com, ...)."""

    __tablename__ = "connectors"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    type = Column(String(50), nullable=False, index=True)  # 'googlesheets', 'quickbooks', 'billcom', 'webhook', 'mock'
    base_url = Column(String(255), nullable=True)
    api_token = Column(Text, nullable=True)  # Encrypted
    is_active = Column(Boolean, default=True, nullable=False)
    settings = Column(JSON().with_variant(JSONB, "postgresql"), nullable=True)  # Connector-specific settings
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Connector(id={self.id}, name='{self.name}', type='{self.type}')>"
