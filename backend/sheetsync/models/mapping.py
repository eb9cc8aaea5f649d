"""Integration mapping model: one spreadsheet range synced into one target entity."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON, BigInteger
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sheetsync.database import Base


class IntegrationMapping(Base):
    """A user's sync configuration from a Google Sheets range to a target system entity."""

    __tablename__ = "integration_mappings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(100), nullable=False, index=True)
    name = Column(String(200), nullable=False)

    # Source
    source_type = Column(String(50), nullable=False, default='googlesheets')
    source_connector_id = Column(Integer, ForeignKey("connectors.id", ondelete="SET NULL"), nullable=True)
    source_spreadsheet_id = Column(String(255), nullable=False)
    source_range = Column(String(255), nullable=True)  # e.g. 'Sheet1!A:Z'

    # Target
    target_type = Column(String(50), nullable=False)  # 'quickbooks', 'billcom', 'hubspot', ...
    target_entity = Column(String(100), nullable=False)  # 'Invoice', 'Contact', ...
    target_connector_id = Column(Integer, ForeignKey("connectors.id", ondelete="SET NULL"), nullable=True)

    # Ordered list of {source_column, target_field, required, data_type}
    field_mappings = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)

    # Triggering
    sync_frequency = Column(String(20), nullable=False, default='hourly')
    trigger_type = Column(String(20), nullable=False, default='schedule')
    is_active = Column(Boolean, default=True, nullable=False)

    # Aggregates maintained by sync runs
    last_sync_at = Column(DateTime(timezone=True), nullable=True)
    sync_count = Column(BigInteger, default=0, nullable=False)  # cumulative rows synced

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    source_connector = relationship("Connector", foreign_keys=[source_connector_id])
    target_connector = relationship("Connector", foreign_keys=[target_connector_id])
    sync_runs = relationship(
        "SyncRun",
        back_populates="mapping",
        cascade="all, delete-orphan",
        order_by="SyncRun.started_at.desc()",
    )
    sync_jobs = relationship("SyncJob", back_populates="mapping", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<IntegrationMapping(id={self.id}, name='{self.name}', target='{self.target_type}:{self.target_entity}')>"
