"""
Stream Models

Relational mirror of the on-chain payment streams. Rows are written by the
indexer that follows the program; this service only reads them.
"""

from uuid import uuid4

from sqlalchemy import Column, String, DateTime, Numeric, ForeignKey, JSON, BigInteger, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from cascade.database import Base


class StreamEventType:
    """Event types recorded in the stream event log."""
    CREATED = "stream_created"
    TOP_UP = "stream_top_up"
    WITHDRAWN = "stream_withdrawn"
    REFRESH_ACTIVITY = "stream_refresh_activity"
    EMERGENCY_WITHDRAW = "stream_emergency_withdraw"
    CLOSED = "stream_closed"
    REACTIVATED = "stream_reactivated"


class Employee(Base):
    """Employee profile, joined only for display names."""

    __tablename__ = "employees"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    organization_id = Column(String, nullable=False, index=True)
    full_name = Column(String, nullable=True)
    primary_wallet = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    streams = relationship("Stream", back_populates="employee")


class Stream(Base):
    """Mirror of a payment stream account and its vault."""

    __tablename__ = "streams"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    organization_id = Column(String, nullable=False, index=True)
    employee_id = Column(String, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)

    # On-chain addresses
    stream_address = Column(String(64), nullable=False, unique=True)
    vault_address = Column(String(64), nullable=False, unique=True)
    employer_wallet = Column(String(64), nullable=False)
    employer_token_account = Column(String(64), nullable=False)
    mint_address = Column(String(64), nullable=False)

    # Token amounts in base units
    hourly_rate = Column(Numeric(precision=20, scale=6), nullable=False)
    total_deposited = Column(Numeric(precision=20, scale=6), nullable=False, default=0)
    withdrawn_amount = Column(Numeric(precision=20, scale=6), nullable=False, default=0)

    status = Column(String, nullable=False, default="active")

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False)
    last_activity_at = Column(DateTime(timezone=True), nullable=True)
    deactivated_at = Column(DateTime(timezone=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)

    # Indexer bookkeeping
    last_synced_slot = Column(BigInteger, nullable=True)
    last_synced_at = Column(DateTime(timezone=True), nullable=True)
    extra_data = Column("metadata", JSON, nullable=False, default=dict)

    # Relationships
    employee = relationship("Employee", back_populates="streams")
    events = relationship("StreamEvent", back_populates="stream", cascade="all, delete-orphan")

    __table_args__ = (
        Index("streams_employee_idx", "employee_id", "status"),
    )


class StreamEvent(Base):
    """Append-only log of stream instructions observed on-chain."""

    __tablename__ = "stream_events"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    stream_id = Column(String, ForeignKey("streams.id", ondelete="CASCADE"), nullable=False)
    organization_id = Column(String, nullable=False, index=True)

    event_type = Column(String, nullable=False)
    actor_type = Column(String, nullable=False, default="system")
    actor_address = Column(String(64), nullable=True)
    signature = Column(String(128), nullable=True, unique=True)
    amount = Column(Numeric(precision=20, scale=6), nullable=True)

    occurred_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    extra_data = Column("metadata", JSON, nullable=False, default=dict)

    stream = relationship("Stream", back_populates="events")

    __table_args__ = (
        Index("stream_events_stream_idx", "stream_id", "occurred_at"),
    )
