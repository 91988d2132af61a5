"""Operational records: admin audit trail and gateway webhook log."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, JSON, Numeric, String, Text

from cafebook.db.base import Base


class AuditLogEntry(Base):
    """Audit log entry."""
    __tablename__ = "audit_log_entries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=True, index=True)
    user_name = Column(String(200), nullable=True)
    action = Column(String(50), nullable=False, index=True)
    entity_type = Column(String(50), nullable=True, index=True)
    entity_id = Column(String(50), nullable=True)
    details = Column(JSON, nullable=True)
    ip_address = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)


class PaymentLog(Base):
    """One row per received UroPay webhook delivery."""
    __tablename__ = "payment_logs"

    id = Column(Integer, primary_key=True, index=True)
    webhook_id = Column(String(100), nullable=True, unique=True)
    environment = Column(String(20), nullable=True)
    reference_number = Column(String(100), nullable=True, index=True)
    amount = Column(Numeric(10, 2), nullable=True)
    payer_name = Column(String(200), nullable=True)
    vpa = Column(String(200), nullable=True)
    raw_payload = Column(Text, nullable=True)
    received_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
