from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from portfolio.db.base import Base

PENDING = "PENDING"
PROCESSING = "PROCESSING"
APPLIED = "APPLIED"
REJECTED = "REJECTED"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChargeDefinitionCommand(Base):
    """A durably accepted lifecycle command awaiting (or past) execution."""

    __tablename__ = "charge_definition_commands"

    id = Column(Integer, primary_key=True, index=True)
    command_type = Column(String(16), nullable=False)
    product_identifier = Column(String(32), nullable=False, index=True)
    charge_definition_identifier = Column(String(32), nullable=False)
    payload = Column(JSON, nullable=True)
    status = Column(String(16), nullable=False, default=PENDING, index=True)
    attempts = Column(Integer, nullable=False, default=0)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    processed_at = Column(DateTime(timezone=True), nullable=True)
