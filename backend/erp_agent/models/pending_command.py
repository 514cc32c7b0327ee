"""
PendingCommand: a dangerous command parked behind the confirmation gate.
Status flow: PENDING -> EXECUTED (or EXPIRED once the TTL passes). Each token replays at most once.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from sqlalchemy.types import JSON
from erp_agent.db.base import Base


class PendingCommand(Base):
    __tablename__ = "pending_commands"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(64), unique=True, index=True, nullable=False)
    action = Column(String(64), nullable=False)  # e.g. delete_order
    payload = Column(JSON, nullable=False)  # serialized Command
    original_input = Column(Text, nullable=True)
    status = Column(String(32), nullable=False, default="PENDING")  # PENDING | EXECUTED | EXPIRED
    expires_at = Column(DateTime, nullable=False)  # naive UTC
    created_at = Column(DateTime(timezone=True), server_default=func.now())
