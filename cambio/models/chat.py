"""Transfer chat models (one conversation per transfer)."""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.sql import func

from cambio.database import Base
from cambio.models.base import generate_id


class TransferChat(Base):
    __tablename__ = "transfer_chats"

    id = Column(String, primary_key=True, default=lambda: generate_id("chat"))
    transfer_id = Column(String, ForeignKey("transfers.id"), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(String, primary_key=True, default=lambda: generate_id("msg"))
    chat_id = Column(String, ForeignKey("transfer_chats.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("profiles.id"), nullable=True)
    content = Column(Text, nullable=False)
    is_system = Column(Boolean, nullable=False, default=False)  # Posted by a lifecycle transition
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
