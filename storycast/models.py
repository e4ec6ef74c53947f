from datetime import datetime
from typing import List, Optional
from sqlalchemy import String, DateTime, ForeignKey, Text, JSON, Integer, Float, Boolean, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func

class Base(DeclarativeBase):
    pass

MESSAGE_ROLES = ("system", "user", "assistant")

MEMORY_CATEGORIES = (
    "USER_INFO",
    "USER_PREFERENCE",
    "USER_GOAL",
    "USER_RELATIONSHIP",
    "USER_EVENT",
    "OTHER",
)

class Story(Base):
    __tablename__ = "stories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, index=True)
    name: Mapped[str] = mapped_column(String, default="Untitled Story")
    llm_provider: Mapped[str] = mapped_column(String, default="gemini")
    embedding_provider: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    handler: Mapped[str] = mapped_column(String, default="simple")
    handler_config: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)  # per-story handler tunables
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    messages: Mapped[List["Message"]] = relationship("Message", back_populates="story", cascade="all, delete-orphan", order_by="Message.id")

class Message(Base):
    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    story_id: Mapped[int] = mapped_column(ForeignKey("stories.id", ondelete="CASCADE"), index=True)
    role: Mapped[str] = mapped_column(String(16))  # one of MESSAGE_ROLES
    content: Mapped[str] = mapped_column(Text)
    extracted: Mapped[bool] = mapped_column(Boolean, default=False)  # consumed by memory extraction
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    story: Mapped["Story"] = relationship("Story", back_populates="messages")

    __table_args__ = (
        Index("ix_messages_story_extracted", "story_id", "extracted"),
    )

class Memory(Base):
    """Long-term fact about a user, written by the extraction pipeline."""
    __tablename__ = "memories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, index=True)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    previous_content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)  # one of MEMORY_CATEGORIES
    importance: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # 0-1
    confidence: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # 0-1
    action: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)  # ADD / UPDATE / DELETE
    embedding: Mapped[Optional[list]] = mapped_column(JSON(none_as_null=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
