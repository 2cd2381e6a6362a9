"""
RagDesk SQLAlchemy Models

Registry table binding a public model name to its vector index, API key
and completion backend. Uses SQLAlchemy 2.0 patterns with async support.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# ============================================
# Base Model
# ============================================


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""


# ============================================
# Helper Mixins
# ============================================


class TimestampMixin:
    """Mixin adding created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


# ============================================
# Registered Model
# ============================================


class RagModel(Base, TimestampMixin):
    """A queryable model backed by one vector index."""

    __tablename__ = "rag_models"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    index_name: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    api_key: Mapped[str] = mapped_column(String(128), nullable=False)
    llm_model: Mapped[str] = mapped_column(String(100), nullable=False)

    def to_public_dict(self) -> dict[str, str]:
        """Fields exposed by the model listing."""
        return {
            "name": self.name,
            "apiKey": self.api_key,
            "llmModel": self.llm_model,
        }

    def __repr__(self) -> str:
        # never include api_key
        return (
            f"<RagModel(name='{self.name}', index_name='{self.index_name}', "
            f"llm_model='{self.llm_model}')>"
        )
