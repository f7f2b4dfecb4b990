"""SQLAlchemy ORM models for persisted onboarding progress."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from onboardflow.db.base import Base


def _jsonb() -> type:
    """Return JSONB for Postgres, plain JSON for SQLite."""
    return JSON().with_variant(PG_JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OnboardingFormDataRow(Base):
    __tablename__ = "onboarding_form_data"

    email: Mapped[str] = mapped_column(String(320), primary_key=True)
    user_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    current_step: Mapped[int] = mapped_column(Integer, default=1)
    form_data: Mapped[dict[str, Any]] = mapped_column(_jsonb(), default=dict)
    step_data: Mapped[dict[str, Any]] = mapped_column(_jsonb(), default=dict)
    flow_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    last_saved: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        Index("ix_onboarding_form_data_user_id", "user_id"),
    )
