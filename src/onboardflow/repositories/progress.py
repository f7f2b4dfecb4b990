"""Progress repositories: in-memory and SQL (async SQLAlchemy)."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, select

from onboardflow.db.engine import DatabaseManager
from onboardflow.db.models import OnboardingFormDataRow
from onboardflow.repositories.models import ProgressRecord, apply_step, is_reset

logger = logging.getLogger(__name__)


class InMemoryProgressRepository:
    """In-memory dict store keyed by email; suitable for single-instance use."""

    def __init__(self) -> None:
        self._records: dict[str, ProgressRecord] = {}

    def get(self, email: str) -> ProgressRecord | None:
        return self._records.get(email)

    def save_step(
        self,
        email: str,
        step: str,
        data: dict[str, Any] | None = None,
        form_data: dict[str, Any] | None = None,
        user_id: str | None = None,
    ) -> ProgressRecord | None:
        if is_reset(data, form_data):
            self.delete(email)
            return None
        record = apply_step(self._records.get(email), email, step, data, form_data, user_id)
        self._records[email] = record
        return record

    def delete(self, email: str) -> bool:
        return self._records.pop(email, None) is not None

    @property
    def record_count(self) -> int:
        return len(self._records)


def _to_record(row: OnboardingFormDataRow) -> ProgressRecord:
    return ProgressRecord(
        email=row.email,
        user_id=row.user_id,
        current_step=row.current_step,
        form_data=row.form_data or {},
        step_data=row.step_data or {},
        flow_type=row.flow_type,
        last_saved=row.last_saved,
    )


class SqlProgressRepository:
    """SQL-backed progress storage (Postgres in production, SQLite in tests)."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def get(self, email: str) -> ProgressRecord | None:
        async with self._db.session() as db:
            result = await db.execute(
                select(OnboardingFormDataRow).where(OnboardingFormDataRow.email == email)
            )
            row = result.scalar_one_or_none()
            if row is None:
                return None
            return _to_record(row)

    async def save_step(
        self,
        email: str,
        step: str,
        data: dict[str, Any] | None = None,
        form_data: dict[str, Any] | None = None,
        user_id: str | None = None,
    ) -> ProgressRecord | None:
        if is_reset(data, form_data):
            await self.delete(email)
            return None
        async with self._db.session() as db:
            result = await db.execute(
                select(OnboardingFormDataRow).where(OnboardingFormDataRow.email == email)
            )
            row = result.scalar_one_or_none()
            existing = _to_record(row) if row is not None else None
            record = apply_step(existing, email, step, data, form_data, user_id)
            if row is None:
                row = OnboardingFormDataRow(email=email)
                db.add(row)
            row.user_id = record.user_id
            row.current_step = record.current_step
            row.form_data = record.form_data
            row.step_data = record.step_data
            row.flow_type = record.flow_type
            row.last_saved = record.last_saved
            await db.commit()
        logger.debug("Saved onboarding progress for %s at step %d", email, record.current_step)
        return record

    async def delete(self, email: str) -> bool:
        async with self._db.session() as db:
            result = await db.execute(
                delete(OnboardingFormDataRow).where(OnboardingFormDataRow.email == email)
            )
            await db.commit()
        return bool(result.rowcount)
