# backend/app/repositories/scheduling_settings_repository.py
"""
Scheduling Settings Repository for the coaching scheduler

One live row per (brand, instructor). Writes go through ``upsert`` which
updates the live row in place, or inserts it when none exists.
"""

from typing import Any, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..models.scheduling_settings import InstructorSchedulingSettings
from .base_repository import BaseRepository


class SchedulingSettingsRepository(BaseRepository[InstructorSchedulingSettings]):
    def __init__(self, db: Session):
        super().__init__(db, InstructorSchedulingSettings)

    def get_for_instructor(
        self, brand_id: str, instructor_id: str
    ) -> Optional[InstructorSchedulingSettings]:
        query = self.db.query(InstructorSchedulingSettings).filter(
            InstructorSchedulingSettings.brand_id == brand_id,
            InstructorSchedulingSettings.instructor_id == instructor_id,
            InstructorSchedulingSettings.deleted_at.is_(None),
        )
        return self._execute_first(query)

    def get_for_instructors(
        self, brand_id: str, instructor_ids: Sequence[str]
    ) -> List[InstructorSchedulingSettings]:
        if not instructor_ids:
            return []
        query = self.db.query(InstructorSchedulingSettings).filter(
            InstructorSchedulingSettings.brand_id == brand_id,
            InstructorSchedulingSettings.instructor_id.in_(list(instructor_ids)),
            InstructorSchedulingSettings.deleted_at.is_(None),
        )
        return self._execute_query(query)

    def upsert(self, brand_id: str, instructor_id: str, **values: Any) -> InstructorSchedulingSettings:
        """Update the live settings row or create it. Does not commit."""
        existing = self.get_for_instructor(brand_id, instructor_id)
        if existing is not None:
            return self.update(existing, **values)
        return self.create(brand_id=brand_id, instructor_id=instructor_id, **values)
