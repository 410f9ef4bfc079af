# backend/app/repositories/availability_repository.py
"""
AvailabilityRepository - Weekly Rules and Date Overrides

Reads the live availability of an instructor and replaces it as a whole.
Replacement soft-deletes every live row and inserts the new set; it never
commits, so the service wraps it (together with the settings upsert) in a
single transaction.
"""

from datetime import date, datetime
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.availability import AvailabilityOverride, AvailabilityRule

logger = logging.getLogger(__name__)


class AvailabilityRepository:
    """
    Repository for instructor availability rules and overrides.
    """

    def __init__(self, db: Session):
        """Initialize repository."""
        self.db = db
        self.logger = logging.getLogger(__name__)

    # Reads

    def get_active_rules(self, brand_id: str, instructor_id: str) -> List[AvailabilityRule]:
        """
        Get the live, active weekly rules for an instructor.

        Returns:
            Rules ordered by weekday then start time
        """
        try:
            return (
                self.db.query(AvailabilityRule)
                .filter(
                    AvailabilityRule.brand_id == brand_id,
                    AvailabilityRule.instructor_id == instructor_id,
                    AvailabilityRule.is_active.is_(True),
                    AvailabilityRule.deleted_at.is_(None),
                )
                .order_by(AvailabilityRule.weekday, AvailabilityRule.start_time)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting availability rules: {str(e)}")
            raise RepositoryException(f"Failed to get availability rules: {str(e)}")

    def get_overrides(
        self,
        brand_id: str,
        instructor_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[AvailabilityOverride]:
        """
        Get live overrides, optionally limited to an inclusive date range.

        Returns:
            Overrides ordered by date then start time
        """
        try:
            query = self.db.query(AvailabilityOverride).filter(
                AvailabilityOverride.brand_id == brand_id,
                AvailabilityOverride.instructor_id == instructor_id,
                AvailabilityOverride.deleted_at.is_(None),
            )
            if start_date is not None:
                query = query.filter(AvailabilityOverride.override_date >= start_date)
            if end_date is not None:
                query = query.filter(AvailabilityOverride.override_date <= end_date)
            return query.order_by(
                AvailabilityOverride.override_date, AvailabilityOverride.start_time
            ).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting availability overrides: {str(e)}")
            raise RepositoryException(f"Failed to get availability overrides: {str(e)}")

    # Replacement

    def soft_delete_all(self, brand_id: str, instructor_id: str, deleted_at: datetime) -> int:
        """
        Soft-delete every live rule and override of an instructor.

        Returns:
            Number of rows soft-deleted
        """
        try:
            rules = self.db.execute(
                update(AvailabilityRule)
                .where(
                    AvailabilityRule.brand_id == brand_id,
                    AvailabilityRule.instructor_id == instructor_id,
                    AvailabilityRule.deleted_at.is_(None),
                )
                .values(deleted_at=deleted_at)
                .execution_options(synchronize_session=False)
            )
            overrides = self.db.execute(
                update(AvailabilityOverride)
                .where(
                    AvailabilityOverride.brand_id == brand_id,
                    AvailabilityOverride.instructor_id == instructor_id,
                    AvailabilityOverride.deleted_at.is_(None),
                )
                .values(deleted_at=deleted_at)
                .execution_options(synchronize_session=False)
            )
            return int(rules.rowcount or 0) + int(overrides.rowcount or 0)
        except SQLAlchemyError as e:
            self.logger.error(f"Error soft-deleting availability: {str(e)}")
            raise RepositoryException(f"Failed to clear availability: {str(e)}")

    def insert_rules(
        self, brand_id: str, instructor_id: str, rules: List[Dict[str, Any]]
    ) -> List[AvailabilityRule]:
        try:
            created = [
                AvailabilityRule(brand_id=brand_id, instructor_id=instructor_id, **rule)
                for rule in rules
            ]
            self.db.add_all(created)
            self.db.flush()
            return created
        except SQLAlchemyError as e:
            self.logger.error(f"Error inserting availability rules: {str(e)}")
            raise RepositoryException(f"Failed to insert availability rules: {str(e)}")

    def insert_overrides(
        self, brand_id: str, instructor_id: str, overrides: List[Dict[str, Any]]
    ) -> List[AvailabilityOverride]:
        try:
            created = [
                AvailabilityOverride(brand_id=brand_id, instructor_id=instructor_id, **override)
                for override in overrides
            ]
            self.db.add_all(created)
            self.db.flush()
            return created
        except SQLAlchemyError as e:
            self.logger.error(f"Error inserting availability overrides: {str(e)}")
            raise RepositoryException(f"Failed to insert availability overrides: {str(e)}")
