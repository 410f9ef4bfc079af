# backend/app/repositories/tenant_repository.py
"""
Tenant Repository for the coaching scheduler

Lookups used to build a request's identity context: brand by slug, brand
membership, the customer row of a user and the instructors a user operates
within a brand. Instructors belong to a brand through their home brand or an
active instructor_brands link.
"""

import logging
from typing import List, Optional

from sqlalchemy import exists, func, or_
from sqlalchemy.orm import Session

from ..models.tenant import ADMIN_ROLES, Brand, BrandMember, Customer, Instructor, InstructorBrand
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class TenantRepository(BaseRepository[Brand]):
    """Brand, membership, customer and instructor lookups."""

    def __init__(self, db: Session):
        super().__init__(db, Brand)

    def get_brand_by_slug(self, slug: str) -> Optional[Brand]:
        query = self.db.query(Brand).filter(Brand.slug == slug, Brand.deleted_at.is_(None))
        return self._execute_first(query)

    def is_brand_admin(self, brand_id: str, user_id: str) -> bool:
        query = self.db.query(BrandMember).filter(
            BrandMember.brand_id == brand_id,
            BrandMember.user_id == user_id,
            BrandMember.role.in_(ADMIN_ROLES),
            BrandMember.deleted_at.is_(None),
        )
        return self._execute_first(query) is not None

    def get_customer_for_user(self, brand_id: str, user_id: str) -> Optional[Customer]:
        query = self.db.query(Customer).filter(
            Customer.brand_id == brand_id,
            Customer.user_id == user_id,
            Customer.deleted_at.is_(None),
        )
        return self._execute_first(query)

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        query = self.db.query(Customer).filter(Customer.id == customer_id)
        return self._execute_first(query)

    def _in_brand_clause(self, brand_id: str):
        linked = exists().where(
            InstructorBrand.instructor_id == Instructor.id,
            InstructorBrand.brand_id == brand_id,
            InstructorBrand.deleted_at.is_(None),
        )
        return or_(Instructor.brand_id == brand_id, linked)

    def get_instructor_in_brand(self, brand_id: str, instructor_id: str) -> Optional[Instructor]:
        """Return the instructor when it belongs to the brand, else None."""
        query = self.db.query(Instructor).filter(
            Instructor.id == instructor_id,
            Instructor.deleted_at.is_(None),
            self._in_brand_clause(brand_id),
        )
        return self._execute_first(query)

    def get_instructor(self, instructor_id: str) -> Optional[Instructor]:
        query = self.db.query(Instructor).filter(Instructor.id == instructor_id)
        return self._execute_first(query)

    def get_instructor_ids_for_user(
        self, brand_id: str, user_id: str, email: Optional[str]
    ) -> List[str]:
        """Instructors matched by user id or case-insensitive email within the brand."""
        match = Instructor.user_id == user_id
        normalized_email = (email or "").strip().lower()
        if normalized_email:
            match = or_(match, func.lower(Instructor.email) == normalized_email)

        query = (
            self.db.query(Instructor.id)
            .filter(
                match,
                Instructor.deleted_at.is_(None),
                self._in_brand_clause(brand_id),
            )
            .order_by(Instructor.id)
        )
        return [row[0] for row in self._execute_query(query)]

    def list_instructors_in_brand(self, brand_id: str) -> List[Instructor]:
        """Live home-brand and linked instructors of a brand."""
        query = (
            self.db.query(Instructor)
            .filter(Instructor.deleted_at.is_(None), self._in_brand_clause(brand_id))
            .order_by(Instructor.display_name, Instructor.id)
        )
        return self._execute_query(query)
