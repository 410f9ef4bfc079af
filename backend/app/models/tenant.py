# backend/app/models/tenant.py
"""
Tenant and party models for the coaching marketplace.

A brand is a tenant. Customers belong to exactly one brand; instructors have
a home brand and may be linked to further brands. Brand members with the
owner/admin role administer the brand's scheduling.
"""

from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Index, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base
from .types import UTCDateTime, utcnow


class BrandRole(str, Enum):
    """Membership roles within a brand."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


ADMIN_ROLES = (BrandRole.OWNER.value, BrandRole.ADMIN.value)


class Brand(Base):
    __tablename__ = "brands"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    slug = Column(String(100), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    deleted_at = Column(UTCDateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<Brand {self.slug}>"


class BrandMember(Base):
    __tablename__ = "brand_members"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    brand_id = Column(String(26), ForeignKey("brands.id"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    role = Column(String(20), nullable=False, default=BrandRole.MEMBER.value)
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    deleted_at = Column(UTCDateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("role IN ('owner', 'admin', 'member')", name="ck_brand_members_role"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES and self.deleted_at is None


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    brand_id = Column(String(26), ForeignKey("brands.id"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    email = Column(String(320), nullable=True)
    phone = Column(String(32), nullable=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    deleted_at = Column(UTCDateTime, nullable=True)

    __table_args__ = (Index("ix_customers_brand_user", "brand_id", "user_id"),)

    @property
    def display_name(self) -> str:
        parts = [part.strip() for part in (self.first_name, self.last_name) if part and part.strip()]
        if parts:
            return " ".join(parts)
        return "Student"

    def __repr__(self) -> str:
        return f"<Customer {self.id} brand={self.brand_id}>"


class Instructor(Base):
    __tablename__ = "instructors"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    brand_id = Column(String(26), ForeignKey("brands.id"), nullable=False, index=True)
    user_id = Column(String(64), nullable=True, index=True)
    email = Column(String(320), nullable=True)
    display_name = Column(String(200), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    deleted_at = Column(UTCDateTime, nullable=True)

    brand_links = relationship("InstructorBrand", back_populates="instructor", lazy="select")

    def __repr__(self) -> str:
        return f"<Instructor {self.id} {self.display_name!r}>"


class InstructorBrand(Base):
    """Links an instructor to a brand other than its home brand."""

    __tablename__ = "instructor_brands"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    instructor_id = Column(String(26), ForeignKey("instructors.id"), nullable=False, index=True)
    brand_id = Column(String(26), ForeignKey("brands.id"), nullable=False, index=True)
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    deleted_at = Column(UTCDateTime, nullable=True)

    instructor = relationship("Instructor", back_populates="brand_links")

    __table_args__ = (Index("ix_instructor_brands_pair", "instructor_id", "brand_id"),)
