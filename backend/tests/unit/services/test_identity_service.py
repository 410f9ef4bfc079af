"""
IdentityService: brand resolution and role derivation.
"""

import pytest

from app.core.exceptions import (
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
)
from app.models import Instructor, InstructorBrand
from app.services.identity_service import IdentityService
from tests._utils.scheduling import seed_world, utc


@pytest.fixture
def identity(db):
    return IdentityService(db)


class TestResolveBrand:
    @pytest.mark.parametrize("slug", [None, "", "   "])
    def test_missing_slug(self, identity, slug):
        with pytest.raises(ValidationException) as excinfo:
            identity.resolve_brand(slug)
        assert excinfo.value.code == "BRAND_REQUIRED"
        assert excinfo.value.message == "Brand could not be resolved from request"

    def test_unknown_slug(self, identity, world):
        with pytest.raises(NotFoundException) as excinfo:
            identity.resolve_brand("nobody")
        assert excinfo.value.code == "BRAND_NOT_FOUND"

    def test_slug_is_normalised(self, identity, world):
        assert identity.resolve_brand("  ACME ").id == world.brand.id


class TestResolveContext:
    def test_student(self, identity, world):
        context = identity.resolve_context("acme", "student-acme")

        assert context.customer_id == world.customer.id
        assert context.instructor_ids == ()
        assert not context.is_brand_admin
        assert context.brand_name == "Acme Coaching"

    def test_instructor_by_user_id(self, identity, world):
        context = identity.resolve_context("acme", "coach-acme")

        assert context.instructor_ids == (world.instructor.id,)
        assert context.can_manage_instructor(world.instructor.id)
        assert not context.is_customer

    def test_instructor_by_email_is_case_insensitive(self, identity, world):
        context = identity.resolve_context("acme", "new-login-id", " Coach@Acme.Example.com ")

        assert context.email == "coach@acme.example.com"
        assert context.instructor_ids == (world.instructor.id,)

    def test_admin_manages_every_instructor(self, identity, world):
        context = identity.resolve_context("acme", "admin-acme")

        assert context.is_brand_admin
        assert context.can_manage_instructor("any-instructor")

    def test_linked_instructor_from_another_brand(self, identity, world, db):
        partner = seed_world(db, slug="partner", name="Partner Coaching")
        db.add(InstructorBrand(instructor_id=partner.instructor.id, brand_id=world.brand.id))
        db.commit()

        context = identity.resolve_context("acme", "coach-partner")

        assert context.instructor_ids == (partner.instructor.id,)

    def test_missing_user(self, identity, world):
        with pytest.raises(UnauthorizedException) as excinfo:
            identity.resolve_context("acme", "  ")
        assert excinfo.value.code == "UNAUTHENTICATED"

    def test_brand_errors_come_before_authentication(self, identity, world):
        with pytest.raises(NotFoundException):
            identity.resolve_context("nobody", None)

    def test_user_without_role(self, identity, world):
        with pytest.raises(ForbiddenException) as excinfo:
            identity.resolve_context("acme", "stranger")
        assert excinfo.value.code == "NO_BRAND_ROLE"

    def test_roles_do_not_leak_across_brands(self, identity, world, db):
        seed_world(db, slug="partner", name="Partner Coaching")

        with pytest.raises(ForbiddenException):
            identity.resolve_context("partner", "student-acme")

    def test_deleted_instructor_is_not_matched(self, identity, world, db):
        instructor = db.get(Instructor, world.instructor.id)
        instructor.deleted_at = utc(2026, 2, 1)
        db.commit()

        with pytest.raises(ForbiddenException):
            identity.resolve_context("acme", "coach-acme")
