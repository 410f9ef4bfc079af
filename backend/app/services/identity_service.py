# backend/app/services/identity_service.py
"""
Identity Service for the coaching scheduler

Builds the per-request tenant and role context. Authentication itself happens
upstream; this service receives the brand slug and the authenticated user's
id and email, and derives the user's roles in that brand from persisted
membership, customer and instructor rows.
"""

from dataclasses import dataclass, field
import logging
from typing import Any, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.exceptions import (
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
)
from ..models.tenant import Brand, Customer
from ..repositories import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestContext:
    """Tenant and actor of one request."""

    brand_id: str
    brand_slug: str
    brand_name: str
    user_id: str
    email: Optional[str] = None
    is_brand_admin: bool = False
    customer_id: Optional[str] = None
    instructor_ids: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_customer(self) -> bool:
        return self.customer_id is not None

    def can_manage_instructor(self, instructor_id: Optional[str]) -> bool:
        if self.is_brand_admin:
            return True
        return bool(instructor_id) and instructor_id in self.instructor_ids

    def has_any_role(self) -> bool:
        return self.is_brand_admin or self.is_customer or bool(self.instructor_ids)


class IdentityService(BaseService):
    """
    Resolves brands and actors for incoming requests.
    """

    def __init__(self, db: Session, **kwargs: Any):
        super().__init__(db, **kwargs)
        self.tenant_repository = RepositoryFactory.create_tenant_repository(db)

    def resolve_brand(self, brand_slug: Optional[str]) -> Brand:
        slug = (brand_slug or "").strip().lower()
        if not slug:
            raise ValidationException("Brand could not be resolved from request", code="BRAND_REQUIRED")
        brand = self.tenant_repository.get_brand_by_slug(slug)
        if brand is None:
            raise NotFoundException("Brand not found", code="BRAND_NOT_FOUND")
        return brand

    @BaseService.measure_operation("resolve_context")
    def resolve_context(
        self,
        brand_slug: Optional[str],
        user_id: Optional[str],
        email: Optional[str] = None,
    ) -> RequestContext:
        """
        Resolve the tenant and the actor's roles.

        Raises:
            ValidationException: No brand slug given
            NotFoundException: Unknown brand
            UnauthorizedException: No authenticated user
            ForbiddenException: The user has no role in the brand
        """
        brand = self.resolve_brand(brand_slug)

        actor_id = (user_id or "").strip()
        if not actor_id:
            raise UnauthorizedException("Authentication required", code="UNAUTHENTICATED")
        normalized_email = (email or "").strip().lower() or None

        customer: Optional[Customer] = self.tenant_repository.get_customer_for_user(
            brand.id, actor_id
        )
        context = RequestContext(
            brand_id=brand.id,
            brand_slug=brand.slug,
            brand_name=brand.name,
            user_id=actor_id,
            email=normalized_email,
            is_brand_admin=self.tenant_repository.is_brand_admin(brand.id, actor_id),
            customer_id=customer.id if customer else None,
            instructor_ids=tuple(
                self.tenant_repository.get_instructor_ids_for_user(
                    brand.id, actor_id, normalized_email
                )
            ),
        )

        if not context.has_any_role():
            self.logger.info("User %s has no role in brand %s", actor_id, brand.slug)
            raise ForbiddenException("Forbidden", code="NO_BRAND_ROLE")
        return context
