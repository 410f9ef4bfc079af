# backend/alembic/versions/001_scheduling_schema.py
"""Scheduling schema - tenants, availability, bookings and notification log

Revision ID: 001_scheduling_schema
Revises:
Create Date: 2026-02-01 00:00:00.000000

Creates the tenant tables (brands, members, customers, instructors), the
per-instructor scheduling settings, weekly availability rules and date
overrides, bookings with their payments, and the notification delivery log.

On PostgreSQL the bookings table also gets a generated ``booking_span``
column and the ``bookings_no_overlap_per_instructor`` exclusion constraint,
which rejects overlapping active bookings of one instructor at commit time.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_scheduling_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(*, updated: bool = False, deleted: bool = True) -> list:
    columns = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        )
    ]
    if updated:
        columns.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True))
    if deleted:
        columns.append(sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True))
    return columns


def _create_extension_prefer_extensions_schema(extension_name: str) -> None:
    """Create extension using extensions schema when available."""

    bind = op.get_bind()
    if bind is None or bind.dialect.name != "postgresql":
        return

    op.execute(
        f"""
        DO $$
        BEGIN
            IF NOT EXISTS (SELECT 1 FROM pg_extension WHERE extname = '{extension_name}') THEN
                IF EXISTS (SELECT 1 FROM pg_namespace WHERE nspname = 'extensions') THEN
                    EXECUTE 'CREATE EXTENSION IF NOT EXISTS {extension_name} WITH SCHEMA extensions';
                ELSE
                    EXECUTE 'CREATE EXTENSION IF NOT EXISTS {extension_name}';
                END IF;
            END IF;
        END $$;
        """
    )


def upgrade() -> None:
    """Create the scheduling tables."""
    bind = op.get_bind()
    is_postgres = bind.dialect.name == "postgresql"

    # Tenants and parties
    op.create_table(
        "brands",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_brands_slug", "brands", ["slug"], unique=True)

    op.create_table(
        "brand_members",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("brand_id", sa.String(26), sa.ForeignKey("brands.id"), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="member"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("role IN ('owner', 'admin', 'member')", name="ck_brand_members_role"),
    )
    op.create_index("ix_brand_members_brand_id", "brand_members", ["brand_id"])
    op.create_index("ix_brand_members_user_id", "brand_members", ["user_id"])

    op.create_table(
        "customers",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("brand_id", sa.String(26), sa.ForeignKey("brands.id"), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_customers_brand_id", "customers", ["brand_id"])
    op.create_index("ix_customers_user_id", "customers", ["user_id"])
    op.create_index("ix_customers_brand_user", "customers", ["brand_id", "user_id"])

    op.create_table(
        "instructors",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("brand_id", sa.String(26), sa.ForeignKey("brands.id"), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("display_name", sa.String(200), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_instructors_brand_id", "instructors", ["brand_id"])
    op.create_index("ix_instructors_user_id", "instructors", ["user_id"])

    op.create_table(
        "instructor_brands",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column(
            "instructor_id", sa.String(26), sa.ForeignKey("instructors.id"), nullable=False
        ),
        sa.Column("brand_id", sa.String(26), sa.ForeignKey("brands.id"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_instructor_brands_instructor_id", "instructor_brands", ["instructor_id"])
    op.create_index("ix_instructor_brands_brand_id", "instructor_brands", ["brand_id"])
    op.create_index(
        "ix_instructor_brands_pair", "instructor_brands", ["instructor_id", "brand_id"]
    )

    # Scheduling settings and availability
    op.create_table(
        "instructor_scheduling_settings",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("brand_id", sa.String(26), sa.ForeignKey("brands.id"), nullable=False),
        sa.Column(
            "instructor_id", sa.String(26), sa.ForeignKey("instructors.id"), nullable=False
        ),
        sa.Column("timezone", sa.String(64), nullable=False, server_default="UTC"),
        sa.Column("session_duration_minutes", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("buffer_minutes", sa.Integer(), nullable=False, server_default="15"),
        sa.Column("advance_booking_days", sa.Integer(), nullable=False, server_default="90"),
        sa.Column("cancellation_cutoff_hours", sa.Integer(), nullable=False, server_default="24"),
        *_timestamps(updated=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "session_duration_minutes >= 15 AND session_duration_minutes <= 480",
            name="ck_scheduling_settings_duration",
        ),
        sa.CheckConstraint(
            "buffer_minutes >= 0 AND buffer_minutes <= 180", name="ck_scheduling_settings_buffer"
        ),
        sa.CheckConstraint(
            "advance_booking_days >= 1 AND advance_booking_days <= 365",
            name="ck_scheduling_settings_advance",
        ),
        sa.CheckConstraint(
            "cancellation_cutoff_hours >= 0 AND cancellation_cutoff_hours <= 720",
            name="ck_scheduling_settings_cutoff",
        ),
    )
    op.create_index(
        "ux_scheduling_settings_brand_instructor",
        "instructor_scheduling_settings",
        ["brand_id", "instructor_id"],
        unique=True,
        postgresql_where=sa.text("deleted_at IS NULL"),
        sqlite_where=sa.text("deleted_at IS NULL"),
    )

    op.create_table(
        "instructor_availability_rules",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("brand_id", sa.String(26), sa.ForeignKey("brands.id"), nullable=False),
        sa.Column(
            "instructor_id", sa.String(26), sa.ForeignKey("instructors.id"), nullable=False
        ),
        sa.Column("weekday", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("weekday >= 0 AND weekday <= 6", name="ck_availability_rules_weekday"),
        sa.CheckConstraint("end_time > start_time", name="ck_availability_rules_time_order"),
    )
    op.create_index(
        "ix_availability_rules_lookup",
        "instructor_availability_rules",
        ["brand_id", "instructor_id", "weekday"],
        postgresql_where=sa.text("deleted_at IS NULL"),
    )

    op.create_table(
        "instructor_availability_overrides",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("brand_id", sa.String(26), sa.ForeignKey("brands.id"), nullable=False),
        sa.Column(
            "instructor_id", sa.String(26), sa.ForeignKey("instructors.id"), nullable=False
        ),
        sa.Column("override_date", sa.Date(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("reason", sa.String(255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "(is_available = false AND start_time IS NULL AND end_time IS NULL) OR "
            "(is_available = true AND start_time IS NOT NULL AND end_time IS NOT NULL "
            "AND end_time > start_time)",
            name="ck_availability_overrides_shape",
        ),
    )
    op.create_index(
        "ix_availability_overrides_lookup",
        "instructor_availability_overrides",
        ["brand_id", "instructor_id", "override_date"],
        postgresql_where=sa.text("deleted_at IS NULL"),
    )

    # Bookings
    op.create_table(
        "bookings",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("brand_id", sa.String(26), sa.ForeignKey("brands.id"), nullable=False),
        sa.Column("customer_id", sa.String(26), sa.ForeignKey("customers.id"), nullable=False),
        sa.Column(
            "instructor_id", sa.String(26), sa.ForeignKey("instructors.id"), nullable=False
        ),
        sa.Column("course_id", sa.String(26), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("student_timezone", sa.String(64), nullable=False, server_default="UTC"),
        sa.Column("instructor_timezone", sa.String(64), nullable=False, server_default="UTC"),
        sa.Column("location", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("instructor_notes", sa.Text(), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="unpaid"),
        sa.Column("payment_reference", sa.String(255), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("no_show_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reminder_sent_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(updated=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'completed', 'cancelled', 'no_show')",
            name="ck_bookings_status",
        ),
        sa.CheckConstraint(
            "payment_status IN ('unpaid', 'paid', 'failed', 'refunded')",
            name="ck_bookings_payment_status",
        ),
        sa.CheckConstraint("end_at > start_at", name="ck_bookings_time_order"),
        sa.CheckConstraint("duration_minutes >= 15", name="ck_bookings_duration_minimum"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_customer_id", "bookings", ["customer_id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index(
        "ix_bookings_instructor_active_window",
        "bookings",
        ["instructor_id", "start_at", "end_at"],
        postgresql_where=sa.text("status IN ('pending', 'confirmed') AND deleted_at IS NULL"),
    )
    op.create_index(
        "ix_bookings_reminder_due",
        "bookings",
        ["status", "start_at"],
        postgresql_where=sa.text("reminder_sent_at IS NULL AND deleted_at IS NULL"),
    )

    if is_postgres:
        _create_extension_prefer_extensions_schema("btree_gist")
        op.execute(
            """
            ALTER TABLE bookings
              ADD COLUMN IF NOT EXISTS booking_span tstzrange
              GENERATED ALWAYS AS (tstzrange(start_at, end_at, '[)')) STORED
            """
        )
        op.execute(
            """
            ALTER TABLE bookings
              ADD CONSTRAINT bookings_no_overlap_per_instructor
              EXCLUDE USING gist (
                instructor_id WITH =,
                booking_span WITH &&
              )
              WHERE (deleted_at IS NULL AND status IN ('pending', 'confirmed'))
            """
        )

    op.create_table(
        "booking_payments",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("booking_id", sa.String(26), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("brand_id", sa.String(26), sa.ForeignKey("brands.id"), nullable=False),
        sa.Column("customer_id", sa.String(26), sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("provider", sa.String(60), nullable=False),
        sa.Column("provider_payment_id", sa.String(255), nullable=True),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(8), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="succeeded"),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(deleted=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("amount_cents > 0", name="ck_booking_payments_amount_positive"),
    )
    op.create_index("ix_booking_payments_booking_id", "booking_payments", ["booking_id"])

    op.create_table(
        "booking_notifications",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("booking_id", sa.String(26), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("brand_id", sa.String(26), sa.ForeignKey("brands.id"), nullable=False),
        sa.Column("channel", sa.String(10), nullable=False),
        sa.Column("template", sa.String(50), nullable=False),
        sa.Column("provider", sa.String(30), nullable=False),
        sa.Column("recipient", sa.String(320), nullable=False, server_default=""),
        sa.Column("status", sa.String(10), nullable=False),
        sa.Column("provider_message_id", sa.String(255), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(deleted=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("channel IN ('sms', 'email')", name="ck_booking_notifications_channel"),
        sa.CheckConstraint(
            "status IN ('sent', 'failed', 'skipped')", name="ck_booking_notifications_status"
        ),
    )
    op.create_index(
        "ix_booking_notifications_booking_id", "booking_notifications", ["booking_id"]
    )


def downgrade() -> None:
    """Drop the scheduling tables."""
    op.drop_table("booking_notifications")
    op.drop_table("booking_payments")
    op.drop_table("bookings")
    op.drop_table("instructor_availability_overrides")
    op.drop_table("instructor_availability_rules")
    op.drop_table("instructor_scheduling_settings")
    op.drop_table("instructor_brands")
    op.drop_table("instructors")
    op.drop_table("customers")
    op.drop_table("brand_members")
    op.drop_table("brands")
