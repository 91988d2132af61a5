"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Users / roles
    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("role", sa.String(50), nullable=True, server_default="guest"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_profiles_username", "profiles", ["username"], unique=True)

    # Cafés
    console_counts = [
        sa.Column(f"{name}_count", sa.Integer(), nullable=False, server_default="0")
        for name in ("ps5", "ps4", "xbox", "pc", "pool", "arcade", "snooker", "vr", "steering_wheel")
    ]
    op.create_table(
        "cafes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(200), nullable=False),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("city", sa.String(200), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("hourly_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("cover_url", sa.String(1000), nullable=True),
        sa.Column("opening_hours", sa.JSON(), nullable=True),
        *console_counts,
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("profiles.id"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_cafes_slug", "cafes", ["slug"], unique=True)
    op.create_index("ix_cafes_owner_id", "cafes", ["owner_id"])

    op.create_table(
        "console_pricing",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("cafe_id", sa.Integer(), sa.ForeignKey("cafes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("console_type", sa.String(20), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=True),
        sa.UniqueConstraint("cafe_id", "console_type", "quantity", "duration_minutes", name="uq_console_pricing_cell"),
        sa.CheckConstraint("price IS NULL OR price >= 0", name="ck_console_pricing_price_non_negative"),
    )
    op.create_index("ix_console_pricing_cafe_id", "console_pricing", ["cafe_id"])

    # Coupons
    op.create_table(
        "coupons",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("cafe_id", sa.Integer(), sa.ForeignKey("cafes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("discount_type", sa.String(20), nullable=False, server_default="percentage"),
        sa.Column("discount_value", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("max_discount_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("min_order_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("max_uses", sa.Integer(), nullable=True),
        sa.Column("uses_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=True),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("cafe_id", "code", name="uq_coupons_cafe_code"),
    )
    op.create_index("ix_coupons_cafe_id", "coupons", ["cafe_id"])

    # Bookings
    op.create_table(
        "bookings",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("cafe_id", sa.Integer(), sa.ForeignKey("cafes.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("subtotal_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("discount_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("coupon_id", sa.Integer(), sa.ForeignKey("coupons.id"), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("source", sa.String(20), nullable=False, server_default="online"),
        sa.Column("payment_mode", sa.String(20), nullable=True),
        sa.Column("uropay_order_id", sa.String(100), nullable=True),
        sa.Column("upi_reference", sa.String(100), nullable=True),
        sa.Column("customer_name", sa.String(200), nullable=True),
        sa.Column("customer_email", sa.String(255), nullable=True),
        sa.Column("customer_phone", sa.String(50), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_bookings_cafe_date", "bookings", ["cafe_id", "booking_date"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("ix_bookings_uropay_order_id", "bookings", ["uropay_order_id"])

    op.create_table(
        "booking_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("booking_id", sa.String(36), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("console_type", sa.String(20), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
    )
    op.create_index("ix_booking_items_booking_id", "booking_items", ["booking_id"])

    op.create_table(
        "coupon_usage",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("coupon_id", sa.Integer(), sa.ForeignKey("coupons.id", ondelete="CASCADE"), nullable=False),
        sa.Column("booking_id", sa.String(36), sa.ForeignKey("bookings.id"), nullable=True),
        sa.Column("customer_phone", sa.String(50), nullable=True),
        sa.Column("discount_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_coupon_usage_coupon_id", "coupon_usage", ["coupon_id"])

    # Memberships
    op.create_table(
        "membership_plans",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("cafe_id", sa.Integer(), sa.ForeignKey("cafes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("hours", sa.Numeric(6, 2), nullable=False, server_default="0"),
        sa.Column("validity_days", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("plan_type", sa.String(20), nullable=False, server_default="hourly_bundle"),
        sa.Column("console_type", sa.String(20), nullable=True),
        sa.Column("player_count", sa.String(10), nullable=False, server_default="single"),
        *_timestamps(),
    )
    op.create_index("ix_membership_plans_cafe_id", "membership_plans", ["cafe_id"])

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("cafe_id", sa.Integer(), sa.ForeignKey("cafes.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "membership_plan_id",
            sa.Integer(),
            sa.ForeignKey("membership_plans.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("customer_name", sa.String(200), nullable=False),
        sa.Column("customer_phone", sa.String(50), nullable=True),
        sa.Column("hours_purchased", sa.Numeric(6, 2), nullable=False),
        sa.Column("hours_remaining", sa.Numeric(6, 2), nullable=False),
        sa.Column("amount_paid", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_mode", sa.String(20), nullable=True),
        sa.Column("purchase_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expiry_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
    )
    op.create_index("ix_subscriptions_cafe_id", "subscriptions", ["cafe_id"])

    # Cash drawer
    op.create_table(
        "cash_drawer_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("cafe_id", sa.Integer(), sa.ForeignKey("cafes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("record_date", sa.Date(), nullable=False),
        sa.Column("opening_balance", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("amount_collected", sa.Numeric(10, 2), nullable=True),
        sa.Column("change_left", sa.Numeric(10, 2), nullable=True),
        sa.Column("collection_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("collected_by", sa.Text(), nullable=True),
        sa.Column("expected_closing", sa.Numeric(10, 2), nullable=True),
        sa.Column("actual_closing", sa.Numeric(10, 2), nullable=True),
        sa.Column("has_discrepancy", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("discrepancy_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("discrepancy_note", sa.Text(), nullable=True),
        sa.Column("closing_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("closing_verified_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("cafe_id", "record_date", name="uq_cash_drawer_cafe_date"),
    )
    op.create_index("ix_cash_drawer_records_cafe_id", "cash_drawer_records", ["cafe_id"])

    # Operations
    op.create_table(
        "audit_log_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("user_name", sa.String(200), nullable=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=True),
        sa.Column("entity_id", sa.String(50), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_audit_log_entries_user_id", "audit_log_entries", ["user_id"])
    op.create_index("ix_audit_log_entries_action", "audit_log_entries", ["action"])
    op.create_index("ix_audit_log_entries_entity_type", "audit_log_entries", ["entity_type"])
    op.create_index("ix_audit_log_entries_created_at", "audit_log_entries", ["created_at"])

    op.create_table(
        "payment_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("webhook_id", sa.String(100), nullable=True, unique=True),
        sa.Column("environment", sa.String(20), nullable=True),
        sa.Column("reference_number", sa.String(100), nullable=True),
        sa.Column("amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("payer_name", sa.String(200), nullable=True),
        sa.Column("vpa", sa.String(200), nullable=True),
        sa.Column("raw_payload", sa.Text(), nullable=True),
        sa.Column("received_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_payment_logs_reference_number", "payment_logs", ["reference_number"])


def downgrade() -> None:
    op.drop_table("payment_logs")
    op.drop_table("audit_log_entries")
    op.drop_table("cash_drawer_records")
    op.drop_table("subscriptions")
    op.drop_table("membership_plans")
    op.drop_table("coupon_usage")
    op.drop_table("booking_items")
    op.drop_table("bookings")
    op.drop_table("coupons")
    op.drop_table("console_pricing")
    op.drop_table("cafes")
    op.drop_table("profiles")
