"""Initial vision POS schema.

Revision ID: 0001
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

JSONB_TYPE = postgresql.JSONB().with_variant(sa.JSON(), "sqlite")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def _money(name: str) -> sa.Column:
    return sa.Column(name, sa.Numeric(12, 2), nullable=False, server_default="0")


def _fk(name: str, target: str, *, ondelete: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.Uuid(as_uuid=True),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False, unique=True),
        *_timestamps(),
    )

    op.create_table(
        "locations",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _fk("account_id", "accounts.id", ondelete="CASCADE"),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=False),
        sa.Column("tax_rate", sa.Numeric(6, 4)),
        sa.Column("address_line1", sa.String(length=255)),
        sa.Column("address_line2", sa.String(length=255)),
        sa.Column("city", sa.String(length=120)),
        sa.Column("state", sa.String(length=120)),
        sa.Column("postal_code", sa.String(length=32)),
        sa.Column("phone_number", sa.String(length=32)),
        *_timestamps(),
    )

    user_role_enum = sa.Enum(
        "ADMIN", "MANAGER", "SALES_ASSOCIATE", "OPTOMETRIST", name="userrole"
    )
    user_status_enum = sa.Enum("INVITED", "ACTIVE", "SUSPENDED", name="userstatus")

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _fk("account_id", "accounts.id", ondelete="CASCADE"),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("role", user_role_enum, nullable=False),
        sa.Column("status", user_status_enum, nullable=False, server_default="INVITED"),
        *_timestamps(),
    )
    op.create_index("ix_users_account_id", "users", ["account_id"])

    op.create_table(
        "customers",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _fk("account_id", "accounts.id", ondelete="CASCADE"),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=320)),
        sa.Column("phone_number", sa.String(length=32)),
        sa.Column("date_of_birth", sa.Date()),
        sa.Column("insurance_carrier", sa.String(length=120)),
        sa.Column("insurance_member_id", sa.String(length=512)),
        sa.Column("insurance_group", sa.String(length=120)),
        sa.Column("insurance_benefits", JSONB_TYPE, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_customers_account_id", "customers", ["account_id"])

    quote_layer_enum = sa.Enum("EXAM", "EYEGLASSES", "CONTACTS", name="quotelayer")
    op.create_table(
        "catalog_options",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _fk("account_id", "accounts.id", ondelete="CASCADE"),
        sa.Column("catalog_version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("layer", quote_layer_enum, nullable=False),
        sa.Column("category", sa.String(length=64), nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "insurance_covered", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("copay", sa.Numeric(12, 2)),
        sa.Column("duration_minutes", sa.Integer()),
        sa.Column("rebate_amount", sa.Numeric(12, 2)),
        sa.Column("note", sa.String(length=255)),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint(
            "account_id",
            "catalog_version",
            "layer",
            "code",
            name="uq_catalog_option_code",
        ),
    )
    op.create_index("ix_catalog_options_account_id", "catalog_options", ["account_id"])

    quote_status_enum = sa.Enum(
        "BUILDING",
        "DRAFT",
        "PRESENTED",
        "SIGNED",
        "COMPLETED",
        "CANCELLED",
        "EXPIRED",
        name="quotestatus",
    )
    transition_category_enum = sa.Enum(
        "USER_ACTION", "SYSTEM_ACTION", "BUSINESS_RULE", name="transitioncategory"
    )
    discount_type_enum = sa.Enum(
        "SAME_DAY_50", "THIRTY_DAY_30", "MANAGER_OVERRIDE", name="secondpairdiscounttype"
    )

    op.create_table(
        "quotes",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _fk("account_id", "accounts.id", ondelete="CASCADE"),
        _fk("location_id", "locations.id", ondelete="RESTRICT"),
        _fk("customer_id", "customers.id", ondelete="CASCADE"),
        _fk("created_by_id", "users.id", ondelete="SET NULL", nullable=True),
        sa.Column("status", quote_status_enum, nullable=False, server_default="BUILDING"),
        sa.Column("revision", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("catalog_version", sa.String(length=64), nullable=False),
        sa.Column("exam_services", JSONB_TYPE, nullable=False),
        sa.Column("eyeglasses", JSONB_TYPE, nullable=False),
        sa.Column("contacts", JSONB_TYPE, nullable=False),
        sa.Column("pricing_breakdown", JSONB_TYPE, nullable=False),
        sa.Column("insurance_carrier", sa.String(length=120)),
        sa.Column("insurance_member_id", sa.String(length=512)),
        sa.Column("insurance_benefits", JSONB_TYPE, nullable=False),
        _money("subtotal"),
        _money("discount"),
        _money("second_pair_discount"),
        sa.Column("tax_rate", sa.Numeric(6, 4), nullable=False, server_default="0"),
        _money("tax"),
        _money("insurance_discount"),
        _money("total"),
        _money("patient_responsibility"),
        _money("manual_discount"),
        sa.Column(
            "is_second_pair", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("second_pair_type", discount_type_enum),
        sa.Column("second_pair_percent", sa.Numeric(5, 2)),
        sa.Column(
            "is_patient_owned_frame",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column(
            "last_activity_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("presented_at", sa.DateTime(timezone=True)),
        sa.Column("signed_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("expired_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index("ix_quotes_account_id", "quotes", ["account_id"])
    op.create_index("ix_quotes_location_id", "quotes", ["location_id"])
    op.create_index("ix_quotes_customer_id", "quotes", ["customer_id"])
    op.create_index("ix_quotes_status", "quotes", ["status"])
    op.create_index("ix_quotes_completed_at", "quotes", ["completed_at"])

    op.create_table(
        "quote_status_events",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _fk("quote_id", "quotes.id", ondelete="CASCADE"),
        sa.Column("from_status", quote_status_enum),
        sa.Column("to_status", quote_status_enum, nullable=False),
        sa.Column("category", transition_category_enum, nullable=False),
        sa.Column("reason", sa.String(length=1024)),
        _fk("user_id", "users.id", ondelete="SET NULL", nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "ix_quote_status_events_quote_id", "quote_status_events", ["quote_id"]
    )

    op.create_table(
        "second_pairs",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _fk("account_id", "accounts.id", ondelete="CASCADE"),
        _fk("original_quote_id", "quotes.id", ondelete="CASCADE"),
        _fk("second_pair_quote_id", "quotes.id", ondelete="CASCADE"),
        _fk("customer_id", "customers.id", ondelete="CASCADE"),
        _fk("user_id", "users.id", ondelete="SET NULL", nullable=True),
        _fk("location_id", "locations.id", ondelete="CASCADE"),
        sa.Column("discount_type", discount_type_enum, nullable=False),
        sa.Column("discount_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("discount_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("original_total", sa.Numeric(12, 2), nullable=False),
        sa.Column("final_total", sa.Numeric(12, 2), nullable=False),
        sa.Column("original_purchase_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "second_pair_purchase_date", sa.DateTime(timezone=True), nullable=False
        ),
        sa.Column("days_after_original", sa.Integer(), nullable=False),
        sa.Column(
            "manager_override", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("override_reason", sa.String(length=1024)),
        sa.Column("override_by", sa.String(length=255)),
        *_timestamps(),
        sa.UniqueConstraint("original_quote_id", name="uq_second_pairs_original"),
        sa.UniqueConstraint("second_pair_quote_id", name="uq_second_pairs_quote"),
    )
    op.create_index("ix_second_pairs_account_id", "second_pairs", ["account_id"])
    op.create_index("ix_second_pairs_customer_id", "second_pairs", ["customer_id"])
    op.create_index("ix_second_pairs_location_id", "second_pairs", ["location_id"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _fk("account_id", "accounts.id", ondelete="SET NULL", nullable=True),
        _fk("user_id", "users.id", ondelete="SET NULL", nullable=True),
        sa.Column("event_type", sa.String(length=120), nullable=False),
        sa.Column("description", sa.String(length=1024)),
        sa.Column("payload", sa.JSON()),
        sa.Column("ip_address", sa.String(length=64)),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )


def downgrade() -> None:
    op.drop_table("audit_events")

    op.drop_index("ix_second_pairs_location_id", table_name="second_pairs")
    op.drop_index("ix_second_pairs_customer_id", table_name="second_pairs")
    op.drop_index("ix_second_pairs_account_id", table_name="second_pairs")
    op.drop_table("second_pairs")

    op.drop_index("ix_quote_status_events_quote_id", table_name="quote_status_events")
    op.drop_table("quote_status_events")

    for name in (
        "ix_quotes_completed_at",
        "ix_quotes_status",
        "ix_quotes_customer_id",
        "ix_quotes_location_id",
        "ix_quotes_account_id",
    ):
        op.drop_index(name, table_name="quotes")
    op.drop_table("quotes")
    sa.Enum(name="secondpairdiscounttype").drop(op.get_bind(), checkfirst=False)
    sa.Enum(name="transitioncategory").drop(op.get_bind(), checkfirst=False)
    sa.Enum(name="quotestatus").drop(op.get_bind(), checkfirst=False)

    op.drop_index("ix_catalog_options_account_id", table_name="catalog_options")
    op.drop_table("catalog_options")
    sa.Enum(name="quotelayer").drop(op.get_bind(), checkfirst=False)

    op.drop_index("ix_customers_account_id", table_name="customers")
    op.drop_table("customers")

    op.drop_index("ix_users_account_id", table_name="users")
    op.drop_table("users")
    sa.Enum(name="userstatus").drop(op.get_bind(), checkfirst=False)
    sa.Enum(name="userrole").drop(op.get_bind(), checkfirst=False)

    op.drop_table("locations")
    op.drop_table("accounts")
