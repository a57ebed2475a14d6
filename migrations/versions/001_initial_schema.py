"""Initial schema: vehicles, slot locks and bookings.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── vehicles ──────────────────────────────────────────────────────
    op.create_table(
        "vehicles",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column(
            "type",
            sa.Enum("bike", "scooter", "car", name="vehicletype"),
            nullable=False,
        ),
        sa.Column("price_per_day", sa.Integer, nullable=False),
        sa.Column("location", sa.String(255), nullable=False, server_default=""),
        sa.Column("is_available", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "status",
            sa.Enum("available", "booked", "maintenance", name="vehiclestatus"),
            nullable=False,
            server_default="available",
        ),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("owner_name", sa.String(120), nullable=True),
        sa.Column("total_bookings", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_earnings", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("price_per_day > 0", name="ck_vehicles_price_positive"),
    )
    op.create_index("idx_vehicles_owner", "vehicles", ["owner_id"])
    op.create_index("idx_vehicles_available", "vehicles", ["is_available"])

    # ── slot_locks ────────────────────────────────────────────────────
    op.create_table(
        "slot_locks",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("slot_key", sa.String(64), nullable=False),
        sa.Column(
            "vehicle_id", sa.String(32), sa.ForeignKey("vehicles.id"), nullable=False
        ),
        sa.Column("iso_date", sa.Date, nullable=False),
        sa.Column("holder_id", sa.String(64), nullable=False),
        sa.Column("booking_id", sa.String(32), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column("voided_at", sa.DateTime(timezone=True), nullable=True),
    )
    # At most one live lock per vehicle-day; voided rows are kept for audit
    op.create_index(
        "uq_slot_locks_active",
        "slot_locks",
        ["vehicle_id", "iso_date"],
        unique=True,
        postgresql_where=sa.text("voided_at IS NULL"),
    )
    op.create_index("idx_slot_locks_booking", "slot_locks", ["booking_id"])

    # ── bookings ──────────────────────────────────────────────────────
    op.create_table(
        "bookings",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column(
            "vehicle_id", sa.String(32), sa.ForeignKey("vehicles.id"), nullable=False
        ),
        sa.Column("renter_id", sa.String(64), nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=False),
        sa.Column("duration", sa.String(32), nullable=False),
        sa.Column("pickup_time", sa.String(16), nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("total_amount", sa.Integer, nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "upcoming",
                "active",
                "completed",
                "cancelled",
                name="bookingstatus",
            ),
            nullable=False,
            server_default="upcoming",
        ),
        sa.Column("slot_ids", sa.JSON, nullable=False),
        sa.Column("idempotency_key", sa.String(64), unique=True, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("start_date <= end_date", name="ck_bookings_range"),
    )
    op.create_index("idx_bookings_status", "bookings", ["status"])
    op.create_index("idx_bookings_renter", "bookings", ["renter_id"])
    op.create_index("idx_bookings_owner", "bookings", ["owner_id"])
    op.create_index("idx_bookings_vehicle", "bookings", ["vehicle_id"])


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("slot_locks")
    op.drop_table("vehicles")
    op.execute("DROP TYPE IF EXISTS bookingstatus")
    op.execute("DROP TYPE IF EXISTS vehiclestatus")
    op.execute("DROP TYPE IF EXISTS vehicletype")
