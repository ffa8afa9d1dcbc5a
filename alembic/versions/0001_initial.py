"""initial

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

CONFIRMED_ONLY = sa.text("booking_status = 'Confirmed'")

def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("phone", sa.String(length=40), nullable=False, server_default=""),
        sa.Column("role", sa.String(length=30), nullable=False, server_default="customer"),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"], unique=False)

    op.create_table(
        "routes",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("origin", sa.String(length=120), nullable=False),
        sa.Column("destination", sa.String(length=120), nullable=False),
        sa.Column("duration", sa.String(length=40), nullable=False, server_default=""),
        sa.Column("distance_km", sa.Integer(), nullable=True),
        sa.Column("base_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_routes_origin", "routes", ["origin"], unique=False)
    op.create_index("ix_routes_destination", "routes", ["destination"], unique=False)

    op.create_table(
        "buses",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("bus_number", sa.String(length=30), nullable=False),
        sa.Column("bus_type", sa.String(length=20), nullable=False, server_default="Non-AC"),
        sa.Column("total_seats", sa.Integer(), nullable=False),
        sa.Column("layout_type", sa.String(length=10), nullable=False, server_default="2x2"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_buses_bus_number", "buses", ["bus_number"], unique=True)

    op.create_table(
        "schedules",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("route_id", sa.String(length=36), nullable=False),
        sa.Column("bus_id", sa.String(length=36), nullable=False),
        sa.Column("travel_date", sa.Date(), nullable=False),
        sa.Column("departure_time", sa.Time(), nullable=False),
        sa.Column("arrival_time", sa.Time(), nullable=False),
        sa.Column("available_seats", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Scheduled"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("available_seats >= 0", name="ck_schedules_available_seats_non_negative"),
    )
    op.create_index("ix_schedules_route_id", "schedules", ["route_id"], unique=False)
    op.create_index("ix_schedules_bus_id", "schedules", ["bus_id"], unique=False)
    op.create_index("ix_schedules_travel_date", "schedules", ["travel_date"], unique=False)
    op.create_index("ix_schedules_status", "schedules", ["status"], unique=False)

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("booking_uuid", sa.String(length=36), nullable=False),
        sa.Column("schedule_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("seat_number", sa.String(length=8), nullable=False),
        sa.Column("passenger_name", sa.String(length=200), nullable=False),
        sa.Column("passenger_phone", sa.String(length=40), nullable=False),
        sa.Column("passenger_email", sa.String(length=320), nullable=True),
        sa.Column("booking_status", sa.String(length=20), nullable=False, server_default="Confirmed"),
        sa.Column("amount_paid", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("payment_status", sa.String(length=20), nullable=False, server_default="Paid"),
        sa.Column("cancellation_reason", sa.String(length=255), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("booked_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_bookings_booking_uuid", "bookings", ["booking_uuid"], unique=True)
    op.create_index("ix_bookings_schedule_id", "bookings", ["schedule_id"], unique=False)
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"], unique=False)
    op.create_index("ix_bookings_booking_status", "bookings", ["booking_status"], unique=False)
    op.create_index("ix_bookings_booked_at", "bookings", ["booked_at"], unique=False)
    # one Confirmed booking per seat per schedule
    op.create_index(
        "uq_bookings_schedule_seat_confirmed",
        "bookings",
        ["schedule_id", "seat_number"],
        unique=True,
        postgresql_where=CONFIRMED_ONLY,
        sqlite_where=CONFIRMED_ONLY,
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("actor_user_id", sa.String(length=36), nullable=False),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("entity_type", sa.String(length=40), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=False),
        sa.Column("details_json", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_logs_actor_user_id", "audit_logs", ["actor_user_id"], unique=False)
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"], unique=False)
    op.create_index("ix_audit_logs_entity_type", "audit_logs", ["entity_type"], unique=False)
    op.create_index("ix_audit_logs_entity_id", "audit_logs", ["entity_id"], unique=False)

    op.create_table(
        "email_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("to_email", sa.String(length=320), nullable=False),
        sa.Column("bcc_email", sa.String(length=320), nullable=False, server_default=""),
        sa.Column("subject", sa.String(length=200), nullable=False),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="queued"),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("related_booking_ref", sa.String(length=36), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_email_logs_to_email", "email_logs", ["to_email"], unique=False)

def downgrade() -> None:
    op.drop_table("email_logs")
    op.drop_table("audit_logs")
    op.drop_index("uq_bookings_schedule_seat_confirmed", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("schedules")
    op.drop_table("buses")
    op.drop_table("routes")
    op.drop_table("users")
