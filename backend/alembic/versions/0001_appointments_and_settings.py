"""appointments and salon_settings

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


# The station count has no default: init_settings.py writes it from SALON_STATIONS
DEFAULT_SETTINGS = [
    ("max_daily_appointments", "30", "integer", "Maximum number of appointments per day"),
    ("working_hours_start", "09:00", "string", "Salon opening time"),
    ("working_hours_end", "18:00", "string", "Salon closing time"),
    ("slot_granularity_minutes", "30", "integer", "Step of the bookable slot grid"),
    ("capacity_warning_threshold", "80", "integer",
     "Show warning when capacity reaches this percentage"),
]


def upgrade() -> None:
    op.create_table(
        "appointments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("start_at", sa.DateTime(), nullable=False),
        sa.Column("end_at", sa.DateTime(), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'Pending'")),
        sa.Column("client_id", sa.Integer()),
        sa.Column("staff_id", sa.Integer()),
        sa.Column("notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
    )
    op.create_index("ix_appointments_status_start", "appointments", ["status", "start_at"])
    op.create_index("ix_appointments_day_status", "appointments", ["day", "status"])

    settings = op.create_table(
        "salon_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("key", sa.Text(), nullable=False, unique=True),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("type", sa.Text(), nullable=False, server_default=sa.text("'string'")),
        sa.Column("description", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
    )
    op.bulk_insert(settings, [
        {"key": key, "value": value, "type": value_type, "description": description}
        for key, value, value_type, description in DEFAULT_SETTINGS
    ])


def downgrade() -> None:
    op.drop_table("salon_settings")
    op.drop_index("ix_appointments_day_status", table_name="appointments")
    op.drop_index("ix_appointments_status_start", table_name="appointments")
    op.drop_table("appointments")
