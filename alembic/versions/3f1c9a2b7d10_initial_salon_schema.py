"""initial salon schema

Revision ID: 3f1c9a2b7d10
Revises:
Create Date: 2026-10-18 10:12:40.518221

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1c9a2b7d10"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ACTIVE_SLOT_INDEX = "ux_appt_prof_start_active"


def _timestamps(updated: bool = True) -> list[sa.Column]:
    cols = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        )
    ]
    if updated:
        cols.append(
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                server_default=sa.text("CURRENT_TIMESTAMP"),
                nullable=False,
            )
        )
    return cols


def upgrade() -> None:
    bind = op.get_bind()

    # 1) clients (tenants)
    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.Integer(), nullable=False, unique=True),
        sa.Column("rif", sa.String(length=40), nullable=False, unique=True),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("denomination", sa.String(length=160), nullable=False, server_default=""),
        sa.Column("phone", sa.String(length=40), nullable=False, server_default=""),
        sa.Column("email", sa.String(length=320), nullable=False, server_default=""),
        sa.Column("address", sa.String(length=300), nullable=False, server_default=""),
        sa.Column(
            "communication_channels", sa.JSON(), nullable=False, server_default="[]"
        ),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("TRUE")),
        *_timestamps(),
    )

    # 2) users (role_enum é criado junto com a tabela)
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("phone", sa.String(length=40), nullable=False, server_default=""),
        sa.Column(
            "role",
            sa.Enum("user", "pro", "owner", "admin", "staff", name="role_enum"),
            nullable=False,
            server_default="user",
        ),
        sa.Column(
            "client_id",
            sa.Integer(),
            sa.ForeignKey("clients.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("TRUE")),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_client_id", "users", ["client_id"])

    # 3) services
    op.create_table(
        "services",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "client_id",
            sa.Integer(),
            sa.ForeignKey("clients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("price", sa.Float(), nullable=False, server_default="0"),
        sa.Column("slot", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("TRUE")),
        *_timestamps(updated=False),
        sa.CheckConstraint("price >= 0", name="ck_service_price"),
        sa.CheckConstraint("slot >= 1", name="ck_service_slot"),
    )
    op.create_index("ix_services_client_id", "services", ["client_id"])

    # 4) professionals + serviços atendidos + agenda semanal
    op.create_table(
        "professionals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "client_id",
            sa.Integer(),
            sa.ForeignKey("clients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("TRUE")),
        *_timestamps(),
        sa.UniqueConstraint("client_id", "user_id", name="uq_professional_client_user"),
    )
    op.create_index("ix_professionals_client_id", "professionals", ["client_id"])
    op.create_index("ix_professionals_user_id", "professionals", ["user_id"])

    op.create_table(
        "professional_services",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "professional_id",
            sa.Integer(),
            sa.ForeignKey("professionals.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "service_id",
            sa.Integer(),
            sa.ForeignKey("services.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("price", sa.Float(), nullable=False, server_default="0"),
        sa.Column("slot_count", sa.Integer(), nullable=False, server_default="1"),
        sa.UniqueConstraint("professional_id", "service_id", name="uq_prof_service"),
        sa.CheckConstraint("price >= 0", name="ck_prof_service_price"),
        sa.CheckConstraint("slot_count >= 1", name="ck_prof_service_slots"),
    )

    op.create_table(
        "schedule_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "professional_id",
            sa.Integer(),
            sa.ForeignKey("professionals.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("weekday", sa.Integer(), nullable=False),
        sa.Column("starts", sa.Time(), nullable=False),
        sa.Column("ends", sa.Time(), nullable=False),
        sa.CheckConstraint("weekday >= 1 AND weekday <= 7", name="ck_schedule_weekday"),
        sa.CheckConstraint("ends > starts", name="ck_schedule_time_order"),
    )
    op.create_index(
        "ix_schedule_professional_weekday",
        "schedule_entries",
        ["professional_id", "weekday"],
    )

    # 5) appointments
    op.create_table(
        "appointments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=6), nullable=False),
        sa.Column(
            "client_id",
            sa.Integer(),
            sa.ForeignKey("clients.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "professional_id",
            sa.Integer(),
            sa.ForeignKey("professionals.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("slots", sa.Integer(), nullable=False),
        sa.Column("slot_start", sa.Integer(), nullable=False),
        sa.Column("slot_end", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="scheduled"),
        sa.Column("amount", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=False, server_default=""),
        sa.Column("type", sa.String(length=40), nullable=True),
        sa.Column("place_address", sa.JSON(), nullable=False, server_default="{}"),
        sa.Column("place_lng", sa.Float(), nullable=False),
        sa.Column("place_lat", sa.Float(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("TRUE")),
        sa.Column(
            "reminder_sent", sa.Boolean(), nullable=False, server_default=sa.text("FALSE")
        ),
        *_timestamps(),
        sa.CheckConstraint("ends_at > starts_at", name="ck_appt_time_order"),
        sa.CheckConstraint("slots >= 1", name="ck_appt_slots"),
        sa.CheckConstraint("slot_end - slot_start = slots", name="ck_appt_slot_span"),
    )
    op.create_index("uq_appointments_code", "appointments", ["code"], unique=True)
    op.create_index("ix_appt_client_id", "appointments", ["client_id"])
    op.create_index(
        "ix_appt_professional_day", "appointments", ["professional_id", "starts_at"]
    )
    op.create_index("ix_appt_created_at", "appointments", ["created_at"])
    # só um agendamento ativo por (profissional, início)
    op.create_index(
        ACTIVE_SLOT_INDEX,
        "appointments",
        ["professional_id", "starts_at"],
        unique=True,
        postgresql_where=sa.text("active"),
        sqlite_where=sa.text("active = 1"),
    )

    op.create_table(
        "appointment_services",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "appointment_id",
            sa.Integer(),
            sa.ForeignKey("appointments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "service_id",
            sa.Integer(),
            sa.ForeignKey("services.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("price", sa.Float(), nullable=True),
    )
    op.create_index(
        "ix_appointment_services_appointment_id", "appointment_services", ["appointment_id"]
    )

    op.create_table(
        "appointment_statuses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "appointment_id",
            sa.Integer(),
            sa.ForeignKey("appointments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("comment", sa.String(length=300), nullable=True),
    )
    op.create_index(
        "ix_appointment_statuses_appointment_id", "appointment_statuses", ["appointment_id"]
    )

    # 6) audit_logs
    ip_type = postgresql.INET() if bind.dialect.name == "postgresql" else sa.String(45)
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "client_id",
            sa.Integer(),
            sa.ForeignKey("clients.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("entity", sa.String(length=80), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("timestamp_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ip", ip_type, nullable=True),
    )
    op.create_index("ix_audit_timestamp_utc", "audit_logs", ["timestamp_utc"])
    op.create_index("ix_audit_entity", "audit_logs", ["entity", "entity_id"])
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_client_id", "audit_logs", ["client_id"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("appointment_statuses")
    op.drop_table("appointment_services")
    op.drop_index(ACTIVE_SLOT_INDEX, table_name="appointments")
    op.drop_table("appointments")
    op.drop_table("schedule_entries")
    op.drop_table("professional_services")
    op.drop_table("professionals")
    op.drop_table("services")
    op.drop_table("users")
    op.drop_table("clients")
    sa.Enum(name="role_enum").drop(op.get_bind(), checkfirst=True)
