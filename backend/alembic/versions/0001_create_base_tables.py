"""create employee verification tables"""
from alembic import op
import sqlalchemy as sa

revision = "0001_create_base_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "admin_users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("last_login", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_admin_users_email", "admin_users", ["email"], unique=True)

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("employee_code", sa.String(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("dbs_number", sa.String(), nullable=False),
        sa.Column("dbs_expiry_date", sa.DateTime(), nullable=True),
        sa.Column("position", sa.String(), nullable=True),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("employment_type", sa.String(), nullable=False, server_default="permanent"),
        sa.Column("valid_until_date", sa.DateTime(), nullable=True),
        sa.Column("photo_url", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_suspended", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_employees_employee_code", "employees", ["employee_code"], unique=True)
    op.create_index("ix_employees_full_name", "employees", ["full_name"])
    op.create_index("ix_employees_dbs_expiry_date", "employees", ["dbs_expiry_date"])

    op.create_table(
        "verifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "employee_id",
            sa.Integer(),
            sa.ForeignKey("employees.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("verified_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("verifier_ip", sa.String(), nullable=True),
    )
    op.create_index("ix_verifications_employee_id", "verifications", ["employee_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "employee_id",
            sa.Integer(),
            sa.ForeignKey("employees.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("sent_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("details", sa.Text(), nullable=True),
    )
    op.create_index(
        "ix_notifications_employee_type_sent",
        "notifications",
        ["employee_id", "type", "sent_at"],
    )

    op.create_table(
        "scheduler_state",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("last_dbs_check_date", sa.Date(), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("scheduler_state")
    op.drop_index("ix_notifications_employee_type_sent", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_verifications_employee_id", table_name="verifications")
    op.drop_table("verifications")
    op.drop_index("ix_employees_dbs_expiry_date", table_name="employees")
    op.drop_index("ix_employees_full_name", table_name="employees")
    op.drop_index("ix_employees_employee_code", table_name="employees")
    op.drop_table("employees")
    op.drop_index("ix_admin_users_email", table_name="admin_users")
    op.drop_table("admin_users")
