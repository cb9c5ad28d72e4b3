"""Initial field-service schema: tenancy, catalogs, estimates, tickets, projects

Revision ID: 0a1f3c5e7b21
Revises:
Create Date: 2026-10-18 09:12:44.318204

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0a1f3c5e7b21'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
    ]


def upgrade():
    # --- tenancy ---
    op.create_table(
        "orgs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("org_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["org_id"], ["orgs.id"], name="fk_users_org", ondelete="RESTRICT"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_org_id", "users", ["org_id"])

    op.create_table(
        "org_memberships",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="member"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["org_id"], ["orgs.id"], name="fk_org_memberships_org", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_org_memberships_user", ondelete="CASCADE"),
        sa.CheckConstraint("role IN ('owner','admin','member')", name="ck_org_memberships_role_valid"),
        sa.UniqueConstraint("org_id", "user_id", name="uq_org_memberships_org_user"),
    )
    op.create_index("ix_org_memberships_org_id", "org_memberships", ["org_id"])
    op.create_index("ix_org_memberships_user_id", "org_memberships", ["user_id"])

    # --- catalogs ---
    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["org_id"], ["orgs.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_customers_org_id", "customers", ["org_id"])
    op.execute("CREATE INDEX IF NOT EXISTS ix_customers_lower_name ON customers ((lower(name)));")

    op.create_table(
        "parts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("part_number", sa.String(length=64), nullable=True),
        sa.Column("cost", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["org_id"], ["orgs.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_parts_org_id", "parts", ["org_id"])
    op.execute("CREATE INDEX IF NOT EXISTS ix_parts_lower_name ON parts ((lower(name)));")

    op.create_table(
        "equipment",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("manufacturer", sa.String(length=120), nullable=False),
        sa.Column("model_number", sa.String(length=120), nullable=False),
        sa.Column("serial_number", sa.String(length=120), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["org_id"], ["orgs.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
    )
    op.create_index("ix_equipment_org_id", "equipment", ["org_id"])
    op.create_index("ix_equipment_customer_id", "equipment", ["customer_id"])

    op.create_table(
        "labor_rate_profiles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False, server_default="Default"),
        sa.Column("standard_rate", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("after_hours_rate", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("emergency_rate", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["org_id"], ["orgs.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_labor_rate_profiles_org_active", "labor_rate_profiles", ["org_id", "is_active"])

    # --- conversion targets (before estimates: estimates reference them) ---
    op.create_table(
        "tickets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("ticket_number", sa.String(length=32), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("ticket_type", sa.String(length=10), nullable=False, server_default="SVC"),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="open"),
        sa.Column("priority", sa.String(length=16), nullable=False, server_default="normal"),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("assigned_to", sa.Integer(), nullable=True),
        sa.Column("source_estimate_id", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["org_id"], ["orgs.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.ForeignKeyConstraint(["assigned_to"], ["users.id"]),
        sa.UniqueConstraint("ticket_number", name="uq_tickets_ticket_number"),
    )
    op.create_index("ix_tickets_org_id", "tickets", ["org_id"])
    op.create_index("ix_tickets_customer_id", "tickets", ["customer_id"])
    op.create_index("ix_tickets_source_estimate_id", "tickets", ["source_estimate_id"])

    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="planning"),
        sa.Column("budget_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("project_manager_id", sa.Integer(), nullable=True),
        sa.Column("source_estimate_id", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["org_id"], ["orgs.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["project_manager_id"], ["users.id"]),
    )
    op.create_index("ix_projects_org_id", "projects", ["org_id"])
    op.create_index("ix_projects_customer_id", "projects", ["customer_id"])
    op.create_index("ix_projects_source_estimate_id", "projects", ["source_estimate_id"])

    # --- estimates ---
    op.create_table(
        "estimates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("estimate_number", sa.String(length=32), nullable=True),
        sa.Column("job_title", sa.String(length=255), nullable=False),
        sa.Column("job_description", sa.Text(), nullable=True),
        sa.Column("site_location", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="draft"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("terms_conditions", sa.Text(), nullable=True),
        sa.Column("estimate_date", sa.Date(), nullable=True),
        sa.Column("expiration_date", sa.Date(), nullable=True),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("discount_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("tax_rate", sa.Numeric(6, 3), nullable=False, server_default="0"),
        sa.Column("tax_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("sent_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("viewed_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("accepted_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("conversion_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("converted_to_ticket_id", sa.Integer(), nullable=True),
        sa.Column("converted_to_project_id", sa.Integer(), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["org_id"], ["orgs.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.ForeignKeyConstraint(["converted_to_ticket_id"], ["tickets.id"]),
        sa.ForeignKeyConstraint(["converted_to_project_id"], ["projects.id"]),
        sa.UniqueConstraint("estimate_number", name="uq_estimates_estimate_number"),
        sa.CheckConstraint(
            "status IN ('draft','sent','viewed','accepted','rejected','converted')",
            name="ck_estimates_status_valid",
        ),
    )
    op.create_index("ix_estimates_org_id", "estimates", ["org_id"])
    op.create_index("ix_estimates_customer_id", "estimates", ["customer_id"])
    op.create_index("ix_estimates_org_status", "estimates", ["org_id", "status"])
    op.create_index("ix_estimates_updated_at", "estimates", ["updated_at"])

    op.create_table(
        "estimate_line_items",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("estimate_id", sa.Integer(), nullable=False),
        sa.Column("line_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("item_type", sa.String(length=20), nullable=False, server_default="labor"),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("quantity", sa.Numeric(12, 2), nullable=False, server_default="1"),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("line_total", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("part_id", sa.Integer(), nullable=True),
        sa.Column("equipment_id", sa.Integer(), nullable=True),
        sa.Column("labor_hours", sa.Numeric(8, 2), nullable=True),
        sa.Column("labor_rate", sa.Numeric(12, 2), nullable=True),
        sa.ForeignKeyConstraint(["estimate_id"], ["estimates.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["part_id"], ["parts.id"]),
        sa.ForeignKeyConstraint(["equipment_id"], ["equipment.id"]),
        sa.CheckConstraint(
            "item_type IN ('labor','parts','equipment','discount','other')",
            name="ck_estimate_line_items_type_valid",
        ),
    )
    op.create_index(
        "ix_estimate_line_items_estimate_order", "estimate_line_items", ["estimate_id", "line_order"]
    )


def downgrade():
    op.drop_index("ix_estimate_line_items_estimate_order", table_name="estimate_line_items")
    op.drop_table("estimate_line_items")

    for ix in ("ix_estimates_updated_at", "ix_estimates_org_status", "ix_estimates_customer_id", "ix_estimates_org_id"):
        op.drop_index(ix, table_name="estimates")
    op.drop_table("estimates")

    for ix in ("ix_projects_source_estimate_id", "ix_projects_customer_id", "ix_projects_org_id"):
        op.drop_index(ix, table_name="projects")
    op.drop_table("projects")

    for ix in ("ix_tickets_source_estimate_id", "ix_tickets_customer_id", "ix_tickets_org_id"):
        op.drop_index(ix, table_name="tickets")
    op.drop_table("tickets")

    op.drop_index("ix_labor_rate_profiles_org_active", table_name="labor_rate_profiles")
    op.drop_table("labor_rate_profiles")

    op.drop_index("ix_equipment_customer_id", table_name="equipment")
    op.drop_index("ix_equipment_org_id", table_name="equipment")
    op.drop_table("equipment")

    op.execute("DROP INDEX IF EXISTS ix_parts_lower_name;")
    op.drop_index("ix_parts_org_id", table_name="parts")
    op.drop_table("parts")

    op.execute("DROP INDEX IF EXISTS ix_customers_lower_name;")
    op.drop_index("ix_customers_org_id", table_name="customers")
    op.drop_table("customers")

    op.drop_index("ix_org_memberships_user_id", table_name="org_memberships")
    op.drop_index("ix_org_memberships_org_id", table_name="org_memberships")
    op.drop_table("org_memberships")

    op.drop_index("ix_users_org_id", table_name="users")
    op.drop_table("users")

    op.drop_table("orgs")
