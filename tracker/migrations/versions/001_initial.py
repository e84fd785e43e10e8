"""Initial tracker schema.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-16

"""
from alembic import op
import sqlalchemy as sa

revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Opportunity
    op.create_table(
        "opportunity",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(300), nullable=False),
        sa.Column("account_name", sa.String(300)),
        sa.Column("owner_name", sa.String(200)),
        sa.Column("stage_name", sa.String(100)),
        sa.Column("subscription_start_date", sa.Date),
        sa.Column("close_date", sa.Date),
        sa.Column("has_services_flag", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("amount", sa.Float),
        sa.Column("services_forecast", sa.Float),
        sa.Column("forecast_category", sa.String(50)),
        *_timestamps(),
    )

    # Disposition (one per opportunity)
    op.create_table(
        "disposition",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("opportunity_id", sa.Uuid(), sa.ForeignKey("opportunity.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="Not Reviewed"),
        sa.Column("notes", sa.Text, nullable=False, server_default=""),
        sa.Column("reason", sa.Text),
        sa.Column("services_amount_override", sa.Float),
        sa.Column("forecast_category_override", sa.String(50)),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("last_updated_by_user_id", sa.String(100)),
        sa.Column("last_updated_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index("ix_disposition_opportunity_id", "disposition", ["opportunity_id"], unique=True)

    # Action items
    op.create_table(
        "action_item",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("opportunity_id", sa.Uuid(), sa.ForeignKey("opportunity.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(300), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="Not Started"),
        sa.Column("due_date", sa.Date),
        sa.Column("documents", sa.JSON, nullable=False),
        sa.Column("created_by_user_id", sa.String(100), nullable=False),
        sa.Column("assigned_to_user_id", sa.String(100), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_action_item_opportunity_id", "action_item", ["opportunity_id"])
    op.create_index("ix_action_item_opportunity_due", "action_item", ["opportunity_id", "due_date"])

    # Disposition history (append-only)
    op.create_table(
        "disposition_history",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("opportunity_id", sa.Uuid(), sa.ForeignKey("opportunity.id", ondelete="CASCADE"), nullable=False),
        sa.Column("updated_by_user_id", sa.String(100), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("change_details", sa.JSON, nullable=False),
    )
    op.create_index("ix_disposition_history_opportunity_id", "disposition_history", ["opportunity_id"])


def downgrade() -> None:
    op.drop_table("disposition_history")
    op.drop_table("action_item")
    op.drop_table("disposition")
    op.drop_table("opportunity")
