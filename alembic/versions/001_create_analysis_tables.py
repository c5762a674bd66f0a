"""create analysis_cache, usage_counters, api_usage, user_subscriptions, analysis_feedback

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "analysis_cache",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("kind", sa.String(16), nullable=False),
        sa.Column("fingerprint", sa.String(64), nullable=False),
        sa.Column("analysis_json", sa.Text(), nullable=False),
        sa.Column("plan_used", sa.String(16), nullable=False),
        sa.Column("prompt_version", sa.String(32), nullable=False),
        sa.Column("deck_list_json", sa.Text(), nullable=True),
        sa.Column("card_ids_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_analysis_cache_kind_fingerprint", "analysis_cache", ["kind", "fingerprint"], unique=True)

    op.create_table(
        "usage_counters",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("operation", sa.String(16), nullable=False),
        sa.Column("date", sa.String(10), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_usage_counters_user_operation", "usage_counters", ["user_id", "operation"], unique=True)

    op.create_table(
        "api_usage",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False, index=True),
        sa.Column("model", sa.String(64), nullable=False, index=True),
        sa.Column("operation", sa.String(16), nullable=False, index=True),
        sa.Column("input_tokens", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("output_tokens", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("estimated_cost_usd", sa.Float(), nullable=False, server_default="0"),
    )

    op.create_table(
        "user_subscriptions",
        sa.Column("user_id", sa.String(128), primary_key=True),
        sa.Column("plan", sa.String(20), nullable=False, server_default="free"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("stripe_customer_id", sa.String(64), nullable=True),
        sa.Column("stripe_subscription_id", sa.String(64), nullable=True),
        sa.Column("start_date", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "analysis_feedback",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("deck_hash", sa.String(128), nullable=False, index=True),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("user_name", sa.String(255), nullable=False, server_default="Anonymous"),
        sa.Column("vote", sa.String(16), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_analysis_feedback_deck_user", "analysis_feedback", ["deck_hash", "user_id"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_analysis_feedback_deck_user", table_name="analysis_feedback")
    op.drop_table("analysis_feedback")
    op.drop_table("user_subscriptions")
    op.drop_table("api_usage")
    op.drop_index("ix_usage_counters_user_operation", table_name="usage_counters")
    op.drop_table("usage_counters")
    op.drop_index("ix_analysis_cache_kind_fingerprint", table_name="analysis_cache")
    op.drop_table("analysis_cache")
