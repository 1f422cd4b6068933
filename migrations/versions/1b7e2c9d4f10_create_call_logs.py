"""Create call_logs table

Revision ID: 1b7e2c9d4f10
Revises:
Create Date: 2026-10-17

Stores one row per outbound verification call: the operation being
verified, call status, and the terminal record written at finalize.
"""

from typing import Sequence, Union

import sqlalchemy as sa
import sqlmodel
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "1b7e2c9d4f10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create call_logs and its indexes."""
    op.create_table(
        "call_logs",
        sa.Column("id", sqlmodel.AutoString(), nullable=False),
        sa.Column("operation_name", sqlmodel.AutoString(length=200), nullable=False),
        sa.Column("location", sqlmodel.AutoString(length=200), nullable=False),
        sa.Column(
            "priority",
            sa.Enum("low", "medium", "high", "critical", name="operationpriority"),
            nullable=False,
        ),
        sa.Column("notes", sqlmodel.AutoString(length=2000), nullable=False),
        sa.Column("target_date", sqlmodel.AutoString(length=40), nullable=True),
        sa.Column("phone_number_masked", sqlmodel.AutoString(), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "initiated",
                "demo_mode",
                "in_progress",
                "completed",
                "failed",
                name="callstatus",
            ),
            nullable=False,
        ),
        sa.Column(
            "outcome",
            sa.Enum(
                "accepted",
                "declined",
                "inconclusive",
                "no_response",
                name="calloutcome",
            ),
            nullable=True,
        ),
        sa.Column("transcript", sqlmodel.AutoString(), nullable=True),
        sa.Column("result", sqlmodel.AutoString(), nullable=True),
        sa.Column("duration_seconds", sa.Integer(), nullable=True),
        sa.Column("total_turns", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("topics_covered", sqlmodel.AutoString(), nullable=True),
        sa.Column("conversation_id", sqlmodel.AutoString(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_call_logs_operation_name", "call_logs", ["operation_name"])
    op.create_index("ix_call_logs_status", "call_logs", ["status"])
    op.create_index("ix_call_logs_outcome", "call_logs", ["outcome"])
    op.create_index("ix_call_logs_created_at", "call_logs", ["created_at"])


def downgrade() -> None:
    """Drop call_logs."""
    op.drop_index("ix_call_logs_created_at", table_name="call_logs")
    op.drop_index("ix_call_logs_outcome", table_name="call_logs")
    op.drop_index("ix_call_logs_status", table_name="call_logs")
    op.drop_index("ix_call_logs_operation_name", table_name="call_logs")
    op.drop_table("call_logs")
