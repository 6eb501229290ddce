"""create charge_definition_commands table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19 00:20:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "charge_definition_commands",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("command_type", sa.String(length=16), nullable=False),
        sa.Column("product_identifier", sa.String(length=32), nullable=False),
        sa.Column("charge_definition_identifier", sa.String(length=32), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="PENDING"),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "command_type IN ('CREATE', 'CHANGE', 'DELETE')",
            name="ck_charge_definition_commands_type",
        ),
        sa.CheckConstraint(
            "status IN ('PENDING', 'PROCESSING', 'APPLIED', 'REJECTED')",
            name="ck_charge_definition_commands_status",
        ),
    )
    op.create_index(
        "ix_charge_definition_commands_id", "charge_definition_commands", ["id"], unique=False
    )
    op.create_index(
        "ix_charge_definition_commands_product_identifier",
        "charge_definition_commands",
        ["product_identifier"],
        unique=False,
    )
    op.create_index(
        "ix_charge_definition_commands_status",
        "charge_definition_commands",
        ["status"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_charge_definition_commands_status", table_name="charge_definition_commands")
    op.drop_index(
        "ix_charge_definition_commands_product_identifier",
        table_name="charge_definition_commands",
    )
    op.drop_index("ix_charge_definition_commands_id", table_name="charge_definition_commands")
    op.drop_table("charge_definition_commands")
