"""create charge_definitions table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 00:10:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "charge_definitions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("identifier", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=256), nullable=False),
        sa.Column("description", sa.String(length=2048), nullable=True),
        sa.Column("accrue_action", sa.String(length=32), nullable=True),
        sa.Column("charge_action", sa.String(length=32), nullable=False),
        sa.Column("amount", sa.Numeric(precision=19, scale=4), nullable=False),
        sa.Column("charge_method", sa.String(length=32), nullable=False),
        sa.Column("proportional_to", sa.String(length=32), nullable=True),
        sa.Column("from_account_designator", sa.String(length=32), nullable=True),
        sa.Column("accrual_account_designator", sa.String(length=32), nullable=True),
        sa.Column("to_account_designator", sa.String(length=32), nullable=True),
        sa.Column("for_cycle_size_unit", sa.String(length=32), nullable=True),
        sa.Column("read_only", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        # Identifiers are unique within their product
        sa.UniqueConstraint(
            "product_id", "identifier", name="uq_charge_definitions_product_identifier"
        ),
        sa.CheckConstraint("amount >= 0", name="ck_charge_definitions_amount_non_negative"),
    )
    op.create_index("ix_charge_definitions_id", "charge_definitions", ["id"], unique=False)
    op.create_index(
        "ix_charge_definitions_product_id", "charge_definitions", ["product_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_charge_definitions_product_id", table_name="charge_definitions")
    op.drop_index("ix_charge_definitions_id", table_name="charge_definitions")
    op.drop_table("charge_definitions")
