"""Records, weekly plans and bin weights

Revision ID: 20250602_uid_ops_initial
Revises:
Create Date: 2025-06-02
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20250602_uid_ops_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "records",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("date_local", sa.String(10), nullable=True),
        sa.Column("mobile_bin", sa.String(128), nullable=True),
        sa.Column("sscc_label", sa.String(128), nullable=True),
        sa.Column("po_number", sa.String(128), nullable=True),
        sa.Column("sku_code", sa.String(128), nullable=True),
        sa.Column("uid", sa.String(255), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="draft"),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("sync_state", sa.String(16), nullable=False, server_default="unknown"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_records"),
        sa.UniqueConstraint("po_number", "sku_code", "uid", name="uq_records_natural_key"),
    )

    with op.batch_alter_table("records", schema=None) as batch_op:
        batch_op.create_index("ix_records_date_local", ["date_local"], unique=False)
        batch_op.create_index("ix_records_status", ["status"], unique=False)
        batch_op.create_index("ix_records_po_number", ["po_number"], unique=False)
        batch_op.create_index("ix_records_sku_code", ["sku_code"], unique=False)
        batch_op.create_index("ix_records_completed_at", ["completed_at"], unique=False)
        batch_op.create_index("ix_records_sku_uid", ["sku_code", "uid"], unique=False)

    op.create_table(
        "plans",
        sa.Column("week_start", sa.String(10), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("week_start", name="pk_plans"),
    )

    op.create_table(
        "bins",
        sa.Column("mobile_bin", sa.String(128), nullable=False),
        sa.Column("weight_kg", sa.Float(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("mobile_bin", name="pk_bins"),
    )


def downgrade():
    op.drop_table("bins")
    op.drop_table("plans")
    with op.batch_alter_table("records", schema=None) as batch_op:
        batch_op.drop_index("ix_records_sku_uid")
        batch_op.drop_index("ix_records_completed_at")
        batch_op.drop_index("ix_records_sku_code")
        batch_op.drop_index("ix_records_po_number")
        batch_op.drop_index("ix_records_status")
        batch_op.drop_index("ix_records_date_local")
    op.drop_table("records")
