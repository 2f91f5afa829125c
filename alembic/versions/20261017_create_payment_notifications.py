"""create payment_notifications table"""
from alembic import op
import sqlalchemy as sa

revision = "20261017_create_payment_notifications"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "payment_notifications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("transaction_id", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=64), nullable=False),
        sa.Column("memo", sa.Text(), nullable=True),
        sa.Column("raw_json", sa.JSON(), nullable=False),
        sa.Column("delivery_count", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("transaction_id"),
    )
    op.create_index("ix_payment_notifications_status", "payment_notifications", ["status"])


def downgrade() -> None:
    op.drop_index("ix_payment_notifications_status", table_name="payment_notifications")
    op.drop_table("payment_notifications")
