"""Add account status, email verification and password reset fields

Revision ID: 002
Revises: 001
Create Date: 2026-10-12

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    with op.batch_alter_table("users") as batch_op:
        batch_op.add_column(sa.Column("status", sa.String(length=16), nullable=False, server_default="inactive"))
        batch_op.add_column(sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.false()))
        batch_op.add_column(sa.Column("password_reset_token", sa.String(length=512), nullable=True))
        batch_op.add_column(sa.Column("password_reset_expires_at", sa.DateTime(), nullable=True))
        batch_op.add_column(sa.Column("email_verification_token", sa.String(length=512), nullable=True))
        batch_op.add_column(sa.Column("email_verification_expires_at", sa.DateTime(), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table("users") as batch_op:
        batch_op.drop_column("email_verification_expires_at")
        batch_op.drop_column("email_verification_token")
        batch_op.drop_column("password_reset_expires_at")
        batch_op.drop_column("password_reset_token")
        batch_op.drop_column("email_verified")
        batch_op.drop_column("status")
