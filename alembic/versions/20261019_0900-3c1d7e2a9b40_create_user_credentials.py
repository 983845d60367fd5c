"""create_user_credentials

Revision ID: 3c1d7e2a9b40
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c1d7e2a9b40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "user_credentials",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("subject_id", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("access_token", sa.Text(), nullable=False),
        sa.Column("refresh_token", sa.Text(), nullable=True),
        sa.Column("token_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_user_credentials")),
    )
    op.create_index(op.f("ix_user_credentials_id"), "user_credentials", ["id"], unique=False)
    op.create_index(
        op.f("ix_user_credentials_subject_id"), "user_credentials", ["subject_id"], unique=True
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_user_credentials_subject_id"), table_name="user_credentials")
    op.drop_index(op.f("ix_user_credentials_id"), table_name="user_credentials")
    op.drop_table("user_credentials")
