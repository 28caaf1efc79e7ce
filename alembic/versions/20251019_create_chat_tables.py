"""
Create chat session and chat message tables

Revision ID: 20251019_create_chat_tables
Revises:
Create Date: 2025-10-19 10:00:00
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20251019_create_chat_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "chat_sessions",
        sa.Column("id", sa.UUID(as_uuid=False), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("client_id", sa.UUID(as_uuid=False), nullable=False),
        sa.Column("session_id", sa.String(length=255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_chat_sessions_client_id", "chat_sessions", ["client_id"], unique=False
    )
    op.create_index(
        "ix_chat_sessions_session_id", "chat_sessions", ["session_id"], unique=True
    )
    op.create_index(
        "ix_chat_sessions_updated_at", "chat_sessions", ["updated_at"], unique=False
    )

    chat_role = sa.Enum("user", "assistant", name="chat_role")
    op.create_table(
        "chat_messages",
        sa.Column("id", sa.UUID(as_uuid=False), nullable=False),
        sa.Column("session_id", sa.String(length=255), nullable=False),
        sa.Column("chat_session_id", sa.UUID(as_uuid=False), nullable=False),
        sa.Column("role", chat_role, nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["chat_session_id"], ["chat_sessions.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_chat_messages_session_id", "chat_messages", ["session_id"], unique=False
    )
    op.create_index(
        "ix_chat_messages_chat_session_id",
        "chat_messages",
        ["chat_session_id"],
        unique=False,
    )
    op.create_index(
        "ix_chat_messages_timestamp", "chat_messages", ["timestamp"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_chat_messages_timestamp", table_name="chat_messages")
    op.drop_index("ix_chat_messages_chat_session_id", table_name="chat_messages")
    op.drop_index("ix_chat_messages_session_id", table_name="chat_messages")
    op.drop_table("chat_messages")
    sa.Enum(name="chat_role").drop(op.get_bind(), checkfirst=True)

    op.drop_index("ix_chat_sessions_updated_at", table_name="chat_sessions")
    op.drop_index("ix_chat_sessions_session_id", table_name="chat_sessions")
    op.drop_index("ix_chat_sessions_client_id", table_name="chat_sessions")
    op.drop_table("chat_sessions")
