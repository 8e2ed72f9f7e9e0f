"""Create clients, agents, bindings, knowledge and conversation tables."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "001_create_core_tables"
down_revision = None
branch_labels = None
depends_on = None


_UUID = postgresql.UUID(as_uuid=True)
_JSONB = postgresql.JSONB()


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        _UUID,
        primary_key=True,
        nullable=False,
        server_default=sa.text("gen_random_uuid()"),
    )


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("now()"),
    )


def _fk(name: str, target: str) -> sa.Column:
    return sa.Column(name, _UUID, sa.ForeignKey(target, ondelete="CASCADE"), nullable=False)


def upgrade() -> None:
    """Create the tables with their uniqueness and lookup indexes."""

    op.create_table(
        "clients",
        _id_column(),
        sa.Column("name", sa.String(length=255), nullable=False),
        _created_at(),
    )

    op.create_table(
        "agents",
        _id_column(),
        _fk("client_id", "clients.id"),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("system_prompt", sa.Text(), nullable=True),
        sa.Column("completion_api_key", sa.String(length=255), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("voice_settings", _JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        _created_at(),
    )
    op.create_index("ix_agents_client_id", "agents", ["client_id"])
    op.create_index(
        "ux_agents_default_per_client",
        "agents",
        ["client_id"],
        unique=True,
        postgresql_where=sa.text("is_default"),
    )

    op.create_table(
        "channel_bindings",
        _id_column(),
        sa.Column("phone_number", sa.String(length=32), nullable=False),
        _fk("client_id", "clients.id"),
        _fk("agent_id", "agents.id"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("voice_enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("sms_enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("voice_settings", _JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        _created_at(),
    )
    op.create_index("ix_channel_bindings_phone_number", "channel_bindings", ["phone_number"])
    op.create_index(
        "ux_channel_bindings_active_phone",
        "channel_bindings",
        ["phone_number"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )

    op.create_table(
        "knowledge_documents",
        _id_column(),
        _fk("client_id", "clients.id"),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("size", sa.Integer(), nullable=False),
        sa.Column("source_type", sa.String(length=32), nullable=False, server_default=sa.text("'upload'")),
        sa.Column("source_url", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_knowledge_documents_client_id", "knowledge_documents", ["client_id"])

    op.create_table(
        "knowledge_chunks",
        _id_column(),
        _fk("client_id", "clients.id"),
        _fk("document_id", "knowledge_documents.id"),
        sa.Column("chunk_index", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("metadata", _JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        _created_at(),
    )
    op.create_index("ix_knowledge_chunks_client_id", "knowledge_chunks", ["client_id"])
    op.create_index(
        "ux_knowledge_chunks_document_index",
        "knowledge_chunks",
        ["document_id", "chunk_index"],
        unique=True,
    )
    op.execute(
        "CREATE INDEX ix_knowledge_chunks_content_fts ON knowledge_chunks "
        "USING gin (to_tsvector('english', content))"
    )

    op.create_table(
        "conversations",
        _id_column(),
        _fk("client_id", "clients.id"),
        _fk("agent_id", "agents.id"),
        sa.Column("channel", sa.String(length=16), nullable=False),
        sa.Column("phone_number", sa.String(length=64), nullable=False),
        sa.Column("external_session_id", sa.String(length=128), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default=sa.text("'active'")),
        sa.Column("metadata", _JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index(
        "ux_conversations_session",
        "conversations",
        ["client_id", "phone_number", "external_session_id"],
        unique=True,
    )
    op.create_index("ix_conversations_agent_id", "conversations", ["agent_id"])

    op.create_table(
        "messages",
        _id_column(),
        _fk("conversation_id", "conversations.id"),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("metadata", _JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("clock_timestamp()"),
        ),
    )
    op.create_index(
        "ix_messages_conversation_created", "messages", ["conversation_id", "created_at"]
    )


def downgrade() -> None:
    """Drop every table created by :func:`upgrade`, children first."""

    op.drop_index("ix_messages_conversation_created", table_name="messages")
    op.drop_table("messages")

    op.drop_index("ix_conversations_agent_id", table_name="conversations")
    op.drop_index("ux_conversations_session", table_name="conversations")
    op.drop_table("conversations")

    op.execute("DROP INDEX IF EXISTS ix_knowledge_chunks_content_fts")
    op.drop_index("ux_knowledge_chunks_document_index", table_name="knowledge_chunks")
    op.drop_index("ix_knowledge_chunks_client_id", table_name="knowledge_chunks")
    op.drop_table("knowledge_chunks")

    op.drop_index("ix_knowledge_documents_client_id", table_name="knowledge_documents")
    op.drop_table("knowledge_documents")

    op.drop_index("ux_channel_bindings_active_phone", table_name="channel_bindings")
    op.drop_index("ix_channel_bindings_phone_number", table_name="channel_bindings")
    op.drop_table("channel_bindings")

    op.drop_index("ux_agents_default_per_client", table_name="agents")
    op.drop_index("ix_agents_client_id", table_name="agents")
    op.drop_table("agents")

    op.drop_table("clients")
