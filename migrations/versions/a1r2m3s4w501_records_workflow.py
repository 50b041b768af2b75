"""Records workflow: users, documents, comments and workflow log

Revision ID: a1r2m3s4w501
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "a1r2m3s4w501"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(200), nullable=False, unique=True),
        sa.Column("full_name", sa.String(200)),
        sa.Column("role", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "rms_documents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("reference_number", sa.String(50), unique=True),
        sa.Column("subject", sa.String(500), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("document_type", sa.String(30), nullable=False, server_default="letter"),
        sa.Column("document_date", sa.Date()),
        sa.Column("priority", sa.String(10), nullable=False, server_default="normal"),
        sa.Column("initiator_department", sa.String(200), nullable=False),
        sa.Column("initiator_name", sa.String(200)),
        sa.Column("initiator_email", sa.String(200)),
        sa.Column("initiator_phone", sa.String(50)),
        sa.Column("file_path", sa.String(500)),
        sa.Column("status", sa.String(40), nullable=False, server_default="received"),
        sa.Column("current_handler", sa.String(30), nullable=False),
        sa.Column("agenda_item_number", sa.String(30)),
        sa.Column("board_meeting_date", sa.Date()),
        sa.Column("decision_summary", sa.Text()),
        sa.Column("dispatched_at", sa.DateTime(timezone=True)),
        sa.Column("dispatched_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("created_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_rms_documents_status", "rms_documents", ["status"])
    op.create_index("ix_rms_documents_priority", "rms_documents", ["priority"])
    op.create_index("ix_rms_documents_handler", "rms_documents", ["current_handler"])

    op.create_table(
        "rms_comments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("document_id", sa.Integer(), sa.ForeignKey("rms_documents.id", ondelete="CASCADE"), nullable=False),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("author_name", sa.String(200)),
        sa.Column("author_role", sa.String(30), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False, server_default="remark"),
        sa.Column("recommendation", sa.String(10)),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("document_status", sa.String(40), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_rms_comments_document", "rms_comments", ["document_id", "created_at"])

    op.create_table(
        "rms_workflow_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("document_id", sa.Integer(), sa.ForeignKey("rms_documents.id", ondelete="CASCADE"), nullable=False),
        sa.Column("from_status", sa.String(40)),
        sa.Column("to_status", sa.String(40), nullable=False),
        sa.Column("from_handler", sa.String(30)),
        sa.Column("to_handler", sa.String(30), nullable=False),
        sa.Column("actor_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("actor_role", sa.String(30)),
        sa.Column("action_type", sa.String(60), nullable=False),
        sa.Column("notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_rms_workflow_logs_document", "rms_workflow_logs", ["document_id", "created_at"])
    op.create_index("ix_rms_workflow_logs_action", "rms_workflow_logs", ["action_type"])


def downgrade():
    op.drop_index("ix_rms_workflow_logs_action", table_name="rms_workflow_logs")
    op.drop_index("ix_rms_workflow_logs_document", table_name="rms_workflow_logs")
    op.drop_table("rms_workflow_logs")
    op.drop_index("ix_rms_comments_document", table_name="rms_comments")
    op.drop_table("rms_comments")
    op.drop_index("ix_rms_documents_handler", table_name="rms_documents")
    op.drop_index("ix_rms_documents_priority", table_name="rms_documents")
    op.drop_index("ix_rms_documents_status", table_name="rms_documents")
    op.drop_table("rms_documents")
    op.drop_index("ix_users_role", table_name="users")
    op.drop_table("users")
