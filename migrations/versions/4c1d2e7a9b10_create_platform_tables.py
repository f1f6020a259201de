"""create platform tables

Revision ID: 4c1d2e7a9b10
Revises:
Create Date: 2026-10-19 10:12:41.220193
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "4c1d2e7a9b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=40), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("subscription_status", sa.String(length=20), nullable=False, server_default="free"),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="user"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "password_resets",
        sa.Column("id", sa.String(length=40), primary_key=True),
        sa.Column("user_id", sa.String(length=40), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("token", sa.String(length=128), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("used_at", sa.DateTime(), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
    )
    op.create_index("ix_password_resets_user_id", "password_resets", ["user_id"])
    op.create_index("ix_password_resets_token", "password_resets", ["token"], unique=True)
    op.create_index("ix_password_resets_user_created_at", "password_resets", ["user_id", "created_at"])

    op.create_table(
        "books",
        sa.Column("id", sa.String(length=40), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("author", sa.String(length=200), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("cover_image", sa.String(length=400), nullable=True),
        sa.Column("external_url", sa.String(length=1024), nullable=False),
        sa.Column("price_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "purchases",
        sa.Column("id", sa.String(length=100), primary_key=True),
        sa.Column("user_id", sa.String(length=40), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("book_id", sa.String(length=40), sa.ForeignKey("books.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="completed"),
        sa.Column("access_type", sa.String(length=20), nullable=False, server_default="purchased"),
        sa.Column("purchased_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "book_id", name="uq_purchase_user_book"),
    )
    op.create_index("ix_purchases_user_id", "purchases", ["user_id"])
    op.create_index("ix_purchases_book_id", "purchases", ["book_id"])

    op.create_table(
        "book_access_tokens",
        sa.Column("id", sa.String(length=100), primary_key=True),
        sa.Column("user_id", sa.String(length=40), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("book_id", sa.String(length=40), sa.ForeignKey("books.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("last_used_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "book_id", name="uq_book_token_user_book"),
    )
    op.create_index("ix_book_access_tokens_user_id", "book_access_tokens", ["user_id"])

    op.create_table(
        "reading_progress",
        sa.Column("id", sa.String(length=100), primary_key=True),
        sa.Column("user_id", sa.String(length=40), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("book_id", sa.String(length=40), sa.ForeignKey("books.id", ondelete="CASCADE"), nullable=False),
        sa.Column("progress", sa.Float(), nullable=False, server_default="0"),
        sa.Column("current_page", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("current_chapter", sa.String(length=120), nullable=False, server_default="Chapter 1"),
        sa.Column("time_spent", sa.Float(), nullable=False, server_default="0"),
        sa.Column("last_read_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "book_id", name="uq_progress_user_book"),
    )
    op.create_index("ix_reading_progress_user_id", "reading_progress", ["user_id"])

    op.create_table(
        "bookmarks",
        sa.Column("id", sa.String(length=40), primary_key=True),
        sa.Column("user_id", sa.String(length=40), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("book_id", sa.String(length=40), sa.ForeignKey("books.id", ondelete="CASCADE"), nullable=False),
        sa.Column("page", sa.Integer(), nullable=False),
        sa.Column("chapter", sa.String(length=120), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("bookmark_type", sa.String(length=30), nullable=False, server_default="page_save"),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_bookmarks_user_book", "bookmarks", ["user_id", "book_id"])

    op.create_table(
        "reading_sessions",
        sa.Column("id", sa.String(length=60), primary_key=True),
        sa.Column("user_id", sa.String(length=40), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("book_id", sa.String(length=40), sa.ForeignKey("books.id", ondelete="CASCADE"), nullable=False),
        sa.Column("session_start", sa.DateTime(), nullable=False),
        sa.Column("session_end", sa.DateTime(), nullable=True),
        sa.Column("total_duration", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("pages_visited", sa.JSON(), nullable=False),
        sa.Column("interactions_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cues_collected", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("device_type", sa.String(length=40), nullable=True),
        sa.Column("browser_info", sa.String(length=400), nullable=True),
    )
    op.create_index("ix_reading_sessions_user_book", "reading_sessions", ["user_id", "book_id"])

    op.create_table(
        "page_engagements",
        sa.Column("id", sa.String(length=60), primary_key=True),
        sa.Column(
            "session_id",
            sa.String(length=60),
            sa.ForeignKey("reading_sessions.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("user_id", sa.String(length=40), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("page_number", sa.Integer(), nullable=False),
        sa.Column("chapter_id", sa.String(length=60), nullable=True),
        sa.Column("page_type", sa.String(length=20), nullable=False, server_default="story"),
        sa.Column("navigation_source", sa.String(length=30), nullable=True),
        sa.Column("time_on_page", sa.Float(), nullable=False, server_default="0"),
        sa.Column("actual_engagement_time", sa.Float(), nullable=False, server_default="0"),
        sa.Column("interactions", sa.JSON(), nullable=False),
        sa.Column("cue_interactions", sa.JSON(), nullable=False),
        sa.Column("print_clicks", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_page_engagements_session_id", "page_engagements", ["session_id"])
    op.create_index("ix_page_engagements_user_id", "page_engagements", ["user_id"])

    op.create_table(
        "user_analytics",
        sa.Column("user_id", sa.String(length=40), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("total_sessions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_reading_time", sa.Float(), nullable=False, server_default="0"),
        sa.Column("average_session_duration", sa.Float(), nullable=False, server_default="0"),
        sa.Column("pages_read", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completion_rate", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("engagement_score", sa.Float(), nullable=False, server_default="50"),
        sa.Column("interaction_patterns", sa.JSON(), nullable=False),
        sa.Column("page_type_metrics", sa.JSON(), nullable=False),
        sa.Column("cue_engagement", sa.JSON(), nullable=False),
        sa.Column("navigation_patterns", sa.JSON(), nullable=False),
        sa.Column("print_activity_engagement", sa.JSON(), nullable=False),
        sa.Column("last_calculated", sa.DateTime(), nullable=True),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("user_analytics")
    op.drop_index("ix_page_engagements_user_id", table_name="page_engagements")
    op.drop_index("ix_page_engagements_session_id", table_name="page_engagements")
    op.drop_table("page_engagements")
    op.drop_index("ix_reading_sessions_user_book", table_name="reading_sessions")
    op.drop_table("reading_sessions")
    op.drop_index("ix_bookmarks_user_book", table_name="bookmarks")
    op.drop_table("bookmarks")
    op.drop_index("ix_reading_progress_user_id", table_name="reading_progress")
    op.drop_table("reading_progress")
    op.drop_index("ix_book_access_tokens_user_id", table_name="book_access_tokens")
    op.drop_table("book_access_tokens")
    op.drop_index("ix_purchases_book_id", table_name="purchases")
    op.drop_index("ix_purchases_user_id", table_name="purchases")
    op.drop_table("purchases")
    op.drop_table("books")
    op.drop_index("ix_password_resets_user_created_at", table_name="password_resets")
    op.drop_index("ix_password_resets_token", table_name="password_resets")
    op.drop_index("ix_password_resets_user_id", table_name="password_resets")
    op.drop_table("password_resets")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
