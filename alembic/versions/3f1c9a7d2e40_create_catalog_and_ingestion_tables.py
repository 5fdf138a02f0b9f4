"""create catalog and ingestion tables

Revision ID: 3f1c9a7d2e40
Revises:
Create Date: 2026-10-17 09:12:31.418204

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "3f1c9a7d2e40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


job_status = sa.Enum("RUNNING", "COMPLETED", "PARTIAL", "FAILED", name="jobstatus")
filter_result = sa.Enum(
    "PASSED", "FILTERED_GENRE", "FILTERED_AUTHOR", name="filterresult"
)


def upgrade() -> None:
    """
    Create the books catalog and the ingestion bookkeeping tables.

    books.source_identifier is unique so that a concurrent insert of the same
    archive item fails instead of creating a second record.
    """
    op.create_table(
        "books",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("author", sa.String(), nullable=False),
        sa.Column("published_year", sa.Integer(), nullable=True),
        sa.Column("language", sa.String(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("source", sa.String(), nullable=True),
        sa.Column("source_identifier", sa.String(), nullable=True),
        sa.Column("pdf_url", sa.String(), nullable=True),
        sa.Column("genres", sa.JSON(), nullable=True),
        sa.Column("subgenre", sa.String(), nullable=True),
        sa.Column(
            "category", sa.String(), nullable=False, server_default="Uncategorized"
        ),
        sa.Column(
            "created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_books_source_identifier", "books", ["source_identifier"], unique=True
    )

    op.create_table(
        "ingestion_logs",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("source", sa.String(), nullable=False),
        sa.Column("job_type", sa.String(), nullable=False),
        sa.Column("status", job_status, nullable=False),
        sa.Column("page", sa.Integer(), nullable=True),
        sa.Column(
            "started_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("books_processed", sa.Integer(), nullable=False),
        sa.Column("books_added", sa.Integer(), nullable=False),
        sa.Column("books_skipped", sa.Integer(), nullable=False),
        sa.Column("books_filtered", sa.Integer(), nullable=False),
        sa.Column("books_filtered_by_genre", sa.Integer(), nullable=False),
        sa.Column("books_filtered_by_author", sa.Integer(), nullable=False),
        sa.Column("books_failed", sa.Integer(), nullable=False),
        sa.Column("error_details", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "ingestion_filter_stats",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("job_id", sa.String(), nullable=True),
        sa.Column("book_identifier", sa.String(), nullable=False),
        sa.Column("book_title", sa.String(), nullable=True),
        sa.Column("book_author", sa.String(), nullable=True),
        sa.Column("book_genres", sa.JSON(), nullable=True),
        sa.Column("filter_result", filter_result, nullable=False),
        sa.Column("filter_reason", sa.Text(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.ForeignKeyConstraint(
            ["job_id"], ["ingestion_logs.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_ingestion_filter_stats_job_id", "ingestion_filter_stats", ["job_id"]
    )

    op.create_table(
        "ingestion_config",
        sa.Column("config_key", sa.String(), nullable=False),
        sa.Column("config_value", sa.JSON(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("config_key"),
    )

    op.create_table(
        "ingestion_state",
        sa.Column("source", sa.String(), nullable=False),
        sa.Column("last_page", sa.Integer(), nullable=False),
        sa.Column("total_ingested", sa.Integer(), nullable=False),
        sa.Column("last_run_at", sa.DateTime(), nullable=True),
        sa.Column("last_run_status", sa.String(), nullable=False),
        sa.Column("last_run_added", sa.Integer(), nullable=False),
        sa.Column("last_run_skipped", sa.Integer(), nullable=False),
        sa.Column("last_run_failed", sa.Integer(), nullable=False),
        sa.Column("is_paused", sa.Boolean(), nullable=False),
        sa.Column("paused_at", sa.DateTime(), nullable=True),
        sa.Column("paused_by", sa.String(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("source"),
    )


def downgrade() -> None:
    """Drop all catalog and ingestion tables."""
    op.drop_table("ingestion_state")
    op.drop_table("ingestion_config")
    op.drop_index("ix_ingestion_filter_stats_job_id", table_name="ingestion_filter_stats")
    op.drop_table("ingestion_filter_stats")
    op.drop_table("ingestion_logs")
    op.drop_index("ix_books_source_identifier", table_name="books")
    op.drop_table("books")
    job_status.drop(op.get_bind(), checkfirst=True)
    filter_result.drop(op.get_bind(), checkfirst=True)
