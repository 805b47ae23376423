"""feedback_and_credit_flags

Supervisor feedback on Big Rocks / month plans, and the flags that keep
TAR completion and activity daily logs from paying out twice.

Revision ID: 0002_feedback
Revises: 0001_initial
Create Date: 2026-10-20 10:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "0002_feedback"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade():
    existing_tables = set(sa_inspect(op.get_bind()).get_table_names())
    if "feedback" in existing_tables:
        # schema already built by create_all (AUTO_CREATE_TABLES)
        return

    with op.batch_alter_table("tars", schema=None) as batch_op:
        batch_op.add_column(sa.Column(
            "completion_credited", sa.Boolean(), nullable=False, server_default=sa.false(),
        ))

    with op.batch_alter_table("activities", schema=None) as batch_op:
        batch_op.add_column(sa.Column(
            "credited_on", sa.Date(), nullable=True,
            comment="last day completing this counted as a daily log",
        ))

    # TARs already completed were paid under the old rule
    tars = sa.table("tars", sa.column("status"), sa.column("completion_credited"))
    op.execute(
        tars.update().where(tars.c.status == "COMPLETADA").values(completion_credited=True)
    )

    op.create_table(
        "feedback",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("target_type", sa.String(length=20), nullable=False),
        sa.Column("big_rock_id", sa.Integer(), nullable=True),
        sa.Column("month", sa.String(length=7), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=True),
        sa.Column("supervisor_id", sa.Integer(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["big_rock_id"], ["big_rocks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["supervisor_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("big_rock_id", name="uq_feedback_big_rock"),
        sa.UniqueConstraint("user_id", "company_id", "month", name="uq_feedback_month"),
        sa.CheckConstraint(
            "(target_type = 'BIG_ROCK' AND big_rock_id IS NOT NULL AND month IS NULL)"
            " OR (target_type = 'MONTH_PLANNING' AND big_rock_id IS NULL AND month IS NOT NULL)",
            name="ck_feedback_target",
        ),
        sa.CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)", name="ck_feedback_rating",
        ),
    )
    op.create_index("ix_feedback_user_id", "feedback", ["user_id"])


def downgrade():
    op.drop_index("ix_feedback_user_id", table_name="feedback")
    op.drop_table("feedback")
    with op.batch_alter_table("activities", schema=None) as batch_op:
        batch_op.drop_column("credited_on")
    with op.batch_alter_table("tars", schema=None) as batch_op:
        batch_op.drop_column("completion_credited")
