"""Visit tables: visits (one counter row per date) and visit_logs (append-only events)."""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "000_visits"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # 1) visits: the UNIQUE(visit_date) is the conflict target of the counter upsert
    op.create_table(
        "visits",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("visit_date", sa.Date(), nullable=False),
        sa.Column("daily_count", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("visit_date", name="uq_visits_visit_date"),
        if_not_exists=True,
    )

    # 2) visit_logs
    op.create_table(
        "visit_logs",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("region", sa.String(100), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("referrer", sa.Text(), nullable=True),
        sa.Column("page_url", sa.String(500), nullable=True),
        sa.Column("visit_date", sa.Date(), nullable=False),
        sa.Column("session_duration", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("timezone", sa.String(100), nullable=True),
        sa.Column("screen_resolution", sa.String(20), nullable=True),
        sa.Column("viewport_size", sa.String(20), nullable=True),
        sa.Column("is_final", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("session_duration >= 0", name="ck_visit_logs_session_duration"),
        if_not_exists=True,
    )
    op.create_index("ix_visit_logs_visit_date", "visit_logs", ["visit_date"], unique=False, if_not_exists=True)
    op.create_index("ix_visit_logs_ip_address", "visit_logs", ["ip_address"], unique=False, if_not_exists=True)
    op.create_index("ix_visit_logs_country", "visit_logs", ["country"], unique=False, if_not_exists=True)


def downgrade() -> None:
    op.drop_index("ix_visit_logs_country", table_name="visit_logs")
    op.drop_index("ix_visit_logs_ip_address", table_name="visit_logs")
    op.drop_index("ix_visit_logs_visit_date", table_name="visit_logs")
    op.drop_table("visit_logs")
    op.drop_table("visits")
