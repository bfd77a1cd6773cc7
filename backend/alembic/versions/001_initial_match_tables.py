"""Initial migration: match, match_participant, partnership, player, match_dispute, match_action_log

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "match",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("match_type", sa.String(), nullable=False, server_default="SINGLES"),
        sa.Column("created_by_id", sa.String(), nullable=True),
        sa.Column("season_id", sa.String(), nullable=True),
        sa.Column("is_friendly", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(), nullable=False, server_default="SCHEDULED"),
        sa.Column("match_date", sa.DateTime(), nullable=True),
        sa.Column("date", sa.String(), nullable=True),
        sa.Column("time", sa.String(), nullable=True),
        sa.Column("duration", sa.String(), nullable=True),
        sa.Column("team1_score", sa.Integer(), nullable=True),
        sa.Column("team2_score", sa.Integer(), nullable=True),
        sa.Column("set_scores", sa.JSON(), nullable=True),
        sa.Column("result_comment", sa.String(), nullable=True),
        sa.Column("result_submitted_by_id", sa.String(), nullable=True),
        sa.Column("result_submitted_at", sa.DateTime(), nullable=True),
        sa.Column("result_is_unfinished", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("result_is_casual_play", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_disputed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("auto_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("is_walkover", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("walkover_reason", sa.String(), nullable=True),
        sa.Column("walkover_defaulting_player_id", sa.String(), nullable=True),
        sa.Column("walkover_winning_player_id", sa.String(), nullable=True),
        sa.Column("walkover_reason_detail", sa.String(), nullable=True),
        sa.Column("walkover_recorded_by_id", sa.String(), nullable=True),
        sa.Column("cancellation_reason", sa.String(), nullable=True),
        sa.Column("cancellation_comment", sa.String(), nullable=True),
        sa.Column("cancelled_by_id", sa.String(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("is_late_cancellation", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("void_reason", sa.String(), nullable=True),
        sa.Column("voided_at", sa.DateTime(), nullable=True),
        sa.Column("gender_restriction", sa.String(), nullable=True),
        sa.Column("skill_levels", sa.JSON(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_match_created_by_id"), "match", ["created_by_id"], unique=False)
    op.create_index(op.f("ix_match_season_id"), "match", ["season_id"], unique=False)
    op.create_index(op.f("ix_match_status"), "match", ["status"], unique=False)
    op.create_index(op.f("ix_match_result_submitted_at"), "match", ["result_submitted_at"], unique=False)

    op.create_table(
        "match_participant",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("team", sa.String(), nullable=False, server_default="unassigned"),
        sa.Column("invitation_status", sa.String(), nullable=False, server_default="PENDING"),
        sa.Column("role", sa.String(), nullable=True),
        sa.Column("joined_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["match_id"], ["match.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("match_id", "user_id", name="uq_participant_match_user"),
    )
    op.create_index(op.f("ix_match_participant_match_id"), "match_participant", ["match_id"], unique=False)
    op.create_index(op.f("ix_match_participant_user_id"), "match_participant", ["user_id"], unique=False)

    op.create_table(
        "partnership",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("season_id", sa.String(), nullable=True),
        sa.Column("captain_id", sa.String(), nullable=False),
        sa.Column("partner_id", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="ACTIVE"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_partnership_season_id"), "partnership", ["season_id"], unique=False)
    op.create_index(op.f("ix_partnership_captain_id"), "partnership", ["captain_id"], unique=False)
    op.create_index(op.f("ix_partnership_partner_id"), "partnership", ["partner_id"], unique=False)

    op.create_table(
        "player",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("image_url", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "match_dispute",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("disputed_by_id", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("reason", sa.String(), nullable=False),
        sa.Column("disputer_team1_score", sa.Integer(), nullable=True),
        sa.Column("disputer_team2_score", sa.Integer(), nullable=True),
        sa.Column("evidence_urls", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["match_id"], ["match.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_match_dispute_match_id"), "match_dispute", ["match_id"], unique=False)

    op.create_table(
        "match_action_log",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("actor_id", sa.String(), nullable=True),
        sa.Column("idempotency_key", sa.String(), nullable=True),
        sa.Column("from_status", sa.String(), nullable=False),
        sa.Column("to_status", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["match_id"], ["match.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("match_id", "idempotency_key", name="uq_action_log_match_key"),
    )
    op.create_index(op.f("ix_match_action_log_match_id"), "match_action_log", ["match_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_match_action_log_match_id"), table_name="match_action_log")
    op.drop_table("match_action_log")
    op.drop_index(op.f("ix_match_dispute_match_id"), table_name="match_dispute")
    op.drop_table("match_dispute")
    op.drop_table("player")
    op.drop_index(op.f("ix_partnership_partner_id"), table_name="partnership")
    op.drop_index(op.f("ix_partnership_captain_id"), table_name="partnership")
    op.drop_index(op.f("ix_partnership_season_id"), table_name="partnership")
    op.drop_table("partnership")
    op.drop_index(op.f("ix_match_participant_user_id"), table_name="match_participant")
    op.drop_index(op.f("ix_match_participant_match_id"), table_name="match_participant")
    op.drop_table("match_participant")
    op.drop_index(op.f("ix_match_result_submitted_at"), table_name="match")
    op.drop_index(op.f("ix_match_status"), table_name="match")
    op.drop_index(op.f("ix_match_season_id"), table_name="match")
    op.drop_index(op.f("ix_match_created_by_id"), table_name="match")
    op.drop_table("match")
