"""Create users, follow relationships, notifications and preferences."""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

revision: str = "20261001_0001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

TIMESTAMP_DEFAULT = sa.text("CURRENT_TIMESTAMP")
NOTIFICATION_TYPES = (
    "follow_request",
    "follow_accepted",
    "new_follower",
    "like",
    "comment",
    "comment_reply",
    "mention",
    "tag",
    "achievement",
    "system_announcement",
    "club_update",
    "team_update",
)


def _sql_in(values: Sequence[str]) -> str:
    return ", ".join(f"'{value}'" for value in values)


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=TIMESTAMP_DEFAULT,
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("username", sa.String(length=30), nullable=False),
        sa.Column("display_name", sa.String(length=80), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column(
            "is_private",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "relationships",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("follower_id", sa.String(length=36), nullable=False),
        sa.Column("followee_id", sa.String(length=36), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("message", sa.String(length=280), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["follower_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["followee_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "follower_id",
            "followee_id",
            name="ux_relationships_follower_followee",
        ),
        sa.CheckConstraint(
            "follower_id <> followee_id",
            name="ck_relationships_no_self_follow",
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted')",
            name="ck_relationships_status",
        ),
    )
    op.create_index(
        "ix_relationships_followee_status_created_at",
        "relationships",
        ["followee_id", "status", "created_at"],
        unique=False,
    )
    op.create_index(
        "ix_relationships_follower_status_created_at",
        "relationships",
        ["follower_id", "status", "created_at"],
        unique=False,
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("recipient_id", sa.String(length=36), nullable=False),
        sa.Column("actor_id", sa.String(length=36), nullable=True),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("relationship_id", sa.String(length=36), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("action_url", sa.String(length=255), nullable=True),
        sa.Column(
            "is_read",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("action_status", sa.String(length=16), nullable=True),
        sa.Column("action_taken_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["recipient_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["actor_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            f"type IN ({_sql_in(NOTIFICATION_TYPES)})",
            name="ck_notifications_type",
        ),
        sa.CheckConstraint(
            "action_status IS NULL OR action_status IN ('pending', 'accepted', 'declined')",
            name="ck_notifications_action_status",
        ),
    )
    op.create_index(
        "ix_notifications_recipient_created_at",
        "notifications",
        ["recipient_id", "created_at", "id"],
        unique=False,
    )
    op.create_index(
        "ix_notifications_recipient_is_read",
        "notifications",
        ["recipient_id", "is_read"],
        unique=False,
    )
    op.create_index(
        "ix_notifications_relationship_id",
        "notifications",
        ["relationship_id"],
        unique=False,
    )

    op.create_table(
        "notification_preferences",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        *[
            sa.Column(
                f"{notification_type}_enabled",
                sa.Boolean(),
                nullable=False,
                server_default=sa.true(),
            )
            for notification_type in NOTIFICATION_TYPES
        ],
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )


def downgrade() -> None:
    op.drop_table("notification_preferences")
    op.drop_index("ix_notifications_relationship_id", table_name="notifications")
    op.drop_index("ix_notifications_recipient_is_read", table_name="notifications")
    op.drop_index("ix_notifications_recipient_created_at", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index(
        "ix_relationships_follower_status_created_at",
        table_name="relationships",
    )
    op.drop_index(
        "ix_relationships_followee_status_created_at",
        table_name="relationships",
    )
    op.drop_table("relationships")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
