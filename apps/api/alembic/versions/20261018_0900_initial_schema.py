"""Initial schema: users, api tokens, sessions, oauth states, follows

Revision ID: 20261018_0900
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261018_0900"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str, *, nullable: bool = False, default: bool = True) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=nullable,
        server_default=sa.func.now() if default else None,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("external_id", sa.BigInteger(), nullable=False),
        sa.Column("login", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("encrypted_access_token", sa.LargeBinary(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.UniqueConstraint("external_id", name="users_external_id_key"),
    )
    op.create_index("users_login_idx", "users", ["login"])

    op.create_table(
        "packages",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("download_count", sa.BigInteger(), nullable=False, server_default="0"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.UniqueConstraint("name", name="packages_name_key"),
    )

    op.create_table(
        "package_owners",
        sa.Column(
            "package_id",
            sa.Uuid(),
            sa.ForeignKey("packages.id", ondelete="CASCADE", name="package_owners_package_id_fkey"),
            primary_key=True,
        ),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="package_owners_user_id_fkey"),
            primary_key=True,
        ),
    )
    op.create_index("package_owners_user_id_idx", "package_owners", ["user_id"])

    op.create_table(
        "versions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "package_id",
            sa.Uuid(),
            sa.ForeignKey("packages.id", ondelete="CASCADE", name="versions_package_id_fkey"),
            nullable=False,
        ),
        sa.Column("num", sa.Text(), nullable=False),
        sa.Column("download_count", sa.BigInteger(), nullable=False, server_default="0"),
        _timestamp("published_at"),
        sa.UniqueConstraint("package_id", "num", name="versions_package_id_num_key"),
    )
    op.create_index("versions_published_at_idx", "versions", ["published_at"])

    # Composite primary key doubles as the idempotence guard for follow().
    op.create_table(
        "follows",
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="follows_user_id_fkey"),
            primary_key=True,
        ),
        sa.Column(
            "package_id",
            sa.Uuid(),
            sa.ForeignKey("packages.id", ondelete="CASCADE", name="follows_package_id_fkey"),
            primary_key=True,
        ),
        _timestamp("created_at"),
    )

    op.create_table(
        "api_tokens",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="api_tokens_user_id_fkey"),
            nullable=False,
        ),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("token_hash", sa.LargeBinary(), nullable=False),
        _timestamp("created_at"),
        _timestamp("last_used_at", nullable=True, default=False),
        sa.UniqueConstraint("token_hash", name="api_tokens_token_hash_key"),
    )
    op.create_index("api_tokens_user_id_idx", "api_tokens", ["user_id"])

    op.create_table(
        "auth_sessions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="auth_sessions_user_id_fkey"),
            nullable=False,
        ),
        sa.Column("token_hash", sa.LargeBinary(), nullable=False),
        _timestamp("created_at"),
        _timestamp("last_seen_at"),
        _timestamp("expires_at", default=False),
        _timestamp("revoked_at", nullable=True, default=False),
        sa.Column("revoked_reason", sa.Text(), nullable=True),
        sa.UniqueConstraint("token_hash", name="auth_sessions_token_hash_key"),
    )

    op.create_table(
        "oauth_states",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("provider", sa.Text(), nullable=False),
        sa.Column("state", sa.Text(), nullable=False),
        _timestamp("created_at"),
        _timestamp("expires_at", default=False),
        _timestamp("used_at", nullable=True, default=False),
        sa.UniqueConstraint("state", name="oauth_states_state_key"),
    )
    op.create_index("oauth_states_lookup_idx", "oauth_states", ["state", "expires_at", "used_at"])


def downgrade() -> None:
    for table in (
        "oauth_states",
        "auth_sessions",
        "api_tokens",
        "follows",
        "versions",
        "package_owners",
        "packages",
        "users",
    ):
        op.drop_table(table)
