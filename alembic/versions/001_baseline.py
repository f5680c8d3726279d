"""Baseline schema: accounts, ledger, catalog, settings, KYC, referrals.

Revision ID: 001_baseline
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

MONEY = sa.Numeric(18, 8)


def _ts(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def _account_fk(name: str, **kwargs: object) -> sa.Column:
    return sa.Column(name, sa.BigInteger(), sa.ForeignKey("accounts.id", ondelete="CASCADE"), **kwargs)


def upgrade() -> None:
    """Create all tables."""
    # --- accounts ---
    op.create_table(
        "accounts",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("full_name", sa.String(128), nullable=False, server_default=""),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("password_hash", sa.String(256), nullable=False),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("verified_balance", MONEY, nullable=False, server_default="0"),
        sa.Column("unverified_balance", MONEY, nullable=False, server_default="0"),
        sa.Column("kyc_status", sa.String(16), nullable=False, server_default="none"),
        sa.Column("role", sa.String(16), nullable=False, server_default="user"),
        _ts("last_check_in", nullable=True),
        _ts("ad_bonus_claimed_at", nullable=True),
        _ts("mining_started_at", nullable=True),
        sa.Column("referral_code", sa.String(16), nullable=False),
        sa.Column("referred_by_id", sa.BigInteger(), sa.ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True),
        sa.Column("referrals_verified", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("referrals_unverified", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.UniqueConstraint("email", name="uq_accounts_email"),
        sa.UniqueConstraint("username", name="uq_accounts_username"),
        sa.UniqueConstraint("referral_code", name="uq_accounts_referral_code"),
    )
    op.execute("CREATE UNIQUE INDEX ix_accounts_email_lower ON accounts (lower(email))")
    for column in ("verified_balance", "unverified_balance", "referrals_verified", "referrals_unverified"):
        op.execute(
            f"ALTER TABLE accounts ADD CONSTRAINT ck_accounts_{column}_non_negative CHECK ({column} >= 0)"
        )
    op.execute(
        "ALTER TABLE accounts ADD CONSTRAINT ck_accounts_kyc_status "
        "CHECK (kyc_status IN ('none', 'pending', 'approved', 'rejected'))"
    )
    op.execute("ALTER TABLE accounts ADD CONSTRAINT ck_accounts_role CHECK (role IN ('user', 'admin'))")

    # --- notifications (ledger) ---
    op.create_table(
        "notifications",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        _account_fk("account_id", nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("title", sa.String(128), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("amount", MONEY, nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_notifications_account_timestamp", "notifications", ["account_id", "timestamp"])
    op.execute(
        "ALTER TABLE notifications ADD CONSTRAINT ck_notifications_type "
        "CHECK (type IN ('send', 'receive', 'bonus', 'reward', 'mining', 'kyc'))"
    )

    # --- tasks / user_tasks ---
    op.create_table(
        "tasks",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(128), nullable=False),
        sa.Column("reward", MONEY, nullable=False),
        sa.Column("url", sa.Text(), nullable=True),
        sa.Column("verification_text", sa.String(128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("reward > 0", name="ck_tasks_reward_positive"),
    )
    op.create_table(
        "user_tasks",
        _account_fk("account_id", primary_key=True),
        sa.Column("task_id", sa.BigInteger(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("task_title", sa.String(128), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )

    # --- daily codes ---
    op.create_table(
        "daily_codes",
        sa.Column("code", sa.String(64), primary_key=True),
        sa.Column("reward_amount", MONEY, nullable=False),
        _ts("valid_until"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("reward_amount > 0", name="ck_daily_codes_reward_amount_positive"),
    )
    op.create_table(
        "redeemed_codes",
        _account_fk("account_id", primary_key=True),
        sa.Column("code", sa.String(64), primary_key=True),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )

    # --- app settings (singleton row) ---
    op.create_table(
        "app_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("daily_check_in_reward", MONEY, nullable=False, server_default="1"),
        sa.Column("mining_reward", MONEY, nullable=False, server_default="2"),
        sa.Column("transaction_fee", MONEY, nullable=False, server_default="0.3"),
        sa.Column("min_send_amount", MONEY, nullable=False, server_default="50"),
        sa.Column("referral_bonus", MONEY, nullable=False, server_default="10"),
        sa.Column("admin_wallet_balance", MONEY, nullable=False, server_default="0"),
        sa.Column("ads_enabled", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("maintenance_mode_enabled", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("admin_wallet_balance >= 0", name="ck_app_settings_admin_wallet_non_negative"),
    )
    op.execute("INSERT INTO app_settings (id) VALUES (1)")

    # --- KYC ---
    op.create_table(
        "kyc_requests",
        _account_fk("account_id", primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("full_name", sa.String(128), nullable=False),
        sa.Column("country", sa.String(64), nullable=False),
        sa.Column("id_front_url", sa.Text(), nullable=False),
        sa.Column("id_back_url", sa.Text(), nullable=False),
        sa.Column("selfie_url", sa.Text(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        _ts("reviewed_at", nullable=True),
    )
    op.create_index("ix_kyc_requests_status", "kyc_requests", ["status", "submitted_at"])

    # --- referrals / grants ---
    op.create_table(
        "referrals",
        _account_fk("referee_id", primary_key=True),
        _account_fk("referrer_id", nullable=False),
        sa.Column("bonus_amount", MONEY, nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        _ts("verified_at", nullable=True),
    )
    op.create_index("ix_referrals_referrer_id", "referrals", ["referrer_id"])

    op.create_table(
        "grant_records",
        _account_fk("account_id", primary_key=True),
        sa.Column("grant_key", sa.String(128), primary_key=True),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("granted_by_id", sa.BigInteger(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )

    # --- identity ---
    op.create_table(
        "email_verification_tokens",
        sa.Column("id", sa.String(36), primary_key=True),
        _account_fk("account_id", nullable=False),
        sa.Column("token_hash", sa.String(128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        _ts("expires_at"),
        _ts("used_at", nullable=True),
    )
    op.create_index("ix_email_verification_tokens_token_hash", "email_verification_tokens", ["token_hash"])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    for table in (
        "email_verification_tokens",
        "grant_records",
        "referrals",
        "kyc_requests",
        "app_settings",
        "redeemed_codes",
        "daily_codes",
        "user_tasks",
        "tasks",
        "notifications",
        "accounts",
    ):
        op.drop_table(table)
