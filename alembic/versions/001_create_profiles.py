"""001: create common functions and profiles

Revision ID: 001
Revises: 
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    # Rows are provisioned by the auth provider's signup hook; id = auth user id.
    op.execute("""
        CREATE TABLE profiles (
            id                          VARCHAR(64)     PRIMARY KEY,
            email                       VARCHAR(320),
            full_name                   VARCHAR(200),
            payout_account_id           VARCHAR(64),
            payout_onboarding_completed BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at                  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at                  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_profiles_payout_account UNIQUE (payout_account_id)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_profiles_updated_at
            BEFORE UPDATE ON profiles
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS profiles CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_update_timestamp();")
