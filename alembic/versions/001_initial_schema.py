"""Initial schema: profiles, projects, followers, saved projects, posts, reels.

User ids come from the external auth service; there is no users table.
Every table has RLS forced. Policies read current_setting('app.user_id'):
a user connection sees its own rows plus public ones, and an empty setting
(system_conn) selects the system branch.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from alembic import op

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None

# app.user_id is '' on system connections
_SYSTEM = "NULLIF(current_setting('app.user_id', true), '') IS NULL"
_CALLER = "NULLIF(current_setting('app.user_id', true), '')::uuid"

_TABLES = ("profiles", "projects", "followers", "saved_projects", "posts", "reels")


def _owner_policies(table: str, owner_column: str, public_read: str | None) -> None:
    """SELECT: owner, system, or `public_read`. INSERT/UPDATE/DELETE: owner or system."""
    read = f"{_SYSTEM} OR {owner_column} = {_CALLER}"
    if public_read:
        read = f"{public_read} OR {read}"
    write = f"{_SYSTEM} OR {owner_column} = {_CALLER}"

    op.execute(f"CREATE POLICY {table}_select ON {table} FOR SELECT USING ({read})")
    op.execute(f"CREATE POLICY {table}_insert ON {table} FOR INSERT WITH CHECK ({write})")
    op.execute(f"CREATE POLICY {table}_update ON {table} FOR UPDATE USING ({write}) WITH CHECK ({write})")
    op.execute(f"CREATE POLICY {table}_delete ON {table} FOR DELETE USING ({write})")


def upgrade():
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    op.execute("""
        CREATE TABLE profiles (
            id UUID PRIMARY KEY,
            username TEXT NOT NULL,
            bio TEXT,
            avatar_url TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT profiles_username_format CHECK (username ~ '^[A-Za-z0-9_]{3,30}$')
        );
    """)
    op.execute("CREATE UNIQUE INDEX idx_profiles_username ON profiles (lower(username))")

    op.execute("""
        CREATE TABLE projects (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL,
            title TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            html TEXT NOT NULL DEFAULT '',
            css TEXT NOT NULL DEFAULT '',
            js TEXT NOT NULL DEFAULT '',
            thumbnail TEXT,
            is_public BOOLEAN NOT NULL DEFAULT false,
            mode TEXT NOT NULL DEFAULT 'html',
            tags TEXT[] NOT NULL DEFAULT '{}',
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT projects_title_required CHECK (length(btrim(title)) > 0),
            CONSTRAINT projects_mode_valid CHECK (mode IN ('html', 'react', 'vue', 'nextjs', 'astro', 'python', 'markdown'))
        );
    """)
    op.execute("CREATE INDEX idx_projects_user ON projects (user_id, updated_at DESC)")
    op.execute("CREATE INDEX idx_projects_public ON projects (created_at DESC) WHERE is_public")
    op.execute("CREATE INDEX idx_projects_tags ON projects USING GIN (tags)")

    op.execute("""
        CREATE TABLE followers (
            follower_id UUID NOT NULL,
            following_id UUID NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            PRIMARY KEY (follower_id, following_id),
            CONSTRAINT followers_no_self_follow CHECK (follower_id <> following_id)
        );
    """)
    op.execute("CREATE INDEX idx_followers_following ON followers (following_id)")

    op.execute("""
        CREATE TABLE saved_projects (
            user_id UUID NOT NULL,
            project_id UUID NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            PRIMARY KEY (user_id, project_id)
        );
    """)

    op.execute("""
        CREATE TABLE posts (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL,
            title TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            image_url TEXT NOT NULL,
            thumbnail_url TEXT,
            aspect_ratio TEXT NOT NULL DEFAULT 'portrait',
            html TEXT NOT NULL DEFAULT '',
            css TEXT NOT NULL DEFAULT '',
            js TEXT NOT NULL DEFAULT '',
            is_public BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT posts_aspect_ratio_valid CHECK (aspect_ratio IN ('portrait', 'square', 'landscape'))
        );
    """)
    op.execute("CREATE INDEX idx_posts_user ON posts (user_id, created_at DESC)")

    op.execute("""
        CREATE TABLE reels (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL,
            title TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            video_url TEXT NOT NULL,
            thumbnail_url TEXT,
            aspect_ratio TEXT NOT NULL DEFAULT 'portrait',
            platform TEXT NOT NULL DEFAULT 'instagram',
            quality TEXT NOT NULL DEFAULT 'high',
            html TEXT NOT NULL DEFAULT '',
            css TEXT NOT NULL DEFAULT '',
            js TEXT NOT NULL DEFAULT '',
            is_public BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT reels_aspect_ratio_valid CHECK (aspect_ratio IN ('portrait', 'square', 'landscape')),
            CONSTRAINT reels_quality_valid CHECK (quality IN ('standard', 'high', 'ultra')),
            CONSTRAINT reels_platform_valid
                CHECK (platform IN ('instagram', 'tiktok', 'youtube', 'twitter', 'linkedin', 'other'))
        );
    """)
    op.execute("CREATE INDEX idx_reels_user ON reels (user_id, created_at DESC)")

    # RLS applies to table owners and superusers too
    for table in _TABLES:
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")
        op.execute(f"ALTER TABLE {table} FORCE ROW LEVEL SECURITY")

    _owner_policies("profiles", "id", public_read="true")
    _owner_policies("projects", "user_id", public_read="is_public")
    _owner_policies("followers", "follower_id", public_read="true")
    _owner_policies("saved_projects", "user_id", public_read=None)
    _owner_policies("posts", "user_id", public_read="is_public")
    _owner_policies("reels", "user_id", public_read="is_public")


def downgrade():
    for table in reversed(_TABLES):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
