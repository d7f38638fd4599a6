"""Extra project files and per-save version history.

projects.files holds additional named files as a JSON array of
{name, content, language}. project_versions gets one row per save; rows are
private to the project owner and go away with the project.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""

from alembic import op

revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None

_SYSTEM = "NULLIF(current_setting('app.user_id', true), '') IS NULL"
_CALLER = "NULLIF(current_setting('app.user_id', true), '')::uuid"


def upgrade():
    op.execute("ALTER TABLE projects ADD COLUMN files JSONB NOT NULL DEFAULT '[]'::jsonb")

    op.execute("""
        CREATE TABLE project_versions (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            project_id UUID NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
            user_id UUID NOT NULL,
            title TEXT NOT NULL,
            html TEXT NOT NULL DEFAULT '',
            css TEXT NOT NULL DEFAULT '',
            js TEXT NOT NULL DEFAULT '',
            mode TEXT NOT NULL DEFAULT 'html',
            files JSONB NOT NULL DEFAULT '[]'::jsonb,
            saved_at TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp()
        );
    """)
    op.execute("CREATE INDEX idx_project_versions_project ON project_versions (project_id, saved_at DESC)")

    op.execute("ALTER TABLE project_versions ENABLE ROW LEVEL SECURITY")
    op.execute("ALTER TABLE project_versions FORCE ROW LEVEL SECURITY")
    owner = f"{_SYSTEM} OR user_id = {_CALLER}"
    op.execute(f"CREATE POLICY project_versions_select ON project_versions FOR SELECT USING ({owner})")
    op.execute(f"CREATE POLICY project_versions_insert ON project_versions FOR INSERT WITH CHECK ({owner})")
    op.execute(f"CREATE POLICY project_versions_delete ON project_versions FOR DELETE USING ({owner})")


def downgrade():
    op.execute("DROP TABLE IF EXISTS project_versions CASCADE")
    op.execute("ALTER TABLE projects DROP COLUMN IF EXISTS files")
