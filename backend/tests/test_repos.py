"""
Repository tests against a real, migrated Postgres.

Each test uses fresh random user ids (there is no users table) and cleans up
through system_conn. Skipped when no database is available.
"""

from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import asyncpg
import pytest
import pytest_asyncio

from backend import db
from backend.models.profile import UpsertProfileRequest
from backend.models.project import CreateProjectRequest, ProjectFile, UpdateProjectRequest
from backend.repos.follow_repo import FollowRepo
from backend.repos.profile_repo import ProfileRepo
from backend.repos.project_repo import ProjectRepo, StaleProjectError
from backend.repos.saved_repo import SavedProjectRepo

project_repo = ProjectRepo()
saved_repo = SavedProjectRepo()
profile_repo = ProfileRepo()
follow_repo = FollowRepo()


@pytest_asyncio.fixture
async def users(db_pool):
    ids = (uuid4(), uuid4())
    yield ids
    async with db.system_conn() as conn:
        for table, column in (
            ("saved_projects", "user_id"),
            ("followers", "follower_id"),
            ("projects", "user_id"),
            ("profiles", "id"),
        ):
            # table/column are literals above
            await conn.execute(f"DELETE FROM {table} WHERE {column} = ANY($1::uuid[])", list(ids))  # nosec B608


def _req(**overrides) -> CreateProjectRequest:
    fields = {"title": "Orbit", "html": "<div class='planet'></div>", "css": ".planet{}", "js": ""}
    fields.update(overrides)
    return CreateProjectRequest(**fields)


class TestProjectRepo:
    async def test_create_and_list(self, users):
        owner, _ = users
        created = await project_repo.create(owner, _req())

        projects = await project_repo.list_for_user(owner)

        assert [p.id for p in projects] == [created.id]
        assert created.created_at == created.updated_at

    async def test_private_projects_are_invisible_to_others(self, users):
        owner, other = users
        private = await project_repo.create(owner, _req())
        public = await project_repo.create(owner, _req(is_public=True))

        assert await project_repo.get_visible(other, private.id) is None
        assert await project_repo.get_visible(None, private.id) is None
        assert (await project_repo.get_visible(other, public.id)).id == public.id
        assert (await project_repo.get_visible(None, public.id)).id == public.id

    async def test_update_with_current_precondition(self, users):
        owner, _ = users
        project = await project_repo.create(owner, _req())

        updated = await project_repo.update(
            owner, project.id, UpdateProjectRequest(title="Orbit 2", js="start()", expected_updated_at=project.updated_at)
        )

        assert updated.title == "Orbit 2"
        assert updated.js == "start()"
        assert updated.html == project.html
        assert updated.updated_at > project.updated_at

    async def test_update_with_stale_precondition(self, users):
        owner, _ = users
        project = await project_repo.create(owner, _req())

        with pytest.raises(StaleProjectError):
            await project_repo.update(
                owner,
                project.id,
                UpdateProjectRequest(title="x", expected_updated_at=project.updated_at - timedelta(seconds=5)),
            )

    async def test_only_owner_updates_and_deletes(self, users):
        owner, other = users
        project = await project_repo.create(owner, _req(is_public=True))

        assert await project_repo.update(other, project.id, UpdateProjectRequest(title="mine now")) is None
        assert await project_repo.delete(other, project.id) is False
        assert await project_repo.delete(owner, project.id) is True

    async def test_fork_is_private_copy(self, users):
        owner, other = users
        source = await project_repo.create(owner, _req(is_public=True, tags=["canvas"]))

        fork = await project_repo.fork(other, source.id)

        assert fork.user_id == other
        assert fork.title == "Orbit (fork)"
        assert fork.is_public is False
        assert fork.tags == ["canvas"]

    async def test_saved_projects(self, users):
        owner, other = users
        public = await project_repo.create(owner, _req(is_public=True))

        assert await saved_repo.save(other, public.id) is True
        assert await saved_repo.save(other, public.id) is False
        assert [p.id for p in await saved_repo.list_for_user(other)] == [public.id]
        assert await saved_repo.unsave(other, public.id) is True


class TestProjectVersions:
    async def test_every_save_records_a_version(self, users):
        owner, _ = users
        project = await project_repo.create(owner, _req(files=[ProjectFile(name="notes.md", content="# hi")]))
        await project_repo.update(owner, project.id, UpdateProjectRequest(title="Orbit", html="<p>two</p>"))

        versions = await project_repo.list_versions(owner, project.id)

        assert [v.html for v in versions] == ["<p>two</p>", "<div class='planet'></div>"]
        assert versions[1].files[0].language == "markdown"

    async def test_restore_writes_back_and_records(self, users):
        owner, _ = users
        project = await project_repo.create(owner, _req())
        await project_repo.update(owner, project.id, UpdateProjectRequest(title="Changed", html="<p>new</p>"))
        first = (await project_repo.list_versions(owner, project.id))[-1]

        restored = await project_repo.restore_version(owner, project.id, first.id)

        assert restored.title == "Orbit"
        assert restored.html == "<div class='planet'></div>"
        versions = await project_repo.list_versions(owner, project.id)
        assert len(versions) == 3
        assert versions[0].title == "Orbit"

    async def test_history_is_private(self, users):
        owner, other = users
        project = await project_repo.create(owner, _req(is_public=True))
        version = (await project_repo.list_versions(owner, project.id))[0]

        assert await project_repo.list_versions(other, project.id) is None
        assert await project_repo.restore_version(other, project.id, version.id) is None

    async def test_history_is_capped(self, users):
        owner, _ = users
        project = await project_repo.create(owner, _req())
        for i in range(3):
            await project_repo.update(owner, project.id, UpdateProjectRequest(title=f"Orbit {i}"))

        assert len(await project_repo.list_versions(owner, project.id, limit=2)) == 2

class TestProfilesAndFollows:
    async def test_get_or_create_then_upsert(self, users):
        owner, _ = users
        created = await profile_repo.get_or_create(owner)
        assert created.username.startswith("user_")

        again = await profile_repo.get_or_create(owner)
        assert again.username == created.username

        name = f"dev_{owner.hex[:8]}"
        updated = await profile_repo.upsert(owner, UpsertProfileRequest(username=name, bio="hello"))
        assert (await profile_repo.get_by_username(name.upper())).id == owner
        assert updated.bio == "hello"

    async def test_follow_counts(self, users):
        owner, other = users

        assert await follow_repo.follow(other, owner) is True
        assert await follow_repo.follow(other, owner) is False
        assert await follow_repo.is_following(other, owner)

        counts = await follow_repo.counts(owner)
        assert (counts.followers, counts.following) == (1, 0)

        assert await follow_repo.unfollow(other, owner) is True

    async def test_self_follow_violates_constraint(self, users):
        owner, _ = users
        with pytest.raises(asyncpg.CheckViolationError):
            await follow_repo.follow(owner, owner)
