"""Tests for Postgres error translation."""

from __future__ import annotations

import importlib
import warnings

import asyncpg
import httpx
import pytest
from fastapi import FastAPI

from backend import errors
from backend.errors import DB_NOT_INITIALIZED, classify_postgres_error, is_missing_table, register_error_handlers


class TestClassify:
    @pytest.mark.parametrize(
        ("exc", "code"),
        [
            (asyncpg.UndefinedTableError('relation "projects" does not exist'), 503),
            (asyncpg.UniqueViolationError('duplicate key value violates unique constraint "idx_profiles_username"'), 409),
            (asyncpg.CheckViolationError('new row for relation "followers" violates check constraint "followers_no_self_follow"'), 422),
            (asyncpg.InsufficientPrivilegeError("permission denied for table projects"), 403),
            (asyncpg.PostgresError('new row violates row-level security policy for table "projects"'), 403),
            (asyncpg.PostgresError("connection reset mid-query"), 500),
        ],
    )
    def test_status_codes(self, exc, code):
        assert classify_postgres_error(exc)[0] == code

    def test_missing_relation_message(self):
        _, message = classify_postgres_error(asyncpg.UndefinedTableError('relation "reels" does not exist'))
        assert message == DB_NOT_INITIALIZED

    def test_check_violation_keeps_raw_message(self):
        raw = 'new row for relation "projects" violates check constraint "projects_title_required"'
        assert classify_postgres_error(asyncpg.CheckViolationError(raw)) == (422, raw)

    def test_unknown_error_keeps_raw_message(self):
        assert classify_postgres_error(asyncpg.PostgresError("disk full")) == (500, "disk full")

    def test_is_missing_table(self):
        assert is_missing_table(asyncpg.UndefinedTableError('relation "projects" does not exist'))
        assert is_missing_table(asyncpg.PostgresError('relation "projects" does not exist'))
        assert not is_missing_table(asyncpg.UniqueViolationError("duplicate key"))

    def test_status_table_uses_no_deprecated_names(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error", DeprecationWarning)
            importlib.reload(errors)


class TestHandler:
    async def test_handler_returns_detail_json(self):
        app = FastAPI()
        register_error_handlers(app)

        @app.get("/boom")
        async def boom():
            raise asyncpg.UniqueViolationError("duplicate key value violates unique constraint")

        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
            res = await client.get("/boom")

        assert res.status_code == 409
        assert res.json() == {"detail": "Already exists."}
