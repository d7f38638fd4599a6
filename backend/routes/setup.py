"""Setup status: which application tables exist."""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from backend import db

router = APIRouter(prefix="/api/setup", tags=["setup"])


class SetupStatusResponse(BaseModel):
    ready: bool
    tables: dict[str, bool]
    missing: list[str]


@router.get("", status_code=200)
async def setup_status() -> SetupStatusResponse:
    """
    Report whether the migrations have run.

    The editor uses this to show a "run the migrations" notice instead of
    failing on every request.
    """
    async with db.system_conn() as conn:
        present = await db.existing_tables(conn)
    tables = {name: name in present for name in db.APP_TABLES}
    missing = [name for name, exists in tables.items() if not exists]
    return SetupStatusResponse(ready=not missing, tables=tables, missing=missing)
