"""Starter template catalog."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from backend.models.preview import TemplateDetail, TemplateSummary
from engine.preview.templates import TEMPLATES, get_template

router = APIRouter(prefix="/api/templates", tags=["templates"])


@router.get("", status_code=200)
async def list_templates() -> list[TemplateSummary]:
    """Every starter template, in catalog order. No sign-in required."""
    return [TemplateSummary(**template.summary()) for template in TEMPLATES]


@router.get("/{template_id}", status_code=200)
async def get_template_detail(template_id: str) -> TemplateDetail:
    template = get_template(template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Template not found.")
    return TemplateDetail.from_template(template)
