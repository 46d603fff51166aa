"""
Pydantic schemas for the novena API responses.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    ok: bool
    ts: str


class ServiceIndexResponse(BaseModel):
    ok: bool
    service: str
    endpoints: list[str]


class PeriodResponse(BaseModel):
    start: str
    end: str


class NovenaSummary(BaseModel):
    id: str
    slug: str
    title: str
    caption: str
    daysCount: int
    tags: list[str]
    thumbnail: Optional[str] = None
    period: Optional[PeriodResponse] = None
    month: Optional[str] = None
    type: str


class DaySummary(BaseModel):
    day: int
    title: str


class RawDayResponse(BaseModel):
    day: int
    title: str
    opening: list[Any]
    body: list[Any]
    closing: list[Any]
    override: Optional[dict] = None


class GlobalTextResponse(BaseModel):
    key: str
    title: str
    content: str


class ScriptNovena(BaseModel):
    id: str
    slug: str
    title: str


class ScriptStepResponse(BaseModel):
    kind: str
    step: str
    title: str
    content: Optional[str] = None


class ScriptResponse(BaseModel):
    novena: ScriptNovena
    day: DaySummary
    steps: list[ScriptStepResponse]
