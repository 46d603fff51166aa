"""
HTTP routes for the novena API.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query

from novena_api.dependencies import get_catalog
from novena_api.schemas import (
    DaySummary,
    GlobalTextResponse,
    HealthResponse,
    NovenaSummary,
    RawDayResponse,
    ScriptNovena,
    ScriptResponse,
    ScriptStepResponse,
    ServiceIndexResponse,
)
from novena_content.catalog import Catalog
from novena_content.expand import expand_day
from novena_content.script import build_script
from novena_content.types import Novena, raw_blocks

router = APIRouter()

NOVENA_NOT_FOUND = "Novena não encontrada"
DAY_NOT_FOUND = "Dia não encontrado"
INVALID_DAY = "Dia inválido"
GLOBAL_TEXT_NOT_FOUND = "Texto global não encontrado"

# Plain decimal numbers only; rejects Python-only forms such as "1_0".
DAY_NUMBER_PATTERN = re.compile(
    r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?\s*$", re.ASCII
)

ENDPOINTS = [
    "GET /novenas",
    "GET /novenas/:id",
    "GET /novenas/:id/dias",
    "GET /novenas/:id/dias/:dia?expand=1",
    "GET /novenas/:id/dias/:dia/roteiro",
    "GET /texts/global",
    "GET /texts/global/:key",
]


def _get_novena_or_404(catalog: Catalog, novena_id: str) -> Novena:
    novena = catalog.get_novena(novena_id)
    if novena is None:
        raise HTTPException(status_code=404, detail=NOVENA_NOT_FOUND)
    return novena


def _parse_day_number(raw: str, novena: Novena) -> int:
    """Accept any integral number within [1, daysCount]."""
    if not DAY_NUMBER_PATTERN.match(raw):
        raise HTTPException(status_code=400, detail=INVALID_DAY)
    try:
        value = float(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail=INVALID_DAY) from None
    if not math.isfinite(value) or not value.is_integer():
        raise HTTPException(status_code=400, detail=INVALID_DAY)
    number = int(value)
    if number < 1 or number > novena.meta.days_count:
        raise HTTPException(status_code=400, detail=INVALID_DAY)
    return number


@router.get("/", response_model=ServiceIndexResponse)
def service_index():
    return ServiceIndexResponse(ok=True, service="novena-api", endpoints=ENDPOINTS)


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(ok=True, ts=datetime.now(timezone.utc).isoformat())


@router.get("/novenas", response_model=list[NovenaSummary])
def list_novenas(
    q: str | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    catalog: Catalog = Depends(get_catalog),
):
    novenas = catalog.search(q)
    return [novena.summary() for novena in novenas[offset : offset + limit]]


@router.get("/novenas/{novena_id}")
def get_novena(novena_id: str, catalog: Catalog = Depends(get_catalog)):
    return _get_novena_or_404(catalog, novena_id).to_dict()


@router.get("/novenas/{novena_id}/dias", response_model=list[DaySummary])
def list_days(novena_id: str, catalog: Catalog = Depends(get_catalog)):
    novena = _get_novena_or_404(catalog, novena_id)
    return [
        DaySummary(day=day.number, title=day.title)
        for day in sorted(novena.days, key=lambda d: d.number)
    ]


@router.get("/novenas/{novena_id}/dias/{dia}")
def get_day(
    novena_id: str,
    dia: str,
    expand: str = Query("1"),
    catalog: Catalog = Depends(get_catalog),
):
    """
    Return one day, expanded by default or raw with `expand=0`.

    Expansion errors propagate to the app-level handler and become a 500.
    """
    novena = _get_novena_or_404(catalog, novena_id)
    number = _parse_day_number(dia, novena)

    if expand == "0":
        day = novena.find_day(number)
        if day is None:
            raise HTTPException(status_code=404, detail=DAY_NOT_FOUND)
        return RawDayResponse(
            day=day.number,
            title=day.title,
            opening=raw_blocks(novena.defaults.opening),
            body=raw_blocks(day.body),
            closing=raw_blocks(novena.defaults.closing),
            override=day.overrides.to_raw() if day.overrides else None,
        )

    expanded = expand_day(novena, number, catalog.global_texts)
    if expanded is None:
        raise HTTPException(status_code=404, detail=DAY_NOT_FOUND)
    return expanded.to_dict()


@router.get("/novenas/{novena_id}/dias/{dia}/roteiro", response_model=ScriptResponse)
def get_day_script(
    novena_id: str, dia: str, catalog: Catalog = Depends(get_catalog)
):
    novena = _get_novena_or_404(catalog, novena_id)
    number = _parse_day_number(dia, novena)
    entries = build_script(novena, number)
    if entries is None:
        raise HTTPException(status_code=404, detail=DAY_NOT_FOUND)
    day = novena.find_day(number)
    return ScriptResponse(
        novena=ScriptNovena(id=novena.id, slug=novena.slug, title=novena.meta.title),
        day=DaySummary(day=day.number, title=day.title),
        steps=[ScriptStepResponse(**entry.to_dict()) for entry in entries],
    )


@router.get("/texts/global", response_model=list[GlobalTextResponse])
def list_global_texts(catalog: Catalog = Depends(get_catalog)):
    return [text.to_dict() for text in catalog.global_texts.values()]


@router.get("/texts/global/{key}", response_model=GlobalTextResponse)
def get_global_text(key: str, catalog: Catalog = Depends(get_catalog)):
    text = catalog.get_global_text(key)
    if text is None:
        raise HTTPException(status_code=404, detail=GLOBAL_TEXT_NOT_FOUND)
    return text.to_dict()
