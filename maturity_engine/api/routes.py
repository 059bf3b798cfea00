"""
API routes — thin HTTP layer that delegates to the MaturityService.

Routes:
  GET   /health                                              → API health check
  GET   /api/catalogues                                      → Response choices, INCC levels, bands
  GET   /api/cache/stats                                     → Cache size / hit rate
  GET   /api/programs/{pid}/tree                             → Navigation tree with scores
  GET   /api/programs/{pid}/diagnostics/{did}/maturity       → Diagnostic maturity
  GET   /api/programs/{pid}/controls/{cid}/maturity          → Control maturity (+ breakdown)
  GET   /api/programs/{pid}/controls/{cid}/measures          → Detailed measures (lazy)
  PATCH /api/programs/{pid}/controls/{cid}/measures/{mid}    → Update one response field
  PUT   /api/programs/{pid}/controls/{cid}/incc              → Update the INCC level
  POST  /api/programs/{pid}/invalidate                       → Drop a program's cache
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from maturity_engine.cache.store import CacheStats
from maturity_engine.exceptions import WriteError
from maturity_engine.models.schemas import (
    DetailedMeasure,
    EssentialBundle,
    MaturityResult,
    ResponseEntry,
    TreeNode,
)
from maturity_engine.scoring import weight_tables
from maturity_engine.services.maturity_service import MaturityService

logger = logging.getLogger(__name__)

# ── Routers ──────────────────────────────────────────────
health_router = APIRouter()
catalogue_router = APIRouter()
program_router = APIRouter()

# ── Service singleton (overridable via dependency_overrides) ──
_service: MaturityService | None = None


def get_service() -> MaturityService:
    global _service
    if _service is None:
        _service = MaturityService()
    return _service


# ── Request / response schemas ───────────────────────────

class MaturityResponse(BaseModel):
    program_id: int
    entity_id: int
    has_data: bool
    result: Optional[MaturityResult] = None


class ResponseUpdateRequest(BaseModel):
    field: str = "response"
    value: Any = None


class ResponseUpdateResponse(BaseModel):
    entry: ResponseEntry
    control: MaturityResponse
    diagnostic: MaturityResponse


class InccUpdateRequest(BaseModel):
    level: int


class InccUpdateResponse(BaseModel):
    control_id: int
    incc_level: int
    control: MaturityResponse
    diagnostic: MaturityResponse


class InvalidateResponse(BaseModel):
    program_id: int
    removed: int


def _maturity(program_id: int, entity_id: int, result: Optional[MaturityResult]) -> MaturityResponse:
    return MaturityResponse(
        program_id=program_id, entity_id=entity_id, has_data=result is not None, result=result
    )


async def _load(service: MaturityService, program_id: int) -> EssentialBundle:
    outcome = await service.load_essential(program_id)
    if not outcome.ok:
        raise HTTPException(status_code=503, detail=outcome.error)
    return outcome.bundle


def _control_or_404(bundle: EssentialBundle, control_id: int):
    control = bundle.find_control(control_id)
    if control is None:
        raise HTTPException(
            status_code=404,
            detail=f"Control {control_id} not found in program {bundle.program_id}",
        )
    return control


# ── Health ───────────────────────────────────────────────

@health_router.get("/health")
async def health_check():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ── Catalogues & cache ───────────────────────────────────

@catalogue_router.get("/catalogues")
async def get_catalogues():
    return {
        "graduated_choices": [c.model_dump() for c in weight_tables.GRADUATED_CHOICES],
        "binary_choices": [c.model_dump() for c in weight_tables.BINARY_CHOICES],
        "incc_levels": [lvl.model_dump() for lvl in weight_tables.INCC_LEVELS],
        "maturity_bands": [b.model_dump(mode="json") for b in weight_tables.MATURITY_BANDS],
        "measure_statuses": [s.model_dump() for s in weight_tables.MEASURE_STATUSES],
        "action_plan_statuses": [s.model_dump() for s in weight_tables.ACTION_PLAN_STATUSES],
    }


@catalogue_router.get("/cache/stats", response_model=CacheStats)
async def get_cache_stats(service: MaturityService = Depends(get_service)):
    return service.cache_stats()


# ── Scores & navigation ──────────────────────────────────

@program_router.get("/{program_id}/tree", response_model=TreeNode)
async def get_tree(program_id: int, service: MaturityService = Depends(get_service)):
    await _load(service, program_id)
    return service.build_tree(program_id)


@program_router.get(
    "/{program_id}/diagnostics/{diagnostic_id}/maturity", response_model=MaturityResponse
)
async def get_diagnostic_maturity(
    program_id: int, diagnostic_id: int, service: MaturityService = Depends(get_service)
):
    bundle = await _load(service, program_id)
    if not any(d.id == diagnostic_id for d in bundle.diagnostics):
        raise HTTPException(status_code=404, detail=f"Diagnostic {diagnostic_id} not found")
    return _maturity(
        program_id, diagnostic_id, service.get_diagnostic_maturity(program_id, diagnostic_id)
    )


@program_router.get(
    "/{program_id}/controls/{control_id}/maturity", response_model=MaturityResponse
)
async def get_control_maturity(
    program_id: int, control_id: int, service: MaturityService = Depends(get_service)
):
    bundle = await _load(service, program_id)
    control = _control_or_404(bundle, control_id)
    return _maturity(program_id, control_id, service.get_control_maturity(program_id, control))


@program_router.get(
    "/{program_id}/controls/{control_id}/measures", response_model=list[DetailedMeasure]
)
async def get_control_measures(
    program_id: int, control_id: int, service: MaturityService = Depends(get_service)
):
    bundle = await _load(service, program_id)
    _control_or_404(bundle, control_id)
    return await service.load_detailed(control_id, program_id)


# ── Mutations ────────────────────────────────────────────

@program_router.patch(
    "/{program_id}/controls/{control_id}/measures/{measure_id}",
    response_model=ResponseUpdateResponse,
)
async def update_measure_response(
    program_id: int,
    control_id: int,
    measure_id: int,
    body: ResponseUpdateRequest,
    service: MaturityService = Depends(get_service),
):
    bundle = await _load(service, program_id)
    control = _control_or_404(bundle, control_id)
    try:
        entry = await service.update_response(
            program_id, measure_id, control_id, body.field, body.value
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except KeyError as e:
        raise HTTPException(status_code=404, detail=e.args[0] if e.args else str(e))
    except WriteError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return ResponseUpdateResponse(
        entry=entry,
        control=_maturity(program_id, control_id, service.get_control_maturity(program_id, control_id)),
        diagnostic=_maturity(
            program_id,
            control.diagnostic_id,
            service.get_diagnostic_maturity(program_id, control.diagnostic_id),
        ),
    )


@program_router.put(
    "/{program_id}/controls/{control_id}/incc", response_model=InccUpdateResponse
)
async def update_incc_level(
    program_id: int,
    control_id: int,
    body: InccUpdateRequest,
    service: MaturityService = Depends(get_service),
):
    bundle = await _load(service, program_id)
    _control_or_404(bundle, control_id)
    try:
        control = await service.update_capability_level(program_id, control_id, body.level)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except WriteError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return InccUpdateResponse(
        control_id=control_id,
        incc_level=control.incc_level,
        control=_maturity(program_id, control_id, service.get_control_maturity(program_id, control_id)),
        diagnostic=_maturity(
            program_id,
            control.diagnostic_id,
            service.get_diagnostic_maturity(program_id, control.diagnostic_id),
        ),
    )


@program_router.post("/{program_id}/invalidate", response_model=InvalidateResponse)
async def invalidate_program(program_id: int, service: MaturityService = Depends(get_service)):
    removed = service.invalidate_all(program_id)
    logger.info(f"Program {program_id} cache dropped on request ({removed} entries)")
    return InvalidateResponse(program_id=program_id, removed=removed)
