"""FastAPI route definitions for the ModCalc API."""

import asyncio
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from modcalc.api.deps import (
    CurrentUser,
    get_ai_notes,
    get_cache,
    get_current_user,
    require_user,
)
from modcalc.api.limiter import limiter, rate_limit_value
from modcalc.core.logging import log_error, log_prediction, logger
from modcalc.models.build import BuildCreate, SavedBuild
from modcalc.models.community import SpecSubmission, SubmissionReceipt
from modcalc.models.modification import Modification
from modcalc.models.prediction import PredictionResult, PredictRequest
from modcalc.models.vehicle import CarSpecs, Vehicle
from modcalc.services import catalog_db, usage
from modcalc.services.ai_notes import AINotesService, needs_ai_notes
from modcalc.services.catalog_cache import CatalogCache
from modcalc.services.estimator import predict

router = APIRouter()

# Shown when car_trims is empty so the picker is never blank
FALLBACK_YEARS: list[int] = [2020, 2019, 2018, 2017, 2016, 2015]


# ---------------------------------------------------------------------------
# Prediction
# ---------------------------------------------------------------------------


@router.post("/predict", response_model=PredictionResult)
@limiter.limit(rate_limit_value)
async def predict_build(
    request: Request,
    body: PredictRequest,
    user: Annotated[Optional[CurrentUser], Depends(get_current_user)],
    ai_notes: Annotated[AINotesService, Depends(get_ai_notes)],
):
    """Estimate performance for a car with a list of mods applied.

    Signed-in users are held to their plan's daily quota (429 when spent);
    every caller is also rate limited per IP.
    """
    try:
        status = None
        if user:
            status = await asyncio.to_thread(usage.get_usage_status, user.id)
            if status.exhausted:
                raise HTTPException(
                    status_code=429,
                    detail=f"Daily limit reached for {status.plan.value} plan.",
                )

        car = await asyncio.to_thread(catalog_db.fetch_car, body.car_id)
        if car is None:
            raise HTTPException(status_code=404, detail="Car not found")

        mods = await asyncio.to_thread(catalog_db.fetch_mods, body.mod_ids)

        result = predict(car, mods)

        got_notes = False
        if needs_ai_notes(mods):
            try:
                extra = await ai_notes.generate_notes(car, mods)
            except Exception as e:
                logger.warning(f"AI notes failed, returning base estimate: {e}")
                extra = {}
            if extra.get("notes"):
                result = result.with_notes(extra["notes"])
                got_notes = True

        if user:
            await asyncio.to_thread(usage.record_usage, user.id)

        log_prediction(
            body.car_id,
            len(mods),
            result.estimated_hp,
            got_notes,
            user.id if user else None,
        )

        return result
    except HTTPException:
        raise
    except Exception as e:
        log_error("Prediction failed", e, car_id=body.car_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/usage")
async def get_usage(
    user: Annotated[Optional[CurrentUser], Depends(get_current_user)],
):
    """Today's prediction usage against the plan limit."""
    try:
        status = await asyncio.to_thread(
            usage.get_usage_status, user.id if user else None
        )
        return status.as_dict()
    except Exception as e:
        log_error("Failed to get usage", e)
        raise HTTPException(status_code=500, detail="Failed to retrieve usage")


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@router.get("/cars", response_model=list[Vehicle])
async def get_cars():
    """All cars, ordered by make."""
    try:
        return await asyncio.to_thread(catalog_db.list_cars)
    except Exception as e:
        log_error("Failed to get cars", e)
        raise HTTPException(status_code=500, detail="Failed to retrieve cars")


@router.get("/mods")
async def get_mods(grouped: bool = False) -> Any:
    """All mods ordered by category, optionally grouped by category."""
    try:
        mods: list[Modification] = await asyncio.to_thread(catalog_db.list_mods)
    except Exception as e:
        log_error("Failed to get mods", e)
        raise HTTPException(status_code=500, detail="Failed to retrieve mods")

    if grouped:
        return {
            category: [m.model_dump() for m in items]
            for category, items in catalog_db.group_mods_by_category(mods).items()
        }
    return [m.model_dump() for m in mods]


# ---------------------------------------------------------------------------
# Vehicle Picker (year -> make -> model -> trim)
# ---------------------------------------------------------------------------


@router.get("/years")
async def get_years(cache: Annotated[CatalogCache, Depends(get_cache)]):
    """Available years, newest first."""
    try:
        years = await asyncio.to_thread(
            cache.get_or_load, cache.make_key("years"), catalog_db.list_years
        )
    except Exception as e:
        log_error("Failed to get years", e)
        raise HTTPException(status_code=500, detail="Failed to retrieve years")
    return {"years": years or FALLBACK_YEARS}


@router.get("/makes")
async def get_makes(
    year: int,
    cache: Annotated[CatalogCache, Depends(get_cache)],
):
    """Makes available for a year."""
    try:
        makes = await asyncio.to_thread(
            cache.get_or_load,
            cache.make_key("makes", year=year),
            lambda: catalog_db.list_makes(year),
        )
        return {"makes": makes}
    except Exception as e:
        log_error("Failed to get makes", e, year=year)
        raise HTTPException(status_code=500, detail="Failed to retrieve makes")


@router.get("/models")
async def get_models(
    year: int,
    make: Annotated[str, Query(min_length=1)],
    cache: Annotated[CatalogCache, Depends(get_cache)],
):
    """Models available for a year and make."""
    try:
        models = await asyncio.to_thread(
            cache.get_or_load,
            cache.make_key("models", year=year, make=make),
            lambda: catalog_db.list_models(year, make),
        )
        return {"models": models}
    except Exception as e:
        log_error("Failed to get models", e, year=year, make=make)
        raise HTTPException(status_code=500, detail="Failed to retrieve models")


@router.get("/trims")
async def get_trims(
    year: int,
    make: Annotated[str, Query(min_length=1)],
    model: Annotated[str, Query(min_length=1)],
    cache: Annotated[CatalogCache, Depends(get_cache)],
):
    """Trim labels available for a year, make and model."""
    try:
        trims = await asyncio.to_thread(
            cache.get_or_load,
            cache.make_key("trims", year=year, make=make, model=model),
            lambda: catalog_db.list_trims(year, make, model),
        )
        return {"trims": trims}
    except Exception as e:
        log_error("Failed to get trims", e, year=year, make=make, model=model)
        raise HTTPException(status_code=500, detail="Failed to retrieve trims")


@router.get("/car-specs", response_model=CarSpecs)
async def get_car_specs(
    year: int,
    make: Annotated[str, Query(min_length=1)],
    model: Annotated[str, Query(min_length=1)],
    trim_label: Annotated[str, Query(min_length=1)],
):
    """Stock figures for a trim: official, then approved community data."""
    try:
        return await asyncio.to_thread(
            catalog_db.get_car_specs, year, make, model, trim_label
        )
    except Exception as e:
        log_error("Failed to get car specs", e, year=year, make=make, model=model)
        raise HTTPException(status_code=500, detail="Failed to retrieve car specs")


# ---------------------------------------------------------------------------
# Community Submissions
# ---------------------------------------------------------------------------


@router.post("/community-specs", response_model=SubmissionReceipt, status_code=201)
async def submit_community_specs(
    submission: SpecSubmission,
    user: Annotated[Optional[CurrentUser], Depends(get_current_user)],
):
    """Submit stock figures for a trim. Submissions are reviewed before use."""
    try:
        row_id = await asyncio.to_thread(
            catalog_db.insert_spec_submission,
            submission,
            user.id if user else None,
            user.email if user else None,
        )
    except Exception as e:
        log_error("Failed to store submission", e, make=submission.make)
        raise HTTPException(status_code=500, detail="Failed to submit specs")

    logger.info(
        f"Community specs submitted for {submission.year} {submission.make} "
        f"{submission.model} {submission.trim_label}"
    )
    return SubmissionReceipt(status="pending", id=row_id)


# ---------------------------------------------------------------------------
# Builds
# ---------------------------------------------------------------------------


@router.post("/builds", status_code=201)
async def save_build(
    build: BuildCreate,
    user: Annotated[CurrentUser, Depends(require_user)],
):
    """Save a prediction for the signed-in user."""
    try:
        await asyncio.to_thread(catalog_db.insert_build, user.id, build)
    except Exception as e:
        log_error("Failed to save build", e, car_id=build.car_id)
        raise HTTPException(status_code=500, detail="Failed to save build")
    return {"message": "Saved"}


@router.get("/builds", response_model=list[SavedBuild])
async def get_builds(user: Annotated[CurrentUser, Depends(require_user)]):
    """The signed-in user's 10 most recent builds."""
    try:
        return await asyncio.to_thread(catalog_db.list_builds, user.id)
    except Exception as e:
        log_error("Failed to load builds", e)
        raise HTTPException(status_code=500, detail="Failed to retrieve builds")
