"""Database service for the ModCalc catalog, picker, submissions and builds.

Uses the shared Supabase client. All public functions are synchronous; async
endpoints call them through ``asyncio.to_thread``.

Tables:
    cars             : vehicles the estimator runs against
    mods             : aftermarket modifications with average gains
    car_trims        : official stock figures keyed by year/make/model/trim_label
    community_specs  : user-submitted stock figures (status pending/approved)
    builds           : saved predictions per user
"""

import time
from typing import Any, Optional

from postgrest.exceptions import APIError

from modcalc.core.enums import SpecSource
from modcalc.core.logging import log_db_query, logger
from modcalc.models.build import BuildCreate, SavedBuild
from modcalc.models.community import SpecSubmission
from modcalc.models.modification import Modification
from modcalc.models.vehicle import CarSpecs, Vehicle
from modcalc.services.db import get_supabase_client
from modcalc.utils.converters import optional_float

_SPEC_COLUMNS = (
    "stock_hp_bhp, stock_tq_lbft, curb_weight_lb, "
    "zero_to_sixty_s_stock, quarter_mile_s_stock"
)
_SPEC_FIELDS = (
    "stock_hp_bhp",
    "stock_tq_lbft",
    "curb_weight_lb",
    "zero_to_sixty_s_stock",
    "quarter_mile_s_stock",
)


def _rows(result: Any) -> list[dict[str, Any]]:
    if result is not None and result.data and isinstance(result.data, list):
        return [row for row in result.data if isinstance(row, dict)]
    return []


# -----------------------------------------------------------------------------
# Cars & Mods
# -----------------------------------------------------------------------------


def fetch_car(car_id: str) -> Optional[Vehicle]:
    """Fetch one car by id. Returns None if missing or the lookup errors.

    A malformed id (e.g. not a UUID) makes PostgREST raise; that is the
    caller's "not found", not a server error.
    """
    start = time.time()
    try:
        result = (
            get_supabase_client()
            .table("cars")
            .select("*")
            .eq("id", car_id)
            .limit(1)
            .execute()
        )
    except APIError as e:
        logger.warning(f"Car lookup failed car_id={car_id}: {e.message}")
        return None
    log_db_query("fetch_car", "cars", (time.time() - start) * 1000)

    rows = _rows(result)
    return Vehicle(**rows[0]) if rows else None


def fetch_mods(mod_ids: list[str]) -> list[Modification]:
    """Fetch mods by id, in the order requested. Unknown ids are dropped."""
    ordered_ids = list(dict.fromkeys(str(m) for m in mod_ids))
    if not ordered_ids:
        return []

    start = time.time()
    result = (
        get_supabase_client()
        .table("mods")
        .select("*")
        .in_("id", ordered_ids)
        .execute()
    )
    log_db_query("fetch_mods", "mods", (time.time() - start) * 1000)

    by_id = {str(row.get("id")): row for row in _rows(result)}
    return [Modification(**by_id[mid]) for mid in ordered_ids if mid in by_id]


def list_cars() -> list[Vehicle]:
    """Return all cars ordered by make."""
    start = time.time()
    result = get_supabase_client().table("cars").select("*").order("make").execute()
    log_db_query("list_cars", "cars", (time.time() - start) * 1000)
    return [Vehicle(**row) for row in _rows(result)]


def list_mods() -> list[Modification]:
    """Return all mods ordered by category."""
    start = time.time()
    result = get_supabase_client().table("mods").select("*").order("category").execute()
    log_db_query("list_mods", "mods", (time.time() - start) * 1000)
    return [Modification(**row) for row in _rows(result)]


def group_mods_by_category(mods: list[Modification]) -> dict[str, list[Modification]]:
    grouped: dict[str, list[Modification]] = {}
    for mod in mods:
        grouped.setdefault(mod.category, []).append(mod)
    return grouped


# -----------------------------------------------------------------------------
# Vehicle Picker (car_trims cascades)
# -----------------------------------------------------------------------------


def _distinct_trim_values(column: str, filters: dict[str, Any]) -> list[Any]:
    start = time.time()
    query = get_supabase_client().table("car_trims").select(column)
    for key, value in filters.items():
        query = query.eq(key, value)
    result = query.order(column).execute()
    log_db_query(f"distinct_{column}", "car_trims", (time.time() - start) * 1000)

    values = {row[column] for row in _rows(result) if row.get(column) is not None}
    return sorted(values)


def list_years() -> list[int]:
    """Distinct years, newest first."""
    return sorted(
        (int(y) for y in _distinct_trim_values("year", {})), reverse=True
    )


def list_makes(year: int) -> list[str]:
    return _distinct_trim_values("make", {"year": year})


def list_models(year: int, make: str) -> list[str]:
    return _distinct_trim_values("model", {"year": year, "make": make})


def list_trims(year: int, make: str, model: str) -> list[str]:
    return _distinct_trim_values(
        "trim_label", {"year": year, "make": make, "model": model}
    )


# -----------------------------------------------------------------------------
# Stock Spec Lookup (official -> community -> missing)
# -----------------------------------------------------------------------------


def _spec_values(row: dict[str, Any] | None) -> dict[str, float | None]:
    row = row or {}
    return {f: optional_float(row.get(f)) for f in _SPEC_FIELDS}


def get_car_specs(year: int, make: str, model: str, trim_label: str) -> CarSpecs:
    """Resolve stock figures for a picker selection.

    1. ``car_trims`` row with horsepower, torque and weight all present.
    2. Latest approved ``community_specs`` row, with any official values
       taking priority field by field.
    3. Whatever official data exists, marked missing.
    """
    client = get_supabase_client()
    start = time.time()
    official_result = (
        client.table("car_trims")
        .select(_SPEC_COLUMNS)
        .eq("year", year)
        .eq("make", make)
        .eq("model", model)
        .eq("trim_label", trim_label)
        .limit(1)
        .execute()
    )
    log_db_query("get_car_specs", "car_trims", (time.time() - start) * 1000)
    official_rows = _rows(official_result)
    official = _spec_values(official_rows[0] if official_rows else None)

    official_specs = CarSpecs(**official, source=SpecSource.OFFICIAL)
    if official_specs.is_complete:
        return official_specs

    start = time.time()
    community_result = (
        client.table("community_specs")
        .select(_SPEC_COLUMNS)
        .eq("year", year)
        .eq("make", make)
        .eq("model", model)
        .eq("trim_label", trim_label)
        .eq("status", "approved")
        .order("created_at", desc=True)
        .limit(1)
        .execute()
    )
    log_db_query("get_car_specs", "community_specs", (time.time() - start) * 1000)
    community_rows = _rows(community_result)

    if community_rows:
        community = _spec_values(community_rows[0])
        merged = {
            f: official[f] if official[f] is not None else community[f]
            for f in _SPEC_FIELDS
        }
        return CarSpecs(**merged, source=SpecSource.COMMUNITY)

    return CarSpecs(**official, source=SpecSource.MISSING)


# -----------------------------------------------------------------------------
# Community Submissions
# -----------------------------------------------------------------------------


def insert_spec_submission(
    submission: SpecSubmission,
    user_id: str | None = None,
    user_email: str | None = None,
) -> str | None:
    """Store a pending community submission. Returns the new row id if echoed."""
    row = submission.model_dump()
    row["submitted_by"] = user_id
    row["submitted_email"] = user_email or submission.submitted_email
    row["status"] = "pending"

    start = time.time()
    result = get_supabase_client().table("community_specs").insert(row).execute()
    log_db_query("insert", "community_specs", (time.time() - start) * 1000)

    rows = _rows(result)
    if rows and rows[0].get("id") is not None:
        return str(rows[0]["id"])
    return None


# -----------------------------------------------------------------------------
# Builds
# -----------------------------------------------------------------------------


def insert_build(user_id: str, build: BuildCreate) -> None:
    start = time.time()
    get_supabase_client().table("builds").insert(
        {
            "user_id": user_id,
            "car_id": build.car_id,
            "mod_ids": build.mod_ids,
            "result": build.result.model_dump(by_alias=True),
        }
    ).execute()
    log_db_query("insert", "builds", (time.time() - start) * 1000)


def list_builds(user_id: str, limit: int = 10) -> list[SavedBuild]:
    """Most recent builds for a user."""
    start = time.time()
    result = (
        get_supabase_client()
        .table("builds")
        .select("id, created_at, result, car_id, mod_ids")
        .eq("user_id", user_id)
        .order("created_at", desc=True)
        .limit(limit)
        .execute()
    )
    log_db_query("list_builds", "builds", (time.time() - start) * 1000)

    builds: list[SavedBuild] = []
    for row in _rows(result):
        builds.append(
            SavedBuild(
                id=str(row["id"]),
                created_at=str(row["created_at"]) if row.get("created_at") else None,
                car_id=str(row.get("car_id", "")),
                mod_ids=[str(m) for m in row.get("mod_ids") or []],
                result=row.get("result") or {},
            )
        )
    return builds
