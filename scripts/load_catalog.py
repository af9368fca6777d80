#!/usr/bin/env python
"""Seed the ``cars`` and ``mods`` tables from CSV files.

Usage:
    python scripts/load_catalog.py --cars datafiles/cars.csv --mods datafiles/mods.csv

Rows are upserted on ``id`` in batches. Blank cells become nulls, which the
estimator fills in with its heuristics.
"""

import argparse
import sys
from pathlib import Path
from typing import Any

import pandas as pd

sys.path.insert(0, str(Path(__file__).parent.parent))

from modcalc.core.logging import logger
from modcalc.services.db import get_supabase_client
from modcalc.utils.converters import optional_float, safe_bool, safe_float

BATCH_SIZE = 500

CAR_COLUMNS = [
    "id",
    "make",
    "model",
    "year",
    "trim",
    "body_style",
    "drivetrain",
    "curb_weight_lbs",
    "stock_hp",
    "stock_tq",
    "zero_to_sixty_s",
    "quarter_mile_s",
]
CAR_NUMERIC = ["curb_weight_lbs", "stock_hp", "stock_tq", "zero_to_sixty_s", "quarter_mile_s"]

MOD_COLUMNS = [
    "id",
    "slug",
    "name",
    "category",
    "avg_hp_gain",
    "avg_tq_gain",
    "avg_weight_delta_lbs",
    "needs_tune",
    "notes",
]
MOD_NUMERIC = ["avg_hp_gain", "avg_tq_gain", "avg_weight_delta_lbs"]


def _clean(value: Any) -> Any:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def car_rows(df: pd.DataFrame) -> list[dict[str, Any]]:
    rows = []
    for record in df.to_dict(orient="records"):
        row = {col: _clean(record.get(col)) for col in CAR_COLUMNS if col in df.columns}
        for col in CAR_NUMERIC:
            if col in row:
                row[col] = optional_float(row[col])
        if row.get("year") is not None:
            row["year"] = int(row["year"])
        if row.get("drivetrain"):
            row["drivetrain"] = str(row["drivetrain"]).upper()
        rows.append(row)
    return rows


def mod_rows(df: pd.DataFrame) -> list[dict[str, Any]]:
    rows = []
    for record in df.to_dict(orient="records"):
        row = {col: _clean(record.get(col)) for col in MOD_COLUMNS if col in df.columns}
        for col in MOD_NUMERIC:
            row[col] = safe_float(row.get(col))
        row["needs_tune"] = safe_bool(row.get("needs_tune"))
        rows.append(row)
    return rows


def upsert(table: str, rows: list[dict[str, Any]]) -> int:
    client = get_supabase_client()
    for i in range(0, len(rows), BATCH_SIZE):
        client.table(table).upsert(rows[i : i + BATCH_SIZE]).execute()
    logger.info(f"Upserted {len(rows)} rows into {table}")
    return len(rows)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed ModCalc catalog tables")
    parser.add_argument("--cars", type=Path, help="CSV of vehicles")
    parser.add_argument("--mods", type=Path, help="CSV of modifications")
    args = parser.parse_args()

    if not args.cars and not args.mods:
        parser.error("pass --cars and/or --mods")

    for path in (args.cars, args.mods):
        if path and not path.exists():
            print(f"Error: CSV file not found at {path}")
            sys.exit(1)

    if args.cars:
        print(f"Loading cars from {args.cars}...")
        count = upsert("cars", car_rows(pd.read_csv(args.cars)))
        print(f"Successfully loaded {count} cars")

    if args.mods:
        print(f"Loading mods from {args.mods}...")
        count = upsert("mods", mod_rows(pd.read_csv(args.mods)))
        print(f"Successfully loaded {count} mods")


if __name__ == "__main__":
    main()
