"""Route catalog file parser producing canonical ``Route`` records."""
from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import Sequence

import pandas as pd

from compliance_ledger.domain.models import Route
from compliance_ledger.infrastructure.parsing.utils import (
    ensure_bytes,
    normalize_column,
    parse_bool,
    parse_decimal,
    parse_int,
)

logger = logging.getLogger(__name__)

COLUMN_ALIASES = {
    "route": "route_id",
    "ship_id": "route_id",
    "year": "period",
    "ghg": "ghg_intensity",
    "ghg_intensity_g_co2e_mj": "ghg_intensity",
    "fuel_consumption_t": "fuel_consumption",
    "distance_km": "distance",
    "total_emissions_t": "total_emissions",
    "baseline": "is_baseline",
}
REQUIRED_COLUMNS = ("route_id", "period", "ghg_intensity", "fuel_consumption")
EXCEL_SUFFIXES = {".xls", ".xlsx", ".xlsm"}


def read_routes_raw(source: BytesIO | Path | str | bytes, excel: bool = False) -> pd.DataFrame:
    raw = BytesIO(ensure_bytes(source))
    if excel:
        return pd.read_excel(raw, engine="openpyxl", dtype=str, keep_default_na=False)
    return pd.read_csv(raw, dtype=str, keep_default_na=False)


def normalize_routes(df: pd.DataFrame) -> pd.DataFrame:
    work = df.copy()
    renamed = {}
    for column in work.columns:
        name = normalize_column(column)
        renamed[column] = COLUMN_ALIASES.get(name, name)
    work.rename(columns=renamed, inplace=True)

    missing = [c for c in REQUIRED_COLUMNS if c not in work.columns]
    if missing:
        raise ValueError(f"Route file is missing columns: {', '.join(missing)}")

    work["route_id"] = work["route_id"].astype(str).str.strip()
    return work


def routes_to_records(source: BytesIO | Path | str | bytes, excel: bool | None = None) -> Sequence[Route]:
    if excel is None:
        excel = isinstance(source, (Path, str)) and Path(source).suffix.lower() in EXCEL_SUFFIXES
    normalized = normalize_routes(read_routes_raw(source, excel=excel))

    records: list[Route] = []
    for idx, row in normalized.iterrows():
        route_id = row.get("route_id", "")
        period = parse_int(row.get("period"))
        intensity = parse_decimal(row.get("ghg_intensity"))
        consumption = parse_decimal(row.get("fuel_consumption"))
        if not route_id or period is None or intensity is None or consumption is None:
            logger.warning("Skipping incomplete route row %s", idx)
            continue
        records.append(
            Route(
                route_id=route_id,
                period=period,
                ghg_intensity=intensity,
                fuel_consumption=consumption,
                vessel_type=str(row.get("vessel_type", "")).strip(),
                fuel_type=str(row.get("fuel_type", "")).strip(),
                distance=parse_decimal(row.get("distance")),
                total_emissions=parse_decimal(row.get("total_emissions")),
                is_baseline=parse_bool(row.get("is_baseline", "")),
            )
        )
    return records
