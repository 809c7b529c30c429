"""Central configuration for the compliance ledger package."""
from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Context, Decimal
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

# Regulatory target intensity (gCO2e/MJ) and the MJ-per-tonne conversion used in the CB formula.
TARGET_INTENSITY = Decimal("89.3368")
UNIT_SCALE = Decimal("41000")

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_SHIP_ROUTE_MAP = BASE_DIR / "ship_route_map.json"


@dataclass(slots=True, frozen=True)
class Settings:
    decimal_context: Context
    target_intensity: Decimal
    unit_scale: Decimal
    database_path: str | None
    route_catalog_path: Path | None
    ship_route_map_path: Path
    log_level: str


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    if environ is None:
        load_dotenv()
        environ = os.environ

    routes = environ.get("CB_LEDGER_ROUTES")
    mapping = environ.get("CB_LEDGER_SHIP_ROUTE_MAP")
    return Settings(
        decimal_context=Context(prec=28),
        target_intensity=Decimal(environ.get("CB_LEDGER_TARGET_INTENSITY", TARGET_INTENSITY)),
        unit_scale=Decimal(environ.get("CB_LEDGER_UNIT_SCALE", UNIT_SCALE)),
        database_path=environ.get("CB_LEDGER_DATABASE") or None,
        route_catalog_path=Path(routes) if routes else None,
        ship_route_map_path=Path(mapping) if mapping else DEFAULT_SHIP_ROUTE_MAP,
        log_level=environ.get("CB_LEDGER_LOG_LEVEL", "WARNING").upper(),
    )


SETTINGS = load_settings()
