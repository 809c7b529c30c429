"""Storage helpers for ship to route identifier overrides."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from compliance_ledger.config import DEFAULT_SHIP_ROUTE_MAP

logger = logging.getLogger(__name__)


def _normalize_mapping(raw: dict[str, Any] | None) -> dict[str, str]:
    normalized: dict[str, str] = {}
    if not isinstance(raw, dict):
        return normalized
    for key, value in raw.items():
        if key is None or value is None:
            continue
        key_str = str(key).strip()
        value_str = str(value).strip()
        if not key_str or not value_str:
            continue
        normalized[key_str] = value_str
    return normalized


def load_mapping(path: Path | None = None) -> dict[str, str]:
    """Return explicit overrides; an empty mapping means ship id == route id."""
    override_path = path or DEFAULT_SHIP_ROUTE_MAP
    if not override_path.exists():
        return {}
    try:
        data = json.loads(override_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        logger.warning("Ignoring unreadable ship/route mapping at %s", override_path)
        return {}
    return _normalize_mapping(data)


def save_mapping(mapping: dict[str, str], path: Path | None = None) -> dict[str, str]:
    override_path = path or DEFAULT_SHIP_ROUTE_MAP
    normalized = _normalize_mapping(mapping)
    override_path.write_text(
        json.dumps(normalized, ensure_ascii=False, indent=2, sort_keys=True),
        encoding="utf-8",
    )
    return normalized
