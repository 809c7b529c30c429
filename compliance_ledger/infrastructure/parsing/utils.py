"""Shared parsing utilities for route file ingestion."""
from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from io import BytesIO
from pathlib import Path


def ensure_bytes(source: BytesIO | Path | str | bytes) -> bytes:
    if isinstance(source, bytes):
        return source
    if isinstance(source, BytesIO):
        return source.getvalue()
    if isinstance(source, (Path, str)):
        return Path(source).read_bytes()
    raise TypeError(f"Unsupported source type: {type(source)!r}")


def parse_decimal(value: object) -> Decimal | None:
    """Parse a spreadsheet cell; blanks and garbage become ``None``."""
    if value is None:
        return None
    s = str(value).strip()
    if not s or s.upper() == "NAN":
        return None
    negative = False
    if s.startswith("(") and s.endswith(")"):
        negative = True
        s = s[1:-1]
    for ch in [",", " ", "_"]:
        s = s.replace(ch, "")
    try:
        result = Decimal(s)
    except InvalidOperation:
        return None
    if not result.is_finite():
        return None
    if negative:
        result = -result
    return result


def parse_int(value: object) -> int | None:
    parsed = parse_decimal(value)
    if parsed is None or parsed != parsed.to_integral_value():
        return None
    return int(parsed)


def parse_bool(value: object) -> bool:
    return str(value).strip().lower() in {"true", "1", "yes", "y", "x"}


def normalize_column(name: object) -> str:
    """``routeId``, ``Route ID`` and ``route_id`` all become ``route_id``."""
    text = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", str(name).strip())
    return re.sub(r"[^0-9a-z]+", "_", text.lower()).strip("_")
