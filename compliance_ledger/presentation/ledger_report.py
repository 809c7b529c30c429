"""Tabular renderers for ledger state."""
from __future__ import annotations

import csv
import io
from typing import Sequence

from compliance_ledger.domain.models import BankEntry, Pool, ShipComplianceRecord


def compliance_rows(records: Sequence[ShipComplianceRecord]) -> list[dict[str, str]]:
    return [
        {"ship_id": r.ship_id, "period": str(r.period), "cb": str(r.cb_value)}
        for r in records
    ]


def bank_entry_rows(entries: Sequence[BankEntry]) -> list[dict[str, str]]:
    return [
        {"id": str(e.id), "ship_id": e.ship_id, "period": str(e.period), "amount": str(e.amount)}
        for e in entries
    ]


def pool_rows(pools: Sequence[Pool]) -> list[dict[str, str]]:
    rows: list[dict[str, str]] = []
    for pool in pools:
        for member in pool.members:
            rows.append(
                {
                    "pool_id": str(pool.id),
                    "period": str(pool.period),
                    "created_at": pool.created_at.isoformat(),
                    "ship_id": member.ship_id,
                    "cb_before": str(member.cb_before),
                    "cb_after": str(member.cb_after),
                }
            )
    return rows


def render_csv(rows: Sequence[dict[str, str]]) -> bytes:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(rows[0].keys()) if rows else [])
    if rows:
        writer.writeheader()
        writer.writerows(rows)
    return buffer.getvalue().encode("utf-8")


def render_table(rows: Sequence[dict[str, str]]) -> str:
    if not rows:
        return "(none)"
    columns = list(rows[0].keys())
    widths = {c: max(len(c), *(len(row[c]) for row in rows)) for c in columns}
    lines = ["  ".join(c.ljust(widths[c]) for c in columns)]
    lines.append("  ".join("-" * widths[c] for c in columns))
    for row in rows:
        lines.append("  ".join(row[c].ljust(widths[c]) for c in columns))
    return "\n".join(lines)


def pool_summary(pool: Pool) -> str:
    return (
        f"Pool {pool.id} ({pool.period}): {len(pool.members)} ships, "
        f"total before {pool.total_before()}, total after {pool.total_after()}"
    )
