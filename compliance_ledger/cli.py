"""Command-line entrypoint for the compliance ledger."""
from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

from compliance_ledger.application.dto import ComplianceBalance, CreatePoolRequest
from compliance_ledger.application.use_cases import (
    ApplyBankedSurplusUseCase,
    BankSurplusUseCase,
    CreatePoolUseCase,
    GetAdjustedComplianceBalanceUseCase,
    GetComplianceBalanceUseCase,
    LedgerContext,
    ListBankEntriesUseCase,
    ListComplianceUseCase,
    ListPoolsUseCase,
)
from compliance_ledger.bootstrap import build_context
from compliance_ledger.config import Settings, load_settings
from compliance_ledger.domain.errors import NotFoundError, PoolValidationError, StorageFault
from compliance_ledger.infrastructure.storage.mapping_store import load_mapping, save_mapping
from compliance_ledger.presentation.ledger_report import (
    bank_entry_rows,
    compliance_rows,
    pool_rows,
    pool_summary,
    render_csv,
    render_table,
)

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_INVALID = 2
EXIT_STORAGE = 3


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compute, bank and pool ship compliance balances")
    parser.add_argument("--database", type=str, help="SQLite ledger file (default: in-memory)")
    parser.add_argument("--routes", type=str, help="CSV/XLSX route catalog (default: seeded routes)")
    parser.add_argument("--csv", action="store_true", help="Print listings as CSV")
    sub = parser.add_subparsers(dest="command", required=True)

    cb = sub.add_parser("cb", help="Show the compliance balance of a ship")
    cb.add_argument("ship_id")
    cb.add_argument("period", type=int)
    cb.add_argument("--adjusted", action="store_true", help="Include banked surplus")

    for name, help_text in (("bank", "Bank a ship's surplus"), ("apply", "Apply banked surplus")):
        command = sub.add_parser(name, help=help_text)
        command.add_argument("ship_id")
        command.add_argument("period", type=int)

    entries = sub.add_parser("entries", help="List bank entries")
    entries.add_argument("--ship", dest="ship_id", help="Only entries of this ship")

    sub.add_parser("compliance", help="List cached compliance balances")

    pool = sub.add_parser("pool", help="Create a pool")
    pool.add_argument("period", type=int)
    pool.add_argument("ship_ids", nargs="+")

    sub.add_parser("pools", help="List pools")

    mapping = sub.add_parser("map", help="Resolve a ship id to a different route id")
    mapping.add_argument("ship_id")
    mapping.add_argument("route_id")
    return parser.parse_args(argv)


def _print_balance(result: ComplianceBalance | None, ship_id: str, period: int) -> int:
    if result is None:
        print(f"No compliance data for ship {ship_id} in {period}")
        return EXIT_NOT_FOUND
    print(f"{result.ship_id} {result.period}: {result.balance}")
    return EXIT_OK


def _print_rows(rows: list[dict[str, str]], as_csv: bool) -> int:
    if as_csv:
        sys.stdout.write(render_csv(rows).decode("utf-8"))
    else:
        print(render_table(rows))
    return EXIT_OK


def _save_route_override(args: argparse.Namespace, settings: Settings) -> int:
    overrides = load_mapping(settings.ship_route_map_path)
    overrides[args.ship_id] = args.route_id
    saved = save_mapping(overrides, settings.ship_route_map_path)
    print(f"{len(saved)} ship/route overrides in {settings.ship_route_map_path}")
    return EXIT_OK


def run(args: argparse.Namespace, context: LedgerContext) -> int:
    command = args.command
    if command == "cb":
        use_case = GetAdjustedComplianceBalanceUseCase if args.adjusted else GetComplianceBalanceUseCase
        return _print_balance(use_case(context).execute(args.ship_id, args.period), args.ship_id, args.period)
    if command == "bank":
        result = BankSurplusUseCase(context).execute(args.ship_id, args.period)
        return _print_balance(result, args.ship_id, args.period)
    if command == "apply":
        result = ApplyBankedSurplusUseCase(context).execute(args.ship_id, args.period)
        return _print_balance(result, args.ship_id, args.period)
    if command == "entries":
        return _print_rows(bank_entry_rows(ListBankEntriesUseCase(context).execute(args.ship_id)), args.csv)
    if command == "compliance":
        return _print_rows(compliance_rows(ListComplianceUseCase(context).execute()), args.csv)
    if command == "pool":
        pool = CreatePoolUseCase(context).execute(CreatePoolRequest(args.period, args.ship_ids))
        _print_rows(pool_rows([pool]), args.csv)
        if not args.csv:
            print(pool_summary(pool))
        return EXIT_OK
    if command == "pools":
        return _print_rows(pool_rows(ListPoolsUseCase(context).execute()), args.csv)
    raise ValueError(f"Unknown command: {command}")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    settings = load_settings()
    if args.database:
        settings = dataclasses.replace(settings, database_path=args.database)
    if args.routes:
        settings = dataclasses.replace(settings, route_catalog_path=Path(args.routes))
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if args.command == "map":
        return _save_route_override(args, settings)

    try:
        context = build_context(settings)
    except StorageFault as exc:
        print(f"Storage error: {exc}", file=sys.stderr)
        return EXIT_STORAGE

    try:
        return run(args, context)
    except NotFoundError as exc:
        print(f"Not found: {exc}", file=sys.stderr)
        return EXIT_NOT_FOUND
    except PoolValidationError as exc:
        print(f"Invalid pool: {exc}", file=sys.stderr)
        return EXIT_INVALID
    except StorageFault as exc:
        print(f"Storage error: {exc}", file=sys.stderr)
        return EXIT_STORAGE
    finally:
        context.storage.close()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
