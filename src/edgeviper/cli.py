"""Command line entry point: ``edgeviper <command> [options]``."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Sequence

from edgeviper.config import get_settings
from edgeviper.logging_utils import configure_logging

logger = logging.getLogger("edgeviper.cli")


def _dry_run(args: argparse.Namespace) -> bool:
    return bool(args.dry_run or get_settings().dry_run)


def cmd_snapshot(args: argparse.Namespace) -> int:
    from edgeviper.offers.snapshot import snapshot_page

    result = snapshot_page(args.url, Path(args.out) if args.out else None)
    print(f"Saved {result.html_path} (status {result.status})")
    return 0


def cmd_parse(args: argparse.Namespace) -> int:
    from edgeviper.valuation.pipeline import load_snapshot

    offers = load_snapshot(Path(args.file), args.url or "")
    print(json.dumps([asdict(offer) for offer in offers], indent=2))
    print(f"Found {len(offers)} candidate boosts.")
    return 0


def cmd_publish(args: argparse.Namespace) -> int:
    from edgeviper.db.bet_tracker import BetTrackerStore
    from edgeviper.valuation.pipeline import publish_offers

    dry_run = _dry_run(args) or not args.write
    offers = publish_offers(Path(args.file), source_url=args.url or "", store=BetTrackerStore(), dry_run=dry_run)
    verb = "Previewed" if dry_run else "Published"
    print(f"{verb} {len(offers)} de-duplicated offers.")
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    from edgeviper.scheduling.jobs import run_valuation_job
    from edgeviper.valuation.types import Thresholds

    defaults = Thresholds()
    thresholds = Thresholds(
        max_spread_pct=defaults.max_spread_pct if args.maxspread is None else args.maxspread,
        min_liquidity=defaults.min_liquidity if args.minliq is None else args.minliq,
        threshold=defaults.threshold if args.threshold is None else args.threshold,
    )
    results = run_valuation_job(Path(args.file), source_url=args.url or "", thresholds=thresholds, dry_run=_dry_run(args))
    for item in results:
        print(f"{item.bet} | boosted {item.boosted:g} | fair {item.fair:.3f} | rating {item.rating:.3f} | legs {item.legs}")
    print(f"Done. {len(results)} value offers.")
    return 0


def cmd_settle(args: argparse.Namespace) -> int:
    from edgeviper.scheduling.jobs import run_settlement_job

    summary = run_settlement_job(dry_run=_dry_run(args))
    print(
        f"Scanned {summary.scanned}, eligible {summary.eligible}, markets {summary.markets}, "
        f"settled {len(summary.settled)}, failed rows {len(summary.failed_rows)}"
    )
    return 0


def cmd_post_bets(args: argparse.Namespace) -> int:
    from edgeviper.scheduling.jobs import run_publish_job

    print(f"Posted {run_publish_job()['posted']} bets.")
    return 0


def cmd_approve(args: argparse.Namespace) -> int:
    from edgeviper.db.bet_tracker import BetTrackerStore

    BetTrackerStore().approve(args.row)
    print(f"Row {args.row} approved.")
    return 0


def cmd_dump_teams(args: argparse.Namespace) -> int:
    from edgeviper.exchange.client import BetfairClient
    from edgeviper.teams.inventory import write_team_inventory

    out = Path(args.out) if args.out else get_settings().alias_inventory_path
    with BetfairClient() as client:
        payload = write_team_inventory(client, args.hours, out)
    print(f"Wrote {payload['totalTeams']} teams from {payload['totalMarkets']} markets to {out}")
    return 0


def cmd_init_db(args: argparse.Namespace) -> int:
    from edgeviper.db.database import init_db

    init_db()
    print("Database tables created.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="edgeviper", description="Price-boost value finder and bet settlement.")
    parser.add_argument("--debug", action="store_true", help="verbose logging")
    parser.add_argument("--dry-run", action="store_true", help="print intended writes instead of saving")
    parser.add_argument("--log-file", default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    snap = sub.add_parser("snapshot", help="save a boost page snapshot")
    snap.add_argument("--url", required=True)
    snap.add_argument("--out", default=None)
    snap.set_defaults(func=cmd_snapshot)

    parse = sub.add_parser("parse", help="print offers parsed from a snapshot")
    parse.add_argument("--file", required=True)
    parse.add_argument("--url", default=None)
    parse.set_defaults(func=cmd_parse)

    publish = sub.add_parser("publish", help="record parsed offers without pricing")
    publish.add_argument("--file", required=True)
    publish.add_argument("--url", default=None)
    publish.add_argument("--write", action="store_true", help="save rows instead of previewing them")
    publish.set_defaults(func=cmd_publish)

    run = sub.add_parser("run", help="value a snapshot against the exchange")
    run.add_argument("--file", required=True)
    run.add_argument("--url", default=None)
    run.add_argument("--threshold", type=float, default=None)
    run.add_argument("--minliq", type=float, default=None)
    run.add_argument("--maxspread", type=float, default=None)
    run.set_defaults(func=cmd_run)

    settle = sub.add_parser("settle", help="write results for bets near kickoff")
    settle.set_defaults(func=cmd_settle)

    post = sub.add_parser("post-bets", help="announce approved bets on Discord")
    post.set_defaults(func=cmd_post_bets)

    approve = sub.add_parser("approve", help="approve a tracked bet")
    approve.add_argument("--row", type=int, required=True)
    approve.set_defaults(func=cmd_approve)

    dump = sub.add_parser("dump-teams", help="build the team alias inventory")
    dump.add_argument("--hours", type=int, default=336)
    dump.add_argument("--out", default=None)
    dump.set_defaults(func=cmd_dump_teams)

    init = sub.add_parser("init-db", help="create database tables")
    init.set_defaults(func=cmd_init_db)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    configure_logging(debug=args.debug, log_file=Path(args.log_file) if args.log_file else None)
    try:
        return args.func(args)
    except Exception as exc:
        logger.debug("command %s failed", args.command, exc_info=True)
        print(f"edgeviper {args.command}: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
