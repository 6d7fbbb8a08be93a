# main.py

import argparse
import json
import logging
import sys
from pathlib import Path

from geostats.database import WorkbookStore
from geostats.service import GeoStatsService


def _safe_print(message: str) -> None:
    """Print with Unicode fallback for restricted terminal encodings."""
    try:
        print(message)
    except UnicodeEncodeError:
        print(message.encode("ascii", "replace").decode("ascii"))


def _print_statistics(result: dict) -> None:
    maps = result["maps"]
    if not maps:
        _safe_print("No games saved yet.")
        return

    _safe_print(f"\n=== MAP + MODE STATISTICS: {result['userId']} ===")
    _safe_print(
        f"  {'Map':<28} {'Mode':<8} {'G':>4} {'Avg':>6} {'Best':>6} {'Worst':>6} "
        f"{'Perf%':>6} {'AvgKm':>8} {'Ctry':>5}"
    )
    for m in maps:
        _safe_print(
            f"  {m['map_name'][:28]:<28} {m['mode']:<8} {m['games']:>4} "
            f"{m['avg_score']:>6} {m['best_score']:>6} {m['worst_score']:>6} "
            f"{m['perfect_rate_pct']:>6.2f} {m['avg_distance_km']:>8.2f} {m['total_countries']:>5}"
        )
        hardest = m.get("most_difficult_country")
        easiest = m.get("easiest_country")
        if hardest:
            _safe_print(f"      hardest: {hardest[0].upper()} ({hardest[1]:.0f}%)")
        if easiest:
            _safe_print(f"      easiest: {easiest[0].upper()} ({easiest[1]:.0f}%)")


def cmd_submit(service: GeoStatsService, args) -> int:
    try:
        with open(args.game_file, "r", encoding="utf-8") as f:
            game_data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        _safe_print(f"[ERROR] Could not read {args.game_file}: {e}")
        return 1

    result = service.submit(args.user, game_data)
    if not result["success"]:
        _safe_print(f"[ERROR] {result['error']}")
        return 1
    _safe_print(f"[OK] {result['message']} -> {result['spreadsheetUrl']}")
    return 0


def cmd_export(service: GeoStatsService, args) -> int:
    result = service.export(args.sheet, user_id=args.user)
    if not result["success"]:
        _safe_print(f"[ERROR] {result['error']}")
        return 1
    if args.output:
        Path(args.output).write_text(result["csv"], encoding="utf-8")
        _safe_print(f"[OK] Wrote {args.output}")
    else:
        sys.stdout.write(result["csv"] + "\n")
    return 0


def cmd_stats(service: GeoStatsService, args) -> int:
    result = service.statistics(args.user, detailed=not args.simple)
    if not result["success"]:
        _safe_print(f"[ERROR] {result['error']}")
        return 1
    _print_statistics(result)
    return 0


def cmd_serve(service: GeoStatsService, args) -> int:
    import uvicorn

    from web import app as web_app

    web_app.service = service

    print("Starting GeoGuessr Stats API...")
    print(f"Listening on http://{args.host}:{args.port}")
    uvicorn.run(web_app.app, host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="GeoGuessr per-user game statistics")
    parser.add_argument("--data-dir", default=None, help="Directory holding the workbooks")
    parser.add_argument("--verbose", action="store_true", help="Verbose logging")
    sub = parser.add_subparsers(dest="command", required=True)

    submit = sub.add_parser("submit", help="Save a game from a JSON file")
    submit.add_argument("game_file", help="Path to a gameData JSON document")
    submit.add_argument("--user", required=True, help="User identifier")
    submit.set_defaults(func=cmd_submit)

    export = sub.add_parser("export", help="Export a table as CSV")
    export.add_argument("sheet", help="Table name, e.g. 'Country Recognition'")
    export.add_argument("--user", default=None, help="User identifier (default workbook if omitted)")
    export.add_argument("--output", default=None, help="Write to this file instead of stdout")
    export.set_defaults(func=cmd_export)

    stats = sub.add_parser("stats", help="Print map x mode statistics")
    stats.add_argument("--user", required=True, help="User identifier")
    stats.add_argument("--simple", action="store_true", help="Only count country encounters")
    stats.set_defaults(func=cmd_stats)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=5000)
    serve.set_defaults(func=cmd_serve)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    service = GeoStatsService(store=WorkbookStore(data_dir=args.data_dir))
    return args.func(service, args)


if __name__ == "__main__":
    raise SystemExit(main())
