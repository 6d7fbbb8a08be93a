"""
geostats/report.py
==================
The "<map> - <mode>" report: general statistics plus a histogram of the
countries encountered, recomputed from the full history of one map/mode.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from geostats.game_mode import mode_slug, normalized_slug
from geostats.models import GameRecord, RoundRecord, round_half_up
from geostats.settings import MAX_SHEET_NAME_LENGTH, UNKNOWN_COUNTRY, UNKNOWN_MAP

_FORBIDDEN_SHEET_CHARS = re.compile(r'[\\/?*\[\]:]')


@dataclass
class MapModeReport:
    map_name: str
    mode_slug: str
    games: int = 0
    avg_score: int = 0
    avg_distance_km: float = 0.0
    perfect_games: int = 0
    perfect_rate_pct: float = 0.0
    countries: List[Tuple[str, int]] = field(default_factory=list)

    @property
    def sheet_name(self) -> str:
        return report_sheet_name(self.map_name, self.mode_slug)


def report_sheet_name(map_name: str, slug: str) -> str:
    """Table name for a report; characters a sheet name cannot hold become spaces."""
    raw = f"{map_name or UNKNOWN_MAP} - {slug}"
    return _FORBIDDEN_SHEET_CHARS.sub(" ", raw).strip()[:MAX_SHEET_NAME_LENGTH]


def _matches(map_name: str, slug: str, record_map: str, record_mode: str) -> bool:
    # Stored labels are compared through their restrictions, not verbatim.
    return record_map == map_name and normalized_slug(record_mode) == slug


def build_report(
    map_name: str,
    mode: str,
    games: Iterable[GameRecord],
    rounds: Iterable[RoundRecord],
) -> MapModeReport:
    """
    Recompute the report for one (map, mode) pair.

    Args:
        map_name: Exact map name to keep
        mode: Mode label of the game being saved (e.g. "No Move")
        games: Full Games history
        rounds: Full Rounds history

    Returns:
        MapModeReport with averages and the country histogram sorted by
        count descending, then code ascending
    """
    map_name = map_name or UNKNOWN_MAP
    slug = mode_slug(mode)

    selected_games = [g for g in games if _matches(map_name, slug, g.map_name, g.mode)]
    selected_rounds = [r for r in rounds if _matches(map_name, slug, r.map_name, r.mode)]

    game_count = len(selected_games)
    total_score = sum(g.score or 0 for g in selected_games)
    total_distance_km = sum(g.distance_km or 0 for g in selected_games)
    perfect_games = sum(1 for g in selected_games if g.is_perfect)

    counts: dict = {}
    for record in selected_rounds:
        code = (record.actual_country or "").upper()
        if not code or code == UNKNOWN_COUNTRY.upper():
            continue
        counts[code] = counts.get(code, 0) + 1

    report = MapModeReport(map_name=map_name, mode_slug=slug, games=game_count)
    if game_count:
        report.avg_score = int(round_half_up(total_score / game_count))
        report.avg_distance_km = round_half_up(total_distance_km / game_count, 2)
        report.perfect_games = perfect_games
        report.perfect_rate_pct = round_half_up(perfect_games / game_count * 100, 2)
    report.countries = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return report


def report_rows(report: MapModeReport) -> List[list]:
    """Render a report as table rows.

    Row 1 holds the title in column A and the general statistics heading in
    column D; rows 2-6 carry the statistics in D:E. The Country /
    Encountered header is on row 3 and the histogram starts on row 4.
    """
    general = [
        ["Total Games:", report.games],
        ["Average Score:", report.avg_score],
        ["Average Distance (km):", report.avg_distance_km],
        ["Perfect Games:", report.perfect_games],
        ["Perfect Rate (%):", report.perfect_rate_pct],
    ]
    left: List[list] = [
        [f"{report.map_name} - {report.mode_slug.upper()}", ""],
        ["", ""],
        ["Country", "Encountered"],
    ]
    left.extend([code, count] for code, count in report.countries)

    right: List[list] = [["GENERAL STATISTICS", ""]] + general
    height = max(len(left), len(right))
    rows = []
    for index in range(height):
        cells = left[index] if index < len(left) else ["", ""]
        extra = right[index] if index < len(right) else ["", ""]
        rows.append(list(cells) + [""] + list(extra))
    return rows
