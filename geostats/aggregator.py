"""
geostats/aggregator.py
======================
Map x mode statistics folded from the full game and country-guess history.

All functions take plain record lists and return aggregated data.
No I/O, no side effects: the same history always folds to the same result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from geostats.models import (
    CountryGuessRecord,
    CountryStat,
    GameRecord,
    MapModeKey,
    MapModeStat,
    round_half_up,
)
from geostats.settings import UNKNOWN_COUNTRY

STATS_TITLE = "MAP + MODE STATISTICS"
STATS_HEADERS = [
    "Map Name", "Game Mode", "Total Games", "Avg Score", "Best Score", "Worst Score",
    "Perfect Games", "Perfect Rate %", "Total Distance (km)", "Avg Distance/Game (km)",
    "Countries Analysis", "Most Difficult Country", "Easiest Country", "Total Countries Encountered",
]
COUNTRY_BLOCK_HEADERS = ["Country", "Encountered"]
NOT_AVAILABLE = "N/A"


@dataclass
class History:
    """Everything the aggregate is recomputed from."""

    games: List[GameRecord] = field(default_factory=list)
    guesses: List[CountryGuessRecord] = field(default_factory=list)


def is_known_country(code: Optional[str]) -> bool:
    return bool(code) and code.lower() != UNKNOWN_COUNTRY


def aggregate(
    games: Iterable[GameRecord],
    country_guesses: Iterable[CountryGuessRecord],
    detailed: bool = True,
) -> Dict[MapModeKey, MapModeStat]:
    """Fold games and country guesses into per (map, mode) statistics.

    With detailed=False only encounter counts are tracked per country; the
    detailed variant also tracks correct guesses, total score and a
    wrong-guess histogram keyed by the guessed country.

    Guesses whose key has no games are ignored, so every returned key has
    at least one game. Keys are returned sorted by (map name, mode).
    """
    stats: Dict[MapModeKey, MapModeStat] = {}

    for game in games:
        key = game.key
        if key not in stats:
            stats[key] = MapModeStat(map_name=key.map_name, mode=key.mode)
        row = stats[key]
        score = game.score or 0
        row.games += 1
        row.total_score += score
        row.best_score = max(row.best_score, score)
        row.worst_score = min(row.worst_score, score)
        row.total_distance_km += (game.distance_meters or 0) / 1000
        if game.is_perfect:
            row.perfect_games += 1

    for guess in country_guesses:
        country = guess.actual_country
        if not is_known_country(country):
            continue
        row = stats.get(guess.key)
        if row is None:
            continue

        country = country.lower()
        if country not in row.countries:
            row.countries[country] = CountryStat()
        country_stat = row.countries[country]
        country_stat.encountered += 1
        if not detailed:
            continue

        country_stat.total_score += guess.score or 0
        if guess.is_correct:
            country_stat.correct_guesses += 1
        else:
            guessed = (guess.guessed_country or UNKNOWN_COUNTRY).lower()
            country_stat.wrong_guesses[guessed] = country_stat.wrong_guesses.get(guessed, 0) + 1

    return {key: stats[key] for key in sorted(stats)}


def fold(history: History, detailed: bool = True) -> Dict[MapModeKey, MapModeStat]:
    return aggregate(history.games, history.guesses, detailed=detailed)


def most_difficult_country(stat: MapModeStat) -> Optional[Tuple[str, float]]:
    """Country with the lowest recognition accuracy (first seen wins ties).

    A country only qualifies when its accuracy is below 100%.
    """
    result = None
    lowest = 100.0
    for country, country_stat in stat.countries.items():
        if country_stat.encountered == 0:
            continue
        accuracy = country_stat.accuracy_pct
        if accuracy < lowest:
            lowest = accuracy
            result = (country, accuracy)
    return result


def easiest_country(stat: MapModeStat) -> Optional[Tuple[str, float]]:
    """Country with the highest recognition accuracy (first seen wins ties).

    A country only qualifies when its accuracy is above 0%.
    """
    result = None
    highest = 0.0
    for country, country_stat in stat.countries.items():
        if country_stat.encountered == 0:
            continue
        accuracy = country_stat.accuracy_pct
        if accuracy > highest:
            highest = accuracy
            result = (country, accuracy)
    return result


def _difficulty_label(found: Optional[Tuple[str, float]]) -> str:
    if not found:
        return NOT_AVAILABLE
    country, accuracy = found
    return f"{country.upper()} ({int(round_half_up(accuracy))}%)"


def summarize(stat: MapModeStat, detailed: bool = True) -> dict:
    """Flat dict of the reported figures for one key."""
    return {
        "map_name": stat.map_name,
        "mode": stat.mode,
        "games": stat.games,
        "avg_score": stat.avg_score,
        "best_score": stat.best_score,
        "worst_score": stat.reported_worst_score,
        "perfect_games": stat.perfect_games,
        "perfect_rate_pct": stat.perfect_rate_pct,
        "total_distance_km": int(round_half_up(stat.total_distance_km)),
        "avg_distance_km": stat.avg_distance_km,
        "total_countries": stat.total_countries,
        "most_difficult_country": most_difficult_country(stat) if detailed else None,
        "easiest_country": easiest_country(stat) if detailed else None,
    }


def statistics_rows(stats: Dict[MapModeKey, MapModeStat], detailed: bool = True) -> List[list]:
    """Render the Statistics table.

    Layout: title, blank row, header row, then one row per key. When a key
    has country data, its Country / Encountered block follows in columns
    15-16 on the rows directly below it, most encountered first.
    """
    rows: List[list] = [[STATS_TITLE], [], list(STATS_HEADERS)]
    pad = [""] * len(STATS_HEADERS)

    for stat in stats.values():
        summary = summarize(stat, detailed=detailed)
        total_countries = summary["total_countries"]
        main_row = [
            summary["map_name"],
            summary["mode"],
            summary["games"],
            summary["avg_score"],
            summary["best_score"],
            summary["worst_score"],
            summary["perfect_games"],
            summary["perfect_rate_pct"],
            summary["total_distance_km"],
            summary["avg_distance_km"],
            f"{total_countries} countries" if total_countries > 0 else "No data",
            _difficulty_label(summary["most_difficult_country"]),
            _difficulty_label(summary["easiest_country"]),
            total_countries,
        ]
        if not stat.countries:
            rows.append(main_row)
            continue

        rows.append(main_row + COUNTRY_BLOCK_HEADERS)
        ranked = sorted(stat.countries.items(), key=lambda item: -item[1].encountered)
        for country, country_stat in ranked:
            rows.append(pad + [country.upper(), country_stat.encountered])

    return rows
