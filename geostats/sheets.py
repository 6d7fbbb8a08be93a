"""
geostats/sheets.py
==================
Column layouts of the flat history tables and the conversions between
records and table rows.

Country codes are lower-case on records and upper-case in the Rounds and
Country Recognition tables; the conversion happens here and nowhere else.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from geostats import settings
from geostats.models import CountryGuessRecord, GameRecord, RoundRecord

GAMES_HEADERS = [
    "Date", "Token", "Map Name", "Map Link", "Game Mode", "Score", "Distance (km)",
    "Time Limit", "Rounds", "Perfect Score",
]
ROUNDS_HEADERS = [
    "Date", "Game Token", "Map Name", "Game Mode", "Round",
    "Score", "Distance (km)", "Actual Country", "Actual Location",
]
COUNTRY_HEADERS = [
    "Date", "Game Token", "Map Name", "Game Mode", "Round",
    "Actual Country", "Guessed Country", "Correct Guess",
    "Score", "Distance (km)", "Actual Location", "Guess Location",
]

# 0-based column positions
GAMES_DATE_COL = 0
GAMES_TOKEN_COL = 1

YES = "YES"
NO = "NO"


# --- Display links ---

def map_link(map_id: Optional[str]) -> str:
    if not map_id:
        return ""
    url = settings.MAP_URL.format(map_id=map_id)
    return f'=HYPERLINK("{url}";"Map Link")'


def location_link(lat: Optional[float], lng: Optional[float], label: str) -> str:
    if not lat or not lng:
        return ""
    url = settings.PANO_URL.format(lat=lat, lng=lng)
    return f'=HYPERLINK("{url}";"{label}")'


# --- Cell coercion ---

def _num(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _int(value: Any) -> int:
    return int(_num(value))


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _date(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def _cell(row: List[Any], index: int) -> Any:
    return row[index] if index < len(row) else None


# --- Records -> rows ---

def game_to_row(game: GameRecord) -> List[Any]:
    return [
        game.date,
        game.token,
        game.map_name,
        map_link(game.map_id),
        game.mode,
        game.score,
        game.distance_km,
        game.time_limit,
        game.round_count,
        YES if game.is_perfect else NO,
    ]


def round_to_row(record: RoundRecord) -> List[Any]:
    return [
        record.date,
        record.game_token,
        record.map_name,
        record.mode,
        record.round_number,
        record.score,
        record.distance_km,
        record.actual_country.upper(),
        location_link(record.actual_lat, record.actual_lng, "Actual Location"),
    ]


def guess_to_row(record: CountryGuessRecord) -> List[Any]:
    return [
        record.date,
        record.game_token,
        record.map_name,
        record.mode,
        record.round_number,
        record.actual_country.upper(),
        record.guessed_country.upper(),
        YES if record.is_correct else NO,
        record.score,
        record.distance_km,
        location_link(record.actual_lat, record.actual_lng, "Actual Location"),
        location_link(record.guess_lat, record.guess_lng, "Guess Location"),
    ]


# --- Rows -> records ---

def game_from_row(row: List[Any]) -> GameRecord:
    return GameRecord(
        token=_text(_cell(row, 1)),
        date=_date(_cell(row, 0)),
        map_name=_text(_cell(row, 2)),
        mode=_text(_cell(row, 4)),
        score=_int(_cell(row, 5)),
        distance_meters=_num(_cell(row, 6)) * 1000,
        time_limit=_int(_cell(row, 7)),
        round_count=_int(_cell(row, 8)),
    )


def round_from_row(row: List[Any]) -> RoundRecord:
    return RoundRecord(
        game_token=_text(_cell(row, 1)),
        date=_date(_cell(row, 0)),
        map_name=_text(_cell(row, 2)),
        mode=_text(_cell(row, 3)),
        round_number=_int(_cell(row, 4)),
        score=_int(_cell(row, 5)),
        distance_meters=_num(_cell(row, 6)) * 1000,
        actual_country=_text(_cell(row, 7)).lower(),
    )


def guess_from_row(row: List[Any]) -> CountryGuessRecord:
    return CountryGuessRecord(
        game_token=_text(_cell(row, 1)),
        date=_date(_cell(row, 0)),
        map_name=_text(_cell(row, 2)),
        mode=_text(_cell(row, 3)),
        round_number=_int(_cell(row, 4)),
        actual_country=_text(_cell(row, 5)).lower(),
        guessed_country=_text(_cell(row, 6)).lower(),
        is_correct=_text(_cell(row, 7)) == YES,
        score=_int(_cell(row, 8)),
        distance_meters=_num(_cell(row, 9)) * 1000,
    )
